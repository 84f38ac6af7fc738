"""Notification queue repository interface."""

from __future__ import annotations

from abc import abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple

from storefront.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from storefront.notifications.models import CommunicationEvent


class ICommunicationEventRepository(IRepository["CommunicationEvent"]):
    """Repository contract for the notification queue."""

    @abstractmethod
    def find_recent(
        self, event_type: str, key_prefix: str, since: datetime
    ) -> Optional[CommunicationEvent]:
        """Most recent event whose dedupe key starts with *key_prefix*."""

    @abstractmethod
    def get_or_create(
        self, event_type: str, dedupe_key: str, defaults: Dict[str, Any]
    ) -> Tuple[CommunicationEvent, bool]:
        """Conditional insert on ``(event_type, dedupe_key)``."""
