"""Django ORM implementation of the notification queue repository."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from django.core.exceptions import ValidationError

from storefront.notifications.models import CommunicationEvent
from storefront.notifications.repositories.interfaces import (
    ICommunicationEventRepository,
)


class CommunicationEventDjangoRepository(ICommunicationEventRepository):
    """Concrete notification queue repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[CommunicationEvent]:
        try:
            return CommunicationEvent.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(
        self, filters: Optional[Dict[str, Any]] = None
    ) -> List[CommunicationEvent]:
        queryset = CommunicationEvent.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def find_recent(
        self, event_type: str, key_prefix: str, since: datetime
    ) -> Optional[CommunicationEvent]:
        return (
            CommunicationEvent.objects.filter(
                event_type=event_type,
                dedupe_key__startswith=key_prefix,
                created_at__gte=since,
            )
            .order_by("-created_at")
            .first()
        )

    def get_or_create(
        self, event_type: str, dedupe_key: str, defaults: Dict[str, Any]
    ) -> Tuple[CommunicationEvent, bool]:
        # get_or_create retries the lookup inside a savepoint when a
        # concurrent insert wins the unique constraint.
        return CommunicationEvent.objects.get_or_create(
            event_type=event_type,
            dedupe_key=dedupe_key,
            defaults=defaults,
        )
