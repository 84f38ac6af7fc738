"""Notification repositories package."""

from storefront.notifications.repositories.django_repository import (
    CommunicationEventDjangoRepository,
)
from storefront.notifications.repositories.interfaces import (
    ICommunicationEventRepository,
)

__all__ = ["CommunicationEventDjangoRepository", "ICommunicationEventRepository"]
