"""Asynchronous jobs of the notifications module."""

from datetime import timedelta

import structlog
from celery import shared_task
from django.conf import settings
from django.utils import timezone

from storefront.notifications.models import CommunicationEvent

logger = structlog.get_logger(__name__)


@shared_task(name="notifications.purge_communication_events")
def purge_communication_events(retention_days: int | None = None) -> dict:
    """Delete sent/failed events older than the retention window."""
    days = retention_days or settings.NOTIFICATION_RETENTION_DAYS
    cutoff = timezone.now() - timedelta(days=days)
    deleted, _ = CommunicationEvent.objects.expired(cutoff).delete()
    logger.info("notifications.purged", deleted=deleted, retention_days=days)
    return {"deleted": deleted, "retention_days": days}
