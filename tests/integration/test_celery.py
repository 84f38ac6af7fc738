"""Integration tests for the Celery configuration and scheduled jobs."""

from datetime import timedelta

import pytest
from django.utils import timezone

from storefront.notifications.constants import EventStatus, EventType
from storefront.notifications.models import CommunicationEvent

pytestmark = pytest.mark.integration


class TestCeleryConfig:
    """Celery loads through Django settings."""

    def test_celery_app_is_importable(self):
        from config.celery import app

        assert app.main == "storefront"

    def test_celery_app_exported_from_init(self):
        from config import celery_app

        assert celery_app.main == "storefront"

    def test_celery_serializer_is_json(self, settings):
        assert settings.CELERY_TASK_SERIALIZER == "json"
        assert settings.CELERY_RESULT_SERIALIZER == "json"
        assert settings.CELERY_ACCEPT_CONTENT == ["json"]

    def test_celery_timezone_matches_django(self, settings):
        assert settings.CELERY_TIMEZONE == settings.TIME_ZONE

    def test_purge_job_is_scheduled(self, settings):
        entry = settings.CELERY_BEAT_SCHEDULE["purge-communication-events"]
        assert entry["task"] == "notifications.purge_communication_events"


def _event(key: str, status: str, age_days: int) -> CommunicationEvent:
    event = CommunicationEvent.objects.create(
        event_type=EventType.ORDER_CONFIRMATION,
        recipient_email="ada@example.com",
        template_key="order_confirmation",
        dedupe_key=key,
        status=status,
    )
    CommunicationEvent.objects.filter(id=event.id).update(
        created_at=timezone.now() - timedelta(days=age_days)
    )
    return event


class TestPurgeCommunicationEvents:
    def test_deletes_only_old_finished_events(self, settings):
        from storefront.notifications.tasks import purge_communication_events

        settings.NOTIFICATION_RETENTION_DAYS = 30
        old_sent = _event("old-sent", EventStatus.SENT, 45)
        old_failed = _event("old-failed", EventStatus.FAILED, 31)
        old_queued = _event("old-queued", EventStatus.QUEUED, 45)
        recent_sent = _event("recent-sent", EventStatus.SENT, 2)

        result = purge_communication_events.apply().get()

        assert result == {"deleted": 2, "retention_days": 30}
        remaining = set(CommunicationEvent.objects.values_list("id", flat=True))
        assert remaining == {old_queued.id, recent_sent.id}
        assert old_sent.id not in remaining
        assert old_failed.id not in remaining

    def test_retention_can_be_overridden(self):
        from storefront.notifications.tasks import purge_communication_events

        _event("week-old", EventStatus.SENT, 8)

        assert purge_communication_events(retention_days=7)["deleted"] == 1
