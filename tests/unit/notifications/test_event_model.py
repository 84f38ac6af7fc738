"""Unit tests for the CommunicationEvent worker-facing API."""

from __future__ import annotations

from datetime import timedelta

import pytest
from django.utils import timezone

from storefront.notifications.constants import EventStatus, EventType, Priority
from storefront.notifications.models import CommunicationEvent

pytestmark = pytest.mark.unit


def _event(key, **overrides):
    data = {
        "event_type": EventType.ORDER_CONFIRMATION,
        "recipient_email": "ada@example.com",
        "template_key": "order_confirmation",
        "dedupe_key": key,
    }
    data.update(overrides)
    return CommunicationEvent.objects.create(**data)


class TestReadyForDispatch:
    def test_priority_then_age(self):
        low = _event("a", priority=Priority.LOW)
        normal = _event("b")
        high = _event("c", priority=Priority.HIGH)

        ready = list(CommunicationEvent.objects.ready_for_dispatch())
        assert ready == [high, normal, low]

    def test_excludes_future_and_non_queued(self):
        due = _event("due")
        _event("later", scheduled_at=timezone.now() + timedelta(hours=1))
        _event("sent", status=EventStatus.SENT)

        assert list(CommunicationEvent.objects.ready_for_dispatch()) == [due]

    def test_limit(self):
        for n in range(3):
            _event(f"k{n}")
        assert len(CommunicationEvent.objects.ready_for_dispatch(limit=2)) == 2


class TestWorkerTransitions:
    def test_processing_then_sent(self):
        event = _event("x")
        event.mark_processing()
        assert event.status == EventStatus.PROCESSING
        assert event.processed_at is not None

        event.mark_sent()
        event.refresh_from_db()
        assert event.status == EventStatus.SENT
        assert event.sent_at is not None
        assert event.is_terminal

    def test_failure_requeues_until_retries_exhausted(self, settings):
        settings.NOTIFICATION_MAX_RETRIES = 2
        event = _event("y")

        event.mark_failed("smtp timeout")
        event.refresh_from_db()
        assert event.status == EventStatus.QUEUED
        assert event.retry_count == 1
        assert event.last_error == "smtp timeout"

        event.mark_failed("smtp timeout")
        event.refresh_from_db()
        assert event.status == EventStatus.FAILED
        assert event.is_terminal
