"""Unit tests for NotificationQueue deduplication."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from freezegun import freeze_time

from storefront.core.models import AuditLog
from storefront.notifications.constants import EventType, Priority
from storefront.notifications.dtos import EnqueueRequest
from storefront.notifications.models import CommunicationEvent
from storefront.notifications.services import (
    NotificationQueue,
    status_dedupe_key,
    window_bucket,
)

pytestmark = pytest.mark.unit

SIX_HOURS = timedelta(hours=6)


def _request(**overrides) -> EnqueueRequest:
    data = {
        "event_type": EventType.ORDER_CONFIRMATION,
        "recipient_email": "ada@example.com",
        "template_key": "order_confirmation",
        "dedupe_key": "order-1",
        "variables": {"order_number": "ORD-20250301-00001"},
    }
    data.update(overrides)
    return EnqueueRequest(**data)


def _status_request(order_id, status="preparing") -> EnqueueRequest:
    return _request(
        event_type=EventType.ORDER_STATUS_UPDATE,
        template_key=f"order_{status}",
        dedupe_key=status_dedupe_key("ada@example.com", order_id, status),
        window=SIX_HOURS,
    )


class TestStatusDedupeKey:
    def test_is_deterministic_and_case_insensitive(self):
        order_id = uuid4()
        assert status_dedupe_key("Ada@Example.com ", order_id, "ready") == (
            status_dedupe_key("ada@example.com", order_id, "ready")
        )

    def test_differs_per_status_and_order(self):
        order_id = uuid4()
        keys = {
            status_dedupe_key("ada@example.com", order_id, "ready"),
            status_dedupe_key("ada@example.com", order_id, "delivered"),
            status_dedupe_key("ada@example.com", uuid4(), "ready"),
        }
        assert len(keys) == 3

    def test_is_sha256_hex(self):
        assert len(status_dedupe_key("a@b.c", uuid4(), "ready")) == 64


class TestWindowBucket:
    def test_same_window_same_bucket(self):
        start = datetime(2025, 3, 1, 0, 0, tzinfo=timezone.utc)
        assert window_bucket(start, SIX_HOURS) == window_bucket(
            start + timedelta(hours=5, minutes=59), SIX_HOURS
        )

    def test_next_window_next_bucket(self):
        start = datetime(2025, 3, 1, 0, 0, tzinfo=timezone.utc)
        assert window_bucket(start + SIX_HOURS, SIX_HOURS) == (
            window_bucket(start, SIX_HOURS) + 1
        )


class TestEnqueue:
    def test_creates_queued_event(self):
        result = NotificationQueue().enqueue(_request(priority=Priority.HIGH))

        assert result.created is True
        event = CommunicationEvent.objects.get(id=result.event_id)
        assert event.status == "queued"
        assert event.priority == Priority.HIGH
        assert event.dedupe_key == "order-1"
        assert event.variables == {"order_number": "ORD-20250301-00001"}

    def test_same_key_is_suppressed(self):
        queue = NotificationQueue()
        first = queue.enqueue(_request())
        second = queue.enqueue(_request(variables={"changed": True}))

        assert second.suppressed is True
        assert second.event_id == first.event_id
        assert CommunicationEvent.objects.count() == 1

    def test_same_key_different_type_is_independent(self):
        queue = NotificationQueue()
        queue.enqueue(_request())
        queue.enqueue(_request(event_type=EventType.PAYMENT_CONFIRMATION))
        assert CommunicationEvent.objects.count() == 2

    def test_recipient_is_normalised(self):
        result = NotificationQueue().enqueue(_request(recipient_email=" Ada@Example.COM"))
        event = CommunicationEvent.objects.get(id=result.event_id)
        assert event.recipient_email == "ada@example.com"

    def test_missing_recipient_is_skipped_and_audited(self):
        result = NotificationQueue().enqueue(_request(recipient_email=""))

        assert result.skipped is True
        assert result.event_id is None
        assert not CommunicationEvent.objects.exists()
        entry = AuditLog.objects.get(action="communication_event_skipped")
        assert entry.category == "Email System"
        assert entry.new_values["reason"] == "missing_recipient_email"

    def test_blank_dedupe_key_rejected(self):
        with pytest.raises(ValueError):
            _request(dedupe_key="  ")


class TestWindowedEnqueue:
    def test_repeat_inside_window_suppressed(self, make_order):
        order = make_order()
        queue = NotificationQueue()

        with freeze_time("2025-03-01 10:00:00"):
            first = queue.enqueue(_status_request(order.id))
        with freeze_time("2025-03-01 15:59:00"):
            second = queue.enqueue(_status_request(order.id))

        assert first.created is True
        assert second.suppressed is True
        assert second.event_id == first.event_id
        assert CommunicationEvent.objects.count() == 1

    def test_window_boundary_does_not_reset_suppression(self, make_order):
        order = make_order()
        queue = NotificationQueue()

        # 11:59 and 12:01 fall into different six-hour buckets.
        with freeze_time("2025-03-01 11:59:00"):
            queue.enqueue(_status_request(order.id))
        with freeze_time("2025-03-01 12:01:00"):
            second = queue.enqueue(_status_request(order.id))

        assert second.suppressed is True
        assert CommunicationEvent.objects.count() == 1

    def test_new_event_after_window(self, make_order):
        order = make_order()
        queue = NotificationQueue()

        with freeze_time("2025-03-01 10:00:00"):
            first = queue.enqueue(_status_request(order.id))
        with freeze_time("2025-03-01 16:00:01"):
            second = queue.enqueue(_status_request(order.id))

        assert second.created is True
        assert second.event_id != first.event_id
        assert CommunicationEvent.objects.count() == 2

    def test_different_status_not_suppressed(self, make_order):
        order = make_order()
        queue = NotificationQueue()

        queue.enqueue(_status_request(order.id, "preparing"))
        result = queue.enqueue(_status_request(order.id, "ready"))

        assert result.created is True
