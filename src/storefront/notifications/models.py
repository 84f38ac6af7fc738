"""CommunicationEvent: the notification queue.

Rows are written by the order/payment services and drained by an external
delivery worker.  ``(event_type, dedupe_key)`` is unique so concurrent
enqueues of the same logical notification collapse into one row.

Worker workflow:
1. ``CommunicationEvent.objects.ready_for_dispatch()``: queued, due,
   ordered by priority then creation time.
2. ``mark_processing()`` before attempting delivery.
3. ``mark_sent()`` on success, ``mark_failed(error)`` on failure; failures
   go back to ``queued`` until ``NOTIFICATION_MAX_RETRIES`` is reached.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from storefront.core.models import BaseModel
from storefront.notifications.constants import EventStatus, EventType, Priority


class CommunicationEventQuerySet(models.QuerySet):
    def ready_for_dispatch(self, limit: int = 50) -> CommunicationEventQuerySet:
        return self.filter(
            status=EventStatus.QUEUED,
            scheduled_at__lte=timezone.now(),
        ).order_by("priority", "created_at")[:limit]

    def expired(self, older_than) -> CommunicationEventQuerySet:
        return self.filter(
            status__in=[EventStatus.SENT, EventStatus.FAILED],
            created_at__lt=older_than,
        )


class CommunicationEvent(BaseModel):
    event_type = models.CharField(max_length=50, choices=EventType.choices)
    recipient_email = models.EmailField(max_length=254)
    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="communication_events",
    )
    template_key = models.CharField(max_length=100)
    variables = models.JSONField(default=dict, blank=True)
    status = models.CharField(
        max_length=20,
        choices=EventStatus.choices,
        default=EventStatus.QUEUED,
    )
    priority = models.PositiveSmallIntegerField(
        choices=Priority.choices,
        default=Priority.NORMAL,
    )
    dedupe_key = models.CharField(max_length=255)
    retry_count = models.PositiveIntegerField(default=0)
    last_error = models.TextField(blank=True, default="")
    scheduled_at = models.DateTimeField(default=timezone.now)
    processed_at = models.DateTimeField(null=True, blank=True)
    sent_at = models.DateTimeField(null=True, blank=True)

    objects = CommunicationEventQuerySet.as_manager()

    class Meta:
        db_table = "communication_events"
        ordering = ["priority", "created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["event_type", "dedupe_key"],
                name="communication_events_type_dedupe_uniq",
            ),
        ]
        indexes = [
            models.Index(
                fields=["status", "priority", "created_at"],
                name="comm_events_dispatch_idx",
            ),
            models.Index(fields=["dedupe_key"], name="comm_events_dedupe_idx"),
        ]

    # ------------------------------------------------------------------
    # Worker state transitions
    # ------------------------------------------------------------------

    def mark_processing(self) -> None:
        self.status = EventStatus.PROCESSING
        self.processed_at = timezone.now()
        self.save(update_fields=["status", "processed_at"])

    def mark_sent(self) -> None:
        self.status = EventStatus.SENT
        self.sent_at = timezone.now()
        self.save(update_fields=["status", "sent_at"])

    def mark_failed(self, error: str) -> None:
        """Record a delivery failure; terminal once retries are exhausted."""
        self.retry_count += 1
        self.last_error = error
        if self.retry_count >= settings.NOTIFICATION_MAX_RETRIES:
            self.status = EventStatus.FAILED
        else:
            self.status = EventStatus.QUEUED
        self.save(update_fields=["status", "retry_count", "last_error"])

    @property
    def is_terminal(self) -> bool:
        return self.status in (EventStatus.SENT, EventStatus.FAILED)

    def __str__(self) -> str:
        return f"{self.event_type} [{self.status}] -> {self.template_key}"
