"""Notification queue service.

``NotificationQueue.enqueue`` is the only way the order and payment
services put work in front of the delivery worker.  It guarantees at most
one queued row per logical notification:

- plain requests are a conditional insert on ``(event_type, dedupe_key)``;
- windowed requests (status updates) are first checked against events
  with the same key created inside the window, then stored under
  ``<key>:<window bucket>`` so storage-level uniqueness still collapses
  concurrent inserts while a later notification remains possible once
  the window has passed.
"""

from __future__ import annotations

import hashlib
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

import structlog
from django.utils import timezone

from storefront.core.audit import AuditTrail
from storefront.notifications.dtos import EnqueueRequest, EnqueueResult
from storefront.notifications.repositories import (
    CommunicationEventDjangoRepository,
    ICommunicationEventRepository,
)

logger = structlog.get_logger(__name__)


def status_dedupe_key(email: str, order_id: UUID, status: str) -> str:
    """Deterministic key for one status notification to one recipient."""
    raw = f"{email.strip().lower()}|{order_id}|{status}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def window_bucket(moment: datetime, window: timedelta) -> int:
    return int(moment.timestamp() // window.total_seconds())


class NotificationQueue:
    """Deduplicating writer for ``CommunicationEvent`` rows."""

    def __init__(
        self,
        repository: Optional[ICommunicationEventRepository] = None,
        audit: Optional[AuditTrail] = None,
    ) -> None:
        self._repo = repository or CommunicationEventDjangoRepository()
        self._audit = audit or AuditTrail()

    def enqueue(self, request: EnqueueRequest) -> EnqueueResult:
        log = logger.bind(
            event_type=request.event_type,
            template_key=request.template_key,
            order_id=str(request.order_id) if request.order_id else None,
        )

        if not request.recipient_email:
            self._audit.record(
                "communication_event_skipped",
                "Email System",
                "Communication event skipped: missing recipient email",
                entity_id=request.order_id,
                new_values={
                    "event_type": request.event_type,
                    "template_key": request.template_key,
                    "reason": "missing_recipient_email",
                },
            )
            log.warning("notification.skipped_no_recipient")
            return EnqueueResult(skipped=True)

        stored_key = request.dedupe_key
        if request.window is not None:
            now = timezone.now()
            recent = self._repo.find_recent(
                request.event_type,
                f"{request.dedupe_key}:",
                since=now - request.window,
            )
            if recent is not None:
                log.info("notification.suppressed", event_id=str(recent.id))
                return EnqueueResult(event_id=recent.id, suppressed=True)
            stored_key = f"{request.dedupe_key}:{window_bucket(now, request.window)}"

        event, created = self._repo.get_or_create(
            request.event_type,
            stored_key,
            defaults={
                "recipient_email": request.recipient_email,
                "order_id": request.order_id,
                "template_key": request.template_key,
                "variables": request.variables,
                "priority": request.priority,
            },
        )

        if not created:
            log.info("notification.suppressed", event_id=str(event.id))
            return EnqueueResult(event_id=event.id, suppressed=True)

        log.info("notification.queued", event_id=str(event.id))
        return EnqueueResult(event_id=event.id, created=True)
