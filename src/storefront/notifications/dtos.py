"""Notification queue DTOs (Pydantic v2, immutable)."""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from storefront.notifications.constants import Priority


class EnqueueRequest(BaseModel):
    """One logical notification to queue.

    ``window`` turns on time-windowed suppression: an event with the same
    ``dedupe_key`` created within the window suppresses this one, and a
    new event is allowed once the window has passed.
    """

    model_config = ConfigDict(frozen=True)

    event_type: str
    recipient_email: str = ""
    template_key: str
    dedupe_key: str
    variables: Dict[str, Any] = Field(default_factory=dict)
    order_id: Optional[UUID] = None
    priority: int = Priority.NORMAL
    window: Optional[timedelta] = None

    @field_validator("recipient_email")
    @classmethod
    def normalise_email(cls, v: str) -> str:
        return (v or "").strip().lower()

    @field_validator("dedupe_key")
    @classmethod
    def dedupe_key_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("dedupe_key is required.")
        return v.strip()


class EnqueueResult(BaseModel):
    """Outcome of an enqueue.

    ``suppressed`` means an equivalent event already exists (its id is
    returned); ``skipped`` means nothing was queued because the request had
    no recipient.
    """

    model_config = ConfigDict(frozen=True)

    event_id: Optional[UUID] = None
    created: bool = False
    suppressed: bool = False
    skipped: bool = False
