"""Base abstract model and the shared append-only audit records.

Provides:
- ``BaseModel``: UUIDv7 primary key + created_at / updated_at timestamps.
- ``AuditLog``: structured trail written by every service operation
  (action, category, actor, before/after values).
- ``SecurityIncident``: security-relevant events such as payment amount
  mismatches, kept apart from the ordinary audit trail so monitoring can
  alert on them.

Both audit tables are insert-only from the application's point of view.
"""

from __future__ import annotations

import uuid6
from django.db import models

# ---------------------------------------------------------------------------
# BaseModel
# ---------------------------------------------------------------------------


class BaseModel(models.Model):
    """Abstract base with UUIDv7 PK and timestamp bookkeeping."""

    id = models.UUIDField(
        primary_key=True,
        default=uuid6.uuid7,
        editable=False,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    def save(self, *args, **kwargs) -> None:
        """Ensure ``updated_at`` is refreshed even when ``update_fields`` is passed."""
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "updated_at" not in update_fields:
            kwargs["update_fields"] = list(update_fields) + ["updated_at"]
        super().save(*args, **kwargs)


# ---------------------------------------------------------------------------
# Audit trail
# ---------------------------------------------------------------------------


class AuditLog(BaseModel):
    """One structured audit entry.

    ``actor_id`` is an opaque string (user id, ``system:payment`` ...) passed
    explicitly by the caller; services never read an ambient "current user".
    ``entity_id`` is the id of the record the action touched, if any.
    """

    action = models.CharField(max_length=100)
    category = models.CharField(max_length=50)
    message = models.TextField(blank=True, default="")
    actor_id = models.CharField(max_length=255, null=True, blank=True)  # noqa: DJ01
    entity_id = models.CharField(max_length=255, null=True, blank=True)  # noqa: DJ01
    old_values = models.JSONField(null=True, blank=True, default=None)
    new_values = models.JSONField(null=True, blank=True, default=None)

    class Meta:
        db_table = "audit_logs"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["action", "-created_at"], name="audit_action_idx"),
            models.Index(fields=["entity_id"], name="audit_entity_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.category}/{self.action} ({self.entity_id or '-'})"


class IncidentSeverity(models.TextChoices):
    LOW = "low", "Low"
    MEDIUM = "medium", "Medium"
    HIGH = "high", "High"
    CRITICAL = "critical", "Critical"


class SecurityIncident(BaseModel):
    """A security-relevant event, e.g. a tampered payment amount."""

    incident_type = models.CharField(max_length=100)
    severity = models.CharField(
        max_length=10,
        choices=IncidentSeverity.choices,
        default=IncidentSeverity.MEDIUM,
    )
    description = models.TextField()
    reference = models.CharField(max_length=255, blank=True, default="")
    expected_amount = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True
    )
    received_amount = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True
    )
    context = models.JSONField(default=dict, blank=True)

    class Meta:
        db_table = "security_incidents"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["incident_type", "-created_at"],
                name="incident_type_created_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.incident_type} [{self.severity}] {self.reference}"
