"""Audit trail writer shared by every service.

Services call ``AuditTrail.record`` for every attempt (success or failure)
and ``AuditTrail.record_incident`` for security-relevant rejections.
Values are normalised to JSON-safe primitives before they are stored.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Optional
from uuid import UUID

import structlog

from storefront.core.models import AuditLog, IncidentSeverity, SecurityIncident

logger = structlog.get_logger(__name__)


class AuditTrail:
    """Append-only writer for ``AuditLog`` and ``SecurityIncident`` rows."""

    def record(
        self,
        action: str,
        category: str,
        message: str = "",
        *,
        actor_id: Optional[str] = None,
        entity_id: Any = None,
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None,
    ) -> AuditLog:
        entry = AuditLog.objects.create(
            action=action,
            category=category,
            message=message,
            actor_id=actor_id,
            entity_id=str(entity_id) if entity_id is not None else None,
            old_values=normalize_for_json(old_values),
            new_values=normalize_for_json(new_values),
        )
        logger.debug("audit.recorded", action=action, entity_id=entry.entity_id)
        return entry

    def record_incident(
        self,
        incident_type: str,
        description: str,
        *,
        severity: str = IncidentSeverity.MEDIUM,
        reference: str = "",
        expected_amount: Optional[Decimal] = None,
        received_amount: Optional[Decimal] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> SecurityIncident:
        incident = SecurityIncident.objects.create(
            incident_type=incident_type,
            severity=severity,
            description=description,
            reference=reference,
            expected_amount=expected_amount,
            received_amount=received_amount,
            context=normalize_for_json(context or {}),
        )
        logger.warning(
            "security.incident_recorded",
            incident_type=incident_type,
            severity=severity,
            reference=reference,
        )
        return incident


def normalize_for_json(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [normalize_for_json(item) for item in value]
    if isinstance(value, dict):
        return {str(key): normalize_for_json(val) for key, val in value.items()}
    return value
