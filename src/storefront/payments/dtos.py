"""Payment DTOs (Pydantic v2, immutable)."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from storefront.payments.constants import TransactionStatus, VerificationOutcome


class VerifyPaymentDTO(BaseModel):
    """A payment provider's report about one merchant reference.

    ``amount`` is in naira.  ``gateway_response`` is stored verbatim for
    reconciliation and never schema-validated.
    """

    model_config = ConfigDict(frozen=True)

    reference: str
    reported_status: TransactionStatus
    amount: Decimal
    currency: str = "NGN"
    gateway_response: Dict[str, Any] = Field(default_factory=dict)
    actor_id: Optional[str] = None
    context: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("reference")
    @classmethod
    def reference_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Payment reference is required.")
        return v

    @field_validator("amount")
    @classmethod
    def amount_not_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("Amount cannot be negative.")
        return v


class VerificationResult(BaseModel):
    """Outcome of ``PaymentVerificationService.verify_payment``."""

    model_config = ConfigDict(frozen=True)

    outcome: VerificationOutcome
    success: bool
    duplicate: bool = False
    order_id: Optional[UUID] = None
    order_number: Optional[str] = None
    status: Optional[str] = None
    payment_status: Optional[str] = None
    transaction_id: Optional[UUID] = None
    amount: Optional[Decimal] = None
    expected_amount: Optional[Decimal] = None
    processing_time_ms: float = 0.0
    message: str = ""
