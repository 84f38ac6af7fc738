"""Payment verification service.

Reconciles a payment provider report (webhook or client-side poll) with
the order it pays for.  The order row is locked with ``SELECT ... FOR
UPDATE`` for the whole verification, so a webhook retried concurrently
with a poll is serialized: one call confirms the order, the other sees
it already paid and returns a duplicate result without writing.

Routine outcomes are returned as a ``VerificationResult``.  Anything
unexpected rolls the unit of work back, is audited with its processing
time and re-raised as ``PaymentProcessingError``.
"""

from __future__ import annotations

import time
from datetime import datetime
from datetime import timezone as dt_timezone
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, Dict, Optional

import structlog
from django.conf import settings
from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from storefront.core.audit import AuditTrail
from storefront.core.models import IncidentSeverity
from storefront.notifications.constants import (
    PAYMENT_CONFIRMATION_TEMPLATE,
    EventType,
    Priority,
)
from storefront.notifications.dtos import EnqueueRequest
from storefront.notifications.services import NotificationQueue
from storefront.orders.constants import SYSTEM_PAYMENT_ACTOR, OrderStatus, PaymentStatus
from storefront.payments.constants import (
    AMOUNT_MISMATCH_INCIDENT,
    FAILED_TRANSACTION_STATUSES,
    TransactionStatus,
    VerificationOutcome,
)
from storefront.payments.dtos import VerificationResult, VerifyPaymentDTO
from storefront.payments.exceptions import PaymentProcessingError

if TYPE_CHECKING:
    from storefront.orders.models import Order
    from storefront.orders.repositories.interfaces import IOrderRepository
    from storefront.payments.models import PaymentTransaction
    from storefront.payments.repositories.interfaces import (
        IPaymentTransactionRepository,
    )

logger = structlog.get_logger(__name__)

_CATEGORY = "Payment Processing"
_SECURITY_CATEGORY = "Payment Security"
_CRITICAL_CATEGORY = "Payment Critical"

# PaymentTransaction.fees is Decimal(12, 2); fees arrive in kobo.
_MAX_FEES_KOBO = Decimal(10) ** 12


class PaymentVerificationService:
    """Application service for payment verification."""

    def __init__(
        self,
        order_repository: IOrderRepository,
        transaction_repository: IPaymentTransactionRepository,
        notification_queue: Optional[NotificationQueue] = None,
        audit: Optional[AuditTrail] = None,
    ) -> None:
        self._order_repo = order_repository
        self._tx_repo = transaction_repository
        self._audit = audit or AuditTrail()
        self._queue = notification_queue or NotificationQueue(audit=self._audit)

    def verify_payment(self, dto: VerifyPaymentDTO) -> VerificationResult:
        started = time.monotonic()
        log = logger.bind(
            reference=dto.reference,
            reported_status=dto.reported_status,
            source=dto.context.get("source"),
        )
        log.info("payment.verification_started", amount=str(dto.amount))
        self._audit.record(
            "payment_verification_started",
            _CATEGORY,
            f"Verification started for {dto.reference}",
            actor_id=dto.actor_id,
            new_values={
                "reference": dto.reference,
                "reported_status": dto.reported_status,
                "amount": dto.amount,
                "context": dto.context,
            },
        )

        try:
            with transaction.atomic():
                return self._verify(dto, started, log)
        except Exception as exc:
            elapsed = _elapsed_ms(started)
            log.exception("payment.verification_critical_error", processing_time_ms=elapsed)
            self._audit.record(
                "payment_verification_critical_error",
                _CRITICAL_CATEGORY,
                f"Critical error verifying {dto.reference}: {exc}",
                actor_id=dto.actor_id,
                new_values={
                    "reference": dto.reference,
                    "amount": dto.amount,
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                    "processing_time_ms": elapsed,
                    "context": dto.context,
                },
            )
            raise PaymentProcessingError(
                "Payment could not be processed. Please contact support."
            ) from exc

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------

    def _verify(self, dto: VerifyPaymentDTO, started: float, log: Any) -> VerificationResult:
        order = self._order_repo.get_by_payment_reference_for_update(dto.reference)
        if order is None:
            return self._finish(
                "payment_verification_order_not_found",
                dto,
                started,
                log,
                outcome=VerificationOutcome.ORDER_NOT_FOUND,
                success=False,
                message=f"No order matches payment reference {dto.reference}.",
            )

        log = log.bind(order_id=str(order.id))

        # Read under the row lock, before any write.
        if order.is_paid or self._tx_repo.has_successful(dto.reference):
            return self._duplicate("payment_verification_duplicate", dto, order, started, log)

        if dto.reported_status in FAILED_TRANSACTION_STATUSES:
            return self._record_failed_payment(dto, order, started, log)
        if dto.reported_status != TransactionStatus.SUCCESS:
            return self._record_pending_payment(dto, order, started, log)

        expected = order.total_amount
        if abs(expected - dto.amount) > settings.PAYMENT_AMOUNT_TOLERANCE:
            return self._reject_amount_mismatch(dto, order, started, log)

        tx, created = self._tx_repo.get_or_create(
            dto.reference, defaults=self._transaction_fields(dto, order)
        )
        if not created:
            if tx.is_successful:
                return self._duplicate(
                    "payment_verification_duplicate_transaction", dto, order, started, log
                )
            # An earlier failed/pending attempt for this reference now succeeded.
            tx = self._tx_repo.update(tx, **self._transaction_fields(dto, order))

        return self._confirm(dto, order, tx, started, log)

    def _confirm(
        self,
        dto: VerifyPaymentDTO,
        order: Order,
        tx: PaymentTransaction,
        started: float,
        log: Any,
    ) -> VerificationResult:
        old_values = {
            "status": order.status,
            "payment_status": order.payment_status,
        }
        update_fields = ["payment_status", "paid_at", "payment_channel"]
        # A cancelled/refunded order keeps its status; the payment is still recorded.
        if order.status == OrderStatus.PENDING:
            order.status = OrderStatus.CONFIRMED
            update_fields.append("status")
        order.payment_status = PaymentStatus.PAID
        order.paid_at = tx.paid_at
        order.payment_channel = tx.channel
        order._status_changed_by = dto.actor_id or SYSTEM_PAYMENT_ACTOR
        order._status_change_reason = f"Payment {dto.reference} verified"
        self._order_repo.save(order, update_fields=update_fields)

        self._queue.enqueue(
            EnqueueRequest(
                event_type=EventType.PAYMENT_CONFIRMATION,
                recipient_email=order.customer_email,
                template_key=PAYMENT_CONFIRMATION_TEMPLATE,
                dedupe_key=dto.reference,
                order_id=order.id,
                priority=Priority.HIGH,
                variables={
                    "order_number": order.order_number,
                    "customer_name": order.customer_name,
                    "amount": str(tx.amount),
                    "payment_reference": dto.reference,
                    "channel": tx.channel,
                },
            )
        )

        log.info("payment.verified", transaction_id=str(tx.id))
        return self._finish(
            "payment_verification_success",
            dto,
            started,
            log,
            outcome=VerificationOutcome.CONFIRMED,
            success=True,
            order=order,
            transaction_id=tx.id,
            old_values=old_values,
            message=f"Payment verified for order {order.order_number}.",
        )

    def _duplicate(
        self,
        action: str,
        dto: VerifyPaymentDTO,
        order: Order,
        started: float,
        log: Any,
    ) -> VerificationResult:
        log.info("payment.duplicate_verification")
        return self._finish(
            action,
            dto,
            started,
            log,
            outcome=VerificationOutcome.DUPLICATE,
            success=True,
            duplicate=True,
            order=order,
            message=f"Payment for order {order.order_number} was already processed.",
        )

    def _record_transaction(self, dto: VerifyPaymentDTO, order: Order) -> PaymentTransaction:
        fields = self._transaction_fields(dto, order)
        tx, created = self._tx_repo.get_or_create(dto.reference, defaults=fields)
        if not created:
            tx = self._tx_repo.update(tx, **fields)
        return tx

    def _record_pending_payment(
        self, dto: VerifyPaymentDTO, order: Order, started: float, log: Any
    ) -> VerificationResult:
        """The provider has no final answer yet; the order is left as it is."""
        tx = self._record_transaction(dto, order)
        log.info("payment.reported_pending")
        return self._finish(
            "payment_verification_pending",
            dto,
            started,
            log,
            outcome=VerificationOutcome.PAYMENT_PENDING,
            success=False,
            order=order,
            transaction_id=tx.id,
            message=f"Payment {dto.reference} is still pending.",
        )

    def _record_failed_payment(
        self, dto: VerifyPaymentDTO, order: Order, started: float, log: Any
    ) -> VerificationResult:
        tx = self._record_transaction(dto, order)

        old_values = {"payment_status": order.payment_status}
        order.payment_status = PaymentStatus.FAILED
        self._order_repo.save(order, update_fields=["payment_status"])

        log.warning("payment.reported_failed")
        return self._finish(
            "payment_verification_failed",
            dto,
            started,
            log,
            outcome=VerificationOutcome.PAYMENT_FAILED,
            success=False,
            order=order,
            transaction_id=tx.id,
            old_values=old_values,
            message=f"Payment {dto.reference} was reported as {dto.reported_status}.",
        )

    def _reject_amount_mismatch(
        self, dto: VerifyPaymentDTO, order: Order, started: float, log: Any
    ) -> VerificationResult:
        expected = order.total_amount
        difference = abs(expected - dto.amount)
        self._audit.record_incident(
            AMOUNT_MISMATCH_INCIDENT,
            f"Payment amount mismatch for order {order.order_number}: "
            f"expected ₦{expected}, received ₦{dto.amount}",
            severity=IncidentSeverity.CRITICAL,
            reference=dto.reference,
            expected_amount=expected,
            received_amount=dto.amount,
            context={
                "order_id": order.id,
                "difference": difference,
                "gateway_response": dto.gateway_response,
                **dto.context,
            },
        )
        log.warning(
            "payment.amount_mismatch",
            expected_amount=str(expected),
            received_amount=str(dto.amount),
            difference=str(difference),
        )
        return self._finish(
            "payment_verification_amount_mismatch",
            dto,
            started,
            log,
            outcome=VerificationOutcome.AMOUNT_MISMATCH,
            success=False,
            order=order,
            category=_SECURITY_CATEGORY,
            message="Payment amount does not match the order total.",
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _transaction_fields(dto: VerifyPaymentDTO, order: Order) -> Dict[str, Any]:
        gateway = dto.gateway_response
        fields: Dict[str, Any] = {
            "order": order,
            "amount": dto.amount,
            "currency": dto.currency or settings.DEFAULT_CURRENCY,
            "status": dto.reported_status,
            "channel": str(gateway.get("channel") or ""),
            "gateway_response": gateway,
            "paid_at": None,
            "fees": None,
        }
        if dto.reported_status == TransactionStatus.SUCCESS:
            fields["paid_at"] = _gateway_paid_at(gateway) or timezone.now()
        fields["fees"] = _gateway_fees(gateway)
        return fields

    def _finish(
        self,
        action: str,
        dto: VerifyPaymentDTO,
        started: float,
        log: Any,
        *,
        outcome: VerificationOutcome,
        success: bool,
        duplicate: bool = False,
        order: Optional[Order] = None,
        transaction_id: Any = None,
        old_values: Optional[Dict[str, Any]] = None,
        category: str = _CATEGORY,
        message: str = "",
    ) -> VerificationResult:
        """Audit the attempt and build its result."""
        elapsed = _elapsed_ms(started)
        result = VerificationResult(
            outcome=outcome,
            success=success,
            duplicate=duplicate,
            order_id=order.id if order else None,
            order_number=order.order_number if order else None,
            status=order.status if order else None,
            payment_status=order.payment_status if order else None,
            transaction_id=transaction_id,
            amount=dto.amount,
            expected_amount=order.total_amount if order else None,
            processing_time_ms=elapsed,
            message=message,
        )
        self._audit.record(
            action,
            category,
            message,
            actor_id=dto.actor_id,
            entity_id=order.id if order else None,
            old_values=old_values,
            new_values={
                "reference": dto.reference,
                "outcome": outcome,
                "status": result.status,
                "payment_status": result.payment_status,
                "transaction_id": transaction_id,
                "amount": dto.amount,
                "expected_amount": result.expected_amount,
                "processing_time_ms": elapsed,
                "context": dto.context,
            },
        )
        log.info("payment.verification_finished", outcome=outcome, processing_time_ms=elapsed)
        return result


def _elapsed_ms(started: float) -> float:
    return round((time.monotonic() - started) * 1000, 2)


def _gateway_fees(gateway: Dict[str, Any]) -> Optional[Decimal]:
    """Provider fees in naira, or ``None`` when the payload has no usable value."""
    raw = gateway.get("fees")
    if isinstance(raw, bool) or not isinstance(raw, (int, float, str)):
        return None
    try:
        fees = Decimal(str(raw).strip())
    except InvalidOperation:
        return None
    if not fees.is_finite() or fees < 0 or fees >= _MAX_FEES_KOBO:
        return None
    return (fees / 100).quantize(Decimal("0.01"))


def _gateway_paid_at(gateway: Dict[str, Any]) -> Optional[datetime]:
    raw = gateway.get("paid_at") or gateway.get("paidAt")
    if not isinstance(raw, str):
        return None
    try:
        moment = parse_datetime(raw)
    except ValueError:
        return None
    if moment is not None and timezone.is_naive(moment):
        moment = timezone.make_aware(moment, dt_timezone.utc)
    return moment
