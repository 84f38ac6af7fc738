"""Unit tests for PaymentVerificationService.

Covers:
- Confirmation of a pending order and its side effects.
- Idempotency (paid order, existing successful transaction).
- Amount mismatch incidents and tolerance.
- Unknown references, provider-reported failures and pending reports.
- Lenient reading of gateway fees.
- Critical errors rolled back, audited and wrapped.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from storefront.core.models import AuditLog, SecurityIncident
from storefront.notifications.constants import EventType, Priority
from storefront.notifications.models import CommunicationEvent
from storefront.notifications.services import NotificationQueue
from storefront.orders.constants import OrderStatus, PaymentStatus
from storefront.orders.models import OrderStatusChange
from storefront.orders.repositories import OrderDjangoRepository
from storefront.payments.constants import TransactionStatus, VerificationOutcome
from storefront.payments.dtos import VerifyPaymentDTO
from storefront.payments.exceptions import PaymentProcessingError
from storefront.payments.models import PaymentTransaction
from storefront.payments.repositories import PaymentTransactionDjangoRepository
from storefront.payments.services import PaymentVerificationService

pytestmark = pytest.mark.unit


@pytest.fixture()
def service():
    return PaymentVerificationService(
        order_repository=OrderDjangoRepository(),
        transaction_repository=PaymentTransactionDjangoRepository(),
    )


@pytest.fixture()
def order(make_order):
    return make_order(total_amount=Decimal("3500.00"), subtotal=Decimal("3500.00"))


def _report(reference, amount="3500.00", status="success", **extra):
    return VerifyPaymentDTO(
        reference=reference,
        reported_status=status,
        amount=Decimal(amount),
        gateway_response=extra.pop("gateway_response", {"channel": "card"}),
        **extra,
    )


class TestConfirmation:
    def test_pending_order_is_confirmed(self, service, order):
        result = service.verify_payment(_report(order.payment_reference))

        assert result.outcome == VerificationOutcome.CONFIRMED
        assert result.success is True
        assert result.duplicate is False
        assert result.status == OrderStatus.CONFIRMED
        assert result.payment_status == PaymentStatus.PAID

        order.refresh_from_db()
        assert order.status == OrderStatus.CONFIRMED
        assert order.payment_status == PaymentStatus.PAID
        assert order.paid_at is not None
        assert order.payment_channel == "card"

    def test_transaction_recorded(self, service, order):
        result = service.verify_payment(
            _report(
                order.payment_reference,
                gateway_response={
                    "channel": "bank",
                    "fees": 5250,
                    "paid_at": "2025-03-01T10:00:00.000Z",
                },
            )
        )

        tx = PaymentTransaction.objects.get(provider_reference=order.payment_reference)
        assert tx.id == result.transaction_id
        assert tx.status == TransactionStatus.SUCCESS
        assert tx.amount == Decimal("3500.00")
        assert tx.fees == Decimal("52.50")
        assert tx.channel == "bank"
        assert tx.paid_at.isoformat().startswith("2025-03-01T10:00:00")

    @pytest.mark.parametrize("fees", ["N/A", "", True, None, {"amount": 5}, "NaN", "-10"])
    def test_unusable_fees_do_not_block_confirmation(self, service, order, fees):
        result = service.verify_payment(
            _report(order.payment_reference, gateway_response={"fees": fees})
        )

        assert result.outcome == VerificationOutcome.CONFIRMED
        tx = PaymentTransaction.objects.get(provider_reference=order.payment_reference)
        assert tx.fees is None
        assert tx.gateway_response == {"fees": fees}
        order.refresh_from_db()
        assert order.payment_status == PaymentStatus.PAID

    def test_numeric_string_fees_are_parsed(self, service, order):
        service.verify_payment(
            _report(order.payment_reference, gateway_response={"fees": " 5250 "})
        )
        assert PaymentTransaction.objects.get().fees == Decimal("52.50")

    def test_history_row_attributed_to_payment_system(self, service, order):
        service.verify_payment(_report(order.payment_reference))

        change = OrderStatusChange.objects.get(order=order, new_status="confirmed")
        assert change.old_status == "pending"
        assert change.changed_by == "system:payment"
        assert order.payment_reference in change.reason

    def test_payment_confirmation_queued_with_high_priority(self, service, order):
        service.verify_payment(_report(order.payment_reference))

        event = CommunicationEvent.objects.get(
            event_type=EventType.PAYMENT_CONFIRMATION
        )
        assert event.dedupe_key == order.payment_reference
        assert event.priority == Priority.HIGH
        assert event.order_id == order.id

    def test_success_is_audited(self, service, order):
        service.verify_payment(_report(order.payment_reference))

        actions = set(AuditLog.objects.values_list("action", flat=True))
        assert {
            "payment_verification_started",
            "payment_verification_success",
        } <= actions
        entry = AuditLog.objects.get(action="payment_verification_success")
        assert entry.old_values == {"status": "pending", "payment_status": "pending"}
        assert entry.new_values["outcome"] == "confirmed"

    def test_cancelled_order_keeps_status_but_records_payment(self, service, make_order):
        order = make_order(status=OrderStatus.CANCELLED)
        result = service.verify_payment(_report(order.payment_reference, "3000.00"))

        assert result.outcome == VerificationOutcome.CONFIRMED
        order.refresh_from_db()
        assert order.status == OrderStatus.CANCELLED
        assert order.payment_status == PaymentStatus.PAID
        assert not OrderStatusChange.objects.filter(
            order=order, new_status="confirmed"
        ).exists()

    def test_within_tolerance_accepted(self, service, order):
        result = service.verify_payment(_report(order.payment_reference, "3499.00"))
        assert result.outcome == VerificationOutcome.CONFIRMED


class TestIdempotency:
    def test_second_report_is_duplicate(self, service, order):
        service.verify_payment(_report(order.payment_reference))
        counts = (
            PaymentTransaction.objects.count(),
            CommunicationEvent.objects.count(),
            OrderStatusChange.objects.count(),
        )

        result = service.verify_payment(_report(order.payment_reference))

        assert result.outcome == VerificationOutcome.DUPLICATE
        assert result.success is True
        assert result.duplicate is True
        assert (
            PaymentTransaction.objects.count(),
            CommunicationEvent.objects.count(),
            OrderStatusChange.objects.count(),
        ) == counts
        assert AuditLog.objects.filter(
            action="payment_verification_duplicate"
        ).exists()

    def test_successful_transaction_without_paid_flag_is_duplicate(
        self, service, order
    ):
        PaymentTransaction.objects.create(
            order=order,
            provider_reference=order.payment_reference,
            amount=Decimal("3500.00"),
            status=TransactionStatus.SUCCESS,
        )

        result = service.verify_payment(_report(order.payment_reference))

        assert result.duplicate is True
        order.refresh_from_db()
        assert order.payment_status == PaymentStatus.PENDING

    def test_success_after_failure_updates_transaction(self, service, order):
        failed = service.verify_payment(
            _report(order.payment_reference, status="failed")
        )
        result = service.verify_payment(_report(order.payment_reference))

        assert failed.outcome == VerificationOutcome.PAYMENT_FAILED
        assert result.outcome == VerificationOutcome.CONFIRMED
        tx = PaymentTransaction.objects.get(provider_reference=order.payment_reference)
        assert tx.status == TransactionStatus.SUCCESS
        assert tx.paid_at is not None


class TestRejections:
    def test_amount_mismatch_raises_incident(self, service, order):
        result = service.verify_payment(_report(order.payment_reference, "100.00"))

        assert result.outcome == VerificationOutcome.AMOUNT_MISMATCH
        assert result.success is False
        assert result.expected_amount == Decimal("3500.00")

        incident = SecurityIncident.objects.get()
        assert incident.incident_type == "payment_amount_mismatch"
        assert incident.severity == "critical"
        assert incident.expected_amount == Decimal("3500.00")
        assert incident.received_amount == Decimal("100.00")

        entry = AuditLog.objects.get(action="payment_verification_amount_mismatch")
        assert entry.category == "Payment Security"

        order.refresh_from_db()
        assert order.status == OrderStatus.PENDING
        assert order.payment_status == PaymentStatus.PENDING
        assert not PaymentTransaction.objects.exists()
        assert not CommunicationEvent.objects.exists()

    def test_tolerance_is_configurable(self, service, order, settings):
        settings.PAYMENT_AMOUNT_TOLERANCE = Decimal("0.00")
        result = service.verify_payment(_report(order.payment_reference, "3499.99"))
        assert result.outcome == VerificationOutcome.AMOUNT_MISMATCH

    def test_unknown_reference(self, service):
        result = service.verify_payment(_report("txn_does_not_exist"))

        assert result.outcome == VerificationOutcome.ORDER_NOT_FOUND
        assert result.success is False
        assert result.order_id is None
        assert AuditLog.objects.filter(
            action="payment_verification_order_not_found"
        ).exists()

    def test_reported_failure_marks_payment_failed(self, service, order):
        result = service.verify_payment(
            _report(order.payment_reference, status="failed")
        )

        assert result.outcome == VerificationOutcome.PAYMENT_FAILED
        order.refresh_from_db()
        assert order.status == OrderStatus.PENDING
        assert order.payment_status == PaymentStatus.FAILED
        tx = PaymentTransaction.objects.get(provider_reference=order.payment_reference)
        assert tx.status == TransactionStatus.FAILED
        assert tx.paid_at is None
        assert not CommunicationEvent.objects.exists()

    def test_reported_cancellation_marks_payment_failed(self, service, order):
        result = service.verify_payment(
            _report(order.payment_reference, status="cancelled")
        )

        assert result.outcome == VerificationOutcome.PAYMENT_FAILED
        order.refresh_from_db()
        assert order.payment_status == PaymentStatus.FAILED

    def test_pending_report_leaves_order_untouched(self, service, order):
        result = service.verify_payment(
            _report(order.payment_reference, status="pending")
        )

        assert result.outcome == VerificationOutcome.PAYMENT_PENDING
        assert result.success is False
        assert result.payment_status == PaymentStatus.PENDING
        order.refresh_from_db()
        assert order.status == OrderStatus.PENDING
        assert order.payment_status == PaymentStatus.PENDING
        tx = PaymentTransaction.objects.get(provider_reference=order.payment_reference)
        assert tx.status == TransactionStatus.PENDING
        assert tx.paid_at is None
        assert not CommunicationEvent.objects.exists()
        assert AuditLog.objects.filter(action="payment_verification_pending").exists()

    def test_success_after_pending_report_confirms(self, service, order):
        service.verify_payment(_report(order.payment_reference, status="pending"))
        result = service.verify_payment(_report(order.payment_reference))

        assert result.outcome == VerificationOutcome.CONFIRMED
        assert PaymentTransaction.objects.get().status == TransactionStatus.SUCCESS


class TestCriticalErrors:
    def test_unexpected_error_is_wrapped_and_rolled_back(
        self, service, order, monkeypatch
    ):
        def _boom(*args, **kwargs):
            raise RuntimeError("queue unavailable")

        monkeypatch.setattr(NotificationQueue, "enqueue", _boom)

        with pytest.raises(PaymentProcessingError) as exc_info:
            service.verify_payment(_report(order.payment_reference))

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        order.refresh_from_db()
        assert order.status == OrderStatus.PENDING
        assert order.payment_status == PaymentStatus.PENDING
        assert not PaymentTransaction.objects.exists()

        entry = AuditLog.objects.get(action="payment_verification_critical_error")
        assert entry.category == "Payment Critical"
        assert entry.new_values["error_type"] == "RuntimeError"
        assert entry.new_values["error"] == "queue unavailable"
        assert "processing_time_ms" in entry.new_values
