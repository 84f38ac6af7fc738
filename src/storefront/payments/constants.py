"""Payment domain constants."""

from django.db import models


class TransactionStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    SUCCESS = "success", "Success"
    FAILED = "failed", "Failed"
    CANCELLED = "cancelled", "Cancelled"


class VerificationOutcome(models.TextChoices):
    CONFIRMED = "confirmed", "Confirmed"
    DUPLICATE = "duplicate", "Duplicate"
    AMOUNT_MISMATCH = "amount_mismatch", "Amount mismatch"
    ORDER_NOT_FOUND = "order_not_found", "Order not found"
    PAYMENT_FAILED = "payment_failed", "Payment failed"
    PAYMENT_PENDING = "payment_pending", "Payment pending"


# Reported statuses that mark the order's payment as failed.
FAILED_TRANSACTION_STATUSES = frozenset(
    {TransactionStatus.FAILED, TransactionStatus.CANCELLED}
)


PAYSTACK = "paystack"

# Paystack webhook events that carry a verification result.
PAYSTACK_EVENT_STATUSES = {
    "charge.success": TransactionStatus.SUCCESS,
    "charge.failed": TransactionStatus.FAILED,
}

AMOUNT_MISMATCH_INCIDENT = "payment_amount_mismatch"
