"""PaymentTransaction: one record per provider reference.

``provider_reference`` is unique, so a second attempt to record the same
payment finds the existing row instead of creating another one.  Rows are
updated (status) by verification and never deleted.
"""

from __future__ import annotations

from decimal import Decimal

from django.db import models

from storefront.core.models import BaseModel
from storefront.payments.constants import PAYSTACK, TransactionStatus


class PaymentTransaction(BaseModel):
    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="payment_transactions",
    )
    provider = models.CharField(max_length=50, default=PAYSTACK)
    provider_reference = models.CharField(max_length=100, unique=True)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default="NGN")
    status = models.CharField(
        max_length=20,
        choices=TransactionStatus.choices,
        default=TransactionStatus.PENDING,
    )
    channel = models.CharField(max_length=50, blank=True, default="")
    gateway_response = models.JSONField(default=dict, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    fees = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True
    )

    class Meta:
        db_table = "payment_transactions"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["order", "status"], name="payment_tx_order_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                check=models.Q(amount__gte=Decimal("0.00")),
                name="payment_tx_amount_non_negative",
            ),
        ]

    @property
    def is_successful(self) -> bool:
        return self.status == TransactionStatus.SUCCESS

    def __str__(self) -> str:
        return f"{self.provider}:{self.provider_reference} [{self.status}]"
