"""Order, OrderItem and OrderStatusChange models.

- ``Order`` carries a snapshot of the customer identity so guest checkout
  works; the account link is optional.
- ``order_number`` is a human-readable daily sequence
  (``ORD-YYYYMMDD-NNNNN``); the UUIDv7 ``id`` is used for all internal
  references and API lookups.
- ``payment_reference`` is generated at creation and handed to the
  payment provider as the merchant reference.
- ``OrderItem`` snapshots product name and unit price at purchase time.
- ``OrderStatusChange`` rows are written by the ``post_save`` signal in
  ``signals.py`` whenever ``status`` changes; they are never edited.
"""

from __future__ import annotations

import secrets
import time
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q

from storefront.core.models import BaseModel
from storefront.orders.constants import (
    ORDER_NUMBER_PREFIX,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    FulfillmentType,
    OrderStatus,
    PaymentStatus,
)

_MONEY = {"max_digits": 12, "decimal_places": 2}


def generate_payment_reference() -> str:
    """Merchant reference: ``txn_<epoch-ms>_<8 hex>``."""
    return f"txn_{int(time.time() * 1000)}_{secrets.token_hex(4)}"


class Order(BaseModel):
    """Order aggregate root."""

    order_number = models.CharField(max_length=20, unique=True, editable=False)
    customer = models.ForeignKey(
        "customers.CustomerAccount",
        on_delete=models.PROTECT,
        related_name="orders",
        null=True,
        blank=True,
    )
    customer_email = models.EmailField(max_length=254)
    customer_name = models.CharField(max_length=255)
    customer_phone = models.CharField(max_length=20, blank=True, default="")

    fulfillment_type = models.CharField(
        max_length=20,
        choices=FulfillmentType.choices,
        default=FulfillmentType.DELIVERY,
    )
    delivery_address = models.JSONField(null=True, blank=True)
    delivery_zone = models.ForeignKey(
        "catalog.DeliveryZone",
        on_delete=models.PROTECT,
        related_name="orders",
        null=True,
        blank=True,
    )
    pickup_point_id = models.UUIDField(null=True, blank=True)

    promotion = models.ForeignKey(
        "catalog.Promotion",
        on_delete=models.SET_NULL,
        related_name="orders",
        null=True,
        blank=True,
    )
    promotion_code = models.CharField(max_length=50, blank=True, default="")

    subtotal = models.DecimalField(**_MONEY, default=Decimal("0.00"))
    delivery_fee = models.DecimalField(**_MONEY, default=Decimal("0.00"))
    discount_amount = models.DecimalField(**_MONEY, default=Decimal("0.00"))
    delivery_discount = models.DecimalField(**_MONEY, default=Decimal("0.00"))
    total_amount = models.DecimalField(**_MONEY, default=Decimal("0.00"))

    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    payment_reference = models.CharField(
        max_length=100, unique=True, default=generate_payment_reference
    )
    payment_channel = models.CharField(max_length=50, blank=True, default="")
    paid_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["payment_status"], name="orders_payment_status_idx"),
            models.Index(fields=["customer_email"], name="orders_customer_email_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                check=Q(total_amount__gte=0),
                name="orders_total_non_negative",
            ),
        ]

    # ------------------------------------------------------------------
    # State machine helpers
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID

    def can_transition_to(self, new_status: str) -> bool:
        return new_status in VALID_TRANSITIONS.get(self.status, set())

    def __str__(self) -> str:
        return f"{self.order_number} ({self.status})"

    @staticmethod
    def order_number_for(day, sequence: int) -> str:
        return f"{ORDER_NUMBER_PREFIX}-{day:%Y%m%d}-{sequence:05d}"


class OrderItem(BaseModel):
    """Line item.  ``product_name`` and ``unit_price`` are purchase-time
    snapshots; ``total_price`` is computed by checkout in integer cents."""

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    product = models.ForeignKey(
        "catalog.Product",
        on_delete=models.PROTECT,
        related_name="order_items",
    )
    product_name = models.CharField(max_length=255)
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    unit_price = models.DecimalField(**_MONEY)
    discount_amount = models.DecimalField(**_MONEY, default=Decimal("0.00"))
    total_price = models.DecimalField(**_MONEY)
    customizations = models.JSONField(null=True, blank=True)

    class Meta:
        db_table = "order_items"
        ordering = ["created_at"]
        constraints = [
            models.CheckConstraint(
                check=Q(quantity__gte=1),
                name="order_items_quantity_positive",
            ),
            models.CheckConstraint(
                check=Q(total_price__gte=0),
                name="order_items_total_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.product_name} x{self.quantity} (₦{self.total_price})"


class OrderStatusChange(BaseModel):
    """Append-only record of one status transition.

    ``old_status`` is ``None`` for the row written when the order is
    created.  ``changed_by`` is an opaque actor id; ``None`` means the
    system made the change.
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="status_changes",
    )
    old_status = models.CharField(  # noqa: DJ01
        max_length=20,
        choices=OrderStatus.choices,
        null=True,
        blank=True,
    )
    new_status = models.CharField(max_length=20, choices=OrderStatus.choices)
    changed_by = models.CharField(  # noqa: DJ01
        max_length=255, null=True, blank=True
    )
    reason = models.TextField(blank=True, default="")

    class Meta:
        db_table = "order_status_changes"
        ordering = ["created_at"]
        indexes = [
            models.Index(
                fields=["order", "created_at"],
                name="osc_order_created_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.order_id}: {self.old_status} -> {self.new_status}"
