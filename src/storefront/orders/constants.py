"""Order domain constants.

Status choices, the status transition table and the mapping from
customer-facing statuses to notification template keys.
"""

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    CONFIRMED = "confirmed", "Confirmed"
    PREPARING = "preparing", "Preparing"
    READY = "ready", "Ready"
    OUT_FOR_DELIVERY = "out_for_delivery", "Out for delivery"
    DELIVERED = "delivered", "Delivered"
    CANCELLED = "cancelled", "Cancelled"
    REFUNDED = "refunded", "Refunded"


class PaymentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"
    FAILED = "failed", "Failed"


class FulfillmentType(models.TextChoices):
    DELIVERY = "delivery", "Delivery"
    PICKUP = "pickup", "Pickup"


_REFUNDABLE = {OrderStatus.CANCELLED, OrderStatus.REFUNDED}

VALID_TRANSITIONS: dict[str, set[str]] = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {
        OrderStatus.PREPARING,
        OrderStatus.READY,
        OrderStatus.OUT_FOR_DELIVERY,
        *_REFUNDABLE,
    },
    OrderStatus.PREPARING: {
        OrderStatus.READY,
        OrderStatus.OUT_FOR_DELIVERY,
        *_REFUNDABLE,
    },
    OrderStatus.READY: {
        OrderStatus.OUT_FOR_DELIVERY,
        OrderStatus.DELIVERED,
        *_REFUNDABLE,
    },
    OrderStatus.OUT_FOR_DELIVERY: {OrderStatus.DELIVERED, *_REFUNDABLE},
    OrderStatus.DELIVERED: {OrderStatus.REFUNDED},
    OrderStatus.CANCELLED: set(),
    OrderStatus.REFUNDED: set(),
}

TERMINAL_STATES: set[str] = {OrderStatus.CANCELLED, OrderStatus.REFUNDED}

# Customer-facing statuses and the template each one is sent with.
# ``out_for_delivery`` has its own template; there is no generic
# "shipping" copy.
STATUS_TEMPLATE_KEYS: dict[str, str] = {
    OrderStatus.CONFIRMED: "order_confirmed",
    OrderStatus.PREPARING: "order_preparing",
    OrderStatus.READY: "order_ready",
    OrderStatus.OUT_FOR_DELIVERY: "out_for_delivery",
    OrderStatus.DELIVERED: "order_delivered",
    OrderStatus.CANCELLED: "order_cancelled",
}

ORDER_NUMBER_PREFIX = "ORD"
ORDER_NUMBER_MAX_RETRIES = 5
# Largest daily sequence that fits Order.order_number (max_length=20).
ORDER_NUMBER_MAX_SEQUENCE = 9_999_999

SYSTEM_PAYMENT_ACTOR = "system:payment"
