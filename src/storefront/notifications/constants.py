"""Notification queue constants."""

from django.db import models


class EventType(models.TextChoices):
    ORDER_CONFIRMATION = "order_confirmation", "Order confirmation"
    PAYMENT_CONFIRMATION = "payment_confirmation", "Payment confirmation"
    ORDER_STATUS_UPDATE = "order_status_update", "Order status update"
    CUSTOMER_WELCOME = "customer_welcome", "Customer welcome"


class EventStatus(models.TextChoices):
    QUEUED = "queued", "Queued"
    PROCESSING = "processing", "Processing"
    SENT = "sent", "Sent"
    FAILED = "failed", "Failed"


class Priority(models.IntegerChoices):
    """Lower value is dispatched first."""

    HIGH = 1, "High"
    NORMAL = 5, "Normal"
    LOW = 9, "Low"


# Template keys for the non status-driven events.
ORDER_CONFIRMATION_TEMPLATE = "order_confirmation"
PAYMENT_CONFIRMATION_TEMPLATE = "payment_confirmation"
CUSTOMER_WELCOME_TEMPLATE = "customer_welcome"
