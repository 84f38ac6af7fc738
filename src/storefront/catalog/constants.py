"""Catalog constants."""

from django.db import models


class PromotionType(models.TextChoices):
    PERCENTAGE = "percentage", "Percentage"
    FIXED_AMOUNT = "fixed_amount", "Fixed amount"
    FREE_DELIVERY = "free_delivery", "Free delivery"


class PromotionStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    INACTIVE = "inactive", "Inactive"
    EXPIRED = "expired", "Expired"
