"""Catalog look-up data consumed by checkout.

- ``Product``: sellable item; inactive products cannot be ordered.
- ``DeliveryZone``: configured base delivery fee per zone.
- ``Promotion``: discount codes, matched case-insensitively.

Prices are exact decimals; checkout converts them to integer cents.
"""

from __future__ import annotations

from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from storefront.catalog.constants import PromotionStatus, PromotionType
from storefront.core.models import BaseModel


class Product(BaseModel):
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "products"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["is_active"], name="products_active_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                check=models.Q(price__gte=0),
                name="products_price_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} (₦{self.price})"


class DeliveryZone(BaseModel):
    name = models.CharField(max_length=255)
    base_fee = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "delivery_zones"
        ordering = ["name"]

    def __str__(self) -> str:
        return f"{self.name} (₦{self.base_fee})"


class Promotion(BaseModel):
    """Discount code.

    ``code`` is stored upper-cased so the unique index also guards against
    case variants ("save10" vs "SAVE10").  ``value`` is a percentage for
    ``percentage`` promotions and a naira amount for ``fixed_amount``.
    """

    code = models.CharField(max_length=50, unique=True)
    name = models.CharField(max_length=255, blank=True, default="")
    promotion_type = models.CharField(
        max_length=20,
        choices=PromotionType.choices,
        default=PromotionType.PERCENTAGE,
    )
    value = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    min_order_amount = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True
    )
    status = models.CharField(
        max_length=20,
        choices=PromotionStatus.choices,
        default=PromotionStatus.ACTIVE,
    )
    valid_from = models.DateTimeField(default=timezone.now)
    valid_until = models.DateTimeField(null=True, blank=True)
    usage_count = models.PositiveIntegerField(default=0)
    last_used_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "promotions"
        ordering = ["-created_at"]

    def save(self, *args, **kwargs) -> None:
        if self.code:
            self.code = self.code.strip().upper()
        super().save(*args, **kwargs)

    def is_valid_at(self, moment) -> bool:
        if self.status != PromotionStatus.ACTIVE:
            return False
        if self.valid_from and self.valid_from > moment:
            return False
        return self.valid_until is None or self.valid_until >= moment

    def __str__(self) -> str:
        return f"{self.code} ({self.promotion_type} {self.value})"
