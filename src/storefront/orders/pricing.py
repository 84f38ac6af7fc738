"""Checkout arithmetic in integer cents.

Prices arrive as exact decimals (catalog rows, client totals) and are
converted once with ``to_cents``; every sum, discount and cap afterwards is
integer arithmetic, so ``19.99 * 3`` is exactly ``59.97``.  Amounts are
converted back to two-place decimals only for storage and display.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Union

from storefront.catalog.constants import PromotionType

Amount = Union[Decimal, int, str]

_CENT = Decimal("0.01")


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_cents(amount: Amount) -> int:
    """Convert a currency amount to integer cents, rounding half up."""
    return round_half_up(Decimal(str(amount)) * 100)


def from_cents(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(_CENT)


def line_total_cents(unit_price: Amount, quantity: int, discount: Amount = 0) -> int:
    return to_cents(unit_price) * quantity - to_cents(discount)


def promotion_discount_cents(
    promotion_type: str,
    value: Amount,
    subtotal_cents: int,
    delivery_fee_cents: int,
) -> tuple[int, int]:
    """Return ``(discount, delivery_discount)`` in cents, both capped.

    Percentage discounts apply to the subtotal, fixed discounts are a
    currency amount, free delivery waives the delivery fee.
    """
    discount = 0
    delivery_discount = 0
    if promotion_type == PromotionType.PERCENTAGE:
        discount = round_half_up(Decimal(subtotal_cents) * Decimal(str(value)) / 100)
    elif promotion_type == PromotionType.FIXED_AMOUNT:
        discount = to_cents(value)
    elif promotion_type == PromotionType.FREE_DELIVERY:
        delivery_discount = delivery_fee_cents
    return (
        max(0, min(discount, subtotal_cents)),
        max(0, min(delivery_discount, delivery_fee_cents)),
    )


@dataclass(frozen=True)
class PriceBreakdown:
    """Server-side totals of one checkout, in cents."""

    subtotal: int
    delivery_fee: int = 0
    discount: int = 0
    delivery_discount: int = 0

    @property
    def total(self) -> int:
        return self.subtotal + self.delivery_fee - self.discount - self.delivery_discount

    def as_amounts(self) -> Dict[str, Decimal]:
        return {
            "subtotal": from_cents(self.subtotal),
            "delivery_fee": from_cents(self.delivery_fee),
            "discount_amount": from_cents(self.discount),
            "delivery_discount": from_cents(self.delivery_discount),
            "total_amount": from_cents(self.total),
        }

    def as_log(self) -> Dict[str, Any]:
        """Breakdown for logs and audit rows (strings keep the cents exact)."""
        return {key: str(value) for key, value in self.as_amounts().items()}
