"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.  Order and
items are written inside one ``transaction.atomic()`` block so a partial
order (order row without items) is never visible.

Concurrency control on status updates and payment verification uses
``select_for_update()``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models.functions import Length
from django.utils import timezone

from storefront.orders.constants import (
    ORDER_NUMBER_MAX_RETRIES,
    ORDER_NUMBER_MAX_SEQUENCE,
)
from storefront.orders.models import Order, OrderItem
from storefront.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(
        self,
        data: Dict[str, Any],
        items: List[Dict[str, Any]],
        actor_id: Optional[str] = None,
    ) -> Order:
        order = self._insert_with_order_number(data, actor_id)
        OrderItem.objects.bulk_create(
            [OrderItem(order=order, **item_data) for item_data in items]
        )
        logger.info(
            "order.persisted",
            order_id=str(order.id),
            order_number=order.order_number,
            item_count=len(items),
        )
        return order

    def _insert_with_order_number(
        self, data: Dict[str, Any], actor_id: Optional[str]
    ) -> Order:
        """Insert the order under the next free ``ORD-YYYYMMDD-NNNNN``.

        Two concurrent checkouts can compute the same sequence; the unique
        index rejects the loser, which retries with a fresh number.
        """
        for attempt in range(1, ORDER_NUMBER_MAX_RETRIES + 1):
            order = Order(order_number=self._next_order_number(), **data)
            order._status_changed_by = actor_id
            try:
                with transaction.atomic():
                    order.save(force_insert=True)
                return order
            except IntegrityError:
                if not Order.objects.filter(order_number=order.order_number).exists():
                    raise
                logger.warning(
                    "order.number_collision",
                    order_number=order.order_number,
                    attempt=attempt,
                )
        raise IntegrityError(
            f"Failed to generate unique order_number after "
            f"{ORDER_NUMBER_MAX_RETRIES} attempts"
        )

    @staticmethod
    def _next_order_number() -> str:
        today = timezone.localdate()
        prefix = Order.order_number_for(today, 0)[:-5]
        # Zero-padded suffixes widen past 99999; longer means larger.
        last = (
            Order.objects.filter(order_number__startswith=prefix)
            .order_by(Length("order_number").desc(), "-order_number")
            .values_list("order_number", flat=True)
            .first()
        )
        sequence = int(last.rsplit("-", 1)[1]) + 1 if last else 1
        if sequence > ORDER_NUMBER_MAX_SEQUENCE:
            raise IntegrityError(
                f"Daily order number sequence exhausted for {today:%Y-%m-%d}"
            )
        return Order.order_number_for(today, sequence)

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def save(self, order: Order, update_fields: Optional[List[str]] = None) -> Order:
        order.save(update_fields=update_fields)
        logger.debug("order.saved", order_id=str(order.id))
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with items and status history prefetched.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return (
                Order.objects.prefetch_related("items", "status_changes")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        queryset = Order.objects.prefetch_related("items", "status_changes")
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def get_for_update(self, id: str) -> Optional[Order]:
        try:
            return Order.objects.select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_by_payment_reference_for_update(self, reference: str) -> Optional[Order]:
        return (
            Order.objects.select_for_update()
            .filter(payment_reference=reference)
            .first()
        )

    def has_orders_for_email(self, email: str, exclude_id: Any = None) -> bool:
        queryset = Order.objects.filter(customer_email__iexact=email)
        if exclude_id is not None:
            queryset = queryset.exclude(id=exclude_id)
        return queryset.exists()
