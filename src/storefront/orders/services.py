"""Order service layer (Use Cases).

Checkout and the order status state machine.  Every public command is a
single unit of work: the order, its items, the promotion usage bump, the
queued notifications and the success audit row are committed together or
not at all.  Failed attempts are audited after the rollback so the trail
explains why an order was rejected.

Pricing is done in integer cents (see ``pricing.py``); the catalog is the
price authority and a client-computed total is only ever compared, never
trusted.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Tuple
from uuid import UUID

import structlog
from django.conf import settings
from django.db import DatabaseError, transaction
from django.utils import timezone

from storefront.core.audit import AuditTrail
from storefront.core.authorization import DjangoStaffAuthorizer, IAuthorizer
from storefront.notifications.constants import (
    CUSTOMER_WELCOME_TEMPLATE,
    ORDER_CONFIRMATION_TEMPLATE,
    EventType,
    Priority,
)
from storefront.notifications.dtos import EnqueueRequest
from storefront.notifications.services import NotificationQueue, status_dedupe_key
from storefront.orders.constants import (
    STATUS_TEMPLATE_KEYS,
    FulfillmentType,
    OrderStatus,
    PaymentStatus,
)
from storefront.orders.dtos import CreateOrderDTO
from storefront.orders.exceptions import (
    CustomerNotFound,
    DeliveryZoneNotFound,
    InactiveCustomer,
    InvalidOrderInput,
    InvalidOrderStatus,
    NotAuthorized,
    OrderError,
    OrderNotFound,
    OrderPersistenceError,
    ProductInactive,
    ProductNotFound,
    TotalMismatch,
)
from storefront.orders.pricing import (
    PriceBreakdown,
    from_cents,
    line_total_cents,
    promotion_discount_cents,
    to_cents,
)

if TYPE_CHECKING:
    from storefront.catalog.models import Promotion
    from storefront.catalog.repositories.interfaces import ICatalogRepository
    from storefront.customers.repositories.interfaces import ICustomerRepository
    from storefront.orders.models import Order
    from storefront.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

_VALIDATION_CATEGORY = "Order Validation"
_CRITICAL_CATEGORY = "Critical Error"
_STATUS_CATEGORY = "Order Management"


class OrderService:
    """Application service for Order use-cases.

    Receives repositories and collaborators via constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        customer_repository: ICustomerRepository,
        catalog_repository: ICatalogRepository,
        notification_queue: Optional[NotificationQueue] = None,
        audit: Optional[AuditTrail] = None,
        authorizer: Optional[IAuthorizer] = None,
    ) -> None:
        self._order_repo = order_repository
        self._customer_repo = customer_repository
        self._catalog_repo = catalog_repository
        self._audit = audit or AuditTrail()
        self._queue = notification_queue or NotificationQueue(audit=self._audit)
        self._authorizer = authorizer or DjangoStaffAuthorizer()

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    def place_order(
        self, payload: Mapping[str, Any], actor_id: Optional[str] = None
    ) -> Order:
        """Validate a raw checkout request and create the order.

        Malformed input is audited like any other rejected attempt.
        """
        try:
            dto = CreateOrderDTO.from_payload(payload)
        except InvalidOrderInput as exc:
            self._record_creation_failure(
                {"customer_email": str(payload.get("customer_email", ""))},
                exc,
                actor_id,
            )
            raise
        return self.create_order(dto, actor_id)

    def create_order(self, dto: CreateOrderDTO, actor_id: Optional[str] = None) -> Order:
        """Create an order with its items, promotion and notifications.

        Raises:
            CustomerNotFound / InactiveCustomer: bad ``customer_id``.
            ProductNotFound / ProductInactive: a cart line is not orderable.
            DeliveryZoneNotFound: unknown or inactive delivery zone.
            InvalidOrderInput: an item discount exceeds its line total.
            TotalMismatch: client total is off by more than the tolerance.
            OrderPersistenceError: the database rejected the write.
        """
        log = logger.bind(
            fulfillment_type=dto.fulfillment_type,
            item_count=len(dto.items),
        )
        log.info("order.creation_started")
        summary = {
            "customer_email": dto.customer_email,
            "item_count": len(dto.items),
            "promotion_code": dto.promotion_code,
            "client_total": dto.client_total,
        }

        try:
            with transaction.atomic():
                order = self._create_order(dto, actor_id, log)
        except OrderError as exc:
            log.warning("order.creation_rejected", error=type(exc).__name__)
            self._record_creation_failure(summary, exc, actor_id)
            raise
        except DatabaseError as exc:
            log.exception("order.persistence_failed")
            self._record_creation_failure(
                summary, exc, actor_id, category=_CRITICAL_CATEGORY
            )
            raise OrderPersistenceError("Order could not be saved.") from exc

        return self._order_repo.get_by_id(str(order.id)) or order

    def _create_order(
        self, dto: CreateOrderDTO, actor_id: Optional[str], log: Any
    ) -> Order:
        # 1. Optional customer account
        if dto.customer_id is not None:
            customer = self._customer_repo.get_by_id(str(dto.customer_id))
            if not customer:
                raise CustomerNotFound(f"Customer {dto.customer_id} not found.")
            if not customer.is_active:
                raise InactiveCustomer(f"Customer {dto.customer_id} is inactive.")

        # 2. Items, priced from the catalog
        products = self._catalog_repo.get_products(item.product_id for item in dto.items)
        item_rows: List[Dict[str, Any]] = []
        subtotal = 0
        for item in dto.items:
            product = products.get(item.product_id)
            if product is None:
                raise ProductNotFound(f"Product {item.product_id} not found.")
            if not product.is_active:
                raise ProductInactive(f"Product {product.name} is not available.")
            line_cents = line_total_cents(product.price, item.quantity, item.discount_amount)
            if line_cents < 0:
                raise InvalidOrderInput(
                    f"Discount on {product.name} exceeds the line total."
                )
            subtotal += line_cents
            item_rows.append(
                {
                    "product_id": product.id,
                    "product_name": product.name,
                    "quantity": item.quantity,
                    "unit_price": from_cents(to_cents(product.price)),
                    "discount_amount": from_cents(to_cents(item.discount_amount)),
                    "total_price": from_cents(line_cents),
                    "customizations": item.customizations,
                }
            )

        # 3. Delivery fee
        delivery_fee = 0
        zone = None
        if dto.fulfillment_type == FulfillmentType.DELIVERY and dto.delivery_zone_id:
            zone = self._catalog_repo.get_delivery_zone(dto.delivery_zone_id)
            if zone is None or not zone.is_active:
                raise DeliveryZoneNotFound(
                    f"Delivery zone {dto.delivery_zone_id} not found."
                )
            delivery_fee = to_cents(zone.base_fee)

        # 4. Promotion (never fatal)
        promotion, discount, delivery_discount = self._resolve_promotion(
            dto.promotion_code, subtotal, delivery_fee, log
        )
        breakdown = PriceBreakdown(
            subtotal=subtotal,
            delivery_fee=delivery_fee,
            discount=discount,
            delivery_discount=delivery_discount,
        )

        # 5. Client / server reconciliation
        self._reconcile_client_total(dto.client_total, breakdown, log)

        # 6. Persist order + items
        is_pickup = dto.fulfillment_type == FulfillmentType.PICKUP
        order = self._order_repo.create(
            {
                "customer_id": dto.customer_id,
                "customer_email": dto.customer_email,
                "customer_name": dto.customer_name,
                "customer_phone": dto.customer_phone,
                "fulfillment_type": dto.fulfillment_type,
                "delivery_address": None if is_pickup else dto.delivery_address,
                "delivery_zone": zone,
                "pickup_point_id": dto.pickup_point_id if is_pickup else None,
                "promotion": promotion,
                "promotion_code": dto.promotion_code or "",
                "status": OrderStatus.PENDING,
                "payment_status": PaymentStatus.PENDING,
                **breakdown.as_amounts(),
            },
            item_rows,
            actor_id=actor_id,
        )

        if promotion is not None:
            self._catalog_repo.increment_promotion_usage(promotion)

        # 7. Notifications
        self._queue.enqueue(
            EnqueueRequest(
                event_type=EventType.ORDER_CONFIRMATION,
                recipient_email=order.customer_email,
                template_key=ORDER_CONFIRMATION_TEMPLATE,
                dedupe_key=str(order.id),
                order_id=order.id,
                variables=self._order_variables(order, item_rows),
            )
        )
        if not self._order_repo.has_orders_for_email(
            order.customer_email, exclude_id=order.id
        ):
            self._queue.enqueue(
                EnqueueRequest(
                    event_type=EventType.CUSTOMER_WELCOME,
                    recipient_email=order.customer_email,
                    template_key=CUSTOMER_WELCOME_TEMPLATE,
                    dedupe_key=order.customer_email,
                    order_id=order.id,
                    priority=Priority.LOW,
                    variables={"customer_name": order.customer_name},
                )
            )

        # 8. Audit
        self._audit.record(
            "order_created",
            "Order Processing",
            f"Order {order.order_number} created",
            actor_id=actor_id,
            entity_id=order.id,
            new_values={
                "order_number": order.order_number,
                "payment_reference": order.payment_reference,
                "promotion_code": order.promotion_code or None,
                **breakdown.as_log(),
            },
        )
        log.info(
            "order.created",
            order_id=str(order.id),
            order_number=order.order_number,
            total_amount=str(order.total_amount),
        )
        return order

    def _resolve_promotion(
        self, code: Optional[str], subtotal: int, delivery_fee: int, log: Any
    ) -> Tuple[Optional[Promotion], int, int]:
        if not code:
            return None, 0, 0

        promotion = self._catalog_repo.get_promotion_by_code(code)
        reason = None
        if promotion is None:
            reason = "not_found"
        elif not promotion.is_valid_at(timezone.now()):
            reason = "inactive_or_expired"
        elif (
            promotion.min_order_amount is not None
            and subtotal < to_cents(promotion.min_order_amount)
        ):
            reason = "below_minimum_order"

        if reason is not None:
            log.warning("order.promotion_rejected", promotion_code=code, reason=reason)
            return None, 0, 0

        discount, delivery_discount = promotion_discount_cents(
            promotion.promotion_type, promotion.value, subtotal, delivery_fee
        )
        if not discount and not delivery_discount:
            log.warning(
                "order.promotion_rejected", promotion_code=code, reason="no_discount"
            )
            return None, 0, 0
        log.info(
            "order.promotion_applied",
            promotion_code=promotion.code,
            discount=str(from_cents(discount)),
            delivery_discount=str(from_cents(delivery_discount)),
        )
        return promotion, discount, delivery_discount

    @staticmethod
    def _reconcile_client_total(
        client_total: Optional[Decimal], breakdown: PriceBreakdown, log: Any
    ) -> None:
        if client_total is None:
            return
        server_cents = breakdown.total
        diff_cents = abs(server_cents - to_cents(client_total))
        if diff_cents > to_cents(settings.CHECKOUT_TOTAL_TOLERANCE):
            log.warning(
                "order.total_mismatch",
                client_total=str(client_total),
                difference=str(from_cents(diff_cents)),
                **breakdown.as_log(),
            )
            raise TotalMismatch(
                server_total=from_cents(server_cents),
                client_total=from_cents(to_cents(client_total)),
                difference=from_cents(diff_cents),
                breakdown=breakdown.as_log(),
            )
        if diff_cents > 1:
            log.warning(
                "order.total_drift_accepted",
                client_total=str(client_total),
                difference=str(from_cents(diff_cents)),
                total_amount=str(from_cents(server_cents)),
            )

    @staticmethod
    def _order_variables(order: Order, item_rows: List[Dict[str, Any]]) -> Dict[str, Any]:
        return {
            "order_number": order.order_number,
            "customer_name": order.customer_name,
            "fulfillment_type": order.fulfillment_type,
            "total_amount": str(order.total_amount),
            "items": [
                {
                    "name": row["product_name"],
                    "quantity": row["quantity"],
                    "total_price": str(row["total_price"]),
                }
                for row in item_rows
            ],
        }

    def _record_creation_failure(
        self,
        summary: Dict[str, Any],
        exc: Exception,
        actor_id: Optional[str],
        category: str = _VALIDATION_CATEGORY,
    ) -> None:
        details: Dict[str, Any] = {
            **summary,
            "error": type(exc).__name__,
            "message": str(exc),
        }
        if isinstance(exc, TotalMismatch):
            details.update(
                server_total=exc.server_total,
                client_total=exc.client_total,
                difference=exc.difference,
                breakdown=exc.breakdown,
            )
        elif isinstance(exc, InvalidOrderInput):
            details["errors"] = exc.errors
        self._audit.record(
            "order_creation_failed",
            category,
            f"Order creation failed: {type(exc).__name__}",
            actor_id=actor_id,
            new_values=details,
        )

    # ------------------------------------------------------------------
    # Status state machine
    # ------------------------------------------------------------------

    def update_status(
        self,
        order_id: UUID,
        new_status: str,
        actor_id: Optional[str],
        reason: str = "",
    ) -> Order:
        """Move an order to *new_status*.

        Setting the current status again is a no-op: nothing is written
        and no notification is queued.

        Raises:
            NotAuthorized: *actor_id* is not an admin.
            InvalidOrderStatus: unknown status or forbidden transition.
            OrderNotFound: order does not exist.
        """
        log = logger.bind(order_id=str(order_id), new_status=new_status)

        if not self._authorizer.is_admin(actor_id):
            log.warning("order.status_update_denied", actor_id=actor_id)
            raise NotAuthorized("Only administrators can update order status.")
        if new_status not in OrderStatus.values:
            raise InvalidOrderStatus(f"Unknown order status: {new_status}.")

        try:
            with transaction.atomic():
                order = self._update_status(order_id, new_status, actor_id, reason, log)
        except OrderError:
            raise
        except Exception as exc:
            log.exception("order.status_update_failed")
            self._audit.record(
                "order_status_update_failed",
                _STATUS_CATEGORY,
                f"Status update to {new_status} failed",
                actor_id=actor_id,
                entity_id=order_id,
                new_values={"status": new_status, "error": str(exc)},
            )
            raise

        return self._order_repo.get_by_id(str(order.id)) or order

    def _update_status(
        self,
        order_id: UUID,
        new_status: str,
        actor_id: Optional[str],
        reason: str,
        log: Any,
    ) -> Order:
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        old_status = order.status
        log = log.bind(current_status=old_status)
        if old_status == new_status:
            log.info("order.status_unchanged")
            return order
        if not order.can_transition_to(new_status):
            log.warning("order.invalid_transition")
            raise InvalidOrderStatus(
                f"Cannot transition from {old_status} to {new_status}."
            )

        order.status = new_status
        order._status_changed_by = actor_id
        order._status_change_reason = reason
        self._order_repo.save(order, update_fields=["status"])

        self._audit.record(
            "order_status_updated",
            _STATUS_CATEGORY,
            f"Order {order.order_number} moved from {old_status} to {new_status}",
            actor_id=actor_id,
            entity_id=order.id,
            old_values={"status": old_status},
            new_values={"status": new_status, "reason": reason},
        )

        template_key = STATUS_TEMPLATE_KEYS.get(new_status)
        if template_key is not None:
            result = self._queue.enqueue(
                EnqueueRequest(
                    event_type=EventType.ORDER_STATUS_UPDATE,
                    recipient_email=order.customer_email,
                    template_key=template_key,
                    dedupe_key=status_dedupe_key(
                        order.customer_email, order.id, new_status
                    ),
                    order_id=order.id,
                    window=settings.STATUS_NOTIFICATION_DEDUPE_WINDOW,
                    variables={
                        "order_number": order.order_number,
                        "customer_name": order.customer_name,
                        "old_status": old_status,
                        "new_status": new_status,
                    },
                )
            )
            log.info(
                "order.status_notification",
                template_key=template_key,
                suppressed=result.suppressed,
            )

        log.info("order.status_updated", actor_id=actor_id)
        return order

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: str) -> Order:
        """Retrieve a single order by ID.

        Raises:
            OrderNotFound: if the order does not exist.
        """
        order = self._order_repo.get_by_id(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order
