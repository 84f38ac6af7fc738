"""Order domain exceptions.

Raised by the Service Layer when business rules are violated.
The API layer (Views) catches these and translates them into
appropriate HTTP responses.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Optional


class OrderError(Exception):
    """Base class for order-domain failures."""


class InvalidOrderInput(OrderError):
    """Missing or malformed checkout input."""

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or []


class CustomerNotFound(OrderError):
    """The customer account referenced by the order does not exist."""


class InactiveCustomer(OrderError):
    """The customer account is inactive and cannot place orders."""


class ProductNotFound(OrderError):
    """A product referenced by an order item does not exist."""


class ProductInactive(OrderError):
    """A product referenced by an order item is not available."""


class DeliveryZoneNotFound(OrderError):
    """The delivery zone does not exist or is inactive."""


class TotalMismatch(OrderError):
    """The client-submitted total differs from the server total beyond tolerance."""

    def __init__(
        self,
        server_total: Decimal,
        client_total: Decimal,
        difference: Decimal,
        breakdown: Dict[str, Any],
    ) -> None:
        super().__init__(
            f"Order total mismatch: expected ₦{server_total}, "
            f"received ₦{client_total} (difference ₦{difference})."
        )
        self.server_total = server_total
        self.client_total = client_total
        self.difference = difference
        self.breakdown = breakdown


class OrderNotFound(OrderError):
    """The requested order does not exist."""


class InvalidOrderStatus(OrderError):
    """Unknown target status or a transition the state machine forbids."""


class NotAuthorized(OrderError):
    """The actor is not allowed to change order status."""


class OrderPersistenceError(OrderError):
    """The order could not be stored; nothing was written."""
