"""Order repository interface.

Extends ``IRepository[Order]`` with the methods required by the Order
aggregate: atomic creation with items, row-locked reads for status
changes and payment verification, and the first-order check used for
welcome notifications.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from storefront.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from storefront.orders.models import Order


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The aggregate includes OrderItem children and OrderStatusChange
    records.  Mutations must be atomic.
    """

    @abstractmethod
    def create(
        self,
        data: Dict[str, Any],
        items: List[Dict[str, Any]],
        actor_id: Optional[str] = None,
    ) -> Order:
        """Create an order and all its items in one transaction.

        Assigns the next daily ``order_number``; *actor_id* is recorded on
        the initial status history row.
        """

    @abstractmethod
    def save(self, order: Order, update_fields: Optional[List[str]] = None) -> Order:
        """Persist changes to an existing order."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE)."""

    @abstractmethod
    def get_by_payment_reference_for_update(self, reference: str) -> Optional[Order]:
        """Retrieve an order by exact payment reference, row-locked."""

    @abstractmethod
    def has_orders_for_email(self, email: str, exclude_id: Any = None) -> bool:
        """Whether any order (other than *exclude_id*) was placed by *email*."""
