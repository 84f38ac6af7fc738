"""Catalog repository interface.

Checkout needs three look-ups: products by id (one query for the whole
cart), the delivery zone, and the promotion by code.  Promotion usage is
incremented atomically with ``F()`` so concurrent checkouts never lose a
count.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Dict, Iterable, Optional
from uuid import UUID

from storefront.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from storefront.catalog.models import DeliveryZone, Product, Promotion


class ICatalogRepository(IRepository["Product"]):
    """Repository contract for catalog look-ups."""

    @abstractmethod
    def get_products(self, ids: Iterable[UUID]) -> Dict[UUID, Product]:
        """Return the existing products among *ids*, keyed by id."""

    @abstractmethod
    def get_delivery_zone(self, id: UUID) -> Optional[DeliveryZone]:
        """Retrieve a delivery zone (active or not)."""

    @abstractmethod
    def get_promotion_by_code(self, code: str) -> Optional[Promotion]:
        """Retrieve a promotion by code, case-insensitively."""

    @abstractmethod
    def increment_promotion_usage(self, promotion: Promotion) -> None:
        """Atomically bump ``usage_count`` and stamp ``last_used_at``."""
