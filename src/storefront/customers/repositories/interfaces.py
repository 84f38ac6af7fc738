"""Customer repository interface."""

from __future__ import annotations

from typing import TYPE_CHECKING

from storefront.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from storefront.customers.models import CustomerAccount


class ICustomerRepository(IRepository["CustomerAccount"]):
    """Repository contract for customer accounts.

    Checkout only needs ``get_by_id`` to check that a linked account
    exists and is active.
    """
