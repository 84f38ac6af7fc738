"""Payment transaction repository interface."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Tuple

from storefront.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from storefront.payments.models import PaymentTransaction


class IPaymentTransactionRepository(IRepository["PaymentTransaction"]):
    """Repository contract for payment transactions."""

    @abstractmethod
    def has_successful(self, provider_reference: str) -> bool:
        """Whether a successful transaction exists for the reference."""

    @abstractmethod
    def get_or_create(
        self, provider_reference: str, defaults: Dict[str, Any]
    ) -> Tuple[PaymentTransaction, bool]:
        """Conditional insert keyed by the provider reference."""

    @abstractmethod
    def update(self, transaction: PaymentTransaction, **fields: Any) -> PaymentTransaction:
        """Overwrite *fields* on an existing transaction."""
