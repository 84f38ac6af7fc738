"""Payment repositories package."""

from storefront.payments.repositories.django_repository import (
    PaymentTransactionDjangoRepository,
)
from storefront.payments.repositories.interfaces import (
    IPaymentTransactionRepository,
)

__all__ = ["IPaymentTransactionRepository", "PaymentTransactionDjangoRepository"]
