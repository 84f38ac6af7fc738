"""Django ORM implementation of the payment transaction repository."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

import structlog
from django.core.exceptions import ValidationError

from storefront.payments.constants import TransactionStatus
from storefront.payments.models import PaymentTransaction
from storefront.payments.repositories.interfaces import (
    IPaymentTransactionRepository,
)

logger = structlog.get_logger(__name__)


class PaymentTransactionDjangoRepository(IPaymentTransactionRepository):
    """Concrete payment transaction repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[PaymentTransaction]:
        try:
            return PaymentTransaction.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(
        self, filters: Optional[Dict[str, Any]] = None
    ) -> List[PaymentTransaction]:
        queryset = PaymentTransaction.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def has_successful(self, provider_reference: str) -> bool:
        return PaymentTransaction.objects.filter(
            provider_reference=provider_reference,
            status=TransactionStatus.SUCCESS,
        ).exists()

    def get_or_create(
        self, provider_reference: str, defaults: Dict[str, Any]
    ) -> Tuple[PaymentTransaction, bool]:
        # A unique-constraint collision is resolved by get_or_create into
        # "found", so a concurrent insert is reported as not created.
        transaction, created = PaymentTransaction.objects.get_or_create(
            provider_reference=provider_reference, defaults=defaults
        )
        if created:
            logger.info(
                "payment.transaction_recorded",
                transaction_id=str(transaction.id),
                status=transaction.status,
            )
        return transaction, created

    def update(self, transaction: PaymentTransaction, **fields: Any) -> PaymentTransaction:
        for name, value in fields.items():
            setattr(transaction, name, value)
        transaction.save(update_fields=list(fields))
        return transaction
