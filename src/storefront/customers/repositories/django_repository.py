"""Django ORM implementation of the customer repository.

Error handling follows the Null Object pattern: methods return ``None``
instead of raising; the Service Layer decides how to translate a
missing account into a domain error.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from django.core.exceptions import ValidationError

from storefront.customers.models import CustomerAccount
from storefront.customers.repositories.interfaces import ICustomerRepository


class CustomerDjangoRepository(ICustomerRepository):
    """Concrete customer repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[CustomerAccount]:
        """Returns ``None`` for non-existent or malformed IDs."""
        try:
            return CustomerAccount.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[CustomerAccount]:
        queryset = CustomerAccount.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)
