"""Customer repositories package."""

from storefront.customers.repositories.django_repository import (
    CustomerDjangoRepository,
)
from storefront.customers.repositories.interfaces import ICustomerRepository

__all__ = ["CustomerDjangoRepository", "ICustomerRepository"]
