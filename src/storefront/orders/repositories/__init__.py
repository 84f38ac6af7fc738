"""Order repositories package."""

from storefront.orders.repositories.django_repository import OrderDjangoRepository
from storefront.orders.repositories.interfaces import IOrderRepository

__all__ = ["IOrderRepository", "OrderDjangoRepository"]
