"""Catalog repositories package."""

from storefront.catalog.repositories.django_repository import CatalogDjangoRepository
from storefront.catalog.repositories.interfaces import ICatalogRepository

__all__ = ["CatalogDjangoRepository", "ICatalogRepository"]
