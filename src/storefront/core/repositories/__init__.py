"""Core repository contracts."""

from storefront.core.repositories.interfaces import IRepository

__all__ = ["IRepository"]
