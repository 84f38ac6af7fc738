"""Django ORM implementation of the catalog repository."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db.models import F
from django.utils import timezone

from storefront.catalog.models import DeliveryZone, Product, Promotion
from storefront.catalog.repositories.interfaces import ICatalogRepository

logger = structlog.get_logger(__name__)


class CatalogDjangoRepository(ICatalogRepository):
    """Concrete catalog repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Product]:
        try:
            return Product.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Product]:
        queryset = Product.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def get_products(self, ids: Iterable[UUID]) -> Dict[UUID, Product]:
        return {product.id: product for product in Product.objects.filter(id__in=ids)}

    def get_delivery_zone(self, id: UUID) -> Optional[DeliveryZone]:
        return DeliveryZone.objects.filter(id=id).first()

    def get_promotion_by_code(self, code: str) -> Optional[Promotion]:
        return Promotion.objects.filter(code__iexact=code.strip()).first()

    def increment_promotion_usage(self, promotion: Promotion) -> None:
        Promotion.objects.filter(id=promotion.id).update(
            usage_count=F("usage_count") + 1,
            last_used_at=timezone.now(),
            updated_at=timezone.now(),
        )
        logger.info("promotion.usage_incremented", promotion_id=str(promotion.id))
