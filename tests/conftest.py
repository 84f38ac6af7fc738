import pytest

from django.core.cache import cache
from rest_framework.test import APIClient


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _local_cache(settings):
    """Throttling and the health check run against an in-process cache."""
    settings.CACHES = {
        "default": {"BACKEND": "django.core.cache.backends.locmem.LocMemCache"}
    }
    cache.clear()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


@pytest.fixture()
def make_order():
    """Factory for persisted orders that skips checkout pricing."""
    from decimal import Decimal

    from storefront.orders.models import Order

    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        data = {
            "order_number": f"ORD-20250101-{counter['n']:05d}",
            "customer_email": "ada@example.com",
            "customer_name": "Ada Obi",
            "fulfillment_type": "pickup",
            "subtotal": Decimal("3000.00"),
            "total_amount": Decimal("3000.00"),
        }
        data.update(overrides)
        return Order.objects.create(**data)

    return _make


@pytest.fixture()
def staff_user(django_user_model):
    return django_user_model.objects.create_user(
        username="kitchen-admin", password="pw-123456", is_staff=True
    )
