"""Unit tests for checkout DTO validation."""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest
from pydantic import ValidationError

from storefront.orders.constants import FulfillmentType
from storefront.orders.dtos import CreateOrderDTO, CreateOrderItemDTO
from storefront.orders.exceptions import InvalidOrderInput

pytestmark = pytest.mark.unit


def _payload(**overrides):
    payload = {
        "customer_email": "  Ada@Example.COM ",
        "customer_name": " Ada Obi ",
        "fulfillment_type": "delivery",
        "delivery_address": {"street": "12 Marina", "city": "Lagos"},
        "items": [{"product_id": str(uuid4()), "quantity": 2}],
    }
    payload.update(overrides)
    return payload


class TestCreateOrderItemDTO:
    def test_zero_quantity_rejected(self):
        with pytest.raises(ValidationError, match="Quantity must be at least 1"):
            CreateOrderItemDTO(product_id=uuid4(), quantity=0)

    def test_negative_discount_rejected(self):
        with pytest.raises(ValidationError, match="cannot be negative"):
            CreateOrderItemDTO(
                product_id=uuid4(), quantity=1, discount_amount=Decimal("-1")
            )

    def test_is_frozen(self):
        item = CreateOrderItemDTO(product_id=uuid4(), quantity=1)
        with pytest.raises(ValidationError):
            item.quantity = 5


class TestCreateOrderDTO:
    def test_email_and_name_are_normalised(self):
        dto = CreateOrderDTO.from_payload(_payload())
        assert dto.customer_email == "ada@example.com"
        assert dto.customer_name == "Ada Obi"
        assert dto.fulfillment_type == FulfillmentType.DELIVERY

    def test_blank_promotion_code_becomes_none(self):
        dto = CreateOrderDTO.from_payload(_payload(promotion_code="   "))
        assert dto.promotion_code is None

    def test_client_total_parsed_as_decimal(self):
        dto = CreateOrderDTO.from_payload(_payload(client_total="3500.00"))
        assert dto.client_total == Decimal("3500.00")

    def test_pickup_does_not_need_address(self):
        dto = CreateOrderDTO.from_payload(
            _payload(fulfillment_type="pickup", delivery_address=None)
        )
        assert dto.fulfillment_type == FulfillmentType.PICKUP

    @pytest.mark.parametrize(
        "overrides, field",
        [
            ({"items": []}, "items"),
            ({"customer_email": "   "}, "customer_email"),
            ({"customer_name": ""}, "customer_name"),
            ({"fulfillment_type": "drone"}, "fulfillment_type"),
        ],
    )
    def test_invalid_payload_reports_field(self, overrides, field):
        with pytest.raises(InvalidOrderInput) as exc_info:
            CreateOrderDTO.from_payload(_payload(**overrides))
        assert field in [error["field"] for error in exc_info.value.errors]

    def test_delivery_without_address_rejected(self):
        with pytest.raises(InvalidOrderInput) as exc_info:
            CreateOrderDTO.from_payload(_payload(delivery_address=None))
        assert "delivery address" in exc_info.value.errors[0]["message"]

    def test_missing_items_key_rejected(self):
        payload = _payload()
        del payload["items"]
        with pytest.raises(InvalidOrderInput):
            CreateOrderDTO.from_payload(payload)
