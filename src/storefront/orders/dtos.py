"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer and the Service layer.
DTOs are immutable (``frozen=True``).

- ``CreateOrderItemDTO``: input for a single order line item.
- ``CreateOrderDTO``: checkout input (customer snapshot, fulfilment,
  items, optional promotion code and client-computed total).
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    ValidationError,
    field_validator,
    model_validator,
)

from storefront.orders.constants import FulfillmentType
from storefront.orders.exceptions import InvalidOrderInput


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class CreateOrderItemDTO(BaseModel):
    """A single cart line.

    The client sends ``product_id`` and ``quantity``; name and unit price
    are resolved from the catalog by the Service Layer.
    """

    model_config = ConfigDict(frozen=True)

    product_id: UUID
    quantity: int
    discount_amount: Decimal = Decimal("0.00")
    customizations: Optional[Dict[str, Any]] = None

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v

    @field_validator("discount_amount")
    @classmethod
    def discount_must_not_be_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("Item discount cannot be negative.")
        return v


class CreateOrderDTO(BaseModel):
    """Immutable DTO for checkout requests.

    Validates:
    - customer email and name are present (email is lower-cased);
    - ``items`` contains at least one item;
    - delivery orders carry a delivery address.
    """

    model_config = ConfigDict(frozen=True)

    customer_email: str
    customer_name: str
    customer_phone: str = ""
    customer_id: Optional[UUID] = None
    fulfillment_type: FulfillmentType = FulfillmentType.DELIVERY
    items: List[CreateOrderItemDTO]
    delivery_address: Optional[Dict[str, Any]] = None
    delivery_zone_id: Optional[UUID] = None
    pickup_point_id: Optional[UUID] = None
    promotion_code: Optional[str] = None
    client_total: Optional[Decimal] = None

    @field_validator("customer_email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        v = v.strip().lower()
        if not v or "@" not in v:
            raise ValueError("A valid customer email is required.")
        return v

    @field_validator("customer_name")
    @classmethod
    def name_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Customer name is required.")
        return v

    @field_validator("customer_phone")
    @classmethod
    def strip_phone(cls, v: str) -> str:
        return v.strip()

    @field_validator("promotion_code")
    @classmethod
    def blank_code_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(
        cls, v: List[CreateOrderItemDTO]
    ) -> List[CreateOrderItemDTO]:
        if not v:
            raise ValueError("Order must have at least one item.")
        return v

    @model_validator(mode="after")
    def delivery_needs_address(self):
        if self.fulfillment_type == FulfillmentType.DELIVERY and not self.delivery_address:
            raise ValueError("Delivery orders require a delivery address.")
        return self

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> CreateOrderDTO:
        """Validate a raw request body, raising ``InvalidOrderInput``."""
        try:
            return cls.model_validate(dict(payload))
        except ValidationError as exc:
            errors = [
                {
                    "field": ".".join(str(part) for part in err["loc"]),
                    "message": err["msg"],
                }
                for err in exc.errors()
            ]
            raise InvalidOrderInput("Invalid order data.", errors=errors) from exc
