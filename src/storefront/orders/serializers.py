"""Order DRF serializers (read side).

Checkout input is validated by ``CreateOrderDTO``; these serializers only
shape responses and the admin status-update request.
"""

from __future__ import annotations

from rest_framework import serializers

from storefront.orders.constants import OrderStatus
from storefront.orders.models import Order, OrderItem, OrderStatusChange

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class UpdateOrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices)
    reason = serializers.CharField(required=False, default="", allow_blank=True)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product_id",
            "product_name",
            "quantity",
            "unit_price",
            "discount_amount",
            "total_price",
            "customizations",
        ]
        read_only_fields = fields


class StatusChangeSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderStatusChange
        fields = [
            "id",
            "old_status",
            "new_status",
            "changed_by",
            "reason",
            "created_at",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for orders with nested items and history."""

    items = OrderItemSerializer(many=True, read_only=True)
    status_changes = StatusChangeSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "customer_id",
            "customer_email",
            "customer_name",
            "customer_phone",
            "fulfillment_type",
            "delivery_address",
            "delivery_zone_id",
            "pickup_point_id",
            "promotion_code",
            "subtotal",
            "delivery_fee",
            "discount_amount",
            "delivery_discount",
            "total_amount",
            "status",
            "payment_status",
            "payment_reference",
            "paid_at",
            "created_at",
            "updated_at",
            "items",
            "status_changes",
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order list (no nested relations)."""

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "customer_email",
            "fulfillment_type",
            "status",
            "payment_status",
            "total_amount",
            "created_at",
        ]
        read_only_fields = fields
