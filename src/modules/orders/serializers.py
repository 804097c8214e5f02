"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.orders.models import Order, OrderItem, OrderStatusHistory

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class UpdateOrderStatusSerializer(serializers.Serializer):
    """Validates the status change request payload.

    ``status`` stays a free string: unknown values are rejected by the
    engine with the list of valid statuses.
    """

    status = serializers.CharField(required=False, default="", allow_blank=True)
    tracking_url = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, max_length=500
    )
    tracking_id = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, max_length=120
    )


class UpdateTrackingSerializer(serializers.Serializer):
    """Validates the tracking update request payload."""

    tracking_url = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, max_length=500
    )
    tracking_id = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, max_length=120
    )
    send_notification = serializers.BooleanField(required=False, default=False)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderItemSerializer(serializers.ModelSerializer):
    """Read serializer for order items with their stock reference."""

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product_id",
            "variant_id",
            "product_name",
            "quantity",
            "unit_price",
            "total_price",
        ]
        read_only_fields = fields


class StatusHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderStatusHistory
        fields = [
            "id",
            "old_status",
            "new_status",
            "stock_action",
            "tracking_url",
            "tracking_id",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for orders with nested items and history."""

    items = OrderItemSerializer(many=True, read_only=True)
    status_history = StatusHistorySerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "status",
            "tracking_url",
            "tracking_id",
            "subtotal",
            "delivery_fee",
            "discount_amount",
            "total_amount",
            "currency",
            "customer_name",
            "customer_email",
            "customer_phone",
            "delivery_address",
            "created_at",
            "updated_at",
            "items",
            "status_history",
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order list (no nested relations)."""

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "customer_name",
            "customer_email",
            "status",
            "tracking_id",
            "total_amount",
            "currency",
            "created_at",
        ]
        read_only_fields = fields
