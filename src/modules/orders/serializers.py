"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.orders.constants import OrderStatus, PaymentMethod, PaymentStatus
from modules.orders.models import Order, OrderItem, OrderStatusHistory

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CartLineSerializer(serializers.Serializer):
    """A cart line: product and quantity only; prices come from the catalog."""

    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)


class CustomerSerializer(serializers.Serializer):
    email = serializers.EmailField()
    first_name = serializers.CharField(max_length=100)
    last_name = serializers.CharField(max_length=100)
    phone = serializers.CharField(max_length=40, required=False, default="", allow_blank=True)
    address = serializers.CharField(max_length=255)
    city = serializers.CharField(max_length=100)
    zip_code = serializers.CharField(
        max_length=20, required=False, default="", allow_blank=True
    )
    country_code = serializers.CharField(max_length=2, min_length=2)


class CreateOrderSerializer(serializers.Serializer):
    """Validates the checkout payload."""

    customer = CustomerSerializer()
    items = CartLineSerializer(many=True, allow_empty=False)
    payment_method = serializers.ChoiceField(
        choices=PaymentMethod.choices, default=PaymentMethod.CARD
    )
    notes = serializers.CharField(required=False, default="", allow_blank=True)


class ConfirmPaymentSerializer(serializers.Serializer):
    """``{"paymentIntentId": ...}`` or ``{"providerStatus": ..., "paymentDetails": {...}}``."""

    paymentIntentId = serializers.CharField(required=False, allow_blank=False)
    providerStatus = serializers.CharField(required=False, allow_blank=False)
    paymentDetails = serializers.DictField(required=False, default=dict)

    def validate(self, attrs):
        if not attrs.get("paymentIntentId") and not attrs.get("providerStatus"):
            raise serializers.ValidationError(
                "Either paymentIntentId or providerStatus is required."
            )
        return attrs


class UpdateStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices)
    notes = serializers.CharField(required=False, default="", allow_blank=True)
    tracking_number = serializers.CharField(
        required=False, default="", allow_blank=True, max_length=100
    )


class UpdatePaymentStatusSerializer(serializers.Serializer):
    payment_status = serializers.ChoiceField(choices=PaymentStatus.choices)
    notes = serializers.CharField(required=False, default="", allow_blank=True)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderItemSerializer(serializers.ModelSerializer):
    """Line snapshot as captured at checkout."""

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product_id",
            "name",
            "image",
            "unit_price",
            "currency",
            "quantity",
            "subtotal",
        ]
        read_only_fields = fields


class StatusHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderStatusHistory
        fields = [
            "id",
            "field",
            "old_value",
            "new_value",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class CustomerSnapshotField(serializers.Field):
    def __init__(self, **kwargs):
        kwargs["source"] = "*"
        kwargs["read_only"] = True
        super().__init__(**kwargs)

    def to_representation(self, order: Order) -> dict:
        return {
            "email": order.customer_email,
            "first_name": order.customer_first_name,
            "last_name": order.customer_last_name,
            "phone": order.customer_phone,
            "address": order.customer_address,
            "city": order.customer_city,
            "zip_code": order.customer_zip_code,
            "country": order.customer_country,
            "country_code": order.country_code,
        }


class OrderSerializer(serializers.ModelSerializer):
    """Full order for the customer confirmation page."""

    customer = CustomerSnapshotField()
    items = OrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_id",
            "payment_reference",
            "customer",
            "items",
            "currency",
            "subtotal",
            "shipping_cost",
            "tax_percentage",
            "tax_amount",
            "total",
            "delivery_description",
            "status",
            "payment_status",
            "payment_method",
            "tracking_number",
            "notes",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class AdminOrderSerializer(OrderSerializer):
    """Back-office view: adds payment details, side-effect flags and history."""

    status_history = StatusHistorySerializer(many=True, read_only=True)

    class Meta(OrderSerializer.Meta):
        fields = OrderSerializer.Meta.fields + [
            "payment_details",
            "payment_intent_id",
            "payment_email_sent",
            "payment_email_sent_at",
            "shipping_email_sent",
            "shipping_email_sent_at",
            "stock_updated",
            "stock_updated_at",
            "stock_released",
            "stock_released_at",
            "status_history",
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order list (no nested relations)."""

    customer_name = serializers.CharField(read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_id",
            "customer_name",
            "customer_email",
            "country_code",
            "currency",
            "total",
            "status",
            "payment_status",
            "payment_method",
            "created_at",
        ]
        read_only_fields = fields
