"""Shipping DRF serializers."""

from __future__ import annotations

from rest_framework import serializers

from modules.shipping.models import Country, DeliveryRule


class PublicCountrySerializer(serializers.ModelSerializer):
    class Meta:
        model = Country
        fields = ["country_code", "country_name"]
        read_only_fields = fields


class CountrySerializer(serializers.ModelSerializer):
    class Meta:
        model = Country
        fields = [
            "id",
            "country_code",
            "country_name",
            "base_cost",
            "tax_percentage",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class DeliveryRuleSerializer(serializers.ModelSerializer):
    class Meta:
        model = DeliveryRule
        fields = [
            "id",
            "min_pieces",
            "max_pieces",
            "country",
            "delivery_cost",
            "description",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class CheckoutQuoteSerializer(serializers.Serializer):
    """Response body of ``calculate-checkout``; keys match the storefront client."""

    country = serializers.CharField(source="country_name")
    countryCode = serializers.CharField(source="country_code")
    pieces = serializers.IntegerField()
    shippingCost = serializers.DecimalField(
        source="shipping_cost", max_digits=10, decimal_places=2
    )
    taxPercentage = serializers.DecimalField(
        source="tax_percentage", max_digits=5, decimal_places=2
    )
    deliveryDescription = serializers.CharField(source="delivery_description")
