"""Catalog DRF serializers for API output.

Writes go through the pydantic DTOs in ``dtos.py``; these serializers only
render models.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.catalog.models import Category, Product


class CategorySerializer(serializers.ModelSerializer):
    class Meta:
        model = Category
        fields = [
            "id",
            "name",
            "description",
            "is_active",
            "sort_order",
            "image_url",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ProductSerializer(serializers.ModelSerializer):
    """Read serializer for the Product resource."""

    category = serializers.SerializerMethodField()
    main_image = serializers.CharField(read_only=True)

    class Meta:
        model = Product
        fields = [
            "id",
            "name",
            "description",
            "price",
            "currency",
            "category",
            "images",
            "main_image",
            "stock_quantity",
            "in_stock",
            "featured",
            "status",
            "hot_deal",
            "hot_deal_end",
            "deal_percentage",
            "deal_original_price",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_category(self, obj: Product):
        if obj.category_id is None:
            return None
        return {"id": str(obj.category_id), "name": obj.category.name}
