from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from modules.catalog.models import ProductStatus

pytestmark = pytest.mark.unit


class TestProductStock:
    def test_in_stock_follows_quantity(self, product):
        assert product.in_stock is True
        product.stock_quantity = 0
        product.save(update_fields=["stock_quantity"])
        product.refresh_from_db()
        assert product.in_stock is False

    def test_decrement_clamps_at_zero(self, other_product):
        shortfall = other_product.decrement_stock(8)
        assert shortfall == 3
        assert other_product.stock_quantity == 0

    def test_decrement_within_stock(self, product):
        assert product.decrement_stock(5) == 0
        assert product.stock_quantity == 15


class TestProductSellable:
    def test_inactive_product_is_not_sellable(self, product):
        product.status = ProductStatus.INACTIVE
        assert not product.is_sellable

    def test_deleted_product_is_not_sellable(self, product):
        product.delete()
        assert not product.is_sellable

    def test_main_image(self, product, other_product):
        assert product.main_image == "https://cdn.example.com/shirt.jpg"
        assert other_product.main_image == ""


class TestHotDeal:
    def test_apply_and_clear(self, product):
        product.apply_hot_deal(Decimal("20"), timezone.now() + timedelta(days=2))
        assert product.price == Decimal("40.00")
        assert product.deal_original_price == Decimal("50.00")

        product.clear_hot_deal()
        assert product.price == Decimal("50.00")
        assert product.hot_deal is False
        assert product.deal_original_price is None

    def test_reapplying_discounts_from_original_price(self, product):
        ends = timezone.now() + timedelta(days=2)
        product.apply_hot_deal(Decimal("20"), ends)
        product.apply_hot_deal(Decimal("50"), ends)
        assert product.price == Decimal("25.00")
        assert product.deal_original_price == Decimal("50.00")
