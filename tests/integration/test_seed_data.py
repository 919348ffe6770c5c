from decimal import Decimal
from io import StringIO

import pytest
from django.contrib.auth import get_user_model
from django.core.management import call_command

from modules.catalog.models import Product
from modules.shipping.models import Country, DeliveryRule
from modules.shipping.services import build_pricing_resolver

pytestmark = pytest.mark.integration


def _seed() -> str:
    out = StringIO()
    call_command("seed_data", stdout=out)
    return out.getvalue()


class TestSeedData:
    def test_seeds_a_sellable_storefront(self):
        output = _seed()

        assert "Seed completed" in output
        assert get_user_model().objects.filter(username="admin", is_staff=True).exists()
        assert Country.objects.filter(country_code="US").exists()
        assert Product.objects.count() == 8

    def test_seeded_rules_price_checkout(self):
        _seed()

        domestic = build_pricing_resolver().resolve_pieces(2, "US")
        abroad = build_pricing_resolver().resolve_pieces(2, "GB")

        assert domestic.shipping_cost == Decimal("8.00")
        assert abroad.shipping_cost == Decimal("10.00")

    def test_is_idempotent(self):
        _seed()
        rules = DeliveryRule.objects.count()

        output = _seed()

        assert DeliveryRule.objects.count() == rules
        assert Product.objects.count() == 8
        assert "users=0" in output
