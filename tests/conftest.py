from __future__ import annotations

from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from modules.catalog.models import Category, Product, ProductStatus
from modules.shipping.constants import ALL_COUNTRIES
from modules.shipping.models import Country, DeliveryRule


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _clear_cache():
    """Throttle counters live in the cache; start every test from zero."""
    cache.clear()
    yield
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
def admin_user():
    return get_user_model().objects.create_superuser("admin", password="admin-pass-123")


@pytest.fixture()
def admin_client(admin_user) -> APIClient:
    """APIClient force-authenticated as a staff user."""
    client = APIClient()
    client.force_authenticate(user=admin_user)
    return client


@pytest.fixture()
def user_client() -> APIClient:
    """APIClient authenticated as a regular (non-staff) user."""
    client = APIClient()
    user = get_user_model().objects.create_user("shopper", password="shopper-pass-123")
    client.force_authenticate(user=user)
    return client


# ---------------------------------------------------------------------------
# Pricing configuration
# ---------------------------------------------------------------------------


@pytest.fixture()
def us() -> Country:
    return Country.objects.create(
        country_code="US",
        country_name="United States",
        base_cost=Decimal("5.00"),
        tax_percentage=Decimal("8.00"),
    )


@pytest.fixture()
def gb() -> Country:
    return Country.objects.create(
        country_code="GB",
        country_name="United Kingdom",
        base_cost=Decimal("10.00"),
        tax_percentage=Decimal("20.00"),
    )


@pytest.fixture()
def standard_rules() -> list[DeliveryRule]:
    """Worldwide bands: 1-3 pieces cost 5.00, 4-10 pieces cost 8.00."""
    return [
        DeliveryRule.objects.create(
            min_pieces=1,
            max_pieces=3,
            country=ALL_COUNTRIES,
            delivery_cost=Decimal("5.00"),
            description="Standard",
        ),
        DeliveryRule.objects.create(
            min_pieces=4,
            max_pieces=10,
            country=ALL_COUNTRIES,
            delivery_cost=Decimal("8.00"),
            description="Standard bulk",
        ),
    ]


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


@pytest.fixture()
def category() -> Category:
    return Category.objects.create(name="Apparel")


@pytest.fixture()
def product(category) -> Product:
    return Product.objects.create(
        name="Linen Shirt",
        price=Decimal("50.00"),
        currency="USD",
        category=category,
        images=["https://cdn.example.com/shirt.jpg"],
        stock_quantity=20,
        status=ProductStatus.ACTIVE,
    )


@pytest.fixture()
def other_product(category) -> Product:
    return Product.objects.create(
        name="Wool Scarf",
        price=Decimal("25.00"),
        currency="USD",
        category=category,
        stock_quantity=5,
        status=ProductStatus.ACTIVE,
    )


@pytest.fixture()
def customer_payload() -> dict:
    return {
        "email": "jane@example.com",
        "first_name": "Jane",
        "last_name": "Doe",
        "phone": "+1 555 0100",
        "address": "1 Main St",
        "city": "Springfield",
        "zip_code": "12345",
        "country_code": "us",
    }
