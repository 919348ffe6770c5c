"""Back-office sales analytics over trailing windows."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from modules.orders.dtos import PaymentResultDTO
from modules.orders.exceptions import InvalidAnalyticsPeriod
from modules.orders.models import Order

pytestmark = pytest.mark.integration

ANALYTICS_URL = "/api/v1/admin/orders/analytics/"


@pytest.fixture()
def sales(service, place_order, product, other_product):
    """One paid order (113.00) and one unpaid order (32.00), both placed today."""
    paid = place_order((product, 2))
    service.confirm_payment(paid.order_id, PaymentResultDTO(provider_status="Authorised"))
    unpaid = place_order((other_product, 1), email="sam@example.com")
    return paid, unpaid


class TestAnalyticsService:
    def test_empty_window(self, service):
        result = service.analytics("7d", "USD")

        assert result.total_orders == 0
        assert result.total_revenue == Decimal("0.00")
        assert result.average_order_value == Decimal("0.00")
        assert len(result.daily_revenue) == 7
        assert result.daily_revenue[-1].day == timezone.localdate()
        assert result.end_date - result.start_date == timedelta(days=6)
        assert all(day.revenue == Decimal("0.00") for day in result.daily_revenue)

    def test_revenue_counts_paid_orders_only(self, service, sales):
        result = service.analytics("30d", "USD")

        assert result.total_orders == 2
        assert result.paid_orders == 1
        assert result.total_revenue == Decimal("113.00")
        assert result.average_order_value == Decimal("113.00")
        assert result.unique_customers == 1
        assert result.status_distribution == {"pending": 2}
        assert result.payment_status_distribution == {"paid": 1, "pending": 1}

    def test_daily_series_adds_up_to_revenue(self, service, sales):
        result = service.analytics("30d", "USD")

        assert len(result.daily_revenue) == 30
        assert sum(day.revenue for day in result.daily_revenue) == result.total_revenue
        today = result.daily_revenue[-1]
        assert today.revenue == Decimal("113.00")
        assert today.orders == 1

    def test_top_products_come_from_paid_orders(self, service, sales, product):
        result = service.analytics("30d", "USD")

        assert [(p.product_id, p.quantity, p.revenue) for p in result.top_products] == [
            (product.id, 2, Decimal("100.00"))
        ]
        assert result.top_products[0].name == "Linen Shirt"

    def test_orders_before_the_window_are_excluded(self, service, sales):
        paid, _ = sales
        Order.objects.filter(id=paid.id).update(created_at=timezone.now() - timedelta(days=10))

        week = service.analytics("7d", "USD")
        month = service.analytics("30d", "USD")

        assert week.total_orders == 1
        assert week.total_revenue == Decimal("0.00")
        assert month.total_revenue == Decimal("113.00")

    def test_other_currencies_are_excluded(self, service, sales):
        result = service.analytics("30d", "EUR")

        assert result.total_orders == 0
        assert result.top_products == []

    def test_unknown_period(self, service):
        with pytest.raises(InvalidAnalyticsPeriod):
            service.analytics("2w", "USD")


class TestAnalyticsAPI:
    def test_defaults_to_thirty_days(self, admin_client, sales):
        response = admin_client.get(ANALYTICS_URL)

        assert response.status_code == 200
        data = response.json()
        assert data["period"] == "30d"
        assert data["currency"] == "USD"
        assert data["total_revenue"] == "113.00"
        assert len(data["daily_revenue"]) == 30
        assert data["daily_revenue"][-1]["day"] == timezone.localdate().isoformat()

    @pytest.mark.parametrize(("period", "days"), [("7d", 7), ("90d", 90), ("1y", 365)])
    def test_supported_periods(self, admin_client, period, days):
        response = admin_client.get(ANALYTICS_URL, {"period": period})

        assert response.status_code == 200
        assert len(response.json()["daily_revenue"]) == days

    def test_invalid_period(self, admin_client):
        response = admin_client.get(ANALYTICS_URL, {"period": "forever"})

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_period"

    def test_requires_staff(self, user_client):
        assert user_client.get(ANALYTICS_URL).status_code == 403
