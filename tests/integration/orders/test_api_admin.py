"""Back-office order endpoints."""

from __future__ import annotations

import pytest

from modules.orders.constants import PaymentMethod

pytestmark = pytest.mark.integration

ADMIN_ORDERS_URL = "/api/v1/admin/orders/"


class TestAdminAccess:
    def test_anonymous_is_rejected(self, api_client):
        assert api_client.get(ADMIN_ORDERS_URL).status_code == 401

    def test_regular_user_is_forbidden(self, user_client):
        assert user_client.get(ADMIN_ORDERS_URL).status_code == 403


class TestAdminListOrders:
    def test_paginated_list(self, admin_client, place_order, product):
        place_order((product, 1))
        place_order((product, 2))

        response = admin_client.get(ADMIN_ORDERS_URL)

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 2
        assert data["results"][0]["customer_name"] == "Jane Doe"

    def test_filter_by_payment_method(self, admin_client, place_order, product):
        place_order((product, 1))
        cod = place_order((product, 1), payment_method=PaymentMethod.CASH_ON_DELIVERY)

        response = admin_client.get(ADMIN_ORDERS_URL, {"payment_method": "cash_on_delivery"})

        assert [row["order_id"] for row in response.json()["results"]] == [cod.order_id]

    def test_filter_by_total_range(self, admin_client, place_order, product):
        place_order((product, 1))
        big = place_order((product, 4))

        response = admin_client.get(ADMIN_ORDERS_URL, {"min_total": "100"})

        assert [row["order_id"] for row in response.json()["results"]] == [big.order_id]

    def test_search_by_order_id(self, admin_client, place_order, product):
        order = place_order((product, 1))
        place_order((product, 1))

        response = admin_client.get(ADMIN_ORDERS_URL, {"search": order.order_id})

        assert response.json()["count"] == 1


class TestAdminOrderDetail:
    def test_retrieve_includes_history(self, admin_client, place_order, product):
        order = place_order((product, 1))

        response = admin_client.get(f"{ADMIN_ORDERS_URL}{order.id}/")

        assert response.status_code == 200
        data = response.json()
        assert data["status_history"][0]["new_value"] == "pending"
        assert data["stock_updated"] is False

    def test_retrieve_unknown(self, admin_client):
        response = admin_client.get(f"{ADMIN_ORDERS_URL}0190a0e0-0000-7000-8000-000000000000/")
        assert response.status_code == 404


class TestAdminTransitions:
    def test_update_status(self, admin_client, place_order, product):
        order = place_order((product, 1))

        response = admin_client.patch(
            f"{ADMIN_ORDERS_URL}{order.id}/status/",
            {"status": "confirmed", "notes": "Checked stock"},
            format="json",
        )

        assert response.status_code == 200
        history = response.json()["status_history"]
        assert history[-1]["old_value"] == "pending"
        assert history[-1]["new_value"] == "confirmed"
        assert history[-1]["notes"] == "Checked stock"

    def test_invalid_transition(self, admin_client, place_order, product):
        order = place_order((product, 1))

        response = admin_client.patch(
            f"{ADMIN_ORDERS_URL}{order.id}/status/", {"status": "delivered"}, format="json"
        )

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_status_transition"

    def test_unknown_status_value(self, admin_client, place_order, product):
        order = place_order((product, 1))

        response = admin_client.patch(
            f"{ADMIN_ORDERS_URL}{order.id}/status/", {"status": "lost"}, format="json"
        )

        assert response.status_code == 400
        assert response.json()["type"] == "validation_error"

    def test_mark_cash_collected(self, admin_client, place_order, product):
        order = place_order((product, 1), payment_method=PaymentMethod.CASH_ON_DELIVERY)

        response = admin_client.patch(
            f"{ADMIN_ORDERS_URL}{order.id}/payment-status/",
            {"payment_status": "paid", "notes": "Cash collected"},
            format="json",
        )

        assert response.status_code == 200
        assert response.json()["payment_status"] == "paid"

    def test_invalid_payment_transition(self, admin_client, place_order, product):
        order = place_order((product, 1))

        response = admin_client.patch(
            f"{ADMIN_ORDERS_URL}{order.id}/payment-status/",
            {"payment_status": "refunded"},
            format="json",
        )

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_payment_transition"

    def test_cancel(self, admin_client, place_order, product):
        order = place_order((product, 1))

        response = admin_client.post(f"{ADMIN_ORDERS_URL}{order.id}/cancel/", {"notes": "Customer asked"}, format="json")

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"

    def test_cancel_twice(self, admin_client, place_order, product):
        order = place_order((product, 1))
        admin_client.post(f"{ADMIN_ORDERS_URL}{order.id}/cancel/")

        response = admin_client.post(f"{ADMIN_ORDERS_URL}{order.id}/cancel/")

        assert response.status_code == 400


class TestAdminStats:
    def test_stats(self, admin_client, place_order, product, other_product):
        place_order((product, 1))

        response = admin_client.get(f"{ADMIN_ORDERS_URL}stats/")

        assert response.status_code == 200
        data = response.json()
        assert data["total_orders"] == 1
        assert data["orders_by_status"] == {"pending": 1}
        assert data["revenue"] == {}
        assert [p["name"] for p in data["low_stock_products"]] == ["Wool Scarf"]
