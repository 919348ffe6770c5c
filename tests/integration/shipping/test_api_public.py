"""Storefront shipping endpoints: country picker and checkout quote."""

from __future__ import annotations

import pytest

from modules.shipping.models import Country

pytestmark = pytest.mark.integration

QUOTE_URL = "/api/v1/shipping/calculate-checkout/"


class TestCountryList:
    def test_lists_active_countries_by_name(self, api_client, us, gb):
        Country.objects.create(country_code="FR", country_name="France", is_active=False)

        response = api_client.get("/api/v1/shipping/countries/")

        assert response.status_code == 200
        assert response.json() == [
            {"country_code": "GB", "country_name": "United Kingdom"},
            {"country_code": "US", "country_name": "United States"},
        ]


class TestCheckoutQuote:
    def test_quote_uses_client_field_names(self, api_client, us, standard_rules):
        response = api_client.post(QUOTE_URL, {"pieces": 5, "countryCode": "us"}, format="json")

        assert response.status_code == 200
        assert response.json() == {
            "country": "United States",
            "countryCode": "US",
            "pieces": 5,
            "shippingCost": "8.00",
            "taxPercentage": "8.00",
            "deliveryDescription": "Standard bulk",
        }

    def test_unsupported_country(self, api_client, us, standard_rules):
        response = api_client.post(QUOTE_URL, {"pieces": 1, "countryCode": "ZZ"}, format="json")

        assert response.status_code == 404
        assert response.json()["code"] == "unsupported_country"

    def test_no_rule_for_piece_count(self, api_client, us, standard_rules):
        response = api_client.post(QUOTE_URL, {"pieces": 50, "countryCode": "US"}, format="json")

        assert response.status_code == 404
        assert response.json() == {
            "detail": "No delivery rule found for this order",
            "code": "no_delivery_rule",
            "pieces": 50,
        }

    @pytest.mark.parametrize(
        "body",
        [{"countryCode": "US"}, {"pieces": 0, "countryCode": "US"}, {"pieces": 2}],
        ids=["missing-pieces", "zero-pieces", "missing-country"],
    )
    def test_invalid_request(self, api_client, us, standard_rules, body):
        response = api_client.post(QUOTE_URL, body, format="json")

        assert response.status_code == 400
        assert response.json()["code"] == "invalid"
