import logging
import uuid

import pytest

pytestmark = pytest.mark.integration

COUNTRIES_URL = "/api/v1/shipping/countries/"


def _events(caplog, name):
    """Structlog event dicts named ``name`` captured from the stdlib bridge."""
    return [
        record.msg
        for record in caplog.records
        if isinstance(record.msg, dict) and record.msg.get("event") == name
    ]


class TestCorrelationIdMiddleware:
    def test_echoes_request_id_on_storefront_routes(self, api_client, us):
        response = api_client.get(COUNTRIES_URL, HTTP_X_REQUEST_ID="checkout-7f3a")
        assert response.status_code == 200
        assert response["X-Request-ID"] == "checkout-7f3a"

    def test_generates_uuid4_when_absent(self, api_client):
        response = api_client.post(
            "/api/v1/shipping/calculate-checkout/", {"pieces": 1}, format="json"
        )
        request_id = response["X-Request-ID"]
        assert str(uuid.UUID(request_id, version=4)) == request_id

    def test_error_responses_carry_the_id(self, api_client):
        response = api_client.get("/api/v1/admin/orders/", HTTP_X_REQUEST_ID="denied-1")
        assert response.status_code == 401
        assert response["X-Request-ID"] == "denied-1"

    def test_request_finished_logs_duration_and_status(self, api_client, us, caplog):
        with caplog.at_level(logging.INFO):
            api_client.get(COUNTRIES_URL, HTTP_X_REQUEST_ID="timed-request")

        finished = _events(caplog, "request_finished")
        assert finished
        entry = finished[-1]
        assert entry["correlation_id"] == "timed-request"
        assert entry["path"] == COUNTRIES_URL
        assert entry["status_code"] == 200
        assert isinstance(entry["duration_ms"], float)
        assert entry["duration_ms"] >= 0

    def test_service_logs_inherit_the_id(self, api_client, us, standard_rules, caplog):
        with caplog.at_level(logging.INFO):
            api_client.post(
                "/api/v1/shipping/calculate-checkout/",
                {"pieces": 2, "countryCode": "US"},
                format="json",
                HTTP_X_REQUEST_ID="pricing-42",
            )

        started = _events(caplog, "request_started")
        assert started and started[-1]["correlation_id"] == "pricing-42"
        service_logs = [
            record.msg
            for record in caplog.records
            if isinstance(record.msg, dict)
            and record.msg.get("event") not in {"request_started", "request_finished"}
        ]
        assert service_logs
        assert all(msg.get("correlation_id") == "pricing-42" for msg in service_logs)
