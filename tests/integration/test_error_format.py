"""Integration tests for standardized error responses."""

import pytest

pytestmark = pytest.mark.integration


class TestStandardizedErrors:
    def test_auth_error_has_standard_format(self, api_client):
        response = api_client.get("/api/v1/admin/orders/")
        assert response.status_code == 401
        data = response.json()
        assert data["type"] == "client_error"
        assert isinstance(data["errors"], list)
        assert data["errors"]
        assert "code" in data["errors"][0]
        assert "detail" in data["errors"][0]

    def test_permission_error_has_standard_format(self, user_client):
        response = user_client.get("/api/v1/admin/orders/")
        assert response.status_code == 403
        assert response.json()["type"] == "client_error"

    def test_parse_error_has_standard_format(self, admin_client):
        response = admin_client.post(
            "/api/v1/admin/products/", data="{", content_type="application/json"
        )
        assert response.status_code == 400
        data = response.json()
        assert "type" in data
        assert isinstance(data["errors"], list)

    def test_validation_error_names_the_field(self, api_client):
        response = api_client.post("/api/v1/orders/", {"items": []}, format="json")
        assert response.status_code == 400
        data = response.json()
        assert data["type"] == "validation_error"
        fields = {error["attr"].split(".")[0] for error in data["errors"]}
        assert {"customer", "items"} <= fields

    def test_first_error_is_repeated_at_top_level(self, api_client):
        data = api_client.get("/api/v1/admin/orders/").json()
        assert data["code"] == "not_authenticated"
        assert data["detail"] == data["errors"][0]["detail"]
        assert data["errors"][0]["attr"] is None
