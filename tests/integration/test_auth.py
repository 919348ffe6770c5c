"""Integration tests for SimpleJWT authentication on the back office.

Validates:
  - Storefront endpoints are public.
  - Admin endpoints return 401 without, or with a bad, bearer token.
  - A token obtained from ``/api/v1/auth/token/`` opens the admin API.
"""

import pytest

pytestmark = pytest.mark.integration

TOKEN_URL = "/api/v1/auth/token/"
ADMIN_URL = "/api/v1/admin/orders/"


class TestPublicEndpoints:
    def test_health_is_public(self, client):
        response = client.get("/health")
        assert response.status_code == 200

    def test_storefront_is_public(self, api_client):
        assert api_client.get("/api/v1/shipping/countries/").status_code == 200


class TestProtectedEndpoints:
    def test_no_token_returns_401(self, api_client):
        assert api_client.get(ADMIN_URL).status_code == 401

    def test_invalid_token_returns_401(self, api_client):
        api_client.credentials(HTTP_AUTHORIZATION="Bearer invalid.token.here")
        assert api_client.get(ADMIN_URL).status_code == 401

    def test_malformed_auth_header_returns_401(self, api_client):
        api_client.credentials(HTTP_AUTHORIZATION="Token some-token")
        assert api_client.get(ADMIN_URL).status_code == 401

    def test_401_includes_www_authenticate_header(self, api_client):
        response = api_client.get(ADMIN_URL)
        assert response.status_code == 401
        assert "Bearer" in response.get("WWW-Authenticate", "")


class TestTokenFlow:
    def test_admin_token_opens_back_office(self, api_client, admin_user):
        response = api_client.post(
            TOKEN_URL, {"username": "admin", "password": "admin-pass-123"}, format="json"
        )
        assert response.status_code == 200
        access = response.json()["access"]

        api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {access}")

        assert api_client.get(ADMIN_URL).status_code == 200

    def test_wrong_password_is_rejected(self, api_client, admin_user):
        response = api_client.post(
            TOKEN_URL, {"username": "admin", "password": "nope"}, format="json"
        )
        assert response.status_code == 401

    def test_shopper_token_is_forbidden(self, api_client, django_user_model):
        django_user_model.objects.create_user("shopper", password="shopper-pass-123")
        access = api_client.post(
            TOKEN_URL, {"username": "shopper", "password": "shopper-pass-123"}, format="json"
        ).json()["access"]

        api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {access}")

        assert api_client.get(ADMIN_URL).status_code == 403
