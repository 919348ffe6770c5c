import pytest

from config.settings import mask_sensitive_data

pytestmark = pytest.mark.unit


class TestSensitiveDataMasking:
    def test_card_number_masked(self):
        event_dict = {"event": "test", "details": "card 4242 4242 4242 4242 declined"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "4242 4242 4242 4242" not in result["details"]
        assert "***MASKED***" in result["details"]

    def test_client_secret_masked(self):
        event_dict = {"event": "test", "secret": "pi_3Nabc_secret_XyZ123"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "XyZ123" not in result["secret"]

    def test_stripe_key_masked(self):
        event_dict = {"event": "test", "config": "using sk_live_abcDEF123"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "sk_live_abcDEF123" not in result["config"]

    def test_password_masked(self):
        event_dict = {"event": "test", "data": "password='s3cret123'"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "s3cret123" not in result["data"]
        assert "***MASKED***" in result["data"]

    def test_token_masked(self):
        event_dict = {"event": "test", "header": "token=abc123xyz"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "abc123xyz" not in result["header"]

    def test_non_sensitive_data_unchanged(self):
        event_dict = {"event": "order.created", "order_id": "ORD-123456789", "total": "113.00"}
        result = mask_sensitive_data(None, None, event_dict)
        assert result == {"event": "order.created", "order_id": "ORD-123456789", "total": "113.00"}

    def test_non_string_values_untouched(self):
        event_dict = {"event": "test", "line_count": 4}
        assert mask_sensitive_data(None, None, event_dict)["line_count"] == 4
