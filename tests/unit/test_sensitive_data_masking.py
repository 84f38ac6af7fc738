import pytest

pytestmark = pytest.mark.unit


class TestSensitiveDataMasking:
    def test_card_number_masked(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "test", "card": "4084084084084081"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "4084084084084081" not in result["card"]
        assert "***MASKED***" in result["card"]

    def test_paystack_secret_key_masked(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "test", "config": "sk_live_0123456789abcdef"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "0123456789abcdef" not in result["config"]
        assert "***MASKED***" in result["config"]

    def test_password_masked(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "test", "data": "password='s3cret123'"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "s3cret123" not in result["data"]
        assert "***MASKED***" in result["data"]

    def test_token_masked(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "test", "header": "token=abc123xyz"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "abc123xyz" not in result["header"]
        assert "***MASKED***" in result["header"]

    def test_authorization_header_masked(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "test", "header": "Authorization: Bearer-eyJhbGci"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "eyJhbGci" not in result["header"]

    def test_non_sensitive_data_unchanged(self):
        from config.settings import mask_sensitive_data

        event_dict = {
            "event": "order.created",
            "order_number": "ORD-20260101-00001",
            "reference": "txn_1767225600000_a1b2c3d4",
        }
        result = mask_sensitive_data(None, None, event_dict)
        assert result["order_number"] == "ORD-20260101-00001"
        assert result["reference"] == "txn_1767225600000_a1b2c3d4"
        assert result["event"] == "order.created"
