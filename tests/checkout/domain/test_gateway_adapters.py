"""Tests for the payment gateway port, its adapters and signature helpers."""

import json

import httpx
import pytest
from checkout.errors import ConfigError
from checkout.gateway import get_gateway, load_credentials, reset_gateway, set_gateway
from checkout.gateway.fake_adapter import FAKE_CREDENTIALS, FakeGateway
from checkout.gateway.port import GatewayCredentials, SessionResult
from checkout.gateway.razorpay_adapter import RazorpayGateway
from checkout.payment.signature import compute_signature, signature_matches

CREDENTIALS = GatewayCredentials(key_id="rzp_test_key", key_secret="s3cret")


class TestSignature:
    def test_signature_is_hex_hmac(self):
        signature = compute_signature("s3cret", "order_1", "pay_1")
        assert len(signature) == 64
        assert int(signature, 16) >= 0

    def test_matching_signature(self):
        signature = compute_signature("s3cret", "order_1", "pay_1")
        assert signature_matches("s3cret", "order_1", "pay_1", signature) is True

    def test_signature_bound_to_payment(self):
        signature = compute_signature("s3cret", "order_1", "pay_1")
        assert signature_matches("s3cret", "order_1", "pay_2", signature) is False

    def test_signature_bound_to_secret(self):
        signature = compute_signature("other", "order_1", "pay_1")
        assert signature_matches("s3cret", "order_1", "pay_1", signature) is False

    def test_empty_signature_never_matches(self):
        assert signature_matches("s3cret", "order_1", "pay_1", "") is False
        assert signature_matches("s3cret", "order_1", "pay_1", None) is False

    def test_non_ascii_signature_does_not_match(self):
        assert signature_matches("s3cret", "order_1", "pay_1", "é" * 64) is False
        assert signature_matches("s3cret", "order_1", "pay_1", "签名") is False


class TestFakeGateway:
    def test_default_session_succeeds(self):
        gateway = FakeGateway()
        result = gateway.create_session(amount=1800, currency="INR", receipt="20260101-ABC123")
        assert isinstance(result, SessionResult)
        assert result.success is True
        assert result.session_id.startswith("order_fake")
        assert result.amount == 1800
        assert result.currency == "INR"

    def test_configured_session_fails(self):
        gateway = FakeGateway()
        gateway.configure(should_succeed=False, failure_reason="Gateway down")
        result = gateway.create_session(amount=1800, currency="INR", receipt="r-1")
        assert result.success is False
        assert result.session_id is None
        assert result.failure_reason == "Gateway down"

    def test_calls_are_recorded(self):
        gateway = FakeGateway()
        gateway.create_session(amount=500, currency="USD", receipt="r-2", notes={"order_id": "o-1"})
        assert len(gateway.calls) == 1
        call = gateway.calls[0]
        assert call["method"] == "create_session"
        assert call["amount"] == 500
        assert call["receipt"] == "r-2"
        assert call["notes"] == {"order_id": "o-1"}

    def test_complete_checkout_signs_with_key_secret(self):
        gateway = FakeGateway()
        session_id = gateway.create_session(amount=500, currency="INR", receipt="r-3").session_id
        payment_id, signature = gateway.complete_checkout(session_id)
        assert payment_id.startswith("pay_fake")
        assert signature_matches(FAKE_CREDENTIALS.key_secret, session_id, payment_id, signature)

    def test_exposes_public_key_id(self):
        assert FakeGateway().key_id == "rzp_test_fake"


def _razorpay(handler):
    return RazorpayGateway(CREDENTIALS, api_base_url="https://razorpay.test/", transport=httpx.MockTransport(handler))


class TestRazorpayGateway:
    def test_session_created(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={"id": "order_Rz123", "amount": 1800, "currency": "INR", "receipt": "20260101-ABC123"},
            )

        result = _razorpay(handler).create_session(amount=1800, currency="INR", receipt="20260101-ABC123")

        assert result.success is True
        assert result.session_id == "order_Rz123"
        assert result.amount == 1800
        assert seen["url"] == "https://razorpay.test/v1/orders"
        assert seen["auth"].startswith("Basic ")
        assert seen["body"] == {"amount": 1800, "currency": "INR", "receipt": "20260101-ABC123", "notes": {}}

    def test_rejected_request_reports_gateway_description(self):
        def handler(request):
            return httpx.Response(400, json={"error": {"code": "BAD_REQUEST_ERROR", "description": "amount too low"}})

        result = _razorpay(handler).create_session(amount=1, currency="INR", receipt="r-1")
        assert result.success is False
        assert result.failure_reason == "amount too low"

    def test_non_json_error_body(self):
        def handler(request):
            return httpx.Response(503, text="upstream unavailable")

        result = _razorpay(handler).create_session(amount=100, currency="INR", receipt="r-1")
        assert result.success is False
        assert result.failure_reason == "upstream unavailable"

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        result = _razorpay(handler).create_session(amount=100, currency="INR", receipt="r-1")
        assert result.success is False
        assert "Gateway unreachable" in result.failure_reason


class TestGatewayFactory:
    def test_default_is_fake(self, monkeypatch):
        monkeypatch.delenv("PAYMENT_GATEWAY_ADAPTER", raising=False)
        reset_gateway()
        assert isinstance(get_gateway(), FakeGateway)

    def test_same_instance_until_reset(self):
        gateway = get_gateway()
        assert get_gateway() is gateway
        reset_gateway()
        assert get_gateway() is not gateway

    def test_set_gateway_overrides(self):
        custom = FakeGateway()
        set_gateway(custom)
        assert get_gateway() is custom

    def test_razorpay_selected_by_environment(self, monkeypatch):
        monkeypatch.setenv("PAYMENT_GATEWAY_ADAPTER", "razorpay")
        monkeypatch.setenv("PAYMENT_GATEWAY_KEY_ID", "rzp_live_key")
        monkeypatch.setenv("PAYMENT_GATEWAY_KEY_SECRET", "live-secret")
        reset_gateway()
        gateway = get_gateway()
        assert isinstance(gateway, RazorpayGateway)
        assert gateway.key_id == "rzp_live_key"

    def test_razorpay_without_credentials(self, monkeypatch):
        monkeypatch.setenv("PAYMENT_GATEWAY_ADAPTER", "razorpay")
        monkeypatch.delenv("PAYMENT_GATEWAY_KEY_ID", raising=False)
        monkeypatch.delenv("PAYMENT_GATEWAY_KEY_SECRET", raising=False)
        reset_gateway()
        with pytest.raises(ConfigError):
            get_gateway()

    def test_unknown_adapter(self, monkeypatch):
        monkeypatch.setenv("PAYMENT_GATEWAY_ADAPTER", "paypal")
        reset_gateway()
        with pytest.raises(ConfigError):
            get_gateway()

    def test_load_credentials_requires_both_keys(self, monkeypatch):
        monkeypatch.setenv("PAYMENT_GATEWAY_KEY_ID", "rzp_test_key")
        monkeypatch.delenv("PAYMENT_GATEWAY_KEY_SECRET", raising=False)
        with pytest.raises(ConfigError) as exc:
            load_credentials()
        assert exc.value.code == "ConfigError"
