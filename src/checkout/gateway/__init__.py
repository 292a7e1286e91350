"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- FakeGateway for development and testing
- RazorpayGateway for production, selected with PAYMENT_GATEWAY_ADAPTER
"""

import os

from checkout.errors import ConfigError
from checkout.gateway.fake_adapter import FakeGateway
from checkout.gateway.port import GatewayCredentials, PaymentGateway

_current_gateway: PaymentGateway | None = None


def load_credentials() -> GatewayCredentials:
    """Read the gateway key pair from the environment."""
    key_id = os.environ.get("PAYMENT_GATEWAY_KEY_ID")
    key_secret = os.environ.get("PAYMENT_GATEWAY_KEY_SECRET")
    if not key_id or not key_secret:
        raise ConfigError("Payment gateway credentials are not configured")
    return GatewayCredentials(key_id=key_id, key_secret=key_secret)


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway. Defaults to FakeGateway."""
    global _current_gateway
    if _current_gateway is None:
        adapter = os.environ.get("PAYMENT_GATEWAY_ADAPTER", "fake")
        if adapter == "fake":
            _current_gateway = FakeGateway()
        elif adapter == "razorpay":
            from checkout.gateway.razorpay_adapter import RAZORPAY_API_BASE, RazorpayGateway

            _current_gateway = RazorpayGateway(
                load_credentials(),
                api_base_url=os.environ.get("PAYMENT_GATEWAY_API_BASE", RAZORPAY_API_BASE),
            )
        else:
            raise ConfigError(f"Unknown payment gateway adapter: {adapter}")
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None
