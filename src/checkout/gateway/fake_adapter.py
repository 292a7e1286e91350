"""Configurable fake payment gateway for development and testing.

Simulates a hosted-checkout gateway without any external calls. It can be
configured at runtime to refuse sessions, and ``complete_checkout`` plays
the buyer's side of the flow, returning the payment id and signature the
real gateway would hand back to the client.
"""

from uuid import uuid4

from checkout.gateway.port import GatewayCredentials, PaymentGateway, SessionResult
from checkout.payment.signature import compute_signature

FAKE_CREDENTIALS = GatewayCredentials(key_id="rzp_test_fake", key_secret="fake-gateway-secret")


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    provider = "fake"

    def __init__(self, credentials: GatewayCredentials | None = None) -> None:
        super().__init__(credentials or FAKE_CREDENTIALS)
        self.should_succeed: bool = True
        self.failure_reason: str = "Gateway unavailable"
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Gateway unavailable") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def create_session(
        self,
        amount: int,
        currency: str,
        receipt: str,
        notes: dict | None = None,
    ) -> SessionResult:
        call = {
            "method": "create_session",
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
        }
        self.calls.append(call)

        if not self.should_succeed:
            return SessionResult(success=False, failure_reason=self.failure_reason)

        session_id = f"order_fake{uuid4().hex[:14]}"
        return SessionResult(
            success=True,
            session_id=session_id,
            amount=amount,
            currency=currency,
            raw={"id": session_id, "amount": amount, "currency": currency, "receipt": receipt, "status": "created"},
        )

    def complete_checkout(self, session_id: str) -> tuple[str, str]:
        """Simulate the buyer paying. Returns (payment_id, signature)."""
        payment_id = f"pay_fake{uuid4().hex[:14]}"
        return payment_id, compute_signature(self.key_secret, session_id, payment_id)
