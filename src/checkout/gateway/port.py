"""Payment gateway port (abstract interface).

Defines the contract for hosted-checkout gateways: the server opens a
checkout session for an amount, the buyer pays on the gateway's page, and
the client returns a (session id, payment id, signature) proof that the
server verifies with its secret key. Swapping FakeGateway (dev/test) for
RazorpayGateway (production) needs no change in checkout code.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class GatewayCredentials:
    """Key pair issued by the gateway. ``key_id`` is public, ``key_secret`` never leaves the server."""

    key_id: str
    key_secret: str


@dataclass(frozen=True)
class SessionResult:
    """Result of opening a checkout session."""

    success: bool
    session_id: str | None = None
    amount: int | None = None  # minor currency units
    currency: str | None = None
    failure_reason: str | None = None
    raw: dict = field(default_factory=dict)


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    provider: str = "gateway"

    def __init__(self, credentials: GatewayCredentials) -> None:
        self.credentials = credentials

    @property
    def key_id(self) -> str:
        return self.credentials.key_id

    @property
    def key_secret(self) -> str:
        return self.credentials.key_secret

    @abstractmethod
    def create_session(
        self,
        amount: int,
        currency: str,
        receipt: str,
        notes: dict | None = None,
    ) -> SessionResult:
        """Open a checkout session for ``amount`` minor units."""
        ...
