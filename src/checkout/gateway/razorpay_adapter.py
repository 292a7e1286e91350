"""Razorpay payment gateway adapter.

Opens checkout sessions through Razorpay's Orders API over httpx, using
HTTP basic auth with the key pair. The session id returned to the client is
the Razorpay order id; the client later posts back the payment id and
signature for verification.
"""

import httpx
import structlog

from checkout.gateway.port import GatewayCredentials, PaymentGateway, SessionResult

logger = structlog.get_logger(__name__)

RAZORPAY_API_BASE = "https://api.razorpay.com"
_ORDERS_ENDPOINT = "/v1/orders"


class RazorpayGateway(PaymentGateway):
    """Production Razorpay gateway adapter."""

    provider = "razorpay"

    def __init__(
        self,
        credentials: GatewayCredentials,
        api_base_url: str = RAZORPAY_API_BASE,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        super().__init__(credentials)
        self.api_base_url = api_base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self.api_base_url,
            auth=(self.credentials.key_id, self.credentials.key_secret),
            timeout=self.timeout,
            transport=self._transport,
        )

    def create_session(
        self,
        amount: int,
        currency: str,
        receipt: str,
        notes: dict | None = None,
    ) -> SessionResult:
        payload = {
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
        }
        try:
            with self._client() as client:
                response = client.post(_ORDERS_ENDPOINT, json=payload)
        except httpx.HTTPError as exc:
            logger.warning("Razorpay session request failed", receipt=receipt, error=str(exc))
            return SessionResult(success=False, failure_reason=f"Gateway unreachable: {exc}")

        if response.status_code >= 400:
            try:
                detail = response.json().get("error", {}).get("description", response.text)
            except ValueError:
                detail = response.text
            logger.warning(
                "Razorpay rejected session request",
                receipt=receipt,
                status_code=response.status_code,
                detail=detail,
            )
            return SessionResult(success=False, failure_reason=detail or f"HTTP {response.status_code}")

        body = response.json()
        return SessionResult(
            success=True,
            session_id=body["id"],
            amount=body.get("amount", amount),
            currency=body.get("currency", currency),
            raw=body,
        )
