"""PaymentAttempt aggregate (CQRS) — one try at collecting an order's money.

Attempts are never deleted. A cash-on-delivery attempt stays pending until
the courier collects; a gateway attempt is pending while the buyer is on
the hosted checkout page and is captured (or failed) once the returned
signature has been checked.

State Machine:
    pending -> authorized -> captured -> refunded / partially_refunded
    pending -> captured
    pending / authorized -> failed
"""

from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, String, ValueObject

from checkout.domain import checkout
from checkout.errors import BusinessRuleViolation
from checkout.payment.events import PaymentAttemptFailed, PaymentAttemptOpened, PaymentCaptured

AMOUNT_TOLERANCE = 0.01


class AttemptStatus(Enum):
    PENDING = "pending"
    AUTHORIZED = "authorized"
    CAPTURED = "captured"
    FAILED = "failed"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


class PaymentMethod(Enum):
    COD = "cod"
    CARD = "card"
    UPI = "upi"


GATEWAY_METHODS = {PaymentMethod.CARD.value, PaymentMethod.UPI.value}

_VALID_TRANSITIONS = {
    AttemptStatus.PENDING: {AttemptStatus.AUTHORIZED, AttemptStatus.CAPTURED, AttemptStatus.FAILED},
    AttemptStatus.AUTHORIZED: {AttemptStatus.CAPTURED, AttemptStatus.FAILED},
    AttemptStatus.CAPTURED: {AttemptStatus.REFUNDED, AttemptStatus.PARTIALLY_REFUNDED},
    AttemptStatus.PARTIALLY_REFUNDED: {AttemptStatus.REFUNDED},
    AttemptStatus.FAILED: set(),  # Terminal
    AttemptStatus.REFUNDED: set(),  # Terminal
}

_OPEN_STATES = {AttemptStatus.PENDING.value, AttemptStatus.AUTHORIZED.value}


@checkout.value_object(part_of="PaymentAttempt")
class GatewayInfo:
    """What the hosted-checkout gateway told us about this attempt."""

    session_id = String(max_length=255)
    payment_id = String(max_length=255)
    signature = String(max_length=255)
    receipt = String(max_length=255)


@checkout.aggregate
class PaymentAttempt:
    order_id = Identifier(required=True)
    buyer_id = Identifier(required=True)
    currency = String(max_length=3, default="INR")
    requested_amount = Float(required=True, min_value=0.0)
    authorized_amount = Float(default=0.0, min_value=0.0)
    captured_amount = Float(default=0.0, min_value=0.0)
    refunded_amount = Float(default=0.0, min_value=0.0)
    method = String(choices=PaymentMethod, required=True)
    provider = String(max_length=50)
    transaction_id = String(max_length=255)
    session_id = String(max_length=255)  # Gateway session reference, used to find the attempt on verify
    status = String(choices=AttemptStatus, default=AttemptStatus.PENDING.value)
    failure_reason = String(max_length=500)
    gateway_info = ValueObject(GatewayInfo)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def amounts_must_not_exceed_what_came_before(self):
        requested = self.requested_amount or 0.0
        authorized = self.authorized_amount or 0.0
        captured = self.captured_amount or 0.0
        if authorized > requested + AMOUNT_TOLERANCE:
            raise ValidationError({"authorized_amount": ["Cannot authorize more than was requested"]})
        if captured > authorized + AMOUNT_TOLERANCE:
            raise ValidationError({"captured_amount": ["Cannot capture more than was authorized"]})
        if (self.refunded_amount or 0.0) > captured + AMOUNT_TOLERANCE:
            raise ValidationError({"refunded_amount": ["Cannot refund more than was captured"]})

    # -------------------------------------------------------------------
    # Factories
    # -------------------------------------------------------------------
    @classmethod
    def _open(cls, order, method, provider, gateway_info=None):
        now = datetime.now(UTC)
        attempt = cls(
            order_id=str(order.id),
            buyer_id=str(order.buyer_id),
            currency=order.currency,
            requested_amount=order.pricing.grand_total,
            method=method,
            provider=provider,
            session_id=gateway_info.session_id if gateway_info else None,
            gateway_info=gateway_info,
            status=AttemptStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        attempt.raise_(
            PaymentAttemptOpened(
                attempt_id=str(attempt.id),
                order_id=str(order.id),
                method=method,
                provider=provider,
                requested_amount=attempt.requested_amount,
                currency=attempt.currency,
                session_id=attempt.session_id,
                opened_at=now,
            )
        )
        return attempt

    @classmethod
    def open_cash_on_delivery(cls, order):
        return cls._open(order, PaymentMethod.COD.value, provider="cod")

    @classmethod
    def open_gateway(cls, order, method, provider, session_id, receipt):
        return cls._open(
            order,
            method,
            provider=provider,
            gateway_info=GatewayInfo(session_id=session_id, receipt=receipt),
        )

    # -------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------
    @property
    def is_open(self) -> bool:
        return self.status in _OPEN_STATES

    def _assert_can_transition(self, target_status):
        current = AttemptStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise BusinessRuleViolation(
                "InvalidPaymentTransition",
                f"Cannot move payment attempt from {current.value} to {target_status.value}",
            )

    def _with_gateway_result(self, payment_id, signature):
        info = self.gateway_info
        return GatewayInfo(
            session_id=info.session_id if info else self.session_id,
            receipt=info.receipt if info else None,
            payment_id=payment_id,
            signature=signature,
        )

    def capture(self, payment_id=None, signature=None):
        """Confirm the full requested amount was collected."""
        self._assert_can_transition(AttemptStatus.CAPTURED)

        now = datetime.now(UTC)
        with atomic_change(self):
            self.authorized_amount = self.requested_amount
            self.captured_amount = self.requested_amount
            self.transaction_id = payment_id
            if payment_id:
                self.gateway_info = self._with_gateway_result(payment_id, signature)
            self.status = AttemptStatus.CAPTURED.value
            self.updated_at = now

        self.raise_(
            PaymentCaptured(
                attempt_id=str(self.id),
                order_id=str(self.order_id),
                captured_amount=self.captured_amount,
                transaction_id=payment_id,
                captured_at=now,
            )
        )

    def fail(self, reason, payment_id=None, signature=None):
        self._assert_can_transition(AttemptStatus.FAILED)

        now = datetime.now(UTC)
        with atomic_change(self):
            self.status = AttemptStatus.FAILED.value
            self.failure_reason = reason
            if payment_id:
                self.gateway_info = self._with_gateway_result(payment_id, signature)
            self.updated_at = now

        self.raise_(
            PaymentAttemptFailed(
                attempt_id=str(self.id),
                order_id=str(self.order_id),
                reason=reason,
                failed_at=now,
            )
        )


@checkout.repository(part_of=PaymentAttempt)
class PaymentAttemptRepository:
    def for_order(self, order_id) -> list[PaymentAttempt]:
        return self._dao.query.filter(order_id=str(order_id)).all().items

    def find_open_cod(self, order_id) -> PaymentAttempt | None:
        for attempt in self.for_order(order_id):
            if attempt.method == PaymentMethod.COD.value and attempt.is_open:
                return attempt
        return None

    def find_pending_by_session(self, session_id) -> PaymentAttempt | None:
        if not session_id:
            return None
        results = self._dao.query.filter(session_id=str(session_id), status=AttemptStatus.PENDING.value).all().items
        return results[0] if results else None
