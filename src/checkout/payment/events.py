"""Domain events for the PaymentAttempt aggregate."""

from protean.fields import DateTime, Float, Identifier, String

from checkout.domain import checkout


@checkout.event(part_of="PaymentAttempt")
class PaymentAttemptOpened:
    """A payment attempt was opened for an order."""

    __version__ = 1

    attempt_id = Identifier(required=True)
    order_id = Identifier(required=True)
    method = String(required=True)
    provider = String(required=True)
    requested_amount = Float(required=True)
    currency = String(required=True)
    session_id = String()
    opened_at = DateTime(required=True)


@checkout.event(part_of="PaymentAttempt")
class PaymentCaptured:
    """The gateway confirmed the funds for an attempt."""

    __version__ = 1

    attempt_id = Identifier(required=True)
    order_id = Identifier(required=True)
    captured_amount = Float(required=True)
    transaction_id = String()
    captured_at = DateTime(required=True)


@checkout.event(part_of="PaymentAttempt")
class PaymentAttemptFailed:
    """An attempt was rejected, for example by a bad signature."""

    __version__ = 1

    attempt_id = Identifier(required=True)
    order_id = Identifier(required=True)
    reason = String(required=True)
    failed_at = DateTime(required=True)
