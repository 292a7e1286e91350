"""Checkout failure taxonomy.

Every failure raised by a checkout operation carries a machine-readable
``code`` and a human-readable ``message``. The subclass decides the status
class the HTTP layer reports:

    InvalidRequest         400  malformed input
    BusinessRuleViolation  400  request is well-formed but breaks a rule
    IntegrityFailure       400  tampered or unverifiable data
    AccessDenied           403  resource belongs to someone else
    NotFound               404  referenced record does not exist
    Conflict               409  concurrent or duplicate write
    ExternalServiceError   502  gateway or collaborator failure
    ConfigError            500  server-side configuration missing
"""


class CheckoutError(Exception):
    """Base class for all checkout failures."""

    category = "error"
    status_code = 400

    def __init__(self, code: str, message: str, **details) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        payload = {"code": self.code, "message": self.message}
        payload.update({k: v for k, v in self.details.items() if v is not None})
        return payload

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class InvalidRequest(CheckoutError):
    category = "validation"
    status_code = 400


class BusinessRuleViolation(CheckoutError):
    category = "business_rule"
    status_code = 400


class IntegrityFailure(CheckoutError):
    category = "integrity"
    status_code = 400


class AccessDenied(CheckoutError):
    category = "authorization"
    status_code = 403


class NotFound(CheckoutError):
    category = "not_found"
    status_code = 404


class Conflict(CheckoutError):
    category = "conflict"
    status_code = 409


class ExternalServiceError(CheckoutError):
    category = "external"
    status_code = 502


class ConfigError(ExternalServiceError):
    category = "config"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__("ConfigError", message)


class CouponRejected(BusinessRuleViolation):
    """A coupon failed one of the Discount Engine's eligibility checks.

    ``reason`` names the specific check (``Expired``, ``UsageLimitReached``,
    ``MinOrderNotMet``, ...). The code is always ``InvalidCoupon``.
    """

    def __init__(self, reason: str, message: str) -> None:
        super().__init__("InvalidCoupon", message, reason=reason)
        self.reason = reason
