"""Per-user state tracking for Locust load test scenarios.

Each Locust user instance maintains its own state — no cross-user sharing.
State tracks entity IDs returned by creation endpoints so follow-up
operations can reference them.
"""

from dataclasses import dataclass, field


@dataclass
class BuyerState:
    """Tracks state for a single simulated buyer's checkout."""

    buyer_id: str | None = None
    address_id: str | None = None
    order_id: str | None = None
    grand_total: float = 0.0
    current_status: str = "pending"
    session_id: str | None = None
    attempt_ids: list[str] = field(default_factory=list)


@dataclass
class CouponState:
    """Tracks coupons created by a simulated admin."""

    coupon_id: str | None = None
    code: str | None = None
    created_codes: list[str] = field(default_factory=list)
