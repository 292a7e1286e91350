"""Order queries — a buyer's order history, the admin listing and single lookups."""

import math

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.errors import NotFound
from checkout.order.order import Order

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 50


@checkout.repository(part_of=Order)
class OrderRepository:
    def find_by_number(self, order_number) -> Order | None:
        results = self._dao.query.filter(order_number=order_number).all().items
        return results[0] if results else None

    def page(self, page, limit, **filters):
        """Newest-first page of orders plus the total match count."""
        query = self._dao.query
        if filters:
            query = query.filter(**filters)
        results = query.order_by("-created_at").offset((page - 1) * limit).limit(limit).all()
        return results.items, results.total


def normalize_paging(page=None, limit=None):
    """page >= 1 (default 1); limit clamped to 1..50 (default 10)."""
    try:
        page = int(page) if page is not None else 1
    except (TypeError, ValueError):
        page = 1
    try:
        limit = int(limit) if limit is not None else DEFAULT_PAGE_SIZE
    except (TypeError, ValueError):
        limit = DEFAULT_PAGE_SIZE
    return max(1, page), min(MAX_PAGE_SIZE, max(1, limit))


def _paginate(page, limit, **filters) -> dict:
    page, limit = normalize_paging(page, limit)
    orders, total = current_domain.repository_for(Order).page(page, limit, **filters)
    return {
        "orders": orders,
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if total else 0,
    }


def list_orders_for_buyer(buyer_id, page=None, limit=None) -> dict:
    return _paginate(page, limit, buyer_id=str(buyer_id))


def list_all_orders(page=None, limit=None, status=None) -> dict:
    filters = {"status": status} if status else {}
    return _paginate(page, limit, **filters)


def load_order(order_id) -> Order:
    try:
        return current_domain.repository_for(Order).get(order_id)
    except ObjectNotFoundError:
        raise NotFound("OrderNotFound", f"Order {order_id} not found")


def get_order_for_buyer(order_id, buyer_id) -> Order:
    """Fetch an order, refusing buyers who do not own it."""
    order = load_order(order_id)
    order.ensure_owned_by(buyer_id)
    return order
