"""Server-side pricing of a checkout request.

Clients may send the prices they saw, but only the catalogue decides what a
line costs. A client claim that drifts from the catalogue by more than one
cent fails the request instead of being silently corrected.
"""

from dataclasses import dataclass

from checkout.errors import BusinessRuleViolation, InvalidRequest, NotFound
from checkout.order.order import PRICE_TOLERANCE
from checkout.stores.port import Catalogue, InventoryStore


@dataclass(frozen=True)
class PricedLine:
    product_id: str
    variant_id: str | None
    title: str | None
    variant_name: str | None
    quantity: int
    unit_price: float
    subtotal: float

    def as_item(self) -> dict:
        return {
            "product_id": self.product_id,
            "variant_id": self.variant_id,
            "title": self.title,
            "variant_name": self.variant_name,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "subtotal": self.subtotal,
        }


def parse_quantity(raw) -> int:
    if isinstance(raw, bool):
        raise InvalidRequest("InvalidQuantity", "Quantity must be a positive integer")
    if isinstance(raw, float) and raw.is_integer():
        raw = int(raw)
    if not isinstance(raw, int) or raw < 1:
        raise InvalidRequest("InvalidQuantity", f"Quantity must be a positive integer, got {raw!r}")
    return raw


def check_availability(inventory: InventoryStore, product_id, variant_id, quantity) -> None:
    """Pre-check only; the conditional decrement is what actually reserves stock."""
    level = inventory.get_level(product_id, variant_id)
    if level is None:
        raise NotFound("InventoryMissing", f"No inventory record for product {product_id}")
    if quantity > level.available:
        raise BusinessRuleViolation(
            "InsufficientInventory",
            f"Only {level.available} units of product {product_id} available",
        )


def authoritative_price(catalogue: Catalogue, product_id, variant_id):
    """Return (unit_price, title, variant_name) from the catalogue."""
    product = catalogue.find_product(product_id)
    if variant_id:
        variant = catalogue.find_variant(variant_id)
        if variant is None:
            raise NotFound("VariantNotFound", f"Variant {variant_id} not found")
        if str(variant.product_id) != str(product_id):
            raise BusinessRuleViolation(
                "VariantProductMismatch",
                f"Variant {variant_id} does not belong to product {product_id}",
            )
        return variant.price, product.title if product else None, variant.name

    if product is None:
        raise NotFound("ProductNotFound", f"Product {product_id} not found")
    return product.price, product.title, None


def price_line(catalogue: Catalogue, inventory: InventoryStore, item: dict) -> PricedLine:
    product_id = str(item.get("product_id") or "")
    variant_id = str(item["variant_id"]) if item.get("variant_id") else None
    quantity = parse_quantity(item.get("quantity"))

    check_availability(inventory, product_id, variant_id, quantity)
    unit_price, title, variant_name = authoritative_price(catalogue, product_id, variant_id)
    subtotal = round(unit_price * quantity, 2)

    claimed_unit = item.get("unit_price")
    if claimed_unit is not None and abs(float(claimed_unit) - unit_price) > PRICE_TOLERANCE:
        raise BusinessRuleViolation(
            "UnitPriceMismatch",
            f"Unit price {claimed_unit} for product {product_id} does not match {unit_price:.2f}",
        )
    claimed_total = item.get("total_price")
    if claimed_total is not None and abs(float(claimed_total) - subtotal) > PRICE_TOLERANCE:
        raise BusinessRuleViolation(
            "TotalPriceMismatch",
            f"Total price {claimed_total} for product {product_id} does not match {subtotal:.2f}",
        )

    return PricedLine(
        product_id=product_id,
        variant_id=variant_id,
        title=title or item.get("title"),
        variant_name=variant_name or item.get("variant_name"),
        quantity=quantity,
        unit_price=unit_price,
        subtotal=subtotal,
    )


def price_items(catalogue: Catalogue, inventory: InventoryStore, items: list[dict]) -> list[PricedLine]:
    """Price every requested line in caller order."""
    if not items:
        raise InvalidRequest("EmptyOrder", "An order needs at least one item")
    return [price_line(catalogue, inventory, item) for item in items]
