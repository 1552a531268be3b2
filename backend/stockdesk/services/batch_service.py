# Overview: Bulk stock and price adjustments across selected products.

"""
Batch mutators share the catalog write path but not the sale invariants:
each applies one uniform change to every variant of every selected product,
commits once, then emits one notification per product. Ids that do not
exist are skipped.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

from ..extensions import db
from ..models import Product
from ..models.notifications import TYPE_PRICE_CHANGE, TYPE_STOCK_UPDATE
from ..validation import ValidationError, coerce_int
from .concurrency import lock_for_update, run_with_retry
from .notification_service import NotificationEvent, NotificationOutbox

CENT = Decimal("0.01")


def _normalize_ids(product_ids) -> list[int]:
    if not isinstance(product_ids, list) or not product_ids:
        raise ValidationError("No products selected")
    return [coerce_int(pid, "productIds") for pid in product_ids]


def _apply(product_ids: list[int], mutate, describe, event_type: str) -> list[Product]:
    def _op():
        query = db.session.query(Product).filter(Product.id.in_(product_ids)).order_by(Product.id.asc())
        products = lock_for_update(query).all()
        for product in products:
            for variant in product.variants:
                mutate(variant)
        db.session.commit()
        return products

    products = run_with_retry(_op)

    outbox = NotificationOutbox()
    for product in products:
        outbox.add(NotificationEvent(
            type=event_type,
            message=describe(product),
            related_to=product.id,
            related_model="Product",
        ))
    outbox.flush()
    return products


def add_stock(product_ids, quantity) -> dict:
    ids = _normalize_ids(product_ids)
    try:
        qty = coerce_int(quantity, "quantity")
    except ValidationError:
        raise ValidationError("Invalid quantity")
    if qty <= 0:
        raise ValidationError("Invalid quantity")

    def mutate(variant):
        variant.current_stock += qty

    products = _apply(
        ids,
        mutate,
        lambda p: f"Added {qty} units to all variants of {p.name}",
        TYPE_STOCK_UPDATE,
    )
    return {
        "success": True,
        "message": f"Added {qty} units to {len(products)} products",
        "count": len(products),
    }


def discounted_price(price: Decimal, percentage: Decimal) -> Decimal:
    """price * (1 - pct/100), rounded half-up to cents."""
    factor = (Decimal("100") - percentage) / Decimal("100")
    return (Decimal(price) * factor).quantize(CENT, rounding=ROUND_HALF_UP)


def decrease_prices(product_ids, percentage) -> dict:
    ids = _normalize_ids(product_ids)
    if percentage is None or isinstance(percentage, bool):
        raise ValidationError("Invalid percentage")
    try:
        pct = Decimal(str(percentage))
    except ArithmeticError:
        raise ValidationError("Invalid percentage")
    if not pct.is_finite() or pct <= 0 or pct > 100:
        raise ValidationError("Invalid percentage")

    def mutate(variant):
        variant.selling_price = discounted_price(variant.selling_price, pct)

    products = _apply(
        ids,
        mutate,
        lambda p: f"Price decreased by {pct}% for {p.name}",
        TYPE_PRICE_CHANGE,
    )
    return {
        "success": True,
        "message": f"Decreased prices for {len(products)} products by {pct}%",
        "count": len(products),
    }


def mark_out_of_stock(product_ids) -> dict:
    ids = _normalize_ids(product_ids)

    def mutate(variant):
        variant.current_stock = 0

    products = _apply(
        ids,
        mutate,
        lambda p: f"Marked all variants of {p.name} as out of stock",
        TYPE_STOCK_UPDATE,
    )
    return {
        "success": True,
        "message": f"Marked {len(products)} products as out of stock",
        "count": len(products),
    }
