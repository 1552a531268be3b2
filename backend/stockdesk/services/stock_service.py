# Overview: Stock reservation and profit calculation for a single sale line.

"""
Stock Reservation & Profit Calculator

Invariants (authoritative):
- current_stock never goes below zero: the availability check happens
  before the decrement, on a product row loaded under the write lock.
- cost_price and selling_price are copied from the variant at sale time.
- actual_selling_price defaults to the variant's selling_price.
- profit = (actual_selling_price - cost_price) * quantity
- line_total = actual_selling_price * quantity
- All money math is Decimal and is not rounded here.
- low_stock is True when the stock left is at or below low_stock_threshold.

reserve() mutates the product handle it is given and nothing else; the
caller owns the transaction and decides when to flush or roll back.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ..extensions import db
from ..models import Product, SaleItem
from .concurrency import lock_for_update
from .errors import InsufficientStock, ProductNotFound, SaleValidationError, VariantNotFound


@dataclass(frozen=True)
class SaleItemResult:
    product_id: int
    product_name: str
    variant_name: str
    sku: str
    quantity: int
    cost_price: Decimal
    selling_price: Decimal
    actual_selling_price: Decimal
    profit: Decimal
    line_total: Decimal
    remaining_stock: int
    low_stock_threshold: int

    @property
    def low_stock(self) -> bool:
        return self.remaining_stock <= self.low_stock_threshold

    def to_sale_item(self) -> SaleItem:
        return SaleItem(
            product_id=self.product_id,
            variant=self.variant_name,
            quantity=self.quantity,
            cost_price=self.cost_price,
            selling_price=self.selling_price,
            actual_selling_price=self.actual_selling_price,
            profit=self.profit,
        )


def _as_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def load_product_for_update(product_id: int) -> Product:
    """
    Fetch a product under the write lock, refreshing any stale copy held in
    the session's identity map.
    """
    query = db.session.query(Product).filter_by(id=product_id).populate_existing()
    product = lock_for_update(query).first()
    if product is None:
        raise ProductNotFound(
            f"Product not found: {product_id}",
            details={"product": product_id},
        )
    return product


def reserve(
    product: Product,
    variant_name: str,
    quantity: int,
    actual_price: Decimal | None = None,
) -> SaleItemResult:
    """Check availability, snapshot prices, compute profit and decrement stock."""
    if quantity < 1:
        raise SaleValidationError("quantity must be >= 1", details={"quantity": quantity})

    variant = product.variant_named(variant_name)
    if variant is None:
        raise VariantNotFound(
            f"Variant {variant_name!r} not found for product {product.name!r}",
            details={"product": product.id, "variant": variant_name},
        )

    if variant.current_stock < quantity:
        raise InsufficientStock(
            f"Insufficient stock for {product.name} - {variant.name}. "
            f"Available: {variant.current_stock}, requested: {quantity}",
            details={
                "product": product.id,
                "variant": variant.name,
                "available": variant.current_stock,
                "requested": quantity,
            },
        )

    cost_price = _as_decimal(variant.cost_price)
    selling_price = _as_decimal(variant.selling_price)
    actual = selling_price if actual_price is None else _as_decimal(actual_price)

    variant.current_stock -= quantity

    return SaleItemResult(
        product_id=product.id,
        product_name=product.name,
        variant_name=variant.name,
        sku=variant.sku,
        quantity=quantity,
        cost_price=cost_price,
        selling_price=selling_price,
        actual_selling_price=actual,
        profit=(actual - cost_price) * quantity,
        line_total=actual * quantity,
        remaining_stock=variant.current_stock,
        low_stock_threshold=variant.low_stock_threshold,
    )
