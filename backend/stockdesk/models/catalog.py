from __future__ import annotations

from decimal import Decimal

from sqlalchemy.ext.orderinglist import ordering_list

from ..extensions import db
from stockdesk.time_utils import to_utc_z


# Stock status labels shown in inventory exports
STOCK_OUT = "Out of Stock"
STOCK_LOW = "Low Stock"
STOCK_IN = "In Stock"


def money(value: Decimal | None) -> float | None:
    """JSON representation of a stored decimal amount."""
    if value is None:
        return None
    return float(value)


class Product(db.Model):
    """
    Product master data.

    A product owns an ordered list of variants. Variants are not addressable
    on their own: they are loaded, validated and persisted through the
    product aggregate.

    SKU DESIGN DECISION:
    - SKUs are unique across ALL products (unique index on product_variants.sku)
    - Variant names are unique within a product
    Both rules are also checked explicitly by products_service so callers get
    a readable error instead of an IntegrityError.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_name", "name"),
        db.Index("ix_products_updated_at", "updated_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(120), nullable=False, index=True)
    brand = db.Column(db.String(120), nullable=False, index=True)
    supplier = db.Column(db.String(120), nullable=False, index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    variants = db.relationship(
        "Variant",
        back_populates="product",
        order_by="Variant.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} variants={len(self.variants)}>"

    def variant_named(self, name: str) -> "Variant | None":
        for variant in self.variants:
            if variant.name == name:
                return variant
        return None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "brand": self.brand,
            "supplier": self.supplier,
            "variants": [v.to_dict() for v in self.variants],
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class Variant(db.Model):
    """
    SKU-level configuration of a product with its own price and stock.

    current_stock is the only field the sale path mutates. The CHECK
    constraint is a last line of defence; stock_service.reserve refuses to
    decrement below zero before the database ever sees the write.
    """
    __tablename__ = "product_variants"
    __table_args__ = (
        db.UniqueConstraint("product_id", "name", name="uq_product_variants_product_name"),
        db.CheckConstraint("current_stock >= 0", name="current_stock_non_negative"),
        db.CheckConstraint("low_stock_threshold >= 1", name="low_stock_threshold_positive"),
        db.CheckConstraint("cost_price >= 0", name="cost_price_non_negative"),
        db.CheckConstraint("selling_price >= 0", name="selling_price_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position = db.Column(db.Integer, nullable=False, default=0)

    name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64), nullable=False, unique=True)

    cost_price = db.Column(db.Numeric(12, 2), nullable=False)
    selling_price = db.Column(db.Numeric(12, 2), nullable=False)

    current_stock = db.Column(db.Integer, nullable=False, default=0)
    low_stock_threshold = db.Column(db.Integer, nullable=False, default=5)
    location = db.Column(db.String(120), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    product = db.relationship("Product", back_populates="variants")
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Variant sku={self.sku!r} stock={self.current_stock}>"

    @property
    def is_low_stock(self) -> bool:
        return self.current_stock <= self.low_stock_threshold

    @property
    def stock_status(self) -> str:
        if self.current_stock == 0:
            return STOCK_OUT
        if self.is_low_stock:
            return STOCK_LOW
        return STOCK_IN

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "sku": self.sku,
            "costPrice": money(self.cost_price),
            "sellingPrice": money(self.selling_price),
            "currentStock": self.current_stock,
            "lowStockThreshold": self.low_stock_threshold,
            "location": self.location,
        }
