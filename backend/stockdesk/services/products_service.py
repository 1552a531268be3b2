# backend/stockdesk/services/products_service.py
"""
Products Service - catalog store

VARIANT RULES (checked here, not left to database errors):
- At least one variant per product
- Variant names unique within the product
- SKUs unique across every product
- currentStock >= 0, lowStockThreshold >= 1, prices >= 0 with two decimals

Unknown JSON keys on products and variants are dropped, so the dashboard can
send back the object it received.
"""
from __future__ import annotations

from sqlalchemy import and_, or_

from ..extensions import db
from ..models import Product, Variant
from ..models.notifications import (
    TYPE_PRODUCT_ADDED,
    TYPE_PRODUCT_DELETED,
    TYPE_PRODUCT_UPDATED,
)
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_variant,
    validate_payload,
)
from stockdesk.time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry
from .notification_service import NotificationEvent, NotificationOutbox
from .settings_service import default_low_stock_threshold

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name": "name",
        "description": "description",
        "category": "category",
        "brand": "brand",
        "supplier": "supplier",
    },
    required_on_create=frozenset({"name", "category", "brand", "supplier"}),
)

VARIANT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name": "name",
        "sku": "sku",
        "costPrice": "cost_price",
        "sellingPrice": "selling_price",
        "currentStock": "current_stock",
        "lowStockThreshold": "low_stock_threshold",
        "location": "location",
    },
    required_on_create=frozenset({"name", "sku", "costPrice", "sellingPrice"}),
)

STOCK_STATUSES = {"in-stock", "low-stock", "out-of-stock"}
DISTINCT_FIELDS = {"brand": Product.brand, "category": Product.category, "supplier": Product.supplier}


def validate_variants(raw_variants) -> list[dict]:
    """Validate a full variant list and return attribute dicts in order."""
    if not isinstance(raw_variants, list) or not raw_variants:
        raise ValidationError("At least one variant is required")

    default_threshold = None
    variant_rows: list[dict] = []
    names: set[str] = set()
    skus: set[str] = set()

    for index, raw in enumerate(raw_variants):
        if not isinstance(raw, dict):
            raise ValidationError(f"variants[{index}] must be an object")
        row = validate_payload(
            model=Variant,
            payload=raw,
            policy=VARIANT_POLICY,
            partial=False,
            ignore_unknown=True,
        )
        enforce_rules_variant(row)

        row.setdefault("current_stock", 0)
        if row.get("low_stock_threshold") is None:
            if default_threshold is None:
                default_threshold = default_low_stock_threshold()
            row["low_stock_threshold"] = default_threshold

        if row["name"] in names:
            raise ValidationError(f"Duplicate variant name: {row['name']}")
        if row["sku"] in skus:
            raise ValidationError(f"Duplicate SKU in request: {row['sku']}")
        names.add(row["name"])
        skus.add(row["sku"])
        variant_rows.append(row)

    return variant_rows


def ensure_skus_available(skus: list[str], exclude_product_id: int | None = None) -> None:
    query = db.session.query(Variant.sku).filter(Variant.sku.in_(skus))
    if exclude_product_id is not None:
        query = query.filter(Variant.product_id != exclude_product_id)
    taken = sorted(row.sku for row in query.all())
    if taken:
        raise ConflictError(f"One or more SKUs already exist: {', '.join(taken)}")


def _replace_variants(product: Product, variant_rows: list[dict]) -> None:
    """
    Reconcile the variant list in place, matching existing rows by SKU.

    Removed rows are deleted and flushed before new rows are inserted so a
    reused name or SKU does not trip the unique indexes mid-flush.
    """
    existing = {v.sku: v for v in product.variants}
    ordered: list[Variant] = []
    for row in variant_rows:
        variant = existing.pop(row["sku"], None)
        if variant is None:
            variant = Variant(**row)
        else:
            for attr, value in row.items():
                setattr(variant, attr, value)
        ordered.append(variant)

    if existing:
        for stale in existing.values():
            product.variants.remove(stale)
        db.session.flush()

    product.variants = ordered
    product.variants.reorder()


def list_products(
    *,
    search: str | None = None,
    category: str | None = None,
    brand: str | None = None,
    supplier: str | None = None,
    stock_status: str | None = None,
    low_stock: bool = False,
    page: int = 1,
    limit: int = 10,
) -> dict:
    """Filtered, paginated catalog listing (most recently updated first)."""
    query = db.session.query(Product)

    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            Product.name.ilike(pattern),
            Product.description.ilike(pattern),
            Product.variants.any(Variant.sku.ilike(pattern)),
        ))

    if category:
        query = query.filter(Product.category == category)
    if brand:
        query = query.filter(Product.brand == brand)
    if supplier:
        query = query.filter(Product.supplier == supplier)

    if low_stock:
        query = query.filter(Product.variants.any(Variant.current_stock <= Variant.low_stock_threshold))

    if stock_status:
        if stock_status not in STOCK_STATUSES:
            raise ValidationError("stockStatus must be in-stock, low-stock or out-of-stock")
        if stock_status == "in-stock":
            cond = and_(Variant.current_stock > 0, Variant.current_stock > Variant.low_stock_threshold)
        elif stock_status == "low-stock":
            cond = and_(Variant.current_stock > 0, Variant.current_stock <= Variant.low_stock_threshold)
        else:
            cond = Variant.current_stock == 0
        query = query.filter(Product.variants.any(cond))

    total = query.count()
    products = (
        query.order_by(Product.updated_at.desc(), Product.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return {
        "products": [p.to_dict() for p in products],
        "pagination": {
            "total": total,
            "page": page,
            "limit": limit,
            "pages": (total + limit - 1) // limit,
        },
    }


def get_product(product_id: int) -> Product | None:
    return db.session.get(Product, product_id)


def create_product(payload) -> Product:
    """Create a product with its variants; emits product_added after commit."""
    patch = validate_payload(
        model=Product,
        payload=payload,
        policy=PRODUCT_POLICY,
        partial=False,
        ignore_unknown=True,
    )
    variant_rows = validate_variants(payload.get("variants"))
    ensure_skus_available([s["sku"] for s in variant_rows])

    product = Product(**patch)
    product.variants = [Variant(**row) for row in variant_rows]
    db.session.add(product)
    db.session.commit()

    outbox = NotificationOutbox()
    outbox.add(NotificationEvent(
        type=TYPE_PRODUCT_ADDED,
        message=f"New product added: {product.name}",
        related_to=product.id,
        related_model="Product",
    ))
    outbox.flush()
    return product


def update_product(product_id: int, payload) -> Product | None:
    """
    Update product fields and, when "variants" is present, the variant list.

    Returns None if the product does not exist.
    """
    patch = validate_payload(
        model=Product,
        payload=payload,
        policy=PRODUCT_POLICY,
        partial=True,
        ignore_unknown=True,
    )
    variant_rows = validate_variants(payload["variants"]) if "variants" in payload else None

    def _op():
        product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if product is None:
            return None

        if variant_rows is not None:
            ensure_skus_available([s["sku"] for s in variant_rows], exclude_product_id=product.id)
            _replace_variants(product, variant_rows)

        for attr, value in patch.items():
            setattr(product, attr, value)
        product.updated_at = utcnow()

        db.session.commit()
        return product

    product = run_with_retry(_op)
    if product is None:
        return None

    outbox = NotificationOutbox()
    outbox.add(NotificationEvent(
        type=TYPE_PRODUCT_UPDATED,
        message=f"Product updated: {product.name}",
        related_to=product.id,
        related_model="Product",
    ))
    outbox.flush()
    return product


def delete_product(product_id: int) -> bool:
    """Delete a product and its variants. Past sales keep their product id."""
    product = db.session.get(Product, product_id)
    if product is None:
        return False

    name = product.name
    db.session.delete(product)
    db.session.commit()

    outbox = NotificationOutbox()
    outbox.add(NotificationEvent(
        type=TYPE_PRODUCT_DELETED,
        message=f"Product deleted: {name}",
        related_to=product_id,
        related_model="Product",
    ))
    outbox.flush()
    return True


def list_low_stock() -> list[dict]:
    """Products with at least one variant at or below its threshold."""
    rows = (
        db.session.query(Product, Variant)
        .join(Variant, Variant.product_id == Product.id)
        .filter(Variant.current_stock <= Variant.low_stock_threshold)
        .order_by(Product.id.asc(), Variant.position.asc())
        .all()
    )

    grouped: dict[int, dict] = {}
    for product, variant in rows:
        entry = grouped.setdefault(product.id, {
            "id": product.id,
            "name": product.name,
            "brand": product.brand,
            "category": product.category,
            "lowStockVariants": [],
        })
        entry["lowStockVariants"].append({
            "name": variant.name,
            "sku": variant.sku,
            "currentStock": variant.current_stock,
            "lowStockThreshold": variant.low_stock_threshold,
        })
    return list(grouped.values())


def distinct_values(field: str) -> list[str]:
    column = DISTINCT_FIELDS.get(field)
    if column is None:
        raise ValueError(f"Unsupported field: {field}")
    rows = db.session.query(column).distinct().order_by(column.asc()).all()
    return [r[0] for r in rows if r[0]]
