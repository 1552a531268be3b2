"""
Sales Service - atomic sale posting

A sale touches several product rows (one stock decrement per line) and
inserts one sale record. Callers must see either all of it or none of it.

Posting sequence (one unit of work on db.session):
1. Take the write lock (begin_write_transaction).
2. For each line, in request order: load product under lock, reserve stock,
   flush. Low-stock events go to the outbox, not the database.
3. Allocate an invoice number unless the caller supplied one.
4. Normalise payment status (see resolve_payment_status).
5. Insert the sale with its items and totals.
6. Commit. Any failure before this point rolls back every decrement.
7. Publish new_sale and the queued low_stock events (best-effort).

Concurrent writers are not retried here: a conflict is reported as
TransactionConflict and the caller may resubmit.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product, Sale
from ..models.notifications import TYPE_LOW_STOCK, TYPE_NEW_SALE, TYPE_SALE_UPDATED
from ..models.sales import (
    FLAG_GREEN,
    FLAG_STATUSES,
    PAYMENT_STATUS_COMPLETED,
    PAYMENT_STATUS_PENDING,
    PAYMENT_STATUSES,
)
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    coerce_int,
    coerce_money,
    validate_payload,
)
from stockdesk.time_utils import utcnow, parse_iso_datetime
from .concurrency import CONFLICT_ERRORS, begin_write_transaction
from .errors import (
    SaleError,
    SaleNotFound,
    SaleValidationError,
    TransactionConflict,
)
from .invoice_service import next_invoice_number
from .notification_service import NotificationEvent, NotificationOutbox
from .stock_service import SaleItemResult, load_product_for_update, reserve


# Statuses a new sale may be created with. Cancelled is a valid stored value
# (editable later) but is not accepted on creation.
CREATE_PAYMENT_STATUSES = (PAYMENT_STATUS_COMPLETED, PAYMENT_STATUS_PENDING)

SALE_METADATA_POLICY = ModelValidationPolicy(
    writable_fields={
        "customer": "customer",
        "paymentMethod": "payment_method",
        "paymentStatus": "payment_status",
        "notes": "notes",
        "flagStatus": "flag_status",
    },
)


@dataclass(frozen=True)
class SaleItemDraft:
    product_id: int
    variant: str
    quantity: int
    actual_selling_price: Decimal | None = None


@dataclass
class SaleDraft:
    items: list[SaleItemDraft]
    payment_method: str = "Cash"
    payment_status: str | None = None
    customer: str | None = None
    notes: str | None = None
    invoice_number: str | None = None
    flag_status: str = FLAG_GREEN


@dataclass
class _Totals:
    amount: Decimal = Decimal("0")
    profit: Decimal = Decimal("0")
    results: list[SaleItemResult] = field(default_factory=list)

    def add(self, result: SaleItemResult) -> None:
        self.amount += result.line_total
        self.profit += result.profit
        self.results.append(result)


def _optional_text(payload: dict, key: str) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise SaleValidationError(f"{key} must be a string")
    return value.strip() or None


def _parse_item(raw, index: int) -> SaleItemDraft:
    if not isinstance(raw, dict):
        raise SaleValidationError(f"items[{index}] must be an object")

    product = raw.get("product")
    variant = raw.get("variant")
    if product in (None, "") or not variant:
        raise SaleValidationError(
            f"items[{index}] requires product and variant",
            details={"index": index},
        )
    if not isinstance(variant, str):
        raise SaleValidationError(f"items[{index}].variant must be a string")

    try:
        product_id = coerce_int(product, f"items[{index}].product")
        if "quantity" not in raw:
            raise ValidationError(f"items[{index}].quantity is required")
        quantity = coerce_int(raw["quantity"], f"items[{index}].quantity")
        if quantity < 1:
            raise ValidationError(f"items[{index}].quantity must be >= 1")
        actual = raw.get("actualSellingPrice")
        actual_price = None if actual is None else coerce_money(
            actual, f"items[{index}].actualSellingPrice"
        )
    except ValidationError as exc:
        raise SaleValidationError(str(exc), details={"index": index}) from exc

    return SaleItemDraft(
        product_id=product_id,
        variant=variant,
        quantity=quantity,
        actual_selling_price=actual_price,
    )


def parse_sale_draft(payload) -> SaleDraft:
    """Validate a POST /api/sales body. Nothing touches the database here."""
    if not isinstance(payload, dict):
        raise SaleValidationError("Invalid JSON payload")

    items = payload.get("items")
    if not isinstance(items, list) or not items:
        raise SaleValidationError("Sale must contain at least one item")

    payment_method = payload.get("paymentMethod") or "Cash"
    if not isinstance(payment_method, str):
        raise SaleValidationError("paymentMethod must be a string")

    flag_status = payload.get("flagStatus") or FLAG_GREEN
    if flag_status not in FLAG_STATUSES:
        raise SaleValidationError("flagStatus must be green or red")

    return SaleDraft(
        items=[_parse_item(raw, i) for i, raw in enumerate(items)],
        payment_method=payment_method.strip() or "Cash",
        payment_status=payload.get("paymentStatus"),
        customer=_optional_text(payload, "customer"),
        notes=_optional_text(payload, "notes"),
        invoice_number=_optional_text(payload, "invoiceNumber"),
        flag_status=flag_status,
    )


def resolve_payment_status(value) -> str:
    """Anything other than Completed/Pending (Cancelled included) becomes Completed."""
    if value in CREATE_PAYMENT_STATUSES:
        return value
    return PAYMENT_STATUS_COMPLETED


def _post_sale_locked(draft: SaleDraft, now: datetime, outbox: NotificationOutbox) -> Sale:
    totals = _Totals()

    for line in draft.items:
        product = load_product_for_update(line.product_id)
        result = reserve(product, line.variant, line.quantity, line.actual_selling_price)
        # Write the decrement now so a second line on the same product sees it
        db.session.flush()
        totals.add(result)

        if result.low_stock:
            outbox.add(NotificationEvent(
                type=TYPE_LOW_STOCK,
                message=(
                    f"Low stock alert: {result.product_name} - {result.variant_name} "
                    f"has {result.remaining_stock} units left"
                ),
                related_to=result.product_id,
                related_model="Product",
            ))

    invoice_number = draft.invoice_number or next_invoice_number(now)

    sale = Sale(
        invoice_number=invoice_number,
        customer=draft.customer,
        total_amount=totals.amount,
        total_profit=totals.profit,
        payment_method=draft.payment_method,
        payment_status=resolve_payment_status(draft.payment_status),
        flag_status=draft.flag_status,
        notes=draft.notes,
        created_at=now,
        updated_at=now,
    )
    sale.items = [r.to_sale_item() for r in totals.results]

    db.session.add(sale)
    db.session.flush()
    return sale


def post_sale(draft: SaleDraft, *, now: datetime | None = None) -> Sale:
    """
    Post a sale atomically: every stock decrement and the sale insert commit
    together, or nothing does.
    """
    if not draft.items:
        raise SaleValidationError("Sale must contain at least one item")

    now = now or utcnow()
    outbox = NotificationOutbox()

    try:
        begin_write_transaction()
        sale = _post_sale_locked(draft, now, outbox)
        db.session.commit()
    except SaleError:
        db.session.rollback()
        raise
    except IntegrityError as exc:
        db.session.rollback()
        raise TransactionConflict(
            "Sale could not be saved because a conflicting record exists; please retry",
            details={"invoiceNumber": draft.invoice_number} if draft.invoice_number else {},
        ) from exc
    except CONFLICT_ERRORS as exc:
        db.session.rollback()
        raise TransactionConflict(
            "Sale could not be committed due to a concurrent update; please retry"
        ) from exc
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        "Posted sale %s (%d items, total %s)",
        sale.invoice_number, len(draft.items), sale.total_amount,
    )

    outbox.add(NotificationEvent(
        type=TYPE_NEW_SALE,
        message=f"New sale: {sale.invoice_number} for {sale.total_amount:.2f}",
        related_to=sale.id,
        related_model="Sale",
    ))
    outbox.flush()
    return sale


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise SaleNotFound("Sale not found", details={"id": sale_id})
    return sale


def sale_with_products(sale: Sale) -> dict:
    """
    Sale JSON plus a read-time lookup of product display fields.

    The stored item always holds the product id; productInfo is null when the
    product has since been deleted.
    """
    data = sale.to_dict()
    product_ids = {item.product_id for item in sale.items}
    products = {}
    if product_ids:
        rows = (
            db.session.query(Product.id, Product.name, Product.brand, Product.category)
            .filter(Product.id.in_(product_ids))
            .all()
        )
        products = {
            r.id: {"name": r.name, "brand": r.brand, "category": r.category}
            for r in rows
        }
    for item in data["items"]:
        item["productInfo"] = products.get(item["product"])
    return data


def list_sales(
    *,
    page: int = 1,
    limit: int = 10,
    search: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    payment_status: str | None = None,
) -> dict:
    """Paginated sale listing, newest first."""
    query = db.session.query(Sale)

    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Sale.invoice_number.ilike(pattern), Sale.customer.ilike(pattern)))

    try:
        start_dt = parse_iso_datetime(start_date)
        end_dt = parse_iso_datetime(end_date)
    except ValueError:
        raise SaleValidationError("startDate and endDate must be ISO-8601 dates")
    if start_dt:
        query = query.filter(Sale.created_at >= start_dt)
    if end_dt:
        query = query.filter(Sale.created_at <= end_dt)

    if payment_status and payment_status != "all":
        query = query.filter(Sale.payment_status == payment_status)

    total = query.count()
    sales = (
        query.order_by(Sale.created_at.desc(), Sale.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "sales": [s.to_dict() for s in sales],
        "pagination": {
            "total": total,
            "page": page,
            "limit": limit,
            "pages": (total + limit - 1) // limit,
        },
    }


def update_sale(sale_id: int, payload) -> Sale:
    """
    Apply metadata edits. Items, totals and invoice number are never touched;
    keys other than the editable metadata fields are ignored.
    """
    try:
        patch = validate_payload(
            model=Sale,
            payload=payload,
            policy=SALE_METADATA_POLICY,
            partial=True,
            ignore_unknown=True,
        )
    except ValidationError as exc:
        raise SaleValidationError(str(exc)) from exc

    if "payment_status" in patch and patch["payment_status"] not in PAYMENT_STATUSES:
        raise SaleValidationError(
            f"paymentStatus must be one of {', '.join(PAYMENT_STATUSES)}"
        )
    if "flag_status" in patch and patch["flag_status"] not in FLAG_STATUSES:
        raise SaleValidationError("flagStatus must be green or red")

    sale = get_sale(sale_id)
    for attr, value in patch.items():
        setattr(sale, attr, value)
    sale.updated_at = utcnow()
    db.session.commit()

    outbox = NotificationOutbox()
    outbox.add(NotificationEvent(
        type=TYPE_SALE_UPDATED,
        message=f"Sale updated: {sale.invoice_number}",
        related_to=sale.id,
        related_model="Sale",
    ))
    outbox.flush()
    return sale


def delete_sale(sale_id: int) -> None:
    """Remove a sale and its items. Stock is NOT restored."""
    sale = get_sale(sale_id)
    db.session.delete(sale)
    db.session.commit()
