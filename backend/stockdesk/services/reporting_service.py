# Overview: Read-only report projections over committed sales and the catalog.

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import func

from stockdesk.extensions import db
from stockdesk.models import Product, Sale, SaleItem, Variant
from stockdesk.time_utils import days_before, parse_iso_datetime, start_of_month, utcnow


class ReportError(Exception):
    """Raised when report parameters are invalid."""
    pass


# Bucket formats for SQLite strftime; weeks start on Monday (%W)
INTERVAL_FORMATS = {
    "day": "%Y-%m-%d",
    "week": "%Y-W%W",
    "month": "%Y-%m",
    "year": "%Y",
}


def _number(value) -> float:
    return float(value or 0)


def _margin(profit, revenue) -> float:
    revenue = Decimal(revenue or 0)
    if revenue <= 0:
        return 0.0
    return float(Decimal(profit or 0) / revenue * 100)


def resolve_range(
    start: str | None,
    end: str | None,
    *,
    default: str = "month",
    now: datetime | None = None,
) -> tuple[datetime, datetime]:
    """
    Both bounds given -> use them (inclusive). Otherwise fall back to the
    current month ("month") or the last 30 days ("30d").
    """
    if start and end:
        try:
            start_dt = parse_iso_datetime(start)
            end_dt = parse_iso_datetime(end)
        except ValueError:
            raise ReportError("startDate and endDate must be ISO-8601 dates")
        return start_dt, end_dt

    now = now or utcnow()
    if default == "30d":
        return days_before(now, 30), now
    return start_of_month(now), now


def summary(start: str | None = None, end: str | None = None, *, now: datetime | None = None) -> dict:
    start_dt, end_dt = resolve_range(start, end, now=now)

    row = db.session.query(
        func.count(Sale.id).label("count"),
        func.coalesce(func.sum(Sale.total_amount), 0).label("revenue"),
        func.coalesce(func.sum(Sale.total_profit), 0).label("profit"),
    ).filter(Sale.created_at >= start_dt, Sale.created_at <= end_dt).one()

    total_products = db.session.query(func.count(Product.id)).scalar() or 0
    low_stock_items = (
        db.session.query(func.count(Variant.id))
        .filter(Variant.current_stock <= Variant.low_stock_threshold)
        .scalar()
        or 0
    )

    return {
        "totalSales": int(row.count or 0),
        "totalRevenue": _number(row.revenue),
        "totalProfit": _number(row.profit),
        "averageProfitMargin": _margin(row.profit, row.revenue),
        "totalProducts": int(total_products),
        "lowStockItems": int(low_stock_items),
    }


def sales_over_time(
    start: str | None = None,
    end: str | None = None,
    interval: str = "day",
    *,
    now: datetime | None = None,
) -> list[dict]:
    """Revenue, profit and sale count per period, oldest period first."""
    start_dt, end_dt = resolve_range(start, end, default="30d", now=now)
    fmt = INTERVAL_FORMATS.get(interval, INTERVAL_FORMATS["day"])
    period = func.strftime(fmt, Sale.created_at)

    rows = (
        db.session.query(
            period.label("period"),
            func.coalesce(func.sum(Sale.total_amount), 0).label("revenue"),
            func.coalesce(func.sum(Sale.total_profit), 0).label("profit"),
            func.count(Sale.id).label("count"),
        )
        .filter(Sale.created_at >= start_dt, Sale.created_at <= end_dt)
        .group_by(period)
        .order_by(period.asc())
        .all()
    )
    return [
        {
            "period": r.period,
            "revenue": _number(r.revenue),
            "profit": _number(r.profit),
            "count": int(r.count),
        }
        for r in rows
    ]


def top_products(
    start: str | None = None,
    end: str | None = None,
    limit: int = 10,
    *,
    now: datetime | None = None,
) -> list[dict]:
    """Best sellers by quantity, grouped by product and variant."""
    start_dt, end_dt = resolve_range(start, end, now=now)

    quantity = func.sum(SaleItem.quantity).label("quantity_sold")
    rows = (
        db.session.query(
            SaleItem.product_id,
            SaleItem.variant,
            Product.name,
            Product.brand,
            Product.category,
            quantity,
            func.sum(SaleItem.actual_selling_price * SaleItem.quantity).label("revenue"),
            func.sum(SaleItem.profit).label("profit"),
        )
        .join(Sale, Sale.id == SaleItem.sale_id)
        .outerjoin(Product, Product.id == SaleItem.product_id)
        .filter(Sale.created_at >= start_dt, Sale.created_at <= end_dt)
        .group_by(SaleItem.product_id, SaleItem.variant, Product.name, Product.brand, Product.category)
        .order_by(quantity.desc(), SaleItem.product_id.asc())
        .limit(limit)
        .all()
    )
    return [
        {
            "product": r.product_id,
            "variant": r.variant,
            "productName": r.name,
            "brand": r.brand,
            "category": r.category,
            "quantitySold": int(r.quantity_sold or 0),
            "revenue": _number(r.revenue),
            "profit": _number(r.profit),
        }
        for r in rows
    ]


def product_profits(start: str | None = None, end: str | None = None, *, now: datetime | None = None) -> dict:
    """
    Revenue, cost and profit per product and per variant, highest profit first.

    Lines whose product or variant no longer exists are left out.
    """
    start_dt, end_dt = resolve_range(start, end, now=now)

    rows = (
        db.session.query(
            SaleItem.product_id,
            Product.name,
            Product.brand,
            Product.category,
            SaleItem.variant,
            Variant.sku,
            func.sum(SaleItem.quantity).label("quantity_sold"),
            func.sum(SaleItem.actual_selling_price * SaleItem.quantity).label("revenue"),
            func.sum(SaleItem.cost_price * SaleItem.quantity).label("cost"),
            func.sum(SaleItem.profit).label("profit"),
        )
        .join(Sale, Sale.id == SaleItem.sale_id)
        .join(Product, Product.id == SaleItem.product_id)
        .join(Variant, (Variant.product_id == Product.id) & (Variant.name == SaleItem.variant))
        .filter(Sale.created_at >= start_dt, Sale.created_at <= end_dt)
        .group_by(
            SaleItem.product_id, Product.name, Product.brand, Product.category,
            SaleItem.variant, Variant.sku,
        )
        .all()
    )

    products: dict[int, dict] = {}
    variants: list[dict] = []
    for r in rows:
        revenue = Decimal(r.revenue or 0)
        cost = Decimal(r.cost or 0)
        profit = Decimal(r.profit or 0)

        variants.append({
            "productId": r.product_id,
            "productName": r.name,
            "variantName": r.variant,
            "sku": r.sku,
            "quantitySold": int(r.quantity_sold or 0),
            "revenue": revenue,
            "cost": cost,
            "profit": profit,
        })

        entry = products.setdefault(r.product_id, {
            "productId": r.product_id,
            "productName": r.name,
            "brand": r.brand,
            "category": r.category,
            "quantitySold": 0,
            "revenue": Decimal("0"),
            "cost": Decimal("0"),
            "profit": Decimal("0"),
        })
        entry["quantitySold"] += int(r.quantity_sold or 0)
        entry["revenue"] += revenue
        entry["cost"] += cost
        entry["profit"] += profit

    def _finish(items: list[dict]) -> list[dict]:
        items.sort(key=lambda i: i["profit"], reverse=True)
        return [
            {
                **item,
                "revenue": _number(item["revenue"]),
                "cost": _number(item["cost"]),
                "profit": _number(item["profit"]),
                "margin": _margin(item["profit"], item["revenue"]),
            }
            for item in items
        ]

    return {"products": _finish(list(products.values())), "variants": _finish(variants)}
