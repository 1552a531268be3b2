# Overview: Inventory export; one flattened row per product variant rendered as CSV, XLSX or printable HTML.

from __future__ import annotations

import csv
import io
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

from markupsafe import escape

from ..extensions import db
from ..models import Product
from ..time_utils import utcnow


class ExportError(Exception):
    """Raised when an export is requested in a format we cannot produce."""
    pass


# format -> content type
EXPORT_FORMATS = {
    "csv": "text/csv",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    # Rendered as an HTML table; the browser prints it to PDF
    "pdf": "text/html",
}

INVENTORY_COLUMNS = [
    "productName",
    "productCategory",
    "productBrand",
    "productSupplier",
    "variantName",
    "sku",
    "costPrice",
    "sellingPrice",
    "currentStock",
    "lowStockThreshold",
    "location",
    "profitMargin",
    "stockStatus",
]

# (heading, row key) for the printable table
HTML_COLUMNS = [
    ("Product", "productName"),
    ("Variant", "variantName"),
    ("SKU", "sku"),
    ("Category", "productCategory"),
    ("Brand", "productBrand"),
    ("Stock", "currentStock"),
    ("Price", "sellingPrice"),
    ("Status", "stockStatus"),
]


def profit_margin(cost_price, selling_price) -> str:
    """Margin on the selling price as a percentage string, e.g. "33.33%"."""
    selling = Decimal(selling_price or 0)
    if selling <= 0:
        return "0.00%"
    margin = (selling - Decimal(cost_price or 0)) / selling * 100
    return f"{margin.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)}%"


def inventory_rows() -> list[dict]:
    """Every variant of every product, products in id order, variants in position order."""
    products = db.session.query(Product).order_by(Product.id.asc()).all()

    rows = []
    for product in products:
        for variant in product.variants:
            rows.append({
                "productName": product.name,
                "productCategory": product.category,
                "productBrand": product.brand,
                "productSupplier": product.supplier,
                "variantName": variant.name,
                "sku": variant.sku,
                "costPrice": variant.cost_price,
                "sellingPrice": variant.selling_price,
                "currentStock": variant.current_stock,
                "lowStockThreshold": variant.low_stock_threshold,
                "location": variant.location or "",
                "profitMargin": profit_margin(variant.cost_price, variant.selling_price),
                "stockStatus": variant.stock_status,
            })
    return rows


def render_csv(rows: list[dict]) -> str:
    out = io.StringIO()
    writer = csv.DictWriter(out, fieldnames=INVENTORY_COLUMNS)
    writer.writeheader()
    writer.writerows(rows)
    return out.getvalue()


def render_xlsx(rows: list[dict]) -> bytes:
    from openpyxl import Workbook

    wb = Workbook()
    sheet = wb.active
    sheet.title = "Inventory"
    sheet.append(INVENTORY_COLUMNS)
    for row in rows:
        sheet.append([
            float(value) if isinstance(value, Decimal) else value
            for value in (row[key] for key in INVENTORY_COLUMNS)
        ])

    out = io.BytesIO()
    wb.save(out)
    return out.getvalue()


def render_html(rows: list[dict], generated_on: datetime) -> str:
    headings = "".join(f"<th>{title}</th>" for title, _key in HTML_COLUMNS)
    body = []
    for row in rows:
        cells = []
        for _title, key in HTML_COLUMNS:
            value = row[key]
            if key == "sellingPrice":
                value = f"${Decimal(value):.2f}"
            cells.append(f"<td>{escape(value)}</td>")
        body.append("<tr>" + "".join(cells) + "</tr>")
    table_rows = "\n".join(body)

    return (
        "<!DOCTYPE html>\n"
        "<html>\n<head>\n"
        '<meta charset="utf-8" />\n'
        "<title>Inventory Report</title>\n"
        "<style>\n"
        "body { font-family: sans-serif; }\n"
        "table { width: 100%; border-collapse: collapse; margin-top: 20px; }\n"
        "th, td { border: 1px solid #ddd; padding: 8px; text-align: left; }\n"
        "th { background-color: #f2f2f2; }\n"
        "h1 { text-align: center; }\n"
        ".date { text-align: center; margin-bottom: 20px; }\n"
        "</style>\n"
        "</head>\n<body>\n"
        "<h1>Inventory Report</h1>\n"
        f'<p class="date">Generated on: {generated_on:%Y-%m-%d}</p>\n'
        f"<table>\n<thead><tr>{headings}</tr></thead>\n"
        f"<tbody>\n{table_rows}\n</tbody>\n"
        "</table>\n</body>\n</html>\n"
    )


def export_inventory(fmt: str, *, now: datetime | None = None) -> tuple[str | bytes, str]:
    """
    Build the inventory export.

    Returns (payload, content type). Raises ExportError for formats other
    than csv, xlsx and pdf.
    """
    if fmt not in EXPORT_FORMATS:
        raise ExportError("Unsupported format")

    rows = inventory_rows()
    if fmt == "csv":
        payload = render_csv(rows)
    elif fmt == "xlsx":
        payload = render_xlsx(rows)
    else:
        payload = render_html(rows, now or utcnow())
    return payload, EXPORT_FORMATS[fmt]
