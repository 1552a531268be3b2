# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/stockdesk/routes/sales.py
"""Sales API routes with permission enforcement"""

from flask import Blueprint, request, jsonify, current_app

from ..services import sales_service
from ..services.errors import SaleError
from ..validation import ValidationError, parse_page_args
from ..decorators import require_auth, require_permission


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _page_args():
    return parse_page_args(
        request.args.get("page"),
        request.args.get("limit"),
        default_limit=current_app.config["DEFAULT_PAGE_LIMIT"],
        max_limit=current_app.config["MAX_PAGE_LIMIT"],
    )


@sales_bp.post("")
@require_auth
@require_permission("POST_SALE")
def post_sale_route():
    """
    Post a sale: validates stock, decrements it and records the sale atomically.

    Requires: POST_SALE permission
    """
    try:
        draft = sales_service.parse_sale_draft(request.get_json(silent=True))
        sale = sales_service.post_sale(draft)
        return jsonify(sale.to_dict()), 201

    except SaleError as e:
        if e.http_status >= 500:
            current_app.logger.warning("Sale not committed: %s", e)
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to post sale")
        return jsonify({"error": "Failed to create sale"}), 500


@sales_bp.get("")
@require_auth
@require_permission("VIEW_SALES")
def list_sales_route():
    """
    List sales, newest first.

    Query params: page, limit, search, startDate, endDate, paymentStatus
    """
    try:
        page, limit = _page_args()
        result = sales_service.list_sales(
            page=page,
            limit=limit,
            search=request.args.get("search") or None,
            start_date=request.args.get("startDate") or None,
            end_date=request.args.get("endDate") or None,
            payment_status=request.args.get("paymentStatus") or None,
        )
        return jsonify(result), 200

    except (SaleError, ValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return jsonify({"error": "Failed to fetch sales"}), 500


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_permission("VIEW_SALES")
def get_sale_route(sale_id: int):
    """Get a sale with product name/brand/category joined onto each item."""
    try:
        sale = sales_service.get_sale(sale_id)
        return jsonify(sales_service.sale_with_products(sale)), 200
    except SaleError as e:
        return jsonify(e.to_dict()), e.http_status


@sales_bp.put("/<int:sale_id>")
@require_auth
@require_permission("EDIT_SALE")
def update_sale_route(sale_id: int):
    """
    Update sale metadata (customer, paymentMethod, paymentStatus, notes, flagStatus).

    Items and totals cannot be changed.
    """
    try:
        sale = sales_service.update_sale(sale_id, request.get_json(silent=True) or {})
        return jsonify(sale.to_dict()), 200

    except SaleError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to update sale")
        return jsonify({"error": "Failed to update sale"}), 500


@sales_bp.delete("/<int:sale_id>")
@require_auth
@require_permission("DELETE_SALE")
def delete_sale_route(sale_id: int):
    """Delete a sale. Stock is not restored."""
    try:
        sales_service.delete_sale(sale_id)
        return jsonify({"message": "Sale deleted successfully"}), 200

    except SaleError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to delete sale")
        return jsonify({"error": "Failed to delete sale"}), 500
