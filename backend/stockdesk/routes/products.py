# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/stockdesk/routes/products.py
"""
Product catalog routes.

SECURITY: All routes require authentication.
- Read operations require VIEW_INVENTORY permission
- Write operations require MANAGE_PRODUCTS permission
"""
from flask import Blueprint, request, jsonify, current_app

from ..services import products_service
from ..validation import ValidationError, ConflictError, parse_page_args
from ..decorators import require_auth, require_permission

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _flag(name: str) -> bool:
    return (request.args.get(name) or "").strip().lower() in {"1", "true", "yes"}


@products_bp.get("")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_products():
    """
    List products with filters and pagination.

    Query params:
    - search: matches name, description or any variant SKU
    - category, brand, supplier: exact match
    - stockStatus: in-stock | low-stock | out-of-stock
    - lowStock: true to keep products with a variant at or below threshold
    - page, limit
    """
    try:
        page, limit = parse_page_args(
            request.args.get("page"),
            request.args.get("limit"),
            default_limit=current_app.config["DEFAULT_PAGE_LIMIT"],
            max_limit=current_app.config["MAX_PAGE_LIMIT"],
        )
        result = products_service.list_products(
            search=request.args.get("search") or None,
            category=request.args.get("category") or None,
            brand=request.args.get("brand") or None,
            supplier=request.args.get("supplier") or None,
            stock_status=request.args.get("stockStatus") or None,
            low_stock=_flag("lowStock"),
            page=page,
            limit=limit,
        )
        return jsonify(result), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400


@products_bp.get("/low-stock")
@require_auth
@require_permission("VIEW_INVENTORY")
def low_stock_products():
    return jsonify(products_service.list_low_stock()), 200


@products_bp.get("/brands")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_brands():
    return jsonify(products_service.distinct_values("brand")), 200


@products_bp.get("/categories")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_categories():
    return jsonify(products_service.distinct_values("category")), 200


@products_bp.get("/suppliers")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_suppliers():
    return jsonify(products_service.distinct_values("supplier")), 200


@products_bp.post("")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def create_product():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"error": "Request body must be a JSON object"}), 400

    try:
        product = products_service.create_product(payload)
        return jsonify(product.to_dict()), 201
    except (ValidationError, ConflictError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Failed to create product"}), 500


@products_bp.get("/<int:product_id>")
@require_auth
@require_permission("VIEW_INVENTORY")
def get_product(product_id: int):
    product = products_service.get_product(product_id)
    if not product:
        return jsonify({"error": "Product not found"}), 404
    return jsonify(product.to_dict()), 200


@products_bp.put("/<int:product_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def update_product(product_id: int):
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"error": "Request body must be a JSON object"}), 400

    try:
        product = products_service.update_product(product_id, payload)
    except (ValidationError, ConflictError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Failed to update product"}), 500

    if not product:
        return jsonify({"error": "Product not found"}), 404
    return jsonify(product.to_dict()), 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def delete_product(product_id: int):
    try:
        deleted = products_service.delete_product(product_id)
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Failed to delete product"}), 500

    if not deleted:
        return jsonify({"error": "Product not found"}), 404
    return jsonify({"message": "Product deleted successfully"}), 200
