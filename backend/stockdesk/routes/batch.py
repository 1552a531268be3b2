# Overview: Flask API routes for bulk catalog adjustments.

from flask import Blueprint, request, jsonify, current_app

from ..services import batch_service
from ..validation import ValidationError
from ..decorators import require_auth, require_permission

batch_bp = Blueprint("batch", __name__, url_prefix="/api/batch")


def _body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@batch_bp.post("/add-stock")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def add_stock_route():
    """Body: {productIds: [...], quantity: int > 0}"""
    data = _body()
    try:
        return jsonify(batch_service.add_stock(data.get("productIds"), data.get("quantity"))), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to add stock")
        return jsonify({"error": "Failed to update stock"}), 500


@batch_bp.post("/decrease-price")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def decrease_price_route():
    """Body: {productIds: [...], percentage: 0 < pct <= 100}"""
    data = _body()
    try:
        return jsonify(batch_service.decrease_prices(data.get("productIds"), data.get("percentage"))), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to decrease prices")
        return jsonify({"error": "Failed to update prices"}), 500


@batch_bp.post("/mark-out-of-stock")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def mark_out_of_stock_route():
    data = _body()
    try:
        return jsonify(batch_service.mark_out_of_stock(data.get("productIds"))), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to mark products out of stock")
        return jsonify({"error": "Failed to update stock"}), 500
