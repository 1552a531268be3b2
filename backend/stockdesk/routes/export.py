# Overview: Flask API route for inventory downloads; returns a file attachment instead of JSON.

from flask import Blueprint, Response, request, jsonify, current_app

from ..services import export_service
from ..services.export_service import ExportError
from ..decorators import require_auth, require_permission

export_bp = Blueprint("export", __name__, url_prefix="/api/export")


@export_bp.get("/inventory")
@require_auth
@require_permission("VIEW_INVENTORY")
def export_inventory_route():
    """Query params: format (csv|xlsx|pdf, default csv)"""
    fmt = request.args.get("format", "csv")
    try:
        payload, content_type = export_service.export_inventory(fmt)
    except ExportError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to export inventory")
        return jsonify({"error": "Failed to export inventory"}), 500

    return Response(
        payload,
        content_type=content_type,
        headers={"Content-Disposition": f"attachment; filename=inventory.{fmt}"},
    )
