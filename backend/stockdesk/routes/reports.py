# Overview: Flask API routes for reports operations; parses input and returns JSON responses.

# backend/stockdesk/routes/reports.py
"""
Read-only reporting endpoints.

All endpoints accept startDate and endDate (ISO-8601). When either is
missing the report falls back to its default window.
"""
from flask import Blueprint, request, jsonify

from ..services import reporting_service
from ..services.reporting_service import ReportError
from ..decorators import require_auth, require_permission

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _window():
    return request.args.get("startDate") or None, request.args.get("endDate") or None


@reports_bp.get("/summary")
@require_auth
@require_permission("VIEW_REPORTS")
def summary():
    start, end = _window()
    try:
        return jsonify(reporting_service.summary(start, end)), 200
    except ReportError as e:
        return jsonify({"error": str(e)}), 400


@reports_bp.get("/sales-over-time")
@require_auth
@require_permission("VIEW_REPORTS")
def sales_over_time():
    """Query params: startDate, endDate, interval (day|week|month|year)"""
    start, end = _window()
    interval = request.args.get("interval", "day")
    if interval not in reporting_service.INTERVAL_FORMATS:
        return jsonify({"error": "interval must be day, week, month or year"}), 400
    try:
        return jsonify(reporting_service.sales_over_time(start, end, interval)), 200
    except ReportError as e:
        return jsonify({"error": str(e)}), 400


@reports_bp.get("/top-products")
@require_auth
@require_permission("VIEW_REPORTS")
def top_products():
    start, end = _window()
    limit = request.args.get("limit", default=10, type=int)
    if limit is None or limit < 1:
        return jsonify({"error": "limit must be a positive integer"}), 400
    try:
        return jsonify(reporting_service.top_products(start, end, limit)), 200
    except ReportError as e:
        return jsonify({"error": str(e)}), 400


@reports_bp.get("/product-profits")
@require_auth
@require_permission("VIEW_REPORTS")
def product_profits():
    start, end = _window()
    try:
        return jsonify(reporting_service.product_profits(start, end)), 200
    except ReportError as e:
        return jsonify({"error": str(e)}), 400
