# Overview: Flask API routes for the notification feed.

from flask import Blueprint, request, jsonify, current_app

from ..services import notification_service
from ..validation import ValidationError, parse_page_args
from ..decorators import require_auth, require_permission

notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


def _parse_bool(raw):
    if raw is None or raw == "":
        return None
    value = raw.strip().lower()
    if value in {"true", "1"}:
        return True
    if value in {"false", "0"}:
        return False
    raise ValidationError("isRead must be true or false")


@notifications_bp.get("")
@require_auth
@require_permission("MANAGE_NOTIFICATIONS")
def list_notifications():
    """Query params: type, isRead, page, limit (default 20)."""
    try:
        page, limit = parse_page_args(
            request.args.get("page"),
            request.args.get("limit"),
            default_limit=20,
            max_limit=current_app.config["MAX_PAGE_LIMIT"],
        )
        result = notification_service.list_notifications(
            type_=request.args.get("type") or None,
            is_read=_parse_bool(request.args.get("isRead")),
            page=page,
            limit=limit,
        )
        return jsonify(result), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400


@notifications_bp.put("")
@require_auth
@require_permission("MANAGE_NOTIFICATIONS")
def mark_notifications():
    """
    Body: {markAllAsRead: true} or {ids: [...], isRead: bool}.
    """
    data = request.get_json(silent=True) or {}
    try:
        if data.get("markAllAsRead"):
            notification_service.mark_read(mark_all=True)
            return jsonify({"message": "All notifications marked as read"}), 200

        is_read = data.get("isRead", True)
        if not isinstance(is_read, bool):
            raise ValidationError("isRead must be true or false")
        notification_service.mark_read(ids=data.get("ids"), is_read=is_read)
        return jsonify({"message": "Notifications updated"}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update notifications")
        return jsonify({"error": "Failed to update notifications"}), 500


@notifications_bp.put("/<int:notification_id>")
@require_auth
@require_permission("MANAGE_NOTIFICATIONS")
def update_notification(notification_id: int):
    data = request.get_json(silent=True) or {}
    is_read = data.get("isRead", True)
    if not isinstance(is_read, bool):
        return jsonify({"error": "isRead must be true or false"}), 400

    notification = notification_service.set_read(notification_id, is_read)
    if not notification:
        return jsonify({"error": "Notification not found"}), 404
    return jsonify(notification.to_dict()), 200


@notifications_bp.delete("/<int:notification_id>")
@require_auth
@require_permission("MANAGE_NOTIFICATIONS")
def delete_notification(notification_id: int):
    if not notification_service.delete_notification(notification_id):
        return jsonify({"error": "Notification not found"}), 404
    return jsonify({"message": "Notification deleted successfully"}), 200
