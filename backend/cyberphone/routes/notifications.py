# Overview: Flask API routes for the caller's notification feed.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..services import notification_service


notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.get("/")
@require_auth
def list_notifications_route():
    """Query: unread=1 for unread only, limit."""
    me = g.current_user.id
    unread_only = request.args.get("unread", "").lower() in {"1", "true", "yes"}
    limit = request.args.get("limit", type=int)
    items = notification_service.list_for(me, unread_only=unread_only, limit=limit)
    return jsonify({
        "notifications": [n.to_dict() for n in items],
        "unread_count": notification_service.unread_count(me),
    }), 200


@notifications_bp.post("/read-all")
@require_auth
def mark_all_read_route():
    try:
        changed = notification_service.mark_all_read(g.current_user.id)
        return jsonify({"marked_read": changed}), 200
    except Exception:
        current_app.logger.exception("Failed to mark notifications read")
        return jsonify({"error": "Internal server error"}), 500
