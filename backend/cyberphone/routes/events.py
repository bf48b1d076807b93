# Overview: Flask API routes for community events.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..errors import ServiceError
from ..services import event_service
from ..validation import parse_optional_datetime, require_object


events_bp = Blueprint("events", __name__, url_prefix="/api/events")


@events_bp.get("/")
@require_auth
def list_events_route():
    return jsonify({"events": [e.to_dict() for e in event_service.list_events()]}), 200


@events_bp.post("/")
@require_auth
def create_event_route():
    """Body: {"title", "starts_at": ISO-8601, "description"?, "location"?, "event_type"?, "image_url"?}"""
    try:
        data = require_object(request.get_json(silent=True) or {})
        event = event_service.create_event(
            g.current_user.id,
            data.get("title"),
            parse_optional_datetime(data.get("starts_at"), "starts_at"),
            description=data.get("description"),
            location=data.get("location"),
            event_type=data.get("event_type") or event_service.EVENT_TYPE_ONLINE,
            image_url=data.get("image_url"),
        )
        return jsonify({"event": event.to_dict()}), 201

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create event")
        return jsonify({"error": "Internal server error"}), 500


@events_bp.post("/<int:event_id>/join")
@require_auth
def toggle_join_route(event_id: int):
    try:
        attending = event_service.toggle_join(event_id, g.current_user.id)
        if attending is None:
            return jsonify({"error": "Event not found"}), 404
        return jsonify({"attending": attending, "event": event_service.get_event(event_id).to_dict()}), 200

    except Exception:
        current_app.logger.exception("Failed to toggle event attendance")
        return jsonify({"error": "Internal server error"}), 500
