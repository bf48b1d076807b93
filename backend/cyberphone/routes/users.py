# Overview: Flask API routes for user profiles and the follow graph; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..validation import require_object
from ..errors import ServiceError
from ..services import auth_service, social_service


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("/search")
@require_auth
def search_users_route():
    users = auth_service.search_users(request.args.get("q", ""))
    return jsonify({"users": [u.to_dict() for u in users]}), 200


@users_bp.get("/<int:user_id>")
@require_auth
def get_user_route(user_id: int):
    user = auth_service.get_user(user_id)
    if not user:
        return jsonify({"error": "User not found"}), 404

    data = user.to_dict()
    data["followers"] = social_service.list_followers(user_id)
    data["following"] = social_service.list_following(user_id)
    data["is_followed_by_me"] = social_service.is_following(g.current_user.id, user_id)
    return jsonify({"user": data}), 200


@users_bp.post("/<int:user_id>/follow")
@require_auth
def toggle_follow_route(user_id: int):
    """
    Flip the caller's follow of user_id.

    Optional body {"follow": true|false} sets the state instead of flipping it,
    which makes client retries safe.
    """
    try:
        data = require_object(request.get_json(silent=True) or {})
        follow = data.get("follow")
        if follow is not None and not isinstance(follow, bool):
            return jsonify({"error": "follow must be a boolean"}), 400

        following = social_service.toggle_follow(g.current_user.id, user_id, follow=follow)
        if following is None:
            return jsonify({"following": social_service.is_following(g.current_user.id, user_id), "changed": False}), 200
        return jsonify({"following": following, "changed": True}), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to toggle follow")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.get("/<int:user_id>/followers")
@require_auth
def list_followers_route(user_id: int):
    return jsonify({"user_ids": social_service.list_followers(user_id)}), 200


@users_bp.get("/<int:user_id>/following")
@require_auth
def list_following_route(user_id: int):
    return jsonify({"user_ids": social_service.list_following(user_id)}), 200
