# Overview: Flask API routes for posts and engagement; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..errors import ServiceError
from ..services import content_service
from ..validation import parse_optional_datetime, require_object


posts_bp = Blueprint("posts", __name__, url_prefix="/api/posts")


@posts_bp.get("/")
@require_auth
def feed_route():
    """
    Posts visible to the caller, newest first.

    Query: author_id (profile view, pinned first), limit.
    """
    author_id = request.args.get("author_id", type=int)
    limit = request.args.get("limit", type=int)
    posts = content_service.list_visible(viewer_id=g.current_user.id, author_id=author_id, limit=limit)
    return jsonify({"posts": [content_service.post_with_engagement(p) for p in posts]}), 200


@posts_bp.post("/")
@require_auth
def create_post_route():
    """Body: {"post_type": TEXT|IMAGE|LIVE|REEL, "payload": {...}, "scheduled_at"?: ISO-8601}"""
    try:
        data = require_object(request.get_json(silent=True) or {})
        scheduled_at = parse_optional_datetime(data.get("scheduled_at"), "scheduled_at")
        post = content_service.create_post(
            g.current_user.id,
            data.get("post_type"),
            data.get("payload") or {},
            scheduled_at=scheduled_at,
        )
        return jsonify({"post": post.to_dict()}), 201

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create post")
        return jsonify({"error": "Internal server error"}), 500


@posts_bp.get("/<int:post_id>")
@require_auth
def get_post_route(post_id: int):
    post = content_service.get_post(post_id)
    if not post or not content_service.is_visible_to(post, g.current_user.id):
        return jsonify({"error": "Post not found"}), 404
    return jsonify({"post": content_service.post_with_engagement(post)}), 200


@posts_bp.delete("/<int:post_id>")
@require_auth
def delete_post_route(post_id: int):
    try:
        deleted = content_service.delete_post(post_id, g.current_user.id)
        if not deleted:
            return jsonify({"error": "Post not found"}), 404
        return jsonify({"deleted": True}), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete post")
        return jsonify({"error": "Internal server error"}), 500


@posts_bp.post("/<int:post_id>/pin")
@require_auth
def pin_post_route(post_id: int):
    try:
        post = content_service.set_pinned(post_id, g.current_user.id)
        if not post:
            return jsonify({"error": "Post not found"}), 404
        return jsonify({"post": post.to_dict()}), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to pin post")
        return jsonify({"error": "Internal server error"}), 500


@posts_bp.delete("/<int:post_id>/pin")
@require_auth
def unpin_post_route(post_id: int):
    try:
        post = content_service.unpin(post_id, g.current_user.id)
        if not post:
            return jsonify({"changed": False}), 200
        return jsonify({"post": post.to_dict(), "changed": True}), 200

    except Exception:
        current_app.logger.exception("Failed to unpin post")
        return jsonify({"error": "Internal server error"}), 500


@posts_bp.post("/<int:post_id>/engagements/<kind>")
@require_auth
def toggle_engagement_route(post_id: int, kind: str):
    """
    Like / save toggle or share (append-once).

    Optional body {"active": true|false} sets the membership explicitly.
    """
    try:
        data = require_object(request.get_json(silent=True) or {})
        active = data.get("active")
        if active is not None and not isinstance(active, bool):
            return jsonify({"error": "active must be a boolean"}), 400

        result = content_service.toggle_engagement(post_id, g.current_user.id, kind, active=active)
        if result is None:
            return jsonify({"error": "Post not found"}), 404
        return jsonify(result), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to toggle engagement")
        return jsonify({"error": "Internal server error"}), 500


@posts_bp.post("/<int:post_id>/reactions")
@require_auth
def toggle_reaction_route(post_id: int):
    """Body: {"emoji": str}"""
    try:
        data = require_object(request.get_json(silent=True) or {})
        reactions = content_service.toggle_reaction(post_id, g.current_user.id, data.get("emoji"))
        if reactions is None:
            return jsonify({"error": "Post not found"}), 404
        return jsonify({"reactions": reactions}), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to toggle reaction")
        return jsonify({"error": "Internal server error"}), 500


@posts_bp.post("/<int:post_id>/comments")
@require_auth
def add_comment_route(post_id: int):
    """Body: {"text": str}"""
    try:
        data = require_object(request.get_json(silent=True) or {})
        comment = content_service.add_comment(post_id, g.current_user.id, data.get("text"))
        if comment is None:
            return jsonify({"error": "Post not found"}), 404
        return jsonify({"comment": comment.to_dict()}), 201

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to add comment")
        return jsonify({"error": "Internal server error"}), 500


@posts_bp.get("/<int:post_id>/live-access")
@require_auth
def live_access_route(post_id: int):
    post = content_service.get_post(post_id)
    if not post or not content_service.is_visible_to(post, g.current_user.id):
        return jsonify({"error": "Post not found"}), 404
    return jsonify({"post_id": post.id, "has_access": content_service.has_live_access(post, g.current_user.id)}), 200


@posts_bp.post("/<int:post_id>/live-access")
@require_auth
def purchase_live_access_route(post_id: int):
    """
    Pay for a live stream from the caller's wallet.

    Already-held access is returned with charged_cents 0. 402 when the
    balance does not cover the price.
    """
    try:
        access = content_service.purchase_live_access(post_id, g.current_user.id)
        if access is None:
            return jsonify({"error": "Post not found"}), 404
        return jsonify({"access": access, "balance_cents": g.current_user.balance_cents}), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to purchase live access")
        return jsonify({"error": "Internal server error"}), 500
