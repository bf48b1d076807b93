# Overview: Flask API routes for sponsored campaigns and the ad-mixed feed.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..errors import ServiceError
from ..services import ad_service, content_service
from ..validation import require_object


ads_bp = Blueprint("ads", __name__, url_prefix="/api/ads")


@ads_bp.post("/")
@require_auth
def create_campaign_route():
    """
    Body: {"title", "description", "target_audience", "budget_cents",
           "objective"?, "image_url"?, "link_url"?, "cta_text"?}

    The budget is paid up front; 402 when the balance does not cover it.
    """
    try:
        data = require_object(request.get_json(silent=True) or {})
        campaign = ad_service.create_campaign(g.current_user.id, data)
        return jsonify({"campaign": campaign.to_dict(), "balance_cents": g.current_user.balance_cents}), 201

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create ad campaign")
        return jsonify({"error": "Internal server error"}), 500


@ads_bp.get("/mine")
@require_auth
def my_campaigns_route():
    campaigns = ad_service.list_campaigns_for_owner(g.current_user.id)
    return jsonify({"campaigns": [c.to_dict() for c in campaigns]}), 200


@ads_bp.patch("/<int:campaign_id>")
@require_auth
def set_active_route(campaign_id: int):
    """Body: {"is_active": bool}"""
    try:
        data = require_object(request.get_json(silent=True) or {})
        campaign = ad_service.set_active(campaign_id, g.current_user.id, data.get("is_active"))
        if campaign is None:
            return jsonify({"error": "Campaign not found"}), 404
        return jsonify({"campaign": campaign.to_dict()}), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update ad campaign")
        return jsonify({"error": "Internal server error"}), 500


@ads_bp.get("/feed")
@require_auth
def feed_with_ads_route():
    """Visible posts, newest first, with one active campaign after each post."""
    limit = request.args.get("limit", type=int)
    posts = content_service.list_visible(viewer_id=g.current_user.id, limit=limit)
    items = ad_service.interleave_feed(posts, ad_service.list_active_campaigns())
    return jsonify({"items": items}), 200
