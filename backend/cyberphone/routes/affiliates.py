# Overview: Flask API routes for the affiliate dashboard and referral links.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..validation import require_object
from ..errors import ServiceError
from ..services import affiliate_service, commerce_service


affiliates_bp = Blueprint("affiliates", __name__, url_prefix="/api/affiliates")


@affiliates_bp.get("/me")
@require_auth
def my_dashboard_route():
    me = g.current_user.id
    return jsonify({
        "summary": commerce_service.affiliate_summary(me),
        "sales": [s.to_dict() for s in commerce_service.list_sales_for_affiliate(me)],
        "links": [link.to_dict() for link in affiliate_service.list_links_for_affiliate(me)],
    }), 200


@affiliates_bp.post("/links")
@require_auth
def create_link_route():
    """Body: {"product_id"}. Returns the caller's stable link for the product."""
    try:
        data = require_object(request.get_json(silent=True) or {})
        link = affiliate_service.get_or_create_link(g.current_user.id, data.get("product_id"))
        if not link:
            return jsonify({"error": "Product not found"}), 404
        return jsonify({"link": link.to_dict()}), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create affiliate link")
        return jsonify({"error": "Internal server error"}), 500


@affiliates_bp.get("/links/<code>")
def resolve_link_route(code: str):
    """Public: resolve a referral code to (product, affiliate) and count the click."""
    try:
        link = affiliate_service.resolve_link(code)
        if not link:
            return jsonify({"error": "Link not found"}), 404
        return jsonify({
            "product": link.product.to_dict(),
            "affiliate_id": link.affiliate_user_id,
            "click_count": link.click_count,
        }), 200

    except Exception:
        current_app.logger.exception("Failed to resolve affiliate link")
        return jsonify({"error": "Internal server error"}), 500
