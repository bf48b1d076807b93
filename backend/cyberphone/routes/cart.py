# Overview: Flask API routes for the caller's cart; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..validation import require_object
from ..errors import ServiceError
from ..services import cart_service


cart_bp = Blueprint("cart", __name__, url_prefix="/api/cart")


def _cart_payload(user_id: int) -> dict:
    return {
        "items": [i.to_dict() for i in cart_service.get_cart(user_id)],
        "total_cents": cart_service.cart_total_cents(user_id),
    }


@cart_bp.get("/")
@require_auth
def get_cart_route():
    return jsonify(_cart_payload(g.current_user.id)), 200


@cart_bp.post("/items")
@require_auth
def add_item_route():
    """Body: {"product_id", "quantity"?}"""
    try:
        data = require_object(request.get_json(silent=True) or {})
        line = cart_service.add_item(g.current_user.id, data.get("product_id"), data.get("quantity", 1))
        if line is None:
            return jsonify({"error": "Product not found"}), 404
        return jsonify(_cart_payload(g.current_user.id)), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to add cart item")
        return jsonify({"error": "Internal server error"}), 500


@cart_bp.put("/items/<int:product_id>")
@require_auth
def set_quantity_route(product_id: int):
    """Body: {"quantity"}; a quantity <= 0 removes the line."""
    try:
        data = require_object(request.get_json(silent=True) or {})
        cart_service.set_quantity(g.current_user.id, product_id, data.get("quantity"))
        return jsonify(_cart_payload(g.current_user.id)), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to set cart quantity")
        return jsonify({"error": "Internal server error"}), 500


@cart_bp.delete("/items/<int:product_id>")
@require_auth
def remove_item_route(product_id: int):
    try:
        cart_service.remove_item(g.current_user.id, product_id)
        return jsonify(_cart_payload(g.current_user.id)), 200
    except Exception:
        current_app.logger.exception("Failed to remove cart item")
        return jsonify({"error": "Internal server error"}), 500


@cart_bp.delete("/")
@require_auth
def clear_cart_route():
    try:
        cart_service.clear_cart(g.current_user.id)
        return jsonify(_cart_payload(g.current_user.id)), 200
    except Exception:
        current_app.logger.exception("Failed to clear cart")
        return jsonify({"error": "Internal server error"}), 500
