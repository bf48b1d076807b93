# Overview: Flask API routes for checkout and purchase records; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..validation import require_object
from ..errors import ServiceError
from ..services import commerce_service


checkout_bp = Blueprint("checkout", __name__, url_prefix="/api/checkout")
sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _checkout_args(data: dict) -> tuple[int | None, dict | None]:
    affiliate_id = data.get("affiliate_id") or None
    shipping_address = data.get("shipping_address") or None
    if shipping_address is not None and not isinstance(shipping_address, dict):
        raise ValueError("shipping_address must be an object")
    return affiliate_id, shipping_address


@checkout_bp.post("/")
@require_auth
def checkout_route():
    """
    Buy the given items, or the caller's stored cart when items is omitted.

    Body: {"items"?: [{"product_id", "quantity"}], "affiliate_id"?, "shipping_address"?}
    402 when the balance does not cover the cart; nothing is charged.
    """
    try:
        data = require_object(request.get_json(silent=True) or {})
        try:
            affiliate_id, shipping_address = _checkout_args(data)
        except ValueError as e:
            return jsonify({"error": str(e)}), 400

        if "items" in data:
            sales = commerce_service.checkout(
                data.get("items"), g.current_user.id, affiliate_id, shipping_address
            )
        else:
            sales = commerce_service.checkout_cart(g.current_user.id, affiliate_id, shipping_address)

        return jsonify({
            "sales": [s.to_dict() for s in sales],
            "balance_cents": g.current_user.balance_cents,
        }), 201

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to checkout")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/purchases")
@require_auth
def my_purchases_route():
    sales = commerce_service.list_purchases_for_buyer(g.current_user.id)
    return jsonify({"sales": [s.to_dict() for s in sales]}), 200


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    sale = commerce_service.get_sale(sale_id)
    if not sale:
        return jsonify({"error": "Sale not found"}), 404
    me = g.current_user.id
    if me not in (sale.buyer_id, sale.affiliate_user_id) and g.current_user.store_id != sale.store_id:
        return jsonify({"error": "Sale not found"}), 404
    return jsonify({"sale": sale.to_dict()}), 200


@sales_bp.post("/<int:sale_id>/status")
@require_auth
def update_status_route(sale_id: int):
    """Body: {"status": DELIVERED|CANCELLED}. Store owner only."""
    try:
        data = require_object(request.get_json(silent=True) or {})
        sale = commerce_service.update_sale_status(sale_id, g.current_user.id, data.get("status"))
        if not sale:
            return jsonify({"error": "Sale not found"}), 404
        return jsonify({"sale": sale.to_dict()}), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update sale status")
        return jsonify({"error": "Internal server error"}), 500
