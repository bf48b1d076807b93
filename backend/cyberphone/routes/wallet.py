# Overview: Flask API routes for the caller's wallet; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..validation import require_object
from ..errors import ServiceError
from ..services import ledger_service


wallet_bp = Blueprint("wallet", __name__, url_prefix="/api/wallet")


@wallet_bp.get("/")
@require_auth
def get_wallet_route():
    user = g.current_user
    limit = request.args.get("limit", type=int)
    return jsonify({
        "balance_cents": user.balance_cents,
        "card": user.card.to_dict() if user.card else None,
        "transactions": [t.to_dict() for t in ledger_service.list_transactions(user.id, limit=limit)],
    }), 200


@wallet_bp.post("/withdraw")
@require_auth
def withdraw_route():
    """Body: {"amount_cents": int}"""
    try:
        data = require_object(request.get_json(silent=True) or {})
        tx = ledger_service.withdraw(g.current_user.id, data.get("amount_cents"))
        return jsonify({"transaction": tx.to_dict(), "balance_cents": g.current_user.balance_cents}), 201

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to withdraw")
        return jsonify({"error": "Internal server error"}), 500


@wallet_bp.put("/card")
@require_auth
def request_card_route():
    """Body: {"holder_name", "number", "brand"?, "expiry"?}"""
    try:
        data = require_object(request.get_json(silent=True) or {})
        card = ledger_service.request_card(g.current_user.id, data)
        return jsonify({"card": card.to_dict()}), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to request card")
        return jsonify({"error": "Internal server error"}), 500


@wallet_bp.get("/verify")
@require_auth
def verify_route():
    return jsonify(ledger_service.verify_ledger(g.current_user.id)), 200
