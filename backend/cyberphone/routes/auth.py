# Overview: Flask API routes for accounts and sessions; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..validation import require_object
from ..errors import ServiceError
from ..services import auth_service, session_service
from cyberphone.time_utils import to_utc_z


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/register")
def register_route():
    """Create an account and log it in."""
    try:
        data = require_object(request.get_json(silent=True) or {})
        profile = {
            k: data[k]
            for k in ("phone", "profile_picture", "bio", "credentials")
            if k in data
        }
        user = auth_service.register_user(
            email=data.get("email"),
            password=data.get("password"),
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            user_type=data.get("user_type") or "STANDARD",
            **profile,
        )
        _session, token = session_service.create_session(user.id)
        return jsonify({"user": user.to_dict(include_wallet=True), "token": token}), 201

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to register user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/login")
def login_route():
    try:
        data = require_object(request.get_json(silent=True) or {})
        user = auth_service.authenticate(data.get("email"), data.get("password"))
        session, token = session_service.create_session(user.id)
        return jsonify({
            "user": user.to_dict(include_wallet=True),
            "token": token,
            "expires_at": to_utc_z(session.expires_at),
        }), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    try:
        session_service.revoke_session(g.session_token)
        return jsonify({"message": "Logged out"}), 200
    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": g.current_user.to_dict(include_wallet=True)}), 200


@auth_bp.patch("/me")
@require_auth
def update_me_route():
    try:
        data = require_object(request.get_json(silent=True) or {})
        user = auth_service.update_profile(g.current_user.id, data)
        return jsonify({"user": user.to_dict(include_wallet=True)}), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update profile")
        return jsonify({"error": "Internal server error"}), 500
