# backend/cyberphone/routes/system.py
"""
System health endpoint.

Reports database reachability and table sizes for deployment debugging.
"""

import time
from flask import Blueprint, current_app, jsonify
from ..extensions import db
from ..models import User, Post, Store, Product, AffiliateSale
from cyberphone.time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        details = {
            "users": db.session.query(User).count(),
            "posts": db.session.query(Post).count(),
            "stores": db.session.query(Store).count(),
            "products": db.session.query(Product).count(),
            "sales": db.session.query(AffiliateSale).count(),
        }
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": details,
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    database = check_database_health()
    healthy = database["status"] == "healthy"
    return jsonify({
        "status": "ok" if healthy else "degraded",
        "checked_at": to_utc_z(utcnow()),
        "checks": {"database": database},
    }), 200 if healthy else 503
