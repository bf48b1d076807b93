# Overview: Flask API routes for stores, products and ratings; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..validation import require_object
from ..errors import ServiceError
from ..services import catalog_service, commerce_service


stores_bp = Blueprint("stores", __name__, url_prefix="/api/stores")
products_bp = Blueprint("products", __name__, url_prefix="/api/products")


# =============================================================================
# STORES
# =============================================================================

@stores_bp.get("/")
@require_auth
def list_stores_route():
    return jsonify({"stores": [s.to_dict() for s in catalog_service.list_stores()]}), 200


@stores_bp.post("/")
@require_auth
def create_store_route():
    """Open the caller's store. Body: {"name", "description"?}"""
    try:
        data = require_object(request.get_json(silent=True) or {})
        store = catalog_service.create_store(g.current_user.id, data)
        return jsonify({"store": store.to_dict()}), 201

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create store")
        return jsonify({"error": "Internal server error"}), 500


@stores_bp.get("/<int:store_id>")
@require_auth
def get_store_route(store_id: int):
    store = catalog_service.get_store(store_id)
    if not store:
        return jsonify({"error": "Store not found"}), 404
    return jsonify({
        "store": store.to_dict(),
        "products": [p.to_dict() for p in catalog_service.list_products(store_id)],
    }), 200


@stores_bp.patch("/<int:store_id>")
@require_auth
def update_store_route(store_id: int):
    try:
        data = require_object(request.get_json(silent=True) or {})
        store = catalog_service.update_store(store_id, data, actor_id=g.current_user.id)
        if not store:
            return jsonify({"error": "Store not found"}), 404
        return jsonify({"store": store.to_dict()}), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update store")
        return jsonify({"error": "Internal server error"}), 500


@stores_bp.post("/<int:store_id>/products")
@require_auth
def create_product_route(store_id: int):
    try:
        product = catalog_service.create_product(
            store_id, require_object(request.get_json(silent=True) or {}), actor_id=g.current_user.id
        )
        return jsonify({"product": product.to_dict()}), 201

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@stores_bp.get("/<int:store_id>/sales")
@require_auth
def store_sales_route(store_id: int):
    """Sales report and affiliate performance. Store owner only."""
    store = catalog_service.get_store(store_id)
    if not store:
        return jsonify({"error": "Store not found"}), 404
    if store.owner_user_id != g.current_user.id:
        return jsonify({"error": "Only the store owner can view its sales"}), 403
    return jsonify({
        "sales": [s.to_dict() for s in commerce_service.list_sales_for_store(store_id)],
        "affiliates": commerce_service.affiliate_performance(store_id),
    }), 200


# =============================================================================
# PRODUCTS
# =============================================================================

@products_bp.get("/")
@require_auth
def list_products_route():
    """Query: q (search text) or store_id."""
    q = request.args.get("q")
    if q:
        products = catalog_service.search_products(q)
    else:
        products = catalog_service.list_products(request.args.get("store_id", type=int))
    return jsonify({"products": [p.to_dict() for p in products]}), 200


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    product = catalog_service.get_product(product_id)
    if not product:
        return jsonify({"error": "Product not found"}), 404
    return jsonify({
        "product": product.to_dict(),
        "ratings": [r.to_dict() for r in catalog_service.list_ratings(product_id)],
    }), 200


@products_bp.patch("/<int:product_id>")
@require_auth
def update_product_route(product_id: int):
    try:
        product = catalog_service.update_product(
            product_id, require_object(request.get_json(silent=True) or {}), actor_id=g.current_user.id
        )
        if not product:
            return jsonify({"error": "Product not found"}), 404
        return jsonify({"product": product.to_dict()}), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("/ratings")
@require_auth
def add_rating_route():
    """Body: {"sale_id", "rating": 1..5, "comment"?}"""
    try:
        data = require_object(request.get_json(silent=True) or {})
        rating = catalog_service.add_rating(
            data.get("sale_id"),
            data.get("rating"),
            data.get("comment"),
            actor_id=g.current_user.id,
        )
        product = catalog_service.get_product(rating.product_id)
        return jsonify({"rating": rating.to_dict(), "product": product.to_dict()}), 201

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to add rating")
        return jsonify({"error": "Internal server error"}), 500
