# Overview: Service-layer operations for stores, products and product ratings.

"""
Catalog

- A Product always references an existing Store (checked before insert).
- One store per user; opening it records user.store_id.
- average_rating / rating_count are recomputed as a fold over every rating
  row each time a rating is added. Nothing updates them incrementally.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import or_

from ..errors import AlreadyRatedError, InvalidStateError, NotFoundError, ValidationError
from ..extensions import db
from ..models import AffiliateSale, Product, ProductRating, Store, User
from ..models.catalog import VALID_PRODUCT_TYPES
from ..models.commerce import SALE_STATUS_CANCELLED
from ..validation import ModelValidationPolicy, validate_payload, enforce_rules_product, require_rating, coerce_int
from .concurrency import lock_for_update, run_in_transaction


STORE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description"},
    required_on_create={"name"},
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name",
        "description",
        "product_type",
        "price_cents",
        "affiliate_commission_rate",
        "image_urls",
        "digital_content_url",
        "digital_download_instructions",
        "is_active",
    },
    required_on_create={"name", "price_cents"},
)


# =============================================================================
# STORES
# =============================================================================

def create_store(owner_user_id: int, payload: dict) -> Store:
    patch = validate_payload(model=Store, payload=payload, policy=STORE_POLICY, partial=False)

    def _op():
        owner = lock_for_update(db.session.query(User).filter_by(id=owner_user_id)).first()
        if not owner:
            raise NotFoundError("User not found")
        existing = db.session.query(Store).filter_by(owner_user_id=owner_user_id).first()
        if existing or owner.store_id is not None:
            raise InvalidStateError("User already owns a store", details={"store_id": owner.store_id})

        store = Store(owner_user_id=owner_user_id, **patch)
        db.session.add(store)
        db.session.flush()
        owner.store_id = store.id
        return store

    return run_in_transaction(_op)


def update_store(store_id: int, payload: dict, *, actor_id: int | None = None) -> Store | None:
    patch = validate_payload(model=Store, payload=payload, policy=STORE_POLICY, partial=True)

    def _op():
        store = lock_for_update(db.session.query(Store).filter_by(id=store_id)).first()
        if not store:
            return None
        if actor_id is not None and store.owner_user_id != actor_id:
            raise InvalidStateError("Only the store owner can edit this store")
        for k, v in patch.items():
            setattr(store, k, v)
        return store

    return run_in_transaction(_op)


def get_store(store_id: int) -> Store | None:
    return db.session.get(Store, store_id)


def get_store_for_owner(user_id: int) -> Store | None:
    return db.session.query(Store).filter_by(owner_user_id=user_id).first()


def list_stores() -> list[Store]:
    return db.session.query(Store).order_by(Store.name.asc(), Store.id.asc()).all()


# =============================================================================
# PRODUCTS
# =============================================================================

def _normalize_product_patch(patch: dict) -> dict:
    if "product_type" in patch and patch["product_type"] is not None:
        product_type = patch["product_type"].upper()
        if product_type not in VALID_PRODUCT_TYPES:
            raise ValidationError(f"Invalid product type: {product_type}. Must be one of {VALID_PRODUCT_TYPES}")
        patch["product_type"] = product_type
    enforce_rules_product(patch)
    return patch


def create_product(store_id: int, payload: dict, *, actor_id: int | None = None) -> Product:
    """
    Add a product to an existing store.

    Raises NotFoundError for an unknown store, InvalidStateError when actor_id
    is given and does not own the store.
    """
    patch = _normalize_product_patch(
        validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    )

    def _op():
        store = db.session.get(Store, store_id)
        if not store:
            raise NotFoundError("Store not found")
        if actor_id is not None and store.owner_user_id != actor_id:
            raise InvalidStateError("Only the store owner can add products")

        product = Product(store_id=store.id, **patch)
        if product.image_urls is None:
            product.image_urls = []
        db.session.add(product)
        return product

    return run_in_transaction(_op)


def update_product(product_id: int, payload: dict, *, actor_id: int | None = None) -> Product | None:
    """
    Patch a product. Changing affiliate_commission_rate never touches past
    sales; their commission is frozen on the sale row.
    """
    patch = _normalize_product_patch(
        validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    )

    def _op():
        product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if not product:
            return None
        if actor_id is not None and product.store.owner_user_id != actor_id:
            raise InvalidStateError("Only the store owner can edit this product")
        for k, v in patch.items():
            setattr(product, k, v)
        return product

    return run_in_transaction(_op)


def get_product(product_id: int) -> Product | None:
    return db.session.get(Product, product_id)


def list_products(store_id: int | None = None, *, include_inactive: bool = False) -> list[Product]:
    q = db.session.query(Product)
    if store_id is not None:
        q = q.filter(Product.store_id == store_id)
    if not include_inactive:
        q = q.filter(Product.is_active.is_(True))
    return q.order_by(Product.id.asc()).all()


def search_products(text: str, *, limit: int = 50) -> list[Product]:
    """Case-insensitive substring match on name and description of active products."""
    needle = (text or "").strip()
    if not needle:
        return []
    pattern = f"%{needle}%"
    return (
        db.session.query(Product)
        .filter(Product.is_active.is_(True))
        .filter(or_(Product.name.ilike(pattern), Product.description.ilike(pattern)))
        .order_by(Product.name.asc(), Product.id.asc())
        .limit(limit)
        .all()
    )


# =============================================================================
# RATINGS
# =============================================================================

def recompute_rating_aggregate(product: Product) -> None:
    """Fold the full rating list into average_rating / rating_count."""
    ratings = [
        r.rating
        for r in db.session.query(ProductRating.rating).filter_by(product_id=product.id).all()
    ]
    count = len(ratings)
    if count == 0:
        average = 0.0
    else:
        average = float((Decimal(sum(ratings)) / Decimal(count)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
    product.rating_count = count
    product.average_rating = average


def add_rating(sale_id: int, rating, comment: str | None = None, *, actor_id: int | None = None) -> ProductRating:
    """
    Rate the product of one sale. A sale can be rated exactly once.

    Raises AlreadyRatedError when the sale does not exist or is already rated.
    With actor_id, only the buyer of the sale may rate it.
    """
    sale_id = coerce_int("sale_id", sale_id)
    value = require_rating(rating)
    comment = (comment or "").strip() or None

    def _op():
        sale = lock_for_update(db.session.query(AffiliateSale).filter_by(id=sale_id)).first()
        if not sale or sale.is_rated:
            raise AlreadyRatedError("Sale not found or already rated", details={"sale_id": sale_id})
        if actor_id is not None and sale.buyer_id != actor_id:
            raise InvalidStateError("Only the buyer can rate this purchase")
        if sale.status == SALE_STATUS_CANCELLED:
            raise InvalidStateError("Cancelled purchases cannot be rated")

        product = lock_for_update(db.session.query(Product).filter_by(id=sale.product_id)).first()

        sale.is_rated = True
        entry = ProductRating(
            product_id=sale.product_id,
            sale_id=sale.id,
            user_id=sale.buyer_id,
            rating=value,
            comment=comment,
        )
        db.session.add(entry)
        db.session.flush()

        recompute_rating_aggregate(product)
        return entry

    return run_in_transaction(_op)


def list_ratings(product_id: int) -> list[ProductRating]:
    return (
        db.session.query(ProductRating)
        .filter_by(product_id=product_id)
        .order_by(ProductRating.id.asc())
        .all()
    )
