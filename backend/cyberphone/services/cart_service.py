# Overview: Service-layer operations for the per-user shopping cart.

from __future__ import annotations

from ..extensions import db
from ..models import CartItem, Product, User
from ..validation import coerce_int, require_quantity
from .concurrency import run_idempotent, run_in_transaction


def get_cart(user_id: int) -> list[CartItem]:
    return (
        db.session.query(CartItem)
        .filter_by(user_id=user_id)
        .order_by(CartItem.id.asc())
        .all()
    )


def cart_total_cents(user_id: int) -> int:
    return sum(item.product.price_cents * item.quantity for item in get_cart(user_id))


def add_item(user_id: int, product_id: int, quantity=1) -> CartItem | None:
    """
    Add quantity of a product, merging into an existing line.

    Returns None when the user or product does not exist.
    """
    product_id = coerce_int("product_id", product_id)
    qty = require_quantity(quantity)

    def _op():
        if not db.session.get(User, user_id) or not db.session.get(Product, product_id):
            return None
        line = db.session.query(CartItem).filter_by(user_id=user_id, product_id=product_id).first()
        if line:
            line.quantity += qty
        else:
            line = CartItem(user_id=user_id, product_id=product_id, quantity=qty)
            db.session.add(line)
        return line

    return run_idempotent(_op)


def set_quantity(user_id: int, product_id: int, quantity) -> CartItem | None:
    """Set the line's quantity; a value <= 0 removes the line (returns None)."""
    product_id = coerce_int("product_id", product_id)
    qty = coerce_int("quantity", quantity)
    if qty <= 0:
        remove_item(user_id, product_id)
        return None

    def _op():
        if not db.session.get(User, user_id) or not db.session.get(Product, product_id):
            return None
        line = db.session.query(CartItem).filter_by(user_id=user_id, product_id=product_id).first()
        if line:
            line.quantity = qty
        else:
            line = CartItem(user_id=user_id, product_id=product_id, quantity=qty)
            db.session.add(line)
        return line

    return run_idempotent(_op)


def remove_item(user_id: int, product_id: int) -> bool:
    def _op():
        deleted = (
            db.session.query(CartItem)
            .filter_by(user_id=user_id, product_id=product_id)
            .delete(synchronize_session=False)
        )
        return deleted > 0

    return run_in_transaction(_op)


def clear_cart(user_id: int) -> int:
    def _op():
        return db.session.query(CartItem).filter_by(user_id=user_id).delete(synchronize_session=False)

    return run_in_transaction(_op)
