# Overview: Service-layer operations for checkout, affiliate sales and order fulfilment.

"""
Commerce Engine

WHY: A checkout touches the buyer's wallet, the seller's and affiliate's
wallets, the sale records and the notification feed. All of it happens in
one transaction: either every cart line is charged and recorded, or nothing is.

STATE MACHINE (per purchased line):
    Cart -> Charged -> DELIVERED   (digital goods, immediate)
    Cart -> Charged -> WAITLISTED  (physical goods)
    WAITLISTED -> DELIVERED        (store owner fulfils)
    WAITLISTED -> CANCELLED        (store owner cancels; money flows back)

MONEY FLOW per line (all through ledger_service.post_adjustment):
- buyer    -sale_amount
- affiliate +commission                  (only when an affiliate is given)
- seller   +(sale_amount - commission)   (when CREDIT_SELLER_ON_CHECKOUT)
Cancellation posts the exact opposite entries.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..errors import InsufficientFundsError, InvalidStateError, NotFoundError, ValidationError
from ..extensions import db
from ..models import AffiliateSale, CartItem, Product, Store, User
from ..models.commerce import SALE_STATUS_DELIVERED, SALE_STATUS_WAITLISTED, SALE_STATUS_CANCELLED
from ..models.communications import NOTIFICATION_AFFILIATE_SALE, NOTIFICATION_ORDER_STATUS
from ..validation import coerce_int, require_quantity, commission_cents
from cyberphone.time_utils import utcnow
from . import ledger_service, notification_service
from .concurrency import lock_for_update, run_in_transaction


ALLOWED_STATUS_TRANSITIONS = {
    SALE_STATUS_WAITLISTED: {SALE_STATUS_DELIVERED, SALE_STATUS_CANCELLED},
    SALE_STATUS_DELIVERED: set(),
    SALE_STATUS_CANCELLED: set(),
}


def _normalize_items(items) -> list[tuple[int, int]]:
    """[{product_id, quantity}, ...] -> [(product_id, quantity)], merging duplicate products."""
    if items is not None and not isinstance(items, (list, tuple)):
        raise ValidationError("items must be a list of objects with product_id and quantity")
    if not items:
        raise ValidationError("Cart is empty")

    merged: dict[int, int] = {}
    for raw in items:
        if not isinstance(raw, dict):
            raise ValidationError("Each item must be an object with product_id and quantity")
        product_id = coerce_int("product_id", raw.get("product_id"))
        quantity = require_quantity(raw.get("quantity", 1))
        merged[product_id] = merged.get(product_id, 0) + quantity
    return list(merged.items())


def _charge_lines(
    lines: list[tuple[int, int]],
    buyer_id: int,
    affiliate_id: int | None,
    shipping_address: dict | None,
) -> list[AffiliateSale]:
    """Body of a checkout; runs inside the caller's transaction."""
    if affiliate_id is not None:
        affiliate_id = coerce_int("affiliate_id", affiliate_id)
    if shipping_address is not None and not isinstance(shipping_address, dict):
        raise ValidationError("shipping_address must be an object")
    cfg = current_app.config

    buyer = lock_for_update(db.session.query(User).filter_by(id=buyer_id)).first()
    if not buyer:
        raise NotFoundError("Buyer not found", details={"buyer_id": buyer_id})

    if affiliate_id is not None:
        if not db.session.get(User, affiliate_id):
            raise NotFoundError("Affiliate not found", details={"affiliate_id": affiliate_id})
        if affiliate_id == buyer_id:
            # Self-referral earns nothing
            affiliate_id = None

    priced: list[tuple[Product, int, int]] = []
    for product_id, quantity in lines:
        product = db.session.get(Product, product_id)
        if not product:
            raise NotFoundError("Product not found", details={"product_id": product_id})
        if not product.is_active:
            raise InvalidStateError("Product is not available", details={"product_id": product_id})
        priced.append((product, quantity, product.price_cents * quantity))

    if any(p.is_physical for p, _, _ in priced) and not shipping_address:
        raise ValidationError("shipping_address is required for physical products")

    total_cents = sum(total for _, _, total in priced)
    if cfg.get("ENFORCE_SUFFICIENT_FUNDS", True) and buyer.balance_cents < total_cents:
        current_app.logger.info(
            "Checkout rejected for user %s: balance %s < total %s",
            buyer_id, buyer.balance_cents, total_cents,
        )
        raise InsufficientFundsError(
            "Insufficient balance for checkout",
            details={"balance_cents": buyer.balance_cents, "total_cents": total_cents},
        )

    credit_seller = cfg.get("CREDIT_SELLER_ON_CHECKOUT", True)
    now = utcnow()
    sales: list[AffiliateSale] = []

    for product, quantity, total in priced:
        rate = product.affiliate_commission_rate or 0.0
        commission = commission_cents(total, rate)
        # Without an affiliate the commission is recorded but nobody earns it
        paid_commission = commission if affiliate_id is not None else 0
        proceeds = total - paid_commission if credit_seller else 0

        sale = AffiliateSale(
            product_id=product.id,
            buyer_id=buyer_id,
            affiliate_user_id=affiliate_id,
            store_id=product.store_id,
            quantity=quantity,
            unit_price_cents=product.price_cents,
            sale_amount_cents=total,
            commission_rate=rate,
            commission_earned_cents=commission,
            seller_proceeds_cents=proceeds,
            status=SALE_STATUS_WAITLISTED if product.is_physical else SALE_STATUS_DELIVERED,
            is_rated=False,
            shipping_address=dict(shipping_address) if (shipping_address and product.is_physical) else None,
            created_at=now,
            status_changed_at=now,
        )
        db.session.add(sale)
        db.session.flush()

        ledger_service.post_adjustment(buyer_id, -total, f"Purchase: {product.name} x{quantity}", sale_id=sale.id)

        if affiliate_id is not None:
            if paid_commission:
                ledger_service.post_adjustment(
                    affiliate_id, paid_commission, f"Affiliate commission: {product.name}", sale_id=sale.id
                )
            notification_service.emit(NOTIFICATION_AFFILIATE_SALE, affiliate_id, buyer_id, sale_id=sale.id)

        if proceeds:
            ledger_service.post_adjustment(
                product.store.owner_user_id, proceeds, f"Sale: {product.name} x{quantity}", sale_id=sale.id
            )

        sales.append(sale)

    return sales


def checkout(
    items,
    buyer_id: int,
    affiliate_id: int | None = None,
    shipping_address: dict | None = None,
) -> list[AffiliateSale]:
    """
    Purchase every line in items as one transaction.

    Raises InsufficientFundsError (nothing is charged) when the buyer cannot
    cover the whole cart and ENFORCE_SUFFICIENT_FUNDS is on.
    Returns one AffiliateSale per distinct product.
    """
    lines = _normalize_items(items)

    def _op():
        return _charge_lines(lines, buyer_id, affiliate_id, shipping_address)

    sales = run_in_transaction(_op)
    current_app.logger.info(
        "Checkout completed for user %s: %s sale(s), %s cents",
        buyer_id, len(sales), sum(s.sale_amount_cents for s in sales),
    )
    return sales


def checkout_cart(
    buyer_id: int,
    affiliate_id: int | None = None,
    shipping_address: dict | None = None,
) -> list[AffiliateSale]:
    """Check out the buyer's stored cart and empty it, in the same transaction."""
    def _op():
        cart = db.session.query(CartItem).filter_by(user_id=buyer_id).order_by(CartItem.id.asc()).all()
        lines = _normalize_items([{"product_id": c.product_id, "quantity": c.quantity} for c in cart])
        sales = _charge_lines(lines, buyer_id, affiliate_id, shipping_address)
        db.session.query(CartItem).filter_by(user_id=buyer_id).delete(synchronize_session=False)
        return sales

    sales = run_in_transaction(_op)
    current_app.logger.info("Cart checkout completed for user %s: %s sale(s)", buyer_id, len(sales))
    return sales


# =============================================================================
# FULFILMENT
# =============================================================================

def update_sale_status(sale_id: int, actor_id: int, status: str) -> AffiliateSale | None:
    """
    Move a WAITLISTED sale to DELIVERED or CANCELLED. Store owner only.

    Cancelling refunds the buyer and reverses the affiliate commission and
    seller proceeds, one ledger entry each. Returns None for an unknown sale.
    """
    status = (status or "").strip().upper()
    if status not in ALLOWED_STATUS_TRANSITIONS:
        raise ValidationError(f"Invalid sale status: {status}")

    def _op():
        sale = lock_for_update(db.session.query(AffiliateSale).filter_by(id=sale_id)).first()
        if not sale:
            return None
        store = db.session.get(Store, sale.store_id)
        if store is None or store.owner_user_id != actor_id:
            raise InvalidStateError("Only the store owner can update this order")
        if status not in ALLOWED_STATUS_TRANSITIONS[sale.status]:
            raise InvalidStateError(
                f"Cannot move sale from {sale.status} to {status}",
                details={"sale_id": sale.id, "status": sale.status},
            )

        if status == SALE_STATUS_CANCELLED:
            label = sale.product.name if sale.product else f"product {sale.product_id}"
            ledger_service.post_adjustment(sale.buyer_id, sale.sale_amount_cents, f"Refund: {label}", sale_id=sale.id)
            if sale.affiliate_user_id is not None and sale.commission_earned_cents:
                ledger_service.post_adjustment(
                    sale.affiliate_user_id,
                    -sale.commission_earned_cents,
                    f"Commission reversal: {label}",
                    sale_id=sale.id,
                )
            if sale.seller_proceeds_cents:
                ledger_service.post_adjustment(
                    store.owner_user_id,
                    -sale.seller_proceeds_cents,
                    f"Sale reversal: {label}",
                    sale_id=sale.id,
                )

        sale.status = status
        sale.status_changed_at = utcnow()
        notification_service.emit(NOTIFICATION_ORDER_STATUS, sale.buyer_id, actor_id, sale_id=sale.id)
        return sale

    sale = run_in_transaction(_op)
    if sale is not None and status == SALE_STATUS_CANCELLED:
        current_app.logger.info("Sale %s cancelled and refunded", sale_id)
    return sale


# =============================================================================
# QUERIES
# =============================================================================

def get_sale(sale_id: int) -> AffiliateSale | None:
    return db.session.get(AffiliateSale, sale_id)


def list_sales_for_affiliate(affiliate_id: int) -> list[AffiliateSale]:
    return (
        db.session.query(AffiliateSale)
        .filter_by(affiliate_user_id=affiliate_id)
        .order_by(AffiliateSale.id.desc())
        .all()
    )


def list_sales_for_store(store_id: int) -> list[AffiliateSale]:
    return (
        db.session.query(AffiliateSale)
        .filter_by(store_id=store_id)
        .order_by(AffiliateSale.id.desc())
        .all()
    )


def list_purchases_for_buyer(buyer_id: int) -> list[AffiliateSale]:
    return (
        db.session.query(AffiliateSale)
        .filter_by(buyer_id=buyer_id)
        .order_by(AffiliateSale.id.desc())
        .all()
    )


def affiliate_performance(store_id: int) -> list[dict]:
    """Per-affiliate totals for one store, cancelled sales excluded, best earners first."""
    rows = (
        db.session.query(
            AffiliateSale.affiliate_user_id,
            func.count(AffiliateSale.id),
            func.coalesce(func.sum(AffiliateSale.sale_amount_cents), 0),
            func.coalesce(func.sum(AffiliateSale.commission_earned_cents), 0),
        )
        .filter(AffiliateSale.store_id == store_id)
        .filter(AffiliateSale.affiliate_user_id.isnot(None))
        .filter(AffiliateSale.status != SALE_STATUS_CANCELLED)
        .group_by(AffiliateSale.affiliate_user_id)
        .all()
    )

    performance = []
    for affiliate_id, sales_count, revenue, commission in rows:
        affiliate = db.session.get(User, affiliate_id)
        performance.append({
            "affiliate_user_id": affiliate_id,
            "affiliate_name": affiliate.display_name if affiliate else None,
            "sales_count": int(sales_count),
            "revenue_cents": int(revenue),
            "commission_cents": int(commission),
        })
    performance.sort(key=lambda r: (-r["commission_cents"], r["affiliate_user_id"]))
    return performance


def affiliate_summary(affiliate_id: int) -> dict:
    """Dashboard totals for one affiliate across every store."""
    sales = [s for s in list_sales_for_affiliate(affiliate_id) if s.status != SALE_STATUS_CANCELLED]

    by_product: dict[int, dict] = {}
    for s in sales:
        entry = by_product.setdefault(s.product_id, {
            "product_id": s.product_id,
            "sales_count": 0,
            "revenue_cents": 0,
            "commission_cents": 0,
        })
        entry["sales_count"] += 1
        entry["revenue_cents"] += s.sale_amount_cents
        entry["commission_cents"] += s.commission_earned_cents

    return {
        "affiliate_user_id": affiliate_id,
        "sales_count": len(sales),
        "revenue_cents": sum(s.sale_amount_cents for s in sales),
        "commission_cents": sum(s.commission_earned_cents for s in sales),
        "products": sorted(by_product.values(), key=lambda e: e["product_id"]),
    }
