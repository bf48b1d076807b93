from __future__ import annotations

from ..extensions import db
from cyberphone.time_utils import to_utc_z


SALE_STATUS_DELIVERED = "DELIVERED"
SALE_STATUS_WAITLISTED = "WAITLISTED"
SALE_STATUS_CANCELLED = "CANCELLED"
VALID_SALE_STATUSES = {SALE_STATUS_DELIVERED, SALE_STATUS_WAITLISTED, SALE_STATUS_CANCELLED}


class CartItem(db.Model):
    """Cart line, keyed by the owning user (one line per product)."""
    __tablename__ = "cart_items"
    __table_args__ = (
        db.UniqueConstraint("user_id", "product_id", name="uq_cart_items_user_product"),
        db.CheckConstraint("quantity > 0", name="ck_cart_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "quantity": self.quantity,
        }


class AffiliateSale(db.Model):
    """
    Purchase record for one cart line, optionally attributed to an affiliate.

    WHY: Feeds the buyer's order history, the store's sales report and the
    affiliate dashboard from a single row.

    FROZEN AT PURCHASE: sale_amount_cents, commission_rate and
    commission_earned_cents never change after insert, even when the
    product's commission rate does.

    STATUS: DELIVERED immediately for digital goods, WAITLISTED for physical
    goods until the store owner fulfils (DELIVERED) or cancels (CANCELLED).
    """
    __tablename__ = "affiliate_sales"
    __table_args__ = (
        db.Index("ix_affiliate_sales_affiliate", "affiliate_user_id", "created_at"),
        db.Index("ix_affiliate_sales_store", "store_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    buyer_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    affiliate_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False)

    quantity = db.Column(db.Integer, nullable=False, default=1)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    sale_amount_cents = db.Column(db.Integer, nullable=False)
    commission_rate = db.Column(db.Float, nullable=False, default=0.0)
    commission_earned_cents = db.Column(db.Integer, nullable=False, default=0)
    seller_proceeds_cents = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, index=True)  # DELIVERED, WAITLISTED, CANCELLED
    is_rated = db.Column(db.Boolean, nullable=False, default=False)
    shipping_address = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    status_changed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    product = db.relationship("Product")
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "buyer_id": self.buyer_id,
            "affiliate_user_id": self.affiliate_user_id,
            "store_id": self.store_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "sale_amount_cents": self.sale_amount_cents,
            "commission_rate": self.commission_rate,
            "commission_earned_cents": self.commission_earned_cents,
            "seller_proceeds_cents": self.seller_proceeds_cents,
            "status": self.status,
            "is_rated": self.is_rated,
            "shipping_address": self.shipping_address,
            "created_at": to_utc_z(self.created_at),
            "status_changed_at": to_utc_z(self.status_changed_at),
            "version_id": self.version_id,
        }


class AffiliateLink(db.Model):
    """Stable referral code for (affiliate, product)."""
    __tablename__ = "affiliate_links"
    __table_args__ = (
        db.UniqueConstraint("affiliate_user_id", "product_id", name="uq_affiliate_links_affiliate_product"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(32), nullable=False, unique=True, index=True)
    affiliate_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    click_count = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "affiliate_user_id": self.affiliate_user_id,
            "product_id": self.product_id,
            "store_id": self.product.store_id if self.product else None,
            "click_count": self.click_count,
            "created_at": to_utc_z(self.created_at),
        }
