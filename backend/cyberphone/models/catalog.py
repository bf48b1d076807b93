from __future__ import annotations

from ..extensions import db
from cyberphone.time_utils import to_utc_z


PRODUCT_TYPE_PHYSICAL = "PHYSICAL"
PRODUCT_TYPE_DIGITAL_COURSE = "DIGITAL_COURSE"
PRODUCT_TYPE_DIGITAL_EBOOK = "DIGITAL_EBOOK"
PRODUCT_TYPE_DIGITAL_OTHER = "DIGITAL_OTHER"

VALID_PRODUCT_TYPES = [
    PRODUCT_TYPE_PHYSICAL,
    PRODUCT_TYPE_DIGITAL_COURSE,
    PRODUCT_TYPE_DIGITAL_EBOOK,
    PRODUCT_TYPE_DIGITAL_OTHER,
]


class Store(db.Model):
    """Storefront owned by exactly one user (one store per user)."""
    __tablename__ = "stores"
    __table_args__ = (
        db.UniqueConstraint("owner_user_id", name="uq_stores_owner"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    owner = db.relationship("User", backref=db.backref("owned_store", uselist=False, lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Store id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_user_id": self.owner_user_id,
            "name": self.name,
            "description": self.description,
            "product_ids": [p.id for p in self.products],
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
        }


class Product(db.Model):
    """
    Sellable item of a store.

    RATING INVARIANT: average_rating and rating_count are a pure function of
    the product's ratings rows; only catalog_service.recompute_rating_aggregate
    writes them.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("price_cents > 0", name="ck_products_price_positive"),
        db.CheckConstraint(
            "affiliate_commission_rate >= 0 AND affiliate_commission_rate <= 1",
            name="ck_products_commission_rate_range",
        ),
        db.Index("ix_products_store_name", "store_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    product_type = db.Column(db.String(32), nullable=False, default=PRODUCT_TYPE_DIGITAL_OTHER)

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=False)
    affiliate_commission_rate = db.Column(db.Float, nullable=False, default=0.0)

    image_urls = db.Column(db.JSON, nullable=False, default=list)
    digital_content_url = db.Column(db.String(512), nullable=True)
    digital_download_instructions = db.Column(db.Text, nullable=True)

    # Derived from product_ratings
    average_rating = db.Column(db.Float, nullable=False, default=0.0)
    rating_count = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    store = db.relationship("Store", backref=db.backref("products", lazy=True, order_by="Product.id"))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} store_id={self.store_id}>"

    @property
    def is_physical(self) -> bool:
        return self.product_type == PRODUCT_TYPE_PHYSICAL

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "name": self.name,
            "description": self.description,
            "product_type": self.product_type,
            "price_cents": self.price_cents,
            "affiliate_commission_rate": self.affiliate_commission_rate,
            "image_urls": list(self.image_urls or []),
            "digital_content_url": self.digital_content_url,
            "digital_download_instructions": self.digital_download_instructions,
            "average_rating": self.average_rating,
            "rating_count": self.rating_count,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ProductRating(db.Model):
    """One rating per affiliate sale (sale_id is unique)."""
    __tablename__ = "product_ratings"
    __table_args__ = (
        db.UniqueConstraint("sale_id", name="uq_product_ratings_sale"),
        db.CheckConstraint("rating >= 1 AND rating <= 5", name="ck_product_ratings_range"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("affiliate_sales.id"), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    rating = db.Column(db.Integer, nullable=False)
    comment = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("ratings", lazy=True, order_by="ProductRating.id"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "sale_id": self.sale_id,
            "user_id": self.user_id,
            "rating": self.rating,
            "comment": self.comment,
            "created_at": to_utc_z(self.created_at),
        }
