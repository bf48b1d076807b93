from __future__ import annotations

from ..extensions import db
from cyberphone.time_utils import to_utc_z


USER_TYPE_CREATOR = "CREATOR"
USER_TYPE_STANDARD = "STANDARD"
VALID_USER_TYPES = {USER_TYPE_CREATOR, USER_TYPE_STANDARD}


class User(db.Model):
    """
    Identity plus wallet.

    LEDGER INVARIANT: balance_cents always equals the signed sum of the
    user's wallet_transactions. It is only written by ledger_service.
    """
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    password_hash = db.Column(db.String(255), nullable=False)

    first_name = db.Column(db.String(128), nullable=False)
    last_name = db.Column(db.String(128), nullable=False)
    user_type = db.Column(db.String(16), nullable=False, default=USER_TYPE_STANDARD)  # CREATOR, STANDARD
    phone = db.Column(db.String(32), nullable=True)
    profile_picture = db.Column(db.String(512), nullable=True)
    bio = db.Column(db.Text, nullable=True)
    credentials = db.Column(db.Text, nullable=True)

    # Wallet (cents)
    balance_cents = db.Column(db.Integer, nullable=False, default=0)

    # Set once when the user opens a store
    store_id = db.Column(db.Integer, nullable=True, index=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r}>"

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def to_dict(self, include_wallet: bool = False) -> dict:
        data = {
            "id": self.id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "user_type": self.user_type,
            "profile_picture": self.profile_picture,
            "bio": self.bio,
            "credentials": self.credentials,
            "store_id": self.store_id,
            "created_at": to_utc_z(self.created_at),
        }
        if include_wallet:
            data["phone"] = self.phone
            data["balance_cents"] = self.balance_cents
        return data


class PaymentCard(db.Model):
    """
    Snapshot of the payment instrument issued to a user.

    One row per user; requesting a new card replaces the snapshot.
    Never affects the wallet balance.
    """
    __tablename__ = "payment_cards"
    __table_args__ = (
        db.UniqueConstraint("user_id", name="uq_payment_cards_user"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    holder_name = db.Column(db.String(255), nullable=False)
    last4 = db.Column(db.String(4), nullable=False)
    brand = db.Column(db.String(32), nullable=False, default="DEBIT")
    expiry = db.Column(db.String(7), nullable=True)  # MM/YYYY

    issued_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User", backref=db.backref("card", uselist=False, lazy=True))

    def to_dict(self) -> dict:
        return {
            "holder_name": self.holder_name,
            "last4": self.last4,
            "brand": self.brand,
            "expiry": self.expiry,
            "issued_at": to_utc_z(self.issued_at),
        }


class WalletTransaction(db.Model):
    """
    Append-only ledger of balance movements.

    TRANSACTION TYPES:
    - CREDIT: money into the wallet (commission, sale proceeds, refund)
    - DEBIT: money out of the wallet (purchase, withdrawal, paid feature)

    amount_cents is the non-negative magnitude; the sign lives in the type.
    IMMUTABLE: Records are never updated or deleted.
    """
    __tablename__ = "wallet_transactions"
    __table_args__ = (
        db.CheckConstraint("amount_cents >= 0", name="ck_wallet_transactions_amount_non_negative"),
        db.Index("ix_wallet_txns_user_occurred", "user_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    transaction_type = db.Column(db.String(16), nullable=False, index=True)  # CREDIT, DEBIT
    amount_cents = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(255), nullable=False)

    # Optional provenance
    sale_id = db.Column(db.Integer, db.ForeignKey("affiliate_sales.id"), nullable=True, index=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    user = db.relationship("User", backref=db.backref("transactions", lazy=True, order_by="WalletTransaction.id.desc()"))

    @property
    def signed_amount_cents(self) -> int:
        return self.amount_cents if self.transaction_type == "CREDIT" else -self.amount_cents

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "transaction_type": self.transaction_type,
            "amount_cents": self.amount_cents,
            "description": self.description,
            "sale_id": self.sale_id,
            "occurred_at": to_utc_z(self.occurred_at),
        }


class UserFollow(db.Model):
    """Directed follow edge: follower_id follows followed_id."""
    __tablename__ = "user_follows"
    __table_args__ = (
        db.UniqueConstraint("follower_id", "followed_id", name="uq_user_follows_pair"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    follower_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    followed_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())


class SessionToken(db.Model):
    """
    Bearer token for the presentation layer.

    Tokens are stored hashed (SHA-256); the plaintext only leaves the
    server once, in the login response.
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.Index("ix_session_tokens_user_active", "user_id", "is_revoked"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    token_hash = db.Column(db.String(255), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    is_revoked = db.Column(db.Boolean, nullable=False, default=False)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)

    user = db.relationship("User", backref=db.backref("sessions", lazy=True))
