# Overview: Service-layer operations for the wallet ledger; the only writer of user balances.

from __future__ import annotations

from flask import current_app

from ..errors import InsufficientFundsError, ValidationError
from ..extensions import db
from ..models import User, WalletTransaction, PaymentCard
from cyberphone.time_utils import utcnow
from .concurrency import lock_for_update, run_idempotent, run_in_transaction
"""
Ledger Invariants (authoritative)

- users.balance_cents == sum(signed amount of every wallet_transactions row of that user).
- Every balance mutation appends exactly one WalletTransaction in the same DB transaction.
- WalletTransaction rows are never updated or deleted.
- amount_cents is the magnitude; transaction_type (CREDIT/DEBIT) carries the sign.
"""


TRANSACTION_CREDIT = "CREDIT"
TRANSACTION_DEBIT = "DEBIT"


def _lock_user(user_id: int) -> User | None:
    return lock_for_update(db.session.query(User).filter_by(id=user_id)).first()


def post_adjustment(
    user_id: int,
    signed_amount_cents: int,
    description: str,
    *,
    sale_id: int | None = None,
) -> WalletTransaction | None:
    """
    Apply balance += signed_amount_cents and append the matching ledger row.

    Runs inside the caller's transaction (flush only). Returns None when the
    user does not exist, in which case nothing was written.
    """
    if isinstance(signed_amount_cents, bool) or not isinstance(signed_amount_cents, int):
        raise ValidationError("Amount must be an integer number of cents")

    user = _lock_user(user_id)
    if not user:
        return None

    user.balance_cents = (user.balance_cents or 0) + signed_amount_cents

    tx = WalletTransaction(
        user_id=user.id,
        transaction_type=TRANSACTION_CREDIT if signed_amount_cents >= 0 else TRANSACTION_DEBIT,
        amount_cents=abs(signed_amount_cents),
        description=description or "Balance movement",
        sale_id=sale_id,
        occurred_at=utcnow(),
    )
    db.session.add(tx)
    db.session.flush()
    return tx


def adjust_balance(user_id: int, signed_amount_cents: int, description: str = "Balance movement") -> bool:
    """
    Standalone ledger mutation (its own transaction).

    Returns False (and changes nothing) when the user does not exist.
    """
    def _op():
        return post_adjustment(user_id, signed_amount_cents, description) is not None

    return run_in_transaction(_op)


def withdraw(user_id: int, amount_cents: int) -> WalletTransaction | None:
    """
    Move money out of the wallet.

    Enforces the configured minimum and never lets the balance go negative.
    Returns None when the user does not exist.
    """
    minimum = current_app.config.get("MIN_WITHDRAWAL_CENTS", 0)
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int) or amount_cents <= 0:
        raise ValidationError("Withdrawal amount must be a positive integer number of cents")
    if amount_cents < minimum:
        raise ValidationError(
            "Withdrawal amount is below the minimum",
            details={"minimum_cents": minimum},
        )

    def _op():
        user = _lock_user(user_id)
        if not user:
            return None
        if user.balance_cents < amount_cents:
            raise InsufficientFundsError(
                "Insufficient balance for withdrawal",
                details={"balance_cents": user.balance_cents, "requested_cents": amount_cents},
            )
        return post_adjustment(user_id, -amount_cents, "Withdrawal")

    return run_in_transaction(_op)


def request_card(user_id: int, card: dict) -> PaymentCard | None:
    """
    Replace the user's payment-instrument snapshot. Balance is untouched.

    Returns None when the user does not exist.
    """
    holder_name = card.get("holder_name")
    if not isinstance(holder_name, str) or not holder_name.strip():
        raise ValidationError("holder_name is required")
    holder_name = holder_name.strip()
    number = "".join(ch for ch in str(card.get("number") or card.get("last4") or "") if ch.isdigit())
    if len(number) < 4:
        raise ValidationError("Card number must have at least 4 digits")
    brand = card.get("brand") or "DEBIT"
    expiry = card.get("expiry")
    if not isinstance(brand, str) or (expiry is not None and not isinstance(expiry, str)):
        raise ValidationError("brand and expiry must be strings")
    brand = brand.upper()

    def _op():
        user = db.session.get(User, user_id)
        if not user:
            return None

        snapshot = db.session.query(PaymentCard).filter_by(user_id=user_id).first()
        if snapshot is None:
            snapshot = PaymentCard(user_id=user_id)
            db.session.add(snapshot)

        # Updated in place; one row per user
        snapshot.holder_name = holder_name
        snapshot.last4 = number[-4:]
        snapshot.brand = brand
        snapshot.expiry = expiry
        snapshot.issued_at = utcnow()
        return snapshot

    return run_idempotent(_op)


def list_transactions(user_id: int, limit: int | None = None) -> list[WalletTransaction]:
    """Ledger rows for a user, newest first (insertion order is chronological)."""
    q = (
        db.session.query(WalletTransaction)
        .filter_by(user_id=user_id)
        .order_by(WalletTransaction.id.desc())
    )
    if limit:
        q = q.limit(limit)
    return q.all()


def ledger_balance(user_id: int) -> int:
    """Balance recomputed from the transaction log."""
    return sum(tx.signed_amount_cents for tx in list_transactions(user_id))


def verify_ledger(user_id: int) -> dict:
    """Compare the stored balance with the log; used by the CLI audit and tests."""
    user = db.session.get(User, user_id)
    if not user:
        return {"user_id": user_id, "ok": False, "error": "User not found"}
    computed = ledger_balance(user_id)
    return {
        "user_id": user_id,
        "ok": computed == user.balance_cents,
        "stored_cents": user.balance_cents,
        "computed_cents": computed,
    }
