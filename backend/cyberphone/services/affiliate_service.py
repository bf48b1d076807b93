# Overview: Service-layer operations for affiliate referral links.

from __future__ import annotations

import secrets

from ..extensions import db
from ..models import AffiliateLink, Product, User
from ..validation import coerce_int
from .concurrency import lock_for_update, run_idempotent, run_in_transaction


CODE_BYTES = 8


def generate_code() -> str:
    return secrets.token_urlsafe(CODE_BYTES)


def get_or_create_link(affiliate_id: int, product_id: int) -> AffiliateLink | None:
    """
    Stable referral code for (affiliate, product); repeated calls return the same link.

    Returns None when the affiliate or product does not exist.
    """
    product_id = coerce_int("product_id", product_id)

    def _op():
        if not db.session.get(User, affiliate_id) or not db.session.get(Product, product_id):
            return None
        link = (
            db.session.query(AffiliateLink)
            .filter_by(affiliate_user_id=affiliate_id, product_id=product_id)
            .first()
        )
        if link:
            return link
        link = AffiliateLink(code=generate_code(), affiliate_user_id=affiliate_id, product_id=product_id, click_count=0)
        db.session.add(link)
        return link

    return run_idempotent(_op)


def resolve_link(code: str) -> AffiliateLink | None:
    """Look up a referral code and count the click. None for unknown codes."""
    def _op():
        link = lock_for_update(db.session.query(AffiliateLink).filter_by(code=code)).first()
        if not link:
            return None
        link.click_count = (link.click_count or 0) + 1
        return link

    return run_in_transaction(_op)


def list_links_for_affiliate(affiliate_id: int) -> list[AffiliateLink]:
    return (
        db.session.query(AffiliateLink)
        .filter_by(affiliate_user_id=affiliate_id)
        .order_by(AffiliateLink.id.asc())
        .all()
    )
