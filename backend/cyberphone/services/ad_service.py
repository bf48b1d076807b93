# Overview: Service-layer operations for sponsored feed campaigns paid from the owner's wallet.

from __future__ import annotations

from flask import current_app

from ..errors import InsufficientFundsError, InvalidStateError, ValidationError
from ..extensions import db
from ..models import AdCampaign, Post, User
from ..models.advertising import AD_OBJECTIVE_TRAFFIC, VALID_AD_OBJECTIVES
from ..validation import ModelValidationPolicy, validate_payload
from . import ledger_service
from .concurrency import lock_for_update, run_in_transaction


CAMPAIGN_POLICY = ModelValidationPolicy(
    writable_fields={
        "objective",
        "title",
        "description",
        "target_audience",
        "image_url",
        "link_url",
        "cta_text",
        "budget_cents",
    },
    required_on_create={"title", "description", "target_audience", "budget_cents"},
)


def create_campaign(owner_id: int, payload: dict) -> AdCampaign | None:
    """
    Publish a campaign and pay its whole budget from the owner's wallet.

    The budget must reach MIN_AD_BUDGET_CENTS and be covered by the balance.
    Returns None when the owner does not exist.
    """
    patch = validate_payload(model=AdCampaign, payload=payload, policy=CAMPAIGN_POLICY, partial=False)

    objective = (patch.get("objective") or AD_OBJECTIVE_TRAFFIC).upper()
    if objective not in VALID_AD_OBJECTIVES:
        raise ValidationError(f"Invalid objective: {objective}. Must be one of {VALID_AD_OBJECTIVES}")
    patch["objective"] = objective

    minimum = max(current_app.config.get("MIN_AD_BUDGET_CENTS", 1), 1)
    if patch["budget_cents"] < minimum:
        raise ValidationError("budget_cents is below the minimum", details={"minimum_cents": minimum})

    def _op():
        owner = lock_for_update(db.session.query(User).filter_by(id=owner_id)).first()
        if not owner:
            return None
        if owner.balance_cents < patch["budget_cents"]:
            raise InsufficientFundsError(
                "Insufficient balance for campaign budget",
                details={"balance_cents": owner.balance_cents, "budget_cents": patch["budget_cents"]},
            )

        campaign = AdCampaign(owner_user_id=owner.id, is_active=True, **patch)
        db.session.add(campaign)
        ledger_service.post_adjustment(owner.id, -campaign.budget_cents, f"Ad campaign: {campaign.title}")
        return campaign

    campaign = run_in_transaction(_op)
    if campaign is not None:
        current_app.logger.info(
            "Ad campaign %s published by user %s with budget %s cents",
            campaign.id, owner_id, campaign.budget_cents,
        )
    return campaign


def set_active(campaign_id: int, owner_id: int, active: bool) -> AdCampaign | None:
    """Pause or resume a campaign. Owner only; the budget is not refunded."""
    if not isinstance(active, bool):
        raise ValidationError("is_active must be true or false")

    def _op():
        campaign = db.session.get(AdCampaign, campaign_id)
        if not campaign:
            return None
        if campaign.owner_user_id != owner_id:
            raise InvalidStateError("Only the campaign owner can change it")
        campaign.is_active = active
        return campaign

    return run_in_transaction(_op)


def get_campaign(campaign_id: int) -> AdCampaign | None:
    return db.session.get(AdCampaign, campaign_id)


def list_campaigns_for_owner(owner_id: int) -> list[AdCampaign]:
    return (
        db.session.query(AdCampaign)
        .filter_by(owner_user_id=owner_id)
        .order_by(AdCampaign.id.desc())
        .all()
    )


def list_active_campaigns() -> list[AdCampaign]:
    return (
        db.session.query(AdCampaign)
        .filter_by(is_active=True)
        .order_by(AdCampaign.id.asc())
        .all()
    )


def interleave_feed(posts: list[Post], campaigns: list[AdCampaign]) -> list[dict]:
    """
    Feed with one campaign after each post, in order.

    Campaigns beyond the number of posts are still appended; posts beyond the
    number of campaigns follow at the end.
    """
    items: list[dict] = []
    for index, campaign in enumerate(campaigns):
        if index < len(posts):
            items.append({"kind": "post", "post": posts[index].to_dict()})
        items.append({"kind": "ad", "ad": campaign.to_dict()})
    for post in posts[len(campaigns):]:
        items.append({"kind": "post", "post": post.to_dict()})
    return items
