from __future__ import annotations

from ..extensions import db
from cyberphone.time_utils import to_utc_z


AD_OBJECTIVE_TRAFFIC = "TRAFFIC"
AD_OBJECTIVE_AWARENESS = "AWARENESS"
AD_OBJECTIVE_ENGAGEMENT = "ENGAGEMENT"

VALID_AD_OBJECTIVES = [AD_OBJECTIVE_TRAFFIC, AD_OBJECTIVE_AWARENESS, AD_OBJECTIVE_ENGAGEMENT]


class AdCampaign(db.Model):
    """
    Sponsored feed item paid for up front from the owner's wallet.

    budget_cents is debited through the ledger when the campaign is created
    and is not refunded when the campaign is paused.
    """
    __tablename__ = "ad_campaigns"
    __table_args__ = (
        db.CheckConstraint("budget_cents > 0", name="ck_ad_campaigns_budget_positive"),
        db.Index("ix_ad_campaigns_active", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    objective = db.Column(db.String(16), nullable=False, default=AD_OBJECTIVE_TRAFFIC)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False)
    target_audience = db.Column(db.String(255), nullable=False)
    image_url = db.Column(db.String(512), nullable=True)
    link_url = db.Column(db.String(512), nullable=True)
    cta_text = db.Column(db.String(64), nullable=True)

    budget_cents = db.Column(db.Integer, nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    owner = db.relationship("User", backref=db.backref("ad_campaigns", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_user_id": self.owner_user_id,
            "objective": self.objective,
            "title": self.title,
            "description": self.description,
            "target_audience": self.target_audience,
            "image_url": self.image_url,
            "link_url": self.link_url,
            "cta_text": self.cta_text,
            "budget_cents": self.budget_cents,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
