from __future__ import annotations

from ..extensions import db
from cyberphone.time_utils import to_utc_z


NOTIFICATION_NEW_FOLLOWER = "NEW_FOLLOWER"
NOTIFICATION_LIKE = "LIKE"
NOTIFICATION_COMMENT = "COMMENT"
NOTIFICATION_REACTION = "REACTION"
NOTIFICATION_AFFILIATE_SALE = "AFFILIATE_SALE"
NOTIFICATION_ORDER_STATUS = "ORDER_STATUS"

VALID_NOTIFICATION_TYPES = {
    NOTIFICATION_NEW_FOLLOWER,
    NOTIFICATION_LIKE,
    NOTIFICATION_COMMENT,
    NOTIFICATION_REACTION,
    NOTIFICATION_AFFILIATE_SALE,
    NOTIFICATION_ORDER_STATUS,
}


class Notification(db.Model):
    """
    Append-only event feed entry for one recipient.

    Never written when recipient == actor; the check constraint backs up
    the guard in notification_service.emit.
    """
    __tablename__ = "notifications"
    __table_args__ = (
        db.CheckConstraint("recipient_id <> actor_id", name="ck_notifications_not_self"),
        db.Index("ix_notifications_recipient_read", "recipient_id", "is_read"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    notification_type = db.Column(db.String(32), nullable=False)
    recipient_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    actor_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    # Optional subject
    post_id = db.Column(db.Integer, db.ForeignKey("posts.id"), nullable=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("affiliate_sales.id"), nullable=True)

    is_read = db.Column(db.Boolean, nullable=False, default=False)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "notification_type": self.notification_type,
            "recipient_id": self.recipient_id,
            "actor_id": self.actor_id,
            "post_id": self.post_id,
            "sale_id": self.sale_id,
            "is_read": self.is_read,
            "occurred_at": to_utc_z(self.occurred_at),
        }


event_attendees = db.Table(
    "event_attendees",
    db.Column("event_id", db.Integer, db.ForeignKey("events.id"), primary_key=True),
    db.Column("user_id", db.Integer, db.ForeignKey("users.id"), primary_key=True),
)


class Event(db.Model):
    """Community event (online class, meetup) with an attendee list."""
    __tablename__ = "events"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    creator_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    starts_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    location = db.Column(db.String(255), nullable=True)
    event_type = db.Column(db.String(16), nullable=False, default="ONLINE")  # ONLINE, IN_PERSON
    image_url = db.Column(db.String(512), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    creator = db.relationship("User")
    attendees = db.relationship("User", secondary=event_attendees, lazy=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "creator_id": self.creator_id,
            "creator_name": self.creator.display_name if self.creator else None,
            "title": self.title,
            "description": self.description,
            "starts_at": to_utc_z(self.starts_at),
            "location": self.location,
            "event_type": self.event_type,
            "image_url": self.image_url,
            "attendee_ids": sorted(u.id for u in self.attendees),
            "created_at": to_utc_z(self.created_at),
        }
