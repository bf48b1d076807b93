# Overview: Service-layer operations for the notification feed.

from __future__ import annotations

from datetime import datetime

from ..errors import ValidationError
from ..extensions import db
from ..models import Notification
from ..models.communications import VALID_NOTIFICATION_TYPES
from cyberphone.time_utils import utcnow
from .concurrency import run_in_transaction


def emit(
    notification_type: str,
    recipient_id: int | None,
    actor_id: int | None,
    *,
    post_id: int | None = None,
    sale_id: int | None = None,
    occurred_at: datetime | None = None,
) -> Notification | None:
    """
    Append an event to the recipient's feed inside the caller's transaction.

    Silently dropped (returns None) when recipient == actor or either is missing.
    """
    if notification_type not in VALID_NOTIFICATION_TYPES:
        raise ValidationError(f"Invalid notification type: {notification_type}")

    if recipient_id is None or actor_id is None:
        return None
    if int(recipient_id) == int(actor_id):
        return None

    notification = Notification(
        notification_type=notification_type,
        recipient_id=recipient_id,
        actor_id=actor_id,
        post_id=post_id,
        sale_id=sale_id,
        is_read=False,
        occurred_at=occurred_at or utcnow(),
    )
    db.session.add(notification)
    db.session.flush()
    return notification


def list_for(recipient_id: int, *, unread_only: bool = False, limit: int | None = None) -> list[Notification]:
    q = db.session.query(Notification).filter_by(recipient_id=recipient_id)
    if unread_only:
        q = q.filter_by(is_read=False)
    q = q.order_by(Notification.id.desc())
    if limit:
        q = q.limit(limit)
    return q.all()


def unread_count(recipient_id: int) -> int:
    return db.session.query(Notification).filter_by(recipient_id=recipient_id, is_read=False).count()


def mark_all_read(recipient_id: int) -> int:
    """Flip every unread notification of the recipient; returns how many changed."""
    def _op():
        return (
            db.session.query(Notification)
            .filter_by(recipient_id=recipient_id, is_read=False)
            .update({Notification.is_read: True}, synchronize_session="fetch")
        )

    return run_in_transaction(_op)
