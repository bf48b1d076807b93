# Overview: Service-layer operations for the follow graph.

from __future__ import annotations

from ..extensions import db
from ..models import User, UserFollow
from ..models.communications import NOTIFICATION_NEW_FOLLOWER
from cyberphone.time_utils import utcnow
from . import notification_service
from .concurrency import run_idempotent


def toggle_follow(follower_id: int, target_id: int, *, follow: bool | None = None) -> bool | None:
    """
    Flip whether follower_id follows target_id.

    - Only the add transition notifies the target.
    - Missing users or self-follow: no-op, returns None.
    - follow=True/False sets the state instead of flipping it.

    Returns the resulting state (True = following).
    """
    intent = {"follow": follow}

    def _op():
        if follower_id == target_id:
            return None
        follower = db.session.get(User, follower_id)
        target = db.session.get(User, target_id)
        if not follower or not target:
            return None

        edge = db.session.query(UserFollow).filter_by(follower_id=follower_id, followed_id=target_id).first()
        # Captured on the first attempt so a retried duplicate converges
        if intent["follow"] is None:
            intent["follow"] = edge is None

        if intent["follow"]:
            if edge:
                return True
            db.session.add(UserFollow(follower_id=follower_id, followed_id=target_id, created_at=utcnow()))
            db.session.flush()
            notification_service.emit(NOTIFICATION_NEW_FOLLOWER, target_id, follower_id)
            return True

        if edge:
            db.session.delete(edge)
        return False

    return run_idempotent(_op)


def is_following(follower_id: int, target_id: int) -> bool:
    return (
        db.session.query(UserFollow)
        .filter_by(follower_id=follower_id, followed_id=target_id)
        .first()
        is not None
    )


def list_following(user_id: int) -> list[int]:
    rows = (
        db.session.query(UserFollow.followed_id)
        .filter_by(follower_id=user_id)
        .order_by(UserFollow.id.asc())
        .all()
    )
    return [r[0] for r in rows]


def list_followers(user_id: int) -> list[int]:
    rows = (
        db.session.query(UserFollow.follower_id)
        .filter_by(followed_id=user_id)
        .order_by(UserFollow.id.asc())
        .all()
    )
    return [r[0] for r in rows]
