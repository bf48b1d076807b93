# Overview: Service-layer operations for posts: engagement, reactions, comments, pinning and visibility.

"""
Content Store

DESIGN PRINCIPLES:
- Engagement state is membership: a row in post_engagements / post_reactions
  means "this user acted". Counts are derived, never stored.
- like / save are true toggles; share is append-once.
- Only like, comment and reaction additions notify the post owner, and never
  when the owner is the actor.
- Referencing a missing post is a no-op (None), not an error.
- At most one pinned post per author, enforced on every pin call.
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import or_

from ..errors import InsufficientFundsError, InvalidStateError, ValidationError
from ..extensions import db
from ..models import Post, PostEngagement, PostReaction, PostComment, AudioTrack, LiveAccess, Notification, User
from ..models.communications import NOTIFICATION_LIKE, NOTIFICATION_COMMENT, NOTIFICATION_REACTION
from cyberphone.time_utils import utcnow, normalize_utc
from . import ledger_service, notification_service
from .concurrency import lock_for_update, run_in_transaction, run_idempotent
from .post_content import POST_TYPE_LIVE, parse_content, to_payload, summary_text, ReelContent


# =============================================================================
# ENGAGEMENT KINDS (CONSTANTS)
# =============================================================================

KIND_LIKE = "LIKE"
KIND_SAVE = "SAVE"
KIND_SHARE = "SHARE"

VALID_ENGAGEMENT_KINDS = [KIND_LIKE, KIND_SAVE, KIND_SHARE]

MAX_EMOJI_LENGTH = 32


def _normalize_kind(kind: str) -> str:
    normalized = (kind or "").strip().upper()
    if normalized not in VALID_ENGAGEMENT_KINDS:
        raise ValidationError(f"Invalid engagement kind: {kind}. Must be one of {VALID_ENGAGEMENT_KINDS}")
    return normalized


# =============================================================================
# POSTS
# =============================================================================

def create_post(
    user_id: int,
    post_type: str,
    payload: dict,
    scheduled_at: datetime | None = None,
) -> Post | None:
    """
    Create a post with a payload matching its type.

    Returns None when the author does not exist.
    """
    content = parse_content(post_type, payload)

    def _op():
        author = db.session.get(User, user_id)
        if not author:
            return None

        if isinstance(content, ReelContent) and content.audio_track_id is not None:
            if not db.session.get(AudioTrack, content.audio_track_id):
                raise ValidationError(f"Audio track {content.audio_track_id} not found")

        post = Post(
            user_id=user_id,
            post_type=post_type.upper(),
            content=summary_text(content),
            payload=to_payload(content),
            is_pinned=False,
            scheduled_at=normalize_utc(scheduled_at),
            created_at=utcnow(),
        )
        db.session.add(post)
        return post

    return run_in_transaction(_op)


def get_post(post_id: int) -> Post | None:
    return db.session.get(Post, post_id)


def delete_post(post_id: int, user_id: int) -> bool:
    """
    Remove a post and its engagement rows. Only the author may delete.

    Notifications that pointed at the post keep existing without a subject.
    """
    def _op():
        post = lock_for_update(db.session.query(Post).filter_by(id=post_id)).first()
        if not post:
            return False
        if post.user_id != user_id:
            raise InvalidStateError("Only the author can delete this post")

        db.session.query(PostEngagement).filter_by(post_id=post_id).delete(synchronize_session=False)
        db.session.query(PostReaction).filter_by(post_id=post_id).delete(synchronize_session=False)
        db.session.query(PostComment).filter_by(post_id=post_id).delete(synchronize_session=False)
        db.session.query(LiveAccess).filter_by(post_id=post_id).delete(synchronize_session=False)
        db.session.query(Notification).filter_by(post_id=post_id).update(
            {Notification.post_id: None}, synchronize_session=False
        )
        db.session.delete(post)
        return True

    return run_in_transaction(_op)


def list_visible(
    now: datetime | None = None,
    viewer_id: int | None = None,
    *,
    author_id: int | None = None,
    limit: int | None = None,
) -> list[Post]:
    """
    Posts the viewer may see.

    A post is visible when it has no scheduled_at, when scheduled_at <= now,
    or when the viewer is its author. author_id narrows to one profile, which
    lists its pinned post first.
    """
    now = normalize_utc(now) or utcnow()

    visibility = [Post.scheduled_at.is_(None), Post.scheduled_at <= now]
    if viewer_id is not None:
        visibility.append(Post.user_id == viewer_id)

    q = db.session.query(Post).filter(or_(*visibility))
    if author_id is not None:
        q = q.filter(Post.user_id == author_id).order_by(Post.is_pinned.desc(), Post.id.desc())
    else:
        q = q.order_by(Post.id.desc())
    if limit:
        q = q.limit(limit)
    return q.all()


def is_visible_to(post: Post, viewer_id: int | None, now: datetime | None = None) -> bool:
    now = normalize_utc(now) or utcnow()
    if post.scheduled_at is None or post.scheduled_at <= now:
        return True
    return viewer_id is not None and post.user_id == viewer_id


# =============================================================================
# PAID LIVE STREAMS
# =============================================================================

def has_live_access(post: Post, user_id: int) -> bool:
    """Free streams and the author's own stream need no ticket."""
    payload = post.payload or {}
    if post.post_type != POST_TYPE_LIVE or not payload.get("is_paid") or post.user_id == user_id:
        return True
    return db.session.query(LiveAccess).filter_by(post_id=post.id, user_id=user_id).first() is not None


def purchase_live_access(post_id: int, viewer_id: int) -> dict | None:
    """
    Buy a ticket for a paid live stream from the viewer's wallet.

    Debits the viewer and credits the author by the stream price in one
    transaction. A viewer who already has access is never charged again.
    Returns {"post_id", "user_id", "has_access", "charged_cents"} or None when
    the post or viewer does not exist, or the post is not visible yet.
    """
    def _op():
        post = db.session.get(Post, post_id)
        viewer = lock_for_update(db.session.query(User).filter_by(id=viewer_id)).first()
        if not post or not viewer or not is_visible_to(post, viewer.id):
            return None
        if post.post_type != POST_TYPE_LIVE:
            raise InvalidStateError("Only live streams sell access", details={"post_id": post_id})

        result = {"post_id": post.id, "user_id": viewer.id, "has_access": True, "charged_cents": 0}
        if has_live_access(post, viewer.id):
            return result

        price = int((post.payload or {}).get("price_cents") or 0)
        if current_app.config.get("ENFORCE_SUFFICIENT_FUNDS", True) and viewer.balance_cents < price:
            raise InsufficientFundsError(
                "Insufficient balance for live stream access",
                details={"balance_cents": viewer.balance_cents, "price_cents": price},
            )

        title = (post.payload or {}).get("title") or f"live {post.id}"
        ledger_service.post_adjustment(viewer.id, -price, f"Live access: {title}")
        ledger_service.post_adjustment(post.user_id, price, f"Live ticket sold: {title}")
        db.session.add(LiveAccess(post_id=post.id, user_id=viewer.id, amount_cents=price, created_at=utcnow()))
        result["charged_cents"] = price
        return result

    result = run_idempotent(_op)
    if result and result["charged_cents"]:
        current_app.logger.info(
            "User %s bought access to live %s for %s cents", viewer_id, post_id, result["charged_cents"]
        )
    return result


# =============================================================================
# PINNING
# =============================================================================

def set_pinned(post_id: int, user_id: int) -> Post | None:
    """
    Pin post_id and unpin every other post of the same author, in one transaction.

    Raises InvalidStateError when the post belongs to someone else.
    Returns None when the post does not exist.
    """
    def _op():
        post = db.session.get(Post, post_id)
        if not post:
            return None
        if post.user_id != user_id:
            raise InvalidStateError("Cannot pin a post owned by another user")

        own_posts = lock_for_update(db.session.query(Post).filter_by(user_id=user_id)).all()
        for p in own_posts:
            should_pin = p.id == post_id
            if p.is_pinned != should_pin:
                p.is_pinned = should_pin
        return post

    return run_in_transaction(_op)


def unpin(post_id: int, user_id: int | None = None) -> Post | None:
    """Clear the pin. With user_id, only applies to that user's post."""
    def _op():
        post = lock_for_update(db.session.query(Post).filter_by(id=post_id)).first()
        if not post:
            return None
        if user_id is not None and post.user_id != user_id:
            return None
        if post.is_pinned:
            post.is_pinned = False
        return post

    return run_in_transaction(_op)


def pinned_post_ids(user_id: int) -> list[int]:
    rows = db.session.query(Post.id).filter_by(user_id=user_id, is_pinned=True).all()
    return [r[0] for r in rows]


# =============================================================================
# ENGAGEMENT
# =============================================================================

def _engagement_count(post_id: int, kind: str) -> int:
    return db.session.query(PostEngagement).filter_by(post_id=post_id, kind=kind).count()


def toggle_engagement(post_id: int, user_id: int, kind: str, *, active: bool | None = None) -> dict | None:
    """
    Like / save toggle, share append-once.

    active=True/False sets the membership explicitly (idempotent under retry).
    Returns {"post_id", "kind", "active", "count"} or None when the post or
    user does not exist.
    """
    kind = _normalize_kind(kind)
    if kind == KIND_SHARE and active is False:
        raise ValidationError("Shares cannot be withdrawn")
    intent = {"active": True if kind == KIND_SHARE else active}

    def _op():
        post = db.session.get(Post, post_id)
        if not post or not db.session.get(User, user_id):
            return None

        row = db.session.query(PostEngagement).filter_by(post_id=post_id, user_id=user_id, kind=kind).first()
        if intent["active"] is None:
            intent["active"] = row is None

        if intent["active"] and row is None:
            db.session.add(PostEngagement(post_id=post_id, user_id=user_id, kind=kind, created_at=utcnow()))
            db.session.flush()
            if kind == KIND_LIKE:
                notification_service.emit(NOTIFICATION_LIKE, post.user_id, user_id, post_id=post_id)
        elif not intent["active"] and row is not None:
            db.session.delete(row)
            db.session.flush()

        return {
            "post_id": post_id,
            "kind": kind,
            "active": intent["active"],
            "count": _engagement_count(post_id, kind),
        }

    return run_idempotent(_op)


def toggle_reaction(post_id: int, user_id: int, emoji: str) -> dict | None:
    """
    Flip user_id's membership in the emoji's reaction set.

    An emoji with no users left disappears from the reaction map.
    Returns the post's reaction map after the change, or None when the post
    or user does not exist.
    """
    emoji = (emoji or "").strip()
    if not emoji or len(emoji) > MAX_EMOJI_LENGTH:
        raise ValidationError("emoji is required")
    intent = {"active": None}

    def _op():
        post = db.session.get(Post, post_id)
        if not post or not db.session.get(User, user_id):
            return None

        row = db.session.query(PostReaction).filter_by(post_id=post_id, user_id=user_id, emoji=emoji).first()
        if intent["active"] is None:
            intent["active"] = row is None

        if intent["active"] and row is None:
            db.session.add(PostReaction(post_id=post_id, user_id=user_id, emoji=emoji, created_at=utcnow()))
            db.session.flush()
            notification_service.emit(NOTIFICATION_REACTION, post.user_id, user_id, post_id=post_id)
        elif not intent["active"] and row is not None:
            db.session.delete(row)
            db.session.flush()

        return reaction_map(post_id)

    return run_idempotent(_op)


def reaction_map(post_id: int) -> dict[str, list[int]]:
    rows = (
        db.session.query(PostReaction)
        .filter_by(post_id=post_id)
        .order_by(PostReaction.id.asc())
        .all()
    )
    reactions: dict[str, list[int]] = {}
    for r in rows:
        reactions.setdefault(r.emoji, []).append(r.user_id)
    return reactions


def add_comment(post_id: int, user_id: int, text: str) -> PostComment | None:
    """Append a comment and notify the post owner. None when the post or user is missing."""
    text = (text or "").strip()
    if not text:
        raise ValidationError("Comment text is required")

    def _op():
        post = db.session.get(Post, post_id)
        if not post or not db.session.get(User, user_id):
            return None

        comment = PostComment(post_id=post_id, user_id=user_id, text=text, created_at=utcnow())
        db.session.add(comment)
        db.session.flush()
        notification_service.emit(NOTIFICATION_COMMENT, post.user_id, user_id, post_id=post_id)
        return comment

    return run_in_transaction(_op)


def list_comments(post_id: int) -> list[PostComment]:
    return (
        db.session.query(PostComment)
        .filter_by(post_id=post_id)
        .order_by(PostComment.id.asc())
        .all()
    )


def engagement_members(post_id: int, kind: str) -> list[int]:
    kind = _normalize_kind(kind)
    rows = (
        db.session.query(PostEngagement.user_id)
        .filter_by(post_id=post_id, kind=kind)
        .order_by(PostEngagement.id.asc())
        .all()
    )
    return [r[0] for r in rows]


def post_with_engagement(post: Post) -> dict:
    """Post dict plus its derived engagement state, as the feed renders it."""
    data = post.to_dict()
    data["likes"] = engagement_members(post.id, KIND_LIKE)
    data["saves"] = engagement_members(post.id, KIND_SAVE)
    data["shares"] = engagement_members(post.id, KIND_SHARE)
    data["reactions"] = reaction_map(post.id)
    data["comments"] = [c.to_dict() for c in list_comments(post.id)]
    data["counts"] = {
        "likes": len(data["likes"]),
        "saves": len(data["saves"]),
        "shares": len(data["shares"]),
        "comments": len(data["comments"]),
        "reactions": sum(len(users) for users in data["reactions"].values()),
    }
    return data


def get_post_engagement(post_id: int) -> dict | None:
    post = db.session.get(Post, post_id)
    if not post:
        return None
    return post_with_engagement(post)


# =============================================================================
# AUDIO TRACKS
# =============================================================================

def list_audio_tracks() -> list[AudioTrack]:
    return db.session.query(AudioTrack).order_by(AudioTrack.id.asc()).all()


def get_audio_track(track_id: int) -> AudioTrack | None:
    return db.session.get(AudioTrack, track_id)
