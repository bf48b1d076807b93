from __future__ import annotations

from ..extensions import db
from cyberphone.time_utils import to_utc_z


class Post(db.Model):
    """
    Feed item authored by a user.

    post_type tags the payload: TEXT, IMAGE, LIVE, REEL. The payload column
    holds only the fields of that variant (see services/post_content.py).

    PIN INVARIANT: at most one pinned post per author.
    VISIBILITY: scheduled_at in the future hides the post from everyone but its author.
    """
    __tablename__ = "posts"
    __table_args__ = (
        db.Index("ix_posts_user_pinned", "user_id", "is_pinned"),
        db.Index("ix_posts_scheduled_at", "scheduled_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    post_type = db.Column(db.String(16), nullable=False)  # TEXT, IMAGE, LIVE, REEL
    content = db.Column(db.Text, nullable=True)
    payload = db.Column(db.JSON, nullable=False, default=dict)

    is_pinned = db.Column(db.Boolean, nullable=False, default=False)
    scheduled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    author = db.relationship("User", backref=db.backref("posts", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Post id={self.id} type={self.post_type} user_id={self.user_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "post_type": self.post_type,
            "content": self.content,
            "payload": dict(self.payload or {}),
            "is_pinned": self.is_pinned,
            "scheduled_at": to_utc_z(self.scheduled_at),
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }


class PostEngagement(db.Model):
    """
    Membership row: user_id has liked / saved / shared post_id.

    A row's existence is the state. The unique constraint makes duplicate
    concurrent toggles converge instead of double counting.
    """
    __tablename__ = "post_engagements"
    __table_args__ = (
        db.UniqueConstraint("post_id", "user_id", "kind", name="uq_post_engagements_post_user_kind"),
        db.Index("ix_post_engagements_post_kind", "post_id", "kind"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    post_id = db.Column(db.Integer, db.ForeignKey("posts.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    kind = db.Column(db.String(8), nullable=False)  # LIKE, SAVE, SHARE
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())


class PostReaction(db.Model):
    """Emoji reaction membership: (post, emoji) -> set of user ids."""
    __tablename__ = "post_reactions"
    __table_args__ = (
        db.UniqueConstraint("post_id", "user_id", "emoji", name="uq_post_reactions_post_user_emoji"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    post_id = db.Column(db.Integer, db.ForeignKey("posts.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    emoji = db.Column(db.String(32), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())


class PostComment(db.Model):
    """Append-only comment thread entry."""
    __tablename__ = "post_comments"
    __table_args__ = (
        db.Index("ix_post_comments_post_id_id", "post_id", "id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    post_id = db.Column(db.Integer, db.ForeignKey("posts.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    text = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    author = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "post_id": self.post_id,
            "user_id": self.user_id,
            "user_name": self.author.display_name if self.author else None,
            "text": self.text,
            "created_at": to_utc_z(self.created_at),
        }


class AudioTrack(db.Model):
    """Soundtrack catalogue for reels (read-only at runtime, seeded by CLI)."""
    __tablename__ = "audio_tracks"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    artist = db.Column(db.String(255), nullable=False)
    url = db.Column(db.String(512), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "artist": self.artist,
            "url": self.url,
        }


class LiveAccess(db.Model):
    """
    Ticket for a paid live stream: viewer user_id paid amount_cents for post_id.

    One row per (post, viewer), so a viewer is charged at most once.
    """
    __tablename__ = "live_access"
    __table_args__ = (
        db.UniqueConstraint("post_id", "user_id", name="uq_live_access_post_user"),
        db.CheckConstraint("amount_cents >= 0", name="ck_live_access_amount_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    post_id = db.Column(db.Integer, db.ForeignKey("posts.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "post_id": self.post_id,
            "user_id": self.user_id,
            "amount_cents": self.amount_cents,
            "created_at": to_utc_z(self.created_at),
        }
