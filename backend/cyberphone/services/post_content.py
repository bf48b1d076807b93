# Overview: Post payload variants keyed by post type (text, image, live, reel).

"""
Each post type owns exactly one payload shape. Parsing rejects fields that do
not belong to the variant, so a TEXT post can never carry a stream URL and a
REEL can never lack its video.

Payloads are opaque to the store beyond this shape check: URLs and text come
from the presentation or content-generation collaborators unvalidated.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict, fields
from typing import Union

from ..errors import ValidationError


POST_TYPE_TEXT = "TEXT"
POST_TYPE_IMAGE = "IMAGE"
POST_TYPE_LIVE = "LIVE"
POST_TYPE_REEL = "REEL"


@dataclass(frozen=True)
class TextContent:
    text: str


@dataclass(frozen=True)
class ImageContent:
    image_url: str
    text: str = ""


@dataclass(frozen=True)
class LiveContent:
    title: str
    stream_url: str
    description: str = ""
    is_paid: bool = False
    price_cents: int = 0
    payment_link: str | None = None


@dataclass(frozen=True)
class ReelContent:
    title: str
    video_url: str
    description: str = ""
    audio_track_id: int | None = None


PostContent = Union[TextContent, ImageContent, LiveContent, ReelContent]

CONTENT_TYPES: dict[str, type] = {
    POST_TYPE_TEXT: TextContent,
    POST_TYPE_IMAGE: ImageContent,
    POST_TYPE_LIVE: LiveContent,
    POST_TYPE_REEL: ReelContent,
}

VALID_POST_TYPES = list(CONTENT_TYPES)


def _require_text(data: dict, key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{key} is required")
    return value.strip()


def _optional_text(data: dict, key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    return value.strip()


def parse_content(post_type: str, data: dict | None) -> PostContent:
    """Build the variant for post_type from a raw payload dict."""
    post_type = post_type.upper() if isinstance(post_type, str) else ""
    cls = CONTENT_TYPES.get(post_type)
    if cls is None:
        raise ValidationError(f"Invalid post type: {post_type}. Must be one of {VALID_POST_TYPES}")

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValidationError("payload must be an object")
    data = dict(data)
    allowed = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise ValidationError(f"Field not allowed for {post_type} post: {', '.join(unknown)}")

    if cls is TextContent:
        return TextContent(text=_require_text(data, "text"))

    if cls is ImageContent:
        return ImageContent(image_url=_require_text(data, "image_url"), text=_optional_text(data, "text"))

    if cls is LiveContent:
        is_paid = bool(data.get("is_paid", False))
        price_cents = data.get("price_cents") or 0
        if isinstance(price_cents, bool) or not isinstance(price_cents, int) or price_cents < 0:
            raise ValidationError("price_cents must be a non-negative integer")
        if is_paid and price_cents <= 0:
            raise ValidationError("Paid live streams need a positive price_cents")
        return LiveContent(
            title=_require_text(data, "title"),
            stream_url=_require_text(data, "stream_url"),
            description=_optional_text(data, "description"),
            is_paid=is_paid,
            price_cents=price_cents if is_paid else 0,
            payment_link=_optional_text(data, "payment_link") or None,
        )

    audio_track_id = data.get("audio_track_id")
    if audio_track_id is not None and (isinstance(audio_track_id, bool) or not isinstance(audio_track_id, int)):
        raise ValidationError("audio_track_id must be an integer")
    return ReelContent(
        title=_require_text(data, "title"),
        video_url=_require_text(data, "video_url"),
        description=_optional_text(data, "description"),
        audio_track_id=audio_track_id,
    )


def to_payload(content: PostContent) -> dict:
    return asdict(content)


def summary_text(content: PostContent) -> str:
    """Plain text used for the posts.content column (search and previews)."""
    if isinstance(content, (TextContent, ImageContent)):
        return content.text
    return content.title
