# Overview: Service-layer operations for community events and their attendee lists.

from __future__ import annotations

from datetime import datetime

from ..errors import ValidationError
from ..extensions import db
from ..models import Event, User
from cyberphone.time_utils import normalize_utc
from .concurrency import run_idempotent, run_in_transaction


EVENT_TYPE_ONLINE = "ONLINE"
EVENT_TYPE_IN_PERSON = "IN_PERSON"
VALID_EVENT_TYPES = [EVENT_TYPE_ONLINE, EVENT_TYPE_IN_PERSON]


def create_event(
    creator_id: int,
    title: str,
    starts_at: datetime,
    *,
    description: str | None = None,
    location: str | None = None,
    event_type: str = EVENT_TYPE_ONLINE,
    image_url: str | None = None,
) -> Event | None:
    """Create an event; the creator is its first attendee. None when the creator is missing."""
    title = (title or "").strip()
    if not title:
        raise ValidationError("title is required")
    if starts_at is None:
        raise ValidationError("starts_at is required")
    event_type = (event_type or EVENT_TYPE_ONLINE).upper()
    if event_type not in VALID_EVENT_TYPES:
        raise ValidationError(f"Invalid event type: {event_type}. Must be one of {VALID_EVENT_TYPES}")

    def _op():
        creator = db.session.get(User, creator_id)
        if not creator:
            return None
        event = Event(
            creator_id=creator_id,
            title=title,
            description=description,
            starts_at=normalize_utc(starts_at),
            location=location,
            event_type=event_type,
            image_url=image_url,
        )
        event.attendees.append(creator)
        db.session.add(event)
        return event

    return run_in_transaction(_op)


def toggle_join(event_id: int, user_id: int) -> bool | None:
    """Flip attendance. Returns the resulting state, or None for a missing event/user."""
    intent = {"join": None}

    def _op():
        event = db.session.get(Event, event_id)
        user = db.session.get(User, user_id)
        if not event or not user:
            return None

        attending = user in event.attendees
        if intent["join"] is None:
            intent["join"] = not attending

        if intent["join"] and not attending:
            event.attendees.append(user)
        elif not intent["join"] and attending:
            event.attendees.remove(user)
        return intent["join"]

    return run_idempotent(_op)


def get_event(event_id: int) -> Event | None:
    return db.session.get(Event, event_id)


def list_events() -> list[Event]:
    return db.session.query(Event).order_by(Event.starts_at.asc(), Event.id.asc()).all()
