from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from sqlalchemy import Boolean, Float, Integer, String, Text, DateTime, JSON
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from cyberphone.time_utils import parse_iso_datetime


# Maximum price: $9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999

MIN_RATING = 1
MAX_RATING = 5


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set
    - required_on_create: fields required for create calls
    """
    writable_fields: set[str]
    required_on_create: set[str] | None = None


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def require_object(value: Any, key: str = "body") -> dict:
    """JSON objects only; lists, strings and numbers are rejected."""
    if not isinstance(value, dict):
        raise ValidationError(f"{key} must be a JSON object")
    return value


def coerce_int(key: str, value: Any) -> int:
    """Strict integer: rejects bools, floats, decimals and scientific notation."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        if "e" in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(col.key, value)

    if isinstance(coltype, Float):
        if isinstance(value, bool):
            raise ValidationError(f"{col.key} must be a number")
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{col.key} must be a number")
        if not math.isfinite(number):
            raise ValidationError(f"{col.key} must be a finite number")
        return number

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        return bool(value)

    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    if isinstance(coltype, JSON):
        return value

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_rules_product(patch: dict) -> None:
    """Product rules that column metadata does not capture."""
    if "price_cents" in patch and patch["price_cents"] is not None:
        price = patch["price_cents"]
        if price <= 0:
            raise ValidationError("price_cents must be > 0")
        if price > MAX_PRICE_CENTS:
            raise ValidationError(f"price_cents cannot exceed {MAX_PRICE_CENTS} (${MAX_PRICE_CENTS / 100:,.2f})")

    if "affiliate_commission_rate" in patch and patch["affiliate_commission_rate"] is not None:
        rate = patch["affiliate_commission_rate"]
        if not math.isfinite(rate) or rate < 0 or rate > 1:
            raise ValidationError("affiliate_commission_rate must be between 0 and 1")

    if "image_urls" in patch and patch["image_urls"] is not None:
        urls = patch["image_urls"]
        if not isinstance(urls, list) or not all(isinstance(u, str) for u in urls):
            raise ValidationError("image_urls must be a list of strings")


def parse_money_to_cents(value: Any, key: str = "amount") -> int:
    """
    Decimal currency amount ("29.99", 29.99) to integer cents.

    More than two decimal places is rejected rather than rounded.
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{key} must be a number")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"{key} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{key} must be a number")
    cents = amount * 100
    if cents != cents.to_integral_value():
        raise ValidationError(f"{key} must have at most two decimal places")
    return int(cents)


def commission_cents(sale_amount_cents: int, rate: float) -> int:
    """sale_amount * rate, rounded half-up to the nearest cent."""
    exact = Decimal(sale_amount_cents) * Decimal(str(rate))
    return int(exact.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def require_quantity(value: Any, key: str = "quantity") -> int:
    qty = coerce_int(key, value)
    if qty <= 0:
        raise ValidationError(f"{key} must be > 0")
    return qty


def require_rating(value: Any) -> int:
    rating = coerce_int("rating", value)
    if rating < MIN_RATING or rating > MAX_RATING:
        raise ValidationError(f"rating must be between {MIN_RATING} and {MAX_RATING}")
    return rating


def parse_optional_datetime(value: Any, key: str) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        dt = parse_iso_datetime(str(value))
    except ValueError:
        raise ValidationError(f"{key} must be an ISO-8601 datetime")
    if dt is None:
        raise ValidationError(f"{key} must be an ISO-8601 datetime")
    return dt
