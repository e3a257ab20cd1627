"""Shared date/time helpers for document encoding and request parsing.

utcnow:          timezone-aware "now" used for every stored timestamp
to_iso:          datetime -> ISO-8601 string (None passes through)
parse_datetime:  ISO-8601 string -> aware datetime (raises ValidationError)
parse_date:      ISO date / datetime string -> date (returns None on bad input)
"""
from datetime import date, datetime, timezone

from eventdesk.core.exceptions import ValidationError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def parse_datetime(value, field: str = "datetime") -> datetime | None:
    """Parse an ISO-8601 string into an aware UTC datetime.

    Naive values are taken to be UTC. A trailing ``Z`` is accepted.
    Empty input returns None; malformed input raises ValidationError.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        raw = str(value).strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(raw)
        except ValueError:
            raise ValidationError(
                f"{field} must be an ISO-8601 datetime",
                details={field: f"invalid datetime {value!r}"},
            ) from None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_date(value):
    """Parse a date string (YYYY-MM-DD or an ISO datetime) to a date object.

    Returns None for empty/invalid input.
    """
    if not value:
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except (ValueError, TypeError):
        pass
    try:
        return datetime.fromisoformat(str(value)).date()
    except (ValueError, TypeError):
        return None
