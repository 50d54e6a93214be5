"""
DateTime utility functions for the application.

Appointment times are persisted as naive UTC datetimes; every weekday and
time-of-day calculation happens in the shop's local timezone.
"""
from datetime import date, datetime, timezone
from typing import Optional, Union


def utcnow() -> datetime:
    """Naive UTC now, the storage representation used by the models."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_storage(dt: datetime) -> datetime:
    """Convert an aware datetime to naive UTC for persistence."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def from_storage(dt: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to a naive datetime read back from the database."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_shop_local(dt: datetime, tz) -> datetime:
    """Convert a datetime to shop-local time. Naive values are assumed UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(tz)


def format_iso_utc(dt: Optional[datetime]) -> Optional[str]:
    """
    Format a datetime as ISO-8601 UTC with a trailing 'Z'.
    Returns format like: "2024-05-06T09:30:00Z"
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).replace(tzinfo=None).isoformat(timespec="seconds") + "Z"


def parse_iso_datetime(value: str, tz=None) -> datetime:
    """
    Parse an ISO-8601 timestamp into an aware datetime.

    Args:
        value: ISO string, 'Z' suffix accepted
        tz: timezone applied to naive input (defaults to UTC)

    Raises:
        ValueError: if the value is not a valid ISO timestamp
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError("datetime must be a non-empty ISO-8601 string")

    dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=tz or timezone.utc)
    return dt


def parse_iso_date(value: Union[str, date, datetime], tz=None) -> date:
    """
    Parse a calendar date in shop-local terms.

    Accepts 'YYYY-MM-DD' or a full ISO timestamp. Timestamps are converted
    to the shop timezone before the date is taken, so a browser's local
    midnight serialized as UTC still lands on the intended day.

    Raises:
        ValueError: if the value cannot be parsed
    """
    if isinstance(value, datetime):
        return to_shop_local(value, tz or timezone.utc).date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValueError("date must be a non-empty ISO-8601 string")

    value = value.strip()
    if len(value) == 10:
        return date.fromisoformat(value)

    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        return dt.date()
    return dt.astimezone(tz or timezone.utc).date()
