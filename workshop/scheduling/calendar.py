"""
Shop calendar: pure functions over a shop's operating-hours configuration.

Nothing here touches the database or mutates state. Malformed "HH:MM"
strings are a caller error and are not handled here.
"""

from datetime import date, datetime, timedelta
from typing import Optional, Tuple

WEEKDAY_NAMES = ('Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday')


def weekday_name(day: date) -> str:
    """English weekday name of a date (locale independent)."""
    return WEEKDAY_NAMES[day.weekday()]


def parse_hhmm(value: str) -> int:
    """
    Convert an "HH:MM" time-of-day string to minutes after midnight.

    Example:
        parse_hhmm("08:30") == 510
    """
    hours, minutes = value.split(':')
    return int(hours) * 60 + int(minutes)


def format_minutes(minutes: int) -> str:
    """Convert minutes after midnight back to zero-padded "HH:MM"."""
    minutes = int(minutes)
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def minutes_of_day(dt: datetime) -> int:
    """Hour and minute of a (shop-local) datetime as minutes after midnight."""
    return dt.hour * 60 + dt.minute


def is_open_on(day: date, config) -> bool:
    """True iff the weekday of `day` is one of the shop's open weekdays."""
    return weekday_name(day) in config.open_weekdays


def operating_window(config) -> Tuple[int, int]:
    """
    Parse the operating hours into minute offsets.

    Returns:
        (start_minutes, end_minutes) relative to shop-local midnight
    """
    return parse_hhmm(config.start), parse_hhmm(config.end)


def is_within_hours(start_minutes: float, duration_minutes: float, config) -> bool:
    """True iff [start, start + duration) lies entirely inside operating hours."""
    shop_start, shop_end = operating_window(config)
    return start_minutes >= shop_start and start_minutes + duration_minutes <= shop_end


def next_open_day(day: date, config, max_days: int = 30) -> Optional[date]:
    """
    First open day on or after `day`.

    Searches at most `max_days` days ahead; returns None if the shop has no
    open day in that range (e.g. no open weekdays configured).
    """
    candidate = day
    for _ in range(max_days + 1):
        if is_open_on(candidate, config):
            return candidate
        candidate += timedelta(days=1)
    return None
