"""
Bay occupancy calculator.

Derived view for the scheduler grid: how many bays are in use at the
busiest moment of each day.
"""

import logging
from datetime import date, timedelta, timezone
from typing import Dict, Iterable, List

from workshop.datetime_utils import to_shop_local

logger = logging.getLogger(__name__)


def week_days(day: date) -> List[date]:
    """The seven dates of the Monday-start week containing `day`."""
    monday = day - timedelta(days=day.weekday())
    return [monday + timedelta(days=i) for i in range(7)]


def max_concurrent_bays(
    day: date,
    appointments: Iterable,
    job_durations: Dict[int, float],
    tz=None,
) -> int:
    """
    Maximum number of simultaneously occupied bays on `day`.

    Sweep line: every appointment contributes a +1 event at its start and a
    -1 event at its end; events are sorted by time only and a running sum
    tracks the peak. The sort is stable, so events at the same instant keep
    insertion order: a job ending exactly when another starts can briefly
    count as both.

    Appointments whose job cannot be resolved are skipped.

    Returns:
        int: peak concurrency, 0 for a day with no appointments
    """
    tz = tz or timezone.utc
    events = []
    for appointment in appointments:
        if to_shop_local(appointment.date_time, tz).date() != day:
            continue
        duration_hours = job_durations.get(appointment.job_id)
        if duration_hours is None:
            logger.debug("Skipping appointment %s: job %s not found", appointment.id, appointment.job_id)
            continue
        start = appointment.date_time
        end = start + timedelta(hours=duration_hours)
        events.append((start, 1))
        events.append((end, -1))

    events.sort(key=lambda event: event[0])

    current = 0
    peak = 0
    for _, delta in events:
        current += delta
        if delta > 0:
            peak = max(peak, current)
    return peak


def daily_bay_usage(
    days: Iterable[date],
    appointments: Iterable,
    job_durations: Dict[int, float],
    tz=None,
) -> Dict[date, int]:
    """Peak bay usage for each of `days` (typically one scheduler week)."""
    appointments = list(appointments)
    return {
        day: max_concurrent_bays(day, appointments, job_durations, tz)
        for day in days
    }
