"""
Slot availability engine.

Computes which start times on a given day can take a job of a given
duration without exceeding the shop's bay capacity. Pure: no database
access, no hidden state, identical inputs give identical output.
"""

import logging
import math
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from workshop.datetime_utils import to_shop_local
from workshop.scheduling.calendar import (
    format_minutes,
    is_open_on,
    is_within_hours,
    minutes_of_day,
    operating_window,
)
from workshop.scheduling.config import SchedulingConfig, ShopCalendarConfig
from workshop.scheduling.errors import InvalidDuration

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Slot:
    """A bookable start time (shop-local) on a given day."""
    start_minutes: int

    @property
    def time(self) -> str:
        return format_minutes(self.start_minutes)

    @property
    def period(self) -> str:
        if self.start_minutes // 60 < SchedulingConfig.AFTERNOON_START_HOUR:
            return 'morning'
        return 'afternoon'

    def to_dict(self):
        return {'time': self.time}


@dataclass(frozen=True)
class SlotAvailability:
    """Result of a slot computation; shop_closed is distinct from 'no capacity'."""
    slots: Tuple[Slot, ...]
    shop_closed: bool

    def to_dict(self):
        return {
            'slots': [slot.to_dict() for slot in self.slots],
            'shopClosed': self.shop_closed,
        }


@dataclass(frozen=True)
class Interval:
    """Occupied [start, end) range in minutes after shop-local midnight."""
    start: float
    end: float
    appointment_id: Optional[int] = None


def validate_duration(job_duration_hours) -> float:
    """
    Check a job duration before it is used for slot maths.

    Returns:
        float: the duration in hours

    Raises:
        InvalidDuration: for zero, negative, non-numeric or non-finite values
    """
    if isinstance(job_duration_hours, bool) or not isinstance(job_duration_hours, (int, float)):
        raise InvalidDuration(job_duration_hours)
    if not math.isfinite(job_duration_hours) or job_duration_hours <= 0:
        raise InvalidDuration(job_duration_hours)
    return float(job_duration_hours)


def day_intervals(
    day: date,
    appointments: Iterable,
    job_durations: Dict[int, float],
    tz,
    exclude_appointment_id: Optional[int] = None,
) -> List[Interval]:
    """
    Occupied intervals for the appointments starting on `day`.

    Appointments whose job cannot be resolved in `job_durations` are skipped;
    a dangling reference must not break a read-only calculation.

    Args:
        day: shop-local calendar date
        appointments: objects with id, job_id and an aware date_time
        job_durations: job id -> estimated duration in hours
        tz: shop timezone
        exclude_appointment_id: appointment to leave out (e.g. the one being moved)
    """
    intervals = []
    for appointment in appointments:
        if exclude_appointment_id is not None and appointment.id == exclude_appointment_id:
            continue

        local_start = to_shop_local(appointment.date_time, tz)
        if local_start.date() != day:
            continue

        duration_hours = job_durations.get(appointment.job_id)
        if duration_hours is None:
            logger.debug(
                "Skipping appointment %s: job %s not found",
                appointment.id,
                appointment.job_id,
            )
            continue

        start = minutes_of_day(local_start)
        intervals.append(Interval(start, start + duration_hours * 60, appointment.id))

    return intervals


def count_overlaps(start: float, end: float, intervals: Iterable[Interval]) -> int:
    """Number of intervals strictly overlapping [start, end)."""
    return sum(1 for iv in intervals if iv.start < end and iv.end > start)


def compute_slots(
    day: date,
    job_duration_hours: float,
    config: ShopCalendarConfig,
    existing_appointments: Iterable,
    existing_job_durations: Dict[int, float],
    exclude_appointment_id: Optional[int] = None,
) -> SlotAvailability:
    """
    Compute bookable slots for a job on a given day.

    Algorithm:
    1. Closed weekday -> no slots, shop_closed=True
    2. Existing appointments on the day become occupied intervals
    3. Candidates start at opening time, every 15 minutes, while the job
       still finishes by closing time
    4. A candidate is kept while fewer than bay_count intervals overlap it

    Args:
        day: shop-local date to compute slots for
        job_duration_hours: duration of the job being booked
        config: shop calendar configuration
        existing_appointments: booked appointments (any day; filtered here)
        existing_job_durations: job id -> duration hours for those appointments
        exclude_appointment_id: appointment to ignore when counting occupancy

    Returns:
        SlotAvailability: chronological slots and the shop_closed flag

    Raises:
        InvalidDuration: if job_duration_hours is not a positive number
            (only checked on open days)
    """
    if not is_open_on(day, config):
        return SlotAvailability(slots=(), shop_closed=True)

    duration_minutes = validate_duration(job_duration_hours) * 60

    shop_start, shop_end = operating_window(config)
    intervals = day_intervals(
        day,
        existing_appointments,
        existing_job_durations,
        config.tzinfo,
        exclude_appointment_id=exclude_appointment_id,
    )

    slots = []
    step = SchedulingConfig.SLOT_GRANULARITY_MINUTES
    candidate = shop_start
    while candidate + duration_minutes <= shop_end:
        if count_overlaps(candidate, candidate + duration_minutes, intervals) < config.bay_count:
            slots.append(Slot(candidate))
        candidate += step

    return SlotAvailability(slots=tuple(slots), shop_closed=False)


def slot_rejection_reason(
    day: date,
    start_minutes: int,
    job_duration_hours: float,
    config: ShopCalendarConfig,
    existing_appointments: Iterable,
    existing_job_durations: Dict[int, float],
    exclude_appointment_id: Optional[int] = None,
) -> Optional[str]:
    """
    Check a single requested start against the same rules as compute_slots.

    The start does not have to sit on the 15-minute grid.

    Returns:
        None if the start is bookable, otherwise one of
        'shop_closed', 'outside_hours', 'over_capacity'

    Raises:
        InvalidDuration: if job_duration_hours is not a positive number
            (only checked on open days)
    """
    if not is_open_on(day, config):
        return 'shop_closed'

    duration_minutes = validate_duration(job_duration_hours) * 60
    if not is_within_hours(start_minutes, duration_minutes, config):
        return 'outside_hours'

    intervals = day_intervals(
        day,
        existing_appointments,
        existing_job_durations,
        config.tzinfo,
        exclude_appointment_id=exclude_appointment_id,
    )
    if count_overlaps(start_minutes, start_minutes + duration_minutes, intervals) >= config.bay_count:
        return 'over_capacity'
    return None


def group_slots_by_period(slots: Iterable[Slot]) -> Dict[str, List[Dict[str, str]]]:
    """Split slots into morning (before noon) and afternoon groups for display."""
    grouped = {'morning': [], 'afternoon': []}
    for slot in slots:
        grouped[slot.period].append(slot.to_dict())
    return grouped
