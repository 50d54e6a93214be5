"""
Scheduling configuration module.

Fixed engine parameters live on SchedulingConfig. Per-shop parameters
(open days, operating hours, bay count, timezone) travel as an explicit
ShopCalendarConfig value passed into every calculation.
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from workshop.models import JobStatus
from workshop.scheduling.calendar import WEEKDAY_NAMES, parse_hhmm
from workshop.scheduling.errors import InvalidShopSettings


class SchedulingConfig:
    """
    Engine-wide scheduling constants.

    Slot granularity and the schedulable status set are shared by the
    booking dialog and the server; changing them changes which slots users
    can pick.
    """

    # Candidate slot starts are generated on this grid
    SLOT_GRANULARITY_MINUTES: int = 15

    # Statuses that may receive a (new or moved) appointment
    SCHEDULABLE_STATUSES: FrozenSet[JobStatus] = frozenset({
        JobStatus.APPROVED,
        JobStatus.WORK_IN_PROGRESS,
        JobStatus.AWAITING_PARTS,
    })

    # Statuses listed as drag sources in the scheduler grid
    UNSCHEDULED_SOURCE_STATUSES: FrozenSet[JobStatus] = frozenset({JobStatus.APPROVED})

    WEEKDAYS = WEEKDAY_NAMES

    # How far ahead to look for the next open day when proposing a booking date
    NEXT_OPEN_DAY_SEARCH_DAYS: int = 30

    # Slots starting before this hour are "morning", the rest "afternoon"
    AFTERNOON_START_HOUR: int = 12

    @classmethod
    def is_schedulable(cls, status: Optional[JobStatus]) -> bool:
        return status in cls.SCHEDULABLE_STATUSES

    @classmethod
    def normalize_weekday(cls, name: str) -> str:
        """
        Normalize a weekday name to its canonical capitalized form.

        Raises:
            InvalidShopSettings: for names that are not weekdays
        """
        cleaned = str(name).strip().capitalize()
        if cleaned not in cls.WEEKDAYS:
            raise InvalidShopSettings(f"Unknown weekday: {name!r}")
        return cleaned


@dataclass(frozen=True)
class ShopCalendarConfig:
    """Operating-hours configuration of one shop."""

    open_weekdays: FrozenSet[str]
    start: str
    end: str
    bay_count: int
    timezone: str = "UTC"
    _tz: ZoneInfo = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(
            self,
            'open_weekdays',
            frozenset(SchedulingConfig.normalize_weekday(d) for d in self.open_weekdays),
        )

        if not isinstance(self.bay_count, int) or isinstance(self.bay_count, bool) or self.bay_count < 1:
            raise InvalidShopSettings(f"bay_count must be a positive integer, got {self.bay_count!r}")

        try:
            start_minutes = parse_hhmm(self.start)
            end_minutes = parse_hhmm(self.end)
        except (ValueError, TypeError, AttributeError, IndexError):
            raise InvalidShopSettings(
                f"operating hours must be HH:MM strings, got {self.start!r}-{self.end!r}"
            )
        if start_minutes >= end_minutes:
            raise InvalidShopSettings(
                f"operating hours start ({self.start}) must be before end ({self.end})"
            )

        try:
            tz = ZoneInfo(self.timezone or "UTC")
        except (ZoneInfoNotFoundError, ValueError):
            raise InvalidShopSettings(f"Unknown timezone: {self.timezone!r}")
        object.__setattr__(self, '_tz', tz)

    @property
    def tzinfo(self) -> ZoneInfo:
        return self._tz

    @property
    def operating_hours(self) -> Dict[str, str]:
        return {'start': self.start, 'end': self.end}

    @classmethod
    def from_settings(
        cls,
        operating_hours: Dict[str, str],
        open_weekdays: Iterable[str],
        bay_count: int,
        timezone: Optional[str] = None,
    ) -> "ShopCalendarConfig":
        """
        Build a config from the stored settings shape.

        Args:
            operating_hours: {"start": "HH:MM", "end": "HH:MM"}
            open_weekdays: weekday names the shop accepts appointments on
            bay_count: number of bays
            timezone: IANA timezone of the shop (UTC if missing)
        """
        hours = operating_hours or {}
        return cls(
            open_weekdays=frozenset(open_weekdays or ()),
            start=hours.get('start'),
            end=hours.get('end'),
            bay_count=bay_count,
            timezone=timezone or "UTC",
        )
