"""
Appointment scheduling engine.

Pure calculators (shop calendar, slot availability, bay occupancy, reminder
selection) plus the database-backed scheduler service that books and moves
appointments.
"""

from workshop.scheduling.config import SchedulingConfig, ShopCalendarConfig
from workshop.scheduling.calendar import (
    is_open_on,
    is_within_hours,
    next_open_day,
    operating_window,
)
from workshop.scheduling.slots import (
    Slot,
    SlotAvailability,
    compute_slots,
    group_slots_by_period,
    slot_rejection_reason,
)
from workshop.scheduling.occupancy import daily_bay_usage, max_concurrent_bays
from workshop.scheduling.reminders import Notification, NotificationType, select_reminders

__all__ = [
    'SchedulingConfig',
    'ShopCalendarConfig',
    'is_open_on',
    'is_within_hours',
    'next_open_day',
    'operating_window',
    'Slot',
    'SlotAvailability',
    'compute_slots',
    'group_slots_by_period',
    'slot_rejection_reason',
    'daily_bay_usage',
    'max_concurrent_bays',
    'Notification',
    'NotificationType',
    'select_reminders',
]
