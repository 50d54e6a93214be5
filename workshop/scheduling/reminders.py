"""
Reminder selection.

Decides which appointments and unpaid jobs warrant a reminder right now.
Selection only: message templates and delivery belong to the
communications layer.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Iterable, List, Optional

from workshop.datetime_utils import format_iso_utc
from workshop.models import JobStatus


class NotificationType(Enum):
    APPOINTMENT_REMINDER = "APPOINTMENT_REMINDER"
    PAYMENT_REMINDER = "PAYMENT_REMINDER"


@dataclass(frozen=True)
class Notification:
    id: str
    type: NotificationType
    target_id: int
    customer_id: Optional[str]
    due_date: Optional[datetime]
    vehicle_id: Optional[str] = None
    amount_due: Optional[float] = None

    def to_dict(self):
        data = {
            'id': self.id,
            'type': self.type.value,
            'targetId': self.target_id,
            'customerId': self.customer_id,
            'vehicleId': self.vehicle_id,
            'dueDate': format_iso_utc(self.due_date),
        }
        if self.type is NotificationType.APPOINTMENT_REMINDER:
            data['appointmentId'] = self.target_id
        else:
            data['jobId'] = self.target_id
            data['amountDue'] = self.amount_due
        return data


def _aware(dt: datetime) -> datetime:
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def select_appointment_reminders(
    now: datetime,
    appointments: Iterable,
    lookahead: timedelta,
) -> List[Notification]:
    """Appointments starting within (now, now + lookahead] without a reminder sent."""
    now = _aware(now)
    horizon = now + lookahead
    notifications = []
    for appointment in appointments:
        if appointment.reminder_sent_at is not None:
            continue
        starts_at = _aware(appointment.date_time)
        if now < starts_at <= horizon:
            notifications.append(Notification(
                id=f"noti-app-{appointment.id}",
                type=NotificationType.APPOINTMENT_REMINDER,
                target_id=appointment.id,
                customer_id=appointment.customer_id,
                vehicle_id=appointment.vehicle_id,
                due_date=starts_at,
            ))
    return sorted(notifications, key=lambda n: (n.due_date, n.target_id))


def select_payment_reminders(
    now: datetime,
    jobs: Iterable,
    payment_age: timedelta,
) -> List[Notification]:
    """
    Completed jobs with money still owed, completed at least `payment_age` ago.

    Jobs without a completion date cannot be aged and are treated as overdue.
    """
    now = _aware(now)
    notifications = []
    for job in jobs:
        if job.status is not JobStatus.COMPLETED or job.amount_due <= 0:
            continue

        due_date = None
        if job.completion_date is not None:
            due_date = _aware(job.completion_date) + payment_age
            if due_date > now:
                continue

        notifications.append(Notification(
            id=f"noti-pay-{job.id}",
            type=NotificationType.PAYMENT_REMINDER,
            target_id=job.id,
            customer_id=job.customer_id,
            vehicle_id=job.vehicle_id,
            due_date=due_date,
            amount_due=round(job.amount_due, 2),
        ))
    return sorted(notifications, key=lambda n: (n.due_date is None, n.due_date or now, n.target_id))


def select_reminders(
    now: datetime,
    appointments: Iterable,
    jobs: Iterable,
    lookahead: timedelta = timedelta(hours=24),
    payment_age: timedelta = timedelta(days=7),
) -> List[Notification]:
    """
    All reminders due at `now`: appointment reminders first, then payments.

    Args:
        now: reference instant (naive values are taken as UTC)
        appointments: appointment snapshots (id, customer_id, vehicle_id,
            date_time, reminder_sent_at)
        jobs: job snapshots (id, status, amount_due, completion_date, ...)
        lookahead: appointment reminder window
        payment_age: minimum time since completion before a payment reminder

    Raises:
        ValueError: for negative windows
    """
    if lookahead < timedelta(0) or payment_age < timedelta(0):
        raise ValueError("reminder windows must not be negative")

    return (
        select_appointment_reminders(now, appointments, lookahead)
        + select_payment_reminders(now, jobs, payment_age)
    )
