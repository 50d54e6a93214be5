"""
Plain value snapshots of stored rows.

The engines (slots, occupancy, reminders) work on these rather than on ORM
objects so they stay pure and can be fed from any store.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, Optional

from workshop.datetime_utils import from_storage
from workshop.models import JobStatus


@dataclass(frozen=True)
class AppointmentSnapshot:
    id: int
    job_id: int
    date_time: datetime  # aware, UTC
    customer_id: Optional[str] = None
    vehicle_id: Optional[str] = None
    reminder_sent_at: Optional[datetime] = None


@dataclass(frozen=True)
class JobSnapshot:
    id: int
    estimated_duration_hours: float
    status: Optional[JobStatus] = None
    customer_id: Optional[str] = None
    vehicle_id: Optional[str] = None
    amount_due: float = 0.0
    completion_date: Optional[datetime] = None  # aware, UTC


def snapshot_appointment(appointment) -> AppointmentSnapshot:
    return AppointmentSnapshot(
        id=appointment.id,
        job_id=appointment.job_id,
        date_time=from_storage(appointment.date_time),
        customer_id=appointment.customer_id,
        vehicle_id=appointment.vehicle_id,
        reminder_sent_at=from_storage(appointment.reminder_sent_at),
    )


def snapshot_job(job) -> JobSnapshot:
    return JobSnapshot(
        id=job.id,
        estimated_duration_hours=job.estimated_duration_hours,
        status=job.status,
        customer_id=job.customer_id,
        vehicle_id=job.vehicle_id,
        amount_due=job.amount_due,
        completion_date=from_storage(job.completion_date),
    )


def job_durations(jobs: Iterable) -> Dict[int, float]:
    """Map job id -> estimated duration in hours."""
    return {job.id: job.estimated_duration_hours for job in jobs}
