"""
Scheduler grid drop handling.

Translates a drop on the week grid into scheduler calls. The grid has two
views: the bay view (one column per day) and the technician view (one row
per technician, one cell per day).
"""

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from workshop.scheduling.calendar import next_open_day
from workshop.scheduling.config import SchedulingConfig
from workshop.scheduling.service import AppointmentScheduler

UNASSIGNED = "unassigned"

BAY_VIEW = "bay"
TECHNICIAN_VIEW = "technician"


@dataclass
class DropResult:
    intent: str  # 'needs_slot_selection', 'moved', 'unchanged' or 'ignored'
    job_id: Optional[int] = None
    appointment_id: Optional[int] = None
    proposed_date: Optional[date] = None
    warnings: List[str] = field(default_factory=list)
    appointment: Optional[dict] = None
    job: Optional[dict] = None

    def to_dict(self):
        return {
            'intent': self.intent,
            'jobId': self.job_id,
            'appointmentId': self.appointment_id,
            'proposedDate': self.proposed_date.isoformat() if self.proposed_date else None,
            'warnings': list(self.warnings),
            'appointment': self.appointment,
            'job': self.job,
        }


def parse_technician_target(value) -> Optional[int]:
    """Technician row id from the grid; the 'unassigned' row clears the assignment."""
    if value is None or value == UNASSIGNED or value == "":
        return None
    return int(value)


def handle_bay_drop(target_day: date, today: date, job_id=None, appointment_id=None) -> DropResult:
    """
    Drop on a bay view day column.

    An unscheduled job cannot be booked without a time, so the result asks
    the caller to pick a slot on the first open day on or after the drop
    target (never before today). Only Approved jobs without an appointment
    can be dropped this way; other jobs are ignored. An appointment is
    moved to the target day.
    """
    if appointment_id is not None:
        move = AppointmentScheduler.move_appointment(appointment_id, target_day)
        return DropResult(
            intent='moved' if move.moved else 'unchanged',
            job_id=move.appointment.job_id,
            appointment_id=move.appointment.id,
            warnings=move.warnings,
            appointment=move.appointment.to_dict(),
        )

    if job_id is None:
        return DropResult(intent='ignored')

    job = AppointmentScheduler.get_job(job_id)
    if job.status not in SchedulingConfig.UNSCHEDULED_SOURCE_STATUSES or job.appointment_id is not None:
        return DropResult(intent='ignored', job_id=job.id)

    config = AppointmentScheduler.calendar_config()
    start_day = max(target_day, today)
    proposed = next_open_day(start_day, config, max_days=SchedulingConfig.NEXT_OPEN_DAY_SEARCH_DAYS)
    return DropResult(
        intent='needs_slot_selection',
        job_id=job.id,
        proposed_date=proposed,
        job=job.to_dict(),
    )


def handle_technician_drop(target_day: date, technician, job_id=None, appointment_id=None) -> DropResult:
    """
    Drop on a technician view cell.

    Only scheduled appointments are accepted here: the appointment moves to
    the cell's day and its job is assigned to the row's technician.
    Unscheduled jobs are ignored. The technician is looked up before the
    move so an unknown row leaves the appointment where it was.
    """
    if appointment_id is None:
        return DropResult(intent='ignored', job_id=job_id)

    technician_id = parse_technician_target(technician)
    if technician_id is not None:
        AppointmentScheduler.get_technician(technician_id)
    move = AppointmentScheduler.move_appointment(appointment_id, target_day)
    job = AppointmentScheduler.assign_technician(move.appointment.job_id, technician_id)
    return DropResult(
        intent='moved' if move.moved else 'unchanged',
        job_id=job.id,
        appointment_id=move.appointment.id,
        warnings=move.warnings,
        appointment=move.appointment.to_dict(),
        job=job.to_dict(),
    )


def handle_drop(view: str, target_day: date, today: date, job_id=None, appointment_id=None, technician=None) -> DropResult:
    """
    Dispatch a grid drop to the handler for its view.

    Raises:
        ValueError: for an unknown view
    """
    if view == BAY_VIEW:
        return handle_bay_drop(target_day, today, job_id=job_id, appointment_id=appointment_id)
    if view == TECHNICIAN_VIEW:
        return handle_technician_drop(target_day, technician, job_id=job_id, appointment_id=appointment_id)
    raise ValueError(f"Unknown scheduler view: {view!r}")
