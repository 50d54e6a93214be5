"""
Appointment scheduling service.

Loads jobs, appointments and shop settings from the database, runs the pure
engines over them and persists bookings. Every mutating call is a single
transaction: the appointment row and the job's pointer are written together
or not at all.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional

from flask import current_app, has_app_context

from workshop.datetime_utils import (
    from_storage,
    to_shop_local,
    to_storage,
    utcnow,
)
from workshop.logging_config import SchedulingOperation, get_logger
from workshop.models import Appointment, Job, JobStatus, ShopSettings, Technician, db
from workshop.scheduling.calendar import is_open_on, minutes_of_day
from workshop.scheduling.config import SchedulingConfig, ShopCalendarConfig
from workshop.scheduling.errors import (
    AppointmentNotFound,
    InvalidShopSettings,
    JobAlreadyScheduled,
    JobNotFound,
    JobNotSchedulable,
    SlotUnavailable,
    TechnicianNotFound,
)
from workshop.scheduling.occupancy import daily_bay_usage, week_days
from workshop.scheduling.reminders import Notification, select_reminders
from workshop.scheduling.slots import (
    SlotAvailability,
    compute_slots,
    slot_rejection_reason,
    validate_duration,
)
from workshop.scheduling.snapshots import (
    job_durations,
    snapshot_appointment,
    snapshot_job,
)

logger = get_logger(__name__)

SLOT_REJECTION_MESSAGES = {
    'shop_closed': "The shop is closed on {day}",
    'outside_hours': "{time} on {day} does not fit the job within operating hours",
    'over_capacity': "All bays are booked at {time} on {day}",
}


@dataclass
class MoveResult:
    """Outcome of a drag-and-drop move; warnings flag manual capacity overrides."""
    appointment: Appointment
    moved: bool
    warnings: List[str] = field(default_factory=list)

    def to_dict(self):
        return {
            'appointment': self.appointment.to_dict(),
            'moved': self.moved,
            'warnings': list(self.warnings),
        }


def _default_timezone() -> Optional[str]:
    if has_app_context():
        return current_app.config.get("SHOP_TIMEZONE")
    return None


def _day_bounds(first_day: date, last_day: date, tz):
    """Naive-UTC [start, end) covering shop-local days first_day..last_day."""
    start_local = datetime.combine(first_day, time.min, tzinfo=tz)
    end_local = datetime.combine(last_day + timedelta(days=1), time.min, tzinfo=tz)
    return to_storage(start_local), to_storage(end_local)


class AppointmentScheduler:
    """Books, moves and reassigns appointments for jobs."""

    # ------------------------------------------------------------------
    # Loading helpers
    # ------------------------------------------------------------------

    @staticmethod
    def get_job(job_id) -> Job:
        job = db.session.get(Job, job_id)
        if job is None:
            raise JobNotFound(job_id)
        return job

    @staticmethod
    def get_appointment(appointment_id) -> Appointment:
        appointment = db.session.get(Appointment, appointment_id)
        if appointment is None:
            raise AppointmentNotFound(appointment_id)
        return appointment

    @staticmethod
    def get_technician(technician_id) -> Technician:
        technician = db.session.get(Technician, technician_id)
        if technician is None:
            raise TechnicianNotFound(technician_id)
        return technician

    @staticmethod
    def calendar_config() -> ShopCalendarConfig:
        """
        Current shop calendar configuration.

        Raises:
            InvalidShopSettings: if settings are missing or invalid
        """
        settings = ShopSettings.get_current()
        if settings is None:
            raise InvalidShopSettings("Shop settings have not been configured")
        return settings.to_calendar_config(default_timezone=_default_timezone())

    @staticmethod
    def list_appointments(start: Optional[datetime] = None, end: Optional[datetime] = None) -> List[Appointment]:
        """Appointments with start in [start, end), ordered by start."""
        query = Appointment.query
        if start is not None:
            query = query.filter(Appointment.date_time >= to_storage(start))
        if end is not None:
            query = query.filter(Appointment.date_time < to_storage(end))
        return query.order_by(Appointment.date_time.asc(), Appointment.id.asc()).all()

    @staticmethod
    def _appointments_for_days(first_day: date, last_day: date, tz):
        """Appointments on the given shop-local days plus their job durations."""
        start, end = _day_bounds(first_day, last_day, tz)
        appointments = (
            Appointment.query
            .filter(Appointment.date_time >= start, Appointment.date_time < end)
            .order_by(Appointment.date_time.asc(), Appointment.id.asc())
            .all()
        )
        job_ids = {a.job_id for a in appointments}
        jobs = Job.query.filter(Job.id.in_(job_ids)).all() if job_ids else []
        return appointments, job_durations(jobs)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @staticmethod
    def get_available_slots(job_id, day: date) -> SlotAvailability:
        """
        Bookable slots for a job on a shop-local day.

        The job's own current appointment is left out of the occupancy so a
        reschedule does not compete with itself.

        Raises:
            JobNotFound, InvalidDuration, InvalidShopSettings
        """
        job = AppointmentScheduler.get_job(job_id)
        config = AppointmentScheduler.calendar_config()
        appointments, durations = AppointmentScheduler._appointments_for_days(day, day, config.tzinfo)

        return compute_slots(
            day,
            job.estimated_duration_hours,
            config,
            [snapshot_appointment(a) for a in appointments],
            durations,
            exclude_appointment_id=job.appointment_id,
        )

    @staticmethod
    def list_unscheduled_jobs() -> List[Job]:
        """Approved jobs without an appointment (drag sources in the scheduler)."""
        return (
            Job.query
            .filter(
                Job.status.in_(list(SchedulingConfig.UNSCHEDULED_SOURCE_STATUSES)),
                Job.appointment_id.is_(None),
            )
            .order_by(Job.id.asc())
            .all()
        )

    @staticmethod
    def week_overview(day: date) -> Dict:
        """
        Scheduler week grid: appointments and peak bay usage per day of the
        Monday-start week containing `day`.
        """
        config = AppointmentScheduler.calendar_config()
        tz = config.tzinfo
        days = week_days(day)
        appointments, durations = AppointmentScheduler._appointments_for_days(days[0], days[-1], tz)
        snapshots = [snapshot_appointment(a) for a in appointments]
        usage = daily_bay_usage(days, snapshots, durations, tz)

        by_day = {d: [] for d in days}
        for appointment, snap in zip(appointments, snapshots):
            local_day = to_shop_local(snap.date_time, tz).date()
            if local_day in by_day:
                by_day[local_day].append(appointment.to_dict())

        return {
            'weekStart': days[0].isoformat(),
            'bayCount': config.bay_count,
            'days': [
                {
                    'date': d.isoformat(),
                    'isOpen': is_open_on(d, config),
                    'baysUsed': usage[d],
                    'appointments': by_day[d],
                }
                for d in days
            ],
            'unscheduledJobs': [j.to_dict() for j in AppointmentScheduler.list_unscheduled_jobs()],
        }

    # ------------------------------------------------------------------
    # Write side
    # ------------------------------------------------------------------

    @staticmethod
    def book_slot(job_id, date_time: datetime):
        """
        Create the appointment for a job at `date_time`.

        The end time is always derived from the job's current duration and
        the start is re-checked against operating hours and bay capacity.

        Args:
            job_id: job to book
            date_time: aware start datetime (seconds are dropped)

        Returns:
            (Appointment, Job)

        Raises:
            JobNotFound, JobNotSchedulable, JobAlreadyScheduled,
            InvalidDuration, SlotUnavailable, InvalidShopSettings
        """
        with SchedulingOperation("book_slot", job_id=job_id):
            job = AppointmentScheduler.get_job(job_id)
            if not SchedulingConfig.is_schedulable(job.status):
                raise JobNotSchedulable(job_id, job.status)
            if job.appointment_id is not None:
                raise JobAlreadyScheduled(job_id, job.appointment_id)

            duration = validate_duration(job.estimated_duration_hours)
            config = AppointmentScheduler.calendar_config()

            local_start = to_shop_local(date_time, config.tzinfo).replace(second=0, microsecond=0)
            day = local_start.date()
            appointments, durations = AppointmentScheduler._appointments_for_days(day, day, config.tzinfo)

            reason = slot_rejection_reason(
                day,
                minutes_of_day(local_start),
                duration,
                config,
                [snapshot_appointment(a) for a in appointments],
                durations,
            )
            if reason:
                message = SLOT_REJECTION_MESSAGES[reason].format(
                    day=day.isoformat(), time=local_start.strftime("%H:%M")
                )
                raise SlotUnavailable(reason, message)

            appointment = Appointment(
                job_id=job.id,
                customer_id=job.customer_id,
                vehicle_id=job.vehicle_id,
                date_time=to_storage(local_start),
            )
            try:
                db.session.add(appointment)
                db.session.flush()
                job.appointment_id = appointment.id
                db.session.commit()
            except Exception:
                db.session.rollback()
                raise

            logger.info(
                "Appointment booked",
                appointment_id=appointment.id,
                job_id=job.id,
                date_time=local_start.isoformat(),
                duration_hours=duration,
            )
            return appointment, job

    @staticmethod
    def move_appointment(appointment_id, new_date: date) -> MoveResult:
        """
        Move an appointment to another shop-local date, keeping its time of day.

        Capacity at the destination is deliberately not enforced so staff can
        override; conflicts are reported through MoveResult.warnings instead.
        Dropping on the appointment's current date changes nothing.

        Raises:
            AppointmentNotFound, JobNotFound, JobNotSchedulable, InvalidDuration
        """
        with SchedulingOperation("move_appointment", appointment_id=appointment_id):
            appointment = AppointmentScheduler.get_appointment(appointment_id)
            job = db.session.get(Job, appointment.job_id)
            if job is None:
                raise JobNotFound(appointment.job_id)
            if not SchedulingConfig.is_schedulable(job.status):
                raise JobNotSchedulable(job.id, job.status)

            config = AppointmentScheduler.calendar_config()
            tz = config.tzinfo
            old_local = to_shop_local(from_storage(appointment.date_time), tz)

            if old_local.date() == new_date:
                return MoveResult(appointment=appointment, moved=False)

            new_local = datetime.combine(new_date, time(old_local.hour, old_local.minute), tzinfo=tz)

            appointments, durations = AppointmentScheduler._appointments_for_days(new_date, new_date, tz)
            reason = slot_rejection_reason(
                new_date,
                minutes_of_day(new_local),
                job.estimated_duration_hours,
                config,
                [snapshot_appointment(a) for a in appointments],
                durations,
                exclude_appointment_id=appointment.id,
            )
            warnings = [reason] if reason else []

            try:
                appointment.date_time = to_storage(new_local)
                # A reminder sent for the old date does not cover the new one
                appointment.reminder_sent_at = None
                db.session.commit()
            except Exception:
                db.session.rollback()
                raise

            if warnings:
                logger.warning(
                    "Appointment moved with capacity override",
                    appointment_id=appointment.id,
                    job_id=job.id,
                    new_date=new_date.isoformat(),
                    warnings=warnings,
                )
            else:
                logger.info(
                    "Appointment moved",
                    appointment_id=appointment.id,
                    job_id=job.id,
                    new_date=new_date.isoformat(),
                )
            return MoveResult(appointment=appointment, moved=True, warnings=warnings)

    @staticmethod
    def assign_technician(job_id, technician_id: Optional[int]) -> Job:
        """
        Assign (or clear, with None) the technician of a job.

        Not checked against bay capacity or the technician's availability.

        Raises:
            JobNotFound, TechnicianNotFound
        """
        with SchedulingOperation("assign_technician", job_id=job_id, technician_id=technician_id):
            job = AppointmentScheduler.get_job(job_id)
            if technician_id is not None:
                AppointmentScheduler.get_technician(technician_id)

            try:
                job.technician_id = technician_id
                db.session.commit()
            except Exception:
                db.session.rollback()
                raise
            return job

    @staticmethod
    def delete_job(job_id) -> None:
        """
        Delete a job together with its appointment.

        Raises:
            JobNotFound
        """
        with SchedulingOperation("delete_job", job_id=job_id):
            job = AppointmentScheduler.get_job(job_id)
            try:
                deleted = Appointment.query.filter_by(job_id=job.id).delete(synchronize_session=False)
                db.session.delete(job)
                db.session.commit()
            except Exception:
                db.session.rollback()
                raise
            logger.info("Job deleted", job_id=job_id, appointments_deleted=deleted)

    @staticmethod
    def mark_reminder_sent(appointment_id, sent_at: Optional[datetime] = None) -> Appointment:
        """
        Record that a reminder went out for an appointment.

        Raises:
            AppointmentNotFound
        """
        appointment = AppointmentScheduler.get_appointment(appointment_id)
        try:
            appointment.reminder_sent_at = to_storage(sent_at) if sent_at else utcnow()
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return appointment


class ReminderService:
    """Feeds current appointments and jobs to the reminder selector."""

    @staticmethod
    def pending_notifications(now: Optional[datetime] = None) -> List[Notification]:
        now = from_storage(now or utcnow())
        lookahead = timedelta(hours=current_app.config.get("REMINDER_LOOKAHEAD_HOURS", 24))
        payment_age = timedelta(days=current_app.config.get("PAYMENT_REMINDER_AGE_DAYS", 7))

        appointments = (
            Appointment.query
            .filter(
                Appointment.date_time > to_storage(now),
                Appointment.date_time <= to_storage(now + lookahead),
                Appointment.reminder_sent_at.is_(None),
            )
            .all()
        )
        jobs = Job.query.filter(Job.status == JobStatus.COMPLETED).all()

        return select_reminders(
            now,
            [snapshot_appointment(a) for a in appointments],
            [snapshot_job(j) for j in jobs],
            lookahead=lookahead,
            payment_age=payment_age,
        )


class ShopSettingsService:
    """Read and update the single shop settings row."""

    @staticmethod
    def get_settings() -> Optional[ShopSettings]:
        return ShopSettings.get_current()

    @staticmethod
    def update_settings(data: Dict) -> ShopSettings:
        """
        Validate and store new settings.

        Raises:
            InvalidShopSettings: if the hours, days, bay count or timezone are invalid
        """
        settings = ShopSettings.get_current()

        operating_hours = data.get('operatingHours', settings.operating_hours if settings else None)
        days_open = data.get('daysOpen', settings.days_open if settings else None)
        number_of_bays = data.get('numberOfBays', settings.number_of_bays if settings else None)
        timezone_name = data.get('timezone', settings.timezone if settings else None)

        if not isinstance(operating_hours, dict) or not isinstance(days_open, list):
            raise InvalidShopSettings("operatingHours must be an object and daysOpen a list")

        # Raises InvalidShopSettings on bad values
        config = ShopCalendarConfig.from_settings(
            operating_hours=operating_hours,
            open_weekdays=days_open,
            bay_count=number_of_bays,
            timezone=timezone_name or _default_timezone(),
        )

        if settings is None:
            settings = ShopSettings(id="default")
            db.session.add(settings)

        try:
            settings.shop_name = data.get('shopName', settings.shop_name)
            settings.operating_hours = config.operating_hours
            settings.days_open = [d for d in SchedulingConfig.WEEKDAYS if d in config.open_weekdays]
            settings.number_of_bays = config.bay_count
            settings.timezone = timezone_name
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        logger.info(
            "Shop settings updated",
            days_open=settings.days_open,
            operating_hours=settings.operating_hours,
            number_of_bays=settings.number_of_bays,
        )
        return settings
