from flask_sqlalchemy import SQLAlchemy
from enum import Enum

from workshop.datetime_utils import utcnow, format_iso_utc

db = SQLAlchemy()


class JobStatus(Enum):
    """Workflow states of a job (a quote in the data layer), in workflow order."""
    SAVED = "Saved"
    APPROVED = "Approved"
    WORK_IN_PROGRESS = "Work In Progress"
    AWAITING_PARTS = "Awaiting Parts"
    READY_FOR_PICKUP = "Ready for Pickup"
    COMPLETED = "Completed"
    PAID = "Paid"


class ShopSettings(db.Model):
    '''Single-row shop configuration (id is always 'default').'''
    __tablename__ = "shop_settings"

    id = db.Column(db.String(16), primary_key=True, default="default")
    shop_name = db.Column(db.String(128))
    operating_hours = db.Column(db.JSON, nullable=False)  # {"start": "HH:MM", "end": "HH:MM"}
    days_open = db.Column(db.JSON, nullable=False)  # ["Monday", "Tuesday", ...]
    number_of_bays = db.Column(db.Integer, nullable=False, default=1)
    timezone = db.Column(db.String(64), nullable=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    @classmethod
    def get_current(cls):
        '''Get the shop settings row'''
        return db.session.get(cls, "default")

    def to_calendar_config(self, default_timezone=None):
        from workshop.scheduling.config import ShopCalendarConfig
        return ShopCalendarConfig.from_settings(
            operating_hours=self.operating_hours,
            open_weekdays=self.days_open,
            bay_count=self.number_of_bays,
            timezone=self.timezone or default_timezone,
        )

    def to_dict(self):
        return {
            'id': self.id,
            'shopName': self.shop_name,
            'operatingHours': self.operating_hours,
            'daysOpen': self.days_open,
            'numberOfBays': self.number_of_bays,
            'timezone': self.timezone,
        }

    def __repr__(self):
        return f"<ShopSettings {self.shop_name} - {self.number_of_bays} bays>"


class Technician(db.Model):
    """Technicians and their weekly availability (display only)."""
    __tablename__ = "technicians"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    specialty = db.Column(db.String(128))
    availability = db.Column(db.JSON, nullable=False, default=dict)  # {"Monday": true, ...}

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'specialty': self.specialty,
            'availability': self.availability or {},
        }

    def __repr__(self):
        return f"<Technician {self.id} - {self.name}>"


class Job(db.Model):
    """A quote that has progressed into schedulable work."""
    __tablename__ = "quotes"

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.String(64), nullable=False, index=True)
    vehicle_id = db.Column(db.String(64), nullable=False)
    status = db.Column(db.Enum(JobStatus), nullable=False, default=JobStatus.SAVED, index=True)
    estimated_duration_hours = db.Column(db.Float, nullable=False)

    # Scheduling pointers; appointment_id mirrors Appointment.job_id
    appointment_id = db.Column(db.Integer, nullable=True)
    technician_id = db.Column(db.Integer, db.ForeignKey("technicians.id"), nullable=True)

    # Billing fields used for payment reminders
    total_cost = db.Column(db.Float, nullable=False, default=0.0)
    discount_amount = db.Column(db.Float, nullable=True)
    payments = db.Column(db.JSON, nullable=True)  # [{"amount": 10.0, "method": "Cash", "date": "..."}]
    completion_date = db.Column(db.DateTime, nullable=True)

    last_updated_at = db.Column(db.DateTime, nullable=True, default=utcnow, onupdate=utcnow)

    technician = db.relationship("Technician", lazy="joined")

    @property
    def amount_due(self) -> float:
        total_paid = sum(float(p.get('amount') or 0) for p in (self.payments or []))
        return float(self.total_cost or 0) - float(self.discount_amount or 0) - total_paid

    def to_dict(self):
        return {
            'id': self.id,
            'customerId': self.customer_id,
            'vehicleId': self.vehicle_id,
            'status': self.status.value if self.status else None,
            'estimatedDurationHours': self.estimated_duration_hours,
            'appointmentId': self.appointment_id,
            'technicianId': self.technician_id,
            'technicianName': self.technician.name if self.technician else None,
            'totalCost': self.total_cost,
            'discountAmount': self.discount_amount,
            'amountDue': self.amount_due,
            'completionDate': format_iso_utc(self.completion_date),
        }

    def __repr__(self):
        return f"<Job {self.id} - {self.status.value if self.status else None}>"


class Appointment(db.Model):
    """The committed booking for a job."""
    __tablename__ = "appointments"

    id = db.Column(db.Integer, primary_key=True)
    job_id = db.Column(
        db.Integer,
        db.ForeignKey("quotes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    customer_id = db.Column(db.String(64), nullable=False)
    vehicle_id = db.Column(db.String(64), nullable=False)
    date_time = db.Column(db.DateTime, nullable=False, index=True)  # naive UTC
    reminder_sent_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    job = db.relationship("Job", foreign_keys=[job_id])

    def to_dict(self):
        return {
            'id': self.id,
            'jobId': self.job_id,
            'customerId': self.customer_id,
            'vehicleId': self.vehicle_id,
            'dateTime': format_iso_utc(self.date_time),
            'reminderSentAt': format_iso_utc(self.reminder_sent_at),
        }

    def __repr__(self):
        return f"<Appointment {self.id} - job {self.job_id} @ {self.date_time}>"
