"""
Scheduling error taxonomy.

Every error carries the HTTP status the API maps it to and a stable code
the UI can switch on. None of them are retried internally.
"""


class SchedulingError(Exception):
    """Base class for errors raised by the scheduling engine and service."""
    http_status = 400
    code = "scheduling_error"

    def to_dict(self):
        return {"error": self.code, "message": str(self)}


class JobNotFound(SchedulingError):
    http_status = 404
    code = "job_not_found"

    def __init__(self, job_id):
        self.job_id = job_id
        super().__init__(f"Job {job_id} not found")


class AppointmentNotFound(SchedulingError):
    http_status = 404
    code = "appointment_not_found"

    def __init__(self, appointment_id):
        self.appointment_id = appointment_id
        super().__init__(f"Appointment {appointment_id} not found")


class TechnicianNotFound(SchedulingError):
    http_status = 404
    code = "technician_not_found"

    def __init__(self, technician_id):
        self.technician_id = technician_id
        super().__init__(f"Technician {technician_id} not found")


class JobNotSchedulable(SchedulingError):
    """The job's status does not allow it to hold an appointment."""
    code = "job_not_schedulable"

    def __init__(self, job_id, status=None, message=None):
        self.job_id = job_id
        self.status = status
        status_label = getattr(status, 'value', status)
        super().__init__(message or f"Job {job_id} cannot be scheduled in status '{status_label}'")


class JobAlreadyScheduled(JobNotSchedulable):
    http_status = 409
    code = "job_already_scheduled"

    def __init__(self, job_id, appointment_id):
        self.appointment_id = appointment_id
        super().__init__(
            job_id,
            message=f"Job {job_id} already has appointment {appointment_id}",
        )


class InvalidDuration(SchedulingError):
    code = "invalid_duration"

    def __init__(self, duration):
        self.duration = duration
        super().__init__(f"Job duration must be a positive number of hours, got {duration!r}")


class SlotUnavailable(SchedulingError):
    """The requested start cannot be booked (closed day, outside hours, or full)."""
    http_status = 409
    code = "slot_unavailable"

    def __init__(self, reason, message):
        self.reason = reason
        super().__init__(message)

    def to_dict(self):
        return {"error": self.code, "reason": self.reason, "message": str(self)}


class InvalidShopSettings(SchedulingError):
    code = "invalid_shop_settings"
