"""
API routes for the appointment scheduler.

Scheduling errors propagate to the blueprint error handler, which maps them
to their HTTP status. Malformed request data is answered with 400 here.
"""
from flask import jsonify, request

from workshop.api import api_bp
from workshop.datetime_utils import (
    parse_iso_date,
    parse_iso_datetime,
    to_shop_local,
    utcnow,
)
from workshop.logging_config import get_logger
from workshop.models import Technician
from workshop.scheduling.dragdrop import handle_drop, parse_technician_target
from workshop.scheduling.service import (
    AppointmentScheduler,
    ReminderService,
    ShopSettingsService,
)
from workshop.scheduling.slots import group_slots_by_period

logger = get_logger(__name__)


def _bad_request(message):
    return jsonify({'error': 'invalid_request', 'message': message}), 400


def _shop_today(tz):
    return to_shop_local(utcnow(), tz).date()


# ==============================================================================
# Slots and appointments
# ==============================================================================

@api_bp.route("/slots", methods=["GET"])
def get_slots():
    """
    Bookable slots for a job on a date.

    Query params:
        date: YYYY-MM-DD (or an ISO timestamp, taken in shop-local time)
        jobId: job to book
    """
    job_id = request.args.get('jobId', type=int)
    raw_date = request.args.get('date')
    if job_id is None or not raw_date:
        return _bad_request("jobId and date are required")

    tz = AppointmentScheduler.calendar_config().tzinfo
    try:
        day = parse_iso_date(raw_date, tz)
    except ValueError as exc:
        return _bad_request(f"Invalid date: {exc}")

    availability = AppointmentScheduler.get_available_slots(job_id, day)
    response = availability.to_dict()
    response['date'] = day.isoformat()
    response.update(group_slots_by_period(availability.slots))
    return jsonify(response), 200


@api_bp.route("/appointments", methods=["POST"])
def create_appointment():
    """Book a slot: {jobId, dateTimeISO}."""
    data = request.get_json(silent=True) or {}
    job_id = data.get('jobId')
    raw_date_time = data.get('dateTimeISO') or data.get('dateTime')
    if job_id is None or not raw_date_time:
        return _bad_request("jobId and dateTimeISO are required")

    tz = AppointmentScheduler.calendar_config().tzinfo
    try:
        job_id = int(job_id)
        date_time = parse_iso_datetime(raw_date_time, tz)
    except (TypeError, ValueError) as exc:
        return _bad_request(f"Invalid booking request: {exc}")

    appointment, job = AppointmentScheduler.book_slot(job_id, date_time)
    return jsonify({
        'appointment': appointment.to_dict(),
        'job': job.to_dict(),
    }), 201


@api_bp.route("/appointments", methods=["GET"])
def list_appointments():
    """Appointments starting in [start, end); both bounds optional ISO timestamps."""
    tz = AppointmentScheduler.calendar_config().tzinfo
    try:
        start = parse_iso_datetime(request.args['start'], tz) if request.args.get('start') else None
        end = parse_iso_datetime(request.args['end'], tz) if request.args.get('end') else None
    except ValueError as exc:
        return _bad_request(f"Invalid range: {exc}")

    appointments = AppointmentScheduler.list_appointments(start, end)
    return jsonify({
        'appointments': [a.to_dict() for a in appointments],
        'total_count': len(appointments),
    }), 200


@api_bp.route("/appointments/<int:appointment_id>/date", methods=["PUT"])
def move_appointment(appointment_id):
    """Move an appointment to another date, keeping its time: {newDateISO}."""
    data = request.get_json(silent=True) or {}
    raw_date = data.get('newDateISO') or data.get('newDate')
    if not raw_date:
        return _bad_request("newDateISO is required")

    tz = AppointmentScheduler.calendar_config().tzinfo
    try:
        new_date = parse_iso_date(raw_date, tz)
    except ValueError as exc:
        return _bad_request(f"Invalid date: {exc}")

    result = AppointmentScheduler.move_appointment(appointment_id, new_date)
    return jsonify(result.to_dict()), 200


@api_bp.route("/appointments/<int:appointment_id>/reminder-sent", methods=["POST"])
def mark_reminder_sent(appointment_id):
    appointment = AppointmentScheduler.mark_reminder_sent(appointment_id)
    return jsonify(appointment.to_dict()), 200


# ==============================================================================
# Jobs
# ==============================================================================

@api_bp.route("/jobs/<int:job_id>/technician", methods=["PUT"])
def assign_technician(job_id):
    """Assign a technician: {technicianId}; null or "unassigned" clears it."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or 'technicianId' not in data:
        return _bad_request("technicianId is required (null to unassign)")

    try:
        technician_id = parse_technician_target(data['technicianId'])
    except (TypeError, ValueError):
        return _bad_request(f"Invalid technicianId: {data['technicianId']!r}")

    job = AppointmentScheduler.assign_technician(job_id, technician_id)
    return jsonify(job.to_dict()), 200


@api_bp.route("/jobs/<int:job_id>", methods=["DELETE"])
def delete_job(job_id):
    AppointmentScheduler.delete_job(job_id)
    return jsonify({'success': True}), 200


@api_bp.route("/jobs/unscheduled", methods=["GET"])
def list_unscheduled_jobs():
    jobs = AppointmentScheduler.list_unscheduled_jobs()
    return jsonify({
        'jobs': [job.to_dict() for job in jobs],
        'total_count': len(jobs),
    }), 200


# ==============================================================================
# Scheduler grid
# ==============================================================================

@api_bp.route("/scheduler/week", methods=["GET"])
def scheduler_week():
    """Week grid for the Monday-start week containing ?date= (default today)."""
    tz = AppointmentScheduler.calendar_config().tzinfo
    raw_date = request.args.get('date')
    try:
        day = parse_iso_date(raw_date, tz) if raw_date else _shop_today(tz)
    except ValueError as exc:
        return _bad_request(f"Invalid date: {exc}")

    return jsonify(AppointmentScheduler.week_overview(day)), 200


@api_bp.route("/scheduler/drop", methods=["POST"])
def scheduler_drop():
    """
    Handle a drop on the scheduler grid.

    Body:
        view: "bay" or "technician"
        date: target day
        jobId / appointmentId: the dragged item
        technicianId: target row in the technician view ("unassigned" allowed)
    """
    data = request.get_json(silent=True) or {}
    raw_date = data.get('date')
    if not raw_date:
        return _bad_request("date is required")

    tz = AppointmentScheduler.calendar_config().tzinfo
    try:
        target_day = parse_iso_date(raw_date, tz)
        job_id = int(data['jobId']) if data.get('jobId') is not None else None
        appointment_id = int(data['appointmentId']) if data.get('appointmentId') is not None else None
        result = handle_drop(
            data.get('view', 'bay'),
            target_day,
            _shop_today(tz),
            job_id=job_id,
            appointment_id=appointment_id,
            technician=data.get('technicianId'),
        )
    except (TypeError, ValueError) as exc:
        return _bad_request(f"Invalid drop: {exc}")

    return jsonify(result.to_dict()), 200


# ==============================================================================
# Notifications
# ==============================================================================

@api_bp.route("/notifications", methods=["GET"])
def get_notifications():
    """Reminders due now (or at ?now= for previews)."""
    raw_now = request.args.get('now')
    try:
        now = parse_iso_datetime(raw_now) if raw_now else None
    except ValueError as exc:
        return _bad_request(f"Invalid now: {exc}")

    notifications = ReminderService.pending_notifications(now)
    return jsonify({
        'notifications': [n.to_dict() for n in notifications],
        'total_count': len(notifications),
    }), 200


# ==============================================================================
# Settings and technicians
# ==============================================================================

@api_bp.route("/settings", methods=["GET"])
def get_settings():
    settings = ShopSettingsService.get_settings()
    if settings is None:
        return jsonify({'error': 'settings_not_found', 'message': "Shop settings have not been configured"}), 404
    return jsonify(settings.to_dict()), 200


@api_bp.route("/settings", methods=["PUT"])
def update_settings():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return _bad_request("A JSON object is required")

    settings = ShopSettingsService.update_settings(data)
    return jsonify(settings.to_dict()), 200


@api_bp.route("/technicians", methods=["GET"])
def list_technicians():
    technicians = Technician.query.order_by(Technician.name.asc()).all()
    return jsonify({
        'technicians': [t.to_dict() for t in technicians],
        'total_count': len(technicians),
    }), 200
