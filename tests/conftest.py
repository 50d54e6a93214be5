"""
Shared fixtures: an app bound to an in-memory SQLite database, a test
client, and small factories for shop data.
"""
import pytest
from datetime import datetime

from workshop import create_app
from workshop.models import Appointment, Job, JobStatus, ShopSettings, Technician, db


@pytest.fixture
def app():
    """Create Flask application for testing."""
    app = create_app({
        'TESTING': True,
        'ENV': 'testing',
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SHOP_TIMEZONE': 'UTC',
        'AUTO_CREATE_TABLES': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def shop_settings(app):
    """Weekday shop, 08:00-17:00, two bays."""
    settings = ShopSettings(
        id="default",
        shop_name="Test Garage",
        operating_hours={'start': '08:00', 'end': '17:00'},
        days_open=['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday'],
        number_of_bays=2,
    )
    db.session.add(settings)
    db.session.commit()
    return settings


@pytest.fixture
def make_job(app):
    """Factory for persisted jobs."""
    def _make_job(status=JobStatus.APPROVED, duration=1.0, customer_id="cust-1", vehicle_id="veh-1", **fields):
        job = Job(
            customer_id=customer_id,
            vehicle_id=vehicle_id,
            status=status,
            estimated_duration_hours=duration,
            **fields
        )
        db.session.add(job)
        db.session.commit()
        return job
    return _make_job


@pytest.fixture
def make_appointment(app):
    """Factory for an appointment linked to its job (naive UTC start)."""
    def _make_appointment(job, start: datetime, **fields):
        appointment = Appointment(
            job_id=job.id,
            customer_id=job.customer_id,
            vehicle_id=job.vehicle_id,
            date_time=start,
            **fields
        )
        db.session.add(appointment)
        db.session.flush()
        job.appointment_id = appointment.id
        db.session.commit()
        return appointment
    return _make_appointment


@pytest.fixture
def technician(app):
    tech = Technician(name="Sam Ortiz", specialty="Brakes", availability={'Monday': True})
    db.session.add(tech)
    db.session.commit()
    return tech
