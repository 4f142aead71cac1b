import os
from datetime import date, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from doctor_booking.database import Base  # noqa: E402
from doctor_booking.models.availability import AvailabilityWindow  # noqa: E402
from doctor_booking.models.booking import Booking  # noqa: E402
from doctor_booking.models.notification import Notification  # noqa: E402
from doctor_booking.models.user import Role, User  # noqa: E402
from doctor_booking.services.booking_conflicts import time_to_minutes  # noqa: E402

TABLES = [User.__table__, AvailabilityWindow.__table__, Booking.__table__, Notification.__table__]


@pytest.fixture
def booking_day() -> date:
    return date.today() + timedelta(days=7)


@pytest.fixture
def db(monkeypatch: pytest.MonkeyPatch):
    for module in ('availability_routes', 'booking_routes', 'doctor_routes', 'notification_routes'):
        monkeypatch.setattr(f'doctor_booking.routes.{module}.ensure_database_ready', lambda: None)

    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine, tables=TABLES)

    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine, tables=list(reversed(TABLES)))


def _add_user(db, **fields) -> User:
    user = User(**fields)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def doctor(db) -> User:
    return _add_user(
        db,
        email='house@clinic.example',
        first_name='Gregory',
        last_name='House',
        role=Role.DOCTOR.value,
        specialty='Diagnostics',
        is_active=True,
        is_verified=True,
    )


@pytest.fixture
def other_doctor(db) -> User:
    return _add_user(
        db,
        email='wilson@clinic.example',
        first_name='James',
        last_name='Wilson',
        role=Role.DOCTOR.value,
        is_active=True,
        is_verified=True,
    )


@pytest.fixture
def patient(db) -> User:
    return _add_user(
        db,
        email='patient@example.com',
        first_name='Ada',
        last_name='Lovelace',
        role=Role.PATIENT.value,
        is_active=True,
        is_verified=True,
    )


@pytest.fixture
def other_patient(db) -> User:
    return _add_user(
        db,
        email='other.patient@example.com',
        first_name='Alan',
        last_name='Turing',
        role=Role.PATIENT.value,
        is_active=True,
        is_verified=True,
    )


@pytest.fixture
def add_window(db):
    def _add(doctor_id: int, window_date: date, start_time: str, end_time: str) -> AvailabilityWindow:
        window = AvailabilityWindow(doctor_id=doctor_id, date=window_date, start_time=start_time, end_time=end_time)
        db.add(window)
        db.commit()
        db.refresh(window)
        return window

    return _add


@pytest.fixture
def add_booking(db):
    def _add(
        doctor_id: int,
        patient_id: int,
        booking_date: date,
        start_time: str,
        end_time: str,
        status: str = 'PENDING',
    ) -> Booking:
        booking = Booking(
            doctor_id=doctor_id,
            patient_id=patient_id,
            date=booking_date,
            start_time=start_time,
            end_time=end_time,
            duration_minutes=time_to_minutes(end_time) - time_to_minutes(start_time),
            status=status,
        )
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    return _add
