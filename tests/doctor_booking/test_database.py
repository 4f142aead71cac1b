from sqlalchemy import create_engine, inspect
from sqlalchemy.pool import StaticPool

from doctor_booking import database
from doctor_booking.models.availability import AvailabilityWindow
from doctor_booking.models.booking import Booking
from doctor_booking.models.notification import Notification
from doctor_booking.models.user import User

TABLES = [User.__table__, AvailabilityWindow.__table__, Booking.__table__, Notification.__table__]


def _memory_engine():
    return create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )


def test_ensure_booking_schema_waits_for_tables(monkeypatch):
    engine = _memory_engine()
    monkeypatch.setattr(database, 'engine', engine)
    monkeypatch.setattr(database, '_booking_schema_checked', False)

    database.ensure_booking_schema()

    assert database._booking_schema_checked is False

    database.Base.metadata.create_all(bind=engine, tables=TABLES)
    database.ensure_booking_schema()

    assert database._booking_schema_checked is True
    index_names = {index['name'] for index in inspect(engine).get_indexes('bookings')}
    assert {'idx_bookings_doctor_date', 'idx_bookings_patient_date'} <= index_names


def test_ensure_booking_schema_is_skipped_once_checked(monkeypatch):
    engine = _memory_engine()
    monkeypatch.setattr(database, 'engine', engine)
    monkeypatch.setattr(database, '_booking_schema_checked', True)

    database.ensure_booking_schema()

    assert inspect(engine).get_table_names() == []
