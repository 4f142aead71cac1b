from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from doctor_booking.core import config


engine = create_engine(config.DATABASE_URL, echo=config.SQL_ECHO)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_booking_schema_checked = False

BOOKING_TABLES = frozenset({'availability_windows', 'bookings', 'notifications'})


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_booking_schema() -> None:
    global _booking_schema_checked

    if _booking_schema_checked:
        return

    with _schema_lock:
        if _booking_schema_checked:
            return

        inspector = inspect(engine)
        table_names = set(inspector.get_table_names())
        if not BOOKING_TABLES <= table_names:
            # Tables are created at startup; check again on the next request.
            return

        with engine.begin() as connection:
            connection.execute(
                text(
                    'CREATE INDEX IF NOT EXISTS idx_availability_doctor_date '
                    'ON availability_windows(doctor_id, date, start_time)'
                )
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_bookings_doctor_date ON bookings(doctor_id, date, start_time)')
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_bookings_patient_date ON bookings(patient_id, date)')
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_notifications_user_read ON notifications(user_id, is_read)')
            )

        _booking_schema_checked = True
