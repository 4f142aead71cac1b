import re

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from doctor_booking.database import ensure_booking_schema

TIME_PATTERN = re.compile(r'^([0-1]\d|2[0-3]):([0-5]\d)$')
DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and database credentials.'


def database_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=DATABASE_UNAVAILABLE_DETAIL,
    )


def ensure_database_ready() -> None:
    try:
        ensure_booking_schema()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


def validate_wall_clock_time(value: str) -> str:
    normalized = value.strip()
    if not TIME_PATTERN.match(normalized):
        raise ValueError('Times must use 24-hour HH:MM format.')
    return normalized
