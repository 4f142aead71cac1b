from datetime import date

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from doctor_booking.database import get_db
from doctor_booking.models.availability import AvailabilityWindow
from doctor_booking.models.user import Role, User
from doctor_booking.routes.common import database_unavailable, ensure_database_ready

router = APIRouter(tags=['doctors'])


class DoctorListItemResponse(BaseModel):
    id: int
    name: str
    specialty: str | None = None
    next_available_date: date | None = None
    next_available_time: str | None = None


def find_next_windows(db: Session, doctor_ids: list[int], today: date) -> dict[int, AvailabilityWindow]:
    """Earliest window dated today or later for each doctor."""
    if not doctor_ids:
        return {}

    windows = db.query(AvailabilityWindow).filter(
        AvailabilityWindow.doctor_id.in_(doctor_ids),
        AvailabilityWindow.date >= today,
    ).order_by(AvailabilityWindow.date.asc(), AvailabilityWindow.start_time.asc()).all()

    next_windows: dict[int, AvailabilityWindow] = {}
    for window in windows:
        next_windows.setdefault(window.doctor_id, window)
    return next_windows


@router.get('', response_model=list[DoctorListItemResponse])
def list_doctors(db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        doctors = db.query(User).filter(
            User.role == Role.DOCTOR.value,
            User.is_active.is_(True),
            User.is_verified.is_(True),
        ).order_by(User.last_name.asc(), User.first_name.asc(), User.id.asc()).all()
        next_windows = find_next_windows(db, [doctor.id for doctor in doctors], date.today())
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    listed: list[DoctorListItemResponse] = []
    for doctor in doctors:
        window = next_windows.get(doctor.id)
        listed.append(
            DoctorListItemResponse(
                id=doctor.id,
                name=doctor.full_name,
                specialty=doctor.specialty,
                next_available_date=window.date if window else None,
                next_available_time=window.start_time if window else None,
            )
        )
    return listed
