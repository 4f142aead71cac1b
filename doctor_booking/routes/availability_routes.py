import logging
from datetime import date, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from doctor_booking.auth.dependencies import ensure_role, get_current_user
from doctor_booking.core import config
from doctor_booking.database import get_db
from doctor_booking.models.availability import AvailabilityWindow
from doctor_booking.models.user import Role, User
from doctor_booking.routes.common import database_unavailable, ensure_database_ready, validate_wall_clock_time
from doctor_booking.services.booking_conflicts import intervals_overlap, time_to_minutes

router = APIRouter(tags=['availability'])

logger = logging.getLogger(__name__)


class CreateAvailabilityRequest(BaseModel):
    date: date
    start_time: str
    end_time: str

    @field_validator('start_time', 'end_time')
    @classmethod
    def validate_times(cls, value: str) -> str:
        return validate_wall_clock_time(value)


class AvailabilityWindowResponse(BaseModel):
    id: int
    doctor_id: int
    date: date
    start_time: str
    end_time: str

    class Config:
        from_attributes = True


class CalendarWindowResponse(BaseModel):
    id: int
    start_time: str
    end_time: str


def validate_window_bounds(window_date: date, start_time: str, end_time: str, today: date | None = None) -> None:
    today = today or date.today()
    start_minutes = time_to_minutes(start_time)
    end_minutes = time_to_minutes(end_time)

    if window_date < today:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Cannot create availability for past dates.',
        )

    if window_date > today + timedelta(days=config.AVAILABILITY_MAX_DAYS_AHEAD):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Date is too far in the future.',
        )

    if start_minutes >= end_minutes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Start time must be before end time.',
        )

    if (
        start_minutes < time_to_minutes(config.AVAILABILITY_DAY_START)
        or end_minutes > time_to_minutes(config.AVAILABILITY_DAY_END)
    ):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f'Availability must be between {config.AVAILABILITY_DAY_START} and {config.AVAILABILITY_DAY_END}.',
        )


def find_windows_for_day(db: Session, doctor_id: int, window_date: date, for_update: bool = False) -> list[AvailabilityWindow]:
    query = db.query(AvailabilityWindow).filter(
        AvailabilityWindow.doctor_id == doctor_id,
        AvailabilityWindow.date == window_date,
    ).order_by(AvailabilityWindow.start_time.asc())
    if for_update:
        query = query.with_for_update()
    return query.all()


@router.post('', response_model=AvailabilityWindowResponse, status_code=status.HTTP_201_CREATED)
def create_availability(
    data: CreateAvailabilityRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_role(current_user, Role.DOCTOR, detail='Only doctors can publish availability.')
    validate_window_bounds(data.date, data.start_time, data.end_time)

    ensure_database_ready()

    try:
        start_minutes = time_to_minutes(data.start_time)
        end_minutes = time_to_minutes(data.end_time)

        for existing in find_windows_for_day(db, current_user.id, data.date, for_update=True):
            if intervals_overlap(
                start_minutes,
                end_minutes,
                time_to_minutes(existing.start_time),
                time_to_minutes(existing.end_time),
            ):
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail='Availability conflicts with existing availability.',
                )

        window = AvailabilityWindow(
            doctor_id=current_user.id,
            date=data.date,
            start_time=data.start_time,
            end_time=data.end_time,
        )
        db.add(window)
        db.commit()
        db.refresh(window)

        logger.info(
            'Doctor %s published availability %s %s-%s',
            current_user.id, window.date, window.start_time, window.end_time,
        )
        return window
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.get('', response_model=list[AvailabilityWindowResponse])
def list_availability(
    doctor_id: int = Query(...),
    window_date: date | None = Query(default=None, alias='date'),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        query = db.query(AvailabilityWindow).filter(AvailabilityWindow.doctor_id == doctor_id)
        if window_date is not None:
            query = query.filter(AvailabilityWindow.date == window_date)

        return query.order_by(AvailabilityWindow.date.asc(), AvailabilityWindow.start_time.asc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/me', response_model=list[AvailabilityWindowResponse])
def list_my_availability(
    window_date: date | None = Query(default=None, alias='date'),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_role(current_user, Role.DOCTOR, detail='Only doctors have availability.')
    return list_availability(doctor_id=current_user.id, window_date=window_date, db=db)


@router.get('/calendar', response_model=dict[date, list[CalendarWindowResponse]])
def get_availability_calendar(
    doctor_id: int = Query(...),
    from_date: date = Query(..., alias='from'),
    to_date: date = Query(..., alias='to'),
    db: Session = Depends(get_db),
):
    if from_date > to_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='"from" date must be before "to" date.',
        )

    ensure_database_ready()

    try:
        windows = db.query(AvailabilityWindow).filter(
            AvailabilityWindow.doctor_id == doctor_id,
            AvailabilityWindow.date >= from_date,
            AvailabilityWindow.date <= to_date,
        ).order_by(AvailabilityWindow.date.asc(), AvailabilityWindow.start_time.asc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    calendar: dict[date, list[CalendarWindowResponse]] = {}
    for window in windows:
        calendar.setdefault(window.date, []).append(
            CalendarWindowResponse(id=window.id, start_time=window.start_time, end_time=window.end_time)
        )

    return calendar


@router.delete('/{window_id}', status_code=status.HTTP_204_NO_CONTENT)
def remove_availability(
    window_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_role(current_user, Role.DOCTOR, detail='Only doctors can remove availability.')

    ensure_database_ready()

    try:
        window = db.query(AvailabilityWindow).filter(AvailabilityWindow.id == window_id).first()

        if not window:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Availability not found.',
            )

        if window.doctor_id != current_user.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='You can only remove your own availability.',
            )

        db.delete(window)
        db.commit()
        logger.info('Doctor %s removed availability %s', current_user.id, window_id)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc
