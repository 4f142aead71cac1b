import logging
from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from doctor_booking.auth.dependencies import ensure_role, get_current_user
from doctor_booking.database import get_db
from doctor_booking.models.availability import AvailabilityWindow
from doctor_booking.models.booking import Booking
from doctor_booking.models.booking_status import LIVE_STATUS_VALUES, BookingStatus, can_transition
from doctor_booking.models.user import Role, User
from doctor_booking.routes.common import database_unavailable, ensure_database_ready, validate_wall_clock_time
from doctor_booking.services.booking_conflicts import (
    BookingConflictError,
    BookingRequest,
    resolve_booking,
    time_to_minutes,
    validate_duration,
)
from doctor_booking.services.notifications import booking_notification_data, create_notification

router = APIRouter(tags=['bookings'])

logger = logging.getLogger(__name__)

MAX_BOOKING_REASON_LENGTH = 500


class CreateBookingRequest(BaseModel):
    doctor_id: int
    date: date
    start_time: str
    duration_minutes: int | None = None
    end_time: str | None = None
    reason: str | None = None

    @field_validator('start_time')
    @classmethod
    def validate_start_time(cls, value: str) -> str:
        return validate_wall_clock_time(value)

    @field_validator('end_time')
    @classmethod
    def validate_end_time(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return validate_wall_clock_time(value)

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > MAX_BOOKING_REASON_LENGTH:
            raise ValueError(f'Reason must be {MAX_BOOKING_REASON_LENGTH} characters or fewer.')

        return normalized

    @model_validator(mode='after')
    def resolve_duration(self):
        if self.duration_minutes is None and self.end_time is None:
            raise ValueError('Either duration_minutes or end_time is required.')

        if self.end_time is not None:
            derived = time_to_minutes(self.end_time) - time_to_minutes(self.start_time)
            if self.duration_minutes is None:
                self.duration_minutes = derived
            elif self.duration_minutes != derived:
                raise ValueError('end_time does not match duration_minutes.')

        return self


class BookingResponse(BaseModel):
    id: int
    doctor_id: int
    patient_id: int
    date: date
    start_time: str
    end_time: str
    duration_minutes: int
    status: BookingStatus
    reason: str | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class BookedSlotResponse(BaseModel):
    id: int
    date: date
    start_time: str
    end_time: str
    duration_minutes: int
    status: BookingStatus

    class Config:
        from_attributes = True


def rejected_booking(exc: BookingConflictError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)


def get_bookable_doctor(db: Session, doctor_id: int) -> User:
    doctor = db.query(User).filter(User.id == doctor_id).first()
    if not doctor or doctor.role != Role.DOCTOR.value or not doctor.is_active or not doctor.is_verified:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Selected doctor is not available for booking.',
        )
    return doctor


def availability_lock_query(db: Session, doctor_id: int, booking_date: date):
    return db.query(AvailabilityWindow).filter(
        AvailabilityWindow.doctor_id == doctor_id,
        AvailabilityWindow.date == booking_date,
    ).with_for_update()


def lock_availability_for_day(db: Session, doctor_id: int, booking_date: date) -> list[AvailabilityWindow]:
    # Row locks on the day's windows serialise concurrent bookings for the same doctor and date.
    return availability_lock_query(db, doctor_id, booking_date).all()


def get_booking_or_404(db: Session, booking_id: int) -> Booking:
    booking = db.query(Booking).filter(Booking.id == booking_id).first()
    if not booking:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Booking not found.',
        )
    return booking


def apply_status_change(
    db: Session,
    booking: Booking,
    target: BookingStatus,
    notify_user_id: int,
    title: str,
    body: str,
    **extra,
) -> Booking:
    previous = booking.status
    booking.status = target.value
    create_notification(db, notify_user_id, title, body, booking_notification_data(booking, **extra))
    db.commit()
    db.refresh(booking)

    logger.info('Booking %s moved from %s to %s', booking.id, previous, booking.status)
    return booking


@router.post('', response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    data: CreateBookingRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_role(current_user, Role.PATIENT, detail='Only patients can create bookings.')

    try:
        validate_duration(data.duration_minutes)
    except BookingConflictError as exc:
        raise rejected_booking(exc) from exc

    if data.date < date.today():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Cannot book appointments for past dates.',
        )

    ensure_database_ready()

    try:
        doctor = get_bookable_doctor(db, data.doctor_id)
        windows = lock_availability_for_day(db, doctor.id, data.date)

        existing_patient_booking = db.query(Booking).filter(
            Booking.patient_id == current_user.id,
            Booking.doctor_id == doctor.id,
            Booking.date == data.date,
            Booking.status.in_(sorted(LIVE_STATUS_VALUES)),
        ).first()
        if existing_patient_booking:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='You already have a booking with this doctor on this date.',
            )

        bookings = db.query(Booking).filter(
            Booking.doctor_id == doctor.id,
            Booking.date == data.date,
        ).all()

        request = BookingRequest(
            doctor_id=doctor.id,
            date=data.date,
            start_time=data.start_time,
            duration_minutes=data.duration_minutes,
        )
        try:
            slot = resolve_booking(request, windows, bookings)
        except BookingConflictError as exc:
            logger.warning(
                'Rejected booking for doctor %s on %s at %s (%s): %s',
                doctor.id, data.date, data.start_time, exc.kind, exc.message,
            )
            raise rejected_booking(exc) from exc

        booking = Booking(
            doctor_id=doctor.id,
            patient_id=current_user.id,
            date=data.date,
            start_time=slot.start_time,
            end_time=slot.end_time,
            duration_minutes=slot.duration_minutes,
            status=BookingStatus.PENDING.value,
            reason=data.reason,
        )
        db.add(booking)
        db.flush()

        create_notification(
            db,
            doctor.id,
            'New Booking Request',
            f'New request from {current_user.full_name} on {booking.date.isoformat()} at {booking.start_time}',
            booking_notification_data(booking),
        )
        db.commit()
        db.refresh(booking)

        logger.info(
            'Created booking %s for doctor %s on %s %s-%s',
            booking.id, doctor.id, booking.date, booking.start_time, booking.end_time,
        )
        return booking
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.patch('/{booking_id}/accept', response_model=BookingResponse)
def accept_booking(
    booking_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_role(current_user, Role.DOCTOR, detail='Only doctors can accept bookings.')
    ensure_database_ready()

    try:
        booking = get_booking_or_404(db, booking_id)
        if booking.doctor_id != current_user.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='You are not authorized to accept this booking.',
            )
        if not can_transition(booking.status, BookingStatus.ACCEPTED):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='Booking is not in a pending state.',
            )

        return apply_status_change(
            db,
            booking,
            BookingStatus.ACCEPTED,
            booking.patient_id,
            'Booking Accepted',
            f'Your booking on {booking.date.isoformat()} at {booking.start_time} was accepted.',
        )
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.patch('/{booking_id}/reject', response_model=BookingResponse)
def reject_booking(
    booking_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_role(current_user, Role.DOCTOR, detail='Only doctors can reject bookings.')
    ensure_database_ready()

    try:
        booking = get_booking_or_404(db, booking_id)
        if booking.doctor_id != current_user.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='You are not authorized to reject this booking.',
            )
        if not can_transition(booking.status, BookingStatus.REJECTED):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='Booking is not in a pending state.',
            )

        return apply_status_change(
            db,
            booking,
            BookingStatus.REJECTED,
            booking.patient_id,
            'Booking Rejected',
            f'Your booking on {booking.date.isoformat()} at {booking.start_time} was rejected.',
        )
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.patch('/{booking_id}/cancel', response_model=BookingResponse)
def cancel_booking(
    booking_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        booking = get_booking_or_404(db, booking_id)
        is_patient = booking.patient_id == current_user.id
        is_doctor = booking.doctor_id == current_user.id

        if not is_patient and not is_doctor:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='You are not authorized to cancel this booking.',
            )

        if not can_transition(booking.status, BookingStatus.CANCELLED):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='Only pending or accepted bookings can be cancelled.',
            )

        cancelled_by = Role.PATIENT.value if is_patient else Role.DOCTOR.value
        return apply_status_change(
            db,
            booking,
            BookingStatus.CANCELLED,
            booking.doctor_id if is_patient else booking.patient_id,
            'Booking Cancelled',
            f'Booking on {booking.date.isoformat()} at {booking.start_time} was cancelled by the {cancelled_by}.',
            cancelled_by=cancelled_by,
        )
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.get('/me', response_model=list[BookingResponse])
def list_my_bookings(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_role(current_user, Role.PATIENT, Role.DOCTOR, detail='Only patients and doctors have bookings.')
    ensure_database_ready()

    owner_column = Booking.patient_id if current_user.role == Role.PATIENT.value else Booking.doctor_id

    try:
        return db.query(Booking).filter(owner_column == current_user.id).order_by(
            Booking.date.desc(),
            Booking.start_time.asc(),
        ).all()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/schedule', response_model=list[BookingResponse])
def get_doctor_schedule(
    booking_date: date | None = Query(default=None, alias='date'),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_role(current_user, Role.DOCTOR, detail='Only doctors can view schedules.')
    ensure_database_ready()

    try:
        query = db.query(Booking).filter(Booking.doctor_id == current_user.id)
        if booking_date is not None:
            query = query.filter(Booking.date == booking_date)

        return query.order_by(Booking.date.asc(), Booking.start_time.asc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/booked-slots', response_model=list[BookedSlotResponse])
def list_booked_slots(
    doctor_id: int = Query(...),
    booking_date: date | None = Query(default=None, alias='date'),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        query = db.query(Booking).filter(
            Booking.doctor_id == doctor_id,
            Booking.status.in_(sorted(LIVE_STATUS_VALUES)),
        )
        if booking_date is not None:
            query = query.filter(Booking.date == booking_date)

        return query.order_by(Booking.date.asc(), Booking.start_time.asc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc
