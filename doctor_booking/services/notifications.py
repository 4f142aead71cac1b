import logging

from sqlalchemy.orm import Session

from doctor_booking.models.booking import Booking
from doctor_booking.models.notification import Notification

logger = logging.getLogger(__name__)

BOOKING_STATUS_NOTIFICATION = 'BOOKING_STATUS'


def booking_notification_data(booking: Booking, **extra) -> dict:
    data = {
        'booking_id': booking.id,
        'patient_id': booking.patient_id,
        'doctor_id': booking.doctor_id,
        'date': booking.date.isoformat(),
        'start_time': booking.start_time,
        'end_time': booking.end_time,
        'status': booking.status,
    }
    data.update(extra)
    return data


def create_notification(
    db: Session,
    user_id: int,
    title: str,
    body: str,
    data: dict | None = None,
    notification_type: str = BOOKING_STATUS_NOTIFICATION,
) -> Notification:
    """Stage a notification in the caller's session; the caller commits it."""
    notification = Notification(
        user_id=user_id,
        type=notification_type,
        title=title,
        body=body,
        data=data,
        is_read=False,
    )
    db.add(notification)
    logger.info('Queued %s notification for user %s: %s', notification_type, user_id, title)
    return notification
