import pytest
from fastapi import HTTPException

from doctor_booking.models.notification import Notification
from doctor_booking.routes.notification_routes import (
    get_unread_count,
    list_notifications,
    mark_all_notifications_read,
    mark_notification_read,
)
from doctor_booking.services.notifications import create_notification


@pytest.fixture
def inbox(db, patient, doctor):
    notifications = [
        create_notification(db, patient.id, 'Booking Accepted', 'Your booking was accepted.', {'booking_id': 1}),
        create_notification(db, patient.id, 'Booking Cancelled', 'Booking was cancelled by the doctor.'),
        create_notification(db, doctor.id, 'New Booking Request', 'New request from Ada Lovelace.'),
    ]
    db.commit()
    return notifications


def test_create_notification_waits_for_caller_commit(db, patient) -> None:
    create_notification(db, patient.id, 'Booking Accepted', 'Your booking was accepted.')
    db.rollback()

    assert db.query(Notification).count() == 0


def test_list_notifications_returns_callers_newest_first(db, patient, inbox) -> None:
    notifications = list_notifications(unread_only=False, limit=50, current_user=patient, db=db)

    assert [notification.title for notification in notifications] == ['Booking Cancelled', 'Booking Accepted']


def test_list_notifications_honours_limit(db, patient, inbox) -> None:
    notifications = list_notifications(unread_only=False, limit=1, current_user=patient, db=db)

    assert len(notifications) == 1


def test_mark_notification_read_sets_timestamp(db, patient, inbox) -> None:
    notification = mark_notification_read(notification_id=inbox[0].id, current_user=patient, db=db)

    assert notification.is_read is True
    assert notification.read_at is not None

    unread = list_notifications(unread_only=True, limit=50, current_user=patient, db=db)
    assert [item.id for item in unread] == [inbox[1].id]


def test_mark_notification_read_hides_other_users_notifications(db, patient, inbox) -> None:
    with pytest.raises(HTTPException) as exception_info:
        mark_notification_read(notification_id=inbox[2].id, current_user=patient, db=db)

    assert exception_info.value.status_code == 404


def test_mark_all_notifications_read_only_touches_caller(db, patient, doctor, inbox) -> None:
    result = mark_all_notifications_read(current_user=patient, db=db)

    assert result.updated == 2
    assert list_notifications(unread_only=True, limit=50, current_user=patient, db=db) == []
    assert len(list_notifications(unread_only=True, limit=50, current_user=doctor, db=db)) == 1


def test_get_unread_count_counts_only_callers_unread(db, patient, doctor, inbox) -> None:
    assert get_unread_count(current_user=patient, db=db).unread_count == 2
    assert get_unread_count(current_user=doctor, db=db).unread_count == 1

    mark_notification_read(notification_id=inbox[0].id, current_user=patient, db=db)

    assert get_unread_count(current_user=patient, db=db).unread_count == 1


def test_get_unread_count_is_zero_for_empty_inbox(db, patient) -> None:
    assert get_unread_count(current_user=patient, db=db).unread_count == 0
