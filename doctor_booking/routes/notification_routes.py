from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from doctor_booking.auth.dependencies import get_current_user
from doctor_booking.database import get_db
from doctor_booking.models.notification import Notification
from doctor_booking.models.user import User
from doctor_booking.routes.common import database_unavailable, ensure_database_ready

router = APIRouter(tags=['notifications'])


class NotificationResponse(BaseModel):
    id: int
    type: str
    title: str
    body: str
    data: dict | None = None
    is_read: bool
    read_at: datetime | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class MarkAllReadResponse(BaseModel):
    updated: int


class UnreadCountResponse(BaseModel):
    unread_count: int


@router.get('', response_model=list[NotificationResponse])
def list_notifications(
    unread_only: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        query = db.query(Notification).filter(Notification.user_id == current_user.id)
        if unread_only:
            query = query.filter(Notification.is_read.is_(False))

        return query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/unread-count', response_model=UnreadCountResponse)
def get_unread_count(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        unread_count = db.query(Notification).filter(
            Notification.user_id == current_user.id,
            Notification.is_read.is_(False),
        ).count()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return UnreadCountResponse(unread_count=unread_count)


@router.patch('/read-all', response_model=MarkAllReadResponse)
def mark_all_notifications_read(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        updated = db.query(Notification).filter(
            Notification.user_id == current_user.id,
            Notification.is_read.is_(False),
        ).update(
            {Notification.is_read: True, Notification.read_at: datetime.now(timezone.utc)},
            synchronize_session=False,
        )
        db.commit()
        return MarkAllReadResponse(updated=updated)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.patch('/{notification_id}/read', response_model=NotificationResponse)
def mark_notification_read(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        notification = db.query(Notification).filter(
            Notification.id == notification_id,
            Notification.user_id == current_user.id,
        ).first()
        if not notification:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Notification not found.',
            )

        if not notification.is_read:
            notification.is_read = True
            notification.read_at = datetime.now(timezone.utc)
            db.commit()
            db.refresh(notification)

        return notification
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc
