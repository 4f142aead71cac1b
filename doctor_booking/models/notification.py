"""Notification model definitions."""

from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String
from doctor_booking.database import Base


class Notification(Base):
    """A message stored for a user; delivery to connected clients happens elsewhere."""
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    type = Column(String, nullable=False, default="BOOKING_STATUS")
    title = Column(String, nullable=False)
    body = Column(String, nullable=False)
    data = Column(JSON)
    is_read = Column(Boolean, default=False)
    read_at = Column(DateTime)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
