"""Availability model definitions."""

from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String
from doctor_booking.database import Base


class AvailabilityWindow(Base):
    """A contiguous interval on one day during which a doctor accepts bookings.

    Windows are never edited in place; a doctor deletes and recreates them.
    """
    __tablename__ = "availability_windows"

    id = Column(Integer, primary_key=True)
    doctor_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)  # HH:MM
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
