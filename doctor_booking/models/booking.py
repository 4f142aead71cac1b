"""Booking model definitions."""

from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String
from doctor_booking.database import Base
from doctor_booking.models.booking_status import BookingStatus


class Booking(Base):
    """Represents a patient's reservation inside a doctor's availability window."""
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True)
    doctor_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    patient_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)  # HH:MM
    duration_minutes = Column(Integer, nullable=False)
    status = Column(String, nullable=False, default=BookingStatus.PENDING.value)
    reason = Column(String(500))
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
