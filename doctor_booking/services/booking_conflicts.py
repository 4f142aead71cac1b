"""Decide whether a requested booking fits a doctor's day.

Everything here works on plain values: callers load the doctor's availability
windows and bookings for the date and pass them in. Times are "HH:MM" wall-clock
strings compared as minutes since midnight over half-open [start, end) intervals.
"""

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Protocol

from doctor_booking.models.booking_status import LIVE_STATUS_VALUES

ALLOWED_DURATIONS = frozenset({60, 120})


class TimeRange(Protocol):
    start_time: str
    end_time: str


class StatusTimeRange(TimeRange, Protocol):
    status: str


@dataclass(frozen=True)
class BookingRequest:
    doctor_id: int
    date: date
    start_time: str
    duration_minutes: int


@dataclass(frozen=True)
class AcceptedSlot:
    start_time: str
    end_time: str
    duration_minutes: int


class BookingConflictError(ValueError):
    """Base class for requests that cannot be booked given the current state."""

    kind = 'booking_conflict'

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidDuration(BookingConflictError):
    kind = 'invalid_duration'


class NoAvailability(BookingConflictError):
    kind = 'no_availability'


class OutsideAvailability(BookingConflictError):
    kind = 'outside_availability'


class SlotConflict(BookingConflictError):
    kind = 'slot_conflict'


def time_to_minutes(value: str) -> int:
    hours, minutes = value.split(':')
    return int(hours) * 60 + int(minutes)


def minutes_to_time(total_minutes: int) -> str:
    hours, minutes = divmod(total_minutes, 60)
    return f'{hours:02d}:{minutes:02d}'


def intervals_overlap(first_start: int, first_end: int, second_start: int, second_end: int) -> bool:
    # Touching intervals (one ends where the other starts) do not overlap.
    return first_start < second_end and second_start < first_end


def validate_duration(duration_minutes: int) -> None:
    if duration_minutes not in ALLOWED_DURATIONS:
        raise InvalidDuration('Duration must be 60 or 120 minutes.')


def find_containing_window(
    start_minutes: int,
    end_minutes: int,
    windows: Iterable[TimeRange],
) -> TimeRange | None:
    for window in windows:
        if time_to_minutes(window.start_time) <= start_minutes and end_minutes <= time_to_minutes(window.end_time):
            return window
    return None


def find_overlapping_booking(
    start_minutes: int,
    end_minutes: int,
    bookings: Iterable[StatusTimeRange],
) -> StatusTimeRange | None:
    for booking in bookings:
        if booking.status not in LIVE_STATUS_VALUES:
            continue
        if intervals_overlap(
            start_minutes,
            end_minutes,
            time_to_minutes(booking.start_time),
            time_to_minutes(booking.end_time),
        ):
            return booking
    return None


def resolve_booking(
    request: BookingRequest,
    existing_availability: Iterable[TimeRange],
    existing_bookings: Iterable[StatusTimeRange],
) -> AcceptedSlot:
    """Check a booking request against the doctor's windows and bookings for that date.

    Raises InvalidDuration before any other check runs, then NoAvailability or
    OutsideAvailability when no single window contains the request, then
    SlotConflict when a PENDING or ACCEPTED booking overlaps it. Rejected and
    cancelled bookings do not hold their slot.
    """
    validate_duration(request.duration_minutes)

    start_minutes = time_to_minutes(request.start_time)
    end_minutes = start_minutes + request.duration_minutes

    windows = list(existing_availability)
    if not windows:
        raise NoAvailability('No availability found for this doctor on the selected date.')

    if find_containing_window(start_minutes, end_minutes, windows) is None:
        raise OutsideAvailability('Booking time does not fit within doctor availability.')

    if find_overlapping_booking(start_minutes, end_minutes, existing_bookings) is not None:
        raise SlotConflict('Time slot already booked.')

    return AcceptedSlot(
        start_time=minutes_to_time(start_minutes),
        end_time=minutes_to_time(end_minutes),
        duration_minutes=request.duration_minutes,
    )
