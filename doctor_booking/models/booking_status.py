from enum import Enum


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


# Bookings in these states hold their slot; the rest free it again.
LIVE_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.ACCEPTED})
LIVE_STATUS_VALUES = frozenset(booking_status.value for booking_status in LIVE_STATUSES)

ALLOWED_TRANSITIONS = {
    BookingStatus.PENDING: frozenset({BookingStatus.ACCEPTED, BookingStatus.REJECTED, BookingStatus.CANCELLED}),
    BookingStatus.ACCEPTED: frozenset({BookingStatus.CANCELLED}),
    BookingStatus.REJECTED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}


def can_transition(current: str, target: str) -> bool:
    # Unknown stored statuses have no transitions.
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())
