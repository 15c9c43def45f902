from datetime import date
from enum import Enum


class BookingStatus(str, Enum):
    RESERVED = "Reserved"
    CHECKED_IN = "CheckedIn"
    CHECKED_OUT = "CheckedOut"
    CANCELLED = "Cancelled"


class Channel(str, Enum):
    DIRECT = "Direct"
    AIRBNB = "Airbnb"
    BOOKING_COM = "Booking.com"
    AGODA = "Agoda"


ACTIVE_STATUSES = frozenset({BookingStatus.RESERVED, BookingStatus.CHECKED_IN})

# every state appears as a key; terminal states map to an empty set
TRANSITIONS = {
    BookingStatus.RESERVED: (BookingStatus.CHECKED_IN, BookingStatus.CANCELLED),
    BookingStatus.CHECKED_IN: (BookingStatus.CHECKED_OUT,),
    BookingStatus.CHECKED_OUT: (),
    BookingStatus.CANCELLED: (),
}


def overlaps(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    # half-open [start, end): a stay ending on the day another starts is fine
    return a_start < b_end and b_start < a_end


def is_active(status) -> bool:
    return BookingStatus(status) in ACTIVE_STATUSES


def allowed_transitions(current) -> tuple:
    return TRANSITIONS[BookingStatus(current)]


def can_transition(current, target) -> bool:
    return BookingStatus(target) in allowed_transitions(current)


def stay_nights(check_in: date, check_out: date) -> int:
    return (check_out - check_in).days


def suggested_amount(base_price: int, check_in: date, check_out: date) -> int:
    return int(base_price) * stay_nights(check_in, check_out)
