from datetime import date

from ..models import Booking, Property
from .booking_rules import ACTIVE_STATUSES, stay_nights

ACTIVE_STATUS_VALUES = sorted(s.value for s in ACTIVE_STATUSES)


def get_property(session, property_id: int, lock: bool = False):
    """
    Load a property, optionally taking a row lock for the rest of the
    transaction.

    Booking writes that can change occupancy lock the property first, so two
    writers for the same property run their check-then-write one after the
    other instead of both seeing a free calendar.
    """
    q = session.query(Property).filter(Property.id == property_id)
    if lock:
        q = q.with_for_update()
    return q.first()


def find_conflicts(session, property_id: int, check_in: date, check_out: date, exclude_booking_id=None):
    # same predicate as booking_rules.overlaps, evaluated in the database
    q = (
        session.query(Booking)
        .filter(
            Booking.property_id == property_id,
            Booking.status.in_(ACTIVE_STATUS_VALUES),
            Booking.check_in < check_out,
            Booking.check_out > check_in,
        )
    )
    if exclude_booking_id is not None:
        q = q.filter(Booking.id != exclude_booking_id)
    return q.order_by(Booking.check_in.asc(), Booking.id.asc()).all()


def active_bookings(session, property_id: int):
    return (
        session.query(Booking)
        .filter(Booking.property_id == property_id, Booking.status.in_(ACTIVE_STATUS_VALUES))
        .order_by(Booking.check_in.asc(), Booking.id.asc())
        .all()
    )


def conflict_to_dict(b: Booking) -> dict:
    return {
        "booking_id": b.id,
        "guest_name": b.guest_name,
        "check_in": b.check_in.isoformat(),
        "check_out": b.check_out.isoformat(),
        "status": b.status,
    }


def check_properties(session, property_ids, check_in: date, check_out: date):
    """
    Availability for several properties over one interval.

    Returns ``(records, missing_ids)``. Ids with no matching property are
    never folded into the records as "unavailable"; the caller reports them
    separately.
    """
    wanted = list(dict.fromkeys(property_ids))
    found = {
        p.id: p
        for p in session.query(Property).filter(Property.id.in_(wanted)).all()
    }
    nights = stay_nights(check_in, check_out)

    records = []
    missing = []
    for pid in wanted:
        prop = found.get(pid)
        if prop is None:
            missing.append(pid)
            continue
        conflicts = find_conflicts(session, pid, check_in, check_out)
        records.append({
            "property_id": prop.id,
            "property_title": prop.title,
            "base_price_twd": prop.base_price_twd,
            "stay_nights": nights,
            "estimated_total": prop.base_price_twd * nights,
            "is_available": not conflicts,
            "conflicting_bookings": [conflict_to_dict(b) for b in conflicts],
        })
    return records, missing
