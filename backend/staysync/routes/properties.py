import logging
from datetime import date

from flask import Blueprint
from sqlalchemy import case, func, select

from ..errors import DependencyError, NotFoundError
from ..extensions import db, transaction
from ..models import Booking, Property, User
from ..schemas import (
    DistrictQuery, PropertyAvailabilityQuery, PropertyCreateIn, PropertyListQuery, PropertyUpdateIn,
)
from ..serializers import to_booking_summary, to_public_property
from ..utils.availability import ACTIVE_STATUS_VALUES, active_bookings, conflict_to_dict, find_conflicts, get_property
from ..utils.booking_rules import BookingStatus
from ..utils.pagination import paginate
from ..utils.responses import ok
from ..utils.validation import parse_id, update_fields, validate_args, validate_body

bp = Blueprint("properties", __name__)

logger = logging.getLogger("staysync.properties")

session = db.session

CANCELLED = BookingStatus.CANCELLED.value


def _get_property(property_id, lock=False):
    p = get_property(session, property_id, lock=lock)
    if not p:
        raise NotFoundError("property not found", code="PROPERTY_NOT_FOUND")
    return p


def _revenue_expr():
    return func.coalesce(func.sum(case((Booking.status != CANCELLED, Booking.total_amount), else_=0)), 0)


@bp.route("", methods=["GET"])
def list_properties():
    args = validate_args(PropertyListQuery)

    query = (
        session.query(
            Property,
            func.count(func.distinct(Booking.id)),
            _revenue_expr(),
            func.coalesce(func.avg(case((Booking.status != CANCELLED, Booking.total_amount))), 0),
        )
        .outerjoin(Booking, Booking.property_id == Property.id)
    )

    if args.city:
        query = query.filter(Property.city == args.city)
    if args.district:
        query = query.filter(Property.district == args.district)
    if args.min_price is not None:
        query = query.filter(Property.base_price_twd >= args.min_price)
    if args.max_price is not None:
        query = query.filter(Property.base_price_twd <= args.max_price)

    # only properties that are free for the whole requested stay
    if args.check_in and args.check_out:
        booked = (
            select(Booking.property_id)
            .where(
                Booking.status.in_(ACTIVE_STATUS_VALUES),
                Booking.check_in < args.check_out,
                Booking.check_out > args.check_in,
            )
        )
        query = query.filter(~Property.id.in_(booked))

    query = query.group_by(Property.id).order_by(Property.id.desc())
    rows, pagination = paginate(query, args.page, args.limit)

    items = []
    for p, total_bookings, total_revenue, avg_value in rows:
        item = to_public_property(p, with_owner=True)
        item["total_bookings"] = int(total_bookings or 0)
        item["total_revenue"] = int(total_revenue or 0)
        item["avg_booking_value"] = round(float(avg_value or 0))
        items.append(item)

    return ok(items, pagination=pagination)


@bp.route("/<property_id>", methods=["GET"])
def get_property_detail(property_id):
    p = _get_property(parse_id(property_id, "property"))

    stats = (
        session.query(
            func.count(Booking.id),
            func.count(case((Booking.status == BookingStatus.RESERVED.value, 1))),
            func.count(case((Booking.status == BookingStatus.CHECKED_IN.value, 1))),
            func.count(case((Booking.status == BookingStatus.CHECKED_OUT.value, 1))),
            func.count(case((Booking.status == CANCELLED, 1))),
            _revenue_expr(),
            func.coalesce(func.avg(case((Booking.status != CANCELLED, Booking.total_amount))), 0),
        )
        .filter(Booking.property_id == p.id)
        .one()
    )

    recent = (
        Booking.query
        .filter(Booking.property_id == p.id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
        .limit(5)
        .all()
    )
    upcoming = (
        Booking.query
        .filter(
            Booking.property_id == p.id,
            Booking.status.in_(ACTIVE_STATUS_VALUES),
            Booking.check_in >= date.today(),
        )
        .order_by(Booking.check_in.asc())
        .limit(10)
        .all()
    )

    data = to_public_property(p, with_owner=True)
    data["owner_tax_id"] = p.owner.company_tax_id if p.owner else None
    data["statistics"] = {
        "total_bookings": int(stats[0] or 0),
        "active_bookings": int(stats[1] or 0),
        "current_guests": int(stats[2] or 0),
        "completed_bookings": int(stats[3] or 0),
        "cancelled_bookings": int(stats[4] or 0),
        "total_revenue": int(stats[5] or 0),
        "avg_booking_value": round(float(stats[6] or 0)),
    }
    data["recent_bookings"] = [to_booking_summary(b) for b in recent]
    data["upcoming_bookings"] = [to_booking_summary(b) for b in upcoming]
    return ok(data)


@bp.route("", methods=["POST"])
def create_property():
    payload = validate_body(PropertyCreateIn)

    with transaction():
        owner = session.get(User, payload.owner_id)
        if not owner:
            raise NotFoundError("owner not found", code="OWNER_NOT_FOUND")
        item = Property(**payload.model_dump())
        session.add(item)

    logger.info("property created id=%s owner_id=%s", item.id, item.owner_id)
    return ok(to_public_property(item, with_owner=True), status=201, message="property created")


@bp.route("/<property_id>", methods=["PUT"])
def update_property(property_id):
    property_id = parse_id(property_id, "property")
    fields = update_fields(validate_body(PropertyUpdateIn))

    with transaction():
        item = _get_property(property_id, lock=True)
        for name, value in fields.items():
            setattr(item, name, value)

    return ok(to_public_property(item, with_owner=True), message="property updated")


@bp.route("/<property_id>", methods=["DELETE"])
def delete_property(property_id):
    property_id = parse_id(property_id, "property")

    with transaction():
        item = _get_property(property_id, lock=True)
        booking_count = Booking.query.filter(Booking.property_id == item.id).count()
        if booking_count:
            raise DependencyError(
                f"property still has {booking_count} bookings",
                code="PROPERTY_HAS_BOOKINGS",
                details={"booking_count": booking_count},
            )
        title = item.title
        session.delete(item)

    logger.info("property deleted id=%s", property_id)
    return ok(message=f'property "{title}" deleted')


@bp.route("/<property_id>/availability", methods=["GET"])
def property_availability(property_id):
    property_id = parse_id(property_id, "property")
    args = validate_args(PropertyAvailabilityQuery)
    p = _get_property(property_id)

    if args.start_date and args.end_date:
        conflicts = find_conflicts(session, p.id, args.start_date, args.end_date)
    else:
        conflicts = active_bookings(session, p.id)

    return ok({
        "property_id": p.id,
        "property_title": p.title,
        "date_range": {
            "start_date": args.start_date.isoformat() if args.start_date else None,
            "end_date": args.end_date.isoformat() if args.end_date else None,
        },
        "is_available": not conflicts,
        "conflicting_bookings": [conflict_to_dict(b) for b in conflicts],
    })


@bp.route("/search/cities", methods=["GET"])
def list_cities():
    rows = (
        session.query(Property.city, func.count(Property.id).label("property_count"))
        .group_by(Property.city)
        .order_by(func.count(Property.id).desc(), Property.city.asc())
        .all()
    )
    return ok([{"city": city, "property_count": int(cnt)} for city, cnt in rows])


@bp.route("/search/districts", methods=["GET"])
def list_districts():
    args = validate_args(DistrictQuery)
    rows = (
        session.query(Property.district, func.count(Property.id))
        .filter(Property.city == args.city)
        .group_by(Property.district)
        .order_by(func.count(Property.id).desc(), Property.district.asc())
        .all()
    )
    return ok([{"district": district, "property_count": int(cnt)} for district, cnt in rows])
