import logging
from datetime import date, datetime, time

from flask import Blueprint
from sqlalchemy import case, func

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db, transaction
from ..models import Booking
from ..schemas import AvailabilityCheckIn, BookingCreateIn, BookingListQuery, BookingStatusIn, BookingUpdateIn
from ..serializers import to_public_booking
from ..utils.availability import check_properties, conflict_to_dict, find_conflicts, get_property
from ..utils.booking_rules import (
    BookingStatus, allowed_transitions, can_transition, is_active, suggested_amount,
)
from ..utils.pagination import paginate
from ..utils.responses import ok
from ..utils.validation import (
    parse_id, reject_past_check_in, update_fields, validate_args, validate_body,
)

bp = Blueprint("bookings", __name__)

logger = logging.getLogger("staysync.bookings")

session = db.session

CANCELLED = BookingStatus.CANCELLED.value


def _get_booking(booking_id, lock=False):
    q = session.query(Booking).filter(Booking.id == booking_id)
    if lock:
        q = q.with_for_update()
    b = q.first()
    if not b:
        raise NotFoundError("booking not found", code="BOOKING_NOT_FOUND")
    return b


def _date_conflict(message, conflicts):
    return ConflictError(
        message,
        code="DATE_CONFLICT",
        details={"conflicting_bookings": [conflict_to_dict(c) for c in conflicts]},
    )


def _current_status(b, today=None):
    today = today or date.today()
    if b.check_in > today:
        return "upcoming"
    if b.check_out < today:
        return "finished"
    return "in_stay"


@bp.route("", methods=["GET"])
def list_bookings():
    args = validate_args(BookingListQuery)
    query = Booking.query

    if args.status:
        query = query.filter(Booking.status == args.status)
    if args.source_channel:
        query = query.filter(Booking.source_channel == args.source_channel)
    if args.property_id:
        query = query.filter(Booking.property_id == args.property_id)
    if args.guest_name:
        query = query.filter(Booking.guest_name.icontains(args.guest_name, autoescape=True))
    if args.start_date:
        query = query.filter(Booking.check_in >= args.start_date)
    if args.end_date:
        query = query.filter(Booking.check_out <= args.end_date)

    query = query.order_by(Booking.id.desc())
    items, pagination = paginate(query, args.page, args.limit)

    return ok([to_public_booking(b, with_property=True) for b in items], pagination=pagination)


@bp.route("/<booking_id>", methods=["GET"])
def get_booking(booking_id):
    b = _get_booking(parse_id(booking_id, "booking"))
    p = b.property
    owner = p.owner if p else None

    data = to_public_booking(b, with_property=True)
    data["property_address"] = p.address if p else None
    data["base_price_twd"] = p.base_price_twd if p else None
    data["owner_name"] = owner.full_name if owner else None
    data["owner_email"] = owner.email if owner else None
    data["owner_phone"] = owner.phone if owner else None
    data["owner_tax_id"] = owner.company_tax_id if owner else None
    data["current_status"] = _current_status(b)
    return ok(data)


@bp.route("", methods=["POST"])
def create_booking():
    payload = validate_body(BookingCreateIn)
    reject_past_check_in(payload.check_in)

    fields = payload.model_dump()
    requested_amount = fields.pop("total_amount")

    # the property row lock serializes concurrent writers for this calendar,
    # so the overlap check and the insert below see the same state
    with transaction():
        prop = get_property(session, payload.property_id, lock=True)
        if not prop:
            raise NotFoundError("property not found", code="PROPERTY_NOT_FOUND")

        if is_active(payload.status):
            conflicts = find_conflicts(session, prop.id, payload.check_in, payload.check_out)
            if conflicts:
                raise _date_conflict("requested dates overlap an existing booking", conflicts)

        suggested = suggested_amount(prop.base_price_twd, payload.check_in, payload.check_out)
        amount = requested_amount or suggested

        b = Booking(total_amount=amount, **fields)
        session.add(b)

    logger.info(
        "booking created id=%s property_id=%s %s..%s",
        b.id, b.property_id, b.check_in.isoformat(), b.check_out.isoformat(),
    )

    data = to_public_booking(b, with_property=True)
    data["suggested_amount"] = suggested
    data["amount_used"] = amount
    return ok(data, status=201, message="booking created")


@bp.route("/<booking_id>", methods=["PUT"])
def update_booking(booking_id):
    booking_id = parse_id(booking_id, "booking")
    fields = update_fields(validate_body(BookingUpdateIn))

    with transaction():
        b = _get_booking(booking_id, lock=True)

        new_in = fields.get("check_in", b.check_in)
        new_out = fields.get("check_out", b.check_out)
        if new_out <= new_in:
            raise ValidationError(
                "request validation failed",
                details=[{"field": "check_out", "message": "check-out date must be after check-in date"}],
            )

        dates_changed = new_in != b.check_in or new_out != b.check_out
        if dates_changed and is_active(b.status):
            get_property(session, b.property_id, lock=True)
            conflicts = find_conflicts(session, b.property_id, new_in, new_out, exclude_booking_id=b.id)
            if conflicts:
                raise _date_conflict("updated dates overlap another booking", conflicts)

        for name, value in fields.items():
            setattr(b, name, value)

    logger.info("booking updated id=%s fields=%s", b.id, sorted(fields))
    return ok(to_public_booking(b, with_property=True), message="booking updated")


@bp.route("/<booking_id>/status", methods=["PATCH"])
def update_booking_status(booking_id):
    booking_id = parse_id(booking_id, "booking")
    payload = validate_body(BookingStatusIn)

    with transaction():
        b = _get_booking(booking_id, lock=True)
        current = b.status
        if not can_transition(current, payload.status):
            valid = [s.value for s in allowed_transitions(current)]
            raise ConflictError(
                f'cannot change status from "{current}" to "{payload.status}"',
                code="INVALID_STATUS_TRANSITION",
                details={"current_status": current, "valid_transitions": valid},
            )
        b.status = payload.status
        guest_name = b.guest_name

    logger.info("booking status id=%s %s -> %s", booking_id, current, payload.status)
    return ok(
        {
            "booking_id": booking_id,
            "guest_name": guest_name,
            "old_status": current,
            "new_status": payload.status,
        },
        message=f'booking status changed from "{current}" to "{payload.status}"',
    )


@bp.route("/<booking_id>", methods=["DELETE"])
def delete_booking(booking_id):
    booking_id = parse_id(booking_id, "booking")

    with transaction():
        b = _get_booking(booking_id, lock=True)
        if b.status != CANCELLED:
            raise ConflictError(
                "only cancelled bookings can be deleted",
                code="CANNOT_DELETE_ACTIVE_BOOKING",
                details={"current_status": b.status},
            )
        guest_name = b.guest_name
        session.delete(b)

    logger.info("booking deleted id=%s", booking_id)
    return ok(message=f'booking for "{guest_name}" deleted')


@bp.route("/check-availability", methods=["POST"])
def check_availability():
    payload = validate_body(AvailabilityCheckIn)
    reject_past_check_in(payload.check_in)

    records, missing = check_properties(session, payload.property_ids, payload.check_in, payload.check_out)

    return ok({
        "check_in": payload.check_in.isoformat(),
        "check_out": payload.check_out.isoformat(),
        "properties": records,
        "available_count": sum(1 for r in records if r["is_available"]),
        "total_checked": len(records),
        "missing_property_ids": missing,
        "missing_properties": [
            {"property_id": pid, "code": "PROPERTY_NOT_FOUND", "error": "property not found"}
            for pid in missing
        ],
    })


@bp.route("/dashboard/summary", methods=["GET"])
def dashboard_summary():
    today = date.today()
    revenue = func.coalesce(func.sum(case((Booking.status != CANCELLED, Booking.total_amount), else_=0)), 0)

    def count_status(status):
        return func.count(case((Booking.status == status.value, 1)))

    overview = session.query(
        func.count(Booking.id),
        count_status(BookingStatus.RESERVED),
        count_status(BookingStatus.CHECKED_IN),
        count_status(BookingStatus.CHECKED_OUT),
        count_status(BookingStatus.CANCELLED),
        revenue,
    ).one()

    checking_in, checking_out = session.query(
        func.count(case((Booking.check_in == today, 1))),
        func.count(case((Booking.check_out == today, 1))),
    ).one()
    new_today = (
        Booking.query
        .filter(Booking.created_at >= datetime.combine(today, time.min))
        .count()
    )

    month_start = today.replace(day=1)
    next_month = date(today.year + (today.month == 12), today.month % 12 + 1, 1)
    monthly_count, monthly_revenue = (
        session.query(func.count(Booking.id), revenue)
        .filter(Booking.check_in >= month_start, Booking.check_in < next_month)
        .one()
    )

    total = int(overview[0] or 0)
    channel_rows = (
        session.query(Booking.source_channel, func.count(Booking.id), revenue)
        .group_by(Booking.source_channel)
        .order_by(func.count(Booking.id).desc())
        .all()
    )

    return ok({
        "overview": {
            "total_bookings": total,
            "pending_bookings": int(overview[1] or 0),
            "current_guests": int(overview[2] or 0),
            "completed_bookings": int(overview[3] or 0),
            "cancelled_bookings": int(overview[4] or 0),
            "total_revenue": int(overview[5] or 0),
        },
        "today": {
            "checking_in_today": int(checking_in or 0),
            "checking_out_today": int(checking_out or 0),
            "new_bookings_today": new_today,
        },
        "monthly": {
            "monthly_bookings": int(monthly_count or 0),
            "monthly_revenue": int(monthly_revenue or 0),
        },
        "channels": [
            {
                "source_channel": channel,
                "booking_count": int(cnt),
                "percentage": round(cnt * 100.0 / total, 2) if total else 0,
                "revenue": int(rev or 0),
            }
            for channel, cnt, rev in channel_rows
        ],
    })
