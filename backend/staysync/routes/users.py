import logging

from flask import Blueprint
from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, DependencyError, NotFoundError
from ..extensions import db, transaction
from ..models import Booking, Property, User
from ..schemas import PageQuery, UserCreateIn, UserUpdateIn
from ..serializers import to_public_property, to_public_user
from ..utils.booking_rules import BookingStatus
from ..utils.pagination import paginate
from ..utils.responses import ok
from ..utils.validation import parse_id, update_fields, validate_args, validate_body

bp = Blueprint("users", __name__)

logger = logging.getLogger("staysync.users")

CANCELLED = BookingStatus.CANCELLED.value


def _get_user(user_id):
    u = db.session.get(User, user_id)
    if not u:
        raise NotFoundError("user not found", code="USER_NOT_FOUND")
    return u


def _email_taken(email, exclude_id=None):
    q = User.query.filter(User.email == email)
    if exclude_id is not None:
        q = q.filter(User.id != exclude_id)
    return q.first() is not None


def _email_conflict():
    return ConflictError("email address is already in use", code="EMAIL_ALREADY_EXISTS")


@bp.route("", methods=["GET"])
def list_users():
    args = validate_args(PageQuery)
    query = User.query.order_by(User.created_at.desc(), User.id.desc())
    items, pagination = paginate(query, args.page, args.limit)
    return ok([to_public_user(u) for u in items], pagination=pagination)


@bp.route("/<user_id>", methods=["GET"])
def get_user(user_id):
    u = _get_user(parse_id(user_id, "user"))

    property_count, avg_price = (
        db.session.query(func.count(Property.id), func.coalesce(func.avg(Property.base_price_twd), 0))
        .filter(Property.owner_id == u.id)
        .one()
    )
    total_bookings, total_revenue, active_bookings = (
        db.session.query(
            func.count(Booking.id),
            func.coalesce(func.sum(case((Booking.status != CANCELLED, Booking.total_amount), else_=0)), 0),
            func.count(case((Booking.status == BookingStatus.RESERVED.value, 1))),
        )
        .join(Property, Property.id == Booking.property_id)
        .filter(Property.owner_id == u.id)
        .one()
    )

    data = to_public_user(u)
    data["statistics"] = {
        "properties": int(property_count or 0),
        "avg_price": round(float(avg_price or 0)),
        "total_bookings": int(total_bookings or 0),
        "total_revenue": int(total_revenue or 0),
        "active_bookings": int(active_bookings or 0),
    }
    return ok(data)


@bp.route("", methods=["POST"])
def create_user():
    payload = validate_body(UserCreateIn)
    if _email_taken(payload.email):
        raise _email_conflict()

    u = User(**payload.model_dump())
    try:
        with transaction():
            db.session.add(u)
    except IntegrityError:
        raise _email_conflict()

    logger.info("user created id=%s", u.id)
    return ok(to_public_user(u), status=201, message="user created")


@bp.route("/<user_id>", methods=["PUT"])
def update_user(user_id):
    user_id = parse_id(user_id, "user")
    payload = validate_body(UserUpdateIn)
    fields = update_fields(payload)

    try:
        with transaction():
            u = _get_user(user_id)
            if "email" in fields and _email_taken(fields["email"], exclude_id=u.id):
                raise _email_conflict()
            for name, value in fields.items():
                setattr(u, name, value)
    except IntegrityError:
        raise _email_conflict()

    return ok(to_public_user(u), message="user updated")


@bp.route("/<user_id>", methods=["DELETE"])
def delete_user(user_id):
    user_id = parse_id(user_id, "user")

    with transaction():
        u = _get_user(user_id)
        property_count = Property.query.filter(Property.owner_id == u.id).count()
        if property_count:
            raise DependencyError(
                f"user still owns {property_count} properties",
                code="USER_HAS_PROPERTIES",
                details={"property_count": property_count},
            )
        name = u.full_name
        db.session.delete(u)

    logger.info("user deleted id=%s", user_id)
    return ok(message=f'user "{name}" deleted')


@bp.route("/<user_id>/properties", methods=["GET"])
def user_properties(user_id):
    u = _get_user(parse_id(user_id, "user"))

    rows = (
        db.session.query(
            Property,
            func.count(Booking.id),
            func.coalesce(func.sum(case((Booking.status != CANCELLED, Booking.total_amount), else_=0)), 0),
        )
        .outerjoin(Booking, Booking.property_id == Property.id)
        .filter(Property.owner_id == u.id)
        .group_by(Property.id)
        .order_by(Property.id.desc())
        .all()
    )

    payload = []
    for p, total_bookings, total_revenue in rows:
        item = to_public_property(p)
        item["total_bookings"] = int(total_bookings or 0)
        item["total_revenue"] = int(total_revenue or 0)
        payload.append(item)

    return ok(payload)
