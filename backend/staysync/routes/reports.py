from collections import defaultdict
from datetime import date
from decimal import Decimal, ROUND_HALF_UP

from flask import Blueprint, current_app

from ..extensions import db
from ..models import Booking, Property, User
from ..schemas import (
    DateRangeQuery, FinancialSummaryQuery, GuestAnalysisQuery, OccupancyQuery, PerformanceQuery, RevenueQuery,
)
from ..utils.booking_rules import BookingStatus, stay_nights
from ..utils.pagination import paginate_list
from ..utils.responses import ok
from ..utils.validation import validate_args

bp = Blueprint("reports", __name__)

CANCELLED = BookingStatus.CANCELLED.value
CHECKED_OUT = BookingStatus.CHECKED_OUT.value
OCCUPYING = [BookingStatus.RESERVED.value, BookingStatus.CHECKED_IN.value, CHECKED_OUT]

MAX_PERIODS = 12
PERIOD_NIGHTS = {"day": 1, "week": 7, "month": 30}


def _round(x, places=0):
    q = Decimal(1).scaleb(-places)
    v = Decimal(str(x or 0)).quantize(q, rounding=ROUND_HALF_UP)
    return int(v) if places == 0 else float(v)


def _avg(values, places=0):
    values = list(values)
    if not values:
        return 0
    return _round(sum(values) / len(values), places)


def _pct(part, whole):
    return _round(part * 100.0 / whole, 2) if whole else 0


def _period_key(d: date, group_by: str) -> str:
    if group_by == "day":
        return d.isoformat()
    if group_by == "week":
        iso_year, week, _ = d.isocalendar()
        return f"{iso_year:04d}-W{week:02d}"
    if group_by == "month":
        return f"{d.year:04d}-{d.month:02d}"
    return f"{d.year:04d}"


def _date_range(args):
    return {
        "start_date": args.start_date.isoformat() if args.start_date else None,
        "end_date": args.end_date.isoformat() if args.end_date else None,
    }


def _bookings(args=None, statuses=None, exclude_cancelled=True, property_id=None, source_channel=None):
    q = db.session.query(Booking)
    if exclude_cancelled:
        q = q.filter(Booking.status != CANCELLED)
    if statuses:
        q = q.filter(Booking.status.in_(statuses))
    if args is not None and args.start_date:
        q = q.filter(Booking.check_in >= args.start_date)
    if args is not None and args.end_date:
        q = q.filter(Booking.check_out <= args.end_date)
    if property_id:
        q = q.filter(Booking.property_id == property_id)
    if source_channel:
        q = q.filter(Booking.source_channel == source_channel)
    return q.order_by(Booking.check_in.asc(), Booking.id.asc()).all()


def _nights(b):
    return stay_nights(b.check_in, b.check_out)


@bp.route("/revenue", methods=["GET"])
def revenue_report():
    args = validate_args(RevenueQuery)
    rows = _bookings(args, property_id=args.property_id, source_channel=args.source_channel)

    groups = defaultdict(list)
    for b in rows:
        groups[_period_key(b.check_in, args.group_by)].append(b)

    periods = []
    for key in sorted(groups, reverse=True)[:MAX_PERIODS]:
        items = groups[key]
        periods.append({
            "period": key,
            "booking_count": len(items),
            "total_revenue": sum(b.total_amount for b in items),
            "avg_booking_value": _avg(b.total_amount for b in items),
            "total_nights": sum(_nights(b) for b in items),
            "unique_properties": len({b.property_id for b in items}),
            "unique_guests": len({b.guest_name for b in items}),
        })

    return ok({
        "period_type": args.group_by,
        "date_range": _date_range(args),
        "periods": periods,
        "summary": {
            "total_bookings": len(rows),
            "total_revenue": sum(b.total_amount for b in rows),
            "avg_booking_value": _avg(b.total_amount for b in rows),
        },
    })


@bp.route("/property-performance", methods=["GET"])
def property_performance():
    args = validate_args(PerformanceQuery)

    by_property = defaultdict(list)
    for b in _bookings(args, exclude_cancelled=False):
        by_property[b.property_id].append(b)

    results = []
    for p in db.session.query(Property).order_by(Property.id.asc()).all():
        items = by_property.get(p.id, [])
        live = [b for b in items if b.status != CANCELLED]
        counts = defaultdict(int)
        for b in items:
            counts[b.status] += 1
        results.append({
            "property_id": p.id,
            "title": p.title,
            "city": p.city,
            "district": p.district,
            "base_price_twd": p.base_price_twd,
            "owner_name": p.owner.full_name if p.owner else None,
            "total_bookings": len(items),
            "pending_bookings": counts[BookingStatus.RESERVED.value],
            "current_guests": counts[BookingStatus.CHECKED_IN.value],
            "completed_bookings": counts[CHECKED_OUT],
            "cancelled_bookings": counts[CANCELLED],
            "total_revenue": sum(b.total_amount for b in live),
            "avg_booking_value": _avg(b.total_amount for b in live),
            "total_nights": sum(_nights(b) for b in live),
            "occupancy_rate": _pct(len(live), len(items)),
        })

    sort_field = {
        "revenue": "total_revenue",
        "bookings": "total_bookings",
        "occupancy": "occupancy_rate",
        "rating": "avg_booking_value",
    }[args.sort_by]
    results.sort(key=lambda r: (r[sort_field], r["property_id"]), reverse=args.sort_order == "desc")

    page_items, pagination = paginate_list(results, args.page, args.limit)
    return ok({"properties": page_items, "pagination": pagination})


@bp.route("/booking-channels", methods=["GET"])
def booking_channels():
    args = validate_args(DateRangeQuery)
    rows = _bookings(args)
    total = len(rows)

    by_channel = defaultdict(list)
    trends = defaultdict(dict)
    for b in rows:
        by_channel[b.source_channel].append(b)
        month = _period_key(b.check_in, "month")
        slot = trends[month].setdefault(b.source_channel, {"booking_count": 0, "revenue": 0})
        slot["booking_count"] += 1
        slot["revenue"] += b.total_amount

    summary = []
    for channel, items in by_channel.items():
        completed = sum(1 for b in items if b.status == CHECKED_OUT)
        summary.append({
            "source_channel": channel,
            "booking_count": len(items),
            "percentage": _pct(len(items), total),
            "total_revenue": sum(b.total_amount for b in items),
            "avg_booking_value": _avg(b.total_amount for b in items),
            "avg_stay_nights": _avg((_nights(b) for b in items), 1),
            "completed_bookings": completed,
            "completion_rate": _pct(completed, len(items)),
        })
    summary.sort(key=lambda c: (c["total_revenue"], c["booking_count"]), reverse=True)

    recent_months = sorted(trends, reverse=True)[:MAX_PERIODS]
    return ok({
        "date_range": _date_range(args),
        "channel_summary": summary,
        "channel_trends": {m: trends[m] for m in recent_months},
        "total_statistics": {
            "total_bookings": total,
            "total_revenue": sum(b.total_amount for b in rows),
        },
    })


@bp.route("/guest-analysis", methods=["GET"])
def guest_analysis():
    args = validate_args(GuestAnalysisQuery)

    guests = defaultdict(list)
    for b in _bookings(args):
        guests[(b.guest_name, b.guest_id_no)].append(b)

    profiles = []
    for (name, id_no), items in guests.items():
        profiles.append({
            "guest_name": name,
            "guest_id_no": id_no,
            "total_bookings": len(items),
            "total_spent": sum(b.total_amount for b in items),
            "avg_booking_value": _avg(b.total_amount for b in items),
            "total_nights": sum(_nights(b) for b in items),
            "avg_stay_nights": _avg((_nights(b) for b in items), 1),
            "first_check_in": min(b.check_in for b in items).isoformat(),
            "last_check_out": max(b.check_out for b in items).isoformat(),
            "properties_visited": len({b.property_id for b in items}),
            "channels_used": sorted({b.source_channel for b in items}),
            "bookings_with_breakfast": sum(1 for b in items if b.breakfast_included),
        })

    sort_field = {
        "bookings": "total_bookings",
        "revenue": "total_spent",
        "avg_stay": "avg_stay_nights",
        "last_visit": "last_check_out",
    }[args.sort_by]
    qualified = [g for g in profiles if g["total_bookings"] >= args.min_bookings]
    qualified.sort(key=lambda g: g[sort_field], reverse=True)
    page_items, pagination = paginate_list(qualified, args.page, args.limit)

    return ok({
        "guests": page_items,
        "overview": {
            "total_unique_guests": len(profiles),
            "repeat_guests": sum(1 for g in profiles if g["total_bookings"] > 1),
            "avg_bookings_per_guest": _avg((g["total_bookings"] for g in profiles), 1),
            "avg_spent_per_guest": _avg(g["total_spent"] for g in profiles),
        },
        "pagination": pagination,
    })


@bp.route("/occupancy", methods=["GET"])
def occupancy_report():
    args = validate_args(OccupancyQuery)
    rows = _bookings(args, statuses=OCCUPYING, property_id=args.property_id)
    nights_per_period = PERIOD_NIGHTS[args.group_by]

    groups = defaultdict(list)
    for b in rows:
        groups[_period_key(b.check_in, args.group_by)].append(b)

    periods = []
    for key in sorted(groups, reverse=True)[:MAX_PERIODS]:
        items = groups[key]
        properties = len({b.property_id for b in items})
        occupied = sum(_nights(b) for b in items)
        available = properties * nights_per_period
        periods.append({
            "period": key,
            "properties_with_bookings": properties,
            "total_bookings": len(items),
            "total_occupied_nights": occupied,
            "total_available_nights": available,
            "occupancy_rate": _pct(occupied, available),
            "avg_stay_length": _avg((_nights(b) for b in items), 1),
        })

    property_q = db.session.query(Property)
    if args.property_id:
        property_q = property_q.filter(Property.id == args.property_id)

    return ok({
        "period_type": args.group_by,
        "date_range": _date_range(args),
        "occupancy_by_period": periods,
        "overall_statistics": {
            "total_properties": property_q.count(),
            "properties_with_bookings": len({b.property_id for b in rows}),
            "total_bookings": len(rows),
            "avg_stay_length": _avg((_nights(b) for b in rows), 1),
            "total_occupied_nights": sum(_nights(b) for b in rows),
        },
    })


@bp.route("/financial-summary", methods=["GET"])
def financial_summary():
    args = validate_args(FinancialSummaryQuery)
    rate = Decimal(str(current_app.config.get("BUSINESS_TAX_RATE", 0.05)))

    start = date(args.year, args.month or 1, 1)
    if args.month:
        end = date(args.year + (args.month == 12), args.month % 12 + 1, 1)
    else:
        end = date(args.year + 1, 1, 1)

    rows = (
        db.session.query(Booking)
        .filter(Booking.status != CANCELLED, Booking.check_in >= start, Booking.check_in < end)
        .order_by(Booking.check_in.asc())
        .all()
    )

    gross = sum(b.total_amount for b in rows)
    included_tax = sum(Decimal(b.total_amount) * rate for b in rows if b.is_tax_included)
    additional_tax = sum(Decimal(b.total_amount) * rate for b in rows if not b.is_tax_included)
    total_tax = included_tax + additional_tax

    by_channel = defaultdict(list)
    for b in rows:
        by_channel[b.source_channel].append(b)
    revenue_by_channel = sorted(
        (
            {
                "source_channel": channel,
                "transaction_count": len(items),
                "revenue": sum(b.total_amount for b in items),
                "percentage": _pct(sum(b.total_amount for b in items), gross),
            }
            for channel, items in by_channel.items()
        ),
        key=lambda c: c["revenue"],
        reverse=True,
    )

    owner_revenue = []
    if args.include_tax_details and rows:
        by_owner = defaultdict(list)
        for b in rows:
            by_owner[b.property.owner_id].append(b)
        owners = {
            u.id: u for u in db.session.query(User).filter(User.id.in_(list(by_owner))).all()
        }
        for owner_id, items in by_owner.items():
            u = owners.get(owner_id)
            owner_revenue.append({
                "user_id": owner_id,
                "full_name": u.full_name if u else None,
                "company_tax_id": u.company_tax_id if u else None,
                "bank_code": u.bank_code if u else None,
                "bank_account": u.bank_account if u else None,
                "booking_count": len(items),
                "total_revenue": sum(b.total_amount for b in items),
                "tax_included_amount": _round(
                    sum(Decimal(b.total_amount) * rate for b in items if b.is_tax_included)
                ),
                "license_numbers": sorted({
                    b.property.legal_license_no for b in items if b.property.legal_license_no
                }),
            })
        owner_revenue.sort(key=lambda o: o["total_revenue"], reverse=True)

    monthly_trend = []
    if not args.month:
        by_month = defaultdict(list)
        for b in rows:
            by_month[b.check_in.month].append(b)
        for month in sorted(by_month):
            items = by_month[month]
            monthly_trend.append({
                "month": month,
                "booking_count": len(items),
                "revenue": sum(b.total_amount for b in items),
                "avg_booking_value": _avg(b.total_amount for b in items),
            })

    return ok({
        "period": {"year": args.year, "month": args.month, "is_monthly": bool(args.month)},
        "financial_summary": {
            "total_transactions": len(rows),
            "gross_revenue": gross,
            "included_tax_amount": _round(included_tax),
            "additional_tax_amount": _round(additional_tax),
            "total_tax_amount": _round(total_tax),
            "net_revenue": _round(Decimal(gross) - total_tax),
            "avg_transaction_value": _avg(b.total_amount for b in rows),
            "tax_rate": float(rate),
        },
        "revenue_by_channel": revenue_by_channel,
        "owner_revenue": owner_revenue,
        "monthly_trend": monthly_trend,
    })
