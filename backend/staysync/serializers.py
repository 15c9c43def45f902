from .utils.booking_rules import stay_nights


def _iso(value):
    return value.isoformat() if value is not None else None


def to_public_user(u) -> dict:
    return {
        "user_id": u.id,
        "full_name": u.full_name,
        "email": u.email,
        "company_tax_id": u.company_tax_id,
        "phone": u.phone,
        "bank_code": u.bank_code,
        "bank_account": u.bank_account,
        "created_at": _iso(u.created_at),
    }


def to_public_property(p, with_owner=False) -> dict:
    data = {
        "property_id": p.id,
        "owner_id": p.owner_id,
        "title": p.title,
        "city": p.city,
        "district": p.district,
        "address": p.address,
        "legal_license_no": p.legal_license_no,
        "base_price_twd": p.base_price_twd,
        "created_at": _iso(p.created_at),
    }
    if with_owner and p.owner is not None:
        data["owner_name"] = p.owner.full_name
        data["owner_email"] = p.owner.email
        data["owner_phone"] = p.owner.phone
    return data


def to_public_booking(b, with_property=False) -> dict:
    data = {
        "booking_id": b.id,
        "property_id": b.property_id,
        "source_channel": b.source_channel,
        "guest_name": b.guest_name,
        "guest_id_no": b.guest_id_no,
        "check_in": _iso(b.check_in),
        "check_out": _iso(b.check_out),
        "stay_nights": stay_nights(b.check_in, b.check_out),
        "total_amount": b.total_amount,
        "is_tax_included": bool(b.is_tax_included),
        "breakfast_included": bool(b.breakfast_included),
        "special_note": b.special_note,
        "status": b.status,
        "created_at": _iso(b.created_at),
    }
    if with_property and b.property is not None:
        data["property_title"] = b.property.title
        data["property_city"] = b.property.city
        data["property_district"] = b.property.district
    return data


def to_booking_summary(b) -> dict:
    return {
        "booking_id": b.id,
        "guest_name": b.guest_name,
        "check_in": _iso(b.check_in),
        "check_out": _iso(b.check_out),
        "total_amount": b.total_amount,
        "status": b.status,
        "source_channel": b.source_channel,
        "special_note": b.special_note,
    }
