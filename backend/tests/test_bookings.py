from datetime import date, timedelta

from conftest import API


def _id(r):
    assert r.status_code == 201, r.get_data(as_text=True)
    return r.get_json()["data"]["booking_id"]


def _status(client, booking_id, status):
    return client.patch(f"{API}/bookings/{booking_id}/status", json={"status": status})


def test_overlapping_booking_is_rejected(client, make_property, make_booking):
    p = make_property(base_price_twd=2000)
    r = make_booking(p["property_id"], "2026-06-01", "2026-06-03")
    a = _id(r)
    assert r.get_json()["data"]["total_amount"] == 4000

    r = make_booking(p["property_id"], "2026-06-02", "2026-06-04", guest_name="Lee Ming")
    assert r.status_code == 409
    body = r.get_json()
    assert body["success"] is False
    assert body["code"] == "DATE_CONFLICT"
    conflicts = body["details"]["conflicting_bookings"]
    assert [c["booking_id"] for c in conflicts] == [a]
    assert conflicts[0]["check_in"] == "2026-06-01"
    assert conflicts[0]["check_out"] == "2026-06-03"


def test_back_to_back_stays_do_not_conflict(client, make_property, make_booking):
    p = make_property()
    _id(make_booking(p["property_id"], "2026-06-01", "2026-06-03"))
    _id(make_booking(p["property_id"], "2026-06-03", "2026-06-05"))
    _id(make_booking(p["property_id"], "2026-05-28", "2026-06-01"))


def test_cancelled_bookings_free_the_dates(client, make_property, make_booking):
    p = make_property()
    a = _id(make_booking(p["property_id"], "2026-06-01", "2026-06-03"))
    assert _status(client, a, "Cancelled").status_code == 200
    _id(make_booking(p["property_id"], "2026-06-01", "2026-06-03"))


def test_other_property_does_not_conflict(client, make_property, make_booking):
    p1 = make_property()
    p2 = make_property(title="Jiufen Tea House")
    _id(make_booking(p1["property_id"], "2026-06-01", "2026-06-03"))
    _id(make_booking(p2["property_id"], "2026-06-01", "2026-06-03"))


def test_create_reports_suggested_and_used_amount(client, make_property, make_booking):
    p = make_property(base_price_twd=2500)
    r = make_booking(p["property_id"], "2026-06-10", "2026-06-13", total_amount=7000, source_channel="Airbnb")
    assert r.status_code == 201
    data = r.get_json()["data"]
    assert data["suggested_amount"] == 7500
    assert data["amount_used"] == 7000
    assert data["total_amount"] == 7000
    assert data["stay_nights"] == 3
    assert data["source_channel"] == "Airbnb"
    assert data["status"] == "Reserved"
    assert data["property_title"] == p["title"]


def test_create_validation(client, make_property, make_booking):
    p = make_property()
    r = make_booking(p["property_id"], "2026-06-03", "2026-06-03")
    assert r.status_code == 400
    assert r.get_json()["details"][0]["field"] == "check_out"

    r = make_booking(p["property_id"], "2026-06-01", "2026-06-03", source_channel="Trivago")
    assert r.status_code == 400

    r = make_booking(9999, "2026-06-01", "2026-06-03")
    assert r.status_code == 404
    assert r.get_json()["code"] == "PROPERTY_NOT_FOUND"


def test_past_check_in_rejected_unless_allowed(app, client, make_property, make_booking):
    p = make_property()
    app.config["ALLOW_PAST_CHECK_IN"] = False
    yesterday = date.today() - timedelta(days=1)

    r = make_booking(p["property_id"], yesterday.isoformat(), (yesterday + timedelta(days=2)).isoformat())
    assert r.status_code == 400
    assert r.get_json()["details"] == [{"field": "check_in", "message": "check-in date cannot be in the past"}]

    tomorrow = date.today() + timedelta(days=1)
    _id(make_booking(p["property_id"], tomorrow.isoformat(), (tomorrow + timedelta(days=1)).isoformat()))


def test_status_machine(client, make_property, make_booking):
    p = make_property()
    b = _id(make_booking(p["property_id"], "2026-06-01", "2026-06-03"))

    r = _status(client, b, "CheckedOut")
    assert r.status_code == 409
    body = r.get_json()
    assert body["code"] == "INVALID_STATUS_TRANSITION"
    assert body["details"] == {"current_status": "Reserved", "valid_transitions": ["CheckedIn", "Cancelled"]}

    r = _status(client, b, "CheckedIn")
    assert r.status_code == 200
    assert r.get_json()["data"] == {
        "booking_id": b,
        "guest_name": "Chen Wei",
        "old_status": "Reserved",
        "new_status": "CheckedIn",
    }

    assert _status(client, b, "CheckedOut").status_code == 200

    r = _status(client, b, "Reserved")
    assert r.status_code == 409
    assert r.get_json()["details"]["valid_transitions"] == []

    assert client.get(f"{API}/bookings/{b}").get_json()["data"]["status"] == "CheckedOut"


def test_status_requires_known_value(client, make_property, make_booking):
    p = make_property()
    b = _id(make_booking(p["property_id"], "2026-06-01", "2026-06-03"))
    assert _status(client, b, "Pending").status_code == 400
    assert _status(client, 9999, "Cancelled").status_code == 404


def test_delete_only_cancelled(client, make_property, make_booking):
    p = make_property()
    b = _id(make_booking(p["property_id"], "2026-06-01", "2026-06-03"))

    r = client.delete(f"{API}/bookings/{b}")
    assert r.status_code == 409
    body = r.get_json()
    assert body["code"] == "CANNOT_DELETE_ACTIVE_BOOKING"
    assert body["details"] == {"current_status": "Reserved"}

    assert _status(client, b, "Cancelled").status_code == 200
    assert client.delete(f"{API}/bookings/{b}").status_code == 200
    assert client.get(f"{API}/bookings/{b}").status_code == 404


def test_update_dates_excludes_itself(client, make_property, make_booking):
    p = make_property()
    a = _id(make_booking(p["property_id"], "2026-06-01", "2026-06-03"))
    _id(make_booking(p["property_id"], "2026-06-05", "2026-06-07", guest_name="Lee Ming"))

    r = client.put(f"{API}/bookings/{a}", json={"check_in": "2026-06-02", "check_out": "2026-06-04"})
    assert r.status_code == 200, r.get_data(as_text=True)
    assert r.get_json()["data"]["check_in"] == "2026-06-02"

    r = client.put(f"{API}/bookings/{a}", json={"check_out": "2026-06-06"})
    assert r.status_code == 409
    assert r.get_json()["code"] == "DATE_CONFLICT"

    data = client.get(f"{API}/bookings/{a}").get_json()["data"]
    assert data["check_out"] == "2026-06-04"


def test_update_cancelled_booking_skips_conflict_check(client, make_property, make_booking):
    p = make_property()
    a = _id(make_booking(p["property_id"], "2026-06-01", "2026-06-03"))
    b = _id(make_booking(p["property_id"], "2026-06-05", "2026-06-07"))
    _status(client, b, "Cancelled")

    r = client.put(f"{API}/bookings/{b}", json={"check_in": "2026-06-01", "check_out": "2026-06-02"})
    assert r.status_code == 200
    assert a != b


def test_update_rules(client, make_property, make_booking):
    p = make_property()
    a = _id(make_booking(p["property_id"], "2026-06-01", "2026-06-03"))

    r = client.put(f"{API}/bookings/{a}", json={"status": "Cancelled"})
    assert r.status_code == 400

    r = client.put(f"{API}/bookings/{a}", json={"check_out": "2026-06-01"})
    assert r.status_code == 400
    assert r.get_json()["details"][0]["field"] == "check_out"

    r = client.put(f"{API}/bookings/{a}", json={})
    assert r.get_json()["code"] == "NO_UPDATE_DATA"

    r = client.put(f"{API}/bookings/{a}", json={"special_note": "late arrival", "breakfast_included": False})
    assert r.status_code == 200
    data = r.get_json()["data"]
    assert data["special_note"] == "late arrival"
    assert data["breakfast_included"] is False
    assert data["guest_name"] == "Chen Wei"


def test_batch_availability(client, make_property, make_booking):
    p1 = make_property(title="Free Loft Taipei")
    p2 = make_property(title="Booked Loft Taipei")
    taken = _id(make_booking(p2["property_id"], "2026-07-02", "2026-07-04"))

    r = client.post(f"{API}/bookings/check-availability", json={
        "property_ids": [p1["property_id"], p2["property_id"], 99],
        "check_in": "2026-07-01",
        "check_out": "2026-07-05",
    })
    assert r.status_code == 200, r.get_data(as_text=True)
    data = r.get_json()["data"]
    by_id = {rec["property_id"]: rec for rec in data["properties"]}

    assert by_id[p1["property_id"]]["is_available"] is True
    assert by_id[p1["property_id"]]["estimated_total"] == 4 * p1["base_price_twd"]
    assert by_id[p2["property_id"]]["is_available"] is False
    assert [c["booking_id"] for c in by_id[p2["property_id"]]["conflicting_bookings"]] == [taken]
    assert 99 not in by_id
    assert data["missing_property_ids"] == [99]
    assert data["missing_properties"][0]["code"] == "PROPERTY_NOT_FOUND"
    assert data["available_count"] == 1
    assert data["total_checked"] == 2

    # checking is read-only
    again = client.post(f"{API}/bookings/check-availability", json={
        "property_ids": [p1["property_id"], p2["property_id"], 99],
        "check_in": "2026-07-01",
        "check_out": "2026-07-05",
    })
    assert again.get_json()["data"] == data


def test_batch_availability_validation(client):
    r = client.post(f"{API}/bookings/check-availability", json={
        "property_ids": [], "check_in": "2026-07-01", "check_out": "2026-07-05",
    })
    assert r.status_code == 400

    r = client.post(f"{API}/bookings/check-availability", json={
        "property_ids": list(range(1, 22)), "check_in": "2026-07-01", "check_out": "2026-07-05",
    })
    assert r.status_code == 400


def test_list_and_detail(client, make_property, make_booking):
    p = make_property()
    _id(make_booking(p["property_id"], "2026-06-01", "2026-06-03", guest_name="Chen Wei"))
    b = _id(make_booking(p["property_id"], "2026-06-05", "2026-06-07", guest_name="Huang Yu-ting"))
    _status(client, b, "Cancelled")

    r = client.get(f"{API}/bookings?guest_name=yu-ting")
    assert [x["booking_id"] for x in r.get_json()["data"]] == [b]

    r = client.get(f"{API}/bookings?status=Reserved")
    assert r.get_json()["pagination"]["total"] == 1

    r = client.get(f"{API}/bookings?start_date=2026-06-04&end_date=2026-06-30")
    assert [x["booking_id"] for x in r.get_json()["data"]] == [b]

    r = client.get(f"{API}/bookings/{b}")
    assert r.get_json()["data"]["owner_tax_id"] == "12345678"


def test_current_status_finished_and_in_stay(client, make_property, make_booking):
    p = make_property()
    today = date.today()
    past = _id(make_booking(
        p["property_id"], (today - timedelta(days=10)).isoformat(), (today - timedelta(days=8)).isoformat(),
    ))
    current = _id(make_booking(
        p["property_id"], (today - timedelta(days=1)).isoformat(), (today + timedelta(days=1)).isoformat(),
    ))

    assert client.get(f"{API}/bookings/{past}").get_json()["data"]["current_status"] == "finished"
    assert client.get(f"{API}/bookings/{current}").get_json()["data"]["current_status"] == "in_stay"


def test_current_status_upcoming(client, make_property, make_booking):
    p = make_property()
    start = date.today() + timedelta(days=10)
    b = _id(make_booking(p["property_id"], start.isoformat(), (start + timedelta(days=2)).isoformat()))
    assert client.get(f"{API}/bookings/{b}").get_json()["data"]["current_status"] == "upcoming"


def test_dashboard_summary(client, make_property, make_booking):
    p = make_property(base_price_twd=2000)
    today = date.today()
    _id(make_booking(p["property_id"], today.isoformat(), (today + timedelta(days=1)).isoformat()))
    long_ago = today - timedelta(days=400)
    c = _id(make_booking(
        p["property_id"], long_ago.isoformat(), (long_ago + timedelta(days=2)).isoformat(), source_channel="Agoda",
    ))
    _status(client, c, "Cancelled")

    r = client.get(f"{API}/bookings/dashboard/summary")
    assert r.status_code == 200
    data = r.get_json()["data"]
    assert data["overview"]["total_bookings"] == 2
    assert data["overview"]["pending_bookings"] == 1
    assert data["overview"]["cancelled_bookings"] == 1
    assert data["overview"]["total_revenue"] == 2000
    assert data["today"]["checking_in_today"] == 1
    assert data["monthly"]["monthly_bookings"] == 1
    channels = {c["source_channel"]: c for c in data["channels"]}
    assert channels["Direct"]["percentage"] == 50.0
    assert channels["Agoda"]["revenue"] == 0


def test_out_of_range_ids_are_validation_errors(client, make_property, make_booking):
    r = make_booking(99999999999999999999, "2026-06-01", "2026-06-03")
    assert r.status_code == 400, r.get_data(as_text=True)
    assert r.get_json()["details"][0]["field"] == "property_id"

    r = client.post(f"{API}/bookings/check-availability", json={
        "property_ids": [1, 2**31], "check_in": "2026-07-01", "check_out": "2026-07-05",
    })
    assert r.status_code == 400

    r = client.get(f"{API}/bookings?property_id=99999999999999999999")
    assert r.status_code == 400

    assert _status(client, "99999999999999999999", "Cancelled").get_json()["code"] == "INVALID_BOOKING_ID"

    p = make_property()
    r = make_booking(p["property_id"], "2026-06-01", "2026-06-03", total_amount=2**40)
    assert r.status_code == 400


def test_guest_name_search_is_literal(client, make_property, make_booking):
    p = make_property()
    literal = _id(make_booking(p["property_id"], "2026-06-01", "2026-06-03", guest_name="Chen_Wei"))
    _id(make_booking(p["property_id"], "2026-06-05", "2026-06-07", guest_name="ChenXWei"))

    r = client.get(f"{API}/bookings?guest_name=n_W")
    assert [x["booking_id"] for x in r.get_json()["data"]] == [literal]

    r = client.get(f"{API}/bookings?guest_name=%25")
    assert r.get_json()["pagination"]["total"] == 0
