import itertools

import pytest

from config import TestConfig
from staysync import create_app
from staysync.extensions import db

API = "/api/v1"

_seq = itertools.count(1)


@pytest.fixture()
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def make_user(client):
    def _make(**overrides):
        n = next(_seq)
        body = {
            "full_name": f"Owner {n}",
            "email": f"owner{n}@example.tw",
            "company_tax_id": "12345678",
            "phone": "0912-345-678",
            "bank_code": "812",
            "bank_account": "00012345678901",
        }
        body.update(overrides)
        r = client.post(f"{API}/users", json=body)
        assert r.status_code == 201, r.get_data(as_text=True)
        return r.get_json()["data"]

    return _make


@pytest.fixture()
def make_property(client, make_user):
    def _make(owner_id=None, **overrides):
        if owner_id is None:
            owner_id = make_user()["user_id"]
        body = {
            "owner_id": owner_id,
            "title": "Da'an Garden Loft",
            "city": "Taipei",
            "district": "Da'an",
            "address": "No. 10, Lane 5, Heping E Rd",
            "legal_license_no": "TPE-123",
            "base_price_twd": 3000,
        }
        body.update(overrides)
        r = client.post(f"{API}/properties", json=body)
        assert r.status_code == 201, r.get_data(as_text=True)
        return r.get_json()["data"]

    return _make


@pytest.fixture()
def make_booking(client):
    def _make(property_id, check_in, check_out, **overrides):
        body = {
            "property_id": property_id,
            "guest_name": "Chen Wei",
            "guest_id_no": "A123456789",
            "check_in": check_in,
            "check_out": check_out,
        }
        body.update(overrides)
        return client.post(f"{API}/bookings", json=body)

    return _make
