import sys
from datetime import date, timedelta

import click
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .extensions import db, transaction
from .models import Booking, Property, User
from .utils.booking_rules import BookingStatus, Channel, suggested_amount

DEMO_EMAIL = "demo.owner@staysync.tw"


def database_ok():
    """Return ``(True, None)`` when ``SELECT 1`` succeeds, else ``(False, reason)``."""
    try:
        db.session.execute(text("SELECT 1"))
        return True, None
    except SQLAlchemyError as exc:
        db.session.rollback()
        return False, str(getattr(exc, "orig", None) or exc)


def seed_demo_data():
    owner = User.query.filter(User.email == DEMO_EMAIL).first()
    if owner:
        return owner, False

    check_in = date.today() + timedelta(days=7)
    check_out = check_in + timedelta(days=2)

    with transaction():
        owner = User(
            full_name="Demo Owner",
            email=DEMO_EMAIL,
            company_tax_id="12345678",
            phone="0912-345-678",
            bank_code="812",
            bank_account="00012345678901",
        )
        prop = Property(
            owner=owner,
            title="Da'an Loft",
            city="Taipei",
            district="Da'an",
            address="No. 1, Section 1, Fuxing S Rd",
            legal_license_no="TPE-0001",
            base_price_twd=2500,
        )
        db.session.add(owner)
        db.session.add(prop)
        db.session.add(Booking(
            property=prop,
            source_channel=Channel.DIRECT.value,
            guest_name="Lin Mei",
            guest_id_no="A123456789",
            check_in=check_in,
            check_out=check_out,
            total_amount=suggested_amount(prop.base_price_twd, check_in, check_out),
            status=BookingStatus.RESERVED.value,
        ))
    return owner, True


def register_cli(app):
    @app.cli.command("check-db")
    def check_db():
        reachable, reason = database_ok()
        if not reachable:
            click.echo(f"database unreachable: {reason}", err=True)
            sys.exit(1)
        click.echo("database ok")

    @app.cli.command("seed-demo")
    def seed_demo():
        owner, created = seed_demo_data()
        click.echo(f"created={created} owner_id={owner.id}")
