from datetime import datetime

from .extensions import db
from sqlalchemy import (
    Boolean, CheckConstraint, Column, Date, DateTime, ForeignKey, Index, Integer, String, Text,
)
from sqlalchemy.orm import relationship

from .utils.booking_rules import BookingStatus, Channel

_STATUS_VALUES = ", ".join(f"'{s.value}'" for s in BookingStatus)
_CHANNEL_VALUES = ", ".join(f"'{c.value}'" for c in Channel)


class User(db.Model):
    id = Column(Integer, primary_key=True)
    full_name = Column(String(100), nullable=False)
    email = Column(String(150), nullable=False, unique=True)
    company_tax_id = Column(String(8))
    phone = Column(String(20))
    bank_code = Column(String(3))
    bank_account = Column(String(20))
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    properties = relationship('Property', backref='owner', lazy=True)


class Property(db.Model):
    id = Column(Integer, primary_key=True)
    owner_id = Column(Integer, ForeignKey('user.id'), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    city = Column(String(50), nullable=False, index=True)
    district = Column(String(50), nullable=False)
    address = Column(String(255), nullable=False)
    legal_license_no = Column(String(100))
    base_price_twd = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    bookings = relationship('Booking', backref='property', lazy=True)

    __table_args__ = (
        CheckConstraint('base_price_twd BETWEEN 500 AND 50000', name='ck_property_base_price_range'),
    )


class Booking(db.Model):
    id = Column(Integer, primary_key=True)
    property_id = Column(Integer, ForeignKey('property.id'), nullable=False)
    source_channel = Column(String(20), nullable=False, default=Channel.DIRECT.value)
    guest_name = Column(String(100), nullable=False)
    guest_id_no = Column(String(20), nullable=False)
    check_in = Column(Date, nullable=False)
    check_out = Column(Date, nullable=False)
    total_amount = Column(Integer, nullable=False)
    is_tax_included = Column(Boolean, nullable=False, default=True)
    breakfast_included = Column(Boolean, nullable=False, default=True)
    special_note = Column(Text)
    status = Column(String(20), nullable=False, default=BookingStatus.RESERVED.value)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint('check_out > check_in', name='ck_booking_dates'),
        CheckConstraint('total_amount >= 0', name='ck_booking_total_amount'),
        CheckConstraint(f'status IN ({_STATUS_VALUES})', name='ck_booking_status'),
        CheckConstraint(f'source_channel IN ({_CHANNEL_VALUES})', name='ck_booking_source_channel'),
        Index('ix_booking_property_status_dates', 'property_id', 'status', 'check_in', 'check_out'),
    )
