from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from .utils.booking_rules import BookingStatus, Channel
from .utils.validation import MAX_ID

TAX_ID_PATTERN = r"^\d{8}$"
PHONE_PATTERN = r"^09\d{2}-?\d{3}-?\d{3}$"
EMAIL_MAX_LENGTH = 150


class _Schema(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, use_enum_values=True, validate_default=True)


def _lower_email(v):
    if not isinstance(v, str):
        return v
    if len(v) > EMAIL_MAX_LENGTH:
        raise ValueError(f"email must be at most {EMAIL_MAX_LENGTH} characters")
    return v.lower()


# ---------- Users ----------

class UserCreateIn(_Schema):
    full_name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    company_tax_id: Optional[str] = Field(None, pattern=TAX_ID_PATTERN)
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    bank_code: Optional[str] = Field(None, min_length=3, max_length=3)
    bank_account: Optional[str] = Field(None, min_length=10, max_length=20)

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, v):
        return _lower_email(v)


class UserUpdateIn(_Schema):
    full_name: Optional[str] = Field(None, min_length=2, max_length=100)
    email: Optional[EmailStr] = None
    company_tax_id: Optional[str] = Field(None, pattern=TAX_ID_PATTERN)
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    bank_code: Optional[str] = Field(None, min_length=3, max_length=3)
    bank_account: Optional[str] = Field(None, min_length=10, max_length=20)

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, v):
        return _lower_email(v)


# ---------- Properties ----------

class PropertyCreateIn(_Schema):
    owner_id: int = Field(gt=0, le=MAX_ID)
    title: str = Field(min_length=5, max_length=255)
    city: str = Field(min_length=1, max_length=50)
    district: str = Field(min_length=1, max_length=50)
    address: str = Field(min_length=1, max_length=255)
    legal_license_no: Optional[str] = Field(None, max_length=100)
    base_price_twd: int = Field(ge=500, le=50000)


class PropertyUpdateIn(_Schema):
    title: Optional[str] = Field(None, min_length=5, max_length=255)
    city: Optional[str] = Field(None, min_length=1, max_length=50)
    district: Optional[str] = Field(None, min_length=1, max_length=50)
    address: Optional[str] = Field(None, min_length=1, max_length=255)
    legal_license_no: Optional[str] = Field(None, max_length=100)
    base_price_twd: Optional[int] = Field(None, ge=500, le=50000)


# ---------- Bookings ----------

def _check_out_after_check_in(v, info):
    check_in = info.data.get("check_in")
    if v is not None and check_in is not None and v <= check_in:
        raise ValueError("check-out date must be after check-in date")
    return v


class BookingCreateIn(_Schema):
    property_id: int = Field(gt=0, le=MAX_ID)
    source_channel: Channel = Channel.DIRECT
    guest_name: str = Field(min_length=2, max_length=100)
    guest_id_no: str = Field(min_length=8, max_length=20)
    check_in: date
    check_out: date
    total_amount: Optional[int] = Field(None, ge=0, le=MAX_ID)
    is_tax_included: bool = True
    breakfast_included: bool = True
    special_note: Optional[str] = Field(None, max_length=1000)
    status: BookingStatus = BookingStatus.RESERVED

    @field_validator("check_out")
    @classmethod
    def _check_dates(cls, v, info):
        return _check_out_after_check_in(v, info)


class BookingUpdateIn(_Schema):
    source_channel: Optional[Channel] = None
    guest_name: Optional[str] = Field(None, min_length=2, max_length=100)
    guest_id_no: Optional[str] = Field(None, min_length=8, max_length=20)
    check_in: Optional[date] = None
    check_out: Optional[date] = None
    total_amount: Optional[int] = Field(None, ge=0, le=MAX_ID)
    is_tax_included: Optional[bool] = None
    breakfast_included: Optional[bool] = None
    special_note: Optional[str] = Field(None, max_length=1000)

    @model_validator(mode="before")
    @classmethod
    def _no_status(cls, data):
        if isinstance(data, dict) and "status" in data:
            raise ValueError("status cannot be changed here, use PATCH /bookings/:id/status")
        return data

    @field_validator("check_out")
    @classmethod
    def _check_dates(cls, v, info):
        return _check_out_after_check_in(v, info)


class BookingStatusIn(_Schema):
    status: BookingStatus


class AvailabilityCheckIn(_Schema):
    property_ids: List[int] = Field(min_length=1, max_length=20)
    check_in: date
    check_out: date

    @field_validator("property_ids")
    @classmethod
    def _positive_ids(cls, v):
        if any(not 1 <= pid <= MAX_ID for pid in v):
            raise ValueError(f"property ids must be between 1 and {MAX_ID}")
        return v

    @field_validator("check_out")
    @classmethod
    def _check_dates(cls, v, info):
        return _check_out_after_check_in(v, info)


# ---------- Query strings ----------

class PageQuery(_Schema):
    page: int = Field(1, ge=1, le=MAX_ID)
    limit: int = Field(10, ge=1, le=100)


class DateRangeQuery(_Schema):
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @field_validator("end_date")
    @classmethod
    def _end_after_start(cls, v, info):
        start = info.data.get("start_date")
        if v is not None and start is not None and v <= start:
            raise ValueError("end_date must be after start_date")
        return v


class PropertyListQuery(PageQuery):
    city: Optional[str] = Field(None, max_length=50)
    district: Optional[str] = Field(None, max_length=50)
    min_price: Optional[int] = Field(None, ge=0, le=MAX_ID)
    max_price: Optional[int] = Field(None, ge=0, le=MAX_ID)
    check_in: Optional[date] = None
    check_out: Optional[date] = None

    @field_validator("check_out")
    @classmethod
    def _check_dates(cls, v, info):
        return _check_out_after_check_in(v, info)

    @model_validator(mode="after")
    def _both_or_neither(self):
        if (self.check_in is None) != (self.check_out is None):
            raise ValueError("check_in and check_out must be given together")
        return self


class PropertyAvailabilityQuery(DateRangeQuery):
    @model_validator(mode="after")
    def _both_or_neither(self):
        if (self.start_date is None) != (self.end_date is None):
            raise ValueError("start_date and end_date must be given together")
        return self


class DistrictQuery(_Schema):
    city: str = Field(min_length=1, max_length=50)


class BookingListQuery(PageQuery, DateRangeQuery):
    status: Optional[BookingStatus] = None
    source_channel: Optional[Channel] = None
    property_id: Optional[int] = Field(None, gt=0, le=MAX_ID)
    guest_name: Optional[str] = None


class RevenueQuery(DateRangeQuery):
    group_by: Literal["day", "week", "month", "year"] = "month"
    property_id: Optional[int] = Field(None, gt=0, le=MAX_ID)
    source_channel: Optional[Channel] = None


class PerformanceQuery(PageQuery, DateRangeQuery):
    sort_by: Literal["revenue", "bookings", "occupancy", "rating"] = "revenue"
    sort_order: Literal["asc", "desc"] = "desc"


class GuestAnalysisQuery(PageQuery, DateRangeQuery):
    min_bookings: int = Field(1, ge=1)
    sort_by: Literal["bookings", "revenue", "avg_stay", "last_visit"] = "revenue"


class OccupancyQuery(DateRangeQuery):
    group_by: Literal["day", "week", "month"] = "month"
    property_id: Optional[int] = Field(None, gt=0, le=MAX_ID)


class FinancialSummaryQuery(_Schema):
    year: int = Field(default_factory=lambda: date.today().year, ge=2020, le=2100)
    month: Optional[int] = Field(None, ge=1, le=12)
    include_tax_details: bool = True
