"""Booking domain schemas - Pydantic models for validation"""

from datetime import date, datetime, time
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

from ..pricing.schemas import BookingFrequency

# Fields that only the recurring group manager may write
LINKAGE_FIELDS = frozenset(
    {
        "id",
        "is_recurring",
        "recurring_group_id",
        "recurring_sequence",
        "recurring_total",
        "recurring_pattern",
        "parent_booking_id",
    }
)
# Fields that only the status state machine may write
STATUS_FIELDS = frozenset({"status", "payment_status"})
# Columns that may be omitted from an update but never set to null
REQUIRED_FIELDS = ("booking_date", "start_time", "total_price", "required_staff")


def _check_ranges(booking_date, end_date, start_time, end_time):
    if booking_date and end_date and end_date < booking_date:
        raise ValueError("end_date must not be before booking_date")
    if start_time and end_time and end_time < start_time:
        raise ValueError("end_time must not be before start_time")


class BookingBase(BaseModel):
    """Fields shared by a single booking and a recurring template"""

    customer_id: Optional[str] = None
    start_time: time
    end_time: Optional[time] = None
    staff_id: Optional[str] = None
    team_id: Optional[str] = None
    package_id: Optional[str] = None
    area_sqm: Optional[int] = Field(None, ge=0)
    frequency: Optional[BookingFrequency] = None
    total_price: Optional[float] = Field(None, ge=0)
    required_staff: Optional[int] = Field(None, ge=1)
    status: Literal["pending", "confirmed"] = "pending"
    notes: Optional[str] = None


class BookingCreate(BookingBase):
    """Schema for creating a single booking"""

    booking_date: date
    end_date: Optional[date] = None

    @model_validator(mode="after")
    def validate_ranges(self):
        _check_ranges(self.booking_date, self.end_date, self.start_time, self.end_time)
        return self


class BookingUpdate(BaseModel):
    """
    Schema for editing bookings.

    Linkage and status fields are not accepted here: membership changes go
    through scoped edit/delete, status changes through the state machine.
    """

    booking_date: Optional[date] = None
    end_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    staff_id: Optional[str] = None
    team_id: Optional[str] = None
    package_id: Optional[str] = None
    area_sqm: Optional[int] = Field(None, ge=0)
    frequency: Optional[BookingFrequency] = None
    total_price: Optional[float] = Field(None, ge=0)
    required_staff: Optional[int] = Field(None, ge=1)
    notes: Optional[str] = None

    class Config:
        extra = "forbid"

    @model_validator(mode="after")
    def validate_required_not_null(self):
        nulled = [
            name
            for name in REQUIRED_FIELDS
            if name in self.model_fields_set and getattr(self, name) is None
        ]
        if nulled:
            raise ValueError(f"Fields cannot be null: {', '.join(nulled)}")
        return self

    @model_validator(mode="after")
    def validate_ranges(self):
        _check_ranges(self.booking_date, self.end_date, self.start_time, self.end_time)
        return self


class BookingResponse(BaseModel):
    """Schema for booking response"""

    id: str
    customer_id: Optional[str] = None
    booking_date: date
    end_date: Optional[date] = None
    start_time: time
    end_time: Optional[time] = None
    staff_id: Optional[str] = None
    team_id: Optional[str] = None
    package_id: Optional[str] = None
    area_sqm: Optional[int] = None
    frequency: Optional[int] = None
    total_price: float
    required_staff: int
    status: str
    payment_status: str
    payment_method: Optional[str] = None
    payment_date: Optional[date] = None
    amount_paid: Optional[float] = None
    is_recurring: bool
    recurring_group_id: Optional[str] = None
    recurring_sequence: Optional[int] = None
    recurring_total: Optional[int] = None
    recurring_pattern: Optional[str] = None
    parent_booking_id: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class StatusChangeRequest(BaseModel):
    new_status: str
    notes: Optional[str] = None


class PaymentStatusChangeRequest(BaseModel):
    new_status: str
    notes: Optional[str] = None
    apply_to_group: bool = False


class MarkAsPaidRequest(BaseModel):
    payment_method: str = "cash"
    amount: Optional[float] = Field(None, ge=0)
    apply_to_group: bool = False


class PaymentChangeResponse(BaseModel):
    success: bool
    count: int
    bookings: list[BookingResponse]


class AvailableTransitionsResponse(BaseModel):
    booking_id: str
    status: str
    payment_status: str
    available_statuses: list[str]
    available_payment_statuses: list[str]


class StatusHistoryResponse(BaseModel):
    id: int
    booking_id: str
    field: str
    old_status: Optional[str] = None
    new_status: str
    changed_by: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
