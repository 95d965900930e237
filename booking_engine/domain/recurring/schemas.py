"""Recurring group schemas - Pydantic models for validation"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field

from ..bookings.schemas import BookingBase, BookingResponse
from ..pricing.schemas import BookingFrequency


class RecurringGroupCreate(BaseModel):
    """Schema for creating a recurring group from one template"""

    base: BookingBase
    pattern: str = "auto-weekly"
    total_occurrences: int = Field(..., ge=1)
    dates: list[date]


class RecurringCreationResult(BaseModel):
    success: bool
    group_id: Optional[str] = None
    booking_ids: list[str] = []
    errors: list[str] = []


class RecurringMutationResult(BaseModel):
    success: bool
    affected_count: int


class RecurringGroupResponse(BaseModel):
    """A group's members ordered by sequence, with aggregate counts"""

    group_id: str
    pattern: Optional[str] = None
    pattern_label: str
    recurring_total: Optional[int] = None
    total_count: int
    completed_count: int
    confirmed_count: int
    cancelled_count: int
    upcoming_count: int
    bookings: list[BookingResponse]


class PreviewDatesRequest(BaseModel):
    start_date: date
    frequency: BookingFrequency
    pattern: str = "auto-weekly"


class PreviewDatesResponse(BaseModel):
    pattern: str
    pattern_label: str
    dates: list[date]
    valid: bool
    errors: list[str] = []
