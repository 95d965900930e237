"""Scheduling domain schemas - Pydantic models for validation"""

from datetime import date, time
from typing import Literal, Optional

from pydantic import BaseModel, model_validator

from ..bookings.schemas import BookingResponse


class ConflictCheckRequest(BaseModel):
    """Schema for a conflict check against a candidate assignment"""

    staff_id: Optional[str] = None
    team_id: Optional[str] = None
    booking_date: date
    end_date: Optional[date] = None
    start_time: time
    end_time: Optional[time] = None
    exclude_booking_id: Optional[str] = None

    @model_validator(mode="after")
    def validate_ranges(self):
        if self.end_date and self.end_date < self.booking_date:
            raise ValueError("end_date must not be before booking_date")
        if self.end_time and self.end_time < self.start_time:
            raise ValueError("end_time must not be before start_time")
        return self


class BookingConflictResponse(BaseModel):
    """A conflicting booking and which identity it collides on"""

    booking: BookingResponse
    conflict_type: Literal["staff", "team", "both"]


class ConflictCheckResponse(BaseModel):
    has_conflicts: bool
    conflicts: list[BookingConflictResponse]
