"""Recurring group router - FastAPI endpoints for recurring booking groups"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...database import get_db
from ...errors import InvalidRequest
from ..bookings.schemas import BookingResponse, BookingUpdate
from .schemas import (
    PreviewDatesRequest,
    PreviewDatesResponse,
    RecurringCreationResult,
    RecurringGroupCreate,
    RecurringGroupResponse,
    RecurringMutationResult,
)
from .service import RecurringGroupService
from .utils import (
    RecurringEditScope,
    generate_auto_schedule_dates,
    get_pattern_label,
    validate_recurring_dates,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/recurring-groups", tags=["Recurring Groups"])


def get_recurring_service(db: Session = Depends(get_db)) -> RecurringGroupService:
    """Dependency injection for RecurringGroupService"""
    return RecurringGroupService(db)


@router.post("", response_model=RecurringCreationResult, status_code=201)
async def create_recurring_group(
    data: RecurringGroupCreate,
    service: RecurringGroupService = Depends(get_recurring_service),
):
    """Create all bookings of a recurring schedule, or none of them"""
    valid, errors = validate_recurring_dates(data.dates, data.total_occurrences)
    if not valid:
        raise InvalidRequest(f"Invalid recurring dates: {'; '.join(errors)}", errors=errors)

    result = service.create_group(data.base, data.pattern, data.total_occurrences, data.dates)
    if not result.success:
        raise HTTPException(status_code=503, detail=result.errors)
    return result


@router.post("/preview-dates", response_model=PreviewDatesResponse)
async def preview_dates(data: PreviewDatesRequest):
    """Dates an auto pattern would generate, with validation feedback"""
    dates = generate_auto_schedule_dates(data.start_date, data.frequency, data.pattern)
    valid, errors = validate_recurring_dates(dates, data.frequency)
    return PreviewDatesResponse(
        pattern=data.pattern,
        pattern_label=get_pattern_label(data.pattern),
        dates=dates,
        valid=valid,
        errors=errors,
    )


@router.get("/{group_id}", response_model=RecurringGroupResponse)
async def get_recurring_group(
    group_id: str,
    service: RecurringGroupService = Depends(get_recurring_service),
):
    """Get a group's bookings in sequence order with status counts"""
    group = service.get_group(group_id)
    if not group:
        raise HTTPException(status_code=404, detail="Recurring group not found")
    return RecurringGroupResponse(
        group_id=group.group_id,
        pattern=group.pattern,
        pattern_label=group.pattern_label,
        recurring_total=group.recurring_total,
        total_count=group.total_count,
        completed_count=group.completed_count,
        confirmed_count=group.confirmed_count,
        cancelled_count=group.cancelled_count,
        upcoming_count=group.upcoming_count,
        bookings=[BookingResponse.model_validate(b) for b in group.bookings],
    )


@router.patch("/bookings/{booking_id}", response_model=RecurringMutationResult)
async def edit_recurring_booking(
    booking_id: str,
    data: BookingUpdate,
    scope: RecurringEditScope = Query(RecurringEditScope.THIS_ONLY),
    service: RecurringGroupService = Depends(get_recurring_service),
):
    """Edit one occurrence, this and future occurrences, or the whole group"""
    return service.edit_scoped(booking_id, scope, data)


@router.delete("/bookings/{booking_id}", response_model=RecurringMutationResult)
async def delete_recurring_booking(
    booking_id: str,
    scope: RecurringEditScope = Query(RecurringEditScope.THIS_ONLY),
    service: RecurringGroupService = Depends(get_recurring_service),
):
    """Delete one occurrence, this and future occurrences, or the whole group"""
    return service.delete_scoped(booking_id, scope)
