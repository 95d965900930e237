"""Booking router - FastAPI endpoints for bookings and status changes"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user_id
from ...database import get_db
from .schemas import (
    AvailableTransitionsResponse,
    BookingCreate,
    BookingResponse,
    MarkAsPaidRequest,
    PaymentChangeResponse,
    PaymentStatusChangeRequest,
    StatusChangeRequest,
    StatusHistoryResponse,
)
from .service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["Bookings"])


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db)


@router.post("", response_model=BookingResponse, status_code=201)
async def create_booking(
    data: BookingCreate,
    service: BookingService = Depends(get_booking_service),
):
    """Create a single booking after pricing and conflict checks"""
    return service.create_booking(data)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: str,
    service: BookingService = Depends(get_booking_service),
):
    """Get a specific booking"""
    return service.get_booking(booking_id)


@router.get("/{booking_id}/transitions", response_model=AvailableTransitionsResponse)
async def get_available_transitions(
    booking_id: str,
    service: BookingService = Depends(get_booking_service),
):
    """Statuses the booking may move to next"""
    return service.get_available_transitions(booking_id)


@router.post("/{booking_id}/status", response_model=BookingResponse)
async def change_status(
    booking_id: str,
    data: StatusChangeRequest,
    current_user_id: str = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
):
    """Apply a status transition and record it in the history"""
    return service.transition_status(booking_id, data.new_status, current_user_id, data.notes)


@router.post("/{booking_id}/payment-status", response_model=PaymentChangeResponse)
async def change_payment_status(
    booking_id: str,
    data: PaymentStatusChangeRequest,
    current_user_id: str = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
):
    """Apply a payment status transition, optionally to the whole recurring group"""
    bookings = service.transition_payment_status(
        booking_id,
        data.new_status,
        current_user_id,
        notes=data.notes,
        apply_to_group=data.apply_to_group,
    )
    return PaymentChangeResponse(
        success=True,
        count=len(bookings),
        bookings=[BookingResponse.model_validate(b) for b in bookings],
    )


@router.post("/{booking_id}/mark-paid", response_model=PaymentChangeResponse)
async def mark_as_paid(
    booking_id: str,
    data: MarkAsPaidRequest,
    current_user_id: str = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
):
    """Record a manual payment (cash, transfer, ...)"""
    bookings = service.mark_as_paid(
        booking_id,
        current_user_id,
        payment_method=data.payment_method,
        amount=data.amount,
        apply_to_group=data.apply_to_group,
    )
    return PaymentChangeResponse(
        success=True,
        count=len(bookings),
        bookings=[BookingResponse.model_validate(b) for b in bookings],
    )


@router.get("/{booking_id}/history", response_model=list[StatusHistoryResponse])
async def get_status_history(
    booking_id: str,
    order: str = Query("desc", pattern="^(asc|desc)$"),
    service: BookingService = Depends(get_booking_service),
):
    """Status and payment status history, newest first by default"""
    return service.get_history(booking_id, newest_first=order == "desc")
