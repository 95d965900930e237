"""Scheduling router - FastAPI endpoints for conflict checks"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...database import get_db
from ..bookings.schemas import BookingResponse
from .schemas import BookingConflictResponse, ConflictCheckRequest, ConflictCheckResponse
from .service import ConflictCandidate, ConflictDetector

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/scheduling", tags=["Scheduling"])


def get_conflict_detector(db: Session = Depends(get_db)) -> ConflictDetector:
    """Dependency injection for ConflictDetector"""
    return ConflictDetector(db)


@router.post("/conflicts", response_model=ConflictCheckResponse)
async def check_conflicts(
    data: ConflictCheckRequest,
    detector: ConflictDetector = Depends(get_conflict_detector),
):
    """List every active booking that collides with the candidate assignment"""
    candidate = ConflictCandidate(
        booking_date=data.booking_date,
        end_date=data.end_date,
        start_time=data.start_time,
        end_time=data.end_time,
        staff_id=data.staff_id,
        team_id=data.team_id,
        exclude_booking_ids={data.exclude_booking_id} if data.exclude_booking_id else set(),
    )
    conflicts = detector.describe_conflicts(candidate)
    return ConflictCheckResponse(
        has_conflicts=bool(conflicts),
        conflicts=[
            BookingConflictResponse(
                booking=BookingResponse.model_validate(c.booking),
                conflict_type=c.conflict_type,
            )
            for c in conflicts
        ],
    )
