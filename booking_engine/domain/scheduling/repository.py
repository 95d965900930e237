"""Scheduling repository - Booking lookups for conflict detection"""

from datetime import date
from typing import Iterable, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ..bookings.status import ACTIVE_STATUS_VALUES
from ...models import Booking


class SchedulingRepository:
    """Repository for conflict detection queries"""

    @staticmethod
    def find_active_assignments(
        db: Session,
        staff_id: Optional[str],
        team_id: Optional[str],
        range_start: date,
        range_end: date,
        exclude_ids: Iterable[str] = (),
    ) -> list[Booking]:
        """
        Active bookings for the staff member OR team whose date span overlaps
        [range_start, range_end].
        """
        assignment = []
        if staff_id:
            assignment.append(Booking.staff_id == staff_id)
        if team_id:
            assignment.append(Booking.team_id == team_id)
        if not assignment:
            return []

        query = db.query(Booking).filter(
            or_(*assignment),
            Booking.status.in_(ACTIVE_STATUS_VALUES),
            Booking.booking_date <= range_end,
            func.coalesce(Booking.end_date, Booking.booking_date) >= range_start,
        )

        exclude_ids = [booking_id for booking_id in exclude_ids if booking_id]
        if exclude_ids:
            query = query.filter(Booking.id.notin_(exclude_ids))

        return query.order_by(Booking.booking_date, Booking.start_time).all()
