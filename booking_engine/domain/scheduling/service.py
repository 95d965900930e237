"""
Conflict detection for staff and team assignments.

A candidate conflicts with an existing booking when all of these hold:
- they share the staff member or the team,
- the existing booking is in an active status (pending, confirmed, in_progress),
- their date spans overlap (multi-day aware, see shared/date_ranges.py),
- their times of day overlap: start1 < end2 and end1 > start2, or both start
  at the same time (the storage slot guard rejects those too).

Lookup failures propagate as StorageError. Returning an empty list on error
would allow double booking.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, time
from typing import Optional

from sqlalchemy.orm import Session

from ...errors import ConflictDetected
from ...models import Booking
from ...shared.date_ranges import booking_overlaps_range, time_ranges_overlap
from ...shared.storage import storage_errors
from .repository import SchedulingRepository

logger = logging.getLogger(__name__)


@dataclass
class ConflictCandidate:
    """A proposed assignment to check against existing bookings"""

    booking_date: date
    start_time: time
    end_time: Optional[time] = None
    end_date: Optional[date] = None
    staff_id: Optional[str] = None
    team_id: Optional[str] = None
    exclude_booking_ids: set = field(default_factory=set)

    @property
    def effective_end_time(self) -> time:
        return self.end_time or self.start_time

    @property
    def effective_end_date(self) -> date:
        return self.end_date or self.booking_date

    @classmethod
    def from_booking(cls, booking, **overrides) -> "ConflictCandidate":
        """Build a candidate from a booking-like object, excluding its own id"""
        values = {
            "booking_date": booking.booking_date,
            "end_date": booking.end_date,
            "start_time": booking.start_time,
            "end_time": booking.end_time,
            "staff_id": booking.staff_id,
            "team_id": booking.team_id,
            "exclude_booking_ids": {booking.id} if getattr(booking, "id", None) else set(),
        }
        values.update(overrides)
        return cls(**values)


@dataclass
class BookingConflict:
    booking: Booking
    conflict_type: str  # staff, team, both


class ConflictDetector:
    """Scans existing bookings for overlaps with a candidate assignment"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SchedulingRepository()

    def find_conflicts(self, candidate: ConflictCandidate) -> list[Booking]:
        """All active bookings colliding with the candidate, by staff or team"""
        if not candidate.staff_id and not candidate.team_id:
            return []

        with storage_errors(
            self.db,
            "find_conflicts",
            staff_id=candidate.staff_id,
            team_id=candidate.team_id,
            booking_date=str(candidate.booking_date),
        ):
            existing = self.repo.find_active_assignments(
                self.db,
                candidate.staff_id,
                candidate.team_id,
                candidate.booking_date,
                candidate.effective_end_date,
                exclude_ids=candidate.exclude_booking_ids,
            )

        conflicts = []
        for booking in existing:
            # Same predicate as the SQL date filter
            if not booking_overlaps_range(
                booking, candidate.booking_date, candidate.effective_end_date
            ):
                continue
            if time_ranges_overlap(
                candidate.start_time,
                candidate.effective_end_time,
                booking.start_time,
                booking.end_time or booking.start_time,
            ):
                conflicts.append(booking)

        if conflicts:
            logger.info(
                f"⚠️ {len(conflicts)} conflict(s) for staff={candidate.staff_id} "
                f"team={candidate.team_id} on {candidate.booking_date}"
            )
        return conflicts

    def describe_conflicts(self, candidate: ConflictCandidate) -> list[BookingConflict]:
        """Conflicts tagged with the identity they collide on"""
        described = []
        for booking in self.find_conflicts(candidate):
            staff_hit = bool(candidate.staff_id) and booking.staff_id == candidate.staff_id
            team_hit = bool(candidate.team_id) and booking.team_id == candidate.team_id
            conflict_type = "both" if staff_hit and team_hit else ("staff" if staff_hit else "team")
            described.append(BookingConflict(booking=booking, conflict_type=conflict_type))
        return described

    def ensure_no_conflicts(self, candidate: ConflictCandidate) -> None:
        """Raise ConflictDetected if the candidate collides with any active booking"""
        conflicts = self.find_conflicts(candidate)
        if conflicts:
            raise ConflictDetected(
                f"Assignment conflicts with {len(conflicts)} existing booking(s)",
                conflicting_booking_ids=[b.id for b in conflicts],
                staff_id=candidate.staff_id,
                team_id=candidate.team_id,
                booking_date=str(candidate.booking_date),
            )
