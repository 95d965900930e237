"""
Recurring group service - creation, scoped edits and scoped deletes.

A group is N bookings sharing recurring_group_id. The first one (sequence 1)
is the parent; every other member points at it via parent_booking_id and
carries sequence 2..N. Groups are created all-or-nothing: a failed write never
leaves part of a group behind.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional, Union

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ... import config
from ...errors import (
    ConflictDetected,
    InvalidRequest,
    InvalidScope,
    PartialFailure,
    StorageError,
)
from ...models import Booking
from ...shared.date_ranges import parse_local_date
from ...shared.storage import guarded_write, storage_errors
from ..bookings.repository import BookingRepository
from ..bookings.schemas import LINKAGE_FIELDS, STATUS_FIELDS, BookingBase, BookingUpdate
from ..bookings.service import BookingService
from ..bookings.status import is_active_status
from ..scheduling.service import ConflictCandidate, ConflictDetector
from .schemas import RecurringCreationResult, RecurringMutationResult
from .utils import (
    RecurringEditScope,
    count_bookings_by_status,
    generate_group_id,
    get_pattern_label,
    parse_pattern,
    parse_scope,
    validate_recurring_dates,
)

logger = logging.getLogger(__name__)

WRITE_MODES = ("transaction", "compensating")

# Edits to these fields re-run the conflict check
SCHEDULE_FIELDS = ("booking_date", "end_date", "start_time", "end_time", "staff_id", "team_id")
PRICING_FIELDS = ("package_id", "area_sqm", "frequency")
DATE_FIELDS = ("booking_date", "end_date")


@dataclass
class RecurringGroup:
    group_id: str
    bookings: list
    pattern: Optional[str]
    pattern_label: str
    recurring_total: Optional[int]
    total_count: int
    completed_count: int
    confirmed_count: int
    cancelled_count: int
    upcoming_count: int


class RecurringGroupService:
    """Service layer for recurring booking groups"""

    def __init__(self, db: Session, write_mode: Optional[str] = None):
        self.db = db
        self.repo = BookingRepository()
        self.bookings = BookingService(db)
        self.conflicts = ConflictDetector(db)
        self.write_mode = write_mode or config.RECURRING_WRITE_MODE
        if self.write_mode not in WRITE_MODES:
            raise ValueError(f"Unknown recurring write mode: {self.write_mode}")

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_group(
        self,
        base: Union[BookingBase, dict],
        pattern: str,
        total_occurrences: int,
        dates: list,
    ) -> RecurringCreationResult:
        """
        Create a parent booking and its children in one unit.

        Validation, pricing and conflict checks happen before anything is
        written and raise InvalidRequest, NotFound or ConflictDetected. A
        storage failure during the write is rolled back and reported as
        success=False with errors; no rows remain for the group id. If the
        rollback itself fails, StorageError is raised with the orphaned ids.
        """
        pattern = parse_pattern(pattern)
        if isinstance(base, dict):
            try:
                base = BookingBase.model_validate(base)
            except ValidationError as e:
                raise InvalidRequest(f"Invalid booking template: {e.errors()}") from e
        occurrence_dates = self._validate_dates(dates, total_occurrences)

        commercials = self.bookings.resolve_commercials(base)
        self._ensure_dates_free(base, occurrence_dates)

        group_id = generate_group_id()
        logger.info(
            f"📥 Creating recurring group {group_id}: {total_occurrences} x "
            f"{pattern.value} from {occurrence_dates[0]} ({self.write_mode})"
        )

        template = base.model_dump()
        template.update(commercials)
        template.update(
            {
                "payment_status": "unpaid",
                "is_recurring": True,
                "recurring_group_id": group_id,
                "recurring_total": total_occurrences,
                "recurring_pattern": pattern.value,
            }
        )
        rows = [
            dict(template, booking_date=day, recurring_sequence=index)
            for index, day in enumerate(occurrence_dates, start=1)
        ]

        try:
            if self.write_mode == "compensating":
                booking_ids = self._write_compensating(group_id, rows)
            else:
                booking_ids = self._write_in_transaction(group_id, rows)
        except PartialFailure as failure:
            self._compensate(group_id, failure.created_ids)
            cause = failure.__cause__
            if isinstance(cause, ConflictDetected):
                raise cause
            return self._failed(group_id, [failure.message, str(cause)])
        except StorageError as e:
            return self._failed(group_id, [e.message])

        logger.info(f"✅ Recurring group {group_id} created with {len(booking_ids)} booking(s)")
        return RecurringCreationResult(success=True, group_id=group_id, booking_ids=booking_ids)

    def _validate_dates(self, dates: list, total_occurrences: int) -> list[date]:
        if not isinstance(total_occurrences, int) or total_occurrences < 1:
            raise InvalidRequest(
                "total_occurrences must be at least 1", total_occurrences=total_occurrences
            )
        valid, errors = validate_recurring_dates(dates, total_occurrences, allow_past=True)
        if not valid:
            raise InvalidRequest(f"Invalid recurring dates: {'; '.join(errors)}", errors=errors)
        return [parse_local_date(value) for value in dates]

    def _ensure_dates_free(self, base: BookingBase, dates: list[date]) -> None:
        if not base.staff_id and not base.team_id:
            return
        conflicting_ids = []
        for day in dates:
            candidate = ConflictCandidate(
                booking_date=day,
                start_time=base.start_time,
                end_time=base.end_time,
                staff_id=base.staff_id,
                team_id=base.team_id,
            )
            for booking in self.conflicts.find_conflicts(candidate):
                if booking.id not in conflicting_ids:
                    conflicting_ids.append(booking.id)
        if conflicting_ids:
            raise ConflictDetected(
                f"Recurring schedule conflicts with {len(conflicting_ids)} existing booking(s)",
                conflicting_booking_ids=conflicting_ids,
                staff_id=base.staff_id,
                team_id=base.team_id,
            )

    def _write_in_transaction(self, group_id: str, rows: list[dict]) -> list[str]:
        """Parent and children flushed in one transaction, committed once"""
        with guarded_write(self.db, "create_recurring_group", group_id=group_id):
            parent = self.repo.insert_booking(self.db, **rows[0])
            parent_id = parent.id
            children = self.repo.insert_bookings(
                self.db, [dict(row, parent_booking_id=parent_id) for row in rows[1:]]
            )
            booking_ids = [parent_id] + [child.id for child in children]
            self.db.commit()
        return booking_ids

    def _write_compensating(self, group_id: str, rows: list[dict]) -> list[str]:
        """
        Parent committed first, then each child in its own commit.

        A child failure raises PartialFailure carrying every id committed so far.
        """
        with guarded_write(self.db, "create_recurring_parent", group_id=group_id):
            parent = self.repo.insert_booking(self.db, **rows[0])
            parent_id = parent.id
            self.db.commit()

        created_ids = [parent_id]
        try:
            for row in rows[1:]:
                with guarded_write(
                    self.db,
                    "create_recurring_child",
                    group_id=group_id,
                    sequence=row["recurring_sequence"],
                ):
                    child = self.repo.insert_booking(self.db, parent_booking_id=parent_id, **row)
                    child_id = child.id
                    self.db.commit()
                created_ids.append(child_id)
        except (StorageError, ConflictDetected) as e:
            raise PartialFailure(
                f"Recurring group write failed after {len(created_ids)} of {len(rows)} bookings",
                created_ids=created_ids,
                group_id=group_id,
            ) from e
        return created_ids

    def _compensate(self, group_id: str, created_ids: list[str]) -> None:
        logger.warning(
            f"🔄 Rolling back recurring group {group_id}: deleting {len(created_ids)} booking(s)"
        )
        try:
            self.repo.delete_bookings(self.db, created_ids)
            self.repo.delete_group(self.db, group_id)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.critical(
                f"❌ Rollback of recurring group {group_id} failed, orphaned bookings: {created_ids}"
            )
            raise StorageError(
                f"Rollback of recurring group {group_id} failed",
                group_id=group_id,
                orphaned_ids=created_ids,
            ) from e

    def _failed(self, group_id: str, errors: list[str]) -> RecurringCreationResult:
        logger.error(f"❌ Recurring group {group_id} not created: {errors}")
        return RecurringCreationResult(
            success=False, group_id=group_id, booking_ids=[], errors=errors
        )

    # ------------------------------------------------------------------
    # Scoped edit / delete
    # ------------------------------------------------------------------

    def _scoped_targets(self, booking_id: str, scope) -> tuple[Booking, list[Booking]]:
        """The target booking and every booking the scope reaches, by sequence"""
        scope = parse_scope(scope)
        target = self.bookings.get_booking(booking_id)

        if not target.is_recurring:
            raise InvalidScope(
                "Booking is not part of a recurring group",
                booking_id=booking_id,
                scope=scope.value,
            )
        if scope == RecurringEditScope.THIS_ONLY:
            return target, [target]
        if not target.recurring_group_id:
            raise InvalidScope(
                f"Scope '{scope.value}' requires a recurring group id",
                booking_id=booking_id,
                scope=scope.value,
            )

        min_sequence = None
        if scope == RecurringEditScope.THIS_AND_FUTURE:
            min_sequence = target.recurring_sequence or 1
        with storage_errors(self.db, "get_group_members", group_id=target.recurring_group_id):
            members = self.repo.get_group_members(
                self.db, target.recurring_group_id, min_sequence=min_sequence
            )
        return target, members

    def _clean_updates(self, updates: Union[BookingUpdate, dict]) -> dict:
        if isinstance(updates, BookingUpdate):
            return updates.model_dump(exclude_unset=True)

        forbidden = sorted(set(updates) & (LINKAGE_FIELDS | STATUS_FIELDS))
        if forbidden:
            raise InvalidRequest(
                f"Fields cannot be changed through a scoped edit: {', '.join(forbidden)}",
                fields=forbidden,
            )
        try:
            return BookingUpdate.model_validate(updates).model_dump(exclude_unset=True)
        except ValidationError as e:
            raise InvalidRequest(f"Invalid booking update: {e.errors()}") from e

    def _repriced(self, target: Booking, updates: dict) -> dict:
        values = {
            name: getattr(target, name)
            for name in BookingBase.model_fields
            if name != "status"
        }
        values.update({k: v for k, v in updates.items() if k in BookingBase.model_fields})
        if "total_price" not in updates and target.package_id != values["package_id"]:
            values["total_price"] = None
        try:
            template = BookingBase.model_validate(values)
        except ValidationError as e:
            raise InvalidRequest(f"Invalid booking update: {e.errors()}") from e
        return self.bookings.resolve_commercials(template)

    def edit_scoped(
        self, booking_id: str, scope, updates: Union[BookingUpdate, dict]
    ) -> RecurringMutationResult:
        """
        Apply updates to this_only / this_and_future / all of a booking's group.

        Date changes are only accepted with this_only. Changes to time or
        assignment are conflict-checked for every affected booking, ignoring
        the affected bookings themselves.
        """
        scope = parse_scope(scope)
        updates = self._clean_updates(updates)
        if not updates:
            raise InvalidRequest("No fields to update", booking_id=booking_id)

        if scope != RecurringEditScope.THIS_ONLY and any(f in updates for f in DATE_FIELDS):
            raise InvalidScope(
                "Dates can only be changed for a single occurrence (scope 'this_only')",
                booking_id=booking_id,
                scope=scope.value,
            )

        target, affected = self._scoped_targets(booking_id, scope)
        affected_ids = {b.id for b in affected}

        if any(f in updates for f in PRICING_FIELDS):
            updates.update(self._repriced(target, updates))

        schedule_updates = {k: updates[k] for k in SCHEDULE_FIELDS if k in updates}
        if schedule_updates:
            self._ensure_edit_free(affected, affected_ids, schedule_updates)

        logger.info(
            f"📥 Editing {len(affected_ids)} booking(s) of group "
            f"{target.recurring_group_id} (scope={scope.value}): {sorted(updates)}"
        )
        with guarded_write(
            self.db,
            "edit_scoped",
            booking_id=booking_id,
            group_id=target.recurring_group_id,
            scope=scope.value,
        ):
            updated = self.repo.update_bookings(self.db, affected_ids, **updates)
            self.db.commit()

        logger.info(f"✅ Updated {updated} booking(s) for {booking_id} (scope={scope.value})")
        return RecurringMutationResult(success=True, affected_count=updated)

    def _ensure_edit_free(self, affected: list, affected_ids: set, schedule_updates: dict) -> None:
        conflicting_ids = []
        for booking in affected:
            candidate = ConflictCandidate.from_booking(
                booking, exclude_booking_ids=set(affected_ids), **schedule_updates
            )
            if candidate.end_date and candidate.end_date < candidate.booking_date:
                raise InvalidRequest("end_date must not be before booking_date", booking_id=booking.id)
            if candidate.end_time and candidate.end_time < candidate.start_time:
                raise InvalidRequest("end_time must not be before start_time", booking_id=booking.id)
            if not is_active_status(booking.status):
                continue
            for other in self.conflicts.find_conflicts(candidate):
                if other.id not in conflicting_ids:
                    conflicting_ids.append(other.id)
        if conflicting_ids:
            raise ConflictDetected(
                f"Edit conflicts with {len(conflicting_ids)} existing booking(s)",
                conflicting_booking_ids=conflicting_ids,
            )

    def delete_scoped(self, booking_id: str, scope) -> RecurringMutationResult:
        """Delete this_only / this_and_future / all of a booking's group"""
        scope = parse_scope(scope)
        target, affected = self._scoped_targets(booking_id, scope)
        affected_ids = [b.id for b in affected]

        with guarded_write(
            self.db,
            "delete_scoped",
            booking_id=booking_id,
            group_id=target.recurring_group_id,
            scope=scope.value,
        ):
            deleted = self.repo.delete_bookings(self.db, affected_ids)
            self.db.commit()

        logger.info(f"✅ Deleted {deleted} booking(s) for {booking_id} (scope={scope.value})")
        return RecurringMutationResult(success=True, affected_count=deleted)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_group(self, group_id: str, today: Optional[date] = None) -> Optional[RecurringGroup]:
        """Members ordered by sequence plus aggregate counts; None for an empty group"""
        with storage_errors(self.db, "get_group", group_id=group_id):
            members = self.repo.get_group_members(self.db, group_id)
        if not members:
            return None

        counts = count_bookings_by_status(members, today=today)
        pattern = members[0].recurring_pattern
        return RecurringGroup(
            group_id=group_id,
            bookings=members,
            pattern=pattern,
            pattern_label=get_pattern_label(pattern),
            recurring_total=members[0].recurring_total,
            total_count=counts["total"],
            completed_count=counts["completed"],
            confirmed_count=counts["confirmed"],
            cancelled_count=counts["cancelled"],
            upcoming_count=counts["upcoming"],
        )

    def group_exists(self, group_id: str) -> bool:
        with storage_errors(self.db, "group_exists", group_id=group_id):
            return self.repo.group_exists(self.db, group_id)
