"""Booking service - Creation, status transitions and audit history"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ...errors import InvalidRequest, NotFound
from ...models import Booking, BookingStatusHistory
from ...shared.storage import guarded_write, storage_errors
from ..pricing.repository import PricingRepository
from ..pricing.service import PricingService
from ..scheduling.service import ConflictCandidate, ConflictDetector
from .repository import BookingRepository
from .schemas import BookingBase, BookingCreate
from .status import (
    available_payment_transitions,
    available_transitions,
    validate_payment_transition,
    validate_status_transition,
)

logger = logging.getLogger(__name__)


class BookingService:
    """Service layer for single bookings and the status state machine"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BookingRepository()
        self.pricing = PricingService(db)
        self.conflicts = ConflictDetector(db)

    def get_booking(self, booking_id: str) -> Booking:
        """Get a booking or raise NotFound"""
        with storage_errors(self.db, "get_booking", booking_id=booking_id):
            booking = self.repo.get_booking(self.db, booking_id)
        if not booking:
            raise NotFound("Booking", booking_id)
        return booking

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def resolve_commercials(self, data: BookingBase) -> dict:
        """
        Price snapshot for a booking template.

        Tiered packages resolve price and required staff from the area and
        frequency; explicit values in the request win for fixed packages.
        """
        values = {
            "total_price": data.total_price if data.total_price is not None else 0,
            "required_staff": data.required_staff or 1,
        }
        if not data.package_id:
            return values

        with storage_errors(self.db, "get_package", package_id=data.package_id):
            package = PricingRepository.get_package(self.db, data.package_id)
        if not package:
            raise NotFound("Package", data.package_id)

        if package.pricing_model != "tiered":
            if data.total_price is None and package.base_price is not None:
                values["total_price"] = package.base_price
            return values

        if data.area_sqm is None or data.frequency is None:
            raise InvalidRequest(
                "Tiered packages require area_sqm and frequency",
                package_id=data.package_id,
            )

        pricing = self.pricing.calculate_pricing(data.package_id, data.area_sqm, data.frequency)
        if not pricing.found:
            raise NotFound(
                "PricingTier",
                f"{data.package_id}:{data.area_sqm}sqm:x{data.frequency}",
                package_id=data.package_id,
                area_sqm=data.area_sqm,
                frequency=data.frequency,
            )

        values["total_price"] = pricing.price
        values["required_staff"] = pricing.required_staff
        return values

    def create_booking(self, data: BookingCreate) -> Booking:
        """
        Create a single booking: pricing, then conflict check, then guarded insert.

        Raises ConflictDetected when the pre-check finds collisions or when a
        concurrent request took the slot between check and insert.
        """
        logger.info(f"📥 Creating booking on {data.booking_date} {data.start_time}")

        values = data.model_dump()
        values.update(self.resolve_commercials(data))
        values["payment_status"] = "unpaid"
        values["is_recurring"] = False

        candidate = ConflictCandidate(
            booking_date=data.booking_date,
            end_date=data.end_date,
            start_time=data.start_time,
            end_time=data.end_time,
            staff_id=data.staff_id,
            team_id=data.team_id,
        )

        with guarded_write(
            self.db,
            "create_booking",
            staff_id=data.staff_id,
            team_id=data.team_id,
            booking_date=str(data.booking_date),
        ):
            self.conflicts.ensure_no_conflicts(candidate)
            booking = self.repo.insert_booking(self.db, **values)
            self.db.commit()
            self.db.refresh(booking)

        logger.info(f"✅ Booking {booking.id} created")
        return booking

    # ------------------------------------------------------------------
    # Status state machine
    # ------------------------------------------------------------------

    def get_available_transitions(self, booking_id: str) -> dict:
        booking = self.get_booking(booking_id)
        return {
            "booking_id": booking.id,
            "status": booking.status,
            "payment_status": booking.payment_status,
            "available_statuses": sorted(available_transitions(booking.status)),
            "available_payment_statuses": sorted(
                available_payment_transitions(booking.payment_status)
            ),
        }

    def transition_status(
        self, booking_id: str, new_status: str, changed_by: str, notes: Optional[str] = None
    ) -> Booking:
        """
        Move a booking to new_status and append one history entry.

        The transition is re-validated here regardless of what the client saw.
        """
        if not changed_by:
            raise InvalidRequest("changed_by is required", booking_id=booking_id)

        booking = self.get_booking(booking_id)
        old_status = booking.status
        validate_status_transition(old_status, new_status, booking_id=booking_id)

        with guarded_write(self.db, "transition_status", booking_id=booking_id):
            booking.status = new_status
            self.repo.add_history(
                self.db, booking.id, old_status, new_status, changed_by, notes, field="status"
            )
            self.db.commit()
            self.db.refresh(booking)

        logger.info(f"✅ Booking {booking_id} status: {old_status} → {new_status} by {changed_by}")
        return booking

    def _payment_targets(self, booking: Booking, apply_to_group: bool) -> list[Booking]:
        if not apply_to_group or not booking.recurring_group_id:
            return [booking]
        with storage_errors(
            self.db, "get_group_members", group_id=booking.recurring_group_id
        ):
            return self.repo.get_group_members(self.db, booking.recurring_group_id)

    def transition_payment_status(
        self,
        booking_id: str,
        new_status: str,
        changed_by: str,
        notes: Optional[str] = None,
        apply_to_group: bool = False,
        extra_updates: Optional[dict] = None,
    ) -> list[Booking]:
        """
        Move payment status on a booking, or on its whole recurring group.

        Every target is validated before anything is written; one invalid
        member rejects the whole operation.
        """
        if not changed_by:
            raise InvalidRequest("changed_by is required", booking_id=booking_id)

        booking = self.get_booking(booking_id)
        targets = self._payment_targets(booking, apply_to_group)
        for target in targets:
            validate_payment_transition(target.payment_status, new_status, booking_id=target.id)

        with guarded_write(
            self.db,
            "transition_payment_status",
            booking_id=booking_id,
            group_id=booking.recurring_group_id if apply_to_group else None,
        ):
            for target in targets:
                old_status = target.payment_status
                target.payment_status = new_status
                for key, value in (extra_updates or {}).items():
                    setattr(target, key, value)
                self.repo.add_history(
                    self.db,
                    target.id,
                    old_status,
                    new_status,
                    changed_by,
                    notes,
                    field="payment_status",
                )
            self.db.commit()
            for target in targets:
                self.db.refresh(target)

        logger.info(
            f"✅ Payment status → {new_status} on {len(targets)} booking(s) "
            f"(booking {booking_id}, by {changed_by})"
        )
        return targets

    def mark_as_paid(
        self,
        booking_id: str,
        changed_by: str,
        payment_method: str = "cash",
        amount: Optional[float] = None,
        apply_to_group: bool = False,
    ) -> list[Booking]:
        """Record a manual payment (unpaid → paid) with method, date and amount"""
        extra = {"payment_method": payment_method, "payment_date": date.today()}
        if amount is not None:
            extra["amount_paid"] = amount
        return self.transition_payment_status(
            booking_id,
            "paid",
            changed_by,
            notes=f"Marked as paid ({payment_method})",
            apply_to_group=apply_to_group,
            extra_updates=extra,
        )

    def get_history(self, booking_id: str, newest_first: bool = True) -> list[BookingStatusHistory]:
        """Status history of a booking; works for deleted bookings too"""
        with storage_errors(self.db, "get_history", booking_id=booking_id):
            return self.repo.get_history(self.db, booking_id, newest_first=newest_first)
