"""Booking repository - Database operations for bookings and status history"""

from typing import Iterable, Optional

from sqlalchemy.orm import Session

from ...models import Booking, BookingStatusHistory


class BookingRepository:
    """
    Repository for booking database operations.

    Methods flush but never commit: the calling service owns the transaction.
    """

    @staticmethod
    def get_booking(db: Session, booking_id: str) -> Optional[Booking]:
        """Get a booking by ID"""
        return db.query(Booking).filter(Booking.id == booking_id).first()

    @staticmethod
    def insert_booking(db: Session, **values) -> Booking:
        """Insert a booking and flush so the generated id is available"""
        booking = Booking(**values)
        db.add(booking)
        db.flush()
        return booking

    @staticmethod
    def insert_bookings(db: Session, rows: list[dict]) -> list[Booking]:
        """Batch insert bookings in one flush"""
        bookings = [Booking(**row) for row in rows]
        db.add_all(bookings)
        db.flush()
        return bookings

    @staticmethod
    def update_bookings(db: Session, booking_ids: Iterable[str], **updates) -> int:
        """Update bookings by id; returns the affected row count"""
        booking_ids = list(booking_ids)
        if not booking_ids or not updates:
            return 0
        return (
            db.query(Booking)
            .filter(Booking.id.in_(booking_ids))
            .update(updates, synchronize_session="fetch")
        )

    @staticmethod
    def delete_bookings(db: Session, booking_ids: Iterable[str]) -> int:
        """Delete bookings by id; returns the affected row count"""
        booking_ids = list(booking_ids)
        if not booking_ids:
            return 0
        return (
            db.query(Booking)
            .filter(Booking.id.in_(booking_ids))
            .delete(synchronize_session="fetch")
        )

    @staticmethod
    def get_group_members(
        db: Session, group_id: str, min_sequence: Optional[int] = None
    ) -> list[Booking]:
        """Bookings of a recurring group ordered by sequence"""
        query = db.query(Booking).filter(Booking.recurring_group_id == group_id)
        if min_sequence is not None:
            query = query.filter(Booking.recurring_sequence >= min_sequence)
        return query.order_by(Booking.recurring_sequence.asc()).all()

    @staticmethod
    def delete_group(db: Session, group_id: str) -> int:
        return (
            db.query(Booking)
            .filter(Booking.recurring_group_id == group_id)
            .delete(synchronize_session="fetch")
        )

    @staticmethod
    def group_exists(db: Session, group_id: str) -> bool:
        return (
            db.query(Booking.id).filter(Booking.recurring_group_id == group_id).first()
            is not None
        )

    # Status History Methods
    @staticmethod
    def add_history(
        db: Session,
        booking_id: str,
        old_status: Optional[str],
        new_status: str,
        changed_by: str,
        notes: Optional[str] = None,
        field: str = "status",
    ) -> BookingStatusHistory:
        """Append one history entry"""
        entry = BookingStatusHistory(
            booking_id=booking_id,
            field=field,
            old_status=old_status,
            new_status=new_status,
            changed_by=changed_by,
            notes=notes,
        )
        db.add(entry)
        return entry

    @staticmethod
    def get_history(
        db: Session, booking_id: str, newest_first: bool = True
    ) -> list[BookingStatusHistory]:
        """History for a booking in creation order"""
        query = db.query(BookingStatusHistory).filter(BookingStatusHistory.booking_id == booking_id)
        if newest_first:
            query = query.order_by(
                BookingStatusHistory.created_at.desc(), BookingStatusHistory.id.desc()
            )
        else:
            query = query.order_by(
                BookingStatusHistory.created_at.asc(), BookingStatusHistory.id.asc()
            )
        return query.all()
