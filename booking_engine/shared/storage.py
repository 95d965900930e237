"""Shared storage helpers"""

import logging
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import ConflictDetected, StorageError

logger = logging.getLogger(__name__)

# Unique indexes guarding active (staff|team, day, start time) slots
SLOT_INDEX_NAMES = ("uq_bookings_active_staff_slot", "uq_bookings_active_team_slot")


def is_slot_violation(error: IntegrityError) -> bool:
    """True if the integrity error came from one of the booking slot guards"""
    message = str(getattr(error, "orig", error))
    if any(name in message for name in SLOT_INDEX_NAMES):
        return True
    # SQLite reports the columns instead of the index name
    return "UNIQUE constraint failed: bookings." in message and "bookings.start_time" in message


@contextmanager
def storage_errors(db: Session, operation: str, **context):
    """
    Translate SQLAlchemy failures into StorageError.

    The session is rolled back before re-raising so it stays usable. Failures are
    never mapped to an empty or "not found" result.
    """
    try:
        yield
    except SQLAlchemyError as e:
        logger.error(f"❌ Storage failure during {operation}: {e}")
        db.rollback()
        raise StorageError(f"Storage failure during {operation}", operation=operation, **context) from e


@contextmanager
def guarded_write(db: Session, operation: str, **context):
    """
    Like storage_errors, but a slot guard violation becomes ConflictDetected.

    This is the storage half of the check-then-insert: two requests can both
    pass the conflict pre-check, only one of them can hold the slot.
    """
    try:
        yield
    except IntegrityError as e:
        db.rollback()
        if is_slot_violation(e):
            logger.warning(f"⚠️ Slot already taken during {operation}: {context}")
            raise ConflictDetected(
                "Slot was taken by a concurrent booking", operation=operation, **context
            ) from e
        logger.error(f"❌ Integrity error during {operation}: {e}")
        raise StorageError(f"Storage failure during {operation}", operation=operation, **context) from e
    except SQLAlchemyError as e:
        logger.error(f"❌ Storage failure during {operation}: {e}")
        db.rollback()
        raise StorageError(f"Storage failure during {operation}", operation=operation, **context) from e
