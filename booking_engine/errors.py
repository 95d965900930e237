"""Domain errors raised by the booking engine.

Every error carries a ``context`` dict (booking id, group id, attempted scope or
transition, ...) so the presentation layer can build its own message.
"""

from typing import Optional


class BookingEngineError(Exception):
    """Base class for all engine errors"""

    code = "booking_engine_error"
    status_code = 500

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = {k: v for k, v in context.items() if v is not None}

    def to_dict(self) -> dict:
        return {"detail": self.message, "error": self.code, "context": self.context}


class NotFound(BookingEngineError):
    code = "not_found"
    status_code = 404

    def __init__(self, entity: str, entity_id, **context):
        super().__init__(f"{entity} not found: {entity_id}", entity=entity, id=entity_id, **context)


class InvalidRequest(BookingEngineError):
    code = "invalid_request"
    status_code = 400


class InvalidTransition(BookingEngineError):
    code = "invalid_transition"
    status_code = 409

    def __init__(self, current: str, requested: str, field: str = "status", **context):
        super().__init__(
            f"Cannot change {field} from '{current}' to '{requested}'",
            field=field,
            current=current,
            requested=requested,
            **context,
        )
        self.current = current
        self.requested = requested


class InvalidScope(BookingEngineError):
    code = "invalid_scope"
    status_code = 400


class ConflictDetected(BookingEngineError):
    code = "conflict_detected"
    status_code = 409

    def __init__(self, message: str, conflicting_booking_ids: Optional[list] = None, **context):
        super().__init__(message, conflicting_booking_ids=conflicting_booking_ids or [], **context)
        self.conflicting_booking_ids = list(conflicting_booking_ids or [])


class PartialFailure(BookingEngineError):
    """A multi-record write failed after some records were written"""

    code = "partial_failure"
    status_code = 500

    def __init__(self, message: str, created_ids: Optional[list] = None, **context):
        super().__init__(message, created_ids=created_ids or [], **context)
        self.created_ids = list(created_ids or [])


class StorageError(BookingEngineError):
    """The store failed for a reason unrelated to business rules"""

    code = "storage_error"
    status_code = 503
