"""
Booking status and payment status state machines.

Booking statuses: pending → confirmed → in_progress → completed
                  pending/confirmed → cancelled
Payment statuses: unpaid → paid → refund_requested → refunded
                  refund_requested → paid/unpaid (refund cancelled)

The two machines are orthogonal. Both tables are the single source of truth for
allowed transitions; every write path re-validates against them.
"""

from enum import Enum

from ...errors import InvalidRequest, InvalidTransition


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PAID = "paid"
    REFUND_REQUESTED = "refund_requested"
    REFUNDED = "refunded"


STATUS_TRANSITIONS: dict[BookingStatus, frozenset] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.IN_PROGRESS, BookingStatus.CANCELLED}),
    BookingStatus.IN_PROGRESS: frozenset({BookingStatus.COMPLETED}),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}

PAYMENT_TRANSITIONS: dict[PaymentStatus, frozenset] = {
    PaymentStatus.UNPAID: frozenset({PaymentStatus.PAID}),
    PaymentStatus.PAID: frozenset({PaymentStatus.REFUND_REQUESTED}),
    PaymentStatus.REFUND_REQUESTED: frozenset(
        {PaymentStatus.REFUNDED, PaymentStatus.PAID, PaymentStatus.UNPAID}
    ),
    PaymentStatus.REFUNDED: frozenset(),
}

# Statuses that still occupy a time slot for conflict detection
ACTIVE_STATUSES = frozenset(
    {BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS}
)
ACTIVE_STATUS_VALUES = tuple(sorted(s.value for s in ACTIVE_STATUSES))


def _coerce(enum_cls, value, field: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidRequest(f"Unknown {field}: {value!r}", field=field, value=str(value))


def available_transitions(current_status) -> set[str]:
    """Statuses a booking may move to from current_status (current excluded)"""
    current = _coerce(BookingStatus, current_status, "status")
    return {s.value for s in STATUS_TRANSITIONS[current]}


def available_payment_transitions(current_status) -> set[str]:
    """Payment statuses reachable from current_status (current excluded)"""
    current = _coerce(PaymentStatus, current_status, "payment_status")
    return {s.value for s in PAYMENT_TRANSITIONS[current]}


def validate_status_transition(current_status, new_status, booking_id=None) -> None:
    """Raise InvalidTransition unless current → new is in the status table"""
    requested = _coerce(BookingStatus, new_status, "status")
    if requested.value not in available_transitions(current_status):
        raise InvalidTransition(
            str(BookingStatus(current_status).value),
            requested.value,
            field="status",
            booking_id=booking_id,
        )


def validate_payment_transition(current_status, new_status, booking_id=None) -> None:
    """Raise InvalidTransition unless current → new is in the payment table"""
    requested = _coerce(PaymentStatus, new_status, "payment_status")
    if requested.value not in available_payment_transitions(current_status):
        raise InvalidTransition(
            str(PaymentStatus(current_status).value),
            requested.value,
            field="payment_status",
            booking_id=booking_id,
        )


def is_active_status(status) -> bool:
    return str(getattr(status, "value", status)) in ACTIVE_STATUS_VALUES
