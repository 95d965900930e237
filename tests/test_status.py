from itertools import product

import pytest

from booking_engine.domain.bookings.service import BookingService
from booking_engine.domain.bookings.status import (
    PAYMENT_TRANSITIONS,
    STATUS_TRANSITIONS,
    BookingStatus,
    PaymentStatus,
    available_transitions,
    validate_payment_transition,
    validate_status_transition,
)
from booking_engine.errors import InvalidRequest, InvalidTransition
from booking_engine.models import BookingStatusHistory, HistoryImmutableError

ALLOWED_STATUS = {
    ("pending", "confirmed"),
    ("pending", "cancelled"),
    ("confirmed", "in_progress"),
    ("confirmed", "cancelled"),
    ("in_progress", "completed"),
}
ALLOWED_PAYMENT = {
    ("unpaid", "paid"),
    ("paid", "refund_requested"),
    ("refund_requested", "refunded"),
    ("refund_requested", "paid"),
    ("refund_requested", "unpaid"),
}


def test_tables_match_documented_workflow():
    assert {
        (current.value, nxt.value) for current, targets in STATUS_TRANSITIONS.items() for nxt in targets
    } == ALLOWED_STATUS
    assert {
        (current.value, nxt.value) for current, targets in PAYMENT_TRANSITIONS.items() for nxt in targets
    } == ALLOWED_PAYMENT


def test_available_transitions_is_a_lookup():
    assert available_transitions("pending") == {"confirmed", "cancelled"}
    assert available_transitions("completed") == set()


def test_unknown_status_rejected():
    with pytest.raises(InvalidRequest):
        validate_status_transition("pending", "archived")


@pytest.mark.parametrize("current, requested", list(product([s.value for s in BookingStatus], repeat=2)))
def test_status_matrix(db, make_booking, current, requested):
    booking = make_booking(status=current)
    service = BookingService(db)

    if (current, requested) in ALLOWED_STATUS:
        updated = service.transition_status(booking.id, requested, "user-1", notes="matrix")
        assert updated.status == requested
        history = service.get_history(booking.id)
        assert len(history) == 1
        entry = history[0]
        assert (entry.field, entry.old_status, entry.new_status) == ("status", current, requested)
        assert entry.changed_by == "user-1"
    else:
        with pytest.raises(InvalidTransition) as exc_info:
            service.transition_status(booking.id, requested, "user-1")
        assert (exc_info.value.current, exc_info.value.requested) == (current, requested)
        assert service.get_history(booking.id) == []
        db.refresh(booking)
        assert booking.status == current


@pytest.mark.parametrize("current, requested", list(product([s.value for s in PaymentStatus], repeat=2)))
def test_payment_matrix(db, make_booking, current, requested):
    booking = make_booking(payment_status=current)
    service = BookingService(db)

    if (current, requested) in ALLOWED_PAYMENT:
        updated = service.transition_payment_status(booking.id, requested, "user-1")
        assert [b.payment_status for b in updated] == [requested]
        history = service.get_history(booking.id)
        assert len(history) == 1
        assert (history[0].field, history[0].old_status, history[0].new_status) == (
            "payment_status",
            current,
            requested,
        )
    else:
        with pytest.raises(InvalidTransition):
            validate_payment_transition(current, requested)
        with pytest.raises(InvalidTransition):
            service.transition_payment_status(booking.id, requested, "user-1")
        assert service.get_history(booking.id) == []


def test_history_order(db, make_booking):
    booking = make_booking(status="pending")
    service = BookingService(db)
    service.transition_status(booking.id, "confirmed", "user-1")
    service.transition_status(booking.id, "in_progress", "user-2")
    service.transition_status(booking.id, "completed", "user-2")

    newest = [h.new_status for h in service.get_history(booking.id)]
    oldest = [h.new_status for h in service.get_history(booking.id, newest_first=False)]
    assert newest == ["completed", "in_progress", "confirmed"]
    assert oldest == list(reversed(newest))


def test_history_is_append_only(db, make_booking):
    booking = make_booking(status="pending")
    BookingService(db).transition_status(booking.id, "confirmed", "user-1")
    entry = db.query(BookingStatusHistory).one()

    entry.notes = "rewritten"
    with pytest.raises(HistoryImmutableError):
        db.commit()
    db.rollback()

    db.delete(entry)
    with pytest.raises(HistoryImmutableError):
        db.commit()
    db.rollback()

    assert db.query(BookingStatusHistory).count() == 1


def test_changed_by_required(db, make_booking):
    booking = make_booking(status="pending")
    with pytest.raises(InvalidRequest):
        BookingService(db).transition_status(booking.id, "confirmed", "")


def test_mark_as_paid_records_payment(db, make_booking):
    booking = make_booking()
    [paid] = BookingService(db).mark_as_paid(booking.id, "user-1", payment_method="transfer", amount=1500)

    assert paid.payment_status == "paid"
    assert paid.payment_method == "transfer"
    assert paid.amount_paid == 1500
    assert paid.payment_date is not None


def test_group_payment_is_all_or_nothing(db, make_booking):
    first = make_booking(recurring_group_id="grp-1", recurring_sequence=1, is_recurring=True)
    make_booking(
        recurring_group_id="grp-1",
        recurring_sequence=2,
        is_recurring=True,
        parent_booking_id=first.id,
        booking_date=first.booking_date.replace(day=17),
        payment_status="paid",
    )
    service = BookingService(db)

    with pytest.raises(InvalidTransition):
        service.mark_as_paid(first.id, "user-1", apply_to_group=True)
    db.refresh(first)
    assert first.payment_status == "unpaid"


def test_group_payment_updates_every_member(db, make_booking):
    first = make_booking(recurring_group_id="grp-2", recurring_sequence=1, is_recurring=True)
    make_booking(
        recurring_group_id="grp-2",
        recurring_sequence=2,
        is_recurring=True,
        parent_booking_id=first.id,
        booking_date=first.booking_date.replace(day=17),
    )
    updated = BookingService(db).mark_as_paid(first.id, "user-1", apply_to_group=True)

    assert len(updated) == 2
    assert {b.payment_status for b in updated} == {"paid"}
    assert db.query(BookingStatusHistory).count() == 2
