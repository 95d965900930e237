"""
Check-then-insert races between two sessions.

The second request's pre-check is made stale by letting the first request
commit in between; the storage guard has to catch what the check missed.
"""

from datetime import date, time

import pytest

from booking_engine.domain.bookings.schemas import BookingCreate
from booking_engine.domain.bookings.service import BookingService
from booking_engine.errors import ConflictDetected
from booking_engine.models import Booking


def slot(**overrides):
    values = {
        "booking_date": date(2025, 4, 2),
        "start_time": time(10, 0),
        "end_time": time(12, 0),
        "staff_id": "staff-7",
    }
    values.update(overrides)
    return BookingCreate(**values)


@pytest.fixture
def racing_services(session_factory):
    first, second = session_factory(), session_factory()
    yield BookingService(first), BookingService(second)
    first.close()
    second.close()


def stale_precheck(service, monkeypatch):
    """The pre-check ran before the competing insert and saw a free slot"""
    monkeypatch.setattr(service.conflicts, "find_conflicts", lambda _candidate: [])


def test_same_slot_race_is_caught_by_storage_guard(racing_services, monkeypatch, db):
    winner, loser = racing_services
    stale_precheck(loser, monkeypatch)

    winner.create_booking(slot())
    with pytest.raises(ConflictDetected) as exc_info:
        loser.create_booking(slot())

    assert "concurrent" in exc_info.value.message
    assert db.query(Booking).count() == 1


def test_team_slot_race_is_caught_by_storage_guard(racing_services, monkeypatch, db):
    winner, loser = racing_services
    stale_precheck(loser, monkeypatch)

    winner.create_booking(slot(staff_id=None, team_id="team-a"))
    with pytest.raises(ConflictDetected):
        loser.create_booking(slot(staff_id="staff-8", team_id="team-a"))
    assert db.query(Booking).count() == 1


def test_sequential_requests_are_caught_by_precheck(racing_services, db):
    winner, loser = racing_services

    first = winner.create_booking(slot())
    with pytest.raises(ConflictDetected) as exc_info:
        loser.create_booking(slot(start_time=time(11, 0), end_time=time(13, 0)))
    assert exc_info.value.conflicting_booking_ids == [first.id]


def test_race_with_different_start_times_is_not_caught(racing_services, monkeypatch, db):
    # Known limitation: the storage guard only covers identical start times
    winner, loser = racing_services
    stale_precheck(loser, monkeypatch)

    winner.create_booking(slot())
    loser.create_booking(slot(start_time=time(11, 0), end_time=time(13, 0)))
    assert db.query(Booking).count() == 2


def test_cancelled_booking_frees_the_slot(racing_services, db):
    first_service, second_service = racing_services
    first = first_service.create_booking(slot())
    first_service.transition_status(first.id, "cancelled", "user-1")

    second = second_service.create_booking(slot())
    assert second.id != first.id
