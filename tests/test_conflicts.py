from datetime import date, time

import pytest
from sqlalchemy.exc import OperationalError

from booking_engine.domain.bookings.schemas import BookingCreate
from booking_engine.domain.bookings.service import BookingService
from booking_engine.domain.scheduling.service import ConflictCandidate, ConflictDetector
from booking_engine.errors import ConflictDetected, StorageError


def candidate(**overrides):
    values = {
        "booking_date": date(2025, 3, 10),
        "start_time": time(11, 0),
        "end_time": time(13, 0),
        "staff_id": "staff-1",
    }
    values.update(overrides)
    return ConflictCandidate(**values)


def test_overlapping_staff_booking_conflicts(db, make_booking):
    existing = make_booking()
    conflicts = ConflictDetector(db).find_conflicts(candidate())
    assert [b.id for b in conflicts] == [existing.id]


def test_touching_times_do_not_conflict(db, make_booking):
    make_booking()
    assert ConflictDetector(db).find_conflicts(candidate(start_time=time(12, 0), end_time=time(14, 0))) == []


def test_team_match_conflicts_even_with_other_staff(db, make_booking):
    make_booking(staff_id=None, team_id="team-a")
    detector = ConflictDetector(db)

    described = detector.describe_conflicts(candidate(staff_id="staff-9", team_id="team-a"))
    assert [c.conflict_type for c in described] == ["team"]


def test_staff_and_team_match_reports_both(db, make_booking):
    make_booking(team_id="team-a")
    described = ConflictDetector(db).describe_conflicts(candidate(team_id="team-a"))
    assert [c.conflict_type for c in described] == ["both"]


@pytest.mark.parametrize("status", ["completed", "cancelled"])
def test_inactive_bookings_do_not_conflict(db, make_booking, status):
    make_booking(status=status)
    assert ConflictDetector(db).find_conflicts(candidate()) == []


def test_in_progress_booking_conflicts(db, make_booking):
    make_booking(status="in_progress")
    assert len(ConflictDetector(db).find_conflicts(candidate())) == 1


def test_excluded_booking_is_ignored(db, make_booking):
    existing = make_booking()
    assert ConflictDetector(db).find_conflicts(candidate(exclude_booking_ids={existing.id})) == []


def test_unassigned_candidate_has_no_conflicts(db, make_booking):
    make_booking()
    assert ConflictDetector(db).find_conflicts(candidate(staff_id=None)) == []


def test_multi_day_booking_blocks_later_days(db, make_booking):
    make_booking(booking_date=date(2025, 3, 8), end_date=date(2025, 3, 10))
    detector = ConflictDetector(db)

    assert len(detector.find_conflicts(candidate(booking_date=date(2025, 3, 9)))) == 1
    assert detector.find_conflicts(candidate(booking_date=date(2025, 3, 11))) == []


def test_multi_day_candidate_spanning_existing_booking(db, make_booking):
    make_booking(booking_date=date(2025, 3, 12))
    found = ConflictDetector(db).find_conflicts(
        candidate(booking_date=date(2025, 3, 11), end_date=date(2025, 3, 13))
    )
    assert len(found) == 1


def test_ensure_no_conflicts_raises_with_ids(db, make_booking):
    existing = make_booking()
    with pytest.raises(ConflictDetected) as exc_info:
        ConflictDetector(db).ensure_no_conflicts(candidate())
    assert exc_info.value.conflicting_booking_ids == [existing.id]


def test_lookup_failure_is_not_treated_as_free(db, monkeypatch):
    detector = ConflictDetector(db)

    def broken(*_args, **_kwargs):
        raise OperationalError("SELECT", {}, Exception("connection reset"))

    monkeypatch.setattr(detector.repo, "find_active_assignments", broken)
    with pytest.raises(StorageError):
        detector.find_conflicts(candidate())


def test_conflict_endpoint(client, make_booking):
    existing = make_booking()
    response = client.post(
        "/scheduling/conflicts",
        json={
            "staff_id": "staff-1",
            "booking_date": "2025-03-10",
            "start_time": "11:00",
            "end_time": "13:00",
        },
    )
    assert response.status_code == 200
    body = response.json()
    assert body["has_conflicts"] is True
    assert body["conflicts"][0]["booking"]["id"] == existing.id
    assert body["conflicts"][0]["conflict_type"] == "staff"


def test_open_ended_booking_conflicts_on_same_start(db, make_booking):
    existing = make_booking()
    found = ConflictDetector(db).find_conflicts(candidate(start_time=time(10, 0), end_time=None))
    assert [b.id for b in found] == [existing.id]


def test_open_ended_booking_rejected_by_precheck(db, make_booking):
    existing = make_booking()
    with pytest.raises(ConflictDetected) as exc_info:
        BookingService(db).create_booking(
            BookingCreate(booking_date=date(2025, 3, 10), start_time=time(10, 0), staff_id="staff-1")
        )
    assert exc_info.value.conflicting_booking_ids == [existing.id]
