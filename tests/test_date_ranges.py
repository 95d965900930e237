import random
from datetime import date, time, timedelta

import pytest

from booking_engine.shared.date_ranges import (
    booking_duration_days,
    booking_overlaps_date,
    booking_overlaps_range,
    dates_between,
    effective_end_date,
    format_date_range,
    parse_local_date,
    time_ranges_overlap,
)


def test_parse_local_date_keeps_calendar_day():
    assert parse_local_date("2025-01-15") == date(2025, 1, 15)
    assert parse_local_date("2025-01-15T23:30:00+07:00") == date(2025, 1, 15)


def test_parse_local_date_rejects_garbage():
    with pytest.raises(ValueError):
        parse_local_date("15/01/2025")


def test_effective_end_date_defaults_to_booking_date():
    assert effective_end_date({"booking_date": "2025-02-19", "end_date": None}) == date(2025, 2, 19)
    assert effective_end_date({"booking_date": "2025-02-19", "end_date": "2025-02-21"}) == date(
        2025, 2, 21
    )


def test_dates_between_inclusive_and_empty_when_reversed():
    assert dates_between("2025-02-27", "2025-03-01") == [
        date(2025, 2, 27),
        date(2025, 2, 28),
        date(2025, 3, 1),
    ]
    assert dates_between("2025-03-02", "2025-03-01") == []


def test_adjacent_ranges_do_not_overlap():
    booking = {"booking_date": "2025-02-17", "end_date": "2025-02-19"}
    assert not booking_overlaps_range(booking, "2025-02-20", "2025-02-22")
    assert booking_overlaps_range(booking, "2025-02-19", "2025-02-22")


def test_multi_day_booking_covers_each_day():
    booking = {"booking_date": "2025-12-30", "end_date": "2026-01-02"}
    assert booking_overlaps_date(booking, "2025-12-31")
    assert booking_overlaps_date(booking, "2026-01-02")
    assert not booking_overlaps_date(booking, "2026-01-03")
    assert booking_duration_days(booking) == 4


@pytest.mark.parametrize(
    "start_span",
    [
        (date(2025, 5, 10), 0),  # single day
        (date(2025, 5, 3), 20),  # same month
        (date(2025, 1, 20), 40),  # cross month
        (date(2025, 12, 15), 40),  # cross year
    ],
)
def test_interval_test_agrees_with_enumeration(start_span):
    base, span = start_span
    rng = random.Random(f"{base}-{span}")
    for _ in range(300):
        start = base + timedelta(days=rng.randint(0, span))
        end = start + timedelta(days=rng.randint(0, 5)) if rng.random() < 0.7 else None
        booking = {"booking_date": start, "end_date": end}

        range_start = base + timedelta(days=rng.randint(-3, span + 3))
        range_end = range_start + timedelta(days=rng.randint(0, 6))

        booking_days = set(dates_between(start, end or start))
        range_days = set(dates_between(range_start, range_end))
        expected = bool(booking_days & range_days)

        assert booking_overlaps_range(booking, range_start, range_end) == expected


def test_time_ranges_touching_do_not_overlap():
    assert not time_ranges_overlap(time(9), time(11), time(11), time(13))
    assert time_ranges_overlap(time(9), time(11), time(10, 59), time(13))


def test_format_date_range():
    assert format_date_range("2025-02-19") == "19 Feb"
    assert format_date_range("2025-02-19", "2025-02-19") == "19 Feb"
    assert format_date_range("2025-02-19", "2025-02-20") == "19–20 Feb"
    assert format_date_range("2025-02-28", "2025-03-02") == "28 Feb – 2 Mar"
    assert format_date_range("2026-12-31", "2027-01-01") == "31 Dec – 1 Jan 2027"


def test_same_start_time_always_overlaps():
    # A booking without an end time occupies a zero-length slot
    assert time_ranges_overlap(time(10), time(10), time(10), time(12))
    assert time_ranges_overlap(time(10), time(10), time(10), time(10))
    assert not time_ranges_overlap(time(12), time(12), time(10), time(12))
