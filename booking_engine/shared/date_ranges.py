"""
Date range utilities for multi-day booking support.

Pure functions for parsing, formatting and overlap-testing date ranges. A booking's
``end_date`` is nullable: ``None`` means a single-day booking whose effective end is
its ``booking_date``.

Date-only strings are always parsed as local calendar dates with
``date.fromisoformat``. Never route them through a timezone-aware datetime: UTC
midnight shifts the calendar day for any non-UTC locale.
"""

from datetime import date, datetime, time, timedelta
from typing import Any, Optional, Union

DateLike = Union[date, datetime, str]


def parse_local_date(value: DateLike) -> date:
    """Parse a YYYY-MM-DD string (or date/datetime) into a local calendar date"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            raise ValueError(f"Invalid date: {value!r}")
    raise ValueError(f"Invalid date: {value!r}")


def _field(booking: Any, name: str):
    if isinstance(booking, dict):
        return booking.get(name)
    return getattr(booking, name, None)


def effective_end_date(booking: Any) -> date:
    """end_date if present, otherwise booking_date"""
    start = parse_local_date(_field(booking, "booking_date"))
    end = _field(booking, "end_date")
    return parse_local_date(end) if end else start


def dates_between(start: DateLike, end: DateLike) -> list[date]:
    """
    All calendar dates from start to end, inclusive.

    Returns an empty list when start is after end.
    """
    current = parse_local_date(start)
    last = parse_local_date(end)
    dates = []
    while current <= last:
        dates.append(current)
        current += timedelta(days=1)
    return dates


def booking_overlaps_date(booking: Any, day: DateLike) -> bool:
    """True if the booking covers the given day"""
    day = parse_local_date(day)
    start = parse_local_date(_field(booking, "booking_date"))
    return start <= day <= effective_end_date(booking)


def booking_overlaps_range(booking: Any, range_start: DateLike, range_end: DateLike) -> bool:
    """
    True if the booking shares at least one day with [range_start, range_end].

    Adjacent ranges do not overlap: a booking ending on the 19th and a range
    starting on the 20th share no day.
    """
    start = parse_local_date(_field(booking, "booking_date"))
    return start <= parse_local_date(range_end) and effective_end_date(booking) >= parse_local_date(
        range_start
    )


def booking_duration_days(booking: Any) -> int:
    """Number of days a booking spans (minimum 1)"""
    start = parse_local_date(_field(booking, "booking_date"))
    end = effective_end_date(booking)
    if end <= start:
        return 1
    return (end - start).days + 1


def time_ranges_overlap(start1: time, end1: time, start2: time, end2: time) -> bool:
    """
    Interval overlap on times of day.

    Touching intervals (9:00-11:00 and 11:00-13:00) do not overlap. Two slots
    starting at the same time always do, including zero-length slots of
    bookings without an end time.
    """
    return start1 == start2 or (start1 < end2 and end1 > start2)


def _short(day: date, include_year: bool = False) -> str:
    text = f"{day.day} {day.strftime('%b')}"
    return f"{text} {day.year}" if include_year else text


def format_date_range(start: DateLike, end: Optional[DateLike] = None) -> str:
    """
    Format a booking span for display.

    - Single day: "19 Feb"
    - Same month: "19–20 Feb"
    - Cross month: "28 Feb – 2 Mar"
    - Cross year: "31 Dec – 1 Jan 2027" (year shown on end date)
    """
    start_date = parse_local_date(start)
    if not end or parse_local_date(end) == start_date:
        return _short(start_date)

    end_date = parse_local_date(end)
    if start_date.year != end_date.year:
        return f"{_short(start_date)} – {_short(end_date, include_year=True)}"
    if start_date.month == end_date.month:
        return f"{start_date.day}–{_short(end_date)}"
    return f"{_short(start_date)} – {_short(end_date)}"
