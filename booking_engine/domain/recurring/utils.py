"""
Recurring booking helpers: patterns, schedule generation and group inspection.
"""

import uuid
from collections import defaultdict
from datetime import date, timedelta
from enum import Enum
from typing import Iterable, Optional

from ...errors import InvalidRequest, InvalidScope
from ...shared.date_ranges import effective_end_date, parse_local_date
from ..pricing.schemas import VALID_FREQUENCIES


class RecurringPattern(str, Enum):
    AUTO_WEEKLY = "auto-weekly"
    AUTO_BIWEEKLY = "auto-biweekly"
    CUSTOM = "custom"


class RecurringEditScope(str, Enum):
    THIS_ONLY = "this_only"
    THIS_AND_FUTURE = "this_and_future"
    ALL = "all"


PATTERN_INTERVAL_DAYS = {
    RecurringPattern.AUTO_WEEKLY: 7,
    RecurringPattern.AUTO_BIWEEKLY: 14,
}

PATTERN_LABELS = {
    RecurringPattern.AUTO_WEEKLY: "Weekly",
    RecurringPattern.AUTO_BIWEEKLY: "Every 2 weeks",
    RecurringPattern.CUSTOM: "Custom",
}


def parse_pattern(value) -> RecurringPattern:
    try:
        return RecurringPattern(value)
    except ValueError:
        raise InvalidRequest(f"Invalid recurring pattern: {value!r}", pattern=str(value))


def parse_scope(value) -> RecurringEditScope:
    try:
        return RecurringEditScope(value)
    except ValueError:
        raise InvalidScope(f"Invalid scope: {value!r}", scope=str(value))


def get_pattern_label(pattern: Optional[str]) -> str:
    if not pattern:
        return "Not specified"
    try:
        return PATTERN_LABELS[RecurringPattern(pattern)]
    except ValueError:
        return "Not specified"


def generate_group_id() -> str:
    return str(uuid.uuid4())


def generate_auto_schedule_dates(start_date, frequency: int, pattern) -> list[date]:
    """
    Dates for an auto pattern, starting at start_date.

    >>> generate_auto_schedule_dates("2025-01-15", 4, "auto-weekly")
    [datetime.date(2025, 1, 15), datetime.date(2025, 1, 22), datetime.date(2025, 1, 29), datetime.date(2025, 2, 5)]
    """
    pattern = parse_pattern(pattern)
    if pattern == RecurringPattern.CUSTOM:
        raise InvalidRequest("Custom pattern does not support auto-generation", pattern=pattern.value)
    if frequency not in VALID_FREQUENCIES:
        raise InvalidRequest(f"Invalid frequency: {frequency}", frequency=frequency)

    start = parse_local_date(start_date)
    step = timedelta(days=PATTERN_INTERVAL_DAYS[pattern])
    return [start + step * i for i in range(frequency)]


def is_pattern_compatible_with_frequency(pattern, frequency: int) -> bool:
    try:
        RecurringPattern(pattern)
    except ValueError:
        return False
    return frequency in VALID_FREQUENCIES


def validate_recurring_dates(
    dates: Iterable,
    frequency: int,
    today: Optional[date] = None,
    allow_past: bool = False,
) -> tuple[bool, list[str]]:
    """
    Check a list of occurrence dates.

    Returns (valid, errors). Checks count against frequency, chronological
    order, duplicates, parseability and, unless allow_past, dates before today.
    """
    errors = []
    raw = list(dates)

    if len(raw) != frequency:
        errors.append(f"Expected {frequency} dates, got {len(raw)}")

    parsed = []
    for value in raw:
        try:
            parsed.append(parse_local_date(value))
        except ValueError:
            errors.append(f"Invalid date: {value}")

    if len(parsed) != len(raw):
        return False, errors

    if parsed != sorted(parsed):
        errors.append("Dates must be in chronological order")

    if len(set(parsed)) != len(parsed):
        errors.append("Duplicate dates found")

    if not allow_past:
        today = today or date.today()
        for day in parsed:
            if day < today:
                errors.append(f"Date in the past: {day.isoformat()}")

    return not errors, errors


def sort_recurring_group(bookings: Iterable) -> list:
    return sorted(bookings, key=lambda b: b.recurring_sequence or 0)


def find_parent_booking(bookings: Iterable):
    """The sequence-1 booking of a group, or None"""
    for booking in bookings:
        if booking.recurring_sequence == 1:
            return booking
    return None


def group_bookings_by_recurring_group(bookings: Iterable) -> dict[str, list]:
    groups = defaultdict(list)
    for booking in bookings:
        if booking.recurring_group_id:
            groups[booking.recurring_group_id].append(booking)
    return dict(groups)


def count_bookings_by_status(bookings: Iterable, today: Optional[date] = None) -> dict:
    """
    Aggregate counts for a group.

    upcoming = pending or confirmed bookings whose span has not ended before today.
    """
    today = today or date.today()
    bookings = list(bookings)
    counts = {
        "total": len(bookings),
        "completed": 0,
        "confirmed": 0,
        "cancelled": 0,
        "upcoming": 0,
    }
    for booking in bookings:
        if booking.status == "completed":
            counts["completed"] += 1
        elif booking.status == "cancelled":
            counts["cancelled"] += 1
        if booking.status == "confirmed":
            counts["confirmed"] += 1
        if booking.status in ("pending", "confirmed") and effective_end_date(booking) >= today:
            counts["upcoming"] += 1
    return counts


def check_sequence_contiguity(bookings: Iterable) -> list[str]:
    """
    Problems with a group's linkage invariant; empty when healthy.

    A healthy group has sequences exactly 1..n, one parent (sequence 1, no
    parent_booking_id), and every other member pointing at that parent.
    """
    members = sort_recurring_group(bookings)
    if not members:
        return []

    problems = []
    sequences = [b.recurring_sequence for b in members]
    if sequences != list(range(1, len(members) + 1)):
        problems.append(f"Sequences are not contiguous from 1: {sequences}")

    roots = [b for b in members if b.parent_booking_id is None]
    if len(roots) != 1:
        problems.append(f"Expected exactly one parent booking, found {len(roots)}")
    parent = find_parent_booking(members)
    if parent is None or parent.parent_booking_id is not None:
        problems.append("Sequence 1 booking is not the group parent")
    else:
        orphans = [b.id for b in members if b is not parent and b.parent_booking_id != parent.id]
        if orphans:
            problems.append(f"Bookings not linked to parent {parent.id}: {orphans}")

    return problems
