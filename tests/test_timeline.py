"""Tests for merging past attendance with upcoming classes."""
from datetime import date

from attendance_core.models import AttendanceStatus, DaywiseEntry
from attendance_core.timeline import merge_timeline, sort_past, sort_upcoming, upcoming_window, week_bounds


def _past(day, status=AttendanceStatus.PRESENT) -> DaywiseEntry:
    return DaywiseEntry(date=day, status=status)


def _upcoming(day) -> DaywiseEntry:
    return DaywiseEntry(date=day, status=AttendanceStatus.SCHEDULED, is_upcoming=True)


def test_past_block_then_upcoming_block() -> None:
    """History comes first, newest on top; then the forecast, soonest on top."""
    past = [_past(date(2025, 12, 1)), _past(date(2025, 12, 3)), _past(date(2025, 12, 2))]
    upcoming = [_upcoming(date(2025, 12, 10)), _upcoming(date(2025, 12, 8))]

    merged = merge_timeline(past, upcoming)

    assert [entry.date.day for entry in merged] == [3, 2, 1, 8, 10]
    assert [entry.is_upcoming for entry in merged] == [False, False, False, True, True]


def test_blocks_are_never_interleaved() -> None:
    """A past entry dated after an upcoming one still stays in the past block."""
    merged = merge_timeline([_past(date(2025, 12, 20))], [_upcoming(date(2025, 12, 5))])
    assert [entry.is_upcoming for entry in merged] == [False, True]


def test_undated_entries_are_kept_at_the_far_end() -> None:
    past = sort_past([_past(None), _past(date(2025, 12, 1))])
    upcoming = sort_upcoming([_upcoming(None), _upcoming(date(2025, 12, 8))])
    assert [entry.date for entry in past] == [date(2025, 12, 1), None]
    assert [entry.date for entry in upcoming] == [date(2025, 12, 8), None]


def test_empty_inputs() -> None:
    assert merge_timeline([], []) == []
    only_upcoming = merge_timeline([], [_upcoming(date(2025, 12, 8))])
    assert len(only_upcoming) == 1


def test_upcoming_window() -> None:
    assert upcoming_window(date(2025, 12, 1)) == (date(2025, 12, 1), date(2025, 12, 31))
    assert upcoming_window(date(2025, 12, 1), 7) == (date(2025, 12, 1), date(2025, 12, 8))


def test_week_bounds() -> None:
    """Monday through Sunday of the week that contains the day."""
    assert week_bounds(date(2025, 12, 3)) == (date(2025, 12, 1), date(2025, 12, 7))
    assert week_bounds(date(2025, 12, 1)) == (date(2025, 12, 1), date(2025, 12, 7))
    assert week_bounds(date(2025, 12, 7)) == (date(2025, 12, 1), date(2025, 12, 7))
