"""
Timeline merging for one course component.

Past attendance and upcoming schedule entries are kept as two separate blocks:
history first (most recent on top), then the forecast (soonest on top).
"""
from __future__ import annotations

import typing as t
from datetime import date, timedelta

from .models import DaywiseEntry

# Per-course forecast window used when none is given
UPCOMING_WINDOW_DAYS = 30


def sort_past(entries: t.Iterable[DaywiseEntry]) -> list[DaywiseEntry]:
    """Most recent first; entries without a date count as the oldest."""
    return sorted(entries, key=lambda e: e.date or date.min, reverse=True)


def sort_upcoming(entries: t.Iterable[DaywiseEntry]) -> list[DaywiseEntry]:
    """Soonest first; entries without a date count as the latest."""
    return sorted(entries, key=lambda e: e.date or date.max)


def merge_timeline(
    past_entries: t.Iterable[DaywiseEntry],
    upcoming_entries: t.Iterable[DaywiseEntry],
) -> list[DaywiseEntry]:
    """
    Merge history and forecast into one per-course view.

    The blocks are concatenated, never interleaved. Entries whose date could
    not be parsed are kept.
    """
    return sort_past(past_entries) + sort_upcoming(upcoming_entries)


def upcoming_window(today: date, days: int = UPCOMING_WINDOW_DAYS) -> tuple[date, date]:
    """Date range for a course forecast: today through `days` ahead."""
    return today, today + timedelta(days=days)


def week_bounds(today: date) -> tuple[date, date]:
    """Monday and Sunday of the week containing `today`."""
    monday = today - timedelta(days=today.weekday())
    return monday, monday + timedelta(days=6)
