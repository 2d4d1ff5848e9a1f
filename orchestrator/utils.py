"""Utility functions for the attendance CLI."""
from __future__ import annotations

import typing as t

from rich.console import Console

from attendance_core.errors import ValidationError
from attendance_core.models import CourseAttendanceRecord

console = Console()

BAND_STYLES = {"safe": "green", "warning": "yellow", "danger": "red"}


def parse_planned_misses(values: t.Iterable[str]) -> dict[str, int]:
    """Parse repeated KEY=N options into a planned-misses mapping.

    Args:
        values: Strings such as "KCS501-LECTURE=3"

    Returns:
        Mapping of course key to planned misses

    Raises:
        ValidationError: If an entry is not KEY=N with a non-negative integer N
    """
    planned: dict[str, int] = {}
    for value in values:
        key, sep, count = value.rpartition("=")
        if not sep or not key.strip():
            raise ValidationError(f"Expected KEY=N, got '{value}'")
        try:
            misses = int(count)
        except ValueError:
            raise ValidationError(f"Planned misses for '{key}' must be a whole number")
        if misses < 0:
            raise ValidationError(f"Planned misses for '{key}' must not be negative")
        planned[key.strip()] = misses
    return planned


def find_course(records: t.Iterable[CourseAttendanceRecord], key: str) -> CourseAttendanceRecord:
    """Look a course up by its key, case-insensitively."""
    records = list(records)
    wanted = key.strip().lower()
    for record in records:
        if record.course_key.lower() == wanted:
            return record
    known = ", ".join(record.course_key for record in records) or "none"
    raise ValidationError(f"Unknown course '{key}'. Known courses: {known}")


def canonical_course_keys(planned: t.Mapping[str, int], records: t.Iterable[CourseAttendanceRecord]) -> dict[str, int]:
    """Rewrite planned-miss keys to the records' own spelling; unknown keys pass through."""
    by_lower = {record.course_key.lower(): record.course_key for record in records}
    return {by_lower.get(key.strip().lower(), key): count for key, count in planned.items()}


def format_percentage(value: float) -> str:
    return f"{value:.2f}%"
