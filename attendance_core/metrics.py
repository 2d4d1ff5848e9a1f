"""
Attendance metrics.

Pure functions over class counts and a target percentage (1-100). The
threshold formulas run on exact rationals (the target is taken from its
decimal text, so 99.9 means 999/10) and boundary cases, exactly at target,
come out exact for fractional targets too.
"""
from __future__ import annotations

import math
import typing as t
from fractions import Fraction

from .models import CourseAttendanceRecord

# Width of the "warning" band below the target, e.g. 60-75 for a 75% target
WARNING_BAND = 15.0


def _exact(target: float) -> Fraction:
    return Fraction(str(target))


def percentage(total_classes: int, present_classes: int) -> float:
    """Share of classes attended, in percent. 0 when nothing was held yet."""
    if total_classes <= 0:
        return 0.0
    return max(100.0 * present_classes / total_classes, 0.0)


def overall_percentage(records: t.Iterable[CourseAttendanceRecord]) -> float:
    """
    Overall attendance weighted by class counts.

    Each record contributes in proportion to its own number of classes, so this
    is not the mean of the per-course percentages.
    """
    total = 0
    present = 0
    for record in records:
        if record.total_classes > 0:
            total += record.total_classes
            present += record.present_classes
    return percentage(total, present)


def bunk_allowance(total_classes: int, present_classes: int, target: float) -> int:
    """
    How many more classes can be missed while staying at or above `target`.

    Largest x >= 0 with present / (total + x) >= target / 100.
    """
    if total_classes <= 0 or target <= 0:
        return 0
    # floor(present * 100 / target - total)
    exact = _exact(target)
    allowance = math.floor((100 * present_classes - exact * total_classes) / exact)
    return max(allowance, 0)


def classes_to_attend(total_classes: int, present_classes: int, target: float) -> t.Optional[int]:
    """
    How many more classes must all be attended to get back to `target`.

    Smallest y >= 0 with (present + y) / (total + y) >= target / 100. Returns
    None when the target can never be reached again, which only happens for a
    100% target once a single class has been missed.
    """
    if total_classes <= 0:
        return 0
    if target >= 100:
        return 0 if present_classes >= total_classes else None
    # ceil((r * total - present) / (1 - r)) with r = target / 100
    exact = _exact(target)
    required = math.ceil((exact * total_classes - 100 * present_classes) / (100 - exact))
    return max(required, 0)


def is_target_reachable(total_classes: int, present_classes: int, target: float) -> bool:
    return classes_to_attend(total_classes, present_classes, target) is not None


def attendance_band(percent: float, target: float) -> str:
    """Classify a percentage as "safe", "warning" or "danger" against a target."""
    if percent >= target:
        return "safe"
    if percent >= target - WARNING_BAND:
        return "warning"
    return "danger"


def summarize_record(record: CourseAttendanceRecord, target: float) -> dict[str, t.Any]:
    """All derived figures for one record against `target`."""
    to_attend = classes_to_attend(record.total_classes, record.present_classes, target)
    return {
        "percentage": record.percentage,
        "is_safe": record.percentage >= target,
        "band": attendance_band(record.percentage, target),
        "bunk_allowance": bunk_allowance(record.total_classes, record.present_classes, target),
        "classes_to_attend": to_attend,
        "target_reachable": to_attend is not None,
    }
