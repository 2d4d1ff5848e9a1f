"""What-if projections of planned misses against a target percentage."""
from __future__ import annotations

import typing as t

from .errors import ValidationError
from .metrics import bunk_allowance, percentage
from .models import CourseAttendanceRecord, ProjectionInput, ProjectionResult


PlannedMisses = t.Union[t.Iterable[ProjectionInput], t.Mapping[str, int]]


def validate_target(target: float) -> float:
    if not 1 <= target <= 100:
        raise ValidationError(f"Target percentage must be between 1 and 100, got {target}")
    return target


def default_projection_inputs(records: t.Iterable[CourseAttendanceRecord]) -> list[ProjectionInput]:
    """Zero planned misses for every record."""
    return [ProjectionInput(key=record.course_key, planned_misses=0) for record in records]


def _planned_by_key(projection_inputs: t.Optional[PlannedMisses]) -> dict[str, int]:
    if projection_inputs is None:
        return {}
    if isinstance(projection_inputs, t.Mapping):
        return {key: int(value) for key, value in projection_inputs.items()}
    return {item.key: item.planned_misses for item in projection_inputs}


def project_record(record: CourseAttendanceRecord, planned_misses: int, target: float) -> ProjectionResult:
    """
    Worst case for one course: every planned miss is a class held and not attended.

    The headroom figure is taken from the current counts, not the projected ones.
    """
    misses = max(planned_misses, 0)
    projected = percentage(record.total_classes + misses, record.present_classes)
    return ProjectionResult(
        record=record,
        planned_misses=misses,
        projected_percentage=projected,
        is_safe=projected >= target,
        max_additional_safe_misses=bunk_allowance(record.total_classes, record.present_classes, target),
    )


def simulate(
    records: t.Iterable[CourseAttendanceRecord],
    projection_inputs: t.Optional[PlannedMisses],
    target: float,
) -> list[ProjectionResult]:
    """
    Project every record independently against one shared target.

    There is no budget shared across courses; records without an input are
    projected with zero planned misses.
    """
    validate_target(target)
    planned = _planned_by_key(projection_inputs)
    return [
        project_record(record, planned.get(record.course_key, 0), target)
        for record in records
    ]
