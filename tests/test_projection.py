"""Tests for what-if projections."""
import pytest

from attendance_core.errors import ValidationError
from attendance_core.models import CourseAttendanceRecord, ProjectionInput
from attendance_core.projection import default_projection_inputs, project_record, simulate, validate_target


def _record(code: str, total: int, present: int) -> CourseAttendanceRecord:
    return CourseAttendanceRecord(
        course_code=code,
        component_name="LECTURE",
        total_classes=total,
        present_classes=present,
        percentage=100.0 * present / total if total else 0.0,
    )


def test_planned_misses_lower_the_projection() -> None:
    """28/40 plus 5 planned misses is 28/45, about 62.2%."""
    result = project_record(_record("KCS501", 40, 28), 5, 75)
    assert result.projected_percentage == pytest.approx(62.222, rel=1e-4)
    assert result.is_safe is False
    assert result.planned_misses == 5
    assert result.max_additional_safe_misses == 0


def test_no_planned_misses_keeps_current_percentage() -> None:
    result = project_record(_record("KCS503", 100, 90), 0, 75)
    assert result.projected_percentage == pytest.approx(90.0)
    assert result.is_safe is True
    assert result.max_additional_safe_misses == 20


def test_projection_at_the_allowance_stays_safe() -> None:
    """Missing exactly the bunk allowance lands on the target, still safe."""
    record = _record("KCS503", 100, 90)
    allowance = project_record(record, 0, 75).max_additional_safe_misses
    assert project_record(record, allowance, 75).is_safe
    assert not project_record(record, allowance + 1, 75).is_safe


def test_negative_planned_misses_are_clamped() -> None:
    result = project_record(_record("KCS501", 40, 28), -3, 75)
    assert result.planned_misses == 0
    assert result.projected_percentage == pytest.approx(70.0)


def test_simulate_is_per_course() -> None:
    """Each course is projected on its own; unknown keys are ignored."""
    records = [_record("KCS501", 40, 28), _record("KCS503", 100, 90)]
    results = simulate(
        records,
        [ProjectionInput(key="KCS503-LECTURE", planned_misses=10), ProjectionInput(key="NOPE-", planned_misses=3)],
        75,
    )
    assert [result.record.course_key for result in results] == ["KCS501-LECTURE", "KCS503-LECTURE"]
    assert results[0].planned_misses == 0
    assert results[1].planned_misses == 10
    assert results[1].projected_percentage == pytest.approx(81.818, rel=1e-4)


def test_simulate_accepts_a_mapping() -> None:
    [result] = simulate([_record("KCS501", 40, 28)], {"KCS501-LECTURE": 2}, 60)
    assert result.projected_percentage == pytest.approx(66.667, rel=1e-4)
    assert result.is_safe is True


def test_zero_class_record() -> None:
    [result] = simulate([_record("NEW", 0, 0)], None, 75)
    assert result.projected_percentage == 0.0
    assert result.max_additional_safe_misses == 0


def test_default_projection_inputs() -> None:
    inputs = default_projection_inputs([_record("KCS501", 40, 28)])
    assert inputs == [ProjectionInput(key="KCS501-LECTURE", planned_misses=0)]


@pytest.mark.parametrize("target", [0, 0.5, 100.1, -5])
def test_target_out_of_range(target) -> None:
    with pytest.raises(ValidationError):
        validate_target(target)
    with pytest.raises(ValidationError):
        simulate([], None, target)


def test_target_bounds_are_inclusive() -> None:
    assert validate_target(1) == 1
    assert validate_target(100) == 100
