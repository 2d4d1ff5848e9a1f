"""Tests for normalization of raw portal payloads."""
from datetime import date

import pytest

from attendance_core.errors import DataShapeError
from attendance_core.models import AttendanceStatus, CourseAttendanceRecord, NormalizationReport, ScheduleEntry
from attendance_core.normalizer import (
    extract_time_range,
    map_status,
    matches_course,
    normalize_course_list,
    normalize_daywise,
    normalize_schedule,
    normalize_schedule_rows,
    normalize_snapshot,
    parse_portal_date,
)
from services.mock_portal.app import _get_mock_summary


def test_nested_summary_is_flattened() -> None:
    """One record per course component, with ids inherited from the parents."""
    records = normalize_course_list(_get_mock_summary())

    assert [record.course_key for record in records] == [
        "KCS501-LECTURE",
        "KCS501-PRACTICAL",
        "KCS503-LECTURE",
    ]
    lecture = records[0]
    assert lecture.course_name == "Database Management System"
    assert (lecture.total_classes, lecture.present_classes) == (40, 28)
    assert lecture.percentage == pytest.approx(70.0)
    assert lecture.course_component_id == 111
    assert lecture.course_id == 11
    assert lecture.session_id == 37
    assert lecture.student_id == 1001


def test_percentage_is_recomputed() -> None:
    """An upstream percentage that disagrees with the counts is ignored."""
    raw = [{"courseCode": "X1", "componentName": "LECTURE", "totalClasses": 4,
            "presentClasses": 3, "presentPercentage": 12.5}]
    [record] = normalize_course_list(raw)
    assert record.percentage == pytest.approx(75.0)


def test_missing_fields_become_placeholders() -> None:
    [record] = normalize_course_list([{"totalClasses": "10", "presentClasses": "7"}])
    assert record.course_code == "-"
    assert record.course_name == "-"
    assert record.component_name == "-"
    assert record.course_component_id is None
    assert record.course_key == "C-"
    assert (record.total_classes, record.present_classes) == (10, 7)


def test_zero_classes_is_valid() -> None:
    [record] = normalize_course_list([{"courseCode": "X1", "totalClasses": 0, "presentClasses": 0}])
    assert record.percentage == 0.0


def test_non_numeric_count_raises_without_report() -> None:
    with pytest.raises(DataShapeError):
        normalize_course_list([{"courseCode": "X1", "totalClasses": "ten", "presentClasses": 3}])


def test_non_numeric_count_is_skipped_with_report() -> None:
    report = NormalizationReport()
    records = normalize_course_list(
        [
            {"courseCode": "X1", "totalClasses": "ten", "presentClasses": 3},
            {"courseCode": "X2", "totalClasses": 10, "presentClasses": 3},
        ],
        report,
    )
    assert [record.course_code for record in records] == ["X2"]
    assert report.dropped == 1
    assert "X1" in report.reasons[0]


def test_malformed_component_list_skips_only_that_course() -> None:
    """A course whose component list is not a list is dropped; the rest survive."""
    snapshot = normalize_snapshot({
        "attendanceCourseComponentInfoList": [
            {
                "courseCode": "OK1",
                "attendanceCourseComponentNameInfoList": [
                    {"componentName": "LECTURE", "numberOfPeriods": 10, "numberOfPresent": 8},
                ],
            },
            {"courseCode": "BAD", "attendanceCourseComponentNameInfoList": "oops"},
        ],
    })
    assert [record.course_code for record in snapshot.courses] == ["OK1"]
    assert snapshot.skipped == 1


def test_malformed_component_list_raises_without_report() -> None:
    with pytest.raises(DataShapeError):
        normalize_course_list([{"courseCode": "BAD", "attendanceCourseComponentNameInfoList": "oops"}])


def test_invalid_counts_are_dropped() -> None:
    """Negative counts and more presents than classes never produce a record."""
    snapshot = normalize_snapshot([
        {"courseCode": "NEG", "totalClasses": -1, "presentClasses": 0},
        {"courseCode": "OVER", "totalClasses": 5, "presentClasses": 6},
        {"courseCode": "OK", "totalClasses": 5, "presentClasses": 5},
    ])
    assert [record.course_code for record in snapshot.courses] == ["OK"]
    assert snapshot.skipped == 2


def test_snapshot_profile() -> None:
    snapshot = normalize_snapshot(_get_mock_summary())
    assert snapshot.student.full_name == "Mock Student"
    assert snapshot.student.branch_short_name == "CSE"
    assert snapshot.skipped == 0


def test_course_list_must_be_a_list() -> None:
    with pytest.raises(DataShapeError):
        normalize_course_list({"attendanceCourseComponentInfoList": "nope"})


@pytest.mark.parametrize(
    "value, expected",
    [
        ("01/12/2025", date(2025, 12, 1)),
        ("2025-12-01", date(2025, 12, 1)),
        ("2025-12-01T09:30:00", date(2025, 12, 1)),
        ("01/12/2025 10:00", date(2025, 12, 1)),
        (1764547200000, date(2025, 12, 1)),
        ("garbage", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_portal_date(value, expected) -> None:
    assert parse_portal_date(value) == expected


def test_extract_time_range() -> None:
    assert extract_time_range("01/12/2025 : 02:20 PM - 03:10 PM") == "02:20 PM - 03:10 PM"
    assert extract_time_range("02:20 PM - 03:10 PM") == "02:20 PM - 03:10 PM"
    assert extract_time_range("") is None
    assert extract_time_range(None) is None


def test_map_status() -> None:
    assert map_status("PRESENT") is AttendanceStatus.PRESENT
    assert map_status("p") is AttendanceStatus.PRESENT
    assert map_status("Absent") is AttendanceStatus.ABSENT
    assert map_status("LEAVE") is AttendanceStatus.UNKNOWN
    assert map_status(None) is AttendanceStatus.UNKNOWN


def test_normalize_daywise() -> None:
    entries = normalize_daywise([
        {"planLectureDate": "01/12/2025", "dateTime": "01/12/2025 : 10:00 AM - 10:50 AM", "attendance": "PRESENT"},
        {"planLectureDate": "not a date", "dayName": "Friday", "attendance": "ABSENT"},
    ])
    first, second = entries
    assert first.date == date(2025, 12, 1)
    assert first.weekday == "Monday"
    assert first.time_slot == "10:00 AM - 10:50 AM"
    assert first.status is AttendanceStatus.PRESENT
    assert first.is_upcoming is False
    # unparseable dates are kept, not dropped
    assert second.date is None
    assert second.weekday == "Friday"
    assert second.status is AttendanceStatus.ABSENT


def test_normalize_daywise_accepts_wrapped_list() -> None:
    assert len(normalize_daywise({"lectureList": [{"attendance": "P"}]})) == 1
    assert normalize_daywise(None) == []


def test_normalize_schedule_rows() -> None:
    [row] = normalize_schedule_rows([
        {"courseCode": "KCS501", "courseName": "DBMS", "lectureDate": "02/12/2025",
         "dateTime": "02/12/2025 : 10:00 AM - 10:50 AM", "classRoom": "CS-101"},
    ])
    assert row == ScheduleEntry(
        course_name="DBMS",
        course_code="KCS501",
        lecture_date="02/12/2025",
        date_time="02/12/2025 : 10:00 AM - 10:50 AM",
        room="CS-101",
    )


def test_matches_course() -> None:
    row = ScheduleEntry(course_name="Database Management System Lab", course_code="KCS501P")
    assert matches_course(row, "KCS501", None)
    assert matches_course(row, None, "database management")
    assert not matches_course(row, "KCS503", "Algorithms")
    assert not matches_course(row, "-", "-")


def test_normalize_schedule_filters_to_course() -> None:
    course = CourseAttendanceRecord(course_code="KCS503", course_name="Design and Analysis of Algorithm")
    raw = [
        {"courseCode": "KCS501", "courseName": "Database Management System", "lectureDate": "01/12/2025",
         "dateTime": "01/12/2025 : 10:00 AM - 10:50 AM"},
        {"courseCode": "KCS503", "courseName": "Design and Analysis of Algorithm", "lectureDate": "03/12/2025",
         "dateTime": "03/12/2025 : 02:20 PM - 03:10 PM"},
    ]
    [entry] = normalize_schedule(raw, course)
    assert entry.date == date(2025, 12, 3)
    assert entry.weekday == "Wednesday"
    assert entry.time_slot == "02:20 PM - 03:10 PM"
    assert entry.status is AttendanceStatus.SCHEDULED
    assert entry.is_upcoming is True
