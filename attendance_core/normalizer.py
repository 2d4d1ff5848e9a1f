"""
Normalization of raw portal payloads into canonical records.

One function per payload kind. Missing values become placeholders ("-" for
names, None for identifiers and dates); only structurally nonsensical input
such as non-numeric class counts raises DataShapeError.
"""
from __future__ import annotations

import logging
import re
import typing as t
from datetime import date, datetime, timezone

from .errors import DataShapeError
from .metrics import percentage
from .models import (
    AttendanceSnapshot,
    AttendanceStatus,
    CourseAttendanceRecord,
    DaywiseEntry,
    NormalizationReport,
    ScheduleEntry,
    StudentProfile,
)

logger = logging.getLogger(__name__)

PLACEHOLDER = "-"

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

_DATE_FORMATS = ("%d/%m/%Y", "%Y-%m-%d", "%d-%m-%Y", "%Y/%m/%d")

# "01/12/2025 : 02:20 PM - 03:10 PM" -> leading "01/12/2025 :"
_LEADING_DATE = re.compile(r"^\s*\d{1,4}[/-]\d{1,2}[/-]\d{1,4}\s*:?\s*")

_PRESENT_WORDS = {"present", "p", "attended"}
_ABSENT_WORDS = {"absent", "a"}

# Upstream field names, in order of preference
_TOTAL_KEYS = ("numberOfPeriods", "totalClasses", "total")
_PRESENT_KEYS = ("numberOfPresent", "presentClasses", "present")
_COMPONENT_LIST_KEYS = ("attendanceCourseComponentNameInfoList", "components")
_COURSE_LIST_KEYS = ("attendanceCourseComponentInfoList", "courses")


# -----------------------------
# Field helpers
# -----------------------------

def _first(row: t.Mapping[str, t.Any], keys: t.Iterable[str], default: t.Any = None) -> t.Any:
    for key in keys:
        if row.get(key) is not None:
            return row[key]
    return default


def _text(value: t.Any) -> str:
    if value is None:
        return PLACEHOLDER
    text = str(value).strip()
    return text or PLACEHOLDER


def _optional_text(value: t.Any) -> t.Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _to_id(value: t.Any) -> t.Optional[int]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _to_count(value: t.Any, field_name: str) -> int:
    """Parse a class counter. Missing counts are 0; garbage is a shape error."""
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        raise DataShapeError(f"{field_name} is a boolean, expected a number")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise DataShapeError(f"{field_name}={value!r} is not a whole number")
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            raise DataShapeError(f"{field_name}={value!r} is not numeric")
    raise DataShapeError(f"{field_name} has unexpected type {type(value).__name__}")


def _is_blank(value: t.Optional[str]) -> bool:
    return not value or value == PLACEHOLDER


def parse_portal_date(value: t.Any) -> t.Optional[date]:
    """
    Parse the date formats the portal is known to emit.

    Accepts "DD/MM/YYYY", "YYYY-MM-DD" (optionally followed by a time part) and
    epoch milliseconds. Anything else yields None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc).date()
        except (OverflowError, OSError, ValueError):
            return None
    text = str(value).strip()
    if not text:
        return None
    token = re.split(r"[T ]", text, maxsplit=1)[0]
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(token, fmt).date()
        except ValueError:
            continue
    return None


def weekday_name(day: t.Optional[date]) -> t.Optional[str]:
    if day is None:
        return None
    return WEEKDAYS[day.weekday()]


def extract_time_range(date_time: t.Optional[str]) -> t.Optional[str]:
    """Drop the leading date token of "DD/MM/YYYY : HH:MM AM - HH:MM PM"."""
    if not date_time:
        return None
    time_range = _LEADING_DATE.sub("", date_time, count=1).strip()
    return time_range or None


def map_status(raw_status: t.Any) -> AttendanceStatus:
    """Map upstream attendance vocabulary onto a past-entry status."""
    word = str(raw_status or "").strip().lower()
    if word in _PRESENT_WORDS:
        return AttendanceStatus.PRESENT
    if word in _ABSENT_WORDS:
        return AttendanceStatus.ABSENT
    return AttendanceStatus.UNKNOWN


def _as_rows(raw: t.Any, list_keys: t.Iterable[str], what: str) -> list[t.Mapping[str, t.Any]]:
    """Accept either a bare list or a dict wrapping the list under a known key."""
    if raw is None:
        return []
    if isinstance(raw, t.Mapping):
        raw = _first(raw, list_keys, default=[])
    if not isinstance(raw, list):
        raise DataShapeError(f"{what} payload is a {type(raw).__name__}, expected a list")
    rows = []
    for row in raw:
        if not isinstance(row, t.Mapping):
            raise DataShapeError(f"{what} row is a {type(row).__name__}, expected an object")
        rows.append(row)
    return rows


# -----------------------------
# Summary
# -----------------------------

def normalize_student(raw: t.Any) -> StudentProfile:
    """Pick the profile subset out of the summary payload."""
    if not isinstance(raw, t.Mapping):
        return StudentProfile()
    return StudentProfile(
        full_name=_optional_text(raw.get("fullName")),
        registration_number=_optional_text(raw.get("registrationNumber")),
        branch_short_name=_optional_text(raw.get("branchShortName")),
        semester_name=_optional_text(raw.get("semesterName")),
        admission_batch_name=_optional_text(raw.get("admissionBatchName")),
    )


def _build_record(
    course: t.Mapping[str, t.Any],
    component: t.Mapping[str, t.Any],
    student_id: t.Optional[int],
    session_id: t.Optional[int],
) -> CourseAttendanceRecord:
    total = _to_count(_first(component, _TOTAL_KEYS), "totalClasses")
    present = _to_count(_first(component, _PRESENT_KEYS), "presentClasses")
    return CourseAttendanceRecord(
        course_code=_text(_first(component, ("courseCode",), course.get("courseCode"))),
        course_name=_text(_first(component, ("courseName",), course.get("courseName"))),
        component_name=_text(component.get("componentName")),
        total_classes=total,
        present_classes=present,
        # upstream percentage fields are never trusted
        percentage=percentage(total, present),
        course_component_id=_to_id(_first(component, ("courseComponentId", "courseCompId"))),
        course_id=_to_id(_first(component, ("courseId",), course.get("courseId"))),
        session_id=_to_id(_first(component, ("sessionId",), _first(course, ("sessionId",), session_id))),
        student_id=_to_id(_first(component, ("studentId",), _first(course, ("studentId",), student_id))),
    )


def normalize_course_list(
    raw: t.Any,
    report: t.Optional[NormalizationReport] = None,
) -> list[CourseAttendanceRecord]:
    """
    Flatten the summary payload into one record per course component.

    `raw` is either the portal summary object (courses with nested component
    lists) or a flat list of course-component rows. Rows with negative counts
    or more presents than classes are dropped and counted in `report`.

    Non-numeric counts raise DataShapeError. When a report is supplied the
    offending row is skipped and recorded instead, so the caller still gets a
    partial result.
    """
    student_id = session_id = None
    if isinstance(raw, t.Mapping):
        student_id = _to_id(raw.get("studentId"))
        session_id = _to_id(raw.get("sessionId"))

    records: list[CourseAttendanceRecord] = []
    for course in _as_rows(raw, _COURSE_LIST_KEYS, "course list"):
        nested = _first(course, _COMPONENT_LIST_KEYS)
        if nested is None:
            # flat rows carry their own counters
            components = [course]
        else:
            try:
                components = _as_rows(nested, (), "component list")
            except DataShapeError as e:
                if report is None:
                    raise
                logger.warning("Skipping course %s: %s", course.get("courseCode"), e)
                report.drop(f"{course.get('courseCode') or PLACEHOLDER}: {e}")
                continue

        for component in components:
            try:
                record = _build_record(course, component, student_id, session_id)
            except DataShapeError as e:
                if report is None:
                    raise
                logger.warning("Skipping course row %s: %s", course.get("courseCode"), e)
                report.drop(f"{course.get('courseCode') or PLACEHOLDER}: {e}")
                continue

            if record.total_classes < 0 or record.present_classes < 0:
                reason = f"{record.course_code}: negative class count"
            elif record.present_classes > record.total_classes:
                reason = f"{record.course_code}: more presents than classes"
            else:
                records.append(record)
                continue

            logger.warning("Dropping invalid course row (%s)", reason)
            if report is not None:
                report.drop(reason)

    return records


def normalize_snapshot(raw: t.Any) -> AttendanceSnapshot:
    """Student profile plus course records, tolerating bad rows."""
    report = NormalizationReport()
    courses = normalize_course_list(raw, report)
    return AttendanceSnapshot(
        student=normalize_student(raw),
        courses=courses,
        skipped=report.dropped,
    )


# -----------------------------
# Daywise
# -----------------------------

def normalize_daywise(raw: t.Any) -> list[DaywiseEntry]:
    """Past per-day attendance for one course component."""
    entries: list[DaywiseEntry] = []
    for row in _as_rows(raw, ("entries", "lectureList"), "daywise"):
        day = parse_portal_date(_first(row, ("lectureDate", "date", "planLectureDate")))
        time_slot = _optional_text(row.get("timeSlot")) or extract_time_range(
            _optional_text(row.get("dateTime"))
        )
        entries.append(
            DaywiseEntry(
                date=day,
                weekday=_optional_text(_first(row, ("dayName", "day"))) or weekday_name(day),
                time_slot=time_slot,
                status=map_status(_first(row, ("attendance", "status"))),
                is_upcoming=False,
            )
        )
    return entries


# -----------------------------
# Schedule
# -----------------------------

def normalize_schedule_rows(raw: t.Any) -> list[ScheduleEntry]:
    """Canonical raw schedule rows, unfiltered."""
    rows: list[ScheduleEntry] = []
    for row in _as_rows(raw, ("classes", "schedule"), "schedule"):
        rows.append(
            ScheduleEntry(
                course_name=_text(row.get("courseName")),
                course_code=_text(row.get("courseCode")),
                lecture_date=_optional_text(row.get("lectureDate")) or "",
                date_time=_optional_text(row.get("dateTime")) or "",
                room=_optional_text(_first(row, ("classRoom", "roomName", "room"))),
            )
        )
    return rows


def matches_course(row: ScheduleEntry, course_code: t.Optional[str], course_name: t.Optional[str]) -> bool:
    """Case-insensitive code/name match, substring or exact."""
    target_code = "" if _is_blank(course_code) else course_code.lower()
    target_name = "" if _is_blank(course_name) else course_name.lower()
    row_code = "" if _is_blank(row.course_code) else row.course_code.lower()
    row_name = "" if _is_blank(row.course_name) else row.course_name.lower()
    return bool(
        (target_code and target_code in row_code)
        or (target_name and target_name in row_name)
        or (target_name and target_name == row_name)
    )


def normalize_schedule(raw: t.Any, target_course: CourseAttendanceRecord) -> list[DaywiseEntry]:
    """
    Upcoming classes of one course, as Scheduled daywise entries.

    `raw` may be the portal schedule payload or already-normalized rows.
    """
    if isinstance(raw, list) and all(isinstance(row, ScheduleEntry) for row in raw):
        rows = raw
    else:
        rows = normalize_schedule_rows(raw)

    entries: list[DaywiseEntry] = []
    for row in rows:
        if not matches_course(row, target_course.course_code, target_course.course_name):
            continue
        day = parse_portal_date(row.lecture_date)
        entries.append(
            DaywiseEntry(
                date=day,
                weekday=weekday_name(day),
                time_slot=extract_time_range(row.date_time),
                status=AttendanceStatus.SCHEDULED,
                is_upcoming=True,
            )
        )
    return entries
