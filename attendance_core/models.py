"""
Data models for attendance aggregation and projection.

This module contains the dataclasses used to represent canonical attendance
records, day-by-day entries, raw schedule rows and projection results. None of
these objects outlive the request that created them.
"""
from __future__ import annotations

from dataclasses import dataclass, field
import datetime as dt
from enum import Enum
from typing import Any, List, Optional


class AttendanceStatus(str, Enum):
    """Canonical status of one daywise entry."""
    PRESENT = "Present"
    ABSENT = "Absent"
    SCHEDULED = "Scheduled"
    UNKNOWN = "Unknown"


class PortalOperation(str, Enum):
    """Operations the portal broker knows how to fetch."""
    SUMMARY = "summary"
    DAYWISE = "daywise"
    SCHEDULE = "schedule"


@dataclass(frozen=True)
class Credentials:
    """
    Portal login for a single request.

    The secret is kept out of repr() so it never ends up in tracebacks or logs.
    """
    portal_id: str
    secret: str = field(repr=False)

    @property
    def masked_id(self) -> str:
        if len(self.portal_id) <= 4:
            return "****"
        return f"{self.portal_id[:2]}***{self.portal_id[-2:]}"


@dataclass
class StudentProfile:
    """Subset of the portal profile returned with the summary."""
    full_name: Optional[str] = None
    registration_number: Optional[str] = None
    branch_short_name: Optional[str] = None
    semester_name: Optional[str] = None
    admission_batch_name: Optional[str] = None


@dataclass
class CourseAttendanceRecord:
    """
    Attendance counters for one course component, e.g.:
    - "KCS501 Database Management System, LECTURE, 28/40"
    """
    course_code: str = "-"
    course_name: str = "-"
    component_name: str = "-"
    total_classes: int = 0
    present_classes: int = 0
    percentage: float = 0.0
    course_component_id: Optional[int] = None
    course_id: Optional[int] = None
    session_id: Optional[int] = None
    student_id: Optional[int] = None

    @property
    def course_key(self) -> str:
        """Stable key used to attach planned misses to this record."""
        code = self.course_code if self.course_code not in ("", "-") else None
        prefix = code or (str(self.course_id) if self.course_id is not None else "C")
        component = self.component_name if self.component_name != "-" else ""
        return f"{prefix}-{component}"

    @property
    def absent_classes(self) -> int:
        return self.total_classes - self.present_classes


@dataclass
class DaywiseEntry:
    """
    One calendar day's attendance, or one upcoming scheduled class.
    """
    date: Optional[dt.date] = None
    weekday: Optional[str] = None                  # "Monday"
    time_slot: Optional[str] = None                # "02:20 PM - 03:10 PM"
    status: AttendanceStatus = AttendanceStatus.UNKNOWN
    is_upcoming: bool = False


@dataclass
class ScheduleEntry:
    """
    One raw row of the weekly class schedule as the portal reports it.
    """
    course_name: str = "-"
    course_code: str = "-"
    lecture_date: str = ""      # "DD/MM/YYYY"
    date_time: str = ""         # "DD/MM/YYYY : 02:20 PM - 03:10 PM"
    room: Optional[str] = None


@dataclass
class ProjectionInput:
    """Planned additional misses for one course component."""
    key: str
    planned_misses: int = 0


@dataclass
class ProjectionResult:
    """Outcome of a what-if projection for one course component."""
    record: CourseAttendanceRecord
    planned_misses: int
    projected_percentage: float
    is_safe: bool
    max_additional_safe_misses: int


@dataclass
class AttendanceSnapshot:
    """Aggregate of one summary fetch. Never persisted."""
    student: StudentProfile = field(default_factory=StudentProfile)
    courses: List[CourseAttendanceRecord] = field(default_factory=list)
    skipped: int = 0


@dataclass
class RawPayload:
    """Unwrapped `data` envelope of a single portal response."""
    operation: PortalOperation
    data: Any


@dataclass
class NormalizationReport:
    """Rows dropped while normalizing one payload, with reasons."""
    dropped: int = 0
    reasons: List[str] = field(default_factory=list)

    def drop(self, reason: str) -> None:
        self.dropped += 1
        self.reasons.append(reason)
