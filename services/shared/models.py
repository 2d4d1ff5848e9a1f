"""
Shared Pydantic models for REST API serialization.

This module contains the Pydantic equivalents of the attendance dataclasses,
plus the request/response envelopes of the attendance service. Field names and
types here are the stable contract for the presentation layer, whatever shape
the upstream portal happens to use.
"""
from __future__ import annotations

import typing as t
import datetime as dt

from pydantic import BaseModel, ConfigDict, Field, SecretStr, SerializationInfo, field_serializer


# Type literals for commonly used values
AttendanceStatus = t.Literal["Present", "Absent", "Scheduled", "Unknown"]
AttendanceBand = t.Literal["safe", "warning", "danger"]


class PortalCredentials(BaseModel):
    """
    Portal login supplied with every request.
    Used for one portal session and then dropped; never stored.
    """
    model_config = ConfigDict(hide_input_in_errors=True)

    portal_id: str = Field(min_length=1)
    secret: SecretStr

    @field_serializer("secret", when_used="json")
    def _dump_secret(self, value: SecretStr, info: SerializationInfo) -> str:
        # masked unless the caller forwards the request on purpose
        if info.context and info.context.get("reveal_secrets"):
            return value.get_secret_value()
        return str(value)


class StudentProfile(BaseModel):
    """Subset of the student profile shown next to the summary."""
    full_name: t.Optional[str] = None
    registration_number: t.Optional[str] = None
    branch_short_name: t.Optional[str] = None
    semester_name: t.Optional[str] = None
    admission_batch_name: t.Optional[str] = None


class CourseAttendanceRecord(BaseModel):
    """
    Attendance counters for one course component.
    """
    course_code: str = "-"
    course_name: str = "-"
    component_name: str = "-"
    total_classes: int = 0
    present_classes: int = 0
    percentage: float = 0.0
    course_component_id: t.Optional[int] = None
    course_id: t.Optional[int] = None
    session_id: t.Optional[int] = None
    student_id: t.Optional[int] = None


class CourseSummary(CourseAttendanceRecord):
    """A course record together with its metrics against the requested target."""
    course_key: str
    is_safe: bool
    band: AttendanceBand
    bunk_allowance: int
    classes_to_attend: t.Optional[int] = None   # None: target can no longer be reached
    target_reachable: bool = True


class DaywiseEntry(BaseModel):
    """One past attendance day, or one upcoming scheduled class."""
    date: t.Optional[dt.date] = None
    weekday: t.Optional[str] = None
    time_slot: t.Optional[str] = None
    status: AttendanceStatus = "Unknown"
    is_upcoming: bool = False


class ScheduleEntry(BaseModel):
    """One raw schedule row."""
    course_name: str = "-"
    course_code: str = "-"
    lecture_date: str = ""      # "DD/MM/YYYY"
    date_time: str = ""         # "DD/MM/YYYY : HH:MM AM - HH:MM PM"
    room: t.Optional[str] = None


class PlannedMiss(BaseModel):
    """Planned additional misses for one course component."""
    key: str
    planned_misses: int = Field(default=0, ge=0)


class ProjectionResult(BaseModel):
    """Projected outcome for one course component."""
    record: CourseAttendanceRecord
    course_key: str
    planned_misses: int
    projected_percentage: float
    is_safe: bool
    max_additional_safe_misses: int


# Request/Response Models for API endpoints
class SummaryRequest(BaseModel):
    """Request model for the attendance summary."""
    credentials: PortalCredentials
    target: float = Field(default=75.0, ge=1, le=100)


class SummaryResponse(BaseModel):
    """Response model for the attendance summary."""
    student: StudentProfile
    courses: list[CourseSummary] = Field(default_factory=list)
    overall_percentage: float = 0.0
    target: float
    skipped: int = 0
    degraded: bool = False


class DaywiseRequest(BaseModel):
    """
    Request model for daywise attendance.
    The correlation ids come from a CourseAttendanceRecord of the summary.
    """
    credentials: PortalCredentials
    course_component_id: t.Optional[int] = None
    course_id: t.Optional[int] = None
    session_id: t.Optional[int] = None
    student_id: t.Optional[int] = None


class DaywiseResponse(BaseModel):
    """Response model for daywise attendance, most recent first."""
    entries: list[DaywiseEntry] = Field(default_factory=list)


class ScheduleRequest(BaseModel):
    """Request model for the class schedule. Defaults to the current week."""
    credentials: PortalCredentials
    start: t.Optional[dt.date] = None
    end: t.Optional[dt.date] = None


class ScheduleResponse(BaseModel):
    """Response model for the class schedule."""
    start: dt.date
    end: dt.date
    rows: list[ScheduleEntry] = Field(default_factory=list)


class CourseRef(BaseModel):
    """Identifies the course a timeline is built for."""
    course_code: str = "-"
    course_name: str = "-"
    component_name: str = "-"
    course_component_id: t.Optional[int] = None
    course_id: t.Optional[int] = None
    session_id: t.Optional[int] = None
    student_id: t.Optional[int] = None


class TimelineRequest(BaseModel):
    """Request model for a merged past + upcoming timeline of one course."""
    credentials: PortalCredentials
    course: CourseRef
    days: int = Field(default=30, ge=1, le=180)


class TimelineResponse(BaseModel):
    """Response model for a merged timeline: past block, then upcoming block."""
    entries: list[DaywiseEntry] = Field(default_factory=list)


class ProjectionRequest(BaseModel):
    """Request model for a what-if projection."""
    credentials: PortalCredentials
    target: float = Field(default=75.0, ge=1, le=100)
    planned_misses: list[PlannedMiss] = Field(default_factory=list)


class ProjectionResponse(BaseModel):
    """Response model for a what-if projection."""
    target: float
    results: list[ProjectionResult] = Field(default_factory=list)


class ExportRequest(BaseModel):
    """Request model for the CSV export."""
    credentials: PortalCredentials


class ErrorResponse(BaseModel):
    """Body of every error answer of the attendance service."""
    detail: str
    code: str
