"""
MCP wrapper for the attendance service.

Exposes the attendance operations as MCP tools that make HTTP calls to the
attendance service. Credentials are passed through in the request body for
each call and are not kept by the wrapper.
"""
from __future__ import annotations

import os
import typing as t

import requests
from fastmcp import FastMCP
from pydantic import BaseModel

from services.shared.models import (
    CourseRef,
    DaywiseRequest,
    DaywiseResponse,
    PlannedMiss,
    PortalCredentials,
    ProjectionRequest,
    ProjectionResponse,
    ScheduleRequest,
    ScheduleResponse,
    SummaryRequest,
    SummaryResponse,
    TimelineRequest,
    TimelineResponse,
)


mcp = FastMCP("AttendanceMCPWrapper")

# Service URL - configurable via environment variable
ATTENDANCE_SERVICE_URL = os.getenv("ATTENDANCE_SERVICE_URL", "http://localhost:8003")

# Timeout settings (in seconds); the service itself retries the portal
FETCH_TIMEOUT = 60.0  # covers login, retries and one data request
TIMELINE_TIMEOUT = 120.0  # two portal operations back to back

ResponseT = t.TypeVar("ResponseT", bound=BaseModel)


def _service_detail(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict) and "detail" in body:
        code = body.get("code")
        return f"{body['detail']} ({code})" if code else str(body["detail"])
    return response.text


def _post(path: str, request: BaseModel, response_model: type[ResponseT], timeout: float) -> ResponseT:
    """POST a request model to the attendance service and parse the answer."""
    try:
        # Using requests so the tools can run under asyncio.to_thread()
        response = requests.post(
            f"{ATTENDANCE_SERVICE_URL}{path}",
            # SecretStr dumps masked by default; the service needs the real value
            data=request.model_dump_json(context={"reveal_secrets": True}),
            headers={"Content-Type": "application/json"},
            timeout=timeout,
        )
        response.raise_for_status()
        return response_model(**response.json())

    except requests.Timeout:
        raise RuntimeError(f"Attendance service call {path} timed out after {timeout} seconds")
    except requests.HTTPError as e:
        raise RuntimeError(
            f"HTTP error from attendance service: {e.response.status_code} {_service_detail(e.response)}"
        )
    except requests.RequestException as e:
        raise RuntimeError(f"Error calling attendance service: {type(e).__name__}")


def _credentials(portal_id: str, secret: str) -> PortalCredentials:
    return PortalCredentials(portal_id=portal_id, secret=secret)


def _fetch_attendance_summary(portal_id: str, secret: str, target: float = 75.0) -> SummaryResponse:
    request = SummaryRequest(credentials=_credentials(portal_id, secret), target=target)
    return _post("/attendance/summary", request, SummaryResponse, FETCH_TIMEOUT)


def _fetch_daywise_attendance(
    portal_id: str,
    secret: str,
    course_component_id: int,
    course_id: int,
    student_id: int,
    session_id: t.Optional[int] = None,
) -> DaywiseResponse:
    request = DaywiseRequest(
        credentials=_credentials(portal_id, secret),
        course_component_id=course_component_id,
        course_id=course_id,
        session_id=session_id,
        student_id=student_id,
    )
    return _post("/attendance/daywise", request, DaywiseResponse, FETCH_TIMEOUT)


def _fetch_class_schedule(
    portal_id: str,
    secret: str,
    start: t.Optional[str] = None,
    end: t.Optional[str] = None,
) -> ScheduleResponse:
    request = ScheduleRequest(credentials=_credentials(portal_id, secret), start=start, end=end)
    return _post("/attendance/schedule", request, ScheduleResponse, FETCH_TIMEOUT)


def _fetch_course_timeline(portal_id: str, secret: str, course: CourseRef, days: int = 30) -> TimelineResponse:
    request = TimelineRequest(credentials=_credentials(portal_id, secret), course=course, days=days)
    return _post("/attendance/timeline", request, TimelineResponse, TIMELINE_TIMEOUT)


def _project_attendance(
    portal_id: str,
    secret: str,
    planned_misses: dict[str, int],
    target: float = 75.0,
) -> ProjectionResponse:
    request = ProjectionRequest(
        credentials=_credentials(portal_id, secret),
        target=target,
        planned_misses=[PlannedMiss(key=key, planned_misses=n) for key, n in planned_misses.items()],
    )
    return _post("/attendance/projection", request, ProjectionResponse, FETCH_TIMEOUT)


# MCP tool wrappers that call the raw functions
@mcp.tool()
def fetch_attendance_summary(portal_id: str, secret: str, target: float = 75.0) -> SummaryResponse:
    """Per-course attendance with safe/at-risk status, bunk allowance and classes to attend."""
    return _fetch_attendance_summary(portal_id, secret, target)


@mcp.tool()
def fetch_daywise_attendance(
    portal_id: str,
    secret: str,
    course_component_id: int,
    course_id: int,
    student_id: int,
    session_id: t.Optional[int] = None,
) -> DaywiseResponse:
    """Past day-by-day attendance of one course component, most recent first."""
    return _fetch_daywise_attendance(portal_id, secret, course_component_id, course_id, student_id, session_id)


@mcp.tool()
def fetch_class_schedule(
    portal_id: str,
    secret: str,
    start: t.Optional[str] = None,
    end: t.Optional[str] = None,
) -> ScheduleResponse:
    """Class schedule between two YYYY-MM-DD dates; defaults to the current week."""
    return _fetch_class_schedule(portal_id, secret, start, end)


@mcp.tool()
def fetch_course_timeline(portal_id: str, secret: str, course: CourseRef, days: int = 30) -> TimelineResponse:
    """Past attendance followed by upcoming classes of one course."""
    return _fetch_course_timeline(portal_id, secret, course, days)


@mcp.tool()
def project_attendance(
    portal_id: str,
    secret: str,
    planned_misses: dict[str, int],
    target: float = 75.0,
) -> ProjectionResponse:
    """What-if projection: planned misses per course key against a target percentage."""
    return _project_attendance(portal_id, secret, planned_misses, target)


if __name__ == "__main__":
    mcp.run()
