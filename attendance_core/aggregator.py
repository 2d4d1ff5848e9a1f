"""
Request-level flows: authenticate, fetch, normalize, compute.

Each function serves exactly one inbound request and keeps nothing between
calls. Broker and normalizer errors propagate unchanged to the caller.
"""
from __future__ import annotations

import logging
import typing as t
from datetime import date

import httpx

from .errors import DataShapeError
from .models import (
    AttendanceSnapshot,
    CourseAttendanceRecord,
    Credentials,
    DaywiseEntry,
    PortalOperation,
    ProjectionResult,
    ScheduleEntry,
)
from .normalizer import normalize_daywise, normalize_schedule, normalize_schedule_rows, normalize_snapshot
from .portal import fetch_with_retries
from .projection import PlannedMisses, simulate, validate_target
from .settings import PortalSettings
from .timeline import UPCOMING_WINDOW_DAYS, merge_timeline, sort_past, upcoming_window, week_bounds

logger = logging.getLogger(__name__)


def _log_shape_error(operation: PortalOperation, error: DataShapeError) -> None:
    logger.error("Could not normalize %s payload: %s", operation.value, error)


async def fetch_snapshot(
    credentials: Credentials,
    settings: t.Optional[PortalSettings] = None,
    transport: t.Optional[httpx.AsyncBaseTransport] = None,
) -> AttendanceSnapshot:
    """Student profile and per-course counters."""
    payload = await fetch_with_retries(credentials, PortalOperation.SUMMARY, settings=settings, transport=transport)
    try:
        snapshot = normalize_snapshot(payload.data)
    except DataShapeError as e:
        _log_shape_error(PortalOperation.SUMMARY, e)
        raise
    if snapshot.skipped:
        logger.warning("Summary degraded: %d course row(s) skipped", snapshot.skipped)
    return snapshot


async def fetch_daywise(
    credentials: Credentials,
    course: CourseAttendanceRecord,
    settings: t.Optional[PortalSettings] = None,
    transport: t.Optional[httpx.AsyncBaseTransport] = None,
) -> list[DaywiseEntry]:
    """Past attendance of one course component, most recent first."""
    params = {
        "course_component_id": course.course_component_id,
        "course_id": course.course_id,
        "session_id": course.session_id,
        "student_id": course.student_id,
    }
    payload = await fetch_with_retries(
        credentials, PortalOperation.DAYWISE, params, settings=settings, transport=transport
    )
    try:
        entries = normalize_daywise(payload.data)
    except DataShapeError as e:
        _log_shape_error(PortalOperation.DAYWISE, e)
        raise
    return sort_past(entries)


async def fetch_schedule(
    credentials: Credentials,
    start: t.Optional[date] = None,
    end: t.Optional[date] = None,
    today: t.Optional[date] = None,
    settings: t.Optional[PortalSettings] = None,
    transport: t.Optional[httpx.AsyncBaseTransport] = None,
) -> list[ScheduleEntry]:
    """Raw schedule rows between start and end (default: the current week)."""
    if start is None and end is None:
        start, end = week_bounds(today or date.today())
    payload = await fetch_with_retries(
        credentials,
        PortalOperation.SCHEDULE,
        {"start": start, "end": end},
        settings=settings,
        transport=transport,
    )
    try:
        return normalize_schedule_rows(payload.data)
    except DataShapeError as e:
        _log_shape_error(PortalOperation.SCHEDULE, e)
        raise


async def fetch_course_timeline(
    credentials: Credentials,
    course: CourseAttendanceRecord,
    days: int = UPCOMING_WINDOW_DAYS,
    today: t.Optional[date] = None,
    settings: t.Optional[PortalSettings] = None,
    transport: t.Optional[httpx.AsyncBaseTransport] = None,
) -> list[DaywiseEntry]:
    """
    Past attendance followed by upcoming classes of one course.

    Runs two portal operations back to back, each with its own session.
    """
    past = await fetch_daywise(credentials, course, settings=settings, transport=transport)
    start, end = upcoming_window(today or date.today(), days)
    rows = await fetch_schedule(credentials, start, end, settings=settings, transport=transport)
    upcoming = normalize_schedule(rows, course)
    return merge_timeline(past, upcoming)


async def fetch_projection(
    credentials: Credentials,
    projection_inputs: t.Optional[PlannedMisses],
    target: float,
    settings: t.Optional[PortalSettings] = None,
    transport: t.Optional[httpx.AsyncBaseTransport] = None,
) -> tuple[AttendanceSnapshot, list[ProjectionResult]]:
    """Fetch the current counters and project the planned misses on them."""
    validate_target(target)
    snapshot = await fetch_snapshot(credentials, settings=settings, transport=transport)
    return snapshot, simulate(snapshot.courses, projection_inputs, target)
