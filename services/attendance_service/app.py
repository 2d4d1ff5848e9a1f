"""
FastAPI service for attendance aggregation and projection.

Every endpoint takes the portal credentials in the request body, opens its own
portal session(s) through the broker and returns canonical JSON. Nothing is
cached or stored between requests.
"""
from __future__ import annotations

import asyncio
import logging
import typing as t
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import date

import httpx
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

from attendance_core import aggregator
from attendance_core.errors import (
    AttendanceError,
    AuthenticationFailed,
    DataShapeError,
    PortalShapeChanged,
    PortalUnavailable,
    ValidationError,
)
from attendance_core.export import export_csv, export_filename
from attendance_core.metrics import overall_percentage, summarize_record
from attendance_core.models import (
    CourseAttendanceRecord,
    Credentials,
    DaywiseEntry,
    ProjectionInput,
    ProjectionResult,
)
from attendance_core.settings import LOG_LEVEL, PortalSettings
from attendance_core.timeline import week_bounds
from services.shared.models import (
    CourseAttendanceRecord as PydanticCourseAttendanceRecord,
    CourseSummary,
    DaywiseEntry as PydanticDaywiseEntry,
    DaywiseRequest,
    DaywiseResponse,
    ErrorResponse,
    ExportRequest,
    PortalCredentials,
    ProjectionRequest,
    ProjectionResponse,
    ProjectionResult as PydanticProjectionResult,
    ScheduleEntry as PydanticScheduleEntry,
    ScheduleRequest,
    ScheduleResponse,
    StudentProfile as PydanticStudentProfile,
    SummaryRequest,
    SummaryResponse,
    TimelineRequest,
    TimelineResponse,
)

logger = logging.getLogger(__name__)

T = t.TypeVar("T")

# How often a pending portal call checks whether the client went away (seconds)
DISCONNECT_POLL_INTERVAL = 0.25

_ERROR_STATUS: list[tuple[type[AttendanceError], int]] = [
    (ValidationError, 422),
    (AuthenticationFailed, 401),
    (PortalUnavailable, 503),
    (PortalShapeChanged, 502),
    (DataShapeError, 502),
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Nothing to initialize: the service holds no sessions or caches."""
    logger.info("Attendance service starting")
    yield
    logger.info("Attendance service shutting down")


app = FastAPI(
    title="Attendance Service",
    description="REST API for portal attendance summaries, timelines and projections",
    version="1.0.0",
    lifespan=lifespan,
)


# -----------------------------
# Dependencies
# -----------------------------

def get_portal_settings() -> PortalSettings:
    return PortalSettings.from_env()


def get_portal_transport() -> t.Optional[httpx.AsyncBaseTransport]:
    """Transport for the portal client; overridden in tests to hit the mock portal."""
    return None


@app.exception_handler(AttendanceError)
async def attendance_error_handler(request: Request, exc: AttendanceError) -> JSONResponse:
    """Map the error taxonomy onto HTTP status codes."""
    status_code = next((code for cls, code in _ERROR_STATUS if isinstance(exc, cls)), 500)
    if status_code >= 500:
        logger.error("%s on %s: %s", exc.code, request.url.path, exc)
    body = ErrorResponse(detail=exc.user_message, code=exc.code)
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """FastAPI's 422 body without the offending input, which may hold the secret."""
    errors = [{key: value for key, value in error.items() if key != "input"} for error in exc.errors()]
    return JSONResponse(status_code=422, content={"detail": jsonable_encoder(errors)})


async def _unless_disconnected(request: Request, awaitable: t.Awaitable[T]) -> T:
    """Await the portal flow, cancelling it if the client goes away first."""
    task = asyncio.ensure_future(awaitable)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=DISCONNECT_POLL_INTERVAL)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.info("Client disconnected from %s; abandoning portal call", request.url.path)
                task.cancel()
                raise HTTPException(status_code=499, detail="Client closed request")
    finally:
        if not task.done():
            task.cancel()


# -----------------------------
# Conversion helpers
# -----------------------------

def _credentials(credentials: PortalCredentials) -> Credentials:
    return Credentials(portal_id=credentials.portal_id.strip(), secret=credentials.secret.get_secret_value())


def _record_out(record: CourseAttendanceRecord) -> PydanticCourseAttendanceRecord:
    return PydanticCourseAttendanceRecord(**asdict(record))


def _course_summary(record: CourseAttendanceRecord, target: float) -> CourseSummary:
    data = {**asdict(record), **summarize_record(record, target), "course_key": record.course_key}
    return CourseSummary(**data)


def _entry_out(entry: DaywiseEntry) -> PydanticDaywiseEntry:
    return PydanticDaywiseEntry(
        date=entry.date,
        weekday=entry.weekday,
        time_slot=entry.time_slot,
        status=entry.status.value,
        is_upcoming=entry.is_upcoming,
    )


def _projection_out(result: ProjectionResult) -> PydanticProjectionResult:
    return PydanticProjectionResult(
        record=_record_out(result.record),
        course_key=result.record.course_key,
        planned_misses=result.planned_misses,
        projected_percentage=result.projected_percentage,
        is_safe=result.is_safe,
        max_additional_safe_misses=result.max_additional_safe_misses,
    )


# -----------------------------
# Endpoints
# -----------------------------

@app.get("/health")
async def health_check():
    """Health check endpoint for container orchestration."""
    return {"status": "healthy", "service": "attendance-service"}


@app.post("/attendance/summary", response_model=SummaryResponse)
async def attendance_summary(
    request: Request,
    body: SummaryRequest,
    settings: PortalSettings = Depends(get_portal_settings),
    transport: t.Optional[httpx.AsyncBaseTransport] = Depends(get_portal_transport),
) -> SummaryResponse:
    """Student profile and per-course attendance with metrics against the target."""
    snapshot = await _unless_disconnected(
        request,
        aggregator.fetch_snapshot(_credentials(body.credentials), settings=settings, transport=transport),
    )
    return SummaryResponse(
        student=PydanticStudentProfile(**asdict(snapshot.student)),
        courses=[_course_summary(record, body.target) for record in snapshot.courses],
        overall_percentage=overall_percentage(snapshot.courses),
        target=body.target,
        skipped=snapshot.skipped,
        degraded=snapshot.skipped > 0,
    )


@app.post("/attendance/daywise", response_model=DaywiseResponse)
async def attendance_daywise(
    request: Request,
    body: DaywiseRequest,
    settings: PortalSettings = Depends(get_portal_settings),
    transport: t.Optional[httpx.AsyncBaseTransport] = Depends(get_portal_transport),
) -> DaywiseResponse:
    """Past attendance of one course component, most recent first."""
    course = CourseAttendanceRecord(
        course_component_id=body.course_component_id,
        course_id=body.course_id,
        session_id=body.session_id,
        student_id=body.student_id,
    )
    entries = await _unless_disconnected(
        request,
        aggregator.fetch_daywise(_credentials(body.credentials), course, settings=settings, transport=transport),
    )
    return DaywiseResponse(entries=[_entry_out(entry) for entry in entries])


@app.post("/attendance/schedule", response_model=ScheduleResponse)
async def attendance_schedule(
    request: Request,
    body: ScheduleRequest,
    settings: PortalSettings = Depends(get_portal_settings),
    transport: t.Optional[httpx.AsyncBaseTransport] = Depends(get_portal_transport),
) -> ScheduleResponse:
    """Raw class schedule rows; defaults to the current week."""
    start, end = body.start, body.end
    if start is None and end is None:
        start, end = week_bounds(date.today())
    rows = await _unless_disconnected(
        request,
        aggregator.fetch_schedule(
            _credentials(body.credentials), start, end, settings=settings, transport=transport
        ),
    )
    return ScheduleResponse(
        start=start,
        end=end,
        rows=[PydanticScheduleEntry(**asdict(row)) for row in rows],
    )


@app.post("/attendance/timeline", response_model=TimelineResponse)
async def attendance_timeline(
    request: Request,
    body: TimelineRequest,
    settings: PortalSettings = Depends(get_portal_settings),
    transport: t.Optional[httpx.AsyncBaseTransport] = Depends(get_portal_transport),
) -> TimelineResponse:
    """Past attendance followed by the upcoming classes of one course."""
    course = CourseAttendanceRecord(**body.course.model_dump())
    entries = await _unless_disconnected(
        request,
        aggregator.fetch_course_timeline(
            _credentials(body.credentials), course, days=body.days, settings=settings, transport=transport
        ),
    )
    return TimelineResponse(entries=[_entry_out(entry) for entry in entries])


@app.post("/attendance/projection", response_model=ProjectionResponse)
async def attendance_projection(
    request: Request,
    body: ProjectionRequest,
    settings: PortalSettings = Depends(get_portal_settings),
    transport: t.Optional[httpx.AsyncBaseTransport] = Depends(get_portal_transport),
) -> ProjectionResponse:
    """What-if projection of planned misses against one shared target."""
    planned = [ProjectionInput(key=item.key, planned_misses=item.planned_misses) for item in body.planned_misses]
    _, results = await _unless_disconnected(
        request,
        aggregator.fetch_projection(
            _credentials(body.credentials), planned, body.target, settings=settings, transport=transport
        ),
    )
    return ProjectionResponse(target=body.target, results=[_projection_out(result) for result in results])


@app.post("/attendance/export")
async def attendance_export(
    request: Request,
    body: ExportRequest,
    settings: PortalSettings = Depends(get_portal_settings),
    transport: t.Optional[httpx.AsyncBaseTransport] = Depends(get_portal_transport),
) -> Response:
    """Attendance summary as a CSV download."""
    snapshot = await _unless_disconnected(
        request,
        aggregator.fetch_snapshot(_credentials(body.credentials), settings=settings, transport=transport),
    )
    filename = export_filename(date.today())
    return Response(
        content=export_csv(snapshot.courses),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=LOG_LEVEL)
    uvicorn.run(app, host="0.0.0.0", port=8003)
