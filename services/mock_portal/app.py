"""
Mock academic portal for testing without a real student account.

Serves the login, summary, daywise and schedule endpoints at the paths the
broker expects, with small predictable payloads in the portal's own wire
shape. Point PORTAL_BASE_URL at this app, or mount it on an httpx
ASGITransport in tests.
"""
from __future__ import annotations

import logging
import os
import typing as t
from contextlib import asynccontextmanager
from datetime import date, timedelta

from fastapi import Body, FastAPI, Header, HTTPException
from fastapi.responses import JSONResponse

from attendance_core.settings import PortalSettings

logger = logging.getLogger(__name__)

MOCK_PORTAL_ID = os.getenv("MOCK_PORTAL_ID", "2100290100001")
MOCK_PORTAL_SECRET = os.getenv("MOCK_PORTAL_SECRET", "mock-password")
MOCK_TOKEN = "mock-session-token"

# Longest schedule range the mock will expand, in days
MAX_SCHEDULE_DAYS = 180

_paths = PortalSettings.from_env()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Mock lifespan - no initialization needed."""
    logger.info("Mock portal starting - no real portal calls will be made")
    yield
    logger.info("Mock portal shutting down")


app = FastAPI(
    title="Mock Academic Portal",
    description="Mock portal API for testing attendance aggregation",
    version="1.0.0-mock",
    lifespan=lifespan,
)


def _require_token(authorization: t.Optional[str]) -> None:
    if authorization != f"{_paths.auth_scheme} {MOCK_TOKEN}":
        raise HTTPException(status_code=401, detail="Session expired")


@app.get("/health")
async def health_check():
    """Health check endpoint for container orchestration."""
    return {"status": "healthy", "service": "mock-portal", "mode": "test"}


@app.post(_paths.login_path)
async def login(payload: dict[str, t.Any] = Body(...)):
    """Accept exactly one mock account."""
    if payload.get("userName") != MOCK_PORTAL_ID or payload.get("password") != MOCK_PORTAL_SECRET:
        return JSONResponse(status_code=401, content={"error": {"reason": "Invalid username or password"}})
    return {"data": {"token": MOCK_TOKEN}}


@app.get(_paths.summary_path)
async def attendance_summary(authorization: t.Optional[str] = Header(default=None)):
    """Student profile with nested course components."""
    _require_token(authorization)
    return {"data": _get_mock_summary()}


@app.post(_paths.daywise_path)
async def daywise_attendance(
    payload: dict[str, t.Any] = Body(...),
    authorization: t.Optional[str] = Header(default=None),
):
    """Past lectures of one course component; unknown components have none."""
    _require_token(authorization)
    lectures = _MOCK_LECTURES.get(payload.get("courseCompId"), [])
    return {"data": lectures}


@app.get(_paths.schedule_path)
async def class_schedule(
    weekStartDate: date,
    weekEndDate: date,
    authorization: t.Optional[str] = Header(default=None),
):
    """Weekday classes between the two dates, inclusive."""
    _require_token(authorization)
    if weekEndDate < weekStartDate:
        return JSONResponse(status_code=400, content={"message": "weekEndDate before weekStartDate"})
    return {"data": _get_mock_schedule(weekStartDate, weekEndDate)}


def _get_mock_summary() -> dict[str, t.Any]:
    """
    Summary payload in the portal's nested shape.

    The counters match the worked examples: DBMS lecture 28/40, DBMS practical
    5/10 and DAA lecture 90/100.
    """
    return {
        "fullName": "Mock Student",
        "registrationNumber": MOCK_PORTAL_ID,
        "branchShortName": "CSE",
        "semesterName": "V",
        "admissionBatchName": "2021-2025",
        "studentId": 1001,
        "sessionId": 37,
        "attendanceCourseComponentInfoList": [
            {
                "courseCode": "KCS501",
                "courseName": "Database Management System",
                "courseId": 11,
                "attendanceCourseComponentNameInfoList": [
                    {
                        "componentName": "LECTURE",
                        "courseComponentId": 111,
                        "numberOfPeriods": 40,
                        "numberOfPresent": 28,
                        "presentPercentage": 70.0,
                    },
                    {
                        "componentName": "PRACTICAL",
                        "courseComponentId": 112,
                        "numberOfPeriods": 10,
                        "numberOfPresent": 5,
                        "presentPercentage": 50.0,
                    },
                ],
            },
            {
                "courseCode": "KCS503",
                "courseName": "Design and Analysis of Algorithm",
                "courseId": 12,
                "attendanceCourseComponentNameInfoList": [
                    {
                        "componentName": "LECTURE",
                        "courseComponentId": 121,
                        "numberOfPeriods": 100,
                        "numberOfPresent": 90,
                        "presentPercentage": 90.0,
                    },
                ],
            },
        ],
    }


_MOCK_LECTURES: dict[t.Any, list[dict[str, t.Any]]] = {
    111: [
        {"planLectureDate": "01/12/2025", "dayName": "Monday",
         "dateTime": "01/12/2025 : 10:00 AM - 10:50 AM", "attendance": "PRESENT"},
        {"planLectureDate": "03/12/2025", "dayName": "Wednesday",
         "dateTime": "03/12/2025 : 10:00 AM - 10:50 AM", "attendance": "ABSENT"},
        {"planLectureDate": "02/12/2025", "dayName": "Tuesday",
         "dateTime": "02/12/2025 : 10:00 AM - 10:50 AM", "attendance": "PRESENT"},
    ],
    112: [
        {"planLectureDate": "04/12/2025", "dayName": "Thursday",
         "dateTime": "04/12/2025 : 02:20 PM - 04:00 PM", "attendance": "ABSENT"},
    ],
    121: [
        {"planLectureDate": "01/12/2025", "dayName": "Monday",
         "dateTime": "01/12/2025 : 02:20 PM - 03:10 PM", "attendance": "PRESENT"},
    ],
}

# (course code, course name, time range, room, weekdays)
_MOCK_TIMETABLE = [
    ("KCS501", "Database Management System", "10:00 AM - 10:50 AM", "CS-101", (0, 1, 2)),
    ("KCS501P", "Database Management System Lab", "02:20 PM - 04:00 PM", "LAB-3", (3,)),
    ("KCS503", "Design and Analysis of Algorithm", "02:20 PM - 03:10 PM", "CS-204", (0, 2, 4)),
]


def _get_mock_schedule(start: date, end: date) -> list[dict[str, t.Any]]:
    rows = []
    end = min(end, start + timedelta(days=MAX_SCHEDULE_DAYS))
    day = start
    while day <= end:
        stamp = day.strftime("%d/%m/%Y")
        for code, name, time_range, room, weekdays in _MOCK_TIMETABLE:
            if day.weekday() in weekdays:
                rows.append({
                    "courseCode": code,
                    "courseName": name,
                    "lectureDate": stamp,
                    "dateTime": f"{stamp} : {time_range}",
                    "classRoom": room,
                })
        day += timedelta(days=1)
    return rows


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host="0.0.0.0", port=8010)
