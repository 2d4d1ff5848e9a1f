"""Shared fixtures: a mock portal mounted on an in-process transport."""
import httpx
import pytest

from attendance_core.models import CourseAttendanceRecord, Credentials
from attendance_core.settings import PortalSettings
from services.mock_portal import app as mock_portal


@pytest.fixture
def portal_settings() -> PortalSettings:
    """Settings pointing at the mock portal, with no retries and no backoff."""
    return PortalSettings(
        base_url="http://portal.test",
        timeout=5.0,
        max_retries=0,
        retry_base_delay=0.0,
    )


@pytest.fixture
def portal_transport() -> httpx.AsyncBaseTransport:
    return httpx.ASGITransport(app=mock_portal.app)


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(portal_id=mock_portal.MOCK_PORTAL_ID, secret=mock_portal.MOCK_PORTAL_SECRET)


@pytest.fixture
def dbms_lecture() -> CourseAttendanceRecord:
    """The DBMS lecture of the mock portal: 28 present out of 40."""
    return CourseAttendanceRecord(
        course_code="KCS501",
        course_name="Database Management System",
        component_name="LECTURE",
        total_classes=40,
        present_classes=28,
        percentage=70.0,
        course_component_id=111,
        course_id=11,
        session_id=37,
        student_id=1001,
    )

