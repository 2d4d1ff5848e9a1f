"""
Runtime configuration for the portal broker.

Values are read from environment variables; every call to the broker may also
be handed an explicit PortalSettings (tests do this).
"""
from __future__ import annotations

import os
from dataclasses import dataclass


PORTAL_BASE_URL = os.getenv("PORTAL_BASE_URL", "https://kiet.cybervidya.net")

# Hard ceiling for a single portal request (in seconds)
PORTAL_TIMEOUT = float(os.getenv("PORTAL_TIMEOUT", "15.0"))

# Extra attempts after a PortalUnavailable, and the backoff base delay
PORTAL_MAX_RETRIES = int(os.getenv("PORTAL_MAX_RETRIES", "2"))
PORTAL_RETRY_BASE_DELAY = float(os.getenv("PORTAL_RETRY_BASE_DELAY", "0.5"))

DEFAULT_TARGET_PERCENTAGE = float(os.getenv("DEFAULT_TARGET_PERCENTAGE", "75"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


@dataclass(frozen=True)
class PortalSettings:
    """Where the portal lives and how patiently we talk to it."""
    base_url: str = PORTAL_BASE_URL
    timeout: float = PORTAL_TIMEOUT
    max_retries: int = PORTAL_MAX_RETRIES
    retry_base_delay: float = PORTAL_RETRY_BASE_DELAY
    login_path: str = "/api/auth/login"
    summary_path: str = "/api/attendance/course/component/student"
    daywise_path: str = "/api/attendance/schedule/student/course/attendance/percentage"
    schedule_path: str = "/api/student/schedule/class"
    auth_scheme: str = "GlobalEducation"

    @classmethod
    def from_env(cls) -> "PortalSettings":
        defaults = cls()
        return cls(
            base_url=os.getenv("PORTAL_BASE_URL", defaults.base_url),
            timeout=float(os.getenv("PORTAL_TIMEOUT", defaults.timeout)),
            max_retries=int(os.getenv("PORTAL_MAX_RETRIES", defaults.max_retries)),
            retry_base_delay=float(os.getenv("PORTAL_RETRY_BASE_DELAY", defaults.retry_base_delay)),
            login_path=os.getenv("PORTAL_LOGIN_PATH", defaults.login_path),
            summary_path=os.getenv("PORTAL_SUMMARY_PATH", defaults.summary_path),
            daywise_path=os.getenv("PORTAL_DAYWISE_PATH", defaults.daywise_path),
            schedule_path=os.getenv("PORTAL_SCHEDULE_PATH", defaults.schedule_path),
            auth_scheme=os.getenv("PORTAL_AUTH_SCHEME", defaults.auth_scheme),
        )
