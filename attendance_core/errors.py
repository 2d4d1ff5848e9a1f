"""Error taxonomy shared by the broker, the normalizer and the service boundary."""
from __future__ import annotations


class AttendanceError(Exception):
    """Base class; `user_message` is what the caller gets to see."""
    code = "ATTENDANCE_ERROR"
    user_message = "Something went wrong. Please try again."

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.user_message)


class AuthenticationFailed(AttendanceError):
    """The portal rejected the credentials. Never retried."""
    code = "AUTHENTICATION_FAILED"
    user_message = "Invalid portal ID or password."

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        # surfaced verbatim
        self.user_message = message or AuthenticationFailed.user_message


class PortalUnavailable(AttendanceError):
    """Network fault, timeout or 5xx from the portal. Retryable."""
    code = "PORTAL_UNAVAILABLE"
    user_message = "The attendance portal is not responding. Please try again later."


class PortalShapeChanged(AttendanceError):
    """The portal answered, but not in the envelope we expect."""
    code = "PORTAL_SHAPE_CHANGED"
    user_message = "Could not read the attendance portal response. Please try again later."


class DataShapeError(AttendanceError):
    """A payload field is structurally nonsensical (e.g. non-numeric counts)."""
    code = "DATA_SHAPE_ERROR"
    user_message = "Could not read the attendance portal response. Please try again later."


class ValidationError(AttendanceError):
    """Caller supplied malformed parameters; raised before any portal call."""
    code = "VALIDATION_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.user_message = message
