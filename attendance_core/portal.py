"""
Portal session broker.

Opens a fresh authenticated session against the academic portal for every
call, issues exactly one data request and closes the session again. The
credentials only ever live on the call stack of the request that supplied them.
"""
from __future__ import annotations

import asyncio
import logging
import random
import typing as t
from datetime import date

import httpx

from .errors import AuthenticationFailed, PortalShapeChanged, PortalUnavailable, ValidationError
from .models import Credentials, PortalOperation, RawPayload
from .settings import PortalSettings

logger = logging.getLogger(__name__)

_DAYWISE_REQUIRED = ("course_component_id", "course_id", "student_id")


# -----------------------------
# Parameter validation
# -----------------------------

def _as_date(value: t.Any, name: str) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise ValidationError(f"{name} must be a date in YYYY-MM-DD format")


def validate_params(
    credentials: Credentials,
    operation: PortalOperation,
    params: t.Optional[t.Mapping[str, t.Any]] = None,
) -> dict[str, t.Any]:
    """
    Check the request before any portal call is made.

    Returns the operation parameters in the shape the portal expects.
    """
    if not credentials.portal_id.strip() or not credentials.secret:
        raise ValidationError("Portal ID and password are required.")

    params = params or {}
    if operation is PortalOperation.DAYWISE:
        missing = [name for name in _DAYWISE_REQUIRED if params.get(name) is None]
        if missing:
            raise ValidationError(f"Missing course / student details for daywise view: {', '.join(missing)}")
        return {
            "courseCompId": params["course_component_id"],
            "courseId": params["course_id"],
            "sessionId": params.get("session_id"),
            "studentId": params["student_id"],
        }

    if operation is PortalOperation.SCHEDULE:
        if params.get("start") is None or params.get("end") is None:
            raise ValidationError("Schedule requires a start and an end date")
        start = _as_date(params["start"], "start")
        end = _as_date(params["end"], "end")
        if start > end:
            raise ValidationError("Schedule start date must not be after the end date")
        return {"weekStartDate": start.isoformat(), "weekEndDate": end.isoformat()}

    return {}


# -----------------------------
# Wire helpers
# -----------------------------

def _json_body(response: httpx.Response, operation: str) -> t.Any:
    try:
        return response.json()
    except ValueError:
        logger.error("Portal %s response is not JSON (status %s)", operation, response.status_code)
        raise PortalShapeChanged(f"{operation} response is not JSON")


def _portal_message(body: t.Any) -> t.Optional[str]:
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if isinstance(error, dict):
        error = error.get("reason") or error.get("message")
    message = error or body.get("message") or body.get("msg")
    return str(message) if message else None


def _error_message(response: httpx.Response) -> t.Optional[str]:
    try:
        return _portal_message(response.json())
    except ValueError:
        return None


def _raise_for_status(response: httpx.Response, operation: str) -> None:
    status = response.status_code
    if status >= 500:
        raise PortalUnavailable(f"Portal returned {status} for {operation}")
    if status in (401, 403):
        raise AuthenticationFailed(_error_message(response) or "")
    if status >= 400:
        logger.error("Portal rejected %s request with status %s", operation, status)
        raise PortalShapeChanged(f"Portal returned {status} for {operation}")


async def _login(client: httpx.AsyncClient, credentials: Credentials, settings: PortalSettings) -> str:
    response = await client.post(
        settings.login_path,
        json={"userName": credentials.portal_id, "password": credentials.secret},
    )
    if response.status_code == 400:
        raise AuthenticationFailed(_error_message(response) or "")
    _raise_for_status(response, "login")

    body = _json_body(response, "login")
    data = body.get("data") if isinstance(body, dict) else None
    token = data.get("token") if isinstance(data, dict) else None
    if token:
        return str(token)

    message = _portal_message(body)
    if message:
        raise AuthenticationFailed(message)
    logger.error("Portal login response has no token and no error message")
    raise PortalShapeChanged("login response has no token")


async def _request(
    client: httpx.AsyncClient,
    token: str,
    operation: PortalOperation,
    params: dict[str, t.Any],
    settings: PortalSettings,
) -> httpx.Response:
    headers = {"Authorization": f"{settings.auth_scheme} {token}"}
    if operation is PortalOperation.SUMMARY:
        return await client.get(settings.summary_path, headers=headers)
    if operation is PortalOperation.DAYWISE:
        return await client.post(settings.daywise_path, json=params, headers=headers)
    return await client.get(settings.schedule_path, params=params, headers=headers)


# -----------------------------
# Public API
# -----------------------------

async def authenticate_and_fetch(
    credentials: Credentials,
    operation: t.Union[PortalOperation, str],
    params: t.Optional[t.Mapping[str, t.Any]] = None,
    settings: t.Optional[PortalSettings] = None,
    transport: t.Optional[httpx.AsyncBaseTransport] = None,
) -> RawPayload:
    """
    Log in, fetch one payload and discard the session.

    Args:
        credentials: Portal login for this call only
        operation: Which payload to fetch
        params: Operation parameters (correlation ids for daywise, start/end for schedule)
        settings: Portal location and timeouts; read from the environment when omitted
        transport: Optional httpx transport, used to point the broker at a mock portal

    Returns:
        The unwrapped `data` envelope of the portal response

    Raises:
        ValidationError: Bad credentials shape or parameters; no call was made
        AuthenticationFailed: The portal rejected the credentials
        PortalUnavailable: Timeout, network failure or 5xx
        PortalShapeChanged: The response does not have the expected envelope
    """
    operation = PortalOperation(operation)
    settings = settings or PortalSettings.from_env()
    wire_params = validate_params(credentials, operation, params)

    async def _session() -> httpx.Response:
        async with httpx.AsyncClient(
            base_url=settings.base_url,
            timeout=settings.timeout,
            transport=transport,
        ) as client:
            token = await _login(client, credentials, settings)
            return await _request(client, token, operation, wire_params, settings)

    logger.info("Fetching %s from portal for %s", operation.value, credentials.masked_id)
    try:
        # hard ceiling for login plus data request together
        response = await asyncio.wait_for(_session(), timeout=settings.timeout)
    except (httpx.TimeoutException, asyncio.TimeoutError):
        raise PortalUnavailable(f"Portal {operation.value} timed out after {settings.timeout} seconds")
    except httpx.RequestError as e:
        raise PortalUnavailable(f"Error calling portal for {operation.value}: {type(e).__name__}")

    _raise_for_status(response, operation.value)
    body = _json_body(response, operation.value)
    if not isinstance(body, dict) or "data" not in body:
        logger.error("Portal %s response has no data envelope", operation.value)
        raise PortalShapeChanged(f"{operation.value} response has no data envelope")
    return RawPayload(operation=operation, data=body["data"])


async def fetch_with_retries(
    credentials: Credentials,
    operation: t.Union[PortalOperation, str],
    params: t.Optional[t.Mapping[str, t.Any]] = None,
    settings: t.Optional[PortalSettings] = None,
    transport: t.Optional[httpx.AsyncBaseTransport] = None,
    sleep: t.Callable[[float], t.Awaitable[None]] = asyncio.sleep,
) -> RawPayload:
    """
    authenticate_and_fetch with bounded, jittered retries on PortalUnavailable.

    Every attempt opens its own session. Authentication, shape and validation
    errors are raised immediately.
    """
    settings = settings or PortalSettings.from_env()
    attempt = 0
    while True:
        try:
            return await authenticate_and_fetch(credentials, operation, params, settings, transport)
        except PortalUnavailable as e:
            if attempt >= settings.max_retries:
                raise
            delay = settings.retry_base_delay * 2 ** attempt + random.uniform(0, settings.retry_base_delay)
            attempt += 1
            logger.warning("%s; retry %d/%d in %.2fs", e, attempt, settings.max_retries, delay)
            await sleep(delay)
