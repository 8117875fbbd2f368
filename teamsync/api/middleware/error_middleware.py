"""Translate TeamSync exceptions raised by handlers into JSON error responses."""

import logging
from collections.abc import Callable
from typing import Any

from aiohttp import web

from ...exceptions import (
    AuthenticationError,
    EventValidationError,
    PermissionDeniedError,
    ScopeRequiredError,
    SeriesNotFoundError,
    StoreError,
    StoreWriteError,
    TeamSyncError,
    UserValidationError,
)

logger = logging.getLogger(__name__)

# Checked in order; first matching class wins
STATUS_BY_ERROR: tuple[tuple[type[TeamSyncError], int], ...] = (
    (EventValidationError, 400),
    (UserValidationError, 400),
    (AuthenticationError, 401),
    (PermissionDeniedError, 403),
    (SeriesNotFoundError, 404),
    (ScopeRequiredError, 409),
    (StoreError, 502),
)


def status_for(exc: TeamSyncError) -> int:
    for error_cls, status in STATUS_BY_ERROR:
        if isinstance(exc, error_cls):
            return status
    return 500


@web.middleware
async def error_middleware(
    request: web.Request, handler: Callable[[web.Request], Any]
) -> web.StreamResponse:
    """Map domain errors to ``{"error": ...}`` responses with a fitting status."""
    try:
        return await handler(request)
    except TeamSyncError as exc:
        status = status_for(exc)
        body: dict[str, Any] = {"error": str(exc), "type": type(exc).__name__}
        if isinstance(exc, StoreWriteError):
            body["applied"] = exc.applied
        if status >= 500:
            logger.error("%s %s failed: %s", request.method, request.path, exc)
        else:
            logger.info("%s %s rejected (%d): %s", request.method, request.path, status, exc)
        return web.json_response(body, status=status)
