"""Request correlation ID middleware.

Extracts or generates a correlation ID per HTTP request so log lines of one
request, and the remote store calls it triggers, can be tied together.
"""

import uuid
from collections.abc import Callable
from contextvars import ContextVar
from typing import Any

from aiohttp import web

request_id_var: ContextVar[str] = ContextVar("request_id", default="")


@web.middleware
async def correlation_id_middleware(
    request: web.Request, handler: Callable[[web.Request], Any]
) -> web.Response:
    """Extract or generate a correlation ID for request tracking.

    ``X-Request-ID`` from the client wins, then ``X-Correlation-ID``; otherwise
    a new UUID is generated. The ID is stored in a context variable, read
    through ``get_request_id``, and echoed in the response headers.
    """
    correlation_id = (
        request.headers.get("X-Request-ID")
        or request.headers.get("X-Correlation-ID")
        or str(uuid.uuid4())
    )

    token = request_id_var.set(correlation_id)
    try:
        response = await handler(request)
    finally:
        request_id_var.reset(token)

    response.headers["X-Request-ID"] = correlation_id
    return response


def get_request_id() -> str:
    """Current request correlation ID, or ``"no-request-id"`` outside a request."""
    request_id = request_id_var.get()
    return request_id if request_id else "no-request-id"
