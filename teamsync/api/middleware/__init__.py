"""aiohttp middleware for the TeamSync API."""

from .correlation_id import correlation_id_middleware, get_request_id, request_id_var
from .error_middleware import error_middleware, status_for

__all__ = [
    "correlation_id_middleware",
    "error_middleware",
    "get_request_id",
    "request_id_var",
    "status_for",
]
