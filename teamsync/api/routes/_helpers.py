"""Request helpers shared by the route modules."""

from __future__ import annotations

import logging
from typing import Any, Optional

from aiohttp import web

from ...exceptions import AuthenticationError, EventValidationError
from ...models import EditScope, User
from ...session import CalendarSession

logger = logging.getLogger(__name__)

USER_HEADER = "X-User-Id"


async def read_json(request: web.Request) -> dict[str, Any]:
    """Request body as a JSON object; an empty body is an empty object."""
    if not request.can_read_body:
        return {}
    try:
        data = await request.json()
    except ValueError as exc:
        raise EventValidationError("invalid json") from exc
    if not isinstance(data, dict):
        raise EventValidationError("request body must be a JSON object")
    return data


async def current_actor(request: web.Request, session: CalendarSession) -> User:
    """User named by the ``X-User-Id`` header.

    Raises:
        AuthenticationError: If the header is missing or names no team member
    """
    user_id = request.headers.get(USER_HEADER, "").strip()
    if not user_id:
        raise AuthenticationError(f"Missing {USER_HEADER} header")
    await session.ensure_loaded()
    user = session.find_user(user_id)
    if user is None:
        raise AuthenticationError(f"Unknown user {user_id!r}")
    return user


def parse_scope(raw: Optional[str]) -> Optional[EditScope]:
    """``this-only`` / ``this-and-future`` or None when absent."""
    if not raw:
        return None
    try:
        return EditScope(raw)
    except ValueError as exc:
        raise EventValidationError(
            f"scope must be 'this-only' or 'this-and-future', got {raw!r}"
        ) from exc


def csv_param(request: web.Request, name: str) -> list[str]:
    """Values of a repeated and/or comma-separated query parameter."""
    values: list[str] = []
    for raw in request.query.getall(name, []):
        values.extend(v.strip() for v in raw.split(",") if v.strip())
    return values


def int_param(request: web.Request, name: str) -> int:
    raw = request.match_info.get(name) or request.query.get(name, "")
    try:
        return int(raw)
    except ValueError as exc:
        raise EventValidationError(f"{name} must be an integer, got {raw!r}") from exc
