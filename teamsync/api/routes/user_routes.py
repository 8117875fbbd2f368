"""Team member routes."""

from __future__ import annotations

import logging
from typing import Any

from ...exceptions import UserValidationError
from ...models import UserRole
from ...session import CalendarSession
from ._helpers import current_actor, read_json

logger = logging.getLogger(__name__)


def register_user_routes(app: Any, session: CalendarSession) -> None:
    """Register team listing and management routes.

    Args:
        app: aiohttp web application
        session: Calendar session backing the API
    """
    from aiohttp import web

    async def list_users(request: Any) -> Any:
        await current_actor(request, session)
        return web.json_response({"users": [u.to_public_dict() for u in session.users]})

    async def add_user(request: Any) -> Any:
        actor = await current_actor(request, session)
        data = await read_json(request)
        try:
            role = UserRole(str(data.get("role") or UserRole.USER.value).upper())
        except ValueError as exc:
            raise UserValidationError(f"Unknown role {data.get('role')!r}") from exc
        user = await session.add_user(
            name=str(data.get("name", "")),
            username=str(data.get("username", "")),
            password=str(data.get("password", "")),
            role=role,
            actor=actor,
        )
        return web.json_response(user.to_public_dict(), status=201)

    async def delete_user(request: Any) -> Any:
        actor = await current_actor(request, session)
        await session.delete_user(request.match_info["user_id"], actor=actor)
        return web.json_response({"success": True})

    app.router.add_get("/api/users", list_users)
    app.router.add_post("/api/users", add_user)
    app.router.add_delete("/api/users/{user_id}", delete_user)
