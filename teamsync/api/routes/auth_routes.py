"""Login and logout routes."""

from __future__ import annotations

import logging
from typing import Any

from ...session import CalendarSession
from ._helpers import read_json

logger = logging.getLogger(__name__)


def register_auth_routes(app: Any, session: CalendarSession) -> None:
    """Register login/logout routes.

    Args:
        app: aiohttp web application
        session: Calendar session backing the API
    """
    from aiohttp import web

    async def login(request: Any) -> Any:
        """Check credentials and return the public user record."""
        data = await read_json(request)
        user = await session.authenticate(
            str(data.get("username", "")), str(data.get("password", ""))
        )
        return web.json_response(user.to_public_dict())

    async def logout(_request: Any) -> Any:
        """Stateless; kept for clients that call it."""
        return web.json_response({"success": True})

    app.router.add_post("/api/login", login)
    app.router.add_post("/api/logout", logout)
