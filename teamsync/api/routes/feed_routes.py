"""ICS export, subscription feed and health routes."""

from __future__ import annotations

import logging
import time
from typing import Any

from ...exceptions import AuthenticationError
from ...ics_export import EXPORT_FILENAME, ICS_CONTENT_TYPE, export_for_user
from ...session import CalendarSession
from ._helpers import current_actor

logger = logging.getLogger(__name__)


def register_feed_routes(app: Any, session: CalendarSession, started_at: float) -> None:
    """Register ICS download, per-user feed and health routes.

    Args:
        app: aiohttp web application
        session: Calendar session backing the API
        started_at: Server start time (``time.time()``) for uptime reporting
    """
    from aiohttp import web

    def _ics_response(text: str, attachment: bool) -> Any:
        response = web.Response(text=text, content_type=ICS_CONTENT_TYPE, charset="utf-8")
        if attachment:
            response.headers["Content-Disposition"] = f'attachment; filename="{EXPORT_FILENAME}"'
        return response

    async def export_ics(request: Any) -> Any:
        """Snapshot download of the caller's visible series."""
        actor = await current_actor(request, session)
        return _ics_response(export_for_user(session.events, actor), attachment=True)

    async def calendar_feed(request: Any) -> Any:
        """Subscription feed ``/feed/calendar/{user_id}.ics``."""
        user_id = request.match_info["user_id"]
        await session.ensure_loaded()
        user = session.find_user(user_id)
        if user is None:
            raise AuthenticationError(f"Unknown user {user_id!r}")
        logger.debug("Serving calendar feed for %s", user_id)
        return _ics_response(export_for_user(session.events, user), attachment=False)

    async def health_check(_request: Any) -> Any:
        return web.json_response(
            {
                "status": "ok",
                "uptime_s": int(time.time() - started_at),
                "series_count": len(session.events),
                "user_count": len(session.users),
            }
        )

    app.router.add_get("/api/export.ics", export_ics)
    app.router.add_get("/feed/calendar/{user_id}.ics", calendar_feed)
    app.router.add_get("/api/health", health_check)
