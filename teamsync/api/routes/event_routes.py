"""Calendar and event routes."""

from __future__ import annotations

import logging
from typing import Any

from ...core.date_utils import month_bounds
from ...exceptions import EventValidationError
from ...models import EventDraft
from ...session import CalendarSession
from ._helpers import csv_param, current_actor, int_param, parse_scope, read_json

logger = logging.getLogger(__name__)


def register_event_routes(app: Any, session: CalendarSession) -> None:
    """Register month view and event mutation routes.

    Args:
        app: aiohttp web application
        session: Calendar session backing the API
    """
    from aiohttp import web

    async def month_view(request: Any) -> Any:
        """Visible instances of one month, filtered by ``tags``/``users``."""
        actor = await current_actor(request, session)
        year = int_param(request, "year")
        month = int_param(request, "month")
        try:
            month_bounds(year, month)
        except ValueError as exc:
            raise EventValidationError(str(exc)) from exc
        view = session.month_view(
            year,
            month,
            tag_filter=csv_param(request, "tags"),
            user_filter=csv_param(request, "users"),
            actor=actor,
        )
        return web.json_response(view.to_dict())

    async def list_events(request: Any) -> Any:
        """Stored series visible to the caller."""
        actor = await current_actor(request, session)
        events = session.visible_events(actor)
        return web.json_response({"events": [e.to_record() for e in events]})

    async def create_event(request: Any) -> Any:
        actor = await current_actor(request, session)
        draft = EventDraft.from_record(await read_json(request))
        event = await session.create_event(draft, actor=actor)
        return web.json_response(event.to_record(), status=201)

    async def edit_occurrence(request: Any) -> Any:
        """Edit the occurrence named by its instance id.

        Body: the form fields, optionally with ``scope``; ``?scope=`` also works.
        """
        actor = await current_actor(request, session)
        data = await read_json(request)
        scope = parse_scope(request.query.get("scope") or data.pop("scope", None))
        draft = EventDraft.from_record(data)
        write_set = await session.edit_occurrence(
            request.match_info["instance_id"], draft, scope, actor=actor
        )
        return web.json_response(write_set.to_dict())

    async def delete_occurrence(request: Any) -> Any:
        actor = await current_actor(request, session)
        scope = parse_scope(request.query.get("scope"))
        write_set = await session.delete_occurrence(
            request.match_info["instance_id"], scope, actor=actor
        )
        return web.json_response(write_set.to_dict())

    app.router.add_get("/api/calendar/{year}/{month}", month_view)
    app.router.add_get("/api/events", list_events)
    app.router.add_post("/api/events", create_event)
    app.router.add_put("/api/events/{instance_id}", edit_occurrence)
    app.router.add_delete("/api/events/{instance_id}", delete_occurrence)
