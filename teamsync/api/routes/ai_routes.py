"""AI quick fill route."""

from __future__ import annotations

import logging
from typing import Any, Optional

from ...ai_parser import GeminiEventParser, merge_into_draft
from ...session import CalendarSession
from ._helpers import current_actor, read_json

logger = logging.getLogger(__name__)


def register_ai_routes(
    app: Any, session: CalendarSession, parser: Optional[GeminiEventParser]
) -> None:
    """Register the natural-language parse route.

    Args:
        app: aiohttp web application
        session: Calendar session backing the API
        parser: Configured parser, or None when no API key is configured
    """
    from aiohttp import web

    async def parse_prompt(request: Any) -> Any:
        """Body ``{"prompt": ..., "draft": {...}}``; returns the merged form fields."""
        await current_actor(request, session)
        if parser is None:
            return web.json_response({"error": "AI quick fill is not configured"}, status=501)

        data = await read_json(request)
        prompt = str(data.get("prompt", ""))
        draft = data.get("draft") if isinstance(data.get("draft"), dict) else {}

        result = await parser.parse(prompt, session.users)
        if result is None:
            return web.json_response({"result": None, "draft": draft})
        return web.json_response(
            {"result": result.to_record(), "draft": merge_into_draft(draft, result)}
        )

    app.router.add_post("/api/ai/parse", parse_prompt)
