"""Natural-language quick fill for the event form.

Sends the prompt to the Gemini ``generateContent`` REST endpoint with a JSON
response schema and turns the answer into an ``AIEventParseResult``. The
public ``parse`` call never raises: failures are logged and ``None`` is
returned so the form keeps working without the assistant.
"""

from __future__ import annotations

import datetime
import json
import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from .config_loader import DEFAULT_AI_ENDPOINT, DEFAULT_AI_MODEL
from .core.http_client import get_shared_client, record_client_error, record_client_success
from .exceptions import EventParseError
from .models import AIEventParseResult, User

logger = logging.getLogger(__name__)

CLIENT_ID = "ai_parser"

RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "title": {"type": "STRING"},
        "date": {"type": "STRING", "description": "YYYY-MM-DD"},
        "startTime": {"type": "STRING", "description": "HH:mm"},
        "endTime": {"type": "STRING", "description": "HH:mm"},
        "description": {"type": "STRING"},
        "taggedUserIds": {"type": "ARRAY", "items": {"type": "STRING"}},
        "recurrence": {"type": "STRING", "enum": ["none", "daily", "weekly", "monthly"]},
        "tags": {"type": "ARRAY", "items": {"type": "STRING"}},
    },
}


FORM_DEFAULTS: dict[str, Any] = {
    "description": "",
    "startTime": "09:00",
    "endTime": "10:00",
    "taggedUserIds": [],
    "color": "indigo",
    "recurrence": "none",
    "tags": [],
}


def build_system_instruction(users: list[User], now: datetime.datetime) -> str:
    """Instruction text with the date context and the taggable team."""
    user_context = [{"id": u.id, "name": u.name, "username": u.username} for u in users]
    return "\n".join(
        [
            "You are an intelligent calendar assistant.",
            "Your goal is to extract event details from natural language input.",
            "",
            f"Current Date context: {now.isoformat()}",
            "",
            "Available Users for tagging:",
            json.dumps(user_context),
            "",
            "Rules:",
            "1. Match names in the prompt to the 'Available Users' list loosely "
            '(e.g., "Mike" matches "Michael").',
            "2. Return ISO dates (YYYY-MM-DD) and 24h time (HH:mm).",
            "3. If no duration is specified, assume 1 hour.",
            "4. If users are mentioned, include their exact IDs in 'taggedUserIds'.",
            "5. Extract recurrence patterns if mentioned (e.g., \"every week\", \"daily\"). "
            "Options: 'none', 'daily', 'weekly', 'monthly'.",
            "6. Extract category tags or hashtags as plain strings in the 'tags' array "
            '(e.g., "#urgent" -> "Urgent").',
        ]
    )


class GeminiEventParser:
    """Event extraction through the Gemini REST API.

    Args:
        api_key: Gemini API key
        model: Model name
        endpoint: REST base URL
        client: Optional pre-built client; the shared pooled client otherwise
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_AI_MODEL,
        endpoint: str = DEFAULT_AI_ENDPOINT,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.endpoint = endpoint.rstrip("/")
        self._client = client

    @property
    def url(self) -> str:
        return f"{self.endpoint}/models/{self.model}:generateContent"

    def build_request(self, prompt: str, users: list[User], now: datetime.datetime) -> dict:
        return {
            "systemInstruction": {"parts": [{"text": build_system_instruction(users, now)}]},
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": RESPONSE_SCHEMA,
            },
        }

    async def parse_or_raise(
        self, prompt: str, users: list[User], now: Optional[datetime.datetime] = None
    ) -> AIEventParseResult:
        """Extract event fields from ``prompt``.

        Raises:
            EventParseError: On transport errors, HTTP errors or an answer
                that is not a JSON object of the expected shape
        """
        if not prompt.strip():
            raise EventParseError("Empty prompt")

        body = self.build_request(prompt, users, now or datetime.datetime.now())
        client = self._client or await get_shared_client(CLIENT_ID)
        try:
            response = await client.post(
                self.url, json=body, headers={"x-goog-api-key": self.api_key}
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            await record_client_error(CLIENT_ID)
            raise EventParseError(f"Gemini request failed: {exc}") from exc
        await record_client_success(CLIENT_ID)

        try:
            payload = response.json()
            text = payload["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise EventParseError(f"Unexpected Gemini response: {exc}") from exc

        try:
            data = json.loads(text)
        except ValueError as exc:
            raise EventParseError(f"Gemini answer is not JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise EventParseError("Gemini answer is not a JSON object")

        try:
            return AIEventParseResult.model_validate(data)
        except ValidationError as exc:
            raise EventParseError(f"Gemini answer has unexpected fields: {exc}") from exc

    async def parse(
        self, prompt: str, users: list[User], now: Optional[datetime.datetime] = None
    ) -> Optional[AIEventParseResult]:
        """Like ``parse_or_raise`` but logs failures and returns None."""
        try:
            result = await self.parse_or_raise(prompt, users, now)
        except EventParseError as exc:
            logger.error("Gemini parsing error: %s", exc)
            return None
        logger.debug("Parsed prompt into fields: %s", result.to_record())
        return result


def merge_into_draft(draft_fields: dict[str, Any], result: AIEventParseResult) -> dict[str, Any]:
    """Overlay the non-empty AI values on the current form fields.

    Fields the AI left empty keep their current value (or the form default).
    The merged mapping is camelCase, ready for ``EventDraft.from_record``.
    """
    merged = {k: (list(v) if isinstance(v, list) else v) for k, v in FORM_DEFAULTS.items()}
    merged.update({k: v for k, v in draft_fields.items() if v is not None})
    for key, value in result.to_record().items():
        if value:
            merged[key] = value
    return merged
