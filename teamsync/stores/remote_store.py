"""Event store and user directory backed by the remote key-value proxy.

Wire format (JSON bodies, camelCase records):

- ``GET /events`` -> list of event records; ``POST /events`` upserts one
- ``DELETE /events/{id}``
- ``GET /users`` / ``POST /users`` / ``DELETE /users/{id}``
- ``POST /login`` with ``{"username", "password"}`` -> user record or 401

Writes are independent requests: there is no batch endpoint, so multi-write
actions applied through this store are not atomic.
"""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from ..core.http_client import (
    get_shared_client,
    headers_with_request_id,
    record_client_error,
    record_client_success,
)
from ..exceptions import AuthenticationError, StoreReadError, StoreWriteError
from ..models import CalendarEvent, User

logger = logging.getLogger(__name__)

CLIENT_ID = "remote_store"


class RemoteStore:
    """Async client for the remote proxy.

    Args:
        base_url: Proxy base URL (no trailing slash needed)
        client: Optional pre-built client; the shared pooled client is used
            otherwise
    """

    def __init__(self, base_url: str, client: Optional[httpx.AsyncClient] = None) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        return await get_shared_client(CLIENT_ID)

    def _url(self, *parts: str) -> str:
        return "/".join([self.base_url, *(quote(p, safe="") for p in parts)])

    async def _request(
        self,
        method: str,
        url: str,
        error_cls: type[StoreReadError] | type[StoreWriteError],
        json_body: Any = None,
    ) -> httpx.Response:
        client = await self._get_client()
        try:
            response = await client.request(
                method, url, json=json_body, headers=headers_with_request_id()
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            await record_client_error(CLIENT_ID)
            logger.warning(
                "%s %s failed with HTTP %d", method, url, exc.response.status_code
            )
            raise error_cls(
                f"{method} {url} failed with HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            await record_client_error(CLIENT_ID)
            logger.warning("%s %s failed: %s", method, url, exc)
            raise error_cls(f"{method} {url} failed: {exc}") from exc

        await record_client_success(CLIENT_ID)
        return response

    @staticmethod
    def _json_list(response: httpx.Response, what: str) -> list[Any]:
        try:
            data = response.json()
        except ValueError as exc:
            raise StoreReadError(f"Malformed {what} response: {exc}") from exc
        if not isinstance(data, list):
            raise StoreReadError(f"Expected a list of {what}, got {type(data).__name__}")
        return data

    # Event store

    async def list_events(self) -> list[CalendarEvent]:
        response = await self._request("GET", self._url("events"), StoreReadError)
        events = []
        for raw in self._json_list(response, "events"):
            try:
                events.append(CalendarEvent.model_validate(raw))
            except ValidationError as exc:
                logger.warning("Skipping malformed remote event %r: %s", raw, exc)
        logger.debug("Fetched %d events from %s", len(events), self.base_url)
        return events

    async def put_event(self, event: CalendarEvent) -> None:
        await self._request(
            "POST", self._url("events"), StoreWriteError, json_body=event.to_record()
        )

    async def delete_event(self, event_id: str) -> None:
        await self._request("DELETE", self._url("events", event_id), StoreWriteError)

    # User directory

    async def list_users(self) -> list[User]:
        response = await self._request("GET", self._url("users"), StoreReadError)
        users = []
        for raw in self._json_list(response, "users"):
            try:
                users.append(User.model_validate(raw))
            except ValidationError as exc:
                logger.warning("Skipping malformed remote user: %s", exc)
        return users

    async def put_user(self, user: User) -> None:
        await self._request("POST", self._url("users"), StoreWriteError, json_body=user.to_record())

    async def delete_user(self, user_id: str) -> None:
        await self._request("DELETE", self._url("users", user_id), StoreWriteError)

    async def login(self, username: str, password: str) -> User:
        """Check credentials against the proxy's login endpoint.

        Raises:
            AuthenticationError: If the proxy rejects the credentials
            StoreReadError: If the proxy cannot be reached or answers badly
        """
        client = await self._get_client()
        url = self._url("login")
        try:
            response = await client.post(
                url,
                json={"username": username, "password": password},
                headers=headers_with_request_id(),
            )
        except httpx.HTTPError as exc:
            await record_client_error(CLIENT_ID)
            raise StoreReadError(f"POST {url} failed: {exc}") from exc

        if response.status_code == 401:
            raise AuthenticationError("Invalid credentials")
        if response.is_error:
            await record_client_error(CLIENT_ID)
            raise StoreReadError(f"POST {url} failed with HTTP {response.status_code}")

        await record_client_success(CLIENT_ID)
        try:
            return User.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise StoreReadError(f"Malformed login response: {exc}") from exc
