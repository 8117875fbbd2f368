"""JSON-file backed event store and user directory with atomic writes.

The on-disk format is a single JSON object::

    {"events": [<event record>, ...], "users": [<user record>, ...]}

Records use the same camelCase shape as the remote table. A missing file is
seeded with the default team on first use.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ..exceptions import StoreReadError, StoreWriteError
from ..models import CalendarEvent, User, UserRole, WriteOp, WriteSet

logger = logging.getLogger(__name__)

DEFAULT_STORE_FILENAME = "teamsync.json"


def default_team() -> list[User]:
    """Team created for an empty store (demo credentials)."""

    def member(user_id: str, username: str, name: str, role: UserRole, seed: str) -> User:
        return User(
            id=user_id,
            username=username,
            name=name,
            role=role,
            password=username,
            avatar_url=f"https://picsum.photos/seed/{seed}/200",
        )

    return [
        member("admin-1", "admin", "System Admin", UserRole.ADMIN, "admin"),
        member("user-1", "user", "Jane Doe", UserRole.USER, "jane"),
        member("user-2", "user2", "Michael Chen", UserRole.USER, "michael"),
        member("user-3", "user3", "Sarah Connor", UserRole.USER, "sarah"),
        member("user-4", "user4", "David Smith", UserRole.USER, "david"),
    ]


class LocalJsonStore:
    """Event store and user directory persisted to one JSON file.

    All methods are coroutines to match the remote store, but file access is
    synchronous and guarded by a thread lock; the document is small.
    """

    def __init__(self, path: str | Path | None = None, seed_team: bool = True) -> None:
        """Create a LocalJsonStore.

        Args:
            path: JSON file path. Defaults to ``./teamsync.json``.
            seed_team: Create the default team when the file does not exist.
        """
        self._path = Path(path) if path else Path.cwd() / DEFAULT_STORE_FILENAME
        self._seed_team = seed_team
        self._lock = threading.Lock()
        self._events: dict[str, CalendarEvent] = {}
        self._users: dict[str, User] = {}
        self._loaded = False

    @property
    def path(self) -> Path:
        return self._path

    def _ensure_loaded_locked(self) -> None:
        if self._loaded:
            return

        if not self._path.exists():
            logger.info("Store file %s not found; starting a new store", self._path)
            self._events = {}
            self._users = {u.id: u for u in default_team()} if self._seed_team else {}
            self._loaded = True
            if self._users:
                self._persist_locked(self._events, self._users)
            return

        try:
            with self._path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as exc:
            raise StoreReadError(f"Failed to read store {self._path}: {exc}") from exc
        if not isinstance(data, dict):
            raise StoreReadError(f"Store {self._path} must contain a JSON object")

        self._events = {}
        for raw in data.get("events") or []:
            try:
                event = CalendarEvent.model_validate(raw)
            except ValidationError as exc:
                logger.warning("Skipping malformed event record %r: %s", raw, exc)
                continue
            self._events[event.id] = event

        self._users = {}
        for raw in data.get("users") or []:
            try:
                user = User.model_validate(raw)
            except ValidationError as exc:
                logger.warning("Skipping malformed user record: %s", exc)
                continue
            self._users[user.id] = user

        self._loaded = True
        logger.debug(
            "Loaded store %s (%d events, %d users)",
            self._path,
            len(self._events),
            len(self._users),
        )

    def _persist_locked(self, events: dict[str, CalendarEvent], users: dict[str, User]) -> None:
        """Write the document atomically via a temp file and os.replace()."""
        document: dict[str, Any] = {
            "events": [e.to_record() for e in events.values()],
            "users": [u.to_record() for u in users.values()],
        }
        tmp_path = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", dir=self._path.parent, delete=False, encoding="utf-8"
            ) as tf:
                tmp_path = Path(tf.name)
                json.dump(document, tf, ensure_ascii=False, indent=2)
                tf.flush()
                os.fsync(tf.fileno())
            tmp_path.replace(self._path)
        except OSError as exc:
            if tmp_path is not None:
                with contextlib.suppress(OSError):
                    tmp_path.unlink()
            raise StoreWriteError(f"Failed to persist store {self._path}: {exc}") from exc

    # Event store

    async def list_events(self) -> list[CalendarEvent]:
        with self._lock:
            self._ensure_loaded_locked()
            return [e.model_copy(deep=True) for e in self._events.values()]

    async def put_event(self, event: CalendarEvent) -> None:
        with self._lock:
            self._ensure_loaded_locked()
            events = dict(self._events)
            events[event.id] = event.model_copy(deep=True)
            self._persist_locked(events, self._users)
            self._events = events
        logger.debug("Stored event %s", event.id)

    async def delete_event(self, event_id: str) -> None:
        with self._lock:
            self._ensure_loaded_locked()
            if event_id not in self._events:
                logger.debug("Delete of unknown event %s ignored", event_id)
                return
            events = {k: v for k, v in self._events.items() if k != event_id}
            self._persist_locked(events, self._users)
            self._events = events
        logger.debug("Deleted event %s", event_id)

    async def apply_batch(self, write_set: WriteSet) -> None:
        """Apply every write in one file replace; on failure nothing changes."""
        with self._lock:
            self._ensure_loaded_locked()
            events = dict(self._events)
            for write in write_set.writes:
                if write.op == WriteOp.PUT and write.event is not None:
                    events[write.event_id] = write.event.model_copy(deep=True)
                else:
                    events.pop(write.event_id, None)
            self._persist_locked(events, self._users)
            self._events = events
        logger.debug("Applied batch of %d writes", len(write_set))

    # User directory

    async def list_users(self) -> list[User]:
        with self._lock:
            self._ensure_loaded_locked()
            return [u.model_copy() for u in self._users.values()]

    async def put_user(self, user: User) -> None:
        with self._lock:
            self._ensure_loaded_locked()
            users = dict(self._users)
            users[user.id] = user.model_copy()
            self._persist_locked(self._events, users)
            self._users = users
        logger.info("Saved team member %s (%s)", user.id, user.role.value)

    async def delete_user(self, user_id: str) -> None:
        with self._lock:
            self._ensure_loaded_locked()
            users = {k: v for k, v in self._users.items() if k != user_id}
            self._persist_locked(self._events, users)
            self._users = users
        logger.info("Removed team member %s", user_id)
