"""Shared fixtures for TeamSync tests."""

from collections.abc import AsyncIterator, Callable
from typing import Any, Optional

import pytest

from teamsync.core.http_client import close_all_clients
from teamsync.exceptions import StoreWriteError
from teamsync.models import CalendarEvent, User, UserRole
from teamsync.stores import LocalJsonStore, default_team


class InMemoryStore:
    """Event store and user directory kept in dicts.

    Has no ``apply_batch``, so multi-write actions go through the sequential
    path. ``fail_on_write`` makes the N-th write (1-based) raise.
    """

    def __init__(self, events: Optional[list[CalendarEvent]] = None, users: Optional[list[User]] = None):
        self.events: dict[str, CalendarEvent] = {e.id: e for e in events or []}
        self.users: dict[str, User] = {u.id: u for u in users or []}
        self.fail_on_write: Optional[int] = None
        self.write_count = 0
        self.list_calls = 0

    def _count_write(self) -> None:
        self.write_count += 1
        if self.fail_on_write is not None and self.write_count == self.fail_on_write:
            raise StoreWriteError(f"write {self.write_count} failed")

    async def list_events(self) -> list[CalendarEvent]:
        self.list_calls += 1
        return list(self.events.values())

    async def put_event(self, event: CalendarEvent) -> None:
        self._count_write()
        self.events[event.id] = event

    async def delete_event(self, event_id: str) -> None:
        self._count_write()
        self.events.pop(event_id, None)

    async def list_users(self) -> list[User]:
        return list(self.users.values())

    async def put_user(self, user: User) -> None:
        self.users[user.id] = user

    async def delete_user(self, user_id: str) -> None:
        self.users.pop(user_id, None)


def pytest_configure(config: Any) -> None:
    """Register the test markers."""
    config.addinivalue_line("markers", "unit: Fast isolated tests")
    config.addinivalue_line("markers", "integration: HTTP API and file-backed store tests")


@pytest.fixture
def team() -> list[User]:
    """The default seeded team (admin-1, user-1 .. user-4)."""
    return default_team()


@pytest.fixture
def admin_user(team: list[User]) -> User:
    return next(u for u in team if u.role == UserRole.ADMIN)


@pytest.fixture
def regular_user(team: list[User]) -> User:
    return next(u for u in team if u.id == "user-1")


@pytest.fixture
def make_event() -> Callable[..., CalendarEvent]:
    """Factory for events; keyword arguments use camelCase record names."""

    def _make(**overrides: Any) -> CalendarEvent:
        record: dict[str, Any] = {
            "id": "evt-1",
            "title": "Standup",
            "description": "",
            "date": "2024-01-01",
            "startTime": "09:00",
            "endTime": "09:15",
            "taggedUserIds": ["user-1"],
            "createdBy": "admin-1",
            "recurrence": "none",
            "tags": [],
        }
        record.update(overrides)
        return CalendarEvent.model_validate(record)

    return _make


@pytest.fixture
def memory_store(team: list[User]) -> InMemoryStore:
    return InMemoryStore(users=team)


@pytest.fixture
def local_store(tmp_path: Any) -> LocalJsonStore:
    return LocalJsonStore(tmp_path / "teamsync.json")


@pytest.fixture(autouse=True)
async def cleanup_shared_http_clients() -> AsyncIterator[None]:
    """Close shared httpx clients after every test to avoid leaks."""
    yield
    await close_all_clients()


@pytest.fixture
def store_factory() -> Callable[..., InMemoryStore]:
    """Build an ``InMemoryStore`` from events and users."""
    return InMemoryStore
