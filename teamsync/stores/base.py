"""Protocol definitions for the event store and user directory collaborators.

Stores are passed explicitly into the session and mutation helpers; there is
no module-level store instance.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ..models import CalendarEvent, User, WriteSet


class EventStore(Protocol):
    """Key-value persistence of event series."""

    async def list_events(self) -> list[CalendarEvent]:
        """Return every stored series.

        Raises:
            StoreReadError: If the store cannot be read
        """
        ...

    async def put_event(self, event: CalendarEvent) -> None:
        """Upsert a series by id.

        Raises:
            StoreWriteError: If the write fails
        """
        ...

    async def delete_event(self, event_id: str) -> None:
        """Delete a series by id; deleting a missing id is not an error.

        Raises:
            StoreWriteError: If the write fails
        """
        ...


@runtime_checkable
class BatchEventStore(Protocol):
    """Event store that can apply a whole write set atomically."""

    async def apply_batch(self, write_set: WriteSet) -> None:
        """Apply every write of ``write_set`` or none of them.

        Raises:
            StoreWriteError: If the batch fails; nothing was applied
        """
        ...


class UserDirectory(Protocol):
    """Team member listing and management."""

    async def list_users(self) -> list[User]:
        """Return every team member.

        Raises:
            StoreReadError: If the directory cannot be read
        """
        ...

    async def put_user(self, user: User) -> None:
        """Upsert a team member by id."""
        ...

    async def delete_user(self, user_id: str) -> None:
        """Remove a team member."""
        ...
