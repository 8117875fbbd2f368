"""Calendar session: cached store contents, the logged-in user and actions.

One session talks to one event store and one user directory. Reads are
served from a cache refreshed after every mutation and, optionally, on a
polling interval. Mutations are serialized with an ``asyncio.Lock``.

Each refresh captures the session generation before awaiting the store; a
logout bumps the generation, so a refresh that completes after the logout is
discarded instead of repopulating the cache.
"""

from __future__ import annotations

import asyncio
import contextlib
import datetime
import logging
from collections.abc import Collection
from dataclasses import dataclass, field
from typing import Optional

from .auth import PROTECTED_USERNAME, authenticate, new_team_member
from .domain import (
    apply_delete,
    apply_edit,
    apply_writes,
    available_tags,
    expand,
    filter_instances,
    instances_by_day,
    series_index,
)
from .exceptions import (
    AuthenticationError,
    PermissionDeniedError,
    SeriesNotFoundError,
    StoreReadError,
    StoreWriteError,
)
from .models import (
    CalendarEvent,
    EditScope,
    EventDraft,
    EventInstance,
    OccurrenceRef,
    User,
    UserRole,
    WriteSet,
    new_event_id,
)
from .stores.base import EventStore, UserDirectory

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_INTERVAL = 30


@dataclass
class MonthView:
    """Visible instances of one month for one user."""

    year: int
    month: int
    instances: list[EventInstance]
    by_day: dict[datetime.date, list[EventInstance]] = field(default_factory=dict)
    available_tags: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "year": self.year,
            "month": self.month,
            "instances": [i.to_dict() for i in self.instances],
            "days": {
                day.isoformat(): [i.id for i in cell] for day, cell in sorted(self.by_day.items())
            },
            "availableTags": self.available_tags,
        }


class CalendarSession:
    """Cached view of the team calendar plus the actions on it.

    Args:
        event_store: Persistence of event series
        user_directory: Team member listing
        refresh_interval: Seconds between polling refreshes
    """

    def __init__(
        self,
        event_store: EventStore,
        user_directory: UserDirectory,
        refresh_interval: int = DEFAULT_REFRESH_INTERVAL,
    ) -> None:
        self.event_store = event_store
        self.user_directory = user_directory
        self.refresh_interval = refresh_interval

        self.current_user: Optional[User] = None
        self._events: list[CalendarEvent] = []
        self._users: list[User] = []
        self._generation = 0
        self._loaded = False
        self._mutation_lock = asyncio.Lock()
        self._poll_task: Optional[asyncio.Task] = None
        self._stop_polling = asyncio.Event()

    # State

    @property
    def events(self) -> list[CalendarEvent]:
        return list(self._events)

    @property
    def users(self) -> list[User]:
        return list(self._users)

    @property
    def generation(self) -> int:
        return self._generation

    def find_user(self, user_id: str) -> Optional[User]:
        return next((u for u in self._users if u.id == user_id), None)

    def find_series(self, series_id: str) -> Optional[CalendarEvent]:
        return next((e for e in self._events if e.id == series_id), None)

    async def refresh(self) -> bool:
        """Re-read events and users from the stores.

        Returns:
            False if the response was discarded because the session was
            logged out while the read was in flight

        Raises:
            StoreReadError: If either store cannot be read
        """
        generation = self._generation
        events = await self.event_store.list_events()
        users = await self.user_directory.list_users()
        if generation != self._generation:
            logger.debug(
                "Discarding refresh from generation %d (now %d)", generation, self._generation
            )
            return False
        self._events = events
        self._users = users
        self._loaded = True
        logger.debug("Refreshed session: %d series, %d users", len(events), len(users))
        return True

    async def ensure_loaded(self) -> None:
        if not self._loaded:
            await self.refresh()

    # Login

    async def authenticate(self, username: str, password: str) -> User:
        """Check credentials without changing the session's current user."""
        return await authenticate(self.user_directory, username, password)

    async def login(self, username: str, password: str) -> User:
        """Authenticate and make the user current, then load the calendar.

        Raises:
            AuthenticationError: If the credentials do not match
        """
        user = await self.authenticate(username, password)
        self._generation += 1
        self.current_user = user
        await self.refresh()
        return user

    async def logout(self) -> None:
        """Forget the current user and the cached calendar."""
        if self.current_user is not None:
            logger.info("User %s logged out", self.current_user.id)
        self._generation += 1
        self.current_user = None
        self._events = []
        self._users = []
        self._loaded = False

    def _actor(self, actor: Optional[User]) -> User:
        user = actor or self.current_user
        if user is None:
            raise AuthenticationError("Not logged in")
        return user

    def _require_admin(self, actor: Optional[User], action: str) -> User:
        user = self._actor(actor)
        if not user.is_admin:
            logger.warning("User %s (%s) may not %s", user.id, user.role.value, action)
            raise PermissionDeniedError(f"Only admins can {action}")
        return user

    # Polling

    async def _poll_loop(self) -> None:
        while not self._stop_polling.is_set():
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(self._stop_polling.wait(), timeout=self.refresh_interval)
            if self._stop_polling.is_set():
                break
            try:
                await self.refresh()
            except Exception:
                logger.exception("Periodic refresh failed")

    def start_polling(self) -> asyncio.Task:
        """Refresh every ``refresh_interval`` seconds until ``stop_polling``."""
        if self._poll_task is None or self._poll_task.done():
            self._stop_polling.clear()
            self._poll_task = asyncio.create_task(self._poll_loop())
            logger.debug("Started polling every %d seconds", self.refresh_interval)
        return self._poll_task

    async def stop_polling(self) -> None:
        self._stop_polling.set()
        if self._poll_task is not None:
            await self._poll_task
            self._poll_task = None

    # Views

    def month_view(
        self,
        year: int,
        month: int,
        tag_filter: Collection[str] = (),
        user_filter: Collection[str] = (),
        actor: Optional[User] = None,
    ) -> MonthView:
        """Expand and filter the cached series for one month.

        Raises:
            AuthenticationError: If nobody is logged in and no actor is given
            ValueError: If ``month`` is outside 1..12
        """
        user = self._actor(actor)
        instances = filter_instances(
            expand(self._events, year, month), user, tag_filter, user_filter
        )
        return MonthView(
            year=year,
            month=month,
            instances=instances,
            by_day=instances_by_day(instances),
            available_tags=available_tags(self._events),
        )

    def visible_events(self, actor: Optional[User] = None) -> list[CalendarEvent]:
        user = self._actor(actor)
        return [e for e in self._events if e.visible_to(user)]

    # Event actions

    async def create_event(
        self, draft: EventDraft, actor: Optional[User] = None
    ) -> CalendarEvent:
        """Store a new series built from the form.

        Raises:
            PermissionDeniedError: If the actor is not an admin
            EventValidationError: If the form has no date
        """
        user = self._require_admin(actor, "create events")
        event = draft.build_event(event_id=new_event_id(), created_by=user.id)
        async with self._mutation_lock:
            await self.event_store.put_event(event)
            logger.info("User %s created event %s (%s)", user.id, event.id, event.recurrence.value)
            await self.refresh()
        return event

    async def edit_occurrence(
        self,
        clicked: EventInstance | OccurrenceRef | str,
        draft: EventDraft,
        scope: Optional[EditScope] = None,
        actor: Optional[User] = None,
    ) -> WriteSet:
        """Edit the clicked occurrence; ``scope`` is required for recurring series."""
        self._require_admin(actor, "edit events")
        ref = _as_ref(clicked)
        async with self._mutation_lock:
            await self.ensure_loaded()
            write_set = apply_edit(series_index(self._events), ref, draft, scope)
            await self._apply(write_set)
        return write_set

    async def delete_occurrence(
        self,
        clicked: EventInstance | OccurrenceRef | str,
        scope: Optional[EditScope] = None,
        actor: Optional[User] = None,
    ) -> WriteSet:
        """Delete the clicked occurrence; ``scope`` is required for recurring series."""
        self._require_admin(actor, "delete events")
        ref = _as_ref(clicked)
        async with self._mutation_lock:
            await self.ensure_loaded()
            write_set = apply_delete(series_index(self._events), ref, scope)
            await self._apply(write_set)
        return write_set

    async def _apply(self, write_set: WriteSet) -> None:
        try:
            await apply_writes(self.event_store, write_set)
        except StoreWriteError as exc:
            if exc.applied:
                # Partially applied; show what actually reached the store
                try:
                    await self.refresh()
                except StoreReadError:
                    logger.warning("Refresh after partial write failed", exc_info=True)
            raise
        await self.refresh()

    # Team management

    async def add_user(
        self,
        name: str,
        username: str,
        password: str,
        role: UserRole = UserRole.USER,
        actor: Optional[User] = None,
    ) -> User:
        """Create a team member.

        Raises:
            PermissionDeniedError: If the actor is not an admin
            UserValidationError: If a field is blank or the username is taken
        """
        self._require_admin(actor, "manage team members")
        async with self._mutation_lock:
            await self.ensure_loaded()
            user = new_team_member(name, username, password, role, existing=self._users)
            await self.user_directory.put_user(user)
            await self.refresh()
        return user

    async def delete_user(self, user_id: str, actor: Optional[User] = None) -> None:
        """Remove a team member; the seeded ``admin`` account cannot be removed.

        Raises:
            PermissionDeniedError: If the actor is not an admin or the target
                is the protected admin account
        """
        self._require_admin(actor, "manage team members")
        async with self._mutation_lock:
            await self.ensure_loaded()
            target = self.find_user(user_id)
            if target is not None and target.username == PROTECTED_USERNAME:
                raise PermissionDeniedError("The admin account cannot be deleted")
            await self.user_directory.delete_user(user_id)
            await self.refresh()


def _as_ref(clicked: EventInstance | OccurrenceRef | str) -> OccurrenceRef:
    if isinstance(clicked, EventInstance):
        return clicked.ref
    if isinstance(clicked, OccurrenceRef):
        return clicked
    try:
        return OccurrenceRef.parse(clicked)
    except ValueError as exc:
        raise SeriesNotFoundError(clicked) from exc
