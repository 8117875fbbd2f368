"""Tests for CalendarSession: login, cached views, permissions and refresh."""

import asyncio
import datetime

import pytest

from teamsync.exceptions import (
    AuthenticationError,
    PermissionDeniedError,
    ScopeRequiredError,
    SeriesNotFoundError,
    StoreWriteError,
    UserValidationError,
)
from teamsync.models import EditScope, EventDraft
from teamsync.session import CalendarSession

pytestmark = pytest.mark.unit


@pytest.fixture
def store(store_factory, team, make_event):
    return store_factory(
        events=[
            make_event(id="standup", recurrence="weekly", taggedUserIds=["user-1"], tags=["Eng"]),
            make_event(id="offsite", date="2024-01-20", taggedUserIds=["user-2"], tags=["Social"]),
        ],
        users=team,
    )


@pytest.fixture
async def session(store):
    return CalendarSession(store, store, refresh_interval=5)


class SlowStore:
    """Wraps a store and holds list_events until released."""

    def __init__(self, inner):
        self.inner = inner
        self.release = asyncio.Event()
        self.started = asyncio.Event()

    async def list_events(self):
        self.started.set()
        await self.release.wait()
        return await self.inner.list_events()

    async def list_users(self):
        return await self.inner.list_users()


class TestLogin:
    async def test_login_loads_calendar(self, session):
        user = await session.login("user", "user")
        assert session.current_user == user
        assert {e.id for e in session.events} == {"standup", "offsite"}
        assert len(session.users) == 5

    async def test_bad_credentials(self, session):
        with pytest.raises(AuthenticationError):
            await session.login("user", "wrong")
        assert session.current_user is None

    async def test_logout_clears_state(self, session):
        await session.login("admin", "admin")
        generation = session.generation
        await session.logout()
        assert session.current_user is None
        assert session.events == []
        assert session.generation == generation + 1

    async def test_refresh_finishing_after_logout_is_discarded(self, store, session):
        await session.login("admin", "admin")
        slow = SlowStore(store)
        session.event_store = slow
        refresh = asyncio.create_task(session.refresh())
        await slow.started.wait()

        await session.logout()
        slow.release.set()

        assert await refresh is False
        assert session.events == []
        assert session.users == []

    async def test_views_require_login(self, session):
        with pytest.raises(AuthenticationError):
            session.month_view(2024, 1)


class TestMonthView:
    async def test_admin_sees_all(self, session):
        await session.login("admin", "admin")
        view = session.month_view(2024, 1)
        assert [i.date.day for i in view.instances if i.series_id == "standup"] == [1, 8, 15, 22, 29]
        assert any(i.series_id == "offsite" for i in view.instances)
        assert view.available_tags == ["Eng", "Social"]

    async def test_user_sees_tagged_only(self, session):
        await session.login("user", "user")
        view = session.month_view(2024, 1)
        assert {i.series_id for i in view.instances} == {"standup"}
        assert view.by_day[datetime.date(2024, 1, 8)][0].id == "standup_2024-01-08"

    async def test_filters_and_explicit_actor(self, session, admin_user):
        await session.refresh()
        view = session.month_view(2024, 1, tag_filter=["Social"], actor=admin_user)
        assert [i.id for i in view.instances] == ["offsite_2024-01-20"]

    async def test_to_dict(self, session):
        await session.login("user", "user")
        data = session.month_view(2024, 1).to_dict()
        assert data["days"]["2024-01-01"] == ["standup_2024-01-01"]
        assert data["instances"][0]["seriesId"] == "standup"
        assert data["availableTags"] == ["Eng", "Social"]

    async def test_visible_events(self, session):
        await session.login("user2", "user2")
        assert [e.id for e in session.visible_events()] == ["offsite"]


class TestEventActions:
    async def test_create_requires_admin(self, session):
        await session.login("user", "user")
        with pytest.raises(PermissionDeniedError):
            await session.create_event(EventDraft(title="Party", date="2024-02-01"))

    async def test_create_event(self, session, store):
        admin = await session.login("admin", "admin")
        event = await session.create_event(EventDraft(title="Party", date="2024-02-01"))
        assert event.created_by == admin.id
        assert store.events[event.id].title == "Party"
        assert session.find_series(event.id) is not None

    async def test_delete_needs_scope_for_series(self, session):
        await session.login("admin", "admin")
        with pytest.raises(ScopeRequiredError):
            await session.delete_occurrence("standup_2024-01-15")

    async def test_delete_this_only(self, session):
        await session.login("admin", "admin")
        await session.delete_occurrence("standup_2024-01-15", EditScope.THIS_ONLY)
        days = [i.date.day for i in session.month_view(2024, 1).instances if i.series_id == "standup"]
        assert days == [1, 8, 22, 29]

    async def test_edit_this_and_future(self, session):
        await session.login("admin", "admin")
        draft = EventDraft(title="Late standup", startTime="10:00", endTime="10:15", recurrence="weekly")
        write_set = await session.edit_occurrence("standup_2024-01-15", draft, EditScope.THIS_AND_FUTURE)
        successor = write_set.puts[1]
        titles = {
            i.date.day: i.event.title
            for i in session.month_view(2024, 1).instances
            if i.series_id in ("standup", successor.id)
        }
        assert titles[8] == "Standup"
        assert titles[15] == "Late standup"

    async def test_bad_instance_id(self, session):
        await session.login("admin", "admin")
        with pytest.raises(SeriesNotFoundError):
            await session.delete_occurrence("no-date-suffix")

    async def test_partial_write_refreshes_and_reraises(self, session, store):
        await session.login("admin", "admin")
        store.fail_on_write = store.write_count + 2
        with pytest.raises(StoreWriteError) as exc_info:
            await session.edit_occurrence(
                "standup_2024-01-15", EventDraft(title="Retro"), EditScope.THIS_ONLY
            )
        assert exc_info.value.applied == 1
        # The cache shows the exception that did reach the store
        standup = session.find_series("standup")
        assert standup.exception_dates == [datetime.date(2024, 1, 15)]


class TestTeamManagement:
    async def test_add_user(self, session, store):
        await session.login("admin", "admin")
        user = await session.add_user("Ada", "ada", "pw")
        assert store.users[user.id].username == "ada"
        assert session.find_user(user.id) is not None

    async def test_add_duplicate_user(self, session):
        await session.login("admin", "admin")
        with pytest.raises(UserValidationError):
            await session.add_user("Jane again", "user", "pw")

    async def test_regular_user_cannot_manage_team(self, session):
        await session.login("user", "user")
        with pytest.raises(PermissionDeniedError):
            await session.delete_user("user-2")

    async def test_protected_admin(self, session):
        await session.login("admin", "admin")
        with pytest.raises(PermissionDeniedError):
            await session.delete_user("admin-1")

    async def test_delete_user(self, session, store):
        await session.login("admin", "admin")
        await session.delete_user("user-4")
        assert "user-4" not in store.users


class TestPolling:
    async def test_polling_refreshes_and_stops(self, session, store):
        session.refresh_interval = 0.01
        task = session.start_polling()
        assert session.start_polling() is task
        for _ in range(100):
            if store.list_calls >= 2:
                break
            await asyncio.sleep(0.01)
        await session.stop_polling()
        assert store.list_calls >= 2
        assert task.done()
