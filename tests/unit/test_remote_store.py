"""Tests for the remote proxy store using an httpx mock transport."""

import json

import httpx
import pytest

from teamsync.exceptions import AuthenticationError, StoreReadError, StoreWriteError
from teamsync.stores import BatchEventStore, RemoteStore

pytestmark = pytest.mark.unit

BASE_URL = "http://proxy.test/api"


def make_store(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return RemoteStore(BASE_URL + "/", client=client)


class TestReads:
    async def test_list_events_skips_malformed(self, make_event):
        good = make_event(id="a").to_record()

        def handler(request):
            assert request.method == "GET"
            assert str(request.url) == f"{BASE_URL}/events"
            return httpx.Response(200, json=[good, {"id": "bad", "date": "nope"}])

        events = await make_store(handler).list_events()
        assert [e.id for e in events] == ["a"]

    async def test_list_users(self, team):
        records = [u.to_record() for u in team]
        store = make_store(lambda request: httpx.Response(200, json=records))
        assert [u.username for u in await store.list_users()] == [u.username for u in team]

    async def test_odd_field_types_skipped(self, make_event):
        good = make_event(id="a").to_record()
        odd = {**good, "id": "b", "exceptionDates": 5}
        store = make_store(lambda request: httpx.Response(200, json=[good, odd]))
        assert [e.id for e in await store.list_events()] == ["a"]

    async def test_http_error_raises_read_error(self):
        store = make_store(lambda request: httpx.Response(503))
        with pytest.raises(StoreReadError, match="503"):
            await store.list_events()

    async def test_transport_error_raises_read_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(StoreReadError):
            await make_store(handler).list_users()

    async def test_non_list_payload_rejected(self):
        store = make_store(lambda request: httpx.Response(200, json={"events": []}))
        with pytest.raises(StoreReadError, match="list"):
            await store.list_events()


class TestWrites:
    async def test_put_event_posts_record(self, make_event):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"ok": True})

        await make_store(handler).put_event(make_event(id="a", tags=["Eng"]))

        assert seen["method"] == "POST"
        assert seen["path"] == "/api/events"
        assert seen["body"]["id"] == "a"
        assert seen["body"]["tags"] == ["Eng"]
        assert seen["body"]["startTime"] == "09:00"

    async def test_delete_event_quotes_id(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["raw_path"] = request.url.raw_path
            return httpx.Response(204)

        await make_store(handler).delete_event("a/b")
        assert seen == {"method": "DELETE", "raw_path": b"/api/events/a%2Fb"}

    async def test_write_failure_raises_write_error(self, make_event):
        store = make_store(lambda request: httpx.Response(500))
        with pytest.raises(StoreWriteError):
            await store.put_event(make_event())

    def test_not_a_batch_store(self):
        assert not isinstance(RemoteStore(BASE_URL), BatchEventStore)


class TestLogin:
    async def test_login_returns_user(self, admin_user):
        def handler(request):
            assert request.url.path == "/api/login"
            assert json.loads(request.content) == {"username": "admin", "password": "admin"}
            return httpx.Response(200, json=admin_user.to_record())

        user = await make_store(handler).login("admin", "admin")
        assert user.id == admin_user.id

    async def test_login_rejected(self):
        store = make_store(lambda request: httpx.Response(401, json={"error": "nope"}))
        with pytest.raises(AuthenticationError):
            await store.login("admin", "wrong")

    async def test_login_server_error(self):
        store = make_store(lambda request: httpx.Response(500))
        with pytest.raises(StoreReadError):
            await store.login("admin", "admin")
