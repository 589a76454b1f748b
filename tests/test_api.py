"""Tests for the endpoint wrappers."""

import re

import pytest

from textclient import api
from textclient.errors import MatrixResponseError
from textclient.filters import build_text_message_filter
from textclient.identifiers import IdKind, parse_identifier
from textclient.models import Presence
from tests.test_constants import (
    CLIENT_API,
    TEST_EVENT_ID,
    TEST_OTHER_USER_ID,
    TEST_ROOM_ID,
    TEST_USER_ID,
)

ROOM = parse_identifier(TEST_ROOM_ID, IdKind.ROOM)
USER = parse_identifier(TEST_USER_ID, IdKind.USER)
ENCODED_ROOM = "%21room%3Aexample.org"
ENCODED_USER = "%40nobody%3Aexample.org"
ENCODED_EVENT = "%24event1%3Aexample.org"


class TestTransactionIds:
    """Test transaction id generation."""

    def test_format(self):
        """Ids look like <unix seconds>-<counter>."""
        assert re.fullmatch(r"\d+-\d+", api.next_transaction_id())

    def test_unique(self):
        """Consecutive ids differ."""
        ids = {api.next_transaction_id() for _ in range(100)}
        assert len(ids) == 100


class TestLogin:
    """Test login endpoints."""

    @pytest.mark.asyncio
    async def test_password_login_body(self, context, fake_session):
        """The login body uses the password type and a user identifier."""
        fake_session.add("POST", f"{CLIENT_API}/v3/login", {"access_token": "t"})

        response = await api.password_login(context, USER, "pw", "DEV", "my device")

        assert response.access_token == "t"
        assert fake_session.requests[0].body == {
            "type": "m.login.password",
            "identifier": {"type": "m.id.user", "user": TEST_USER_ID},
            "password": "pw",
            "device_id": "DEV",
            "initial_device_display_name": "my device",
        }

    @pytest.mark.asyncio
    async def test_login_flows(self, context, fake_session):
        """Flow types are collected, malformed entries skipped."""
        fake_session.add(
            "GET",
            f"{CLIENT_API}/v3/login",
            {"flows": [{"type": "m.login.sso"}, {"type": "m.login.password"}, "junk"]},
        )

        response = await api.get_login_flows(context)

        assert response.flows == ["m.login.sso", "m.login.password"]


class TestFilters:
    """Test filter registration endpoints."""

    @pytest.mark.asyncio
    async def test_post_and_get_filter(self, context, fake_session):
        """The filter is posted for the user and read back by id."""
        fake_session.add(
            "POST", f"{CLIENT_API}/v3/user/{ENCODED_USER}/filter", {"filter_id": "7"}
        )
        fake_session.add(
            "GET",
            f"{CLIENT_API}/v3/user/{ENCODED_USER}/filter/7",
            {"event_format": "client"},
        )

        posted = await api.post_filter(context, USER, build_text_message_filter())
        fetched = await api.get_filter(context, USER, posted.filter_id)

        assert posted.filter_id == "7"
        assert fetched.event_format == "client"
        assert fake_session.requests[0].body["event_format"] == "client"


class TestSync:
    """Test the sync request."""

    @pytest.mark.asyncio
    async def test_first_sync_parameters(self, context, fake_session):
        """The first sync has no since and an explicit full_state=false."""
        fake_session.add("GET", f"{CLIENT_API}/v3/sync", {"next_batch": "b1"})

        response = await api.sync(context, filter_id="7")

        assert response.next_batch == "b1"
        url = fake_session.requests[0].url
        assert url.endswith(
            "/sync?full_state=false&set_presence=online&timeout=60000&filter=7"
        )

    @pytest.mark.asyncio
    async def test_sync_with_cursor(self, context, fake_session):
        """Later syncs carry the cursor and the requested full_state."""
        fake_session.add("GET", f"{CLIENT_API}/v3/sync", {"next_batch": "b2"})

        await api.sync(context, since="b1", filter_id="7", full_state=True)

        url = fake_session.requests[0].url
        assert "full_state=true" in url
        assert "full_state=false" not in url
        assert "since=b1" in url

    @pytest.mark.asyncio
    async def test_sync_ignores_rate_limit(self, context, fake_session, fake_clock):
        """Sync still goes out when the limiter is empty."""
        from textclient.rate_limiter import LeakyBucketRateLimiter

        limiter = LeakyBucketRateLimiter(1, 600, clock=fake_clock)
        limiter.try_consume()
        context.rate_limiter = limiter
        fake_session.add("GET", f"{CLIENT_API}/v3/sync", {"next_batch": "b1"})

        response = await api.sync(context)

        assert response.next_batch == "b1"


class TestPresence:
    """Test presence endpoints."""

    @pytest.mark.asyncio
    async def test_set_presence(self, context, fake_session):
        """Presence is PUT to the user's status path."""
        url = f"{CLIENT_API}/v3/presence/{ENCODED_USER}/status"
        fake_session.add("PUT", url, {})

        await api.set_presence(context, USER, Presence.ONLINE)

        assert fake_session.requests[0].body == {"presence": "online"}

    @pytest.mark.asyncio
    async def test_get_presence(self, context, fake_session):
        """Presence status is parsed."""
        url = f"{CLIENT_API}/v3/presence/{ENCODED_USER}/status"
        fake_session.add(
            "GET",
            url,
            {"presence": "unavailable", "currently_active": False, "last_active_ago": 5},
        )

        status = await api.get_presence(context, USER)

        assert status.presence is Presence.UNAVAILABLE
        assert status.currently_active is False
        assert status.last_active_ago == 5
        assert status.status_msg is None


class TestRoomEndpoints:
    """Test room-scoped endpoints."""

    @pytest.mark.asyncio
    async def test_receipt_defaults_to_main_thread(self, context, fake_session):
        """A receipt without thread id targets the main timeline."""
        url = f"{CLIENT_API}/v3/rooms/{ENCODED_ROOM}/receipt/m.read/{ENCODED_EVENT}"
        fake_session.add("POST", url, {})

        await api.send_receipt(context, ROOM, TEST_EVENT_ID)

        assert fake_session.requests[0].body == {"thread_id": "main"}

    @pytest.mark.asyncio
    async def test_receipt_in_thread(self, context, fake_session):
        """A threaded receipt names the thread root."""
        url = f"{CLIENT_API}/v3/rooms/{ENCODED_ROOM}/receipt/m.read/{ENCODED_EVENT}"
        fake_session.add("POST", url, {})

        await api.send_receipt(context, ROOM, TEST_EVENT_ID, thread_id="$root")

        assert fake_session.requests[0].body == {"thread_id": "$root"}

    @pytest.mark.asyncio
    async def test_read_markers(self, context, fake_session):
        """Read markers set fully-read, and read only when given."""
        fake_session.add("POST", f"{CLIENT_API}/v3/rooms/{ENCODED_ROOM}/read_markers", {})

        await api.set_read_markers(context, ROOM, TEST_EVENT_ID)
        await api.set_read_markers(context, ROOM, TEST_EVENT_ID, TEST_EVENT_ID)

        assert fake_session.requests[0].body == {"m.fully_read": TEST_EVENT_ID}
        assert fake_session.requests[1].body == {
            "m.fully_read": TEST_EVENT_ID,
            "m.read": TEST_EVENT_ID,
        }

    @pytest.mark.asyncio
    async def test_typing(self, context, fake_session):
        """Typing notifications carry the timeout only while typing."""
        url = f"{CLIENT_API}/v3/rooms/{ENCODED_ROOM}/typing/{ENCODED_USER}"
        fake_session.add("PUT", url, {})

        await api.send_typing(context, ROOM, USER, True, 2000)
        await api.send_typing(context, ROOM, USER, False, 2000)

        assert fake_session.requests[0].body == {"typing": True, "timeout": 2000}
        assert fake_session.requests[1].body == {"typing": False}

    @pytest.mark.asyncio
    async def test_send_text_message(self, context, fake_session):
        """Messages are PUT with a transaction id and m.text content."""
        url = f"{CLIENT_API}/v3/rooms/{ENCODED_ROOM}/send/m.room.message/1-1"
        fake_session.add("PUT", url, {"event_id": "$new"})
        mention = parse_identifier(TEST_OTHER_USER_ID, IdKind.USER)

        response = await api.send_text_message(
            context, ROOM, "hello", mentions=[mention], transaction_id="1-1"
        )

        assert response.event_id == "$new"
        assert fake_session.requests[0].body == {
            "msgtype": "m.text",
            "body": "hello",
            "m.mentions": {"user_ids": [TEST_OTHER_USER_ID]},
        }

    @pytest.mark.asyncio
    async def test_send_generates_transaction_ids(self, context, fake_session):
        """Two sends without explicit ids use two different transaction paths."""
        for _ in range(2):
            with pytest.raises(MatrixResponseError):
                await api.send_text_message(context, ROOM, "hi")

        paths = [r.path for r in fake_session.requests]
        assert len(paths) == 2
        assert paths[0] != paths[1]
        assert all("/send/m.room.message/" in p for p in paths)
