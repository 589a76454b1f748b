"""Tests for the transport gateway."""

import asyncio
import json
from unittest.mock import patch

import aiohttp
import pytest

from textclient import http
from textclient.errors import (
    DeserializationError,
    EmptyResponseError,
    MatrixHttpError,
    MatrixRequestError,
    MatrixResponseError,
    RateLimitExceededError,
)
from textclient.models import LoginResponse
from textclient.rate_limiter import LeakyBucketRateLimiter
from tests.test_constants import TEST_ACCESS_TOKEN, TEST_HOMESERVER

PATH = "/_matrix/client/v3/test"
URL = f"{TEST_HOMESERVER}{PATH}"


class TestRequestConstruction:
    """Test headers, body and URL building."""

    @pytest.mark.asyncio
    async def test_get_with_bearer_token(self, context, fake_session):
        """GET sends Accept and Authorization headers and no body."""
        fake_session.add("GET", URL, {"ok": True})

        result = await http.send(context, PATH)

        assert result == {"ok": True}
        request = fake_session.requests[0]
        assert request.method == "GET"
        assert request.url == URL
        assert request.headers["Accept"] == "application/json"
        assert request.headers["Authorization"] == f"Bearer {TEST_ACCESS_TOKEN}"
        assert request.body is None

    @pytest.mark.asyncio
    async def test_no_token_no_authorization(self, context, fake_session):
        """Unauthenticated requests carry no Authorization header."""
        context.access_token = None
        fake_session.add("GET", URL, {})

        await http.send(context, PATH)

        assert "Authorization" not in fake_session.requests[0].headers

    @pytest.mark.asyncio
    async def test_json_body(self, context, fake_session):
        """A body is JSON-encoded with a JSON content type."""
        fake_session.add("POST", URL, {})

        await http.send(context, PATH, method="POST", body={"a": [1, 2]})

        request = fake_session.requests[0]
        assert request.body == {"a": [1, 2]}
        assert request.headers["Content-Type"] == "application/json"

    @pytest.mark.asyncio
    async def test_query_is_encoded(self, context, fake_session):
        """Query parameters are url-encoded onto the URL."""
        fake_session.add("GET", URL, {})

        await http.send(context, PATH, query={"since": "s1/2", "timeout": 5})

        assert fake_session.requests[0].url == f"{URL}?since=s1%2F2&timeout=5"

    @pytest.mark.asyncio
    async def test_response_type(self, context, fake_session):
        """The decoded JSON is handed to response_type.from_dict."""
        fake_session.add("POST", URL, {"access_token": "tok", "device_id": "D"})

        result = await http.send(
            context, PATH, method="POST", body={}, response_type=LoginResponse
        )

        assert isinstance(result, LoginResponse)
        assert result.access_token == "tok"

    def test_encode_path_segment(self):
        """Identifiers are fully percent-encoded."""
        assert http.encode_path_segment("!room:example.org") == "%21room%3Aexample.org"
        assert http.encode_path_segment("$a/b") == "%24a%2Fb"

    def test_context_repr_hides_token(self, context):
        """The access token never shows up in the context's repr."""
        assert TEST_ACCESS_TOKEN not in repr(context)


class TestRateLimiting:
    """Test the pre-flight rate limit check."""

    @pytest.mark.asyncio
    async def test_denied_request_is_not_sent(self, context, fake_session, fake_clock):
        """A denial raises before any network call."""
        context.rate_limiter = LeakyBucketRateLimiter(1, 600, clock=fake_clock)
        fake_session.add("GET", URL, {})

        await http.send(context, PATH)
        with pytest.raises(RateLimitExceededError) as exc_info:
            await http.send(context, PATH)

        assert exc_info.value.path == PATH
        assert len(fake_session.requests) == 1

    @pytest.mark.asyncio
    async def test_ignore_rate_limit(self, context, fake_session, fake_clock):
        """ignore_rate_limit bypasses an empty bucket."""
        limiter = LeakyBucketRateLimiter(1, 600, clock=fake_clock)
        limiter.try_consume()
        context.rate_limiter = limiter
        fake_session.add("GET", URL, {})

        await http.send(context, PATH, ignore_rate_limit=True)

        assert len(fake_session.requests) == 1
        assert limiter.level == 0


class TestResponseHandling:
    """Test mapping of responses to results and errors."""

    @pytest.mark.asyncio
    async def test_error_envelope(self, context, fake_session):
        """errcode and error are carried verbatim."""
        fake_session.add(
            "GET",
            URL,
            {"errcode": "M_FORBIDDEN", "error": "Invalid password"},
            status=403,
        )

        with pytest.raises(MatrixResponseError) as exc_info:
            await http.send(context, PATH)

        error = exc_info.value
        assert error.errcode == "M_FORBIDDEN"
        assert error.error == "Invalid password"
        assert error.status == 403
        assert error.path == PATH

    @pytest.mark.asyncio
    async def test_error_without_envelope(self, context, fake_session):
        """A non-JSON error body gives a generic HTTP error with the status."""
        fake_session.add(
            "GET", URL, raw=b"<html>Bad Gateway</html>", status=502, reason="Bad Gateway"
        )

        with pytest.raises(MatrixHttpError) as exc_info:
            await http.send(context, PATH)

        assert exc_info.value.status == 502
        assert exc_info.value.reason == "Bad Gateway"
        assert not isinstance(exc_info.value, MatrixResponseError)

    @pytest.mark.asyncio
    async def test_error_with_empty_body(self, context, fake_session):
        """An error status with no body is still a generic HTTP error."""
        fake_session.add("GET", URL, status=500, reason="Internal Server Error")

        with pytest.raises(MatrixHttpError):
            await http.send(context, PATH)

    @pytest.mark.asyncio
    async def test_empty_success_body(self, context, fake_session):
        """A 200 with an empty body is an error."""
        fake_session.add("GET", URL, raw=b"")

        with pytest.raises(EmptyResponseError):
            await http.send(context, PATH)

    @pytest.mark.asyncio
    async def test_invalid_json(self, context, fake_session):
        """A body that is not JSON fails to deserialize."""
        fake_session.add("GET", URL, raw=b"{not json")

        with pytest.raises(DeserializationError):
            await http.send(context, PATH)

    @pytest.mark.asyncio
    async def test_wrong_shape(self, context, fake_session):
        """JSON that does not fit the response type fails to deserialize."""
        fake_session.add("GET", URL, raw=json.dumps([1, 2]).encode())

        with pytest.raises(DeserializationError):
            await http.send(context, PATH, response_type=LoginResponse)

    @pytest.mark.asyncio
    async def test_failures_are_logged_with_path(self, context, fake_session):
        """Every failure is logged with the request path."""
        fake_session.add("GET", URL, raw=b"")

        with patch("textclient.http.logger") as mock_logger:
            with pytest.raises(EmptyResponseError):
                await http.send(context, PATH)

        assert PATH in mock_logger.error.call_args[0][0]

    @pytest.mark.asyncio
    async def test_client_error_is_wrapped(self, context, fake_session):
        """Connection failures surface as MatrixRequestError."""
        fake_session.add_error(
            "GET", URL, aiohttp.ClientConnectionError("connection refused")
        )

        with pytest.raises(MatrixRequestError) as exc_info:
            await http.send(context, PATH)

        assert exc_info.value.path == PATH
        assert isinstance(exc_info.value.__cause__, aiohttp.ClientConnectionError)


class TestCancellation:
    """Test the cancellation signal."""

    @pytest.mark.asyncio
    async def test_cancel_before_send(self, context, fake_session):
        """A set signal stops the request before it is made."""
        context.cancellation = asyncio.Event()
        context.cancellation.set()
        fake_session.add("GET", URL, {})

        with pytest.raises(asyncio.CancelledError):
            await http.send(context, PATH)

        assert fake_session.requests == []

    @pytest.mark.asyncio
    async def test_cancel_unblocks_in_flight_request(self, context, fake_session):
        """Setting the signal interrupts a request that is still waiting."""
        context.cancellation = asyncio.Event()
        fake_session.add_hanging("GET", URL)
        asyncio.get_running_loop().call_later(0.01, context.cancellation.set)

        with pytest.raises(asyncio.CancelledError):
            await asyncio.wait_for(http.send(context, PATH), timeout=5)
