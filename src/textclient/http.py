"""
Authenticated, rate-limited requests to the homeserver.

Every call to the client-server API goes through send(). It checks the rate
limiter, adds the JSON and bearer headers, maps error responses to typed
exceptions and decodes the body into the requested shape.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional
from urllib.parse import quote, urlencode

import aiohttp

from .constants import (
    CONTENT_TYPE_JSON,
    HEADER_ACCEPT,
    HEADER_AUTHORIZATION,
    HEADER_CONTENT_TYPE,
    HEADER_USER_AGENT,
    LOGGER_NAME,
    REQUEST_TIMEOUT_SEC,
    USER_AGENT,
)
from .errors import (
    DeserializationError,
    EmptyResponseError,
    MatrixHttpError,
    MatrixRequestError,
    MatrixResponseError,
    RateLimitExceededError,
)
from .identifiers import MatrixId, SpecVersion
from .models import Capabilities
from .rate_limiter import LeakyBucketRateLimiter

logger = logging.getLogger(LOGGER_NAME)


@dataclass
class ConnectionContext:
    """
    Everything a request needs: where to send it, how to authenticate, and the
    limiter and cancellation signal that govern it.

    Bootstrap fills this in step by step; afterwards only the token may change.
    """

    session: aiohttp.ClientSession
    base_uri: str
    access_token: Optional[str] = None
    user_id: Optional[MatrixId] = None
    supported_versions: List[SpecVersion] = field(default_factory=list)
    capabilities: Optional[Capabilities] = None
    rate_limiter: Optional[LeakyBucketRateLimiter] = None
    cancellation: Optional[asyncio.Event] = None

    def __repr__(self):
        # keep the access token out of logs
        return (
            f"ConnectionContext(base_uri={self.base_uri!r}, user_id={self.user_id}, "
            f"authenticated={self.access_token is not None})"
        )


def encode_path_segment(value) -> str:
    """Percent-encode an identifier for use as a single URL path segment."""
    return quote(str(value), safe="")


async def _cancellable(coro, cancellation: Optional[asyncio.Event]):
    """
    Await coro, abandoning it as soon as the cancellation event is set.

    Raises:
        asyncio.CancelledError: If the event is set before coro finishes.
    """
    if cancellation is None:
        return await coro
    if cancellation.is_set():
        coro.close()
        raise asyncio.CancelledError("Cancellation requested")

    request = asyncio.ensure_future(coro)
    waiter = asyncio.ensure_future(cancellation.wait())
    try:
        done, _ = await asyncio.wait(
            {request, waiter}, return_when=asyncio.FIRST_COMPLETED
        )
    finally:
        waiter.cancel()
        if not request.done():
            request.cancel()

    if request in done:
        return request.result()
    raise asyncio.CancelledError("Cancellation requested")


async def _perform(session, method, url, headers, data, timeout):
    async with session.request(
        method, url, headers=headers, data=data, timeout=timeout
    ) as response:
        body = await response.read()
        return response.status, response.reason, body


def _raise_for_error(method: str, path: str, status: int, reason, raw: bytes):
    envelope = None
    if raw:
        try:
            envelope = json.loads(raw)
        except (ValueError, UnicodeDecodeError):
            envelope = None

    if isinstance(envelope, Mapping) and isinstance(envelope.get("errcode"), str):
        errcode = envelope["errcode"]
        error = envelope.get("error") if isinstance(envelope.get("error"), str) else ""
        logger.error(
            f"Request {method} {path} failed with status {status}: {errcode} {error}"
        )
        raise MatrixResponseError(path, status, errcode, error)

    logger.error(f"Request {method} {path} failed with status {status}")
    raise MatrixHttpError(path, status, reason)


async def send(
    context: ConnectionContext,
    path: str,
    method: str = "GET",
    body: Any = None,
    ignore_rate_limit: bool = False,
    response_type=None,
    query: Optional[Mapping[str, Any]] = None,
    timeout: Optional[float] = REQUEST_TIMEOUT_SEC,
):
    """
    Send one request to the homeserver and decode the JSON response.

    Parameters:
        context (ConnectionContext): Base URI, token, limiter and cancellation signal.
        path (str): Absolute API path, identifiers already encoded.
        method (str): HTTP method, GET by default.
        body: JSON-serialisable request body, or None for no body.
        ignore_rate_limit (bool): Skip the limiter. Only the sync long-poll should need this.
        response_type: Class with a ``from_dict`` classmethod to build from the decoded JSON.
            When None the decoded JSON is returned as is.
        query (Mapping | None): Query parameters, url-encoded onto the path.
        timeout (float | None): Total timeout in seconds; None disables it.

    Returns:
        The ``response_type`` instance, or the decoded JSON.

    Raises:
        RateLimitExceededError: The limiter denied the request; nothing was sent.
        MatrixResponseError: Non-success status with an ``{errcode, error}`` body.
        MatrixHttpError: Non-success status without a usable error body.
        EmptyResponseError: Success status with an empty body.
        DeserializationError: The body was not JSON or did not fit ``response_type``.
        MatrixRequestError: The connection failed or timed out.
        asyncio.CancelledError: The context's cancellation event was set.
    """
    if (
        not ignore_rate_limit
        and context.rate_limiter is not None
        and not context.rate_limiter.try_consume()
    ):
        logger.warning(f"Rate limit exceeded, not sending {method} {path}")
        raise RateLimitExceededError(path)

    url = f"{context.base_uri}{path}"
    if query:
        url = f"{url}?{urlencode(query)}"

    headers = {HEADER_ACCEPT: CONTENT_TYPE_JSON, HEADER_USER_AGENT: USER_AGENT}
    if context.access_token:
        headers[HEADER_AUTHORIZATION] = f"Bearer {context.access_token}"

    data = None
    if body is not None:
        data = json.dumps(body).encode("utf-8")
        headers[HEADER_CONTENT_TYPE] = CONTENT_TYPE_JSON

    req_timeout = aiohttp.ClientTimeout(total=timeout)

    logger.debug(f"Sending request {method} {url}")
    try:
        status, reason, raw = await _cancellable(
            _perform(context.session, method, url, headers, data, req_timeout),
            context.cancellation,
        )
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        logger.error(f"Request {method} {path} failed: {type(e).__name__}: {e}")
        raise MatrixRequestError(f"Request to {path} failed: {e}", path) from e
    logger.debug(f"Request {method} {url} completed with status {status}")

    if not 200 <= status < 300:
        _raise_for_error(method, path, status, reason, raw)

    if not raw:
        logger.error(f"Request {method} {path} returned an empty response")
        raise EmptyResponseError(path, status)

    try:
        decoded = json.loads(raw)
        if response_type is None:
            return decoded
        return response_type.from_dict(decoded)
    except (ValueError, UnicodeDecodeError, KeyError, TypeError) as e:
        logger.error(f"Failed to deserialize response of {method} {path}: {e}")
        raise DeserializationError(path, str(e), status) from e
