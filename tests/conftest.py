import asyncio
import gc
import json
import os
import sys
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import pytest

# Ensure src/ is importable without installation
PROJECT_ROOT = Path(__file__).resolve().parent.parent
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from textclient.http import ConnectionContext  # noqa: E402
from textclient.identifiers import IdKind, parse_identifier  # noqa: E402
from tests.test_constants import (  # noqa: E402
    TEST_ACCESS_TOKEN,
    TEST_HOMESERVER,
    TEST_USER_ID,
)


@dataclass
class RecordedRequest:
    method: str
    url: str
    headers: dict
    body: Any

    @property
    def path(self) -> str:
        return self.url.split("?", 1)[0]


class FakeResponse:
    """Async context manager standing in for an aiohttp response."""

    def __init__(
        self,
        status: int = 200,
        body: bytes = b"",
        reason: str = "OK",
        exc: Optional[BaseException] = None,
        hang: bool = False,
    ):
        self.status = status
        self.reason = reason
        self._body = body
        self._exc = exc
        self._hang = hang

    async def __aenter__(self):
        if self._hang:
            await asyncio.Event().wait()
        if self._exc is not None:
            raise self._exc
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def read(self):
        return self._body


class FakeSession:
    """
    Scripted stand-in for aiohttp.ClientSession.

    Responses are registered per (method, URL without query). Several responses for
    the same route are served in order; the last one keeps being served. Unknown
    routes answer 404 M_UNRECOGNIZED like a homeserver does.
    """

    def __init__(self):
        self.routes = {}
        self.requests = []
        self.closed = False

    def add(self, method, url, payload=None, status=200, raw=None, reason="OK"):
        if raw is None:
            raw = json.dumps(payload).encode() if payload is not None else b""
        self.routes.setdefault((method, url), []).append(
            FakeResponse(status=status, body=raw, reason=reason)
        )

    def add_error(self, method, url, exc):
        self.routes.setdefault((method, url), []).append(FakeResponse(exc=exc))

    def add_hanging(self, method, url):
        self.routes.setdefault((method, url), []).append(FakeResponse(hang=True))

    def request(self, method, url, headers=None, data=None, timeout=None):
        body = json.loads(data) if data else None
        recorded = RecordedRequest(method, url, dict(headers or {}), body)
        self.requests.append(recorded)
        queue = self.routes.get((method, recorded.path))
        if not queue:
            return FakeResponse(
                status=404,
                body=json.dumps(
                    {"errcode": "M_UNRECOGNIZED", "error": "Unrecognized request"}
                ).encode(),
                reason="Not Found",
            )
        return queue.pop(0) if len(queue) > 1 else queue[0]

    def requests_to(self, method, path_suffix):
        return [
            r
            for r in self.requests
            if r.method == method and r.path.endswith(path_suffix)
        ]

    async def close(self):
        self.closed = True


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def clear_env(keys):
    """
    Remove the given environment variables and return their previous values.

    Parameters:
        keys (iterable[str]): Names of environment variables to remove.

    Returns:
        dict: Mapping of each removed variable name to its previous value.
    """
    removed = {}
    for k in keys:
        if k in os.environ:
            removed[k] = os.environ.pop(k)
    return removed


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def context(fake_session):
    """Authenticated connection context without a rate limiter."""
    return ConnectionContext(
        session=fake_session,
        base_uri=TEST_HOMESERVER,
        access_token=TEST_ACCESS_TOKEN,
        user_id=parse_identifier(TEST_USER_ID, IdKind.USER),
    )


@pytest.fixture(autouse=True)
def cleanup_asyncmock_objects(request):
    """Collect garbage after AsyncMock-heavy modules so 'never awaited' warnings stay quiet."""
    yield
    if any(name in request.node.path.name for name in ("test_cli", "test_client")):
        with warnings.catch_warnings():
            warnings.filterwarnings(
                "ignore", category=RuntimeWarning, message=".*never awaited.*"
            )
            gc.collect()
