"""
Connecting to a homeserver and running the sync loop.

MatrixTextClient.connect() performs the one-shot bootstrap (discovery, version
negotiation, password login, capabilities). sync() then long-polls the server,
applies each response to the known rooms and users, delivers new text messages
and acknowledges them with read receipts.
"""

import asyncio
import dataclasses
import inspect
import json
import logging
import ssl
from pathlib import Path
from types import MappingProxyType
from typing import Awaitable, Callable, Mapping, Optional, Union
from urllib.parse import urlsplit

import aiohttp
import certifi

from . import api
from .constants import (
    ERROR_EMPTY_ACCESS_TOKEN,
    ERROR_EMPTY_FILTER_ID,
    ERROR_INVALID_USER_ID,
    ERROR_NO_BASE_URL,
    ERROR_NO_PASSWORD_LOGIN,
    ERROR_NO_VERSIONS,
    ERROR_NOT_BLANK,
    FILE_ENCODING_UTF8,
    LOGGER_NAME,
    LOGIN_TYPE_PASSWORD,
    MATRIX_DEVICE_NAME,
    RATE_LIMIT_BURST_CAPACITY,
    RECEIPT_BURST_CAPACITY,
    RECEIPT_MAX_PER_HOUR,
    REFERENCE_SPEC_VERSION,
    URL_PREFIX_HTTPS,
)
from .dispatcher import SyncDispatcher
from .errors import (
    ConnectError,
    InvalidArgumentError,
    MatrixError,
    MatrixRequestError,
    RateLimitExceededError,
)
from .filters import Filter, build_text_message_filter
from .http import ConnectionContext
from .identifiers import IdKind, MatrixId, SpecVersion, try_parse_identifier
from .models import Presence, SyncResponse
from .rate_limiter import LeakyBucketRateLimiter
from .rooms import ReceivedTextMessage, Room, User

logger = logging.getLogger(LOGGER_NAME)

MessageHandler = Callable[[ReceivedTextMessage], Union[Awaitable[None], None]]

_CHANNEL_CLOSED = object()


def _create_ssl_context():
    """Return an SSLContext using certifi's CA bundle, or the system default if that fails."""
    try:
        return ssl.create_default_context(cafile=certifi.where())
    except (ssl.SSLError, OSError) as e:
        logger.warning(
            f"Failed to create certifi-backed SSL context, using system default: {e}"
        )
        return ssl.create_default_context()


def _create_session() -> aiohttp.ClientSession:
    return aiohttp.ClientSession(
        connector=aiohttp.TCPConnector(ssl=_create_ssl_context())
    )


def _is_absolute_uri(value: str) -> bool:
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.netloc)


def _require_not_blank(value: Optional[str], name: str, argument: str):
    if value is None or not value.strip():
        raise InvalidArgumentError(ERROR_NOT_BLANK.format(name), argument)


class MatrixTextClient:
    """
    A connected client.

    Build one with connect(); call sync() to start receiving messages, and
    close() when done. Rooms and users seen so far are available through
    ``rooms`` and ``users``.
    """

    def __init__(
        self,
        context: ConnectionContext,
        owns_session: bool = False,
        debug_dump_dir: Optional[Path] = None,
    ):
        self.context = context
        self._owns_session = owns_session
        self._debug_dump_dir = debug_dump_dir
        self._dispatcher = SyncDispatcher(context)
        self._receipt_limiter = LeakyBucketRateLimiter(
            RECEIPT_BURST_CAPACITY, RECEIPT_MAX_PER_HOUR
        )
        self._queue: asyncio.Queue = asyncio.Queue()
        self.filter: Optional[Filter] = None
        self.filter_id: Optional[str] = None
        self.next_batch: Optional[str] = None

    @classmethod
    async def connect(
        cls,
        user_id: str,
        password: str,
        device_id: str,
        cancellation: Optional[asyncio.Event] = None,
        session: Optional[aiohttp.ClientSession] = None,
        device_name: str = MATRIX_DEVICE_NAME,
        debug_dump_dir: Optional[Path] = None,
    ) -> "MatrixTextClient":
        """
        Log in with a password and return a client ready to sync.

        The homeserver is discovered from the user id's domain through
        ``/.well-known/matrix/client``.

        Parameters:
            user_id (str): Full user id, e.g. ``@bot:example.org``.
            password (str): Account password.
            device_id (str): Device id to log in as.
            cancellation (asyncio.Event | None): Set it to stop in-flight requests and the sync loop.
            session (aiohttp.ClientSession | None): Session to reuse; one is created (and
                closed by close()) when omitted.
            device_name (str): Display name given to a newly created device.
            debug_dump_dir (Path | None): When set, every sync response is written there as JSON.

        Returns:
            MatrixTextClient: The connected client.

        Raises:
            InvalidArgumentError: A credential is blank or the user id is malformed.
            ConnectError: The server refused a bootstrap step.
            InvalidSpecVersionError: The server reported a malformed spec version.
            MatrixRequestError: A request failed.
        """
        _require_not_blank(user_id, "User ID", "user_id")
        _require_not_blank(password, "Password", "password")
        _require_not_blank(device_id, "Device ID", "device_id")
        parsed_user_id = try_parse_identifier(user_id, IdKind.USER)
        if parsed_user_id is None:
            raise InvalidArgumentError(ERROR_INVALID_USER_ID, "user_id")

        provisional_uri = f"{URL_PREFIX_HTTPS}{parsed_user_id.domain}"
        if not _is_absolute_uri(provisional_uri):
            raise InvalidArgumentError(ERROR_INVALID_USER_ID, "user_id")

        owns_session = session is None
        if session is None:
            session = _create_session()

        context = ConnectionContext(
            session=session, base_uri=provisional_uri, cancellation=cancellation
        )
        try:
            await cls._bootstrap(
                context, parsed_user_id, password, device_id, device_name
            )
        except BaseException:
            if owns_session:
                await session.close()
            raise

        logger.info(f"Connected to {context.base_uri} as {parsed_user_id}")
        return cls(context, owns_session=owns_session, debug_dump_dir=debug_dump_dir)

    @staticmethod
    async def _bootstrap(
        context: ConnectionContext,
        user_id: MatrixId,
        password: str,
        device_id: str,
        device_name: str,
    ):
        logger.debug(f"Discovering homeserver for {user_id.domain}")
        well_known = await api.get_well_known(context)
        base_url = (well_known.homeserver_base_url or "").strip().rstrip("/")
        if not base_url:
            raise ConnectError(ERROR_NO_BASE_URL)
        if not _is_absolute_uri(base_url):
            raise ConnectError(f"Homeserver base URL is not a valid URI: {base_url!r}")
        context.base_uri = base_url
        logger.debug(f"Using homeserver {base_url}")

        versions = await api.get_versions(context)
        if not versions.versions:
            raise ConnectError(ERROR_NO_VERSIONS)
        context.supported_versions = sorted(
            SpecVersion.parse(v) for v in versions.versions
        )
        if SpecVersion.parse(REFERENCE_SPEC_VERSION) not in context.supported_versions:
            logger.warning(
                f"Server does not list spec version {REFERENCE_SPEC_VERSION}, "
                f"supported: {', '.join(str(v) for v in context.supported_versions)}"
            )

        flows = await api.get_login_flows(context)
        if LOGIN_TYPE_PASSWORD not in flows.flows:
            raise ConnectError(ERROR_NO_PASSWORD_LOGIN)

        login = await api.password_login(
            context, user_id, password, device_id, device_name
        )
        if not login.access_token:
            raise ConnectError(ERROR_EMPTY_ACCESS_TOKEN)
        context.access_token = login.access_token
        context.user_id = user_id

        context.capabilities = await api.get_capabilities(context)
        context.rate_limiter = LeakyBucketRateLimiter(
            RATE_LIMIT_BURST_CAPACITY, context.capabilities.max_requests_per_hour
        )
        logger.debug(
            f"Rate limit: {context.capabilities.max_requests_per_hour} requests per hour"
        )

    # --- State accessors --------------------------------------------------------

    @property
    def current_user(self) -> User:
        return self._dispatcher.get_or_create_user(self.context.user_id)

    @property
    def rooms(self) -> Mapping[str, Room]:
        return MappingProxyType(self._dispatcher.rooms)

    @property
    def users(self) -> Mapping[str, User]:
        return MappingProxyType(self._dispatcher.users)

    def get_room(self, room_id: str) -> Optional[Room]:
        return self._dispatcher.rooms.get(room_id)

    def _cancel_requested(self) -> bool:
        cancellation = self.context.cancellation
        return cancellation is not None and cancellation.is_set()

    # --- Filter -----------------------------------------------------------------

    async def set_filter(self, sync_filter: Optional[Filter] = None) -> str:
        """
        Register a sync filter and use it for every later sync request.

        The filter is read back from the server, which is authoritative for its
        effective content.

        Raises:
            ConnectError: The server returned no filter id.
            MatrixRequestError: Registration or read-back failed.
        """
        if sync_filter is None:
            sync_filter = build_text_message_filter()
        response = await api.post_filter(self.context, self.context.user_id, sync_filter)
        if not response.filter_id:
            raise ConnectError(ERROR_EMPTY_FILTER_ID)
        self.filter = await api.get_filter(
            self.context, self.context.user_id, response.filter_id
        )
        self.filter_id = response.filter_id
        logger.debug(f"Registered sync filter {self.filter_id}")
        return self.filter_id

    # --- Sync loop --------------------------------------------------------------

    async def sync(self, handler: Optional[MessageHandler] = None):
        """
        Run the sync loop until the cancellation event is set or a request fails.

        Parameters:
            handler: Called with each new ReceivedTextMessage, one at a time. May be a
                coroutine function. Exceptions it raises are logged and do not stop the
                loop. When omitted, messages are queued for messages().

        Raises:
            MatrixError: A sync request failed; the loop does not retry.
        """
        try:
            if self.filter_id is None:
                await self.set_filter()

            await api.set_presence(self.context, self.context.user_id, Presence.ONLINE)
            logger.info("Starting sync loop")

            first_response = True
            while not self._cancel_requested():
                response = await api.sync(
                    self.context, since=self.next_batch, filter_id=self.filter_id
                )
                self._dump_response(response)
                messages = self._dispatcher.dispatch(response)
                self.next_batch = response.next_batch

                # messages from a completed response are delivered even when
                # cancellation was requested meanwhile
                await self._deliver(messages, handler)
                if self._cancel_requested():
                    break

                if first_response:
                    first_response = False
                    await self._refresh_own_presence()
                await self._send_receipts()
        except asyncio.CancelledError:
            if not self._cancel_requested():
                raise
            logger.debug("Sync request interrupted by cancellation")
        finally:
            self._close_channel()
            logger.info("Sync loop stopped")

    async def messages(self):
        """Yield messages queued by a handler-less sync() until the loop stops."""
        while True:
            item = await self._queue.get()
            if item is _CHANNEL_CLOSED:
                # leave the marker for any other consumer
                self._queue.put_nowait(_CHANNEL_CLOSED)
                return
            yield item

    def _close_channel(self):
        self._queue.put_nowait(_CHANNEL_CLOSED)

    async def _deliver(self, messages, handler: Optional[MessageHandler]):
        for message in messages:
            if handler is None:
                self._queue.put_nowait(message)
                continue
            try:
                result = handler(message)
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception(f"Message handler failed for event {message.event_id}")

    async def _send_receipts(self):
        for room in list(self._dispatcher.rooms.values()):
            if self._cancel_requested():
                return
            message = room.last_message
            if message is None or message.event_id == room.last_receipt_event_id:
                continue
            if not self._receipt_limiter.try_consume():
                logger.debug("Receipt limit reached, deferring read receipts")
                return
            try:
                await message.send_receipt()
            except RateLimitExceededError:
                logger.warning(
                    f"Rate limited, read receipt for {message.event_id} postponed"
                )
                return
            except MatrixRequestError as e:
                logger.warning(
                    f"Failed to send read receipt for {message.event_id} in {room.room_id}: {e}"
                )

    async def _refresh_own_presence(self):
        try:
            status = await api.get_presence(self.context, self.context.user_id)
        except MatrixError as e:
            logger.warning(f"Could not fetch own presence: {e}")
            return
        user = self.current_user
        if status.presence is not None:
            user.presence = status.presence
        if status.currently_active is not None:
            user.currently_active = status.currently_active
        if status.status_msg is not None:
            user.status_message = status.status_msg
        if status.last_active_ago is not None:
            user.last_active_ago = status.last_active_ago

    def _dump_response(self, response: SyncResponse):
        if self._debug_dump_dir is None:
            return
        path = Path(self._debug_dump_dir) / f"{response.next_batch}.json"
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding=FILE_ENCODING_UTF8) as f:
                json.dump(dataclasses.asdict(response), f, indent=2, default=str)
        except OSError:
            logger.warning(f"Could not write sync dump to {path}", exc_info=True)

    async def close(self):
        """Close the HTTP session if this client created it."""
        if self._owns_session and not self.context.session.closed:
            await self.context.session.close()

    def __repr__(self):
        return f"MatrixTextClient({self.context!r}, rooms={len(self._dispatcher.rooms)})"
