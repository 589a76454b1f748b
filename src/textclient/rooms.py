"""Rooms, users and received messages, as seen by a text client."""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Tuple

from . import api
from .constants import ALGORITHM_MEGOLM, DEFAULT_TYPING_TIMEOUT_MS, LOGGER_NAME
from .http import ConnectionContext
from .identifiers import MatrixId
from .models import Membership, Presence

logger = logging.getLogger(LOGGER_NAME)


class User:
    """
    A Matrix user, shared by every room they appear in.

    Fields are filled in from presence events and stay None until the server
    reports them.
    """

    def __init__(self, user_id: MatrixId):
        self.user_id = user_id
        self.display_name: Optional[str] = None
        self.avatar_url: Optional[str] = None
        self.presence: Optional[Presence] = None
        self.status_message: Optional[str] = None
        self.currently_active: Optional[bool] = None
        self.last_active_ago: Optional[int] = None

    def get_display_name(self) -> str:
        return self.display_name or self.user_id.localpart

    def __repr__(self):
        return f"User({self.user_id.full!r})"


class RoomUser:
    """A user's membership in one room, with an optional room-specific display name."""

    def __init__(self, user: User, room: "Room"):
        self.user = user
        self.room = room
        self.display_name: Optional[str] = None
        self.membership: Optional[Membership] = None

    @property
    def user_id(self) -> MatrixId:
        return self.user.user_id

    def get_display_name(self) -> str:
        """Room display name, else the global display name, else the localpart."""
        return self.display_name or self.user.get_display_name()

    def __repr__(self):
        return f"RoomUser({self.user.user_id.full!r}, room={self.room.room_id.full!r})"


@dataclass(frozen=True)
class RoomEncryption:
    algorithm: str = ALGORITHM_MEGOLM
    rotation_period_ms: Optional[int] = None
    rotation_period_msgs: Optional[int] = None


class Room:
    """
    A joined room.

    Created the first time a sync response mentions it and kept for the life of
    the client. ``users`` is a read-only snapshot that is swapped out, never
    mutated, so it can be read without locking.
    """

    def __init__(self, room_id: MatrixId, context: ConnectionContext):
        self.room_id = room_id
        self._context = context
        self.display_name: Optional[str] = None
        self.canonical_alias: Optional[MatrixId] = None
        self.alt_aliases: frozenset = frozenset()
        self.encryption: Optional[RoomEncryption] = None
        self.last_message: Optional["ReceivedTextMessage"] = None
        self.last_receipt_event_id: Optional[str] = None
        self._users: Mapping[str, RoomUser] = MappingProxyType({})
        self._users_lock = threading.Lock()

    @property
    def users(self) -> Mapping[str, RoomUser]:
        return self._users

    def get_or_add_user(self, user: User) -> RoomUser:
        existing = self._users.get(user.user_id.full)
        if existing is not None:
            return existing
        with self._users_lock:
            existing = self._users.get(user.user_id.full)
            if existing is not None:
                return existing
            room_user = RoomUser(user, self)
            updated = dict(self._users)
            updated[user.user_id.full] = room_user
            self._users = MappingProxyType(updated)
            return room_user

    def set_aliases(
        self, canonical_alias: Optional[MatrixId], alt_aliases: Iterable[MatrixId]
    ):
        """Replace the canonical alias and add to the known alternative aliases."""
        self.canonical_alias = canonical_alias
        self.alt_aliases = self.alt_aliases.union(alt_aliases)

    def get_display_name(self) -> str:
        if self.display_name:
            return self.display_name
        if self.canonical_alias is not None:
            return self.canonical_alias.full
        return self.room_id.full

    async def send_text_message(
        self, body: str, mentions: Optional[Iterable[RoomUser]] = None
    ) -> Optional[str]:
        """
        Send a plain text message to this room.

        Parameters:
            body (str): Message text.
            mentions (Iterable[RoomUser] | None): Users to list under ``m.mentions``.

        Returns:
            str | None: Event id assigned by the server.
        """
        mention_ids = [m.user_id for m in mentions] if mentions else None
        response = await api.send_text_message(
            self._context, self.room_id, body, mentions=mention_ids
        )
        return response.event_id

    async def send_typing_notification(
        self, typing: bool = True, timeout_ms: int = DEFAULT_TYPING_TIMEOUT_MS
    ):
        await api.send_typing(
            self._context, self.room_id, self._context.user_id, typing, timeout_ms
        )

    def __repr__(self):
        return f"Room({self.room_id.full!r}, display_name={self.display_name!r})"


@dataclass(frozen=True, eq=False)
class ReceivedTextMessage:
    """An ``m.text`` message received through sync."""

    body: str
    room: Room
    sender: RoomUser
    event_id: str
    timestamp: datetime
    thread_id: Optional[str] = None
    mentions: Tuple[RoomUser, ...] = field(default_factory=tuple)

    async def send_response(self, body: str, mention_sender: bool = False):
        """Reply in the same room, optionally mentioning the sender."""
        mentions = [self.sender] if mention_sender else None
        return await self.room.send_text_message(body, mentions=mentions)

    async def send_receipt(self):
        """
        Mark this message as read: a read receipt, then the fully-read marker.

        The room records the acknowledgement as soon as the receipt is accepted,
        so a failing marker update does not cause the receipt to be resent.
        """
        context = self.room._context
        await api.send_receipt(context, self.room.room_id, self.event_id, self.thread_id)
        self.room.last_receipt_event_id = self.event_id
        logger.debug(f"Marked {self.event_id} as read in {self.room.room_id}")
        await api.set_read_markers(context, self.room.room_id, self.event_id)

    def __str__(self):
        return f"{self.sender.get_display_name()}: {self.body}"
