"""
Turns sync responses into room/user state and received text messages.

Parsing is tolerant: a malformed or unknown event is logged and skipped, it
never fails the sync. Only the transport can fail a sync.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from .constants import (
    ALGORITHM_MEGOLM,
    EVENT_PRESENCE,
    EVENT_RECEIPT,
    EVENT_ROOM_AVATAR,
    EVENT_ROOM_CANONICAL_ALIAS,
    EVENT_ROOM_ENCRYPTED,
    EVENT_ROOM_ENCRYPTION,
    EVENT_ROOM_JOIN_RULES,
    EVENT_ROOM_MEMBER,
    EVENT_ROOM_MESSAGE,
    EVENT_ROOM_NAME,
    EVENT_ROOM_POWER_LEVELS,
    EVENT_ROOM_TOPIC,
    EVENT_TYPING,
    LOGGER_NAME,
    MSGTYPE_TEXT,
)
from .http import ConnectionContext
from .identifiers import IdKind, MatrixId, try_parse_identifier
from .models import (
    CanonicalAliasContent,
    ClientEvent,
    JoinedRoom,
    PresenceContent,
    RoomEncryptedContent,
    RoomEncryptionContent,
    RoomMemberContent,
    RoomMessageContent,
    RoomNameContent,
    SyncResponse,
)
from .rooms import ReceivedTextMessage, Room, RoomEncryption, RoomUser, User

logger = logging.getLogger(LOGGER_NAME)

_IGNORED_STATE_TYPES = frozenset(
    {
        EVENT_ROOM_POWER_LEVELS,
        EVENT_ROOM_JOIN_RULES,
        EVENT_ROOM_TOPIC,
        EVENT_ROOM_AVATAR,
    }
)


class SyncDispatcher:
    """
    Holds the rooms and users a client knows about and applies sync responses to them.

    Rooms and users are created on first reference and never removed.
    """

    def __init__(self, context: ConnectionContext):
        self._context = context
        self._rooms: Dict[str, Room] = {}
        self._users: Dict[str, User] = {}

    @property
    def rooms(self) -> Dict[str, Room]:
        return self._rooms

    @property
    def users(self) -> Dict[str, User]:
        return self._users

    def get_or_create_user(self, user_id: MatrixId) -> User:
        user = self._users.get(user_id.full)
        if user is None:
            # setdefault is atomic, so concurrent callers end up with the same object
            user = self._users.setdefault(user_id.full, User(user_id))
        return user

    def get_or_create_room(self, room_id: MatrixId) -> Room:
        room = self._rooms.get(room_id.full)
        if room is None:
            room = self._rooms.setdefault(room_id.full, Room(room_id, self._context))
        return room

    def get_or_create_room_user(self, room: Room, user_id: MatrixId) -> RoomUser:
        return room.get_or_add_user(self.get_or_create_user(user_id))

    def dispatch(self, response: SyncResponse) -> List[ReceivedTextMessage]:
        """
        Apply one sync response and return the new text messages in arrival order.

        Sections are handled in a fixed order: account data, presence, then each
        joined room (summary, account data, ephemeral, state, timeline).
        """
        messages: List[ReceivedTextMessage] = []

        for event in response.account_data:
            self._handle_account_data(event, None)

        for event in response.presence:
            self._handle_presence(event)

        for raw_room_id, joined in response.rooms.join.items():
            room_id = try_parse_identifier(raw_room_id, IdKind.ROOM)
            if room_id is None:
                logger.warning(f"Skipping joined room with invalid id {raw_room_id!r}")
                continue
            self._handle_joined_room(self.get_or_create_room(room_id), joined, messages)

        for section in ("invite", "leave", "knock"):
            rooms = getattr(response.rooms, section)
            if rooms:
                logger.debug(f"Ignoring {len(rooms)} {section} room(s): {list(rooms)}")

        return messages

    # --- Sections -------------------------------------------------------------

    def _handle_account_data(self, event: ClientEvent, room: Optional[Room]):
        where = f"room {room.room_id}" if room else "global"
        logger.debug(f"Received {where} account data of type {event.type}")

    def _handle_presence(self, event: ClientEvent):
        if event.type != EVENT_PRESENCE:
            logger.warning(f"Unexpected event type {event.type!r} in presence section")
            return
        user_id = try_parse_identifier(event.sender, IdKind.USER)
        if user_id is None:
            logger.warning(f"Presence event has invalid sender {event.sender!r}")
            return
        if event.content is None:
            logger.warning(f"Presence event for {user_id} has no content")
            return

        content = PresenceContent.from_content(event.content)
        user = self.get_or_create_user(user_id)
        if content.currently_active is not None:
            user.currently_active = content.currently_active
        if content.avatar_url is not None:
            user.avatar_url = content.avatar_url
        if content.displayname is not None:
            user.display_name = content.displayname
        if content.presence is not None:
            user.presence = content.presence
        if content.status_msg is not None:
            user.status_message = content.status_msg
        if content.last_active_ago is not None:
            user.last_active_ago = content.last_active_ago

    def _handle_joined_room(
        self, room: Room, joined: JoinedRoom, messages: List[ReceivedTextMessage]
    ):
        if joined.summary is not None and joined.summary.heroes:
            for hero in joined.summary.heroes:
                hero_id = try_parse_identifier(hero, IdKind.USER)
                if hero_id is None:
                    logger.warning(f"Room {room.room_id} has invalid hero id {hero!r}")
                    continue
                self.get_or_create_room_user(room, hero_id)

        for event in joined.account_data:
            self._handle_account_data(event, room)

        for event in joined.ephemeral:
            if event.type not in (EVENT_TYPING, EVENT_RECEIPT):
                logger.warning(
                    f"Unexpected ephemeral event {event.type!r} in room {room.room_id}"
                )

        for event in joined.state:
            self._handle_state_event(room, event)

        for event in joined.timeline.events:
            self._handle_timeline_event(room, event, messages)

        if joined.unread_notifications:
            logger.debug(
                f"Room {room.room_id} unread notifications: {joined.unread_notifications}"
            )

    def _handle_state_event(self, room: Room, event: ClientEvent):
        if event.content is None:
            logger.warning(
                f"State event {event.type} in room {room.room_id} has no content"
            )
            return

        if event.type == EVENT_ROOM_MEMBER:
            self._handle_member(room, event)
        elif event.type == EVENT_ROOM_NAME:
            name = RoomNameContent.from_content(event.content).name
            if name is not None:
                room.display_name = name
        elif event.type == EVENT_ROOM_CANONICAL_ALIAS:
            content = CanonicalAliasContent.from_content(event.content)
            alias = try_parse_identifier(content.alias, IdKind.ROOM_ALIAS)
            alt_aliases = [
                parsed
                for parsed in (
                    try_parse_identifier(a, IdKind.ROOM_ALIAS) for a in content.alt_aliases
                )
                if parsed is not None
            ]
            room.set_aliases(alias, alt_aliases)
        elif event.type in _IGNORED_STATE_TYPES:
            logger.debug(f"Ignoring state event {event.type} in room {room.room_id}")
        else:
            logger.warning(
                f"Unknown state event {event.type!r} in room {room.room_id}"
            )

    def _handle_member(self, room: Room, event: ClientEvent):
        raw_user_id = event.state_key or event.sender
        user_id = try_parse_identifier(raw_user_id, IdKind.USER)
        if user_id is None:
            logger.warning(
                f"Member event in room {room.room_id} has invalid user id {raw_user_id!r}"
            )
            return
        content = RoomMemberContent.from_content(event.content)
        room_user = self.get_or_create_room_user(room, user_id)
        if content.displayname is not None:
            room_user.display_name = content.displayname
        if content.membership is not None:
            room_user.membership = content.membership

    def _handle_timeline_event(
        self, room: Room, event: ClientEvent, messages: List[ReceivedTextMessage]
    ):
        if event.content is None:
            logger.warning(
                f"Timeline event {event.type} in room {room.room_id} has no content"
            )
            return

        if event.type == EVENT_ROOM_MESSAGE:
            message = self._parse_text_message(room, event)
            if message is not None:
                messages.append(message)
                room.last_message = message
        elif event.type == EVENT_ROOM_ENCRYPTION:
            content = RoomEncryptionContent.from_content(event.content)
            if content.algorithm != ALGORITHM_MEGOLM:
                logger.warning(
                    f"Unknown encryption algorithm {content.algorithm!r} in room {room.room_id}"
                )
                return
            room.encryption = RoomEncryption(
                algorithm=content.algorithm,
                rotation_period_ms=content.rotation_period_ms,
                rotation_period_msgs=content.rotation_period_msgs,
            )
        elif event.type == EVENT_ROOM_ENCRYPTED:
            content = RoomEncryptedContent.from_content(event.content)
            expected = room.encryption.algorithm if room.encryption else None
            if content.algorithm != expected:
                logger.warning(
                    f"Encrypted event {event.event_id} in room {room.room_id} uses "
                    f"{content.algorithm!r}, room uses {expected!r}"
                )
                return
            logger.info(
                f"Dropping encrypted event {event.event_id} in room {room.room_id}: decryption is not supported"
            )
        elif event.type == EVENT_ROOM_MEMBER:
            self._handle_member(room, event)
        else:
            logger.warning(
                f"Unknown timeline event {event.type!r} in room {room.room_id}"
            )

    def _parse_text_message(
        self, room: Room, event: ClientEvent
    ) -> Optional[ReceivedTextMessage]:
        content = RoomMessageContent.from_content(event.content)
        if content.msgtype != MSGTYPE_TEXT:
            logger.info(
                f"Dropping message {event.event_id} of type {content.msgtype!r} in room {room.room_id}"
            )
            return None
        sender_id = try_parse_identifier(event.sender, IdKind.USER)
        if sender_id is None:
            logger.warning(
                f"Message {event.event_id} in room {room.room_id} has invalid sender {event.sender!r}"
            )
            return None
        if content.body is None or event.event_id is None:
            logger.warning(
                f"Message in room {room.room_id} is missing its body or event id"
            )
            return None

        mentions = []
        for raw in content.mentioned_user_ids or ():
            mentioned_id = try_parse_identifier(raw, IdKind.USER)
            if mentioned_id is not None:
                mentions.append(self.get_or_create_room_user(room, mentioned_id))

        return ReceivedTextMessage(
            body=content.body,
            room=room,
            sender=self.get_or_create_room_user(room, sender_id),
            event_id=event.event_id,
            timestamp=datetime.fromtimestamp(
                (event.origin_server_ts or 0) / 1000, tz=timezone.utc
            ),
            thread_id=content.thread_id,
            mentions=tuple(mentions),
        )
