"""Sync filter documents and the filter used by text-message clients."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from .constants import (
    EVENT_ACCOUNT_DATA_WILDCARD,
    EVENT_RECEIPT,
    EVENT_ROOM_AVATAR,
    EVENT_ROOM_GUEST_ACCESS,
    EVENT_ROOM_HISTORY_VISIBILITY,
    EVENT_ROOM_JOIN_RULES,
    EVENT_ROOM_POWER_LEVELS,
    EVENT_TYPING,
    EVENT_WIDGETS,
)


def _prune(data: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in data.items() if value is not None}


def _str_list(value) -> Optional[List[str]]:
    if not isinstance(value, list):
        return None
    return [v for v in value if isinstance(v, str)]


@dataclass
class EventFilter:
    limit: Optional[int] = None
    types: Optional[List[str]] = None
    not_types: Optional[List[str]] = None
    senders: Optional[List[str]] = None
    not_senders: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        return _prune(
            {
                "limit": self.limit,
                "types": self.types,
                "not_types": self.not_types,
                "senders": self.senders,
                "not_senders": self.not_senders,
            }
        )

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]):
        if not isinstance(data, Mapping):
            return None
        return cls(
            limit=data.get("limit"),
            types=_str_list(data.get("types")),
            not_types=_str_list(data.get("not_types")),
            senders=_str_list(data.get("senders")),
            not_senders=_str_list(data.get("not_senders")),
        )


@dataclass
class RoomEventFilter(EventFilter):
    lazy_load_members: Optional[bool] = None
    include_redundant_members: Optional[bool] = None
    contains_url: Optional[bool] = None
    rooms: Optional[List[str]] = None
    not_rooms: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            _prune(
                {
                    "lazy_load_members": self.lazy_load_members,
                    "include_redundant_members": self.include_redundant_members,
                    "contains_url": self.contains_url,
                    "rooms": self.rooms,
                    "not_rooms": self.not_rooms,
                }
            )
        )
        return data

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]):
        base = EventFilter.from_dict(data)
        if base is None:
            return None
        return cls(
            **base.__dict__,
            lazy_load_members=data.get("lazy_load_members"),
            include_redundant_members=data.get("include_redundant_members"),
            contains_url=data.get("contains_url"),
            rooms=_str_list(data.get("rooms")),
            not_rooms=_str_list(data.get("not_rooms")),
        )


@dataclass
class RoomFilter:
    account_data: Optional[RoomEventFilter] = None
    ephemeral: Optional[RoomEventFilter] = None
    state: Optional[RoomEventFilter] = None
    timeline: Optional[RoomEventFilter] = None
    include_leave: Optional[bool] = None
    rooms: Optional[List[str]] = None
    not_rooms: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        return _prune(
            {
                "account_data": self.account_data.to_dict() if self.account_data else None,
                "ephemeral": self.ephemeral.to_dict() if self.ephemeral else None,
                "state": self.state.to_dict() if self.state else None,
                "timeline": self.timeline.to_dict() if self.timeline else None,
                "include_leave": self.include_leave,
                "rooms": self.rooms,
                "not_rooms": self.not_rooms,
            }
        )

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]):
        if not isinstance(data, Mapping):
            return None
        return cls(
            account_data=RoomEventFilter.from_dict(data.get("account_data")),
            ephemeral=RoomEventFilter.from_dict(data.get("ephemeral")),
            state=RoomEventFilter.from_dict(data.get("state")),
            timeline=RoomEventFilter.from_dict(data.get("timeline")),
            include_leave=data.get("include_leave"),
            rooms=_str_list(data.get("rooms")),
            not_rooms=_str_list(data.get("not_rooms")),
        )


@dataclass
class Filter:
    """A complete filter as registered with ``POST /user/{id}/filter``."""

    account_data: Optional[EventFilter] = None
    presence: Optional[EventFilter] = None
    room: Optional[RoomFilter] = None
    event_fields: Optional[List[str]] = None
    event_format: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = _prune(
            {
                "account_data": self.account_data.to_dict() if self.account_data else None,
                "presence": self.presence.to_dict() if self.presence else None,
                "room": self.room.to_dict() if self.room else None,
                "event_fields": self.event_fields,
                "event_format": self.event_format,
            }
        )
        data.update(self.extra)
        return data

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, Mapping):
            raise TypeError("filter must be a JSON object")
        known = {"account_data", "presence", "room", "event_fields", "event_format"}
        return cls(
            account_data=EventFilter.from_dict(data.get("account_data")),
            presence=EventFilter.from_dict(data.get("presence")),
            room=RoomFilter.from_dict(data.get("room")),
            event_fields=_str_list(data.get("event_fields")),
            event_format=data.get("event_format"),
            extra={k: v for k, v in data.items() if k not in known},
        )


def build_text_message_filter() -> Filter:
    """
    Filter for clients that only care about text messages.

    Drops all account data, typing and receipt events, and the room state types
    a text client never looks at. Members are lazy-loaded everywhere.
    """
    return Filter(
        account_data=EventFilter(not_types=[EVENT_ACCOUNT_DATA_WILDCARD]),
        room=RoomFilter(
            account_data=RoomEventFilter(not_types=[EVENT_ACCOUNT_DATA_WILDCARD]),
            ephemeral=RoomEventFilter(
                not_types=[EVENT_TYPING, EVENT_RECEIPT], lazy_load_members=True
            ),
            state=RoomEventFilter(
                not_types=[
                    EVENT_ROOM_JOIN_RULES,
                    EVENT_ROOM_GUEST_ACCESS,
                    EVENT_ROOM_AVATAR,
                    EVENT_ROOM_HISTORY_VISIBILITY,
                    EVENT_ROOM_POWER_LEVELS,
                    EVENT_WIDGETS,
                ],
                lazy_load_members=True,
            ),
            timeline=RoomEventFilter(lazy_load_members=True),
        ),
        event_format="client",
    )
