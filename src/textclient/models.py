"""
Typed shapes for client-server API responses and event contents.

Envelopes are parsed eagerly with from_dict(); an event's ``content`` stays a plain
dict until its ``type`` is known, then the matching content class parses it.
Unknown keys are kept in ``extra`` so nothing the server sends is lost.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from .constants import (
    DEFAULT_MAX_REQUESTS_PER_HOUR,
    RATELIMIT_CAPABILITY,
    RATELIMIT_MAX_REQUESTS_KEY,
    REL_TYPE_THREAD,
)


class Presence(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"
    UNAVAILABLE = "unavailable"


class Membership(str, Enum):
    JOIN = "join"
    INVITE = "invite"
    LEAVE = "leave"
    BAN = "ban"
    KNOCK = "knock"


def _mapping(value) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _list(value) -> list:
    return value if isinstance(value, list) else []


def _str_or_none(value) -> Optional[str]:
    return value if isinstance(value, str) else None


def _enum_or_none(enum_cls, value):
    try:
        return enum_cls(value)
    except ValueError:
        return None


def _extra(data: Mapping[str, Any], known) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if k not in known}


def _require_mapping(data, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise TypeError(f"{what} must be a JSON object, got {type(data).__name__}")
    return data


# --- Discovery, login and capabilities ---------------------------------------


@dataclass
class WellKnownResponse:
    homeserver_base_url: Optional[str]
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data):
        data = _require_mapping(data, "well-known document")
        homeserver = _mapping(data.get("m.homeserver"))
        return cls(
            homeserver_base_url=_str_or_none(homeserver.get("base_url")),
            extra=_extra(data, {"m.homeserver"}),
        )


@dataclass
class VersionsResponse:
    versions: List[str]
    unstable_features: Dict[str, bool] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data):
        data = _require_mapping(data, "versions response")
        versions = data.get("versions")
        if not isinstance(versions, list) or not all(
            isinstance(v, str) for v in versions
        ):
            raise TypeError("versions must be a list of strings")
        return cls(
            versions=list(versions),
            unstable_features=dict(_mapping(data.get("unstable_features"))),
        )


@dataclass
class LoginFlowsResponse:
    flows: List[str]

    @classmethod
    def from_dict(cls, data):
        data = _require_mapping(data, "login flows response")
        flows = [
            flow["type"]
            for flow in _list(data.get("flows"))
            if isinstance(flow, Mapping) and isinstance(flow.get("type"), str)
        ]
        return cls(flows=flows)


@dataclass
class LoginResponse:
    access_token: Optional[str]
    user_id: Optional[str] = None
    device_id: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data):
        data = _require_mapping(data, "login response")
        return cls(
            access_token=_str_or_none(data.get("access_token")),
            user_id=_str_or_none(data.get("user_id")),
            device_id=_str_or_none(data.get("device_id")),
            extra=_extra(data, {"access_token", "user_id", "device_id"}),
        )


@dataclass
class RoomVersionsCapability:
    default: Optional[str] = None
    available: Dict[str, str] = field(default_factory=dict)


@dataclass
class Capabilities:
    """Server capabilities, with the hourly request limit defaulting to 600."""

    change_password: bool = True
    set_displayname: bool = True
    room_versions: RoomVersionsCapability = field(
        default_factory=RoomVersionsCapability
    )
    max_requests_per_hour: int = DEFAULT_MAX_REQUESTS_PER_HOUR
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data):
        data = _require_mapping(data, "capabilities response")
        caps = _mapping(data.get("capabilities"))
        room_versions = _mapping(caps.get("m.room_versions"))
        rate_limit = _mapping(caps.get(RATELIMIT_CAPABILITY))
        limit = rate_limit.get(RATELIMIT_MAX_REQUESTS_KEY)
        known = {
            "m.change_password",
            "m.set_displayname",
            "m.room_versions",
            RATELIMIT_CAPABILITY,
        }
        return cls(
            change_password=bool(
                _mapping(caps.get("m.change_password")).get("enabled", True)
            ),
            set_displayname=bool(
                _mapping(caps.get("m.set_displayname")).get("enabled", True)
            ),
            room_versions=RoomVersionsCapability(
                default=_str_or_none(room_versions.get("default")),
                available=dict(_mapping(room_versions.get("available"))),
            ),
            max_requests_per_hour=(
                limit
                if isinstance(limit, int) and not isinstance(limit, bool)
                else DEFAULT_MAX_REQUESTS_PER_HOUR
            ),
            extra=_extra(caps, known),
        )


@dataclass
class FilterIdResponse:
    filter_id: Optional[str]

    @classmethod
    def from_dict(cls, data):
        data = _require_mapping(data, "filter response")
        return cls(filter_id=_str_or_none(data.get("filter_id")))


@dataclass
class EventIdResponse:
    event_id: Optional[str]

    @classmethod
    def from_dict(cls, data):
        data = _require_mapping(data, "send response")
        return cls(event_id=_str_or_none(data.get("event_id")))


@dataclass
class PresenceStatusResponse:
    presence: Optional[Presence]
    currently_active: Optional[bool] = None
    last_active_ago: Optional[int] = None
    status_msg: Optional[str] = None

    @classmethod
    def from_dict(cls, data):
        data = _require_mapping(data, "presence response")
        active = data.get("currently_active")
        last_active = data.get("last_active_ago")
        return cls(
            presence=_enum_or_none(Presence, data.get("presence")),
            currently_active=active if isinstance(active, bool) else None,
            last_active_ago=last_active if isinstance(last_active, int) else None,
            status_msg=_str_or_none(data.get("status_msg")),
        )


# --- Sync ---------------------------------------------------------------------


@dataclass
class ClientEvent:
    """
    One event from a sync response. ``content`` is left as the raw JSON object
    (or None when absent) until the type-specific handler parses it.
    """

    type: str
    content: Optional[Mapping[str, Any]] = None
    sender: Optional[str] = None
    event_id: Optional[str] = None
    origin_server_ts: Optional[int] = None
    state_key: Optional[str] = None
    unsigned: Dict[str, Any] = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict)

    _KNOWN = frozenset(
        {
            "type",
            "content",
            "sender",
            "event_id",
            "origin_server_ts",
            "state_key",
            "unsigned",
        }
    )

    @classmethod
    def from_dict(cls, data) -> Optional["ClientEvent"]:
        """Return the parsed event, or None when data is not an object with a string type."""
        if not isinstance(data, Mapping) or not isinstance(data.get("type"), str):
            return None
        content = data.get("content")
        ts = data.get("origin_server_ts")
        return cls(
            type=data["type"],
            content=content if isinstance(content, Mapping) else None,
            sender=_str_or_none(data.get("sender")),
            event_id=_str_or_none(data.get("event_id")),
            origin_server_ts=ts if isinstance(ts, int) else None,
            state_key=_str_or_none(data.get("state_key")),
            unsigned=dict(_mapping(data.get("unsigned"))),
            extra=_extra(data, cls._KNOWN),
        )


def _events(section) -> List[ClientEvent]:
    events = []
    for raw in _list(_mapping(section).get("events")):
        event = ClientEvent.from_dict(raw)
        if event is not None:
            events.append(event)
    return events


@dataclass
class Timeline:
    events: List[ClientEvent] = field(default_factory=list)
    limited: bool = False
    prev_batch: Optional[str] = None


@dataclass
class RoomSummary:
    heroes: Optional[List[str]] = None
    joined_member_count: Optional[int] = None
    invited_member_count: Optional[int] = None


@dataclass
class JoinedRoom:
    summary: Optional[RoomSummary] = None
    account_data: List[ClientEvent] = field(default_factory=list)
    ephemeral: List[ClientEvent] = field(default_factory=list)
    state: List[ClientEvent] = field(default_factory=list)
    timeline: Timeline = field(default_factory=Timeline)
    unread_notifications: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data):
        data = _mapping(data)
        summary = None
        if isinstance(data.get("summary"), Mapping):
            raw = data["summary"]
            heroes = raw.get("m.heroes")
            summary = RoomSummary(
                heroes=[h for h in heroes if isinstance(h, str)]
                if isinstance(heroes, list)
                else None,
                joined_member_count=raw.get("m.joined_member_count"),
                invited_member_count=raw.get("m.invited_member_count"),
            )
        timeline = _mapping(data.get("timeline"))
        return cls(
            summary=summary,
            account_data=_events(data.get("account_data")),
            ephemeral=_events(data.get("ephemeral")),
            state=_events(data.get("state")),
            timeline=Timeline(
                events=_events(timeline),
                limited=bool(timeline.get("limited", False)),
                prev_batch=_str_or_none(timeline.get("prev_batch")),
            ),
            unread_notifications=dict(_mapping(data.get("unread_notifications"))),
        )


@dataclass
class SyncRooms:
    join: Dict[str, JoinedRoom] = field(default_factory=dict)
    invite: Dict[str, Any] = field(default_factory=dict)
    leave: Dict[str, Any] = field(default_factory=dict)
    knock: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SyncResponse:
    next_batch: str
    account_data: List[ClientEvent] = field(default_factory=list)
    presence: List[ClientEvent] = field(default_factory=list)
    rooms: SyncRooms = field(default_factory=SyncRooms)
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data):
        data = _require_mapping(data, "sync response")
        next_batch = data["next_batch"]
        if not isinstance(next_batch, str):
            raise TypeError("next_batch must be a string")
        rooms = _mapping(data.get("rooms"))
        return cls(
            next_batch=next_batch,
            account_data=_events(data.get("account_data")),
            presence=_events(data.get("presence")),
            rooms=SyncRooms(
                join={
                    room_id: JoinedRoom.from_dict(room)
                    for room_id, room in _mapping(rooms.get("join")).items()
                },
                invite=dict(_mapping(rooms.get("invite"))),
                leave=dict(_mapping(rooms.get("leave"))),
                knock=dict(_mapping(rooms.get("knock"))),
            ),
            extra=_extra(data, {"next_batch", "account_data", "presence", "rooms"}),
        )


# --- Event contents -----------------------------------------------------------


@dataclass
class PresenceContent:
    presence: Optional[Presence] = None
    avatar_url: Optional[str] = None
    displayname: Optional[str] = None
    currently_active: Optional[bool] = None
    last_active_ago: Optional[int] = None
    status_msg: Optional[str] = None

    @classmethod
    def from_content(cls, content: Mapping[str, Any]):
        active = content.get("currently_active")
        last_active = content.get("last_active_ago")
        return cls(
            presence=_enum_or_none(Presence, content.get("presence")),
            avatar_url=_str_or_none(content.get("avatar_url")),
            displayname=_str_or_none(content.get("displayname")),
            currently_active=active if isinstance(active, bool) else None,
            last_active_ago=last_active if isinstance(last_active, int) else None,
            status_msg=_str_or_none(content.get("status_msg")),
        )


@dataclass
class RoomMemberContent:
    membership: Optional[Membership] = None
    displayname: Optional[str] = None
    avatar_url: Optional[str] = None

    @classmethod
    def from_content(cls, content: Mapping[str, Any]):
        return cls(
            membership=_enum_or_none(Membership, content.get("membership")),
            displayname=_str_or_none(content.get("displayname")),
            avatar_url=_str_or_none(content.get("avatar_url")),
        )


@dataclass
class RoomNameContent:
    name: Optional[str] = None

    @classmethod
    def from_content(cls, content: Mapping[str, Any]):
        return cls(name=_str_or_none(content.get("name")))


@dataclass
class CanonicalAliasContent:
    alias: Optional[str] = None
    alt_aliases: List[str] = field(default_factory=list)

    @classmethod
    def from_content(cls, content: Mapping[str, Any]):
        return cls(
            alias=_str_or_none(content.get("alias")),
            alt_aliases=[a for a in _list(content.get("alt_aliases")) if isinstance(a, str)],
        )


@dataclass
class RoomMessageContent:
    msgtype: Optional[str] = None
    body: Optional[str] = None
    thread_id: Optional[str] = None
    mentioned_user_ids: Optional[List[Any]] = None

    @classmethod
    def from_content(cls, content: Mapping[str, Any]):
        relates_to = _mapping(content.get("m.relates_to"))
        thread_id = None
        if relates_to.get("rel_type") == REL_TYPE_THREAD:
            thread_id = _str_or_none(relates_to.get("event_id"))
        mentions = content.get("m.mentions")
        mentioned = None
        if isinstance(mentions, Mapping) and isinstance(mentions.get("user_ids"), list):
            mentioned = list(mentions["user_ids"])
        return cls(
            msgtype=_str_or_none(content.get("msgtype")),
            body=_str_or_none(content.get("body")),
            thread_id=thread_id,
            mentioned_user_ids=mentioned,
        )


@dataclass
class RoomEncryptionContent:
    algorithm: Optional[str] = None
    rotation_period_ms: Optional[int] = None
    rotation_period_msgs: Optional[int] = None

    @classmethod
    def from_content(cls, content: Mapping[str, Any]):
        return cls(
            algorithm=_str_or_none(content.get("algorithm")),
            rotation_period_ms=content.get("rotation_period_ms"),
            rotation_period_msgs=content.get("rotation_period_msgs"),
        )


@dataclass
class RoomEncryptedContent:
    algorithm: Optional[str] = None
    ciphertext: Any = None
    sender_key: Optional[str] = None
    session_id: Optional[str] = None
    device_id: Optional[str] = None

    @classmethod
    def from_content(cls, content: Mapping[str, Any]):
        return cls(
            algorithm=_str_or_none(content.get("algorithm")),
            ciphertext=content.get("ciphertext"),
            sender_key=_str_or_none(content.get("sender_key")),
            session_id=_str_or_none(content.get("session_id")),
            device_id=_str_or_none(content.get("device_id")),
        )
