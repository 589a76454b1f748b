"""Constants specific to the Matrix protocol."""

__all__ = [
    "ALGORITHM_MEGOLM",
    "DEFAULT_MAX_REQUESTS_PER_HOUR",
    "DEFAULT_TYPING_TIMEOUT_MS",
    "EVENT_ACCOUNT_DATA_WILDCARD",
    "EVENT_PRESENCE",
    "EVENT_RECEIPT",
    "EVENT_ROOM_AVATAR",
    "EVENT_ROOM_CANONICAL_ALIAS",
    "EVENT_ROOM_ENCRYPTED",
    "EVENT_ROOM_ENCRYPTION",
    "EVENT_ROOM_GUEST_ACCESS",
    "EVENT_ROOM_HISTORY_VISIBILITY",
    "EVENT_ROOM_JOIN_RULES",
    "EVENT_ROOM_MEMBER",
    "EVENT_ROOM_MESSAGE",
    "EVENT_ROOM_NAME",
    "EVENT_ROOM_POWER_LEVELS",
    "EVENT_ROOM_TOPIC",
    "EVENT_TYPING",
    "EVENT_WIDGETS",
    "IDENTIFIER_TYPE_USER",
    "LOGIN_TYPE_PASSWORD",
    "MATRIX_DEVICE_NAME",
    "MSGTYPE_TEXT",
    "PERIOD_ONE_HOUR_SEC",
    "RATE_LIMIT_BURST_CAPACITY",
    "RATELIMIT_CAPABILITY",
    "RATELIMIT_MAX_REQUESTS_KEY",
    "RECEIPT_BURST_CAPACITY",
    "RECEIPT_MAX_PER_HOUR",
    "REFERENCE_SPEC_VERSION",
    "REL_TYPE_THREAD",
    "SYNC_SET_PRESENCE",
    "SYNC_TIMEOUT_MS",
    "THREAD_ID_MAIN",
]

# Version the library is written against
REFERENCE_SPEC_VERSION = "v1.12"

LOGIN_TYPE_PASSWORD = "m.login.password"
IDENTIFIER_TYPE_USER = "m.id.user"
MATRIX_DEVICE_NAME = "textclient"

# Capabilities
RATELIMIT_CAPABILITY = "com.example.custom.ratelimit"
RATELIMIT_MAX_REQUESTS_KEY = "max_requests_per_hour"
DEFAULT_MAX_REQUESTS_PER_HOUR = 600

# Rate limiting
PERIOD_ONE_HOUR_SEC = 3600.0
RATE_LIMIT_BURST_CAPACITY = 10
RECEIPT_BURST_CAPACITY = 1
RECEIPT_MAX_PER_HOUR = 30

# Sync
SYNC_TIMEOUT_MS = 60000
SYNC_SET_PRESENCE = "online"

# Event types
EVENT_ACCOUNT_DATA_WILDCARD = "*"
EVENT_PRESENCE = "m.presence"
EVENT_TYPING = "m.typing"
EVENT_RECEIPT = "m.receipt"
EVENT_ROOM_MEMBER = "m.room.member"
EVENT_ROOM_NAME = "m.room.name"
EVENT_ROOM_CANONICAL_ALIAS = "m.room.canonical_alias"
EVENT_ROOM_POWER_LEVELS = "m.room.power_levels"
EVENT_ROOM_JOIN_RULES = "m.room.join_rules"
EVENT_ROOM_TOPIC = "m.room.topic"
EVENT_ROOM_AVATAR = "m.room.avatar"
EVENT_ROOM_GUEST_ACCESS = "m.room.guest_access"
EVENT_ROOM_HISTORY_VISIBILITY = "m.room.history_visibility"
EVENT_ROOM_MESSAGE = "m.room.message"
EVENT_ROOM_ENCRYPTION = "m.room.encryption"
EVENT_ROOM_ENCRYPTED = "m.room.encrypted"
EVENT_WIDGETS = "im.vector.modular.widgets"

MSGTYPE_TEXT = "m.text"
REL_TYPE_THREAD = "m.thread"
THREAD_ID_MAIN = "main"
ALGORITHM_MEGOLM = "m.megolm.v1.aes-sha2"

DEFAULT_TYPING_TIMEOUT_MS = 2000
