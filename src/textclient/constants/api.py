"""Client-server API paths and request parameter names."""

__all__ = [
    "CONTENT_TYPE_JSON",
    "HEADER_ACCEPT",
    "HEADER_AUTHORIZATION",
    "HEADER_CONTENT_TYPE",
    "HEADER_USER_AGENT",
    "PATH_CAPABILITIES",
    "PATH_FILTER",
    "PATH_FILTER_BY_ID",
    "PATH_LOGIN",
    "PATH_PRESENCE_STATUS",
    "PATH_READ_MARKERS",
    "PATH_RECEIPT",
    "PATH_SEND_MESSAGE",
    "PATH_SYNC",
    "PATH_TYPING",
    "PATH_VERSIONS",
    "PATH_WELL_KNOWN",
    "REQUEST_TIMEOUT_SEC",
    "SYNC_PARAM_FILTER",
    "SYNC_PARAM_FULL_STATE",
    "SYNC_PARAM_SET_PRESENCE",
    "SYNC_PARAM_SINCE",
    "SYNC_PARAM_TIMEOUT",
    "URL_PREFIX_HTTPS",
]

URL_PREFIX_HTTPS = "https://"

# Discovery and negotiation
PATH_WELL_KNOWN = "/.well-known/matrix/client"
PATH_VERSIONS = "/_matrix/client/versions"
PATH_LOGIN = "/_matrix/client/v3/login"
PATH_CAPABILITIES = "/_matrix/client/v3/capabilities"

# Templates take already url-encoded identifiers
PATH_FILTER = "/_matrix/client/v3/user/{user_id}/filter"
PATH_FILTER_BY_ID = "/_matrix/client/v3/user/{user_id}/filter/{filter_id}"
PATH_SYNC = "/_matrix/client/v3/sync"
PATH_PRESENCE_STATUS = "/_matrix/client/v3/presence/{user_id}/status"
PATH_RECEIPT = "/_matrix/client/v3/rooms/{room_id}/receipt/m.read/{event_id}"
PATH_READ_MARKERS = "/_matrix/client/v3/rooms/{room_id}/read_markers"
PATH_TYPING = "/_matrix/client/v3/rooms/{room_id}/typing/{user_id}"
PATH_SEND_MESSAGE = "/_matrix/client/v3/rooms/{room_id}/send/m.room.message/{txn_id}"

SYNC_PARAM_FULL_STATE = "full_state"
SYNC_PARAM_SET_PRESENCE = "set_presence"
SYNC_PARAM_TIMEOUT = "timeout"
SYNC_PARAM_FILTER = "filter"
SYNC_PARAM_SINCE = "since"

HEADER_ACCEPT = "Accept"
HEADER_AUTHORIZATION = "Authorization"
HEADER_CONTENT_TYPE = "Content-Type"
HEADER_USER_AGENT = "User-Agent"
CONTENT_TYPE_JSON = "application/json"

# Applies to every request except the sync long-poll
REQUEST_TIMEOUT_SEC = 30
