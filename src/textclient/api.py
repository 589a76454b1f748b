"""
Client-server API endpoints.

One coroutine per endpoint. Each builds the path and body, then hands off to
http.send(); errors from the gateway propagate unchanged.
"""

import itertools
import logging
import threading
import time
from typing import Any, Dict, List, Optional

from . import http
from .constants import (
    IDENTIFIER_TYPE_USER,
    LOGGER_NAME,
    LOGIN_TYPE_PASSWORD,
    MSGTYPE_TEXT,
    PATH_CAPABILITIES,
    PATH_FILTER,
    PATH_FILTER_BY_ID,
    PATH_LOGIN,
    PATH_PRESENCE_STATUS,
    PATH_READ_MARKERS,
    PATH_RECEIPT,
    PATH_SEND_MESSAGE,
    PATH_SYNC,
    PATH_TYPING,
    PATH_VERSIONS,
    PATH_WELL_KNOWN,
    REQUEST_TIMEOUT_SEC,
    SYNC_PARAM_FILTER,
    SYNC_PARAM_FULL_STATE,
    SYNC_PARAM_SET_PRESENCE,
    SYNC_PARAM_SINCE,
    SYNC_PARAM_TIMEOUT,
    SYNC_SET_PRESENCE,
    SYNC_TIMEOUT_MS,
    THREAD_ID_MAIN,
)
from .filters import Filter
from .http import ConnectionContext, encode_path_segment
from .identifiers import MatrixId
from .models import (
    Capabilities,
    EventIdResponse,
    FilterIdResponse,
    LoginFlowsResponse,
    LoginResponse,
    Presence,
    PresenceStatusResponse,
    SyncResponse,
    VersionsResponse,
    WellKnownResponse,
)

logger = logging.getLogger(LOGGER_NAME)

_txn_counter = itertools.count()
_txn_lock = threading.Lock()


def next_transaction_id() -> str:
    """Return a transaction id unique within this process: ``<unix seconds>-<counter>``."""
    with _txn_lock:
        counter = next(_txn_counter)
    return f"{int(time.time())}-{counter}"


# --- Discovery and login ------------------------------------------------------


async def get_well_known(context: ConnectionContext) -> WellKnownResponse:
    return await http.send(context, PATH_WELL_KNOWN, response_type=WellKnownResponse)


async def get_versions(context: ConnectionContext) -> VersionsResponse:
    return await http.send(context, PATH_VERSIONS, response_type=VersionsResponse)


async def get_login_flows(context: ConnectionContext) -> LoginFlowsResponse:
    return await http.send(context, PATH_LOGIN, response_type=LoginFlowsResponse)


async def password_login(
    context: ConnectionContext,
    user_id: MatrixId,
    password: str,
    device_id: str,
    device_name: str,
) -> LoginResponse:
    body = {
        "type": LOGIN_TYPE_PASSWORD,
        "identifier": {"type": IDENTIFIER_TYPE_USER, "user": user_id.full},
        "password": password,
        "device_id": device_id,
        "initial_device_display_name": device_name,
    }
    return await http.send(
        context, PATH_LOGIN, method="POST", body=body, response_type=LoginResponse
    )


async def get_capabilities(context: ConnectionContext) -> Capabilities:
    return await http.send(context, PATH_CAPABILITIES, response_type=Capabilities)


# --- Filters ------------------------------------------------------------------


async def post_filter(
    context: ConnectionContext, user_id: MatrixId, sync_filter: Filter
) -> FilterIdResponse:
    path = PATH_FILTER.format(user_id=encode_path_segment(user_id))
    return await http.send(
        context,
        path,
        method="POST",
        body=sync_filter.to_dict(),
        response_type=FilterIdResponse,
    )


async def get_filter(
    context: ConnectionContext, user_id: MatrixId, filter_id: str
) -> Filter:
    path = PATH_FILTER_BY_ID.format(
        user_id=encode_path_segment(user_id),
        filter_id=encode_path_segment(filter_id),
    )
    return await http.send(context, path, response_type=Filter)


# --- Sync and presence --------------------------------------------------------


async def sync(
    context: ConnectionContext,
    since: Optional[str] = None,
    filter_id: Optional[str] = None,
    full_state: bool = False,
    presence: str = SYNC_SET_PRESENCE,
    timeout_ms: int = SYNC_TIMEOUT_MS,
) -> SyncResponse:
    """
    Long-poll ``/sync``.

    The server holds the request for up to ``timeout_ms``, which is what bounds the
    call rate here, so the generic rate limiter is skipped.
    """
    query: Dict[str, Any] = {SYNC_PARAM_FULL_STATE: "true" if full_state else "false"}
    query[SYNC_PARAM_SET_PRESENCE] = presence
    query[SYNC_PARAM_TIMEOUT] = timeout_ms
    if filter_id:
        query[SYNC_PARAM_FILTER] = filter_id
    if since:
        query[SYNC_PARAM_SINCE] = since
    return await http.send(
        context,
        PATH_SYNC,
        ignore_rate_limit=True,
        response_type=SyncResponse,
        query=query,
        timeout=timeout_ms / 1000 + REQUEST_TIMEOUT_SEC,
    )


async def set_presence(
    context: ConnectionContext,
    user_id: MatrixId,
    presence: Presence = Presence.ONLINE,
    status_msg: Optional[str] = None,
):
    body: Dict[str, Any] = {"presence": presence.value}
    if status_msg is not None:
        body["status_msg"] = status_msg
    path = PATH_PRESENCE_STATUS.format(user_id=encode_path_segment(user_id))
    return await http.send(context, path, method="PUT", body=body)


async def get_presence(
    context: ConnectionContext, user_id: MatrixId
) -> PresenceStatusResponse:
    path = PATH_PRESENCE_STATUS.format(user_id=encode_path_segment(user_id))
    return await http.send(context, path, response_type=PresenceStatusResponse)


# --- Rooms --------------------------------------------------------------------


async def send_receipt(
    context: ConnectionContext,
    room_id: MatrixId,
    event_id: str,
    thread_id: Optional[str] = None,
):
    path = PATH_RECEIPT.format(
        room_id=encode_path_segment(room_id), event_id=encode_path_segment(event_id)
    )
    body = {"thread_id": thread_id or THREAD_ID_MAIN}
    return await http.send(context, path, method="POST", body=body)


async def set_read_markers(
    context: ConnectionContext,
    room_id: MatrixId,
    fully_read_event_id: str,
    read_event_id: Optional[str] = None,
):
    path = PATH_READ_MARKERS.format(room_id=encode_path_segment(room_id))
    body = {"m.fully_read": fully_read_event_id}
    if read_event_id:
        body["m.read"] = read_event_id
    return await http.send(context, path, method="POST", body=body)


async def send_typing(
    context: ConnectionContext,
    room_id: MatrixId,
    user_id: MatrixId,
    typing: bool,
    timeout_ms: Optional[int] = None,
):
    path = PATH_TYPING.format(
        room_id=encode_path_segment(room_id), user_id=encode_path_segment(user_id)
    )
    body: Dict[str, Any] = {"typing": typing}
    if typing and timeout_ms is not None:
        body["timeout"] = timeout_ms
    return await http.send(context, path, method="PUT", body=body)


async def send_text_message(
    context: ConnectionContext,
    room_id: MatrixId,
    body: str,
    mentions: Optional[List[MatrixId]] = None,
    transaction_id: Optional[str] = None,
) -> EventIdResponse:
    """PUT an ``m.text`` message; returns the event id the server assigned."""
    txn_id = transaction_id or next_transaction_id()
    path = PATH_SEND_MESSAGE.format(
        room_id=encode_path_segment(room_id), txn_id=encode_path_segment(txn_id)
    )
    content: Dict[str, Any] = {"msgtype": MSGTYPE_TEXT, "body": body}
    if mentions:
        content["m.mentions"] = {"user_ids": [m.full for m in mentions]}
    logger.debug(f"Sending message to {room_id} with transaction {txn_id}")
    return await http.send(
        context, path, method="PUT", body=content, response_type=EventIdResponse
    )
