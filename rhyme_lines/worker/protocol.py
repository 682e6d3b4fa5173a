"""Message shapes exchanged between the worker client and its background thread.

Every message is a plain ``dict`` with a ``type`` key. Query messages carry a
``requestId`` so replies can be matched to callers regardless of order.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from ..core.errors import MalformedResponse
from ..core.models import QueryRequest

INIT = "init"
INIT_OK = "init:ok"
INIT_ERR = "init:err"
GET_RHYMES = "getRhymes"
GET_RHYMES_OK = "getRhymes:ok"
GET_RHYMES_ERR = "getRhymes:err"
TERMINATE = "terminate"

REPLY_TYPES = frozenset({INIT_OK, INIT_ERR, GET_RHYMES_OK, GET_RHYMES_ERR})

Message = Dict[str, Any]


def init_message(base_origin: str, version: int) -> Message:
    return {"type": INIT, "baseOrigin": base_origin, "version": int(version)}


def init_ok(info: Mapping[str, Any]) -> Message:
    return {"type": INIT_OK, "db": dict(info)}


def init_err(error: str) -> Message:
    return {"type": INIT_ERR, "error": error}


def get_rhymes_message(request_id: str, request: QueryRequest) -> Message:
    return {"type": GET_RHYMES, "requestId": request_id, "request": request.as_dict()}


def get_rhymes_ok(
    request_id: str,
    result: Mapping[str, Any],
    *,
    cached: bool,
    source: str,
) -> Message:
    return {
        "type": GET_RHYMES_OK,
        "requestId": request_id,
        "result": dict(result),
        "cached": bool(cached),
        "source": source,
    }


def get_rhymes_err(request_id: str, error: str) -> Message:
    return {"type": GET_RHYMES_ERR, "requestId": request_id, "error": error}


def terminate_message() -> Message:
    return {"type": TERMINATE}


def reply_type(message: Any) -> str:
    """Return the reply ``type`` or raise :class:`MalformedResponse`."""

    if not isinstance(message, Mapping):
        raise MalformedResponse(f"Worker reply is not a mapping: {type(message).__name__}")
    msg_type = message.get("type")
    if msg_type not in REPLY_TYPES:
        raise MalformedResponse(f"Unknown worker reply type: {msg_type!r}")
    return msg_type


def request_id_of(message: Mapping[str, Any]) -> str:
    request_id: Optional[Any] = message.get("requestId")
    if not isinstance(request_id, str) or not request_id:
        raise MalformedResponse("Worker reply has no request id")
    return request_id


__all__ = [
    "GET_RHYMES",
    "GET_RHYMES_ERR",
    "GET_RHYMES_OK",
    "INIT",
    "INIT_ERR",
    "INIT_OK",
    "Message",
    "REPLY_TYPES",
    "TERMINATE",
    "get_rhymes_err",
    "get_rhymes_message",
    "get_rhymes_ok",
    "init_err",
    "init_message",
    "init_ok",
    "reply_type",
    "request_id_of",
    "terminate_message",
]
