"""JSON-RPC 2.0 envelopes and error codes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Final

import orjson

from reqtrack.exceptions import ErrorKind, InvalidTransitionError, ReqtrackError

__all__ = [
    "JSONRPC_VERSION",
    "JsonRpcError",
    "ParsedEntry",
    "RequestId",
    "RpcErrorCode",
    "RpcRequest",
    "error_response",
    "from_domain_error",
    "parse_message",
    "success_response",
]

JSONRPC_VERSION: Final = "2.0"

type RequestId = str | int | None


class RpcErrorCode(IntEnum):
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603
    RESOURCE_NOT_FOUND = -32001
    UNAUTHORIZED = -32002
    VALIDATION_ERROR = -32003


_CODE_BY_KIND: Final[dict[ErrorKind, RpcErrorCode]] = {
    ErrorKind.NOT_FOUND: RpcErrorCode.RESOURCE_NOT_FOUND,
    ErrorKind.UNAUTHENTICATED: RpcErrorCode.UNAUTHORIZED,
    ErrorKind.FORBIDDEN: RpcErrorCode.UNAUTHORIZED,
    ErrorKind.VALIDATION_ERROR: RpcErrorCode.VALIDATION_ERROR,
    ErrorKind.CONFLICT_DUPLICATE: RpcErrorCode.VALIDATION_ERROR,
    ErrorKind.CONFLICT_IN_USE: RpcErrorCode.VALIDATION_ERROR,
    ErrorKind.INTERNAL: RpcErrorCode.INTERNAL_ERROR,
}


class JsonRpcError(Exception):
    """An error that is sent back to the caller as a JSON-RPC error object.

    Attributes:
        code: The JSON-RPC error code.
        message: Short human-readable description.
        data: Optional structured detail.
    """

    def __init__(
        self, code: RpcErrorCode, message: str, *, data: dict[str, Any] | None = None
    ) -> None:
        super().__init__(message)
        self.code: RpcErrorCode = code
        self.message: str = message
        self.data: dict[str, Any] | None = data

    def to_dict(self) -> dict[str, Any]:
        error: dict[str, Any] = {"code": int(self.code), "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error


def from_domain_error(exc: ReqtrackError) -> JsonRpcError:
    """Translate a service-layer error into its JSON-RPC form.

    Rejected workflow transitions count as validation failures rather than
    authorization failures.
    """
    if isinstance(exc, InvalidTransitionError):
        code = RpcErrorCode.VALIDATION_ERROR
    else:
        code = _CODE_BY_KIND[exc.kind]
    data: dict[str, Any] = {"code": exc.code}
    if exc.details is not None:
        data["details"] = exc.details
    return JsonRpcError(code, exc.message, data=data)


@dataclass(frozen=True, slots=True)
class RpcRequest:
    """One validated request or notification.

    Attributes:
        method: The method name.
        params: Named parameters (empty when omitted).
        id: The request id; meaningless when ``is_notification`` is true.
        is_notification: True when the envelope carried no ``id`` member.
    """

    method: str
    params: dict[str, Any]
    id: RequestId
    is_notification: bool


def _request_id(message: dict[str, Any]) -> RequestId:
    value = message.get("id")
    if isinstance(value, str | int) and not isinstance(value, bool):
        return value
    return None


def _validate(message: object) -> RpcRequest:
    if not isinstance(message, dict):
        msg = "Request must be a JSON object"
        raise JsonRpcError(RpcErrorCode.INVALID_REQUEST, msg)
    if message.get("jsonrpc") != JSONRPC_VERSION:
        msg = "jsonrpc must be exactly '2.0'"
        raise JsonRpcError(RpcErrorCode.INVALID_REQUEST, msg)
    method = message.get("method")
    if not isinstance(method, str) or not method:
        msg = "method must be a non-empty string"
        raise JsonRpcError(RpcErrorCode.INVALID_REQUEST, msg)
    if "id" in message:
        raw_id = message["id"]
        if raw_id is not None and (
            isinstance(raw_id, bool) or not isinstance(raw_id, str | int)
        ):
            msg = "id must be a string, an integer or null"
            raise JsonRpcError(RpcErrorCode.INVALID_REQUEST, msg)
    params = message.get("params", {})
    if params is None:
        params = {}
    if not isinstance(params, dict):
        msg = "params must be an object"
        raise JsonRpcError(RpcErrorCode.INVALID_PARAMS, msg)
    return RpcRequest(
        method=method,
        params=params,
        id=_request_id(message),
        is_notification="id" not in message,
    )


type ParsedEntry = RpcRequest | tuple[RequestId, JsonRpcError]


def parse_message(payload: bytes) -> tuple[bool, list[ParsedEntry]]:
    """Decode a request body into requests, keeping per-entry failures.

    Returns:
        Whether the body was a batch, and one entry per envelope in order.
        Entries that failed validation are ``(id, error)`` pairs.

    Raises:
        JsonRpcError: If the body is not valid JSON or is an empty batch.
    """
    try:
        decoded = orjson.loads(payload)
    except orjson.JSONDecodeError as e:
        msg = f"Parse error: {e}"
        raise JsonRpcError(RpcErrorCode.PARSE_ERROR, msg) from e

    is_batch = isinstance(decoded, list)
    messages = decoded if is_batch else [decoded]
    if not messages:
        msg = "Empty batch"
        raise JsonRpcError(RpcErrorCode.INVALID_REQUEST, msg)

    entries: list[ParsedEntry] = []
    for message in messages:
        try:
            entries.append(_validate(message))
        except JsonRpcError as e:
            request_id = _request_id(message) if isinstance(message, dict) else None
            entries.append((request_id, e))
    return is_batch, entries


def success_response(request_id: RequestId, result: Any) -> dict[str, Any]:  # noqa: ANN401
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def error_response(request_id: RequestId, error: JsonRpcError) -> dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": error.to_dict()}
