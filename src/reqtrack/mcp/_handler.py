# pyright: reportAny=false
"""JSON-RPC dispatcher for the tool-call surface."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any, Final

from pydantic import ValidationError as PydanticValidationError

from reqtrack.auth import require_role
from reqtrack.exceptions import ReqtrackError
from reqtrack.mcp._protocol import (
    JsonRpcError,
    RpcErrorCode,
    RpcRequest,
    error_response,
    from_domain_error,
    parse_message,
    success_response,
)
from reqtrack.mcp._tools import create_tool_registry

if TYPE_CHECKING:
    from collections.abc import Callable

    from structlog.typing import FilteringBoundLogger

    from reqtrack.auth import Principal
    from reqtrack.mcp._tools import ToolRegistry
    from reqtrack.services import Services

__all__ = [
    "PROTOCOL_VERSION",
    "SERVER_NAME",
    "SUPPORTED_PROTOCOL_VERSIONS",
    "McpHandler",
]

SERVER_NAME: Final = "reqtrack"
PROTOCOL_VERSION: Final = "2025-03-26"
SUPPORTED_PROTOCOL_VERSIONS: Final = (PROTOCOL_VERSION, "2025-06-18")


def _first_error(exc: PydanticValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"{location}: {first['msg']}" if location else str(first["msg"])


class McpHandler:
    """Dispatch JSON-RPC envelopes to methods and tools.

    Args:
        services: The shared service container.
        version: Server version reported by ``initialize``.
        logger: Optional structlog logger.
    """

    _services: Services
    _version: str
    _logger: FilteringBoundLogger | None
    _tools: ToolRegistry
    _methods: dict[str, Callable[[RpcRequest, Principal], Any]]

    def __init__(
        self,
        services: Services,
        *,
        version: str = "0.0.0",
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        self._services = services
        self._version = version
        self._logger = logger
        self._tools = create_tool_registry()
        self._methods = {
            "initialize": self._initialize,
            "notifications/initialized": self._initialized,
            "ping": self._ping,
            "tools/list": self._tools_list,
            "tools/call": self._tools_call,
        }

    @property
    def tools(self) -> ToolRegistry:
        return self._tools

    def handle(
        self, payload: bytes, principal: Principal
    ) -> dict[str, Any] | list[dict[str, Any]] | None:
        """Process one request body.

        Returns:
            The response object, an array of responses for a batch, or None
            when every envelope was a notification.
        """
        try:
            is_batch, entries = parse_message(payload)
        except JsonRpcError as e:
            return error_response(None, e)

        responses: list[dict[str, Any]] = []
        for entry in entries:
            if isinstance(entry, tuple):
                request_id, error = entry
                responses.append(error_response(request_id, error))
                continue
            response = self._dispatch(entry, principal)
            if response is not None:
                responses.append(response)

        if not responses:
            return None
        if is_batch:
            return responses
        return responses[0]

    def _dispatch(self, request: RpcRequest, principal: Principal) -> dict[str, Any] | None:
        started = time.perf_counter()
        method = self._methods.get(request.method)
        try:
            if method is None:
                msg = f"Method not found: {request.method}"
                raise JsonRpcError(RpcErrorCode.METHOD_NOT_FOUND, msg)
            result = method(request, principal)
        except JsonRpcError as e:
            self._log_error(request, principal, e)
            return None if request.is_notification else error_response(request.id, e)
        except ReqtrackError as e:
            error = from_domain_error(e)
            self._log_error(request, principal, error)
            return None if request.is_notification else error_response(request.id, error)
        except Exception:
            if self._logger is not None:
                self._logger.exception(
                    "rpc_internal_error",
                    method=request.method,
                    user_id=str(principal.user_id),
                )
            error = JsonRpcError(RpcErrorCode.INTERNAL_ERROR, "Internal error")
            return None if request.is_notification else error_response(request.id, error)

        if self._logger is not None:
            self._logger.info(
                "rpc_request",
                method=request.method,
                user_id=str(principal.user_id),
                auth_method=principal.method.value,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
        if request.is_notification:
            return None
        return success_response(request.id, result)

    def _log_error(self, request: RpcRequest, principal: Principal, error: JsonRpcError) -> None:
        if self._logger is not None:
            self._logger.warning(
                "rpc_error",
                method=request.method,
                user_id=str(principal.user_id),
                code=int(error.code),
                message=error.message,
            )

    # -------------------------------------------------------------------------
    # Methods
    # -------------------------------------------------------------------------

    def _initialize(self, request: RpcRequest, _principal: Principal) -> dict[str, Any]:
        requested = request.params.get("protocolVersion")
        version = (
            requested if requested in SUPPORTED_PROTOCOL_VERSIONS else PROTOCOL_VERSION
        )
        return {
            "protocolVersion": version,
            "capabilities": {"tools": {"listChanged": False}},
            "serverInfo": {"name": SERVER_NAME, "version": self._version},
            "instructions": (
                "Manage epics, user stories, acceptance criteria and requirements. "
                "Entities can be referenced by UUID or by reference ID such as "
                "EP-001 or REQ-042."
            ),
        }

    def _initialized(self, _request: RpcRequest, _principal: Principal) -> None:
        return None

    def _ping(self, _request: RpcRequest, _principal: Principal) -> dict[str, Any]:
        return {}

    def _tools_list(self, _request: RpcRequest, _principal: Principal) -> dict[str, Any]:
        return {"tools": self._tools.definitions()}

    def _tools_call(self, request: RpcRequest, principal: Principal) -> dict[str, Any]:
        name = request.params.get("name")
        if not isinstance(name, str) or not name:
            msg = "Missing tool name"
            raise JsonRpcError(RpcErrorCode.INVALID_PARAMS, msg)
        tool = self._tools.get(name)
        if tool is None:
            msg = f"Unknown tool: {name}"
            raise JsonRpcError(RpcErrorCode.METHOD_NOT_FOUND, msg)

        arguments = request.params.get("arguments") or {}
        if not isinstance(arguments, dict):
            msg = "arguments must be an object"
            raise JsonRpcError(RpcErrorCode.INVALID_PARAMS, msg)
        try:
            parsed = tool.arguments.model_validate(arguments)
        except PydanticValidationError as e:
            msg = f"Invalid arguments for {name}: {_first_error(e)}"
            raise JsonRpcError(RpcErrorCode.INVALID_PARAMS, msg) from e

        require_role(principal, tool.role)
        return tool.handler(self._services, principal, parsed)
