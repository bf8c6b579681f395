"""JSON-RPC 2.0 tool-call surface for machine agents."""

from ._handler import PROTOCOL_VERSION, SERVER_NAME, SUPPORTED_PROTOCOL_VERSIONS, McpHandler
from ._protocol import (
    JSONRPC_VERSION,
    JsonRpcError,
    RpcErrorCode,
    RpcRequest,
    error_response,
    from_domain_error,
    parse_message,
    success_response,
)
from ._tools import Tool, ToolRegistry, create_tool_registry, text_result

__all__ = [
    "JSONRPC_VERSION",
    "PROTOCOL_VERSION",
    "SERVER_NAME",
    "SUPPORTED_PROTOCOL_VERSIONS",
    "JsonRpcError",
    "McpHandler",
    "RpcErrorCode",
    "RpcRequest",
    "Tool",
    "ToolRegistry",
    "create_tool_registry",
    "error_response",
    "from_domain_error",
    "parse_message",
    "success_response",
    "text_result",
]
