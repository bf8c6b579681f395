"""Unit tests for the JSON-RPC dispatcher and its tools."""

from collections.abc import Callable
from typing import Any

import orjson
import pytest

from reqtrack.auth import Principal, User
from reqtrack.enums import AuthMethod, Role
from reqtrack.mcp import PROTOCOL_VERSION, McpHandler, RpcErrorCode
from reqtrack.services import Services


@pytest.fixture
def handler(services: Services) -> McpHandler:
    return McpHandler(services, version="1.2.3")


def _call(
    handler: McpHandler, principal: Principal, method: str, params: dict[str, Any] | None = None
) -> dict[str, Any]:
    message: dict[str, Any] = {"jsonrpc": "2.0", "id": 1, "method": method}
    if params is not None:
        message["params"] = params
    response = handler.handle(orjson.dumps(message), principal)
    assert isinstance(response, dict)
    return response


def _tool(
    handler: McpHandler, principal: Principal, name: str, **arguments: Any
) -> dict[str, Any]:
    return _call(handler, principal, "tools/call", {"name": name, "arguments": arguments})


def _payload(response: dict[str, Any]) -> Any:
    return orjson.loads(response["result"]["content"][1]["text"])


class TestProtocolMethods:
    def test_initialize(self, handler: McpHandler, admin_principal: Principal) -> None:
        result = _call(handler, admin_principal, "initialize", {"protocolVersion": "1999"})[
            "result"
        ]

        assert result["protocolVersion"] == PROTOCOL_VERSION
        assert result["serverInfo"] == {"name": "reqtrack", "version": "1.2.3"}

    def test_initialize_echoes_supported_version(
        self, handler: McpHandler, admin_principal: Principal
    ) -> None:
        result = _call(
            handler, admin_principal, "initialize", {"protocolVersion": "2025-06-18"}
        )["result"]

        assert result["protocolVersion"] == "2025-06-18"

    def test_notification_gets_no_response(
        self, handler: McpHandler, admin_principal: Principal
    ) -> None:
        body = orjson.dumps({"jsonrpc": "2.0", "method": "notifications/initialized"})

        assert handler.handle(body, admin_principal) is None

    def test_unknown_method(self, handler: McpHandler, admin_principal: Principal) -> None:
        response = _call(handler, admin_principal, "resources/list")

        assert response["error"]["code"] == RpcErrorCode.METHOD_NOT_FOUND

    def test_parse_error_has_null_id(
        self, handler: McpHandler, admin_principal: Principal
    ) -> None:
        response = handler.handle(b"{", admin_principal)

        assert isinstance(response, dict)
        assert response["id"] is None
        assert response["error"]["code"] == RpcErrorCode.PARSE_ERROR

    def test_batch(self, handler: McpHandler, admin_principal: Principal) -> None:
        body = orjson.dumps(
            [
                {"jsonrpc": "2.0", "id": "a", "method": "ping"},
                {"jsonrpc": "2.0", "method": "notifications/initialized"},
                {"jsonrpc": "2.0", "id": "b", "method": "nope"},
            ]
        )

        response = handler.handle(body, admin_principal)

        assert isinstance(response, list)
        assert [r["id"] for r in response] == ["a", "b"]
        assert response[0]["result"] == {}
        assert response[1]["error"]["code"] == RpcErrorCode.METHOD_NOT_FOUND

    def test_tools_list(self, handler: McpHandler, admin_principal: Principal) -> None:
        tools = _call(handler, admin_principal, "tools/list")["result"]["tools"]

        names = {tool["name"] for tool in tools}
        assert {"create_epic", "create_requirement", "search_global"} <= names
        assert all("inputSchema" in tool for tool in tools)


class TestToolCalls:
    def test_create_epic(self, handler: McpHandler, admin_principal: Principal) -> None:
        response = _tool(handler, admin_principal, "create_epic", title="Onboarding", priority=2)

        content = response["result"]["content"]
        assert content[0]["text"] == "Created epic EP-001: Onboarding"
        assert _payload(response)["creator_id"] == str(admin_principal.user_id)

    def test_full_chain(self, handler: McpHandler, admin_principal: Principal) -> None:
        _ = _tool(handler, admin_principal, "create_epic", title="Payments", priority=1)
        _ = _tool(
            handler,
            admin_principal,
            "create_user_story",
            epic_id="EP-001",
            title="Pay by card",
            priority=2,
            description="As a buyer, I want to pay by card, so that checkout is quick",
        )
        _ = _tool(
            handler,
            admin_principal,
            "create_requirement",
            user_story_id="US-001",
            title="Tokenize card numbers",
            priority=1,
        )

        tree = _tool(handler, admin_principal, "epic_hierarchy", epic_id="ep-001")

        text = tree["result"]["content"][0]["text"]
        assert "EP-001 [P1] [Backlog] Payments" in text
        assert "US-001" in text
        assert "REQ-001" in text

    def test_invalid_arguments(self, handler: McpHandler, admin_principal: Principal) -> None:
        response = _tool(handler, admin_principal, "create_epic", title="Missing priority")

        assert response["error"]["code"] == RpcErrorCode.INVALID_PARAMS
        assert "priority" in response["error"]["message"]

    def test_unknown_argument(self, handler: McpHandler, admin_principal: Principal) -> None:
        response = _tool(
            handler, admin_principal, "create_epic", title="X", priority=3, colour="red"
        )

        assert response["error"]["code"] == RpcErrorCode.INVALID_PARAMS

    def test_unknown_tool(self, handler: McpHandler, admin_principal: Principal) -> None:
        response = _tool(handler, admin_principal, "drop_tables")

        assert response["error"]["code"] == RpcErrorCode.METHOD_NOT_FOUND

    def test_domain_error(self, handler: McpHandler, admin_principal: Principal) -> None:
        response = _tool(handler, admin_principal, "epic_hierarchy", epic_id="EP-404")

        assert response["error"]["code"] == RpcErrorCode.RESOURCE_NOT_FOUND
        assert response["error"]["data"]["code"] == "not_found"

    def test_commenter_cannot_create(
        self, handler: McpHandler, make_user: Callable[..., User]
    ) -> None:
        principal = Principal(user=make_user(Role.COMMENTER), method=AuthMethod.PAT)

        response = _tool(handler, principal, "create_epic", title="Nope", priority=3)

        assert response["error"]["code"] == RpcErrorCode.UNAUTHORIZED

    def test_commenter_can_search(
        self, handler: McpHandler, make_user: Callable[..., User]
    ) -> None:
        principal = Principal(user=make_user(Role.COMMENTER), method=AuthMethod.PAT)

        response = _tool(handler, principal, "search_global", query="anything")

        assert "result" in response
