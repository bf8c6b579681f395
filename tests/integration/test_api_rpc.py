"""JSON-RPC tool access over the /mcp endpoint."""

from typing import Any

import orjson
import pytest

from reqtrack.enums import Role
from tests.integration.conftest import API, ApiSession, UserHeaders, bearer

MCP = f"{API}/mcp"


@pytest.fixture
def pat_headers(api: ApiSession) -> dict[str, str]:
    created = api.client.post(f"{API}/pats", json={"name": "agent"}, headers=api.headers)
    assert created.status_code == 201, created.text
    return bearer(created.json()["token"])


def _rpc(method: str, params: dict[str, Any] | None = None, rpc_id: int = 1) -> dict[str, Any]:
    message: dict[str, Any] = {"jsonrpc": "2.0", "id": rpc_id, "method": method}
    if params is not None:
        message["params"] = params
    return message


class TestTransport:
    def test_requires_authentication(self, api: ApiSession) -> None:
        response = api.client.post(MCP, json=_rpc("ping"))

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_initialize_with_pat(self, api: ApiSession, pat_headers: dict[str, str]) -> None:
        response = api.client.post(
            MCP, json=_rpc("initialize", {"protocolVersion": "2025-03-26"}), headers=pat_headers
        )

        assert response.status_code == 200
        result = response.json()["result"]
        assert result["protocolVersion"] == "2025-03-26"
        assert result["serverInfo"]["name"] == "reqtrack"

    def test_notification_returns_no_content(
        self, api: ApiSession, pat_headers: dict[str, str]
    ) -> None:
        response = api.client.post(
            MCP,
            json={"jsonrpc": "2.0", "method": "notifications/initialized"},
            headers=pat_headers,
        )

        assert response.status_code == 204
        assert response.content == b""

    def test_parse_error_is_still_http_ok(
        self, api: ApiSession, pat_headers: dict[str, str]
    ) -> None:
        response = api.client.post(
            MCP,
            content=b"{broken",
            headers={**pat_headers, "Content-Type": "application/json"},
        )

        assert response.status_code == 200
        assert response.json()["error"]["code"] == -32700

    def test_batch(self, api: ApiSession, pat_headers: dict[str, str]) -> None:
        response = api.client.post(
            MCP,
            content=orjson.dumps([_rpc("ping", rpc_id=1), _rpc("tools/list", rpc_id=2)]),
            headers={**pat_headers, "Content-Type": "application/json"},
        )

        body = response.json()
        assert [entry["id"] for entry in body] == [1, 2]
        assert body[1]["result"]["tools"]


class TestTools:
    def test_created_entities_are_visible_over_rest(
        self, api: ApiSession, pat_headers: dict[str, str]
    ) -> None:
        response = api.client.post(
            MCP,
            json=_rpc(
                "tools/call",
                {"name": "create_epic", "arguments": {"title": "Agent epic", "priority": 1}},
            ),
            headers=pat_headers,
        )

        content = response.json()["result"]["content"]
        assert content[0]["text"] == "Created epic EP-001: Agent epic"
        epic = orjson.loads(content[1]["text"])

        fetched = api.client.get(f"{API}/epics/EP-001", headers=api.headers).json()
        assert fetched["id"] == epic["id"]
        assert fetched["creator_id"] == str(api.admin.id)

    def test_domain_errors_map_to_rpc_codes(
        self, api: ApiSession, pat_headers: dict[str, str]
    ) -> None:
        response = api.client.post(
            MCP,
            json=_rpc(
                "tools/call",
                {"name": "epic_hierarchy", "arguments": {"epic_id": "EP-404"}},
            ),
            headers=pat_headers,
        )

        error = response.json()["error"]
        assert error["code"] == -32001
        assert error["data"]["code"] == "not_found"

    def test_commenter_is_refused_writes(
        self, api: ApiSession, user_headers: UserHeaders
    ) -> None:
        response = api.client.post(
            MCP,
            json=_rpc(
                "tools/call",
                {"name": "create_epic", "arguments": {"title": "Nope", "priority": 3}},
            ),
            headers=user_headers(Role.COMMENTER),
        )

        assert response.status_code == 200
        assert response.json()["error"]["code"] == -32002
