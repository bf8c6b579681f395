"""Unit tests for JSON-RPC envelope parsing and error translation."""

import orjson
import pytest

from reqtrack.exceptions import (
    InvalidTransitionError,
    LastAcceptanceCriteriaError,
    NotFoundError,
)
from reqtrack.mcp import (
    JsonRpcError,
    RpcErrorCode,
    RpcRequest,
    error_response,
    from_domain_error,
    parse_message,
    success_response,
)


def _encode(value: object) -> bytes:
    return orjson.dumps(value)


class TestParseMessage:
    def test_single_request(self) -> None:
        is_batch, entries = parse_message(
            _encode({"jsonrpc": "2.0", "id": 1, "method": "ping"})
        )

        assert not is_batch
        assert entries == [
            RpcRequest(method="ping", params={}, id=1, is_notification=False)
        ]

    def test_notification_has_no_id(self) -> None:
        _, entries = parse_message(
            _encode({"jsonrpc": "2.0", "method": "notifications/initialized"})
        )

        request = entries[0]
        assert isinstance(request, RpcRequest)
        assert request.is_notification

    def test_null_id_is_not_a_notification(self) -> None:
        _, entries = parse_message(_encode({"jsonrpc": "2.0", "id": None, "method": "ping"}))

        request = entries[0]
        assert isinstance(request, RpcRequest)
        assert not request.is_notification

    def test_invalid_json(self) -> None:
        with pytest.raises(JsonRpcError) as exc_info:
            _ = parse_message(b"{not json")

        assert exc_info.value.code is RpcErrorCode.PARSE_ERROR

    def test_empty_batch(self) -> None:
        with pytest.raises(JsonRpcError) as exc_info:
            _ = parse_message(b"[]")

        assert exc_info.value.code is RpcErrorCode.INVALID_REQUEST

    def test_batch_keeps_per_entry_errors(self) -> None:
        is_batch, entries = parse_message(
            _encode(
                [
                    {"jsonrpc": "2.0", "id": 1, "method": "ping"},
                    {"jsonrpc": "1.0", "id": 2, "method": "ping"},
                    42,
                ]
            )
        )

        assert is_batch
        assert isinstance(entries[0], RpcRequest)
        bad_version = entries[1]
        assert isinstance(bad_version, tuple)
        assert bad_version[0] == 2
        assert bad_version[1].code is RpcErrorCode.INVALID_REQUEST
        not_an_object = entries[2]
        assert isinstance(not_an_object, tuple)
        assert not_an_object[0] is None

    @pytest.mark.parametrize(
        ("message", "code"),
        [
            ({"jsonrpc": "2.0", "id": 1}, RpcErrorCode.INVALID_REQUEST),
            ({"jsonrpc": "2.0", "id": 1, "method": ""}, RpcErrorCode.INVALID_REQUEST),
            ({"jsonrpc": "2.0", "id": True, "method": "ping"}, RpcErrorCode.INVALID_REQUEST),
            (
                {"jsonrpc": "2.0", "id": 1, "method": "ping", "params": [1]},
                RpcErrorCode.INVALID_PARAMS,
            ),
        ],
    )
    def test_invalid_envelopes(self, message: dict[str, object], code: RpcErrorCode) -> None:
        _, entries = parse_message(_encode(message))

        entry = entries[0]
        assert isinstance(entry, tuple)
        assert entry[1].code is code


class TestResponses:
    def test_success(self) -> None:
        assert success_response(7, {"ok": True}) == {
            "jsonrpc": "2.0",
            "id": 7,
            "result": {"ok": True},
        }

    def test_error_omits_missing_data(self) -> None:
        error = JsonRpcError(RpcErrorCode.METHOD_NOT_FOUND, "Method not found: x")

        assert error_response("a", error) == {
            "jsonrpc": "2.0",
            "id": "a",
            "error": {"code": -32601, "message": "Method not found: x"},
        }


class TestFromDomainError:
    def test_not_found(self) -> None:
        error = from_domain_error(NotFoundError("Epic not found"))

        assert error.code is RpcErrorCode.RESOURCE_NOT_FOUND
        assert error.message == "Epic not found"
        assert error.data == {"code": "not_found"}

    def test_transition_is_a_validation_failure(self) -> None:
        error = from_domain_error(
            InvalidTransitionError(
                "Cannot move", entity_type="epic", from_status="Backlog", to_status="Done"
            )
        )

        assert error.code is RpcErrorCode.VALIDATION_ERROR

    def test_details_carried(self) -> None:
        error = from_domain_error(LastAcceptanceCriteriaError())

        assert error.code is RpcErrorCode.VALIDATION_ERROR
        assert error.data is not None
        assert error.data["details"] == "conflict_last_acceptance_criteria"
