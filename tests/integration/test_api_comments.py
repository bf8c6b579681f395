"""Comment threads and inline anchors over the HTTP API."""

from typing import Any

import pytest

from reqtrack.enums import Role
from tests.integration.conftest import API, ApiSession, UserHeaders


@pytest.fixture
def comments_url(epic: dict[str, Any]) -> str:
    return f"{API}/epics/{epic['id']}/comments"


def _post(api: ApiSession, url: str, content: str, **extra: Any) -> dict[str, Any]:
    response = api.client.post(url, json={"content": content, **extra}, headers=api.headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestThreads:
    def test_replies_nest_under_parent(self, api: ApiSession, comments_url: str) -> None:
        root = _post(api, comments_url, "Top level")
        reply = _post(api, f"{API}/comments/{root['id']}/replies", "First reply")

        assert reply["parent_comment_id"] == root["id"]

        threaded = api.client.get(
            comments_url, params={"threaded": "true"}, headers=api.headers
        ).json()["data"]
        assert [(c["id"], c["depth"]) for c in threaded] == [(root["id"], 0)]
        assert [(c["id"], c["depth"]) for c in threaded[0]["replies"]] == [(reply["id"], 1)]

        replies = api.client.get(
            f"{API}/comments/{root['id']}/replies", headers=api.headers
        ).json()
        assert [c["id"] for c in replies["data"]] == [reply["id"]]
        assert (replies["total_count"], replies["limit"], replies["offset"]) == (1, 1, 0)

    def test_parent_with_replies_cannot_be_deleted(
        self, api: ApiSession, comments_url: str
    ) -> None:
        root = _post(api, comments_url, "Top level")
        _ = _post(api, f"{API}/comments/{root['id']}/replies", "Reply")

        response = api.client.delete(f"{API}/comments/{root['id']}", headers=api.headers)

        assert response.status_code == 409

    def test_resolution_filters(self, api: ApiSession, comments_url: str) -> None:
        first = _post(api, comments_url, "Resolve me")
        second = _post(api, comments_url, "Leave me")

        resolved = api.client.post(f"{API}/comments/{first['id']}/resolve", headers=api.headers)
        assert resolved.json()["is_resolved"] is True

        def ids(status: str) -> list[str]:
            return [
                c["id"]
                for c in api.client.get(
                    comments_url, params={"status": status}, headers=api.headers
                ).json()["data"]
            ]

        assert ids("resolved") == [first["id"]]
        assert ids("unresolved") == [second["id"]]

        _ = api.client.post(f"{API}/comments/{first['id']}/unresolve", headers=api.headers)
        assert ids("resolved") == []

    def test_only_author_edits(
        self, api: ApiSession, comments_url: str, user_headers: UserHeaders
    ) -> None:
        comment = _post(api, comments_url, "Mine")

        response = api.client.put(
            f"{API}/comments/{comment['id']}",
            json={"content": "Hijacked"},
            headers=user_headers(Role.USER),
        )

        assert response.status_code == 403

    def test_unknown_entity_segment(self, api: ApiSession) -> None:
        response = api.client.get(f"{API}/widgets/abc/comments", headers=api.headers)

        assert response.status_code in {400, 404}


class TestInlineAnchors:
    def test_mismatched_text_is_rejected(self, api: ApiSession, comments_url: str) -> None:
        response = api.client.post(
            f"{comments_url}/inline",
            json={
                "content": "Off by one",
                "linked_text": "description",
                "text_position_start": 19,
                "text_position_end": 30,
            },
            headers=api.headers,
        )

        assert response.status_code == 400

    def test_validate_suggests_position(self, api: ApiSession, comments_url: str) -> None:
        response = api.client.post(
            f"{comments_url}/inline/validate",
            json={
                "linked_text": "description",
                "text_position_start": 0,
                "text_position_end": 11,
            },
            headers=api.headers,
        )

        body = response.json()
        assert body["valid"] is False
        assert body["suggested_start"] == 20
        assert body["suggested_end"] == 31

    def test_inline_listing_excludes_general_comments(
        self, api: ApiSession, comments_url: str
    ) -> None:
        _ = _post(api, comments_url, "General")
        inline = _post(
            api,
            f"{comments_url}/inline",
            "Anchored",
            linked_text="description",
            text_position_start=20,
            text_position_end=31,
        )

        listed = api.client.get(
            comments_url, params={"inline": "true"}, headers=api.headers
        ).json()["data"]

        assert [c["id"] for c in listed] == [inline["id"]]

    def test_new_description_hides_missing_and_moves_shifted(
        self, api: ApiSession, comments_url: str
    ) -> None:
        moved = _post(
            api,
            f"{comments_url}/inline",
            "Follows its text",
            linked_text="description",
            text_position_start=20,
            text_position_end=31,
        )
        gone = _post(
            api,
            f"{comments_url}/inline",
            "Loses its text",
            linked_text="inline comments",
            text_position_start=36,
            text_position_end=51,
        )

        response = api.client.post(
            f"{comments_url}/inline/validate",
            json={"new_description": "NEW: This is a test epic description."},
            headers=api.headers,
        )

        assert response.status_code == 200
        assert response.json()["checked"] == 2
        assert response.json()["hidden"] == 1
        assert response.json()["moved"] == 1

        visible = api.client.get(
            f"{comments_url}/inline/visible", headers=api.headers
        ).json()
        assert [c["id"] for c in visible["data"]] == [moved["id"]]
        assert (
            visible["data"][0]["text_position_start"],
            visible["data"][0]["text_position_end"],
        ) == (25, 36)
        hidden = api.client.get(f"{API}/comments/{gone['id']}", headers=api.headers).json()
        assert hidden["hidden"] is True


class TestListEnvelopes:
    def test_entity_comments_are_paginated_envelopes(
        self, api: ApiSession, comments_url: str
    ) -> None:
        first = _post(api, comments_url, "One")
        second = _post(api, comments_url, "Two")

        body = api.client.get(comments_url, headers=api.headers).json()

        assert set(body) == {"data", "total_count", "limit", "offset"}
        assert [c["id"] for c in body["data"]] == [first["id"], second["id"]]
        assert (body["total_count"], body["limit"], body["offset"]) == (2, 2, 0)

    def test_empty_visible_inline_listing(self, api: ApiSession, comments_url: str) -> None:
        body = api.client.get(f"{comments_url}/inline/visible", headers=api.headers).json()

        assert body == {"data": [], "total_count": 0, "limit": 0, "offset": 0}

    def test_epic_user_stories(
        self, api: ApiSession, epic: dict[str, Any], user_story: dict[str, Any]
    ) -> None:
        body = api.client.get(
            f"{API}/epics/{epic['id']}/user-stories", headers=api.headers
        ).json()

        assert [s["id"] for s in body["data"]] == [user_story["id"]]
        assert body["total_count"] == 1
