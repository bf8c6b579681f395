"""End-to-end planning scenarios over the HTTP API."""

import re
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from tests.integration.conftest import API, ApiSession

SEQUENTIAL_EPIC = re.compile(r"^EP-\d{3}$")
FALLBACK_EPIC = re.compile(r"^EP-[0-9a-f]{8}$")


def _create_story(api: ApiSession, epic_id: str, description: str) -> Any:
    return api.client.post(
        f"{API}/user-stories",
        json={"epic_id": epic_id, "title": "Login", "description": description},
        headers=api.headers,
    )


class TestEpicCreation:
    def test_first_epics_are_numbered(self, api: ApiSession) -> None:
        response = api.client.post(
            f"{API}/epics",
            json={"title": "User Authentication Epic", "priority": 2},
            headers=api.headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["reference_id"] == "EP-001"
        assert body["status"] == "Backlog"
        assert body["priority"] == 2
        assert body["creator_id"] == str(api.admin.id)

        second = api.client.post(
            f"{API}/epics", json={"title": "Second", "priority": 3}, headers=api.headers
        )
        assert second.json()["reference_id"] == "EP-002"

    def test_concurrent_creation_yields_unique_references(self, api: ApiSession) -> None:
        def create_five(client_index: int) -> list[str]:
            references: list[str] = []
            for n in range(5):
                response = api.client.post(
                    f"{API}/epics",
                    json={"title": f"Client {client_index} epic {n}", "priority": 3},
                    headers=api.headers,
                )
                assert response.status_code == 201, response.text
                references.append(response.json()["reference_id"])
            return references

        with ThreadPoolExecutor(max_workers=10) as pool:
            batches = list(pool.map(create_five, range(10)))

        references = [ref for batch in batches for ref in batch]
        assert len(references) == 50
        assert len(set(references)) == 50
        assert any(SEQUENTIAL_EPIC.match(ref) for ref in references)
        assert all(
            SEQUENTIAL_EPIC.match(ref) or FALLBACK_EPIC.match(ref) for ref in references
        )

        listed = api.client.get(f"{API}/epics?limit=100", headers=api.headers).json()
        assert listed["total_count"] == 50

    def test_lookup_by_reference_is_case_insensitive(
        self, api: ApiSession, epic: dict[str, Any]
    ) -> None:
        response = api.client.get(f"{API}/epics/ep-001", headers=api.headers)

        assert response.status_code == 200
        assert response.json()["id"] == epic["id"]


class TestUserStoryTemplate:
    def test_rejects_description_without_template(
        self, api: ApiSession, epic: dict[str, Any]
    ) -> None:
        response = _create_story(api, epic["id"], "wants to login")

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "validation_error"
        assert "template" in body["error"]

    def test_accepts_template_description(
        self, api: ApiSession, epic: dict[str, Any]
    ) -> None:
        response = _create_story(
            api, epic["id"], "As a user, I want to login, so that I can access my account"
        )

        assert response.status_code == 201
        assert response.json()["reference_id"] == "US-001"

    def test_unknown_epic(self, api: ApiSession) -> None:
        response = _create_story(api, "EP-999", "As a user, I want x, so that y")

        assert response.status_code == 404
        assert response.json()["code"] == "not_found"


class TestAcceptanceCriteriaGuard:
    def test_last_criteria_needs_force(
        self, api: ApiSession, user_story: dict[str, Any]
    ) -> None:
        created = api.client.post(
            f"{API}/user-stories/{user_story['id']}/acceptance-criteria",
            json={"description": "WHEN user submits form THEN system SHALL validate"},
            headers=api.headers,
        )
        assert created.status_code == 201
        criteria_id = created.json()["id"]

        refused = api.client.delete(
            f"{API}/acceptance-criteria/{criteria_id}", headers=api.headers
        )

        assert refused.status_code == 409
        assert refused.json()["code"] == "conflict_in_use"
        assert "at least one acceptance criteria" in refused.json()["error"]

        forced = api.client.delete(
            f"{API}/acceptance-criteria/{criteria_id}?force=true", headers=api.headers
        )
        assert forced.status_code == 204
        remaining = api.client.get(
            f"{API}/user-stories/{user_story['id']}/acceptance-criteria", headers=api.headers
        )
        assert remaining.json()["data"] == []

    def test_second_criteria_can_go(self, api: ApiSession, user_story: dict[str, Any]) -> None:
        ids = [
            api.client.post(
                f"{API}/user-stories/{user_story['id']}/acceptance-criteria",
                json={"description": f"WHEN step {n} THEN system SHALL respond"},
                headers=api.headers,
            ).json()["id"]
            for n in range(2)
        ]

        response = api.client.delete(f"{API}/acceptance-criteria/{ids[0]}", headers=api.headers)

        assert response.status_code == 204


class TestInlineCommentVisibility:
    def test_edit_hides_inline_comment(self, api: ApiSession, epic: dict[str, Any]) -> None:
        created = api.client.post(
            f"{API}/epics/{epic['id']}/comments/inline",
            json={
                "content": "Clarify this wording",
                "linked_text": "description",
                "text_position_start": 20,
                "text_position_end": 31,
            },
            headers=api.headers,
        )
        assert created.status_code == 201
        assert created.json()["is_inline"] is True

        visible_url = f"{API}/epics/{epic['id']}/comments/inline/visible"
        visible = api.client.get(visible_url, headers=api.headers).json()["data"]
        assert [c["id"] for c in visible] == [created.json()["id"]]

        updated = api.client.put(
            f"{API}/epics/{epic['id']}",
            json={"description": "Completely rewritten text."},
            headers=api.headers,
        )
        assert updated.status_code == 200

        assert api.client.get(visible_url, headers=api.headers).json()["data"] == []
        comment = api.client.get(
            f"{API}/comments/{created.json()['id']}", headers=api.headers
        ).json()
        assert comment["hidden"] is True


class TestTokenRotation:
    def test_refresh_rotates_and_old_token_is_rejected(self, api: ApiSession) -> None:
        old_token = api.headers["Authorization"].removeprefix("Bearer ")

        rotated = api.client.post(
            "/auth/refresh", json={"refresh_token": api.refresh_token}
        )

        assert rotated.status_code == 200
        body = rotated.json()
        assert body["token"] != old_token
        assert body["refresh_token"] != api.refresh_token

        replay = api.client.post("/auth/refresh", json={"refresh_token": api.refresh_token})
        assert replay.status_code == 401
        assert replay.json()["code"] == "INVALID_REFRESH_TOKEN"
