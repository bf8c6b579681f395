"""HTTP surface behavior: authentication, roles, tokens, configuration and reads."""

from typing import Any

from reqtrack.enums import Role
from tests.integration.conftest import (
    ADMIN_PASSWORD,
    ADMIN_USERNAME,
    API,
    ApiSession,
    UserHeaders,
    bearer,
    login,
)


class TestHealth:
    def test_needs_no_credentials(self, api: ApiSession) -> None:
        response = api.client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["version"]


class TestAuthentication:
    def test_missing_header(self, api: ApiSession) -> None:
        response = api.client.get(f"{API}/epics")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        assert response.json()["code"] == "unauthenticated"

    def test_garbage_token(self, api: ApiSession) -> None:
        response = api.client.get(f"{API}/epics", headers=bearer("not.a.token"))

        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_TOKEN"

    def test_wrong_password(self, api: ApiSession) -> None:
        response = api.client.post(
            "/auth/login", json={"username": ADMIN_USERNAME, "password": "wrong-password"}
        )

        assert response.status_code == 401
        assert "error" in response.json()

    def test_profile_reports_method(self, api: ApiSession) -> None:
        body = api.client.get("/auth/profile", headers=api.headers).json()

        assert body["username"] == ADMIN_USERNAME
        assert body["auth_method"] == "jwt"
        assert "password_hash" not in body

    def test_logout_revokes_refresh_token(self, api: ApiSession) -> None:
        response = api.client.post("/auth/logout", json={"refresh_token": api.refresh_token})

        assert response.status_code == 200
        replay = api.client.post("/auth/refresh", json={"refresh_token": api.refresh_token})
        assert replay.status_code == 401

    def test_change_password(self, api: ApiSession) -> None:
        response = api.client.post(
            "/auth/change-password",
            json={"current_password": ADMIN_PASSWORD, "new_password": "a-brand-new-password"},
            headers=api.headers,
        )

        assert response.status_code == 200
        assert login(api.client, ADMIN_USERNAME, "a-brand-new-password")["token"]


class TestRoles:
    def test_commenter_cannot_create_epics(
        self, api: ApiSession, user_headers: UserHeaders
    ) -> None:
        headers = user_headers(Role.COMMENTER)

        response = api.client.post(
            f"{API}/epics", json={"title": "Nope"}, headers=headers
        )

        assert response.status_code == 403
        assert response.json()["code"] == "forbidden"

    def test_commenter_can_read_and_comment(
        self, api: ApiSession, user_headers: UserHeaders, epic: dict[str, Any]
    ) -> None:
        headers = user_headers(Role.COMMENTER)

        assert api.client.get(f"{API}/epics/{epic['id']}", headers=headers).status_code == 200
        response = api.client.post(
            f"{API}/epics/{epic['id']}/comments", json={"content": "Looks good"}, headers=headers
        )
        assert response.status_code == 201

    def test_user_cannot_manage_users(self, api: ApiSession, user_headers: UserHeaders) -> None:
        response = api.client.get("/auth/users", headers=user_headers(Role.USER))

        assert response.status_code == 403

    def test_admin_lists_users(self, api: ApiSession) -> None:
        body = api.client.get("/auth/users", headers=api.headers).json()

        assert body["total_count"] == 1
        assert body["data"][0]["role"] == "Administrator"


class TestPersonalAccessTokens:
    def test_create_use_and_revoke(self, api: ApiSession) -> None:
        created = api.client.post(f"{API}/pats", json={"name": "ci"}, headers=api.headers)
        assert created.status_code == 201
        token = created.json()["token"]
        pat_id = created.json()["personal_access_token"]["id"]
        assert token.startswith("mcp_pat_")

        profile = api.client.get("/auth/profile", headers=bearer(token)).json()
        assert profile["auth_method"] == "pat"

        listed = api.client.get(f"{API}/pats", headers=api.headers).json()
        assert [p["id"] for p in listed["data"]] == [pat_id]
        assert "token_hash" not in listed["data"][0]

        revoked = api.client.delete(f"{API}/pats/{pat_id}", headers=api.headers)
        assert revoked.status_code == 204
        rejected = api.client.get("/auth/profile", headers=bearer(token))
        assert rejected.status_code == 401
        assert rejected.json()["code"] == "INVALID_TOKEN"

    def test_duplicate_name(self, api: ApiSession) -> None:
        _ = api.client.post(f"{API}/pats", json={"name": "ci"}, headers=api.headers)

        response = api.client.post(f"{API}/pats", json={"name": "ci"}, headers=api.headers)

        assert response.status_code == 409
        assert response.json()["code"] == "conflict_duplicate"


class TestConfiguration:
    def test_seeded_types_are_readable(
        self, api: ApiSession, user_headers: UserHeaders
    ) -> None:
        headers = user_headers(Role.COMMENTER)

        listed = api.client.get(f"{API}/config/requirement-types", headers=headers).json()
        names = {t["name"] for t in listed["data"]}

        assert {"Functional", "Non-Functional"} <= names

    def test_writes_require_administrator(
        self, api: ApiSession, user_headers: UserHeaders
    ) -> None:
        response = api.client.post(
            f"{API}/config/requirement-types",
            json={"name": "Legal"},
            headers=user_headers(Role.USER),
        )

        assert response.status_code == 403

    def test_admin_creates_type(self, api: ApiSession) -> None:
        response = api.client.post(
            f"{API}/config/requirement-types",
            json={"name": "Legal", "description": "Regulatory obligations"},
            headers=api.headers,
        )

        assert response.status_code == 201
        assert response.json()["name"] == "Legal"

        duplicate = api.client.post(
            f"{API}/config/requirement-types", json={"name": "Legal"}, headers=api.headers
        )
        assert duplicate.status_code == 409


class TestReadViews:
    def _seed(self, api: ApiSession, user_story: dict[str, Any]) -> list[dict[str, Any]]:
        return [
            api.client.post(
                f"{API}/user-stories/{user_story['id']}/requirements",
                json={"title": title, "priority": 1},
                headers=api.headers,
            ).json()
            for title in ("Hash passwords", "Lock out after failures")
        ]

    def test_rendered_hierarchy(
        self, api: ApiSession, epic: dict[str, Any], user_story: dict[str, Any]
    ) -> None:
        _ = self._seed(api, user_story)

        body = api.client.get(
            f"{API}/hierarchy/epics/{epic['reference_id']}?render=true", headers=api.headers
        ).json()

        assert body["epic"]["id"] == epic["id"]
        assert len(body["user_stories"][0]["requirements"]) == 2
        assert "EP-001" in body["rendered"]
        assert "REQ-002" in body["rendered"]

    def test_plain_hierarchy_has_no_rendering(
        self, api: ApiSession, epic: dict[str, Any]
    ) -> None:
        body = api.client.get(f"{API}/hierarchy/epics/{epic['id']}", headers=api.headers).json()

        assert "rendered" not in body
        assert body["user_stories"] == []

    def test_relationships(self, api: ApiSession, user_story: dict[str, Any]) -> None:
        source, target = self._seed(api, user_story)
        types = api.client.get(f"{API}/config/relationship-types", headers=api.headers).json()
        depends_on = next(t["id"] for t in types["data"] if t["name"] == "depends_on")

        created = api.client.post(
            f"{API}/requirements/relationships",
            json={
                "source_requirement_id": source["reference_id"],
                "target_requirement_id": target["reference_id"],
                "relationship_type_id": depends_on,
            },
            headers=api.headers,
        )
        assert created.status_code == 201

        listed = api.client.get(
            f"{API}/requirements/{target['id']}/relationships", headers=api.headers
        ).json()
        assert [r["id"] for r in listed["data"]] == [created.json()["id"]]

        self_loop = api.client.post(
            f"{API}/requirements/relationships",
            json={
                "source_requirement_id": source["id"],
                "target_requirement_id": source["id"],
                "relationship_type_id": depends_on,
            },
            headers=api.headers,
        )
        assert self_loop.status_code == 400

    def test_global_search(
        self, api: ApiSession, epic: dict[str, Any], user_story: dict[str, Any]
    ) -> None:
        _ = self._seed(api, user_story)

        body = api.client.get(
            f"{API}/search", params={"q": "passwords", "type": "requirement"}, headers=api.headers
        ).json()

        assert body["query"] == "passwords"
        assert [r["reference_id"] for r in body["results"]] == ["REQ-001"]
        assert body["results"][0]["type"] == "requirement"

    def test_search_suggestions(self, api: ApiSession, epic: dict[str, Any]) -> None:
        body = api.client.get(
            f"{API}/search/suggestions", params={"q": "Test"}, headers=api.headers
        ).json()

        assert [s["reference_id"] for s in body] == [epic["reference_id"]]

    def test_invalid_identifier(self, api: ApiSession) -> None:
        response = api.client.get(f"{API}/epics/US-001", headers=api.headers)

        assert response.status_code in {400, 404}
        assert "error" in response.json()

    def test_unknown_route_uses_envelope(self, api: ApiSession) -> None:
        response = api.client.get(f"{API}/nothing-here", headers=api.headers)

        assert response.status_code == 404
        assert response.json()["code"] == "not_found"
