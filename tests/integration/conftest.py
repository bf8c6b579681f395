from collections.abc import Callable, Generator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient

from reqtrack.auth import User, UserCreate
from reqtrack.config import Config
from reqtrack.enums import Role
from reqtrack.server import create_app
from reqtrack.services import Services

API = "/api/v1"
ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "admin-password"


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        if Path(item.path).is_relative_to(Path(__file__).parent):
            item.add_marker(pytest.mark.integration)


@dataclass(frozen=True, slots=True)
class ApiSession:
    """A running application with an authenticated administrator.

    Attributes:
        client: Test client bound to the application.
        services: The application's own service container.
        admin: The administrator user.
        headers: Bearer headers for the administrator.
        refresh_token: The administrator's refresh token from login.
    """

    client: TestClient
    services: Services
    admin: User
    headers: dict[str, str]
    refresh_token: str


def login(client: TestClient, username: str, password: str) -> dict[str, Any]:
    response = client.post(
        "/auth/login", json={"username": username, "password": password}
    )
    assert response.status_code == 200, response.text
    return response.json()


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def api(config: Config) -> Generator[ApiSession]:
    """Start the application and log in as an administrator."""
    app = create_app(config)
    with TestClient(app) as client:
        services: Services = app.state.services
        admin = services.users.create(
            UserCreate(
                username=ADMIN_USERNAME,
                email="admin@example.com",
                password=ADMIN_PASSWORD,
                role=Role.ADMINISTRATOR,
            )
        )
        session = login(client, ADMIN_USERNAME, ADMIN_PASSWORD)
        yield ApiSession(
            client=client,
            services=services,
            admin=admin,
            headers=bearer(session["token"]),
            refresh_token=session["refresh_token"],
        )


UserHeaders = Callable[[Role], dict[str, str]]


@pytest.fixture
def user_headers(api: ApiSession) -> UserHeaders:
    """Return a factory that creates a user of a role and logs them in."""
    counter = 0

    def _headers(role: Role) -> dict[str, str]:
        nonlocal counter
        counter += 1
        username = f"{role.value.lower()}{counter}"
        password = "user-password"
        _ = api.services.users.create(
            UserCreate(
                username=username,
                email=f"{username}@example.com",
                password=password,
                role=role,
            )
        )
        return bearer(login(api.client, username, password)["token"])

    return _headers


@pytest.fixture
def epic(api: ApiSession) -> dict[str, Any]:
    response = api.client.post(
        f"{API}/epics",
        json={
            "title": "Test Epic",
            "description": "This is a test epic description for inline comments.",
        },
        headers=api.headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def user_story(api: ApiSession, epic: dict[str, Any]) -> dict[str, Any]:
    response = api.client.post(
        f"{API}/user-stories",
        json={
            "epic_id": epic["id"],
            "title": "Log in",
            "description": "As a user, I want to log in, so that I can work",
        },
        headers=api.headers,
    )
    assert response.status_code == 201, response.text
    return response.json()
