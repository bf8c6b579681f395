"""Shared test fixtures for reqtrack tests."""

from collections.abc import Callable
from pathlib import Path

import pytest
from rich.console import Console

from reqtrack.auth import Principal, User, UserCreate
from reqtrack.config import Config
from reqtrack.enums import AuthMethod, Role
from reqtrack.services import Services
from reqtrack.store import Store

TEST_SECRET = "test-signing-secret-with-at-least-32-chars"
ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "admin-password"


@pytest.fixture
def console() -> Console:
    """A recording console for CLI output assertions."""
    return Console(record=True, width=200, force_terminal=False)


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "reqtrack.db"


@pytest.fixture
def config(db_path: Path) -> Config:
    """Configuration pointing at a fresh database with a valid signing secret."""
    return Config.from_dict(
        {
            "database": {"path": str(db_path)},
            "auth": {"secret": TEST_SECRET},
            "logging": {"level": "error"},
        }
    )


@pytest.fixture
def store(config: Config) -> Store:
    """An initialized store with the default types and status models."""
    store = Store(config.database.path)
    store.initialize()
    return store


@pytest.fixture
def services(config: Config, store: Store) -> Services:
    return Services.build(config, store=store)


MakeUser = Callable[..., User]


@pytest.fixture
def make_user(services: Services) -> MakeUser:
    """Return a factory that creates users with sensible defaults."""
    counter = 0

    def _make(
        role: Role = Role.USER,
        *,
        username: str | None = None,
        password: str = "user-password",
    ) -> User:
        nonlocal counter
        counter += 1
        name = username or f"{role.value.lower()}{counter}"
        return services.users.create(
            UserCreate(
                username=name,
                email=f"{name}@example.com",
                password=password,
                role=role,
            )
        )

    return _make


@pytest.fixture
def admin(make_user: MakeUser) -> User:
    return make_user(
        Role.ADMINISTRATOR, username=ADMIN_USERNAME, password=ADMIN_PASSWORD
    )


@pytest.fixture
def admin_principal(admin: User) -> Principal:
    return Principal(user=admin, method=AuthMethod.JWT)
