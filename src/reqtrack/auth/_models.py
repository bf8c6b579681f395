# pyright: reportAny=false
"""User, session and token models.

``User`` is the public shape and never carries the password hash; stored rows
are read into ``UserRecord`` only inside the auth package.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import ClassVar
from uuid import UUID

import orjson
from pydantic import BaseModel, ConfigDict, Field, field_validator

from reqtrack.enums import AuthMethod, Role
from reqtrack.utils import Timestamp

DEFAULT_PAT_SCOPES: tuple[str, ...] = ("full_access",)
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


# =============================================================================
# Users
# =============================================================================


class User(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    id: UUID
    username: str
    email: str
    role: Role
    created_at: Timestamp
    updated_at: Timestamp


class UserRecord(User):
    """A stored user row, including the password hash."""

    password_hash: str

    def public(self) -> User:
        return User.model_validate(self.model_dump(exclude={"password_hash"}))


class UserCreate(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="forbid")

    username: str = Field(min_length=1, max_length=100)
    email: str = Field(pattern=EMAIL_PATTERN)
    password: str
    role: Role = Role.USER


class UserUpdate(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="forbid")

    username: str | None = Field(default=None, min_length=1, max_length=100)
    email: str | None = Field(default=None, pattern=EMAIL_PATTERN)
    password: str | None = None
    role: Role | None = None


# =============================================================================
# Sessions
# =============================================================================


@dataclass(frozen=True, slots=True)
class Principal:
    """The authenticated caller of one request.

    Attributes:
        user: The authenticating user. Its role applies whichever method was used.
        method: Whether a bearer token or a PAT was presented.
    """

    user: User
    method: AuthMethod

    @property
    def user_id(self) -> UUID:
        return self.user.id

    @property
    def role(self) -> Role:
        return self.user.role


class TokenClaims(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    user_id: UUID
    username: str
    role: Role
    iat: int
    nbf: int
    exp: int


class LoginResult(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_at: Timestamp
    user: User


class RefreshToken(BaseModel):
    """A stored refresh token. Only the hash of the secret is kept."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    id: UUID
    user_id: UUID
    token_hash: str
    lookup_prefix: str
    expires_at: Timestamp
    last_used_at: Timestamp | None = None
    created_at: Timestamp


# =============================================================================
# Personal access tokens
# =============================================================================


class PersonalAccessToken(BaseModel):
    """A stored PAT without its hash."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    id: UUID
    user_id: UUID
    name: str
    prefix: str
    lookup_prefix: str
    scopes: list[str] = Field(default_factory=lambda: list(DEFAULT_PAT_SCOPES))
    expires_at: Timestamp | None = None
    last_used_at: Timestamp | None = None
    created_at: Timestamp
    updated_at: Timestamp

    @field_validator("scopes", mode="before")
    @classmethod
    def _decode_scopes(cls, value: object) -> object:
        if isinstance(value, str | bytes):
            return orjson.loads(value)
        return value


class PersonalAccessTokenRecord(PersonalAccessToken):
    token_hash: str


class PATCreate(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(min_length=1, max_length=100)
    scopes: list[str] | None = None
    expires_at: datetime | None = None


class CreatedPAT(BaseModel):
    """A new PAT with its full token. The token is never retrievable again."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    token: str
    personal_access_token: PersonalAccessToken


# =============================================================================
# Housekeeping
# =============================================================================


@dataclass(frozen=True, slots=True)
class CleanupResult:
    refresh_tokens: int = 0
    personal_access_tokens: int = 0
