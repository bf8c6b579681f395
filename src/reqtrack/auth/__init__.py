"""Authentication, users and personal access tokens."""

from ._models import (
    DEFAULT_PAT_SCOPES,
    CleanupResult,
    CreatedPAT,
    LoginResult,
    PATCreate,
    PersonalAccessToken,
    Principal,
    RefreshToken,
    TokenClaims,
    User,
    UserCreate,
    UserRecord,
    UserUpdate,
)
from ._passwords import MIN_PASSWORD_LENGTH, PasswordHasher, validate_password_strength
from ._pats import PATService
from ._security import SecurityEvent, SecurityLogger
from ._service import AuthService, require_role
from ._tokens import (
    PAT_PREFIX,
    TokenCodec,
    generate_secret,
    hash_secret,
    lookup_prefix,
)
from ._users import UserService

__all__ = [
    "DEFAULT_PAT_SCOPES",
    "MIN_PASSWORD_LENGTH",
    "PAT_PREFIX",
    "AuthService",
    "CleanupResult",
    "CreatedPAT",
    "LoginResult",
    "PATCreate",
    "PATService",
    "PasswordHasher",
    "PersonalAccessToken",
    "Principal",
    "RefreshToken",
    "SecurityEvent",
    "SecurityLogger",
    "TokenClaims",
    "TokenCodec",
    "User",
    "UserCreate",
    "UserRecord",
    "UserService",
    "UserUpdate",
    "generate_secret",
    "hash_secret",
    "lookup_prefix",
    "require_role",
    "validate_password_strength",
]
