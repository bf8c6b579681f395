# pyright: reportAny=false
"""Personal access tokens.

A PAT is ``mcp_pat_`` followed by 32 random bytes in unpadded base64url. The
full token is returned once, at creation. The store keeps the SHA-256 digest
of the secret part and its first eight characters as a lookup prefix.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Final
from uuid import UUID, uuid4

import orjson

from reqtrack.auth._models import (
    DEFAULT_PAT_SCOPES,
    CreatedPAT,
    PersonalAccessToken,
    PersonalAccessTokenRecord,
    User,
)
from reqtrack.auth._security import SecurityLogger
from reqtrack.auth._tokens import (
    PAT_PREFIX,
    constant_time_equals,
    generate_secret,
    hash_secret,
    lookup_prefix,
)
from reqtrack.exceptions import (
    DuplicateError,
    InvalidTokenError,
    NotFoundError,
    TokenExpiredError,
    ValidationError,
)
from reqtrack.planning._base import DEFAULT_PAGE_LIMIT, validate_pagination
from reqtrack.planning._models import Page
from reqtrack.utils import format_timestamp, utc_now

if TYPE_CHECKING:
    from reqtrack.auth._models import PATCreate
    from reqtrack.store import Store, Transaction

__all__ = ["PATService"]

_PUBLIC_COLUMNS: Final = (
    "id, user_id, name, prefix, lookup_prefix, scopes, expires_at, "
    "last_used_at, created_at, updated_at"
)


def _is_expired(expires_at: datetime | None, now: datetime) -> bool:
    return expires_at is not None and expires_at <= now


class PATService:
    """Issue, list, revoke and validate personal access tokens.

    Args:
        store: Backing store.
        security: Security event sink.
        default_ttl: Expiry applied when a PAT is created without one.
    """

    __slots__: Final = ("_default_ttl", "_security", "_store")

    _store: Store
    _security: SecurityLogger
    _default_ttl: timedelta | None

    def __init__(
        self,
        store: Store,
        *,
        security: SecurityLogger | None = None,
        default_ttl: timedelta | None = None,
    ) -> None:
        self._store = store
        self._security = security or SecurityLogger()
        self._default_ttl = default_ttl

    def create(self, user_id: UUID, data: PATCreate) -> CreatedPAT:
        """Create a PAT for ``user_id``.

        Raises:
            ValidationError: If the name is blank or the expiry is in the past.
            DuplicateError: If the user already has a PAT with this name.
        """
        name = data.name.strip()
        if not name:
            msg = "Token name must not be empty"
            raise ValidationError(msg, field="name")
        now = utc_now()
        expires_at = data.expires_at
        if expires_at is None and self._default_ttl is not None:
            expires_at = now + self._default_ttl
        if expires_at is not None and _is_expired(expires_at, now):
            msg = "Token expiry must be in the future"
            raise ValidationError(msg, field="expires_at")
        scopes = data.scopes or list(DEFAULT_PAT_SCOPES)

        secret = generate_secret()
        pat_id = uuid4()
        with self._store.transaction() as tx:
            if tx.count(
                "SELECT count(*) FROM personal_access_tokens WHERE user_id = ? AND name = ?",
                (str(user_id), name),
            ):
                msg = "A token with this name already exists"
                raise DuplicateError(msg)
            _ = tx.execute(
                "INSERT INTO personal_access_tokens (id, user_id, name, token_hash, "
                "prefix, lookup_prefix, scopes, expires_at, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    str(pat_id),
                    str(user_id),
                    name,
                    hash_secret(secret),
                    PAT_PREFIX,
                    lookup_prefix(secret),
                    orjson.dumps(scopes).decode(),
                    format_timestamp(expires_at) if expires_at else None,
                    format_timestamp(now),
                    format_timestamp(now),
                ),
            )
            pat = self._fetch(tx, pat_id, user_id)
        self._security.pat_created(user_id, pat_id, name)
        return CreatedPAT(token=f"{PAT_PREFIX}{secret}", personal_access_token=pat)

    @staticmethod
    def _fetch(tx: Transaction, pat_id: UUID | str, user_id: UUID) -> PersonalAccessToken:
        # Another user's token is reported as missing, not forbidden
        pat = tx.fetch_one(
            PersonalAccessToken,
            f"SELECT {_PUBLIC_COLUMNS} FROM personal_access_tokens "  # noqa: S608
            "WHERE id = ? AND user_id = ?",
            (str(pat_id), str(user_id)),
        )
        if pat is None:
            msg = "Personal access token not found"
            raise NotFoundError(
                msg, entity_type="personal_access_token", identifier=str(pat_id)
            )
        return pat

    def list(
        self, user_id: UUID, *, limit: int = DEFAULT_PAGE_LIMIT, offset: int = 0
    ) -> Page[PersonalAccessToken]:
        validate_pagination(limit, offset)
        with self._store.transaction() as tx:
            total = tx.count(
                "SELECT count(*) FROM personal_access_tokens WHERE user_id = ?",
                (str(user_id),),
            )
            pats = tx.fetch_all(
                PersonalAccessToken,
                f"SELECT {_PUBLIC_COLUMNS} FROM personal_access_tokens "  # noqa: S608
                "WHERE user_id = ? ORDER BY created_at DESC, id ASC LIMIT ? OFFSET ?",
                (str(user_id), limit, offset),
            )
        return Page(data=pats, total_count=total, limit=limit, offset=offset)

    def get(self, pat_id: UUID | str, user_id: UUID) -> PersonalAccessToken:
        with self._store.transaction() as tx:
            return self._fetch(tx, pat_id, user_id)

    def revoke(self, pat_id: UUID | str, user_id: UUID) -> None:
        """Delete a PAT owned by ``user_id``.

        Raises:
            NotFoundError: If the PAT does not exist or belongs to someone else.
        """
        with self._store.transaction() as tx:
            pat = self._fetch(tx, pat_id, user_id)
            _ = tx.delete("personal_access_tokens", str(pat.id))
        self._security.pat_revoked(user_id, pat.id)

    def validate(self, token: str) -> User:
        """Authenticate a raw PAT and return its owner.

        Candidates are narrowed by lookup prefix, then compared by digest in
        constant time. A successful match updates ``last_used_at``.

        Raises:
            InvalidTokenError: If the token is malformed or unknown.
            TokenExpiredError: If the token has expired.
        """
        if not token.startswith(PAT_PREFIX) or len(token) <= len(PAT_PREFIX):
            self._security.pat_auth_failure("malformed")
            msg = "Invalid token"
            raise InvalidTokenError(msg)
        secret = token[len(PAT_PREFIX) :]
        digest = hash_secret(secret)
        now = utc_now()
        with self._store.transaction() as tx:
            candidates = tx.fetch_all(
                PersonalAccessTokenRecord,
                "SELECT * FROM personal_access_tokens WHERE lookup_prefix = ?",
                (lookup_prefix(secret),),
            )
            match = next(
                (c for c in candidates if constant_time_equals(c.token_hash, digest)),
                None,
            )
            if match is None:
                self._security.pat_auth_failure("unknown")
                msg = "Invalid token"
                raise InvalidTokenError(msg)
            if _is_expired(match.expires_at, now):
                self._security.pat_expired(match.user_id, match.id)
                msg = "Token has expired"
                raise TokenExpiredError(msg)
            user = tx.fetch_one(
                User, "SELECT * FROM users WHERE id = ?", (str(match.user_id),)
            )
            if user is None:
                self._security.pat_auth_failure("unknown_user")
                msg = "Invalid token"
                raise InvalidTokenError(msg)
            _ = tx.update(
                "personal_access_tokens",
                {"last_used_at": format_timestamp(now)},
                key_value=str(match.id),
            )
        self._security.pat_auth_success(user.id, match.id)
        return user

    def cleanup_expired(self) -> int:
        """Delete every expired PAT. Safe to call repeatedly."""
        with self._store.transaction() as tx:
            removed = tx.execute(
                "DELETE FROM personal_access_tokens "
                "WHERE expires_at IS NOT NULL AND expires_at <= ?",
                (format_timestamp(utc_now()),),
            ).rowcount
        if removed:
            self._security.pat_cleanup_expired(removed)
        return removed
