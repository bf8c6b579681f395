"""User management."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final
from uuid import UUID, uuid4

from reqtrack.auth._models import User, UserRecord
from reqtrack.auth._passwords import PasswordHasher, validate_password_strength
from reqtrack.exceptions import DuplicateError, InUseError, NotFoundError, ValidationError
from reqtrack.planning._base import DEFAULT_PAGE_LIMIT, validate_pagination
from reqtrack.planning._models import Page
from reqtrack.utils import format_timestamp, utc_now

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from reqtrack.auth._models import UserCreate, UserUpdate
    from reqtrack.enums import Role
    from reqtrack.store import Store, Transaction
    from reqtrack.utils.database import SQLValue

__all__ = ["UserService"]

# (table, column, label) for every reference that blocks deleting a user
_USER_REFERENCES: Final = (
    ("epics", "creator_id", "epic creator"),
    ("epics", "assignee_id", "epic assignee"),
    ("user_stories", "creator_id", "user story creator"),
    ("user_stories", "assignee_id", "user story assignee"),
    ("requirements", "creator_id", "requirement creator"),
    ("requirements", "assignee_id", "requirement assignee"),
    ("acceptance_criteria", "author_id", "acceptance criteria author"),
    ("comments", "author_id", "comment author"),
    ("requirement_relationships", "created_by", "relationship creator"),
)


class UserService:
    """Create, read, update and delete user accounts."""

    __slots__: Final = ("_hasher", "_logger", "_store")

    _store: Store
    _hasher: PasswordHasher
    _logger: FilteringBoundLogger | None

    def __init__(
        self,
        store: Store,
        *,
        hasher: PasswordHasher | None = None,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        self._store = store
        self._hasher = hasher or PasswordHasher()
        self._logger = logger

    @staticmethod
    def _record(tx: Transaction, user_id: UUID | str) -> UserRecord:
        record = tx.fetch_one(
            UserRecord, "SELECT * FROM users WHERE id = ?", (str(user_id),)
        )
        if record is None:
            msg = "User not found"
            raise NotFoundError(msg, entity_type="user", identifier=str(user_id))
        return record

    @staticmethod
    def _check_unique(
        tx: Transaction,
        *,
        username: str | None,
        email: str | None,
        exclude_id: UUID | None = None,
    ) -> None:
        excluded = str(exclude_id) if exclude_id else ""
        if username is not None and tx.count(
            "SELECT count(*) FROM users WHERE username = ? COLLATE NOCASE AND id != ?",
            (username, excluded),
        ):
            msg = "Username already exists"
            raise DuplicateError(msg)
        if email is not None and tx.count(
            "SELECT count(*) FROM users WHERE email = ? COLLATE NOCASE AND id != ?",
            (email, excluded),
        ):
            msg = "Email already exists"
            raise DuplicateError(msg)

    def create(self, data: UserCreate) -> User:
        """Create a user.

        Raises:
            ValidationError: If the password is too short.
            DuplicateError: If the username or email is taken.
        """
        username = data.username.strip()
        if not username:
            msg = "Username must not be empty"
            raise ValidationError(msg, field="username")
        validate_password_strength(data.password)
        password_hash = self._hasher.hash(data.password)
        now = utc_now()
        record = UserRecord(
            id=uuid4(),
            username=username,
            email=data.email.strip(),
            role=data.role,
            password_hash=password_hash,
            created_at=now,
            updated_at=now,
        )
        with self._store.transaction() as tx:
            self._check_unique(tx, username=record.username, email=record.email)
            tx.insert("users", record)
        if self._logger is not None:
            self._logger.info(
                "user_created", user_id=str(record.id), role=record.role.value
            )
        return record.public()

    def get(self, user_id: UUID | str) -> User:
        with self._store.transaction() as tx:
            return self._record(tx, user_id).public()

    def get_record(self, user_id: UUID | str) -> UserRecord:
        with self._store.transaction() as tx:
            return self._record(tx, user_id)

    def get_by_username(self, username: str) -> UserRecord | None:
        with self._store.transaction() as tx:
            return tx.fetch_one(
                UserRecord,
                "SELECT * FROM users WHERE username = ? COLLATE NOCASE",
                (username.strip(),),
            )

    def list(
        self,
        *,
        role: Role | None = None,
        limit: int = DEFAULT_PAGE_LIMIT,
        offset: int = 0,
    ) -> Page[User]:
        validate_pagination(limit, offset)
        where = " WHERE role = ?" if role is not None else ""
        params: tuple[SQLValue, ...] = (role.value,) if role is not None else ()
        with self._store.transaction() as tx:
            total = tx.count(f"SELECT count(*) FROM users{where}", params)  # noqa: S608
            users = tx.fetch_all(
                User,
                f"SELECT * FROM users{where} "  # noqa: S608
                "ORDER BY created_at ASC, id ASC LIMIT ? OFFSET ?",
                (*params, limit, offset),
            )
        return Page(data=users, total_count=total, limit=limit, offset=offset)

    def update(self, user_id: UUID | str, data: UserUpdate) -> User:
        """Apply the fields set on ``data``.

        Raises:
            NotFoundError: If the user does not exist.
            DuplicateError: If the new username or email is taken.
            ValidationError: If a new password is too short.
        """
        values: dict[str, SQLValue] = {}
        if data.password is not None:
            validate_password_strength(data.password)
            values["password_hash"] = self._hasher.hash(data.password)
        with self._store.transaction() as tx:
            record = self._record(tx, user_id)
            username = data.username.strip() if data.username is not None else None
            email = data.email.strip() if data.email is not None else None
            self._check_unique(tx, username=username, email=email, exclude_id=record.id)
            if username is not None:
                values["username"] = username
            if email is not None:
                values["email"] = email
            if data.role is not None:
                values["role"] = data.role.value
            if values:
                values["updated_at"] = format_timestamp(utc_now())
                _ = tx.update("users", values, key_value=str(record.id))
            updated = self._record(tx, record.id)
        if self._logger is not None:
            self._logger.info(
                "user_updated",
                user_id=str(record.id),
                fields=sorted(k for k in values if k != "password_hash"),
            )
        return updated.public()

    def set_password_hash(self, tx: Transaction, user_id: UUID, password_hash: str) -> None:
        _ = tx.update(
            "users",
            {
                "password_hash": password_hash,
                "updated_at": format_timestamp(utc_now()),
            },
            key_value=str(user_id),
        )

    def references(self, user_id: UUID | str) -> list[str]:
        """Labels of every reference that blocks deleting the user."""
        with self._store.transaction() as tx:
            return [
                label
                for table, column, label in _USER_REFERENCES
                if tx.count(
                    f"SELECT count(*) FROM {table} WHERE {column} = ?",  # noqa: S608
                    (str(user_id),),
                )
            ]

    def delete(self, user_id: UUID | str) -> None:
        """Delete a user and their tokens.

        Raises:
            NotFoundError: If the user does not exist.
            InUseError: If the user still creates, owns or authored anything.
        """
        with self._store.transaction() as tx:
            record = self._record(tx, user_id)
            blocking = self.references(record.id)
            if blocking:
                msg = "User is still referenced and cannot be deleted"
                raise InUseError(msg, details=", ".join(blocking))
            _ = tx.delete("users", str(record.id))
        if self._logger is not None:
            self._logger.info("user_deleted", user_id=str(record.id))
