# pyright: reportAny=false
"""Transactional SQLite store.

``Store`` owns the database path and the process-wide advisory lock registry.
All reads and writes go through a ``Transaction`` obtained from
``Store.transaction()``; nested calls in the same context share the outer
transaction so a whole request commits atomically.
"""

from __future__ import annotations

import re
import sqlite3
import threading
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import TYPE_CHECKING, Final

from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from reqtrack.exceptions import (
    DuplicateError,
    InUseError,
    ReqtrackError,
    StoreError,
    ValidationError,
)
from reqtrack.store._schema import (
    DEFAULT_RELATIONSHIP_TYPES,
    DEFAULT_REQUIREMENT_TYPES,
    DEFAULT_STATUS_MODELS,
    SCHEMA,
    SCHEMA_VERSION,
    SEARCH_TRIGGERS,
)
from reqtrack.utils import database, format_timestamp, utc_now

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from pydantic import BaseModel
    from structlog.typing import FilteringBoundLogger

    from reqtrack.utils.database import SQLValue

_UNIQUE_RE = re.compile(r"UNIQUE constraint failed: (?P<columns>[\w., ]+)")

# Friendly labels for unique indexes; keyed by "table.column" as sqlite reports it
_UNIQUE_LABELS: dict[str, str] = {
    "users.username": "Username already exists",
    "users.email": "Email already exists",
    "requirement_types.name": "Requirement type name already exists",
    "relationship_types.name": "Relationship type name already exists",
    "status_models.entity_type": "Status model name already exists for entity type",
    "statuses.status_model_id": "Status name already exists in status model",
    "status_transitions.status_model_id": "Status transition already exists",
    "personal_access_tokens.user_id": "Token name already exists",
    "requirement_relationships.source_requirement_id": (
        "Relationship already exists between these requirements"
    ),
}


def _is_locked_error(exc: BaseException) -> bool:
    return isinstance(exc, sqlite3.OperationalError) and "locked" in str(exc).lower()


def translate_error(exc: sqlite3.Error) -> ReqtrackError:
    """Translate a driver error into the reqtrack error taxonomy.

    Driver messages are inspected but never passed through to the caller.
    """
    text = str(exc)
    if isinstance(exc, sqlite3.IntegrityError):
        if match := _UNIQUE_RE.search(text):
            first_column = match.group("columns").split(",")[0].strip()
            if first_column.endswith(".reference_id"):
                return DuplicateError("Reference ID already exists")
            return DuplicateError(
                _UNIQUE_LABELS.get(first_column, "Duplicate value violates a unique key")
            )
        if "FOREIGN KEY" in text:
            return InUseError("Operation violates a reference held by other records")
        if "CHECK" in text or "NOT NULL" in text:
            return ValidationError("Value violates a data constraint")
    return StoreError("Database operation failed")


class AdvisoryLocks:
    """Process-wide registry of non-blocking locks keyed by small integers."""

    __slots__: Final = ("_guard", "_locks")

    _guard: threading.Lock
    _locks: dict[int, threading.Lock]

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks = {}

    def try_acquire(self, key: int) -> bool:
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
        return lock.acquire(blocking=False)

    def release(self, key: int) -> None:
        with self._guard:
            lock = self._locks.get(key)
        if lock is not None and lock.locked():
            lock.release()


class Transaction:
    """A unit of work over one SQLite connection.

    Attributes:
        conn: The underlying connection.
    """

    __slots__: Final = ("_held_locks", "_locks", "_store", "conn")

    conn: sqlite3.Connection
    _store: Store
    _locks: AdvisoryLocks
    _held_locks: list[int]

    def __init__(self, store: Store, conn: sqlite3.Connection) -> None:
        self._store = store
        self.conn = conn
        self._locks = store.advisory_locks
        self._held_locks = []

    @property
    def store(self) -> Store:
        return self._store

    # -------------------------------------------------------------------------
    # Advisory locks
    # -------------------------------------------------------------------------

    def try_advisory_lock(self, key: int) -> bool:
        """Try to take the advisory lock ``key`` without blocking.

        A lock already held by this transaction counts as acquired. Locks are
        released when the transaction ends, after commit or rollback.
        """
        if key in self._held_locks:
            return True
        if not self._locks.try_acquire(key):
            return False
        self._held_locks.append(key)
        return True

    def release_locks(self) -> None:
        while self._held_locks:
            self._locks.release(self._held_locks.pop())

    # -------------------------------------------------------------------------
    # Statements
    # -------------------------------------------------------------------------

    @retry(
        retry=retry_if_exception(_is_locked_error),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.05, min=0.05, max=0.5),
        reraise=True,
    )
    def execute(
        self, sql: str, params: tuple[SQLValue, ...] | Mapping[str, SQLValue] = ()
    ) -> sqlite3.Cursor:
        return self.conn.execute(sql, params)

    def fetch_one[T: BaseModel](
        self, model: type[T], sql: str, params: tuple[SQLValue, ...] = ()
    ) -> T | None:
        return database.fetch_one(self.conn, model, sql, params)

    def fetch_all[T: BaseModel](
        self, model: type[T], sql: str, params: tuple[SQLValue, ...] = ()
    ) -> list[T]:
        return database.fetch_all(self.conn, model, sql, params)

    def fetch_value(self, sql: str, params: tuple[SQLValue, ...] = ()) -> SQLValue:
        return database.fetch_value(self.conn, sql, params)

    def count(self, sql: str, params: tuple[SQLValue, ...] = ()) -> int:
        value = database.fetch_value(self.conn, sql, params)
        return int(value or 0)

    def insert(
        self, table: str, obj: BaseModel, exclude: set[str] | None = None
    ) -> None:
        _ = database.insert(self.conn, table, obj, exclude)

    def update(
        self,
        table: str,
        values: Mapping[str, SQLValue],
        *,
        key_value: SQLValue,
        key_column: str = "id",
    ) -> int:
        return database.update_columns(
            self.conn, table, values, key_column=key_column, key_value=key_value
        )

    def delete(self, table: str, key_value: str | int, *, key_column: str = "id") -> int:
        return database.delete(self.conn, table, key_column, key_value)


_current_transaction: ContextVar[Transaction | None] = ContextVar(
    "reqtrack_transaction", default=None
)


class Store:
    """SQLite-backed store.

    Attributes:
        path: Database file path.
        advisory_locks: Lock registry shared by every transaction of this store.
    """

    __slots__: Final = ("_logger", "advisory_locks", "path")

    path: str
    advisory_locks: AdvisoryLocks
    _logger: FilteringBoundLogger | None

    def __init__(
        self, path: str | Path, *, logger: FilteringBoundLogger | None = None
    ) -> None:
        self.path = str(path)
        self.advisory_locks = AdvisoryLocks()
        self._logger = logger

    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        """Open a transaction, or join the one already active in this context.

        Yields:
            The active transaction.

        Raises:
            DuplicateError: On a unique-key violation.
            InUseError: On a foreign-key violation.
            StoreError: On any other database failure.
        """
        current = _current_transaction.get()
        if current is not None and current.store is self:
            yield current
            return

        tx: Transaction | None = None
        try:
            with database.connect(self.path) as conn:
                tx = Transaction(self, conn)
                token = _current_transaction.set(tx)
                try:
                    yield tx
                finally:
                    _current_transaction.reset(token)
        except sqlite3.Error as e:
            translated = translate_error(e)
            if self._logger is not None:
                self._logger.warning(
                    "store_error",
                    error_kind=translated.kind.value,
                    error_type=type(e).__name__,
                )
            raise translated from e
        finally:
            if tx is not None:
                tx.release_locks()

    def initialize(self) -> None:
        """Create the schema and seed default configuration. Idempotent."""
        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        with database.connect(self.path) as conn:
            _ = conn.executescript(SCHEMA + SEARCH_TRIGGERS)
        with self.transaction() as tx:
            self._seed(tx)
        if self._logger is not None:
            self._logger.info("store_initialized", path=self.path)

    def _seed(self, tx: Transaction) -> None:
        now = format_timestamp(utc_now())
        _ = tx.execute(
            "INSERT OR IGNORE INTO schema_meta (key, value) VALUES ('version', ?)",
            (str(SCHEMA_VERSION),),
        )
        for table, seeds in (
            ("requirement_types", DEFAULT_REQUIREMENT_TYPES),
            ("relationship_types", DEFAULT_RELATIONSHIP_TYPES),
        ):
            for name, description in seeds:
                _ = tx.execute(
                    f"INSERT OR IGNORE INTO {table} "  # noqa: S608
                    "(id, name, description, created_at, updated_at) "
                    "VALUES (?, ?, ?, ?, ?)",
                    (str(uuid.uuid4()), name, description, now, now),
                )

        for entity_type, statuses in DEFAULT_STATUS_MODELS.items():
            exists = tx.fetch_value(
                "SELECT 1 FROM status_models WHERE entity_type = ?", (entity_type,)
            )
            if exists:
                continue
            model_id = str(uuid.uuid4())
            _ = tx.execute(
                "INSERT INTO status_models "
                "(id, entity_type, name, description, is_default, created_at, updated_at) "
                "VALUES (?, ?, 'Default', ?, 1, ?, ?)",
                (model_id, entity_type, f"Default {entity_type} workflow", now, now),
            )
            for order, (name, is_initial, is_final, color) in enumerate(statuses):
                _ = tx.execute(
                    "INSERT INTO statuses (id, status_model_id, name, color, "
                    'is_initial, is_final, "order", created_at, updated_at) '
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        str(uuid.uuid4()),
                        model_id,
                        name,
                        color,
                        int(is_initial),
                        int(is_final),
                        order,
                        now,
                        now,
                    ),
                )
