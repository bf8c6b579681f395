"""Row-level SQLite helpers for the store.

Rows come back as ``sqlite3.Row`` and are validated into the planning,
comment and auth models. Models go in through ``model_dump(mode="json")``,
which stores UUIDs and timestamps as text and priorities as integers.

``insert`` leaves ``None`` fields out so column defaults apply;
``update_columns`` writes ``None`` as NULL.
"""

from __future__ import annotations

import re
import sqlite3
from contextlib import contextmanager, suppress
from typing import TYPE_CHECKING, Final, cast

from pydantic import BaseModel

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

type SQLValue = str | int | float | bytes | None

_IDENTIFIER_RE: Final = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

BUSY_TIMEOUT_SECONDS: Final = 30.0


@contextmanager
def connect(path: str, *, timeout: float = BUSY_TIMEOUT_SECONDS) -> Iterator[sqlite3.Connection]:
    """Open a connection whose first write starts an IMMEDIATE transaction.

    Writers queue on the database lock for up to ``timeout`` seconds instead
    of failing at commit. The block commits on success and rolls back on any
    exception; the connection is closed either way.
    """
    conn = sqlite3.connect(path, timeout=timeout, isolation_level="IMMEDIATE")
    conn.row_factory = sqlite3.Row
    _ = conn.execute("PRAGMA foreign_keys = ON")
    if path != ":memory:":
        # WAL is unavailable on some filesystems; rollback journaling still works
        with suppress(sqlite3.OperationalError):
            _ = conn.execute("PRAGMA journal_mode = WAL")
        _ = conn.execute(f"PRAGMA busy_timeout = {int(timeout * 1000)}")
    try:
        yield conn
        conn.commit()
    except BaseException:
        with suppress(sqlite3.Error):
            conn.rollback()
        raise
    finally:
        conn.close()


def safe_identifier(name: str) -> str:
    """Quote a table or column name after checking it is a plain identifier.

    Raises:
        ValueError: If ``name`` could break out of the quotes.

    Examples:
        >>> safe_identifier("acceptance_criteria")
        '"acceptance_criteria"'
    """
    if _IDENTIFIER_RE.match(name) is None:
        msg = f"Invalid SQL identifier: {name!r}"
        raise ValueError(msg)
    return f'"{name}"'


def escape_like(value: str) -> str:
    r"""Escape LIKE wildcards so ``value`` matches literally with ``ESCAPE '\'``."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def fetch_one[T: BaseModel](
    conn: sqlite3.Connection, model: type[T], sql: str, params: tuple[SQLValue, ...] = ()
) -> T | None:
    row = cast("sqlite3.Row | None", conn.execute(sql, params).fetchone())
    return None if row is None else model.model_validate(dict(row))


def fetch_all[T: BaseModel](
    conn: sqlite3.Connection, model: type[T], sql: str, params: tuple[SQLValue, ...] = ()
) -> list[T]:
    rows = cast("list[sqlite3.Row]", conn.execute(sql, params).fetchall())
    return [model.model_validate(dict(row)) for row in rows]


def fetch_value(
    conn: sqlite3.Connection, sql: str, params: tuple[SQLValue, ...] = ()
) -> SQLValue:
    """Return the first column of the first row, or None without a row."""
    row = cast("sqlite3.Row | None", conn.execute(sql, params).fetchone())
    return None if row is None else cast("SQLValue", row[0])


def insert(
    conn: sqlite3.Connection, table: str, obj: BaseModel, exclude: set[str] | None = None
) -> None:
    """Insert ``obj`` as one row of ``table``, leaving out ``exclude`` and None fields."""
    data = obj.model_dump(mode="json", exclude=exclude or set(), exclude_none=True)
    columns = ", ".join(safe_identifier(column) for column in data)
    placeholders = ", ".join(f":{column}" for column in data)
    _ = conn.execute(
        f"INSERT INTO {safe_identifier(table)} ({columns}) VALUES ({placeholders})",  # noqa: S608
        data,
    )


def update_columns(
    conn: sqlite3.Connection,
    table: str,
    values: Mapping[str, SQLValue],
    *,
    key_value: SQLValue,
    key_column: str = "id",
) -> int:
    """Set ``values`` on the row whose ``key_column`` equals ``key_value``.

    Returns:
        The number of rows changed; 0 when ``values`` is empty.
    """
    if not values:
        return 0
    assignments = ", ".join(f"{safe_identifier(column)} = :{column}" for column in values)
    params: dict[str, SQLValue] = {**values, "__key": key_value}
    cursor = conn.execute(
        f"UPDATE {safe_identifier(table)} SET {assignments} "  # noqa: S608
        f"WHERE {safe_identifier(key_column)} = :__key",
        params,
    )
    return cursor.rowcount


def delete(conn: sqlite3.Connection, table: str, key_column: str, key_value: str | int) -> int:
    cursor = conn.execute(
        f"DELETE FROM {safe_identifier(table)} WHERE {safe_identifier(key_column)} = ?",  # noqa: S608
        (key_value,),
    )
    return cursor.rowcount
