# pyright: reportAny=false
"""Shared plumbing for the planning entity services."""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar, Final
from uuid import UUID

from reqtrack.enums import EntityType, Priority, SortOrder
from reqtrack.exceptions import ValidationError
from reqtrack.planning._deletion import DeletionEngine
from reqtrack.planning._models import Page
from reqtrack.planning._reference_ids import find_entity
from reqtrack.utils import format_timestamp, utc_now
from reqtrack.utils.database import safe_identifier

if TYPE_CHECKING:
    from collections.abc import Mapping

    from pydantic import BaseModel
    from structlog.typing import FilteringBoundLogger

    from reqtrack.comments import CommentService
    from reqtrack.planning._workflow import WorkflowValidator
    from reqtrack.store import Store, Transaction
    from reqtrack.utils.database import SQLValue

MAX_TITLE_LENGTH: Final = 500
DEFAULT_PAGE_LIMIT: Final = 50
MAX_PAGE_LIMIT: Final = 100


def validate_title(title: str | None) -> str:
    """Return the stripped title.

    Raises:
        ValidationError: If the title is empty or longer than 500 characters.
    """
    value = (title or "").strip()
    if not value:
        msg = "Title is required"
        raise ValidationError(msg, field="title")
    if len(value) > MAX_TITLE_LENGTH:
        msg = f"Title must be at most {MAX_TITLE_LENGTH} characters"
        raise ValidationError(msg, field="title")
    return value


def validate_priority(priority: int) -> Priority:
    try:
        return Priority(priority)
    except ValueError:
        msg = f"Priority must be between 1 and 4, got {priority}"
        raise ValidationError(msg, field="priority") from None


def validate_pagination(limit: int, offset: int) -> None:
    if not 1 <= limit <= MAX_PAGE_LIMIT:
        msg = f"limit must be between 1 and {MAX_PAGE_LIMIT}"
        raise ValidationError(msg, field="limit")
    if offset < 0:
        msg = "offset must not be negative"
        raise ValidationError(msg, field="offset")


def ensure_user_exists(tx: Transaction, user_id: UUID, *, field: str) -> None:
    if not tx.fetch_value("SELECT 1 FROM users WHERE id = ?", (str(user_id),)):
        label = field.removesuffix("_id").replace("_", " ").capitalize()
        msg = f"{label} does not exist"
        raise ValidationError(msg, field=field)


class EntityService[T: BaseModel]:
    """Common lookup, listing and update helpers for one entity table.

    Subclasses set ``entity_type``, ``model`` and the columns they accept as
    list filters.
    """

    entity_type: ClassVar[EntityType]
    model: type[T]
    filter_columns: ClassVar[frozenset[str]] = frozenset()
    sort_columns: ClassVar[frozenset[str]] = frozenset({
        "created_at",
        "updated_at",
        "reference_id",
    })

    _store: Store
    _workflow: WorkflowValidator
    _comments: CommentService
    _deletion: DeletionEngine
    _logger: FilteringBoundLogger | None

    def __init__(
        self,
        store: Store,
        workflow: WorkflowValidator,
        comments: CommentService,
        *,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        self._store = store
        self._workflow = workflow
        self._comments = comments
        self._deletion = DeletionEngine(store, logger=logger)
        self._logger = logger

    @property
    def store(self) -> Store:
        return self._store

    def get(self, identifier: str | UUID) -> T:
        """Fetch one entity by UUID or reference ID.

        Raises:
            ValidationError: If the identifier is malformed.
            NotFoundError: If no entity matches.
        """
        with self._store.transaction() as tx:
            return find_entity(tx, self.model, self.entity_type, identifier)

    def _page(
        self,
        filters: Mapping[str, SQLValue],
        *,
        order_by: str,
        order_direction: SortOrder | str,
        limit: int,
        offset: int,
    ) -> Page[T]:
        validate_pagination(limit, offset)
        if order_by not in self.sort_columns:
            allowed = ", ".join(sorted(self.sort_columns))
            msg = f"Cannot order by {order_by!r}; expected one of: {allowed}"
            raise ValidationError(msg, field="order_by")
        try:
            direction = SortOrder(str(order_direction).lower())
        except ValueError:
            msg = "order_direction must be 'asc' or 'desc'"
            raise ValidationError(msg, field="order_direction") from None

        clauses: list[str] = []
        params: list[SQLValue] = []
        for column, value in filters.items():
            if value is None:
                continue
            if column not in self.filter_columns:
                msg = f"Unknown filter: {column}"
                raise ValidationError(msg, field=column)
            if column == "status":
                clauses.append("status = ? COLLATE NOCASE")
            else:
                clauses.append(f"{safe_identifier(column)} = ?")
            params.append(value)

        table = safe_identifier(self.entity_type.table)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        order = (
            f" ORDER BY {safe_identifier(order_by)} {direction.value.upper()}, id ASC"
        )
        with self._store.transaction() as tx:
            total = tx.count(f"SELECT count(*) FROM {table}{where}", tuple(params))  # noqa: S608
            rows = tx.fetch_all(
                self.model,
                f"SELECT * FROM {table}{where}{order} LIMIT ? OFFSET ?",  # noqa: S608
                (*params, limit, offset),
            )
        return Page(data=rows, total_count=total, limit=limit, offset=offset)

    def _write(self, tx: Transaction, entity_id: UUID, values: dict[str, SQLValue]) -> T:
        values["updated_at"] = format_timestamp(utc_now())
        _ = tx.update(self.entity_type.table, values, key_value=str(entity_id))
        return find_entity(tx, self.model, self.entity_type, entity_id)

    def _after_description_change(self, entity_id: UUID, description: str | None) -> None:
        # Joins the caller's transaction, so anchors commit with the edit
        outcome = self._comments.revalidate_anchors(
            self.entity_type, entity_id, description or ""
        )
        if self._logger is not None and outcome.checked:
            self._logger.debug(
                "anchors_revalidated",
                entity_type=self.entity_type.value,
                entity_id=str(entity_id),
                checked=outcome.checked,
                hidden=outcome.hidden,
                restored=outcome.restored,
                moved=outcome.moved,
            )

    def _log(self, event: str, **fields: object) -> None:
        if self._logger is not None:
            self._logger.info(event, entity_type=self.entity_type.value, **fields)
