# pyright: reportAny=false
"""Cross-entity search.

Matching is the union of three rules: an exact reference ID (relevance 1.0),
an FTS5 match over title, description and reference ID ranked with bm25, and
a case-insensitive substring of the title (relevance 0.1). Results from the
four entity tables are merged, ordered and windowed in memory, so a page is
stable for identical options.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Final
from uuid import UUID

from reqtrack.enums import EntityType, SortOrder
from reqtrack.exceptions import NotFoundError, ValidationError
from reqtrack.planning._models import AcceptanceCriteria, Epic, Requirement, UserStory
from reqtrack.planning._reference_ids import find_entity
from reqtrack.search._models import (
    MAX_SEARCH_LIMIT,
    SearchOptions,
    SearchResponse,
    SearchResult,
    SearchSortField,
    Suggestion,
)
from reqtrack.utils import format_timestamp, utc_now
from reqtrack.utils.database import escape_like

if TYPE_CHECKING:
    from pydantic import BaseModel
    from structlog.typing import FilteringBoundLogger

    from reqtrack.planning import PlanningEntity
    from reqtrack.store import Store, Transaction
    from reqtrack.utils.database import SQLValue

__all__ = ["SearchService", "build_match_expression", "normalize_bm25"]

DESCRIPTION_PREVIEW: Final = 200
EXACT_MATCH_RELEVANCE: Final = 1.0
SUBSTRING_RELEVANCE: Final = 0.1
AC_STATUS: Final = "active"

_MODELS: Final[dict[EntityType, type[BaseModel]]] = {
    EntityType.EPIC: Epic,
    EntityType.USER_STORY: UserStory,
    EntityType.ACCEPTANCE_CRITERIA: AcceptanceCriteria,
    EntityType.REQUIREMENT: Requirement,
}
_WORD_RE = re.compile(r"\w+", re.UNICODE)
_REFERENCE_PREFIX_RE = re.compile(r"^(EP|US|AC|REQ)-", re.IGNORECASE)

# Column weights follow the index column order; the first two are UNINDEXED
_BM25: Final = "bm25(search_index, 0.0, 0.0, 10.0, 5.0, 1.0)"


def build_match_expression(query: str) -> str | None:
    """Quote each word of ``query`` and AND them together.

    Examples:
        >>> build_match_expression('user "login" flow')
        '"user" "login" "flow"'
        >>> build_match_expression("  ") is None
        True
    """
    words = _WORD_RE.findall(query)
    if not words:
        return None
    return " ".join(f'"{word}"' for word in words)


def normalize_bm25(score: float) -> float:
    """Map a bm25 score (lower is better, usually negative) into [0, 1).

    Examples:
        >>> normalize_bm25(-1.0)
        0.5
        >>> normalize_bm25(0.0)
        0.0
    """
    strength = max(-score, 0.0)
    return strength / (1.0 + strength)


def _preview(text: str | None) -> str | None:
    if text is None or len(text) <= DESCRIPTION_PREVIEW:
        return text
    return text[: DESCRIPTION_PREVIEW - 3] + "..."


def _to_result(entity_type: EntityType, row: PlanningEntity, relevance: float) -> SearchResult:
    if isinstance(row, AcceptanceCriteria):
        return SearchResult(
            type=entity_type,
            id=row.id,
            reference_id=row.reference_id,
            title=row.reference_id,
            description=_preview(row.description),
            status=AC_STATUS,
            created_at=row.created_at,
            updated_at=row.updated_at,
            relevance=relevance,
        )
    return SearchResult(
        type=entity_type,
        id=row.id,
        reference_id=row.reference_id,
        title=row.title,
        description=_preview(row.description),
        status=row.status,
        priority=int(row.priority),
        created_at=row.created_at,
        updated_at=row.updated_at,
        relevance=relevance,
    )


def _sort(results: list[SearchResult], options: SearchOptions) -> list[SearchResult]:
    ordered = sorted(results, key=lambda r: str(r.id))
    ordered.sort(key=lambda r: r.created_at, reverse=True)

    sort_by = options.sort_by
    if sort_by is SearchSortField.RELEVANCE and not options.query.strip():
        return ordered
    descending = options.sort_order is SortOrder.DESC
    match sort_by:
        case SearchSortField.RELEVANCE:
            ordered.sort(key=lambda r: r.relevance, reverse=descending)
        case SearchSortField.CREATED_AT:
            ordered.sort(key=lambda r: r.created_at, reverse=descending)
        case SearchSortField.UPDATED_AT:
            ordered.sort(key=lambda r: r.updated_at, reverse=descending)
        case SearchSortField.PRIORITY:
            # Entities without a priority sort last either way
            with_priority = [r for r in ordered if r.priority is not None]
            without = [r for r in ordered if r.priority is None]
            with_priority.sort(key=lambda r: r.priority or 0, reverse=descending)
            ordered = with_priority + without
        case SearchSortField.TITLE:
            ordered.sort(key=lambda r: r.title.lower(), reverse=descending)
    return ordered


class SearchService:
    """Full-text and filtered search across all planning entities."""

    __slots__: Final = ("_logger", "_store")

    _store: Store
    _logger: FilteringBoundLogger | None

    def __init__(
        self, store: Store, *, logger: FilteringBoundLogger | None = None
    ) -> None:
        self._store = store
        self._logger = logger

    @staticmethod
    def _validate(options: SearchOptions) -> None:
        if not 1 <= options.limit <= MAX_SEARCH_LIMIT:
            msg = f"limit must be between 1 and {MAX_SEARCH_LIMIT}"
            raise ValidationError(msg, field="limit")
        if options.offset < 0:
            msg = "offset must not be negative"
            raise ValidationError(msg, field="offset")
        if options.priority is not None and not 1 <= options.priority <= 4:  # noqa: PLR2004
            msg = "priority must be between 1 and 4"
            raise ValidationError(msg, field="priority")
        if (
            options.created_from is not None
            and options.created_to is not None
            and options.created_from > options.created_to
        ):
            msg = "created_from must not be after created_to"
            raise ValidationError(msg, field="created_from")

    @staticmethod
    def _filters(
        entity_type: EntityType, options: SearchOptions
    ) -> tuple[str, list[SQLValue]] | None:
        """Build the WHERE clause for one table, or None if the type is excluded."""
        is_ac = entity_type is EntityType.ACCEPTANCE_CRITERIA
        if is_ac and (
            options.priority is not None
            or options.status is not None
            or options.assignee_id is not None
        ):
            return None

        clauses: list[str] = []
        params: list[SQLValue] = []
        if options.priority is not None:
            clauses.append("priority = ?")
            params.append(options.priority)
        if options.status is not None:
            clauses.append("status = ? COLLATE NOCASE")
            params.append(options.status.strip())
        if options.creator_id is not None:
            clauses.append("author_id = ?" if is_ac else "creator_id = ?")
            params.append(str(options.creator_id))
        if options.assignee_id is not None:
            clauses.append("assignee_id = ?")
            params.append(str(options.assignee_id))
        if options.created_from is not None:
            clauses.append("created_at >= ?")
            params.append(format_timestamp(options.created_from))
        if options.created_to is not None:
            clauses.append("created_at <= ?")
            params.append(format_timestamp(options.created_to))
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        return where, params

    @staticmethod
    def _relevance(
        tx: Transaction, entity_type: EntityType, query: str
    ) -> dict[str, float]:
        """Return matching entity ids of one type mapped to their relevance."""
        scores: dict[str, float] = {}
        table = entity_type.table

        expression = build_match_expression(query)
        if expression is not None:
            rows = tx.execute(
                f"SELECT entity_id, {_BM25} AS score FROM search_index "  # noqa: S608
                "WHERE search_index MATCH ? AND entity_type = ?",
                (expression, entity_type.value),
            ).fetchall()
            for row in rows:
                scores[str(row["entity_id"])] = normalize_bm25(float(row["score"]))

        title_column = (
            "reference_id" if entity_type is EntityType.ACCEPTANCE_CRITERIA else "title"
        )
        pattern = f"%{escape_like(query.lower())}%"
        for row in tx.execute(
            f"SELECT id FROM {table} "  # noqa: S608
            f"WHERE lower({title_column}) LIKE ? ESCAPE '\\'",
            (pattern,),
        ).fetchall():
            entity_id = str(row["id"])
            scores[entity_id] = max(scores.get(entity_id, 0.0), SUBSTRING_RELEVANCE)

        for row in tx.execute(
            f"SELECT id FROM {table} WHERE reference_id = ? COLLATE NOCASE",  # noqa: S608
            (query,),
        ).fetchall():
            scores[str(row["id"])] = EXACT_MATCH_RELEVANCE
        return scores

    def search(self, options: SearchOptions) -> SearchResponse:
        """Run a search.

        Raises:
            ValidationError: If the window, priority or date range is invalid.
        """
        self._validate(options)
        query = options.query.strip()
        entity_types = options.entity_types or list(EntityType)

        results: list[SearchResult] = []
        with self._store.transaction() as tx:
            for entity_type in dict.fromkeys(entity_types):
                filters = self._filters(entity_type, options)
                if filters is None:
                    continue
                where, params = filters
                scores = self._relevance(tx, entity_type, query) if query else None
                if scores is not None and not scores:
                    continue
                rows = tx.fetch_all(
                    _MODELS[entity_type],
                    f"SELECT * FROM {entity_type.table}{where}",  # noqa: S608
                    tuple(params),
                )
                for row in rows:
                    entity: PlanningEntity = row  # pyright: ignore[reportAssignmentType]
                    if scores is None:
                        results.append(_to_result(entity_type, entity, 0.0))
                    elif (score := scores.get(str(entity.id))) is not None:
                        results.append(_to_result(entity_type, entity, score))

        ordered = _sort(results, options)
        window = ordered[options.offset : options.offset + options.limit]
        if self._logger is not None:
            self._logger.debug(
                "search_executed",
                query=query,
                entity_types=[t.value for t in entity_types],
                total_count=len(ordered),
            )
        return SearchResponse(
            results=window,
            total_count=len(ordered),
            limit=options.limit,
            offset=options.offset,
            query=query,
            executed_at=utc_now(),
        )

    def suggestions(self, query: str, *, limit: int = 10) -> list[Suggestion]:
        """Titles and reference IDs starting with ``query``, for autocomplete."""
        text = query.strip()
        if not text:
            return []
        if not 1 <= limit <= MAX_SEARCH_LIMIT:
            msg = f"limit must be between 1 and {MAX_SEARCH_LIMIT}"
            raise ValidationError(msg, field="limit")
        pattern = f"{escape_like(text.lower())}%"
        suggestions: list[Suggestion] = []
        with self._store.transaction() as tx:
            for entity_type in EntityType:
                title = (
                    "reference_id"
                    if entity_type is EntityType.ACCEPTANCE_CRITERIA
                    else "title"
                )
                rows = tx.execute(
                    f"SELECT id, reference_id, {title} AS title FROM {entity_type.table} "  # noqa: S608
                    f"WHERE lower({title}) LIKE ? ESCAPE '\\' "
                    "OR lower(reference_id) LIKE ? ESCAPE '\\' "
                    "ORDER BY created_at DESC, id LIMIT ?",
                    (pattern, pattern, limit),
                ).fetchall()
                suggestions.extend(
                    Suggestion(
                        type=entity_type,
                        id=UUID(str(row["id"])),
                        reference_id=str(row["reference_id"]),
                        title=str(row["title"]),
                    )
                    for row in rows
                )
        suggestions.sort(key=lambda s: (s.title.lower(), s.reference_id))
        return suggestions[:limit]

    def search_by_reference_id(self, reference_id: str) -> SearchResult:
        """Resolve any reference ID to its search result.

        Raises:
            ValidationError: If ``reference_id`` has no known prefix.
            NotFoundError: If nothing has that reference.
        """
        match = _REFERENCE_PREFIX_RE.match(reference_id.strip())
        if match is None:
            msg = f"Invalid reference ID: {reference_id!r}"
            raise ValidationError(msg, field="reference_id")
        prefix = match.group(1).upper()
        entity_type = next(t for t in EntityType if t.reference_prefix == prefix)
        with self._store.transaction() as tx:
            try:
                row = find_entity(tx, _MODELS[entity_type], entity_type, reference_id)
            except NotFoundError:
                msg = f"No entity with reference ID {reference_id!r}"
                raise NotFoundError(
                    msg, entity_type=entity_type.value, identifier=reference_id
                ) from None
        entity: PlanningEntity = row  # pyright: ignore[reportAssignmentType]
        return _to_result(entity_type, entity, EXACT_MATCH_RELEVANCE)
