"""Search options and results."""

from datetime import datetime
from enum import StrEnum
from typing import ClassVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from reqtrack.enums import EntityType, SortOrder
from reqtrack.utils import Timestamp

DEFAULT_SEARCH_LIMIT = 25
MAX_SEARCH_LIMIT = 100


class SearchSortField(StrEnum):
    RELEVANCE = "relevance"
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"
    PRIORITY = "priority"
    TITLE = "title"


class SearchOptions(BaseModel):
    """Search query, filters, window and ordering.

    Attributes:
        query: Free text. Empty means every entity matching the filters.
        entity_types: Entity types to search; None searches all four.
        limit: Window size, 1 to 100.
        offset: Window start, at least 0.
        sort_by: Ordering field. ``relevance`` falls back to ``created_at``
            when ``query`` is empty.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="forbid")

    query: str = ""
    entity_types: list[EntityType] | None = None
    priority: int | None = None
    status: str | None = None
    creator_id: UUID | None = None
    assignee_id: UUID | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None
    limit: int = DEFAULT_SEARCH_LIMIT
    offset: int = 0
    sort_by: SearchSortField = SearchSortField.RELEVANCE
    sort_order: SortOrder = SortOrder.DESC


class SearchResult(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    type: EntityType
    id: UUID
    reference_id: str
    title: str
    description: str | None = None
    status: str
    priority: int | None = None
    created_at: Timestamp
    updated_at: Timestamp
    relevance: float = 0.0


class SearchResponse(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    results: list[SearchResult] = Field(default_factory=list)
    total_count: int
    limit: int
    offset: int
    query: str
    executed_at: Timestamp


class Suggestion(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    type: EntityType
    id: UUID
    reference_id: str
    title: str
