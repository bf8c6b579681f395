"""Cross-entity search."""

from ._models import (
    DEFAULT_SEARCH_LIMIT,
    MAX_SEARCH_LIMIT,
    SearchOptions,
    SearchResponse,
    SearchResult,
    SearchSortField,
    Suggestion,
)
from ._service import SearchService, build_match_expression, normalize_bm25

__all__ = [
    "DEFAULT_SEARCH_LIMIT",
    "MAX_SEARCH_LIMIT",
    "SearchOptions",
    "SearchResponse",
    "SearchResult",
    "SearchService",
    "SearchSortField",
    "Suggestion",
    "build_match_expression",
    "normalize_bm25",
]
