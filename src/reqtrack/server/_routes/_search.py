from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Query

from reqtrack.enums import EntityType, SortOrder
from reqtrack.search import (
    DEFAULT_SEARCH_LIMIT,
    MAX_SEARCH_LIMIT,
    SearchOptions,
    SearchResponse,
    SearchSortField,
    Suggestion,
)
from reqtrack.server._deps import AnyPrincipal, ServicesDep, parse_uuid

router = APIRouter(prefix="/search", tags=["search"])


@router.get("")
def search(  # noqa: PLR0913
    services: ServicesDep,
    _principal: AnyPrincipal,
    q: str = "",
    entity_types: Annotated[list[EntityType] | None, Query(alias="type")] = None,
    priority: int | None = None,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    creator_id: str | None = None,
    assignee_id: str | None = None,
    created_from: datetime | None = None,
    created_to: datetime | None = None,
    sort_by: SearchSortField = SearchSortField.RELEVANCE,
    sort_order: SortOrder = SortOrder.DESC,
    limit: int = DEFAULT_SEARCH_LIMIT,
    offset: int = 0,
) -> SearchResponse:
    options = SearchOptions(
        query=q,
        entity_types=entity_types or None,
        priority=priority,
        status=status_filter,
        creator_id=parse_uuid(creator_id, field="creator_id") if creator_id else None,
        assignee_id=parse_uuid(assignee_id, field="assignee_id") if assignee_id else None,
        created_from=created_from,
        created_to=created_to,
        sort_by=sort_by,
        sort_order=sort_order,
        limit=limit,
        offset=offset,
    )
    return services.search.search(options)


@router.get("/suggestions")
def suggestions(
    services: ServicesDep,
    _principal: AnyPrincipal,
    q: str = "",
    limit: Annotated[int, Query(ge=1, le=MAX_SEARCH_LIMIT)] = 10,
) -> list[Suggestion]:
    return services.search.suggestions(q, limit=limit)
