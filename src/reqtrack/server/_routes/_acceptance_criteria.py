from typing import Annotated, Any

from fastapi import APIRouter, Query, Response, status

from reqtrack.enums import SortOrder
from reqtrack.planning import (
    MAX_PAGE_LIMIT,
    AcceptanceCriteria,
    AcceptanceCriteriaUpdate,
    DependencyInfo,
)
from reqtrack.server._deps import AnyPrincipal, ServicesDep, UserPrincipal, parse_uuid

router = APIRouter(prefix="/acceptance-criteria", tags=["acceptance-criteria"])


@router.get("")
def list_acceptance_criteria(  # noqa: PLR0913
    services: ServicesDep,
    _principal: AnyPrincipal,
    user_story_id: str | None = None,
    author_id: str | None = None,
    order_by: str = "created_at",
    order_direction: SortOrder = SortOrder.DESC,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_LIMIT)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> dict[str, Any]:
    page = services.acceptance_criteria.list(
        user_story=user_story_id,
        author_id=parse_uuid(author_id, field="author_id") if author_id else None,
        order_by=order_by,
        order_direction=order_direction,
        limit=limit,
        offset=offset,
    )
    return page.to_dict()


@router.get("/{ac_id}")
def get_acceptance_criteria(
    ac_id: str, services: ServicesDep, _principal: AnyPrincipal
) -> AcceptanceCriteria:
    return services.acceptance_criteria.get(ac_id)


@router.put("/{ac_id}")
def update_acceptance_criteria(
    ac_id: str,
    body: AcceptanceCriteriaUpdate,
    services: ServicesDep,
    _principal: UserPrincipal,
) -> AcceptanceCriteria:
    return services.acceptance_criteria.update(ac_id, body)


@router.delete("/{ac_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_acceptance_criteria(
    ac_id: str,
    services: ServicesDep,
    principal: UserPrincipal,
    force: bool = False,  # noqa: FBT001, FBT002
) -> Response:
    _ = services.acceptance_criteria.delete(
        ac_id, force=force, deleted_by=principal.user_id
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{ac_id}/validate-deletion")
def validate_acceptance_criteria_deletion(
    ac_id: str, services: ServicesDep, _principal: AnyPrincipal
) -> DependencyInfo:
    return services.acceptance_criteria.validate_deletion(ac_id)
