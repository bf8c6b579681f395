from typing import Annotated, Any

from fastapi import APIRouter, Query, Response, status

from reqtrack.enums import SortOrder
from reqtrack.planning import (
    MAX_PAGE_LIMIT,
    DependencyInfo,
    Page,
    RelationshipCreate,
    Requirement,
    RequirementRelationship,
    RequirementUpdate,
)
from reqtrack.server._deps import AnyPrincipal, ServicesDep, UserPrincipal, parse_uuid
from reqtrack.server._schemas import AssignRequest, StatusChangeRequest

router = APIRouter(prefix="/requirements", tags=["requirements"])
relationships_router = APIRouter(
    prefix="/requirement-relationships", tags=["requirements"]
)


@router.get("")
def list_requirements(  # noqa: PLR0913
    services: ServicesDep,
    _principal: AnyPrincipal,
    user_story_id: str | None = None,
    acceptance_criteria_id: str | None = None,
    type_id: str | None = None,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    priority: int | None = None,
    creator_id: str | None = None,
    assignee_id: str | None = None,
    order_by: str = "created_at",
    order_direction: SortOrder = SortOrder.DESC,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_LIMIT)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> dict[str, Any]:
    page = services.requirements.list(
        user_story=user_story_id,
        acceptance_criteria_id=(
            parse_uuid(acceptance_criteria_id, field="acceptance_criteria_id")
            if acceptance_criteria_id
            else None
        ),
        type_id=parse_uuid(type_id, field="type_id") if type_id else None,
        status=status_filter,
        priority=priority,
        creator_id=parse_uuid(creator_id, field="creator_id") if creator_id else None,
        assignee_id=parse_uuid(assignee_id, field="assignee_id") if assignee_id else None,
        order_by=order_by,
        order_direction=order_direction,
        limit=limit,
        offset=offset,
    )
    return page.to_dict()


@router.get("/search")
def search_requirements(
    services: ServicesDep,
    _principal: AnyPrincipal,
    q: str = "",
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_LIMIT)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> dict[str, Any]:
    return services.requirements.search_requirements(
        q, limit=limit, offset=offset
    ).to_dict()


@router.post("/relationships", status_code=status.HTTP_201_CREATED)
def create_relationship(
    body: RelationshipCreate, services: ServicesDep, principal: UserPrincipal
) -> RequirementRelationship:
    return services.requirements.create_relationship(body, created_by=principal.user_id)


@router.get("/{requirement_id}")
def get_requirement(
    requirement_id: str, services: ServicesDep, _principal: AnyPrincipal
) -> Requirement:
    return services.requirements.get(requirement_id)


@router.put("/{requirement_id}")
def update_requirement(
    requirement_id: str,
    body: RequirementUpdate,
    services: ServicesDep,
    _principal: UserPrincipal,
) -> Requirement:
    return services.requirements.update(requirement_id, body)


@router.delete("/{requirement_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_requirement(
    requirement_id: str,
    services: ServicesDep,
    principal: UserPrincipal,
    force: bool = False,  # noqa: FBT001, FBT002
) -> Response:
    _ = services.requirements.delete(
        requirement_id, force=force, deleted_by=principal.user_id
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{requirement_id}/status")
def change_requirement_status(
    requirement_id: str,
    body: StatusChangeRequest,
    services: ServicesDep,
    _principal: UserPrincipal,
) -> Requirement:
    return services.requirements.change_status(requirement_id, body.status)


@router.patch("/{requirement_id}/assign")
def assign_requirement(
    requirement_id: str,
    body: AssignRequest,
    services: ServicesDep,
    _principal: UserPrincipal,
) -> Requirement:
    return services.requirements.assign(requirement_id, body.assignee_id)


@router.get("/{requirement_id}/validate-deletion")
def validate_requirement_deletion(
    requirement_id: str, services: ServicesDep, _principal: AnyPrincipal
) -> DependencyInfo:
    return services.requirements.validate_deletion(requirement_id)


@router.get("/{requirement_id}/relationships")
def list_requirement_relationships(
    requirement_id: str, services: ServicesDep, _principal: AnyPrincipal
) -> dict[str, Any]:
    found = services.requirements.list_relationships(requirement_id)
    return Page.whole(found).to_dict()


@relationships_router.get("/{relationship_id}")
def get_relationship(
    relationship_id: str, services: ServicesDep, _principal: AnyPrincipal
) -> RequirementRelationship:
    return services.requirements.get_relationship(parse_uuid(relationship_id))


@relationships_router.delete("/{relationship_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_relationship(
    relationship_id: str, services: ServicesDep, _principal: UserPrincipal
) -> Response:
    services.requirements.delete_relationship(parse_uuid(relationship_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
