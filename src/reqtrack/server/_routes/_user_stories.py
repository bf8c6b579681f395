from typing import Annotated, Any

from fastapi import APIRouter, Query, Response, status

from reqtrack.enums import SortOrder
from reqtrack.planning import (
    MAX_PAGE_LIMIT,
    AcceptanceCriteria,
    AcceptanceCriteriaCreate,
    DependencyInfo,
    Page,
    Requirement,
    RequirementCreate,
    UserStory,
    UserStoryCreate,
    UserStoryUpdate,
)
from reqtrack.server._deps import AnyPrincipal, ServicesDep, UserPrincipal, parse_uuid
from reqtrack.server._schemas import AssignRequest, StatusChangeRequest

router = APIRouter(prefix="/user-stories", tags=["user-stories"])


@router.get("")
def list_user_stories(  # noqa: PLR0913
    services: ServicesDep,
    _principal: AnyPrincipal,
    epic_id: str | None = None,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    priority: int | None = None,
    creator_id: str | None = None,
    assignee_id: str | None = None,
    order_by: str = "created_at",
    order_direction: SortOrder = SortOrder.DESC,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_LIMIT)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> dict[str, Any]:
    page = services.user_stories.list(
        epic=epic_id,
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


@router.post("", status_code=status.HTTP_201_CREATED)
def create_user_story(
    body: UserStoryCreate, services: ServicesDep, principal: UserPrincipal
) -> UserStory:
    return services.user_stories.create(body, creator_id=principal.user_id)


@router.get("/{story_id}")
def get_user_story(story_id: str, services: ServicesDep, _principal: AnyPrincipal) -> UserStory:
    return services.user_stories.get(story_id)


@router.put("/{story_id}")
def update_user_story(
    story_id: str, body: UserStoryUpdate, services: ServicesDep, _principal: UserPrincipal
) -> UserStory:
    return services.user_stories.update(story_id, body)


@router.delete("/{story_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user_story(
    story_id: str,
    services: ServicesDep,
    principal: UserPrincipal,
    force: bool = False,  # noqa: FBT001, FBT002
) -> Response:
    _ = services.user_stories.delete(story_id, force=force, deleted_by=principal.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{story_id}/status")
def change_user_story_status(
    story_id: str,
    body: StatusChangeRequest,
    services: ServicesDep,
    _principal: UserPrincipal,
) -> UserStory:
    return services.user_stories.change_status(story_id, body.status)


@router.patch("/{story_id}/assign")
def assign_user_story(
    story_id: str, body: AssignRequest, services: ServicesDep, _principal: UserPrincipal
) -> UserStory:
    return services.user_stories.assign(story_id, body.assignee_id)


@router.get("/{story_id}/validate-deletion")
def validate_user_story_deletion(
    story_id: str, services: ServicesDep, _principal: AnyPrincipal
) -> DependencyInfo:
    return services.user_stories.validate_deletion(story_id)


@router.get("/{story_id}/acceptance-criteria")
def list_story_acceptance_criteria(
    story_id: str, services: ServicesDep, _principal: AnyPrincipal
) -> dict[str, Any]:
    found = services.acceptance_criteria.list_by_user_story(story_id)
    return Page.whole(found).to_dict()


@router.post("/{story_id}/acceptance-criteria", status_code=status.HTTP_201_CREATED)
def create_story_acceptance_criteria(
    story_id: str,
    body: AcceptanceCriteriaCreate,
    services: ServicesDep,
    principal: UserPrincipal,
) -> AcceptanceCriteria:
    return services.acceptance_criteria.create(
        body, author_id=principal.user_id, user_story=story_id
    )


@router.get("/{story_id}/requirements")
def list_story_requirements(
    story_id: str, services: ServicesDep, _principal: AnyPrincipal
) -> dict[str, Any]:
    return Page.whole(services.requirements.list_by_user_story(story_id)).to_dict()


@router.post("/{story_id}/requirements", status_code=status.HTTP_201_CREATED)
def create_story_requirement(
    story_id: str,
    body: RequirementCreate,
    services: ServicesDep,
    principal: UserPrincipal,
) -> Requirement:
    return services.requirements.create(
        body, creator_id=principal.user_id, user_story=story_id
    )
