from typing import Annotated, Any

from fastapi import APIRouter, Query, Response, status

from reqtrack.enums import SortOrder
from reqtrack.planning import (
    MAX_PAGE_LIMIT,
    DependencyInfo,
    Epic,
    EpicCreate,
    EpicUpdate,
    Page,
    UserStory,
    UserStoryCreate,
)
from reqtrack.server._deps import AnyPrincipal, ServicesDep, UserPrincipal, parse_uuid
from reqtrack.server._schemas import AssignRequest, StatusChangeRequest

router = APIRouter(prefix="/epics", tags=["epics"])


@router.get("")
def list_epics(  # noqa: PLR0913
    services: ServicesDep,
    _principal: AnyPrincipal,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    priority: int | None = None,
    creator_id: str | None = None,
    assignee_id: str | None = None,
    order_by: str = "created_at",
    order_direction: SortOrder = SortOrder.DESC,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_LIMIT)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> dict[str, Any]:
    page = services.epics.list(
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
def create_epic(body: EpicCreate, services: ServicesDep, principal: UserPrincipal) -> Epic:
    return services.epics.create(body, creator_id=principal.user_id)


@router.get("/{epic_id}")
def get_epic(epic_id: str, services: ServicesDep, _principal: AnyPrincipal) -> Epic:
    return services.epics.get(epic_id)


@router.put("/{epic_id}")
def update_epic(
    epic_id: str, body: EpicUpdate, services: ServicesDep, _principal: UserPrincipal
) -> Epic:
    return services.epics.update(epic_id, body)


@router.delete("/{epic_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_epic(
    epic_id: str,
    services: ServicesDep,
    principal: UserPrincipal,
    force: bool = False,  # noqa: FBT001, FBT002
) -> Response:
    _ = services.epics.delete(epic_id, force=force, deleted_by=principal.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{epic_id}/status")
def change_epic_status(
    epic_id: str,
    body: StatusChangeRequest,
    services: ServicesDep,
    _principal: UserPrincipal,
) -> Epic:
    return services.epics.change_status(epic_id, body.status)


@router.patch("/{epic_id}/assign")
def assign_epic(
    epic_id: str, body: AssignRequest, services: ServicesDep, _principal: UserPrincipal
) -> Epic:
    return services.epics.assign(epic_id, body.assignee_id)


@router.get("/{epic_id}/validate-deletion")
def validate_epic_deletion(
    epic_id: str, services: ServicesDep, _principal: AnyPrincipal
) -> DependencyInfo:
    return services.epics.validate_deletion(epic_id)


@router.get("/{epic_id}/user-stories")
def list_epic_user_stories(
    epic_id: str, services: ServicesDep, _principal: AnyPrincipal
) -> dict[str, Any]:
    return Page.whole(services.user_stories.list_by_epic(epic_id)).to_dict()


@router.post("/{epic_id}/user-stories", status_code=status.HTTP_201_CREATED)
def create_epic_user_story(
    epic_id: str,
    body: UserStoryCreate,
    services: ServicesDep,
    principal: UserPrincipal,
) -> UserStory:
    return services.user_stories.create(body, creator_id=principal.user_id, epic=epic_id)
