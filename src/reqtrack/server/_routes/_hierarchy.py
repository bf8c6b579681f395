from typing import Any

from fastapi import APIRouter

from reqtrack.planning import render_hierarchy
from reqtrack.server._deps import AnyPrincipal, ServicesDep

router = APIRouter(prefix="/hierarchy", tags=["hierarchy"])


@router.get("/epics/{epic_id}")
def get_epic_hierarchy(
    epic_id: str,
    services: ServicesDep,
    _principal: AnyPrincipal,
    render: bool = False,  # noqa: FBT001, FBT002
) -> dict[str, Any]:
    hierarchy = services.hierarchy.get_epic_hierarchy(epic_id)
    body = hierarchy.model_dump(mode="json")
    if render:
        body["rendered"] = render_hierarchy(hierarchy)
    return body
