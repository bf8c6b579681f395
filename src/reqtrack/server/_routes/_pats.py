from typing import Annotated, Any

from fastapi import APIRouter, Query, Response, status

from reqtrack.auth import CreatedPAT, PATCreate, PersonalAccessToken
from reqtrack.planning import MAX_PAGE_LIMIT
from reqtrack.server._deps import AnyPrincipal, ServicesDep, parse_uuid

router = APIRouter(prefix="/pats", tags=["personal-access-tokens"])


@router.get("")
def list_pats(
    services: ServicesDep,
    principal: AnyPrincipal,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_LIMIT)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> dict[str, Any]:
    return services.pats.list(principal.user_id, limit=limit, offset=offset).to_dict()


@router.post("", status_code=status.HTTP_201_CREATED)
def create_pat(body: PATCreate, services: ServicesDep, principal: AnyPrincipal) -> CreatedPAT:
    return services.pats.create(principal.user_id, body)


@router.get("/{pat_id}")
def get_pat(pat_id: str, services: ServicesDep, principal: AnyPrincipal) -> PersonalAccessToken:
    return services.pats.get(parse_uuid(pat_id), principal.user_id)


@router.delete("/{pat_id}", status_code=status.HTTP_204_NO_CONTENT)
def revoke_pat(pat_id: str, services: ServicesDep, principal: AnyPrincipal) -> Response:
    services.pats.revoke(parse_uuid(pat_id), principal.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
