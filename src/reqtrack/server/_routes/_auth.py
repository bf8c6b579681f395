from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Response, status

from reqtrack.auth import LoginResult, Principal, User, UserCreate, UserUpdate
from reqtrack.enums import Role
from reqtrack.planning import MAX_PAGE_LIMIT
from reqtrack.server._deps import AdminPrincipal, ServicesDep, get_principal, parse_uuid
from reqtrack.server._schemas import (
    ChangePasswordRequest,
    LoginRequest,
    LogoutRequest,
    MessageResponse,
    RefreshRequest,
)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login")
def login(body: LoginRequest, services: ServicesDep) -> LoginResult:
    return services.auth.login(body.username, body.password)


@router.post("/refresh")
def refresh(body: RefreshRequest, services: ServicesDep) -> LoginResult:
    return services.auth.refresh(body.refresh_token)


@router.post("/logout")
def logout(body: LogoutRequest, services: ServicesDep) -> MessageResponse:
    services.auth.logout(body.refresh_token)
    return MessageResponse(message="Logged out")


@router.post("/change-password")
def change_password(
    body: ChangePasswordRequest,
    services: ServicesDep,
    principal: Annotated[Principal, Depends(get_principal)],
) -> MessageResponse:
    services.auth.change_password(
        principal.user_id, body.current_password, body.new_password
    )
    return MessageResponse(message="Password changed")


@router.get("/profile")
def profile(principal: Annotated[Principal, Depends(get_principal)]) -> dict[str, Any]:
    return {
        **principal.user.model_dump(mode="json"),
        "auth_method": principal.method.value,
    }


# -----------------------------------------------------------------------------
# User management
# -----------------------------------------------------------------------------


@router.get("/users")
def list_users(
    services: ServicesDep,
    _principal: AdminPrincipal,
    role: Role | None = None,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_LIMIT)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> dict[str, Any]:
    return services.users.list(role=role, limit=limit, offset=offset).to_dict()


@router.post("/users", status_code=status.HTTP_201_CREATED)
def create_user(body: UserCreate, services: ServicesDep, _principal: AdminPrincipal) -> User:
    return services.users.create(body)


@router.get("/users/{user_id}")
def get_user(user_id: str, services: ServicesDep, _principal: AdminPrincipal) -> User:
    return services.users.get(parse_uuid(user_id))


@router.put("/users/{user_id}")
def update_user(
    user_id: str, body: UserUpdate, services: ServicesDep, _principal: AdminPrincipal
) -> User:
    return services.users.update(parse_uuid(user_id), body)


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(user_id: str, services: ServicesDep, _principal: AdminPrincipal) -> Response:
    services.users.delete(parse_uuid(user_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
