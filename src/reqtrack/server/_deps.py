"""FastAPI dependencies: the service container and the request principal."""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated, cast
from uuid import UUID

from fastapi import Depends, Header, Request

from reqtrack.auth import Principal, require_role
from reqtrack.enums import EntityType, Role
from reqtrack.exceptions import NotFoundError, ValidationError
from reqtrack.services import Services

if TYPE_CHECKING:
    from collections.abc import Callable

__all__ = [
    "AdminPrincipal",
    "AnyPrincipal",
    "ServicesDep",
    "UserPrincipal",
    "entity_type_from_segment",
    "get_principal",
    "get_services",
    "parse_uuid",
    "require",
]


def get_services(request: Request) -> Services:
    return cast("Services", request.app.state.services)


ServicesDep = Annotated[Services, Depends(get_services)]


def get_principal(
    request: Request,
    services: ServicesDep,
    authorization: Annotated[str | None, Header()] = None,
) -> Principal:
    """Authenticate the request and record how it authenticated."""
    principal = services.auth.authenticate(authorization)
    request.state.auth_method = principal.method
    request.state.user_id = principal.user_id
    return principal


def require(role: Role) -> Callable[[Principal], Principal]:
    """Build a dependency that admits principals of at least ``role``."""

    def dependency(
        principal: Annotated[Principal, Depends(get_principal)],
    ) -> Principal:
        require_role(principal, role)
        return principal

    return dependency


AnyPrincipal = Annotated[Principal, Depends(require(Role.COMMENTER))]
UserPrincipal = Annotated[Principal, Depends(require(Role.USER))]
AdminPrincipal = Annotated[Principal, Depends(require(Role.ADMINISTRATOR))]


def entity_type_from_segment(segment: str) -> EntityType:
    """Resolve ``epics``, ``user-stories`` and the like from a URL segment.

    Raises:
        NotFoundError: If the segment names no entity type.
    """
    try:
        return EntityType.from_url_segment(segment)
    except ValueError:
        msg = f"Unknown entity type: {segment}"
        raise NotFoundError(msg, entity_type="entity_type", identifier=segment) from None


def parse_uuid(value: str, *, field: str = "id") -> UUID:
    """Parse a UUID, raising the domain validation error on bad input."""
    try:
        return UUID(value)
    except ValueError:
        msg = f"Invalid {field}: expected a UUID"
        raise ValidationError(msg, field=field) from None
