from typing import Any

from fastapi import APIRouter, Response, status

from reqtrack.enums import EntityType
from reqtrack.planning import (
    Page,
    RelationshipType,
    RequirementType,
    Status,
    StatusCreate,
    StatusModel,
    StatusModelCreate,
    StatusModelDetail,
    StatusModelUpdate,
    StatusTransition,
    StatusTransitionCreate,
    StatusTransitionUpdate,
    StatusUpdate,
    TypeCreate,
    TypeUpdate,
)
from reqtrack.server._deps import AdminPrincipal, AnyPrincipal, ServicesDep, parse_uuid

router = APIRouter(prefix="/config", tags=["config"])


def _no_content() -> Response:
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# -----------------------------------------------------------------------------
# Requirement types
# -----------------------------------------------------------------------------


@router.get("/requirement-types")
def list_requirement_types(
    services: ServicesDep, _principal: AnyPrincipal
) -> dict[str, Any]:
    return Page.whole(services.types.list_requirement_types()).to_dict()


@router.post("/requirement-types", status_code=status.HTTP_201_CREATED)
def create_requirement_type(
    body: TypeCreate, services: ServicesDep, _principal: AdminPrincipal
) -> RequirementType:
    return services.types.create_requirement_type(body)


@router.get("/requirement-types/{type_id}")
def get_requirement_type(
    type_id: str, services: ServicesDep, _principal: AnyPrincipal
) -> RequirementType:
    return services.types.get_requirement_type(parse_uuid(type_id))


@router.put("/requirement-types/{type_id}")
def update_requirement_type(
    type_id: str, body: TypeUpdate, services: ServicesDep, _principal: AdminPrincipal
) -> RequirementType:
    return services.types.update_requirement_type(parse_uuid(type_id), body)


@router.delete("/requirement-types/{type_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_requirement_type(
    type_id: str, services: ServicesDep, _principal: AdminPrincipal
) -> Response:
    services.types.delete_requirement_type(parse_uuid(type_id))
    return _no_content()


# -----------------------------------------------------------------------------
# Relationship types
# -----------------------------------------------------------------------------


@router.get("/relationship-types")
def list_relationship_types(
    services: ServicesDep, _principal: AnyPrincipal
) -> dict[str, Any]:
    return Page.whole(services.types.list_relationship_types()).to_dict()


@router.post("/relationship-types", status_code=status.HTTP_201_CREATED)
def create_relationship_type(
    body: TypeCreate, services: ServicesDep, _principal: AdminPrincipal
) -> RelationshipType:
    return services.types.create_relationship_type(body)


@router.get("/relationship-types/{type_id}")
def get_relationship_type(
    type_id: str, services: ServicesDep, _principal: AnyPrincipal
) -> RelationshipType:
    return services.types.get_relationship_type(parse_uuid(type_id))


@router.put("/relationship-types/{type_id}")
def update_relationship_type(
    type_id: str, body: TypeUpdate, services: ServicesDep, _principal: AdminPrincipal
) -> RelationshipType:
    return services.types.update_relationship_type(parse_uuid(type_id), body)


@router.delete("/relationship-types/{type_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_relationship_type(
    type_id: str, services: ServicesDep, _principal: AdminPrincipal
) -> Response:
    services.types.delete_relationship_type(parse_uuid(type_id))
    return _no_content()


# -----------------------------------------------------------------------------
# Status models
# -----------------------------------------------------------------------------


@router.get("/status-models")
def list_status_models(
    services: ServicesDep,
    _principal: AnyPrincipal,
    entity_type: EntityType | None = None,
) -> dict[str, Any]:
    return Page.whole(services.types.list_status_models(entity_type)).to_dict()


@router.post("/status-models", status_code=status.HTTP_201_CREATED)
def create_status_model(
    body: StatusModelCreate, services: ServicesDep, _principal: AdminPrincipal
) -> StatusModel:
    return services.types.create_status_model(body)


@router.get("/status-models/default/{entity_type}")
def get_default_status_model(
    entity_type: EntityType, services: ServicesDep, _principal: AnyPrincipal
) -> StatusModelDetail:
    return services.types.get_default_status_model(entity_type)


@router.get("/status-models/{model_id}")
def get_status_model(
    model_id: str, services: ServicesDep, _principal: AnyPrincipal
) -> StatusModelDetail:
    return services.types.get_status_model(parse_uuid(model_id))


@router.put("/status-models/{model_id}")
def update_status_model(
    model_id: str,
    body: StatusModelUpdate,
    services: ServicesDep,
    _principal: AdminPrincipal,
) -> StatusModel:
    return services.types.update_status_model(parse_uuid(model_id), body)


@router.delete("/status-models/{model_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_status_model(
    model_id: str, services: ServicesDep, _principal: AdminPrincipal
) -> Response:
    services.types.delete_status_model(parse_uuid(model_id))
    return _no_content()


@router.get("/status-models/{model_id}/statuses")
def list_statuses(
    model_id: str, services: ServicesDep, _principal: AnyPrincipal
) -> dict[str, Any]:
    return Page.whole(services.types.list_statuses(parse_uuid(model_id))).to_dict()


@router.post("/status-models/{model_id}/statuses", status_code=status.HTTP_201_CREATED)
def create_status(
    model_id: str, body: StatusCreate, services: ServicesDep, _principal: AdminPrincipal
) -> Status:
    return services.types.create_status(parse_uuid(model_id), body)


@router.get("/status-models/{model_id}/transitions")
def list_transitions(
    model_id: str, services: ServicesDep, _principal: AnyPrincipal
) -> dict[str, Any]:
    return Page.whole(services.types.list_transitions(parse_uuid(model_id))).to_dict()


@router.post(
    "/status-models/{model_id}/transitions", status_code=status.HTTP_201_CREATED
)
def create_transition(
    model_id: str,
    body: StatusTransitionCreate,
    services: ServicesDep,
    _principal: AdminPrincipal,
) -> StatusTransition:
    return services.types.create_transition(parse_uuid(model_id), body)


# -----------------------------------------------------------------------------
# Statuses and transitions
# -----------------------------------------------------------------------------


@router.get("/statuses/{status_id}")
def get_status(status_id: str, services: ServicesDep, _principal: AnyPrincipal) -> Status:
    return services.types.get_status(parse_uuid(status_id))


@router.put("/statuses/{status_id}")
def update_status(
    status_id: str, body: StatusUpdate, services: ServicesDep, _principal: AdminPrincipal
) -> Status:
    return services.types.update_status(parse_uuid(status_id), body)


@router.delete("/statuses/{status_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_status(
    status_id: str, services: ServicesDep, _principal: AdminPrincipal
) -> Response:
    services.types.delete_status(parse_uuid(status_id))
    return _no_content()


@router.get("/status-transitions/{transition_id}")
def get_transition(
    transition_id: str, services: ServicesDep, _principal: AnyPrincipal
) -> StatusTransition:
    return services.types.get_transition(parse_uuid(transition_id))


@router.put("/status-transitions/{transition_id}")
def update_transition(
    transition_id: str,
    body: StatusTransitionUpdate,
    services: ServicesDep,
    _principal: AdminPrincipal,
) -> StatusTransition:
    return services.types.update_transition(parse_uuid(transition_id), body)


@router.delete(
    "/status-transitions/{transition_id}", status_code=status.HTTP_204_NO_CONTENT
)
def delete_transition(
    transition_id: str, services: ServicesDep, _principal: AdminPrincipal
) -> Response:
    services.types.delete_transition(parse_uuid(transition_id))
    return _no_content()
