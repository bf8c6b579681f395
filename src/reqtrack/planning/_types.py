# pyright: reportAny=false
"""Requirement types, relationship types and status workflows.

Type names are globally unique and a type cannot be deleted while anything
uses it. Status models belong to one entity type; at most one of them is the
default and each has at most one initial status.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Final
from uuid import UUID, uuid4

from reqtrack.enums import EntityType
from reqtrack.exceptions import InUseError, NotFoundError, ValidationError
from reqtrack.planning._models import (
    RelationshipType,
    RequirementType,
    Status,
    StatusModel,
    StatusModelDetail,
    StatusTransition,
)
from reqtrack.utils import format_timestamp, utc_now

if TYPE_CHECKING:
    from pydantic import BaseModel
    from structlog.typing import FilteringBoundLogger

    from reqtrack.planning._models import (
        StatusCreate,
        StatusModelCreate,
        StatusModelUpdate,
        StatusTransitionCreate,
        StatusTransitionUpdate,
        StatusUpdate,
        TypeCreate,
        TypeUpdate,
    )
    from reqtrack.store import Store, Transaction
    from reqtrack.utils.database import SQLValue

__all__ = ["ConfigService"]

# table -> (model, label, column in the referencing table, referencing table)
_TYPE_TABLES: Final = {
    "requirement_types": (RequirementType, "Requirement type", "type_id", "requirements"),
    "relationship_types": (
        RelationshipType,
        "Relationship type",
        "relationship_type_id",
        "requirement_relationships",
    ),
}


def _required_name(name: str | None) -> str:
    value = (name or "").strip()
    if not value:
        msg = "Name is required"
        raise ValidationError(msg, field="name")
    return value


def _not_found(label: str, identifier: UUID) -> NotFoundError:
    return NotFoundError(
        f"{label} not found",
        entity_type=label.lower().replace(" ", "_"),
        identifier=str(identifier),
    )


class ConfigService:
    """CRUD for the lookup and workflow configuration of the planning domain."""

    __slots__: Final = ("_logger", "_store")

    _store: Store
    _logger: FilteringBoundLogger | None

    def __init__(
        self, store: Store, *, logger: FilteringBoundLogger | None = None
    ) -> None:
        self._store = store
        self._logger = logger

    def _log(self, event: str, **fields: object) -> None:
        if self._logger is not None:
            self._logger.info(event, **fields)

    # =========================================================================
    # Requirement and relationship types
    # =========================================================================

    def _list_types[T: BaseModel](self, table: str, model: type[T]) -> list[T]:
        with self._store.transaction() as tx:
            return tx.fetch_all(model, f"SELECT * FROM {table} ORDER BY name")  # noqa: S608

    def _get_type[T: BaseModel](
        self, tx: Transaction, table: str, model: type[T], type_id: UUID
    ) -> T:
        label = _TYPE_TABLES[table][1]
        found = tx.fetch_one(model, f"SELECT * FROM {table} WHERE id = ?", (str(type_id),))  # noqa: S608
        if found is None:
            raise _not_found(label, type_id)
        return found

    def _create_type[T: BaseModel](self, table: str, model: type[T], data: TypeCreate) -> T:
        now = utc_now()
        row = model.model_validate({
            "id": uuid4(),
            "name": _required_name(data.name),
            "description": data.description,
            "created_at": now,
            "updated_at": now,
        })
        with self._store.transaction() as tx:
            tx.insert(table, row)
        self._log("type_created", table=table, name=data.name)
        return row

    def _update_type[T: BaseModel](
        self, table: str, model: type[T], type_id: UUID, data: TypeUpdate
    ) -> T:
        changes = data.model_dump(exclude_unset=True)
        values: dict[str, SQLValue] = {}
        if "name" in changes:
            values["name"] = _required_name(data.name)
        if "description" in changes:
            values["description"] = data.description
        with self._store.transaction() as tx:
            _ = self._get_type(tx, table, model, type_id)
            values["updated_at"] = format_timestamp(utc_now())
            _ = tx.update(table, values, key_value=str(type_id))
            return self._get_type(tx, table, model, type_id)

    def _delete_type(self, table: str, type_id: UUID) -> None:
        model, label, column, referencing = _TYPE_TABLES[table]
        with self._store.transaction() as tx:
            found = self._get_type(tx, table, model, type_id)
            in_use = tx.count(
                f"SELECT count(*) FROM {referencing} WHERE {column} = ?",  # noqa: S608
                (str(type_id),),
            )
            if in_use:
                msg = f"{label} {found.name!r} is in use by {in_use} record(s)"
                raise InUseError(msg)
            _ = tx.delete(table, str(type_id))
        self._log("type_deleted", table=table, type_id=str(type_id))

    def list_requirement_types(self) -> list[RequirementType]:
        return self._list_types("requirement_types", RequirementType)

    def get_requirement_type(self, type_id: UUID) -> RequirementType:
        with self._store.transaction() as tx:
            return self._get_type(tx, "requirement_types", RequirementType, type_id)

    def create_requirement_type(self, data: TypeCreate) -> RequirementType:
        """Create a requirement type.

        Raises:
            ValidationError: If the name is empty.
            DuplicateError: If the name is taken.
        """
        return self._create_type("requirement_types", RequirementType, data)

    def update_requirement_type(self, type_id: UUID, data: TypeUpdate) -> RequirementType:
        return self._update_type("requirement_types", RequirementType, type_id, data)

    def delete_requirement_type(self, type_id: UUID) -> None:
        """Delete a requirement type.

        Raises:
            InUseError: If any requirement has this type.
        """
        self._delete_type("requirement_types", type_id)

    def list_relationship_types(self) -> list[RelationshipType]:
        return self._list_types("relationship_types", RelationshipType)

    def get_relationship_type(self, type_id: UUID) -> RelationshipType:
        with self._store.transaction() as tx:
            return self._get_type(tx, "relationship_types", RelationshipType, type_id)

    def get_relationship_type_by_name(self, name: str) -> RelationshipType:
        with self._store.transaction() as tx:
            found = tx.fetch_one(
                RelationshipType,
                "SELECT * FROM relationship_types WHERE name = ? COLLATE NOCASE",
                (name.strip(),),
            )
        if found is None:
            msg = f"Relationship type {name!r} not found"
            raise NotFoundError(msg, entity_type="relationship_type", identifier=name)
        return found

    def create_relationship_type(self, data: TypeCreate) -> RelationshipType:
        return self._create_type("relationship_types", RelationshipType, data)

    def update_relationship_type(
        self, type_id: UUID, data: TypeUpdate
    ) -> RelationshipType:
        return self._update_type("relationship_types", RelationshipType, type_id, data)

    def delete_relationship_type(self, type_id: UUID) -> None:
        self._delete_type("relationship_types", type_id)

    # =========================================================================
    # Status models
    # =========================================================================

    @staticmethod
    def _model(tx: Transaction, model_id: UUID) -> StatusModel:
        found = tx.fetch_one(
            StatusModel, "SELECT * FROM status_models WHERE id = ?", (str(model_id),)
        )
        if found is None:
            raise _not_found("Status model", model_id)
        return found

    @staticmethod
    def _clear_default(tx: Transaction, entity_type: EntityType) -> None:
        _ = tx.execute(
            "UPDATE status_models SET is_default = 0 WHERE entity_type = ?",
            (entity_type.value,),
        )

    def list_status_models(
        self, entity_type: EntityType | None = None
    ) -> list[StatusModel]:
        with self._store.transaction() as tx:
            if entity_type is None:
                return tx.fetch_all(
                    StatusModel, "SELECT * FROM status_models ORDER BY entity_type, name"
                )
            return tx.fetch_all(
                StatusModel,
                "SELECT * FROM status_models WHERE entity_type = ? ORDER BY name",
                (entity_type.value,),
            )

    def get_status_model(self, model_id: UUID) -> StatusModelDetail:
        """Return a status model with its statuses and transitions."""
        with self._store.transaction() as tx:
            model = self._model(tx, model_id)
            return StatusModelDetail(
                status_model=model,
                statuses=tx.fetch_all(
                    Status,
                    'SELECT * FROM statuses WHERE status_model_id = ? ORDER BY "order", name',
                    (str(model.id),),
                ),
                transitions=tx.fetch_all(
                    StatusTransition,
                    "SELECT * FROM status_transitions WHERE status_model_id = ? "
                    "ORDER BY created_at, id",
                    (str(model.id),),
                ),
            )

    def get_default_status_model(self, entity_type: EntityType) -> StatusModelDetail:
        """Return the default status model of ``entity_type``.

        Raises:
            NotFoundError: If the entity type has no default model.
        """
        with self._store.transaction() as tx:
            model_id = tx.fetch_value(
                "SELECT id FROM status_models WHERE entity_type = ? AND is_default = 1 "
                "ORDER BY created_at LIMIT 1",
                (entity_type.value,),
            )
            if model_id is None:
                msg = f"No default status model for {entity_type.value}"
                raise NotFoundError(
                    msg, entity_type="status_model", identifier=entity_type.value
                )
            return self.get_status_model(UUID(str(model_id)))

    def create_status_model(self, data: StatusModelCreate) -> StatusModel:
        now = utc_now()
        model = StatusModel(
            id=uuid4(),
            entity_type=data.entity_type,
            name=_required_name(data.name),
            description=data.description,
            is_default=data.is_default,
            created_at=now,
            updated_at=now,
        )
        with self._store.transaction() as tx:
            if data.is_default:
                self._clear_default(tx, data.entity_type)
            tx.insert("status_models", model)
        self._log(
            "status_model_created",
            entity_type=data.entity_type.value,
            name=model.name,
            is_default=model.is_default,
        )
        return model

    def update_status_model(self, model_id: UUID, data: StatusModelUpdate) -> StatusModel:
        changes = data.model_dump(exclude_unset=True)
        values: dict[str, SQLValue] = {}
        if "name" in changes:
            values["name"] = _required_name(data.name)
        if "description" in changes:
            values["description"] = data.description
        with self._store.transaction() as tx:
            model = self._model(tx, model_id)
            if data.is_default is not None:
                if data.is_default:
                    self._clear_default(tx, model.entity_type)
                values["is_default"] = int(data.is_default)
            values["updated_at"] = format_timestamp(utc_now())
            _ = tx.update("status_models", values, key_value=str(model_id))
            return self._model(tx, model_id)

    def delete_status_model(self, model_id: UUID) -> None:
        """Delete a status model with its statuses and transitions."""
        with self._store.transaction() as tx:
            _ = self._model(tx, model_id)
            _ = tx.delete("status_models", str(model_id))
        self._log("status_model_deleted", status_model_id=str(model_id))

    # =========================================================================
    # Statuses
    # =========================================================================

    @staticmethod
    def _status(tx: Transaction, status_id: UUID) -> Status:
        found = tx.fetch_one(Status, "SELECT * FROM statuses WHERE id = ?", (str(status_id),))
        if found is None:
            raise _not_found("Status", status_id)
        return found

    @staticmethod
    def _clear_initial(tx: Transaction, model_id: UUID) -> None:
        _ = tx.execute(
            "UPDATE statuses SET is_initial = 0 WHERE status_model_id = ?",
            (str(model_id),),
        )

    def list_statuses(self, model_id: UUID) -> list[Status]:
        return self.get_status_model(model_id).statuses

    def get_status(self, status_id: UUID) -> Status:
        with self._store.transaction() as tx:
            return self._status(tx, status_id)

    def create_status(self, model_id: UUID, data: StatusCreate) -> Status:
        """Add a status to a model.

        Marking it initial clears the flag on the model's other statuses.
        """
        now = utc_now()
        status = Status(
            id=uuid4(),
            status_model_id=model_id,
            name=_required_name(data.name),
            description=data.description,
            color=data.color,
            is_initial=data.is_initial,
            is_final=data.is_final,
            order=data.order,
            created_at=now,
            updated_at=now,
        )
        with self._store.transaction() as tx:
            _ = self._model(tx, model_id)
            if data.is_initial:
                self._clear_initial(tx, model_id)
            tx.insert("statuses", status)
        return status

    def update_status(self, status_id: UUID, data: StatusUpdate) -> Status:
        changes = data.model_dump(exclude_unset=True)
        values: dict[str, SQLValue] = {}
        if "name" in changes:
            values["name"] = _required_name(data.name)
        for column in ("description", "color"):
            if column in changes:
                values[column] = changes[column]
        if data.is_final is not None:
            values["is_final"] = int(data.is_final)
        if data.order is not None:
            values["order"] = data.order
        with self._store.transaction() as tx:
            status = self._status(tx, status_id)
            if data.is_initial is not None:
                if data.is_initial:
                    self._clear_initial(tx, status.status_model_id)
                values["is_initial"] = int(data.is_initial)
            values["updated_at"] = format_timestamp(utc_now())
            _ = tx.update("statuses", values, key_value=str(status_id))
            return self._status(tx, status_id)

    def delete_status(self, status_id: UUID) -> None:
        """Delete a status and every transition touching it."""
        with self._store.transaction() as tx:
            _ = self._status(tx, status_id)
            _ = tx.delete("statuses", str(status_id))

    # =========================================================================
    # Transitions
    # =========================================================================

    @staticmethod
    def _transition(tx: Transaction, transition_id: UUID) -> StatusTransition:
        found = tx.fetch_one(
            StatusTransition,
            "SELECT * FROM status_transitions WHERE id = ?",
            (str(transition_id),),
        )
        if found is None:
            raise _not_found("Status transition", transition_id)
        return found

    def list_transitions(self, model_id: UUID) -> list[StatusTransition]:
        return self.get_status_model(model_id).transitions

    def get_transition(self, transition_id: UUID) -> StatusTransition:
        with self._store.transaction() as tx:
            return self._transition(tx, transition_id)

    def create_transition(
        self, model_id: UUID, data: StatusTransitionCreate
    ) -> StatusTransition:
        """Allow moving from one status to another within a model.

        Raises:
            ValidationError: If either status belongs to another model.
            DuplicateError: If the transition already exists.
        """
        now = utc_now()
        transition = StatusTransition(
            id=uuid4(),
            status_model_id=model_id,
            from_status_id=data.from_status_id,
            to_status_id=data.to_status_id,
            name=data.name,
            description=data.description,
            created_at=now,
            updated_at=now,
        )
        with self._store.transaction() as tx:
            _ = self._model(tx, model_id)
            for field in ("from_status_id", "to_status_id"):
                status = self._status(tx, getattr(data, field))
                if status.status_model_id != model_id:
                    msg = "Transition statuses must belong to the same status model"
                    raise ValidationError(msg, field=field)
            tx.insert("status_transitions", transition)
        return transition

    def update_transition(
        self, transition_id: UUID, data: StatusTransitionUpdate
    ) -> StatusTransition:
        changes = data.model_dump(exclude_unset=True)
        with self._store.transaction() as tx:
            _ = self._transition(tx, transition_id)
            values: dict[str, SQLValue] = {
                column: changes[column]
                for column in ("name", "description")
                if column in changes
            }
            values["updated_at"] = format_timestamp(utc_now())
            _ = tx.update("status_transitions", values, key_value=str(transition_id))
            return self._transition(tx, transition_id)

    def delete_transition(self, transition_id: UUID) -> None:
        with self._store.transaction() as tx:
            _ = self._transition(tx, transition_id)
            _ = tx.delete("status_transitions", str(transition_id))
