"""Epic lifecycle."""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar
from uuid import UUID, uuid4

from reqtrack.enums import EntityType, SortOrder
from reqtrack.planning._base import (
    DEFAULT_PAGE_LIMIT,
    EntityService,
    ensure_user_exists,
    validate_priority,
    validate_title,
)
from reqtrack.planning._models import Epic, EpicCreate, EpicUpdate
from reqtrack.planning._reference_ids import allocate_reference_id, find_entity
from reqtrack.utils import utc_now

if TYPE_CHECKING:
    from reqtrack.planning._models import DeletionResult, DependencyInfo, Page
    from reqtrack.utils.database import SQLValue

__all__ = ["EpicService"]


class EpicService(EntityService[Epic]):
    """Create, read, update and delete epics."""

    entity_type: ClassVar[EntityType] = EntityType.EPIC
    model = Epic
    filter_columns: ClassVar[frozenset[str]] = frozenset({
        "status",
        "priority",
        "creator_id",
        "assignee_id",
    })
    sort_columns: ClassVar[frozenset[str]] = frozenset({
        "created_at",
        "updated_at",
        "reference_id",
        "priority",
        "title",
        "status",
    })

    def create(self, data: EpicCreate, *, creator_id: UUID) -> Epic:
        """Create an epic in the initial status of the epic workflow.

        Raises:
            ValidationError: On a bad title or priority, or an unknown user.
        """
        title = validate_title(data.title)
        priority = validate_priority(data.priority)
        assignee_id = data.assignee_id or creator_id
        with self._store.transaction() as tx:
            ensure_user_exists(tx, creator_id, field="creator_id")
            ensure_user_exists(tx, assignee_id, field="assignee_id")
            status = self._workflow.initial_status(self.entity_type)
            _ = self._workflow.validate_transition(self.entity_type, None, status)

            epic_id = uuid4()
            reference = allocate_reference_id(tx, self.entity_type, epic_id)
            now = utc_now()
            epic = Epic(
                id=epic_id,
                reference_id=reference.reference_id,
                sequence_number=reference.sequence_number,
                creator_id=creator_id,
                assignee_id=assignee_id,
                priority=priority,
                status=status,
                title=title,
                description=data.description,
                created_at=now,
                updated_at=now,
            )
            tx.insert("epics", epic)
        self._log("epic_created", entity_id=str(epic.id), reference_id=epic.reference_id)
        return epic

    def list(
        self,
        *,
        status: str | None = None,
        priority: int | None = None,
        creator_id: UUID | None = None,
        assignee_id: UUID | None = None,
        order_by: str = "created_at",
        order_direction: SortOrder | str = SortOrder.DESC,
        limit: int = DEFAULT_PAGE_LIMIT,
        offset: int = 0,
    ) -> Page[Epic]:
        return self._page(
            {
                "status": status,
                "priority": priority,
                "creator_id": str(creator_id) if creator_id else None,
                "assignee_id": str(assignee_id) if assignee_id else None,
            },
            order_by=order_by,
            order_direction=order_direction,
            limit=limit,
            offset=offset,
        )

    def update(self, identifier: str | UUID, data: EpicUpdate) -> Epic:
        """Apply the fields set on ``data``.

        A changed description revalidates inline comment anchors in the same
        transaction.
        """
        changes = data.model_dump(exclude_unset=True)
        with self._store.transaction() as tx:
            epic = find_entity(tx, Epic, self.entity_type, identifier)
            values: dict[str, SQLValue] = {}
            if "title" in changes:
                values["title"] = validate_title(data.title)
            if "description" in changes:
                values["description"] = data.description
            if data.priority is not None:
                values["priority"] = int(validate_priority(data.priority))
            if data.assignee_id is not None:
                ensure_user_exists(tx, data.assignee_id, field="assignee_id")
                values["assignee_id"] = str(data.assignee_id)
            if data.status is not None:
                values["status"] = self._workflow.validate_transition(
                    self.entity_type, epic.status, data.status
                )
            updated = self._write(tx, epic.id, values)
            if "description" in changes and data.description != epic.description:
                self._after_description_change(epic.id, data.description)
        self._log("epic_updated", entity_id=str(epic.id), fields=sorted(values))
        return updated

    def change_status(self, identifier: str | UUID, status: str) -> Epic:
        """Move an epic to ``status``.

        Raises:
            InvalidStatusError: If the status is unknown.
            InvalidTransitionError: If the workflow forbids the move.
        """
        with self._store.transaction() as tx:
            epic = find_entity(tx, Epic, self.entity_type, identifier)
            target = self._workflow.validate_transition(
                self.entity_type, epic.status, status
            )
            updated = self._write(tx, epic.id, {"status": target})
        self._log(
            "status_changed", entity_id=str(epic.id), from_status=epic.status, to_status=target
        )
        return updated

    def assign(self, identifier: str | UUID, assignee_id: UUID) -> Epic:
        with self._store.transaction() as tx:
            epic = find_entity(tx, Epic, self.entity_type, identifier)
            ensure_user_exists(tx, assignee_id, field="assignee_id")
            return self._write(tx, epic.id, {"assignee_id": str(assignee_id)})

    def validate_deletion(self, identifier: str | UUID) -> DependencyInfo:
        return self._deletion.validate_epic_deletion(identifier)

    def delete(
        self, identifier: str | UUID, *, force: bool = False, deleted_by: UUID
    ) -> DeletionResult:
        return self._deletion.delete_epic(identifier, force=force, deleted_by=deleted_by)
