# pyright: reportAny=false
"""Requirement lifecycle and requirement relationships."""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar
from uuid import UUID, uuid4

from reqtrack.enums import EntityType, SortOrder
from reqtrack.exceptions import DuplicateError, NotFoundError, ValidationError
from reqtrack.planning._base import (
    DEFAULT_PAGE_LIMIT,
    EntityService,
    ensure_user_exists,
    validate_pagination,
    validate_priority,
    validate_title,
)
from reqtrack.planning._models import (
    AcceptanceCriteria,
    Page,
    RelationshipCreate,
    RelationshipType,
    Requirement,
    RequirementCreate,
    RequirementRelationship,
    RequirementType,
    RequirementUpdate,
    UserStory,
)
from reqtrack.planning._reference_ids import allocate_reference_id, find_entity
from reqtrack.utils import utc_now
from reqtrack.utils.database import escape_like

if TYPE_CHECKING:
    from reqtrack.planning._models import DeletionResult, DependencyInfo
    from reqtrack.store import Transaction
    from reqtrack.utils.database import SQLValue

__all__ = ["DEFAULT_REQUIREMENT_TYPE", "RequirementService"]

DEFAULT_REQUIREMENT_TYPE = "Functional"


class RequirementService(EntityService[Requirement]):
    """Create, read, update and delete requirements and their relationships."""

    entity_type: ClassVar[EntityType] = EntityType.REQUIREMENT
    model = Requirement
    filter_columns: ClassVar[frozenset[str]] = frozenset({
        "user_story_id",
        "acceptance_criteria_id",
        "type_id",
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

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    @staticmethod
    def _requirement_type(tx: Transaction, type_id: UUID | None) -> RequirementType:
        if type_id is None:
            found = tx.fetch_one(
                RequirementType,
                "SELECT * FROM requirement_types WHERE name = ?",
                (DEFAULT_REQUIREMENT_TYPE,),
            )
        else:
            found = tx.fetch_one(
                RequirementType,
                "SELECT * FROM requirement_types WHERE id = ?",
                (str(type_id),),
            )
        if found is None:
            msg = "Requirement type does not exist"
            raise ValidationError(msg, field="type_id")
        return found

    @staticmethod
    def _acceptance_criteria(
        tx: Transaction, identifier: str, user_story_id: UUID
    ) -> AcceptanceCriteria:
        ac = find_entity(
            tx, AcceptanceCriteria, EntityType.ACCEPTANCE_CRITERIA, identifier
        )
        if ac.user_story_id != user_story_id:
            msg = "Acceptance criteria belongs to a different user story"
            raise ValidationError(msg, field="acceptance_criteria_id")
        return ac

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def create(
        self,
        data: RequirementCreate,
        *,
        creator_id: UUID,
        user_story: str | UUID | None = None,
    ) -> Requirement:
        """Create a requirement under a user story.

        Raises:
            ValidationError: On a bad field, unknown type or foreign AC.
            NotFoundError: If the user story or AC does not exist.
        """
        story_ref = user_story if user_story is not None else data.user_story_id
        if story_ref is None:
            msg = "user_story_id is required"
            raise ValidationError(msg, field="user_story_id")
        title = validate_title(data.title)
        priority = validate_priority(data.priority)
        assignee_id = data.assignee_id or creator_id

        with self._store.transaction() as tx:
            story = find_entity(tx, UserStory, EntityType.USER_STORY, story_ref)
            ensure_user_exists(tx, creator_id, field="creator_id")
            ensure_user_exists(tx, assignee_id, field="assignee_id")
            requirement_type = self._requirement_type(tx, data.type_id)
            ac_id: UUID | None = None
            if data.acceptance_criteria_id:
                ac_id = self._acceptance_criteria(
                    tx, data.acceptance_criteria_id, story.id
                ).id
            status = self._workflow.initial_status(self.entity_type)

            requirement_id = uuid4()
            reference = allocate_reference_id(tx, self.entity_type, requirement_id)
            now = utc_now()
            requirement = Requirement(
                id=requirement_id,
                reference_id=reference.reference_id,
                sequence_number=reference.sequence_number,
                user_story_id=story.id,
                acceptance_criteria_id=ac_id,
                type_id=requirement_type.id,
                creator_id=creator_id,
                assignee_id=assignee_id,
                priority=priority,
                status=status,
                title=title,
                description=data.description,
                created_at=now,
                updated_at=now,
            )
            tx.insert("requirements", requirement)
        self._log(
            "requirement_created",
            entity_id=str(requirement.id),
            reference_id=requirement.reference_id,
            user_story_id=str(story.id),
        )
        return requirement

    def list(
        self,
        *,
        user_story: str | UUID | None = None,
        acceptance_criteria_id: UUID | None = None,
        type_id: UUID | None = None,
        status: str | None = None,
        priority: int | None = None,
        creator_id: UUID | None = None,
        assignee_id: UUID | None = None,
        order_by: str = "created_at",
        order_direction: SortOrder | str = SortOrder.DESC,
        limit: int = DEFAULT_PAGE_LIMIT,
        offset: int = 0,
    ) -> Page[Requirement]:
        story_id: str | None = None
        if user_story is not None:
            with self._store.transaction() as tx:
                story_id = str(
                    find_entity(tx, UserStory, EntityType.USER_STORY, user_story).id
                )
        return self._page(
            {
                "user_story_id": story_id,
                "acceptance_criteria_id": (
                    str(acceptance_criteria_id) if acceptance_criteria_id else None
                ),
                "type_id": str(type_id) if type_id else None,
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

    def list_by_user_story(self, user_story: str | UUID) -> list[Requirement]:
        with self._store.transaction() as tx:
            story = find_entity(tx, UserStory, EntityType.USER_STORY, user_story)
            return tx.fetch_all(
                Requirement,
                "SELECT * FROM requirements WHERE user_story_id = ? "
                "ORDER BY created_at, id",
                (str(story.id),),
            )

    def update(self, identifier: str | UUID, data: RequirementUpdate) -> Requirement:
        changes = data.model_dump(exclude_unset=True)
        with self._store.transaction() as tx:
            requirement = find_entity(tx, Requirement, self.entity_type, identifier)
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
            if data.type_id is not None:
                values["type_id"] = str(self._requirement_type(tx, data.type_id).id)
            if "acceptance_criteria_id" in changes:
                values["acceptance_criteria_id"] = (
                    str(
                        self._acceptance_criteria(
                            tx, data.acceptance_criteria_id, requirement.user_story_id
                        ).id
                    )
                    if data.acceptance_criteria_id
                    else None
                )
            if data.status is not None:
                values["status"] = self._workflow.validate_transition(
                    self.entity_type, requirement.status, data.status
                )
            updated = self._write(tx, requirement.id, values)
            if "description" in changes and data.description != requirement.description:
                self._after_description_change(requirement.id, data.description)
        self._log("requirement_updated", entity_id=str(requirement.id), fields=sorted(values))
        return updated

    def change_status(self, identifier: str | UUID, status: str) -> Requirement:
        with self._store.transaction() as tx:
            requirement = find_entity(tx, Requirement, self.entity_type, identifier)
            target = self._workflow.validate_transition(
                self.entity_type, requirement.status, status
            )
            updated = self._write(tx, requirement.id, {"status": target})
        self._log(
            "status_changed",
            entity_id=str(requirement.id),
            from_status=requirement.status,
            to_status=target,
        )
        return updated

    def assign(self, identifier: str | UUID, assignee_id: UUID) -> Requirement:
        with self._store.transaction() as tx:
            requirement = find_entity(tx, Requirement, self.entity_type, identifier)
            ensure_user_exists(tx, assignee_id, field="assignee_id")
            return self._write(tx, requirement.id, {"assignee_id": str(assignee_id)})

    def search_requirements(
        self, text: str, *, limit: int = DEFAULT_PAGE_LIMIT, offset: int = 0
    ) -> Page[Requirement]:
        """Case-insensitive substring search over title and description."""
        query = text.strip()
        if not query:
            msg = "Search text is required"
            raise ValidationError(msg, field="q")
        validate_pagination(limit, offset)
        pattern = f"%{escape_like(query.lower())}%"
        where = (
            "WHERE lower(title) LIKE ? ESCAPE '\\' "
            "OR lower(coalesce(description, '')) LIKE ? ESCAPE '\\'"
        )
        with self._store.transaction() as tx:
            total = tx.count(f"SELECT count(*) FROM requirements {where}", (pattern, pattern))  # noqa: S608
            rows = tx.fetch_all(
                Requirement,
                f"SELECT * FROM requirements {where} "  # noqa: S608
                "ORDER BY created_at DESC, id LIMIT ? OFFSET ?",
                (pattern, pattern, limit, offset),
            )
        return Page(data=rows, total_count=total, limit=limit, offset=offset)

    def validate_deletion(self, identifier: str | UUID) -> DependencyInfo:
        return self._deletion.validate_requirement_deletion(identifier)

    def delete(
        self, identifier: str | UUID, *, force: bool = False, deleted_by: UUID
    ) -> DeletionResult:
        return self._deletion.delete_requirement(
            identifier, force=force, deleted_by=deleted_by
        )

    # -------------------------------------------------------------------------
    # Relationships
    # -------------------------------------------------------------------------

    def create_relationship(
        self, data: RelationshipCreate, *, created_by: UUID
    ) -> RequirementRelationship:
        """Link two requirements with a typed, directed edge.

        Raises:
            ValidationError: On a self-loop or unknown relationship type.
            NotFoundError: If either requirement does not exist.
            DuplicateError: If the same typed edge already exists.
        """
        with self._store.transaction() as tx:
            source = find_entity(
                tx, Requirement, self.entity_type, data.source_requirement_id
            )
            target = find_entity(
                tx, Requirement, self.entity_type, data.target_requirement_id
            )
            if source.id == target.id:
                msg = "A requirement cannot have a relationship with itself"
                raise ValidationError(msg, field="target_requirement_id")
            relationship_type = tx.fetch_one(
                RelationshipType,
                "SELECT * FROM relationship_types WHERE id = ?",
                (str(data.relationship_type_id),),
            )
            if relationship_type is None:
                msg = "Relationship type does not exist"
                raise ValidationError(msg, field="relationship_type_id")
            if tx.fetch_value(
                "SELECT 1 FROM requirement_relationships WHERE source_requirement_id = ? "
                "AND target_requirement_id = ? AND relationship_type_id = ?",
                (str(source.id), str(target.id), str(relationship_type.id)),
            ):
                msg = "Relationship already exists between these requirements"
                raise DuplicateError(msg)
            ensure_user_exists(tx, created_by, field="created_by")

            relationship = RequirementRelationship(
                id=uuid4(),
                source_requirement_id=source.id,
                target_requirement_id=target.id,
                relationship_type_id=relationship_type.id,
                created_by=created_by,
                created_at=utc_now(),
            )
            tx.insert("requirement_relationships", relationship)
        self._log(
            "relationship_created",
            entity_id=str(relationship.id),
            source=source.reference_id,
            target=target.reference_id,
            relationship_type=relationship_type.name,
        )
        return relationship

    def list_relationships(self, identifier: str | UUID) -> list[RequirementRelationship]:
        """Return edges where the requirement is the source or the target."""
        with self._store.transaction() as tx:
            requirement = find_entity(tx, Requirement, self.entity_type, identifier)
            return tx.fetch_all(
                RequirementRelationship,
                "SELECT * FROM requirement_relationships "
                "WHERE source_requirement_id = ? OR target_requirement_id = ? "
                "ORDER BY created_at, id",
                (str(requirement.id), str(requirement.id)),
            )

    def get_relationship(self, relationship_id: UUID) -> RequirementRelationship:
        with self._store.transaction() as tx:
            found = tx.fetch_one(
                RequirementRelationship,
                "SELECT * FROM requirement_relationships WHERE id = ?",
                (str(relationship_id),),
            )
        if found is None:
            msg = "Relationship not found"
            raise NotFoundError(
                msg, entity_type="requirement_relationship", identifier=str(relationship_id)
            )
        return found

    def delete_relationship(self, relationship_id: UUID) -> None:
        with self._store.transaction() as tx:
            if not tx.delete("requirement_relationships", str(relationship_id)):
                msg = "Relationship not found"
                raise NotFoundError(
                    msg,
                    entity_type="requirement_relationship",
                    identifier=str(relationship_id),
                )
        self._log("relationship_deleted", entity_id=str(relationship_id))
