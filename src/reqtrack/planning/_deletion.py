# pyright: reportAny=false
"""Dependency checks and cascading deletion.

A plain delete is refused while anything depends on the entity. A forced
delete removes the entity's exclusive children (and their relationships and
comments) in the same transaction, except for acceptance criteria, whose
requirements are detached rather than deleted.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Final
from uuid import UUID

from reqtrack.enums import EntityType
from reqtrack.exceptions import InUseError, LastAcceptanceCriteriaError
from reqtrack.planning._models import (
    AcceptanceCriteria,
    DeletedEntity,
    DeletionResult,
    Dependency,
    DependencyInfo,
    Epic,
    Requirement,
    RequirementRelationship,
    UserStory,
)
from reqtrack.planning._reference_ids import find_entity
from reqtrack.utils import utc_now

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from reqtrack.store import Store, Transaction

__all__ = ["DeletionEngine"]


def _entity(
    entity_type: EntityType,
    row: Epic | UserStory | AcceptanceCriteria | Requirement,
    reason: str,
) -> Dependency:
    title = row.reference_id if isinstance(row, AcceptanceCriteria) else row.title
    return Dependency(
        entity_type=entity_type.value,
        entity_id=row.id,
        reference_id=row.reference_id,
        title=title,
        reason=reason,
    )


class DeletionEngine:
    """Validates and performs deletions of planning entities."""

    __slots__: Final = ("_logger", "_store")

    _store: Store
    _logger: FilteringBoundLogger | None

    def __init__(
        self, store: Store, *, logger: FilteringBoundLogger | None = None
    ) -> None:
        self._store = store
        self._logger = logger

    # -------------------------------------------------------------------------
    # Child queries
    # -------------------------------------------------------------------------

    @staticmethod
    def _relationships(tx: Transaction, requirement_id: UUID) -> list[RequirementRelationship]:
        return tx.fetch_all(
            RequirementRelationship,
            "SELECT * FROM requirement_relationships "
            "WHERE source_requirement_id = ? OR target_requirement_id = ? "
            "ORDER BY created_at, id",
            (str(requirement_id), str(requirement_id)),
        )

    @staticmethod
    def _user_stories(tx: Transaction, epic_id: UUID) -> list[UserStory]:
        return tx.fetch_all(
            UserStory,
            "SELECT * FROM user_stories WHERE epic_id = ? ORDER BY created_at, id",
            (str(epic_id),),
        )

    @staticmethod
    def _acceptance_criteria(tx: Transaction, user_story_id: UUID) -> list[AcceptanceCriteria]:
        return tx.fetch_all(
            AcceptanceCriteria,
            "SELECT * FROM acceptance_criteria WHERE user_story_id = ? "
            "ORDER BY created_at, id",
            (str(user_story_id),),
        )

    @staticmethod
    def _requirements(
        tx: Transaction, column: str, parent_id: UUID
    ) -> list[Requirement]:
        return tx.fetch_all(
            Requirement,
            f"SELECT * FROM requirements WHERE {column} = ? "  # noqa: S608
            "ORDER BY created_at, id",
            (str(parent_id),),
        )

    def _relationship_dependencies(
        self, tx: Transaction, requirement: Requirement
    ) -> list[Dependency]:
        return [
            Dependency(
                entity_type="requirement_relationship",
                entity_id=rel.id,
                reference_id=requirement.reference_id,
                reason="Requirement participates in a relationship",
            )
            for rel in self._relationships(tx, requirement.id)
        ]

    def _story_cascade(self, tx: Transaction, story: UserStory) -> list[Dependency]:
        cascade = [
            _entity(EntityType.ACCEPTANCE_CRITERIA, ac, "Owned by user story")
            for ac in self._acceptance_criteria(tx, story.id)
        ]
        for requirement in self._requirements(tx, "user_story_id", story.id):
            cascade.append(
                _entity(EntityType.REQUIREMENT, requirement, "Owned by user story")
            )
            cascade.extend(self._relationship_dependencies(tx, requirement))
        return cascade

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def validate_requirement_deletion(self, identifier: str | UUID) -> DependencyInfo:
        with self._store.transaction() as tx:
            requirement = find_entity(tx, Requirement, EntityType.REQUIREMENT, identifier)
            dependencies = self._relationship_dependencies(tx, requirement)
        return DependencyInfo(
            entity_type=EntityType.REQUIREMENT,
            entity_id=requirement.id,
            reference_id=requirement.reference_id,
            can_delete=not dependencies,
            requires_confirmation=bool(dependencies),
            dependencies=dependencies,
            cascade_delete_count=len(dependencies),
            cascade_delete_entities=dependencies,
        )

    def validate_acceptance_criteria_deletion(
        self, identifier: str | UUID
    ) -> DependencyInfo:
        with self._store.transaction() as tx:
            ac = find_entity(
                tx, AcceptanceCriteria, EntityType.ACCEPTANCE_CRITERIA, identifier
            )
            dependencies = [
                _entity(
                    EntityType.REQUIREMENT,
                    requirement,
                    "Requirement references this acceptance criteria",
                )
                for requirement in self._requirements(
                    tx, "acceptance_criteria_id", ac.id
                )
            ]
            siblings = tx.count(
                "SELECT count(*) FROM acceptance_criteria WHERE user_story_id = ?",
                (str(ac.user_story_id),),
            )
            if siblings <= 1:
                story = find_entity(tx, UserStory, EntityType.USER_STORY, ac.user_story_id)
                dependencies.append(
                    _entity(
                        EntityType.USER_STORY,
                        story,
                        "Last acceptance criteria of the user story",
                    )
                )
        return DependencyInfo(
            entity_type=EntityType.ACCEPTANCE_CRITERIA,
            entity_id=ac.id,
            reference_id=ac.reference_id,
            can_delete=not dependencies,
            requires_confirmation=bool(dependencies),
            dependencies=dependencies,
        )

    def validate_user_story_deletion(self, identifier: str | UUID) -> DependencyInfo:
        with self._store.transaction() as tx:
            story = find_entity(tx, UserStory, EntityType.USER_STORY, identifier)
            dependencies = [
                _entity(EntityType.REQUIREMENT, requirement, "User story has requirements")
                for requirement in self._requirements(tx, "user_story_id", story.id)
            ]
            cascade = self._story_cascade(tx, story)
        return DependencyInfo(
            entity_type=EntityType.USER_STORY,
            entity_id=story.id,
            reference_id=story.reference_id,
            can_delete=not dependencies,
            requires_confirmation=bool(dependencies),
            dependencies=dependencies,
            cascade_delete_count=len(cascade),
            cascade_delete_entities=cascade,
        )

    def validate_epic_deletion(self, identifier: str | UUID) -> DependencyInfo:
        with self._store.transaction() as tx:
            epic = find_entity(tx, Epic, EntityType.EPIC, identifier)
            stories = self._user_stories(tx, epic.id)
            dependencies = [
                _entity(EntityType.USER_STORY, story, "Epic has user stories")
                for story in stories
            ]
            cascade: list[Dependency] = []
            for story in stories:
                cascade.append(_entity(EntityType.USER_STORY, story, "Owned by epic"))
                cascade.extend(self._story_cascade(tx, story))
        return DependencyInfo(
            entity_type=EntityType.EPIC,
            entity_id=epic.id,
            reference_id=epic.reference_id,
            can_delete=not dependencies,
            requires_confirmation=bool(dependencies),
            dependencies=dependencies,
            cascade_delete_count=len(cascade),
            cascade_delete_entities=cascade,
        )

    def validate(self, entity_type: EntityType, identifier: str | UUID) -> DependencyInfo:
        match entity_type:
            case EntityType.EPIC:
                return self.validate_epic_deletion(identifier)
            case EntityType.USER_STORY:
                return self.validate_user_story_deletion(identifier)
            case EntityType.ACCEPTANCE_CRITERIA:
                return self.validate_acceptance_criteria_deletion(identifier)
            case EntityType.REQUIREMENT:
                return self.validate_requirement_deletion(identifier)

    # -------------------------------------------------------------------------
    # Deletion
    # -------------------------------------------------------------------------

    @staticmethod
    def _delete_comments(
        tx: Transaction, entity_type: EntityType, entity_ids: list[UUID]
    ) -> None:
        for entity_id in entity_ids:
            _ = tx.execute(
                "DELETE FROM comments WHERE entity_type = ? AND entity_id = ?",
                (entity_type.value, str(entity_id)),
            )

    def _cascade_story(self, tx: Transaction, story: UserStory) -> list[DeletedEntity]:
        acs = self._acceptance_criteria(tx, story.id)
        requirements = self._requirements(tx, "user_story_id", story.id)
        self._delete_comments(tx, EntityType.ACCEPTANCE_CRITERIA, [ac.id for ac in acs])
        self._delete_comments(
            tx, EntityType.REQUIREMENT, [requirement.id for requirement in requirements]
        )
        self._delete_comments(tx, EntityType.USER_STORY, [story.id])
        # Acceptance criteria, requirements and relationships go with the story
        _ = tx.delete("user_stories", str(story.id))
        return [
            DeletedEntity(
                entity_type=EntityType.ACCEPTANCE_CRITERIA,
                entity_id=ac.id,
                reference_id=ac.reference_id,
            )
            for ac in acs
        ] + [
            DeletedEntity(
                entity_type=EntityType.REQUIREMENT,
                entity_id=requirement.id,
                reference_id=requirement.reference_id,
            )
            for requirement in requirements
        ]

    def _result(
        self,
        entity_type: EntityType,
        row: Epic | UserStory | AcceptanceCriteria | Requirement,
        deleted_by: UUID,
        cascade: list[DeletedEntity],
        *,
        force: bool,
    ) -> DeletionResult:
        if self._logger is not None:
            self._logger.info(
                "entity_deleted",
                entity_type=entity_type.value,
                entity_id=str(row.id),
                reference_id=row.reference_id,
                deleted_by=str(deleted_by),
                force=force,
                cascade_count=len(cascade),
            )
        return DeletionResult(
            entity_type=entity_type,
            entity_id=row.id,
            reference_id=row.reference_id,
            deleted_at=utc_now(),
            deleted_by=deleted_by,
            cascade_deleted=cascade,
        )

    def delete_requirement(
        self, identifier: str | UUID, *, force: bool = False, deleted_by: UUID
    ) -> DeletionResult:
        """Delete a requirement.

        Raises:
            InUseError: If relationships reference it and ``force`` is False.
        """
        with self._store.transaction() as tx:
            requirement = find_entity(tx, Requirement, EntityType.REQUIREMENT, identifier)
            relationships = self._relationships(tx, requirement.id)
            if relationships and not force:
                msg = (
                    f"Requirement {requirement.reference_id} has "
                    f"{len(relationships)} relationship(s); use force to delete"
                )
                raise InUseError(msg, details="requirement_has_relationships")
            _ = tx.execute(
                "DELETE FROM requirement_relationships "
                "WHERE source_requirement_id = ? OR target_requirement_id = ?",
                (str(requirement.id), str(requirement.id)),
            )
            self._delete_comments(tx, EntityType.REQUIREMENT, [requirement.id])
            _ = tx.delete("requirements", str(requirement.id))
        return self._result(
            EntityType.REQUIREMENT, requirement, deleted_by, [], force=force
        )

    def delete_acceptance_criteria(
        self, identifier: str | UUID, *, force: bool = False, deleted_by: UUID
    ) -> DeletionResult:
        """Delete an acceptance criteria.

        With ``force``, requirements pointing at it are detached, not deleted.

        Raises:
            InUseError: If requirements reference it and ``force`` is False.
            LastAcceptanceCriteriaError: If it is the last one of its user
                story and ``force`` is False.
        """
        with self._store.transaction() as tx:
            ac = find_entity(
                tx, AcceptanceCriteria, EntityType.ACCEPTANCE_CRITERIA, identifier
            )
            if not force:
                referencing = tx.count(
                    "SELECT count(*) FROM requirements WHERE acceptance_criteria_id = ?",
                    (str(ac.id),),
                )
                if referencing:
                    msg = (
                        f"Acceptance criteria {ac.reference_id} is referenced by "
                        f"{referencing} requirement(s); use force to delete"
                    )
                    raise InUseError(msg, details="acceptance_criteria_has_requirements")
                siblings = tx.count(
                    "SELECT count(*) FROM acceptance_criteria WHERE user_story_id = ?",
                    (str(ac.user_story_id),),
                )
                if siblings <= 1:
                    raise LastAcceptanceCriteriaError

            _ = tx.execute(
                "UPDATE requirements SET acceptance_criteria_id = NULL "
                "WHERE acceptance_criteria_id = ?",
                (str(ac.id),),
            )
            self._delete_comments(tx, EntityType.ACCEPTANCE_CRITERIA, [ac.id])
            _ = tx.delete("acceptance_criteria", str(ac.id))
        return self._result(
            EntityType.ACCEPTANCE_CRITERIA, ac, deleted_by, [], force=force
        )

    def delete_user_story(
        self, identifier: str | UUID, *, force: bool = False, deleted_by: UUID
    ) -> DeletionResult:
        """Delete a user story with its acceptance criteria.

        Raises:
            InUseError: If it has requirements and ``force`` is False.
        """
        with self._store.transaction() as tx:
            story = find_entity(tx, UserStory, EntityType.USER_STORY, identifier)
            requirements = tx.count(
                "SELECT count(*) FROM requirements WHERE user_story_id = ?",
                (str(story.id),),
            )
            if requirements and not force:
                msg = (
                    f"User story {story.reference_id} has {requirements} "
                    "requirement(s); use force to delete"
                )
                raise InUseError(msg, details="user_story_has_requirements")
            cascade = self._cascade_story(tx, story)
        return self._result(EntityType.USER_STORY, story, deleted_by, cascade, force=force)

    def delete_epic(
        self, identifier: str | UUID, *, force: bool = False, deleted_by: UUID
    ) -> DeletionResult:
        """Delete an epic.

        Raises:
            InUseError: If it has user stories and ``force`` is False.
        """
        with self._store.transaction() as tx:
            epic = find_entity(tx, Epic, EntityType.EPIC, identifier)
            stories = self._user_stories(tx, epic.id)
            if stories and not force:
                msg = (
                    f"Epic {epic.reference_id} has {len(stories)} user "
                    "story(ies); use force to delete"
                )
                raise InUseError(msg, details="epic_has_user_stories")
            cascade: list[DeletedEntity] = []
            for story in stories:
                cascade.append(
                    DeletedEntity(
                        entity_type=EntityType.USER_STORY,
                        entity_id=story.id,
                        reference_id=story.reference_id,
                    )
                )
                cascade.extend(self._cascade_story(tx, story))
            self._delete_comments(tx, EntityType.EPIC, [epic.id])
            _ = tx.delete("epics", str(epic.id))
        return self._result(EntityType.EPIC, epic, deleted_by, cascade, force=force)

    def delete(
        self,
        entity_type: EntityType,
        identifier: str | UUID,
        *,
        force: bool = False,
        deleted_by: UUID,
    ) -> DeletionResult:
        match entity_type:
            case EntityType.EPIC:
                return self.delete_epic(identifier, force=force, deleted_by=deleted_by)
            case EntityType.USER_STORY:
                return self.delete_user_story(
                    identifier, force=force, deleted_by=deleted_by
                )
            case EntityType.ACCEPTANCE_CRITERIA:
                return self.delete_acceptance_criteria(
                    identifier, force=force, deleted_by=deleted_by
                )
            case EntityType.REQUIREMENT:
                return self.delete_requirement(
                    identifier, force=force, deleted_by=deleted_by
                )
