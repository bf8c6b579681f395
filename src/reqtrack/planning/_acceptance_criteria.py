"""Acceptance criteria lifecycle."""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar
from uuid import UUID, uuid4

from reqtrack.enums import EntityType, SortOrder
from reqtrack.exceptions import ValidationError
from reqtrack.planning._base import DEFAULT_PAGE_LIMIT, EntityService, ensure_user_exists
from reqtrack.planning._models import (
    AcceptanceCriteria,
    AcceptanceCriteriaCreate,
    AcceptanceCriteriaUpdate,
    UserStory,
)
from reqtrack.planning._reference_ids import allocate_reference_id, find_entity
from reqtrack.utils import utc_now

if TYPE_CHECKING:
    from reqtrack.planning._models import DeletionResult, DependencyInfo, Page

__all__ = ["AcceptanceCriteriaService"]


def _validate_description(description: str | None) -> str:
    value = (description or "").strip()
    if not value:
        msg = "Description is required"
        raise ValidationError(msg, field="description")
    return value


class AcceptanceCriteriaService(EntityService[AcceptanceCriteria]):
    """Create, read, update and delete acceptance criteria.

    Acceptance criteria carry no status or priority; the EARS wording
    (``WHEN ... THEN the system SHALL ...``) is recommended but not enforced.
    """

    entity_type: ClassVar[EntityType] = EntityType.ACCEPTANCE_CRITERIA
    model = AcceptanceCriteria
    filter_columns: ClassVar[frozenset[str]] = frozenset({"user_story_id", "author_id"})

    def create(
        self,
        data: AcceptanceCriteriaCreate,
        *,
        author_id: UUID,
        user_story: str | UUID | None = None,
    ) -> AcceptanceCriteria:
        """Attach a new acceptance criteria to a user story.

        Raises:
            ValidationError: On an empty description or missing user story.
            NotFoundError: If the user story does not exist.
        """
        story_ref = user_story if user_story is not None else data.user_story_id
        if story_ref is None:
            msg = "user_story_id is required"
            raise ValidationError(msg, field="user_story_id")
        description = _validate_description(data.description)
        with self._store.transaction() as tx:
            story = find_entity(tx, UserStory, EntityType.USER_STORY, story_ref)
            ensure_user_exists(tx, author_id, field="author_id")
            ac_id = uuid4()
            reference = allocate_reference_id(tx, self.entity_type, ac_id)
            now = utc_now()
            ac = AcceptanceCriteria(
                id=ac_id,
                reference_id=reference.reference_id,
                sequence_number=reference.sequence_number,
                user_story_id=story.id,
                author_id=author_id,
                description=description,
                created_at=now,
                updated_at=now,
            )
            tx.insert("acceptance_criteria", ac)
        self._log(
            "acceptance_criteria_created",
            entity_id=str(ac.id),
            reference_id=ac.reference_id,
            user_story_id=str(story.id),
        )
        return ac

    def list(
        self,
        *,
        user_story: str | UUID | None = None,
        author_id: UUID | None = None,
        order_by: str = "created_at",
        order_direction: SortOrder | str = SortOrder.DESC,
        limit: int = DEFAULT_PAGE_LIMIT,
        offset: int = 0,
    ) -> Page[AcceptanceCriteria]:
        story_id: str | None = None
        if user_story is not None:
            with self._store.transaction() as tx:
                story_id = str(
                    find_entity(tx, UserStory, EntityType.USER_STORY, user_story).id
                )
        return self._page(
            {
                "user_story_id": story_id,
                "author_id": str(author_id) if author_id else None,
            },
            order_by=order_by,
            order_direction=order_direction,
            limit=limit,
            offset=offset,
        )

    def list_by_user_story(self, user_story: str | UUID) -> list[AcceptanceCriteria]:
        with self._store.transaction() as tx:
            story = find_entity(tx, UserStory, EntityType.USER_STORY, user_story)
            return tx.fetch_all(
                AcceptanceCriteria,
                "SELECT * FROM acceptance_criteria WHERE user_story_id = ? "
                "ORDER BY created_at, id",
                (str(story.id),),
            )

    def update(
        self, identifier: str | UUID, data: AcceptanceCriteriaUpdate
    ) -> AcceptanceCriteria:
        with self._store.transaction() as tx:
            ac = find_entity(tx, AcceptanceCriteria, self.entity_type, identifier)
            if data.description is None:
                return ac
            description = _validate_description(data.description)
            updated = self._write(tx, ac.id, {"description": description})
            if description != ac.description:
                self._after_description_change(ac.id, description)
        self._log("acceptance_criteria_updated", entity_id=str(ac.id))
        return updated

    def validate_deletion(self, identifier: str | UUID) -> DependencyInfo:
        return self._deletion.validate_acceptance_criteria_deletion(identifier)

    def delete(
        self, identifier: str | UUID, *, force: bool = False, deleted_by: UUID
    ) -> DeletionResult:
        return self._deletion.delete_acceptance_criteria(
            identifier, force=force, deleted_by=deleted_by
        )
