"""User story lifecycle and template validation."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, ClassVar, Final
from uuid import UUID, uuid4

from reqtrack.enums import EntityType, SortOrder
from reqtrack.exceptions import (
    LastAcceptanceCriteriaError,
    TemplateValidationError,
    ValidationError,
)
from reqtrack.planning._base import (
    DEFAULT_PAGE_LIMIT,
    EntityService,
    ensure_user_exists,
    validate_priority,
    validate_title,
)
from reqtrack.planning._models import Epic, UserStory, UserStoryCreate, UserStoryUpdate
from reqtrack.planning._reference_ids import allocate_reference_id, find_entity
from reqtrack.utils import utc_now

if TYPE_CHECKING:
    from reqtrack.planning._models import DeletionResult, DependencyInfo, Page
    from reqtrack.store import Transaction
    from reqtrack.utils.database import SQLValue

__all__ = ["USER_STORY_TEMPLATE", "UserStoryService", "validate_user_story_template"]

USER_STORY_TEMPLATE: Final = "As [role], I want [function], so that [goal]"

_TEMPLATE_RE = re.compile(
    r"^\s*as\s+\S.*?,?\s+i\s+want\s+\S.*?,?\s+so\s+that\s+\S.*$",
    re.IGNORECASE | re.DOTALL,
)


def validate_user_story_template(description: str | None) -> None:
    """Check a user story description against the story template.

    Empty descriptions are accepted.

    Raises:
        TemplateValidationError: If a non-empty description does not match.

    Examples:
        >>> validate_user_story_template("As a user, I want to log in, so that I can work")
    """
    if not description or not description.strip():
        return
    if not _TEMPLATE_RE.match(description):
        msg = f"User story description must follow template: '{USER_STORY_TEMPLATE}'"
        raise TemplateValidationError(msg, field="description")


class UserStoryService(EntityService[UserStory]):
    """Create, read, update and delete user stories."""

    entity_type: ClassVar[EntityType] = EntityType.USER_STORY
    model = UserStory
    filter_columns: ClassVar[frozenset[str]] = frozenset({
        "epic_id",
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

    def create(
        self,
        data: UserStoryCreate,
        *,
        creator_id: UUID,
        epic: str | UUID | None = None,
    ) -> UserStory:
        """Create a user story under an epic.

        Args:
            data: The story fields.
            creator_id: The creating user.
            epic: Epic identifier from the URL; overrides ``data.epic_id``.

        Raises:
            ValidationError: On a missing epic, bad title, priority or template.
            NotFoundError: If the epic does not exist.
        """
        epic_ref = epic if epic is not None else data.epic_id
        if epic_ref is None or (isinstance(epic_ref, str) and not epic_ref.strip()):
            msg = "epic_id is required"
            raise ValidationError(msg, field="epic_id")
        title = validate_title(data.title)
        priority = validate_priority(data.priority)
        validate_user_story_template(data.description)
        assignee_id = data.assignee_id or creator_id

        with self._store.transaction() as tx:
            parent = find_entity(tx, Epic, EntityType.EPIC, epic_ref)
            ensure_user_exists(tx, creator_id, field="creator_id")
            ensure_user_exists(tx, assignee_id, field="assignee_id")
            status = self._workflow.initial_status(self.entity_type)

            story_id = uuid4()
            reference = allocate_reference_id(tx, self.entity_type, story_id)
            now = utc_now()
            story = UserStory(
                id=story_id,
                reference_id=reference.reference_id,
                sequence_number=reference.sequence_number,
                epic_id=parent.id,
                creator_id=creator_id,
                assignee_id=assignee_id,
                priority=priority,
                status=status,
                title=title,
                description=data.description,
                created_at=now,
                updated_at=now,
            )
            tx.insert("user_stories", story)
        self._log(
            "user_story_created",
            entity_id=str(story.id),
            reference_id=story.reference_id,
            epic_id=str(parent.id),
        )
        return story

    def list(
        self,
        *,
        epic: str | UUID | None = None,
        status: str | None = None,
        priority: int | None = None,
        creator_id: UUID | None = None,
        assignee_id: UUID | None = None,
        order_by: str = "created_at",
        order_direction: SortOrder | str = SortOrder.DESC,
        limit: int = DEFAULT_PAGE_LIMIT,
        offset: int = 0,
    ) -> Page[UserStory]:
        epic_id: str | None = None
        if epic is not None:
            with self._store.transaction() as tx:
                epic_id = str(find_entity(tx, Epic, EntityType.EPIC, epic).id)
        return self._page(
            {
                "epic_id": epic_id,
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

    def list_by_epic(self, epic: str | UUID) -> list[UserStory]:
        """Return every story of an epic, oldest first."""
        with self._store.transaction() as tx:
            parent = find_entity(tx, Epic, EntityType.EPIC, epic)
            return tx.fetch_all(
                UserStory,
                "SELECT * FROM user_stories WHERE epic_id = ? ORDER BY created_at, id",
                (str(parent.id),),
            )

    def _check_status(self, tx: Transaction, story: UserStory, status: str) -> str:
        target = self._workflow.validate_transition(self.entity_type, story.status, status)
        if not self._workflow.is_initial(self.entity_type, target):
            criteria = tx.count(
                "SELECT count(*) FROM acceptance_criteria WHERE user_story_id = ?",
                (str(story.id),),
            )
            if criteria == 0:
                raise LastAcceptanceCriteriaError
        return target

    def update(self, identifier: str | UUID, data: UserStoryUpdate) -> UserStory:
        """Apply the fields set on ``data``.

        Raises:
            TemplateValidationError: If a new description breaks the template.
            LastAcceptanceCriteriaError: If a status change would leave a
                non-initial story without acceptance criteria.
        """
        changes = data.model_dump(exclude_unset=True)
        with self._store.transaction() as tx:
            story = find_entity(tx, UserStory, self.entity_type, identifier)
            values: dict[str, SQLValue] = {}
            if "title" in changes:
                values["title"] = validate_title(data.title)
            if "description" in changes:
                validate_user_story_template(data.description)
                values["description"] = data.description
            if data.priority is not None:
                values["priority"] = int(validate_priority(data.priority))
            if data.assignee_id is not None:
                ensure_user_exists(tx, data.assignee_id, field="assignee_id")
                values["assignee_id"] = str(data.assignee_id)
            if data.status is not None:
                values["status"] = self._check_status(tx, story, data.status)
            updated = self._write(tx, story.id, values)
            if "description" in changes and data.description != story.description:
                self._after_description_change(story.id, data.description)
        self._log("user_story_updated", entity_id=str(story.id), fields=sorted(values))
        return updated

    def change_status(self, identifier: str | UUID, status: str) -> UserStory:
        with self._store.transaction() as tx:
            story = find_entity(tx, UserStory, self.entity_type, identifier)
            target = self._check_status(tx, story, status)
            updated = self._write(tx, story.id, {"status": target})
        self._log(
            "status_changed",
            entity_id=str(story.id),
            from_status=story.status,
            to_status=target,
        )
        return updated

    def assign(self, identifier: str | UUID, assignee_id: UUID) -> UserStory:
        with self._store.transaction() as tx:
            story = find_entity(tx, UserStory, self.entity_type, identifier)
            ensure_user_exists(tx, assignee_id, field="assignee_id")
            return self._write(tx, story.id, {"assignee_id": str(assignee_id)})

    def validate_deletion(self, identifier: str | UUID) -> DependencyInfo:
        return self._deletion.validate_user_story_deletion(identifier)

    def delete(
        self, identifier: str | UUID, *, force: bool = False, deleted_by: UUID
    ) -> DeletionResult:
        return self._deletion.delete_user_story(
            identifier, force=force, deleted_by=deleted_by
        )
