# pyright: reportExplicitAny=false
"""Planning entity models.

Row models mirror the store columns one to one and are frozen. Input models
(``*Create`` / ``*Update``) forbid unknown fields; update models are applied
with ``model_dump(exclude_unset=True)`` so only the fields a caller sent are
changed.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, ClassVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from reqtrack.enums import EntityType, Priority
from reqtrack.utils import Timestamp

_ROW_CONFIG = ConfigDict(frozen=True, extra="ignore")
_INPUT_CONFIG = ConfigDict(frozen=True, extra="forbid")


# =============================================================================
# Primary entities
# =============================================================================


class Epic(BaseModel):
    """A top-level planning artifact that owns user stories."""

    model_config: ClassVar[ConfigDict] = _ROW_CONFIG

    id: UUID
    reference_id: str
    sequence_number: int | None = None
    creator_id: UUID
    assignee_id: UUID | None = None
    priority: Priority
    status: str
    title: str
    description: str | None = None
    created_at: Timestamp
    updated_at: Timestamp


class UserStory(BaseModel):
    """A user story belonging to one epic."""

    model_config: ClassVar[ConfigDict] = _ROW_CONFIG

    id: UUID
    reference_id: str
    sequence_number: int | None = None
    epic_id: UUID
    creator_id: UUID
    assignee_id: UUID | None = None
    priority: Priority
    status: str
    title: str
    description: str | None = None
    created_at: Timestamp
    updated_at: Timestamp


class AcceptanceCriteria(BaseModel):
    """A testable condition attached to a user story."""

    model_config: ClassVar[ConfigDict] = _ROW_CONFIG

    id: UUID
    reference_id: str
    sequence_number: int | None = None
    user_story_id: UUID
    author_id: UUID
    description: str
    created_at: Timestamp
    updated_at: Timestamp


class Requirement(BaseModel):
    """A requirement belonging to one user story."""

    model_config: ClassVar[ConfigDict] = _ROW_CONFIG

    id: UUID
    reference_id: str
    sequence_number: int | None = None
    user_story_id: UUID
    acceptance_criteria_id: UUID | None = None
    type_id: UUID
    creator_id: UUID
    assignee_id: UUID | None = None
    priority: Priority
    status: str
    title: str
    description: str | None = None
    created_at: Timestamp
    updated_at: Timestamp


type PlanningEntity = Epic | UserStory | AcceptanceCriteria | Requirement


# =============================================================================
# Configuration entities
# =============================================================================


class RequirementType(BaseModel):
    model_config: ClassVar[ConfigDict] = _ROW_CONFIG

    id: UUID
    name: str
    description: str | None = None
    created_at: Timestamp
    updated_at: Timestamp


class RelationshipType(BaseModel):
    model_config: ClassVar[ConfigDict] = _ROW_CONFIG

    id: UUID
    name: str
    description: str | None = None
    created_at: Timestamp
    updated_at: Timestamp


class RequirementRelationship(BaseModel):
    """A directed, typed edge between two requirements."""

    model_config: ClassVar[ConfigDict] = _ROW_CONFIG

    id: UUID
    source_requirement_id: UUID
    target_requirement_id: UUID
    relationship_type_id: UUID
    created_by: UUID
    created_at: Timestamp


class StatusModel(BaseModel):
    """A named workflow for one entity type."""

    model_config: ClassVar[ConfigDict] = _ROW_CONFIG

    id: UUID
    entity_type: EntityType
    name: str
    description: str | None = None
    is_default: bool = False
    created_at: Timestamp
    updated_at: Timestamp


class Status(BaseModel):
    model_config: ClassVar[ConfigDict] = _ROW_CONFIG

    id: UUID
    status_model_id: UUID
    name: str
    description: str | None = None
    color: str | None = None
    is_initial: bool = False
    is_final: bool = False
    order: int = 0
    created_at: Timestamp
    updated_at: Timestamp


class StatusTransition(BaseModel):
    model_config: ClassVar[ConfigDict] = _ROW_CONFIG

    id: UUID
    status_model_id: UUID
    from_status_id: UUID
    to_status_id: UUID
    name: str | None = None
    description: str | None = None
    created_at: Timestamp
    updated_at: Timestamp


class StatusModelDetail(BaseModel):
    """A status model together with its statuses and transitions."""

    model_config: ClassVar[ConfigDict] = _ROW_CONFIG

    status_model: StatusModel
    statuses: list[Status] = Field(default_factory=list)
    transitions: list[StatusTransition] = Field(default_factory=list)


# =============================================================================
# Input models
# =============================================================================


class EpicCreate(BaseModel):
    model_config: ClassVar[ConfigDict] = _INPUT_CONFIG

    title: str
    description: str | None = None
    priority: int = Priority.MEDIUM
    assignee_id: UUID | None = None


class EpicUpdate(BaseModel):
    model_config: ClassVar[ConfigDict] = _INPUT_CONFIG

    title: str | None = None
    description: str | None = None
    priority: int | None = None
    assignee_id: UUID | None = None
    status: str | None = None


class UserStoryCreate(BaseModel):
    """Input for a new user story.

    ``epic_id`` accepts a UUID or an ``EP-`` reference. It may be omitted when
    the epic is given by the URL.
    """

    model_config: ClassVar[ConfigDict] = _INPUT_CONFIG

    epic_id: str | None = None
    title: str
    description: str | None = None
    priority: int = Priority.MEDIUM
    assignee_id: UUID | None = None


class UserStoryUpdate(BaseModel):
    model_config: ClassVar[ConfigDict] = _INPUT_CONFIG

    title: str | None = None
    description: str | None = None
    priority: int | None = None
    assignee_id: UUID | None = None
    status: str | None = None


class AcceptanceCriteriaCreate(BaseModel):
    model_config: ClassVar[ConfigDict] = _INPUT_CONFIG

    user_story_id: str | None = None
    description: str


class AcceptanceCriteriaUpdate(BaseModel):
    model_config: ClassVar[ConfigDict] = _INPUT_CONFIG

    description: str | None = None


class RequirementCreate(BaseModel):
    """Input for a new requirement.

    ``type_id`` defaults to the seeded ``Functional`` type when omitted.
    """

    model_config: ClassVar[ConfigDict] = _INPUT_CONFIG

    user_story_id: str | None = None
    acceptance_criteria_id: str | None = None
    type_id: UUID | None = None
    title: str
    description: str | None = None
    priority: int = Priority.MEDIUM
    assignee_id: UUID | None = None


class RequirementUpdate(BaseModel):
    model_config: ClassVar[ConfigDict] = _INPUT_CONFIG

    title: str | None = None
    description: str | None = None
    priority: int | None = None
    assignee_id: UUID | None = None
    acceptance_criteria_id: str | None = None
    type_id: UUID | None = None
    status: str | None = None


class RelationshipCreate(BaseModel):
    model_config: ClassVar[ConfigDict] = _INPUT_CONFIG

    source_requirement_id: str
    target_requirement_id: str
    relationship_type_id: UUID


# =============================================================================
# Listing and deletion results
# =============================================================================


@dataclass(frozen=True, slots=True)
class Page[T]:
    """One window of a filtered, ordered listing.

    Attributes:
        data: Items in this window.
        total_count: Number of items matching the filters, ignoring the window.
        limit: Window size.
        offset: Window start.
    """

    data: list[T]
    total_count: int
    limit: int
    offset: int

    @classmethod
    def whole(cls, items: Sequence[T]) -> "Page[T]":
        """Wrap an unpaginated listing as a single window holding every item."""
        return cls(data=list(items), total_count=len(items), limit=len(items), offset=0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "data": [
                item.model_dump(mode="json") if isinstance(item, BaseModel) else item
                for item in self.data
            ],
            "total_count": self.total_count,
            "limit": self.limit,
            "offset": self.offset,
        }


class Dependency(BaseModel):
    """An entity that blocks or is affected by a deletion."""

    model_config: ClassVar[ConfigDict] = _ROW_CONFIG

    entity_type: str
    entity_id: UUID
    reference_id: str | None = None
    title: str | None = None
    reason: str


class DependencyInfo(BaseModel):
    """Outcome of a deletion dry run.

    Attributes:
        can_delete: True when a plain delete would succeed.
        requires_confirmation: True when only a forced delete would succeed.
        dependencies: Entities that block a plain delete.
        cascade_delete_count: Number of entities a forced delete would remove.
        cascade_delete_entities: The entities a forced delete would remove.
    """

    model_config: ClassVar[ConfigDict] = _ROW_CONFIG

    entity_type: EntityType
    entity_id: UUID
    reference_id: str
    can_delete: bool
    requires_confirmation: bool
    dependencies: list[Dependency] = Field(default_factory=list)
    cascade_delete_count: int = 0
    cascade_delete_entities: list[Dependency] = Field(default_factory=list)


class DeletedEntity(BaseModel):
    model_config: ClassVar[ConfigDict] = _ROW_CONFIG

    entity_type: EntityType
    entity_id: UUID
    reference_id: str


class DeletionResult(BaseModel):
    model_config: ClassVar[ConfigDict] = _ROW_CONFIG

    entity_type: EntityType
    entity_id: UUID
    reference_id: str
    deleted_at: Timestamp
    deleted_by: UUID
    cascade_deleted: list[DeletedEntity] = Field(default_factory=list)


# =============================================================================
# Configuration input models
# =============================================================================


class TypeCreate(BaseModel):
    """Input for a requirement type or relationship type."""

    model_config: ClassVar[ConfigDict] = _INPUT_CONFIG

    name: str
    description: str | None = None


class TypeUpdate(BaseModel):
    model_config: ClassVar[ConfigDict] = _INPUT_CONFIG

    name: str | None = None
    description: str | None = None


class StatusModelCreate(BaseModel):
    model_config: ClassVar[ConfigDict] = _INPUT_CONFIG

    entity_type: EntityType
    name: str
    description: str | None = None
    is_default: bool = False


class StatusModelUpdate(BaseModel):
    model_config: ClassVar[ConfigDict] = _INPUT_CONFIG

    name: str | None = None
    description: str | None = None
    is_default: bool | None = None


class StatusCreate(BaseModel):
    model_config: ClassVar[ConfigDict] = _INPUT_CONFIG

    name: str
    description: str | None = None
    color: str | None = None
    is_initial: bool = False
    is_final: bool = False
    order: int = 0


class StatusUpdate(BaseModel):
    model_config: ClassVar[ConfigDict] = _INPUT_CONFIG

    name: str | None = None
    description: str | None = None
    color: str | None = None
    is_initial: bool | None = None
    is_final: bool | None = None
    order: int | None = None


class StatusTransitionCreate(BaseModel):
    model_config: ClassVar[ConfigDict] = _INPUT_CONFIG

    from_status_id: UUID
    to_status_id: UUID
    name: str | None = None
    description: str | None = None


class StatusTransitionUpdate(BaseModel):
    model_config: ClassVar[ConfigDict] = _INPUT_CONFIG

    name: str | None = None
    description: str | None = None
