"""Planning domain: epics, user stories, acceptance criteria and requirements."""

from ._acceptance_criteria import AcceptanceCriteriaService
from ._base import MAX_PAGE_LIMIT, MAX_TITLE_LENGTH, EntityService
from ._deletion import DeletionEngine
from ._epics import EpicService
from ._hierarchy import EpicHierarchy, HierarchyService, UserStoryNode, render_hierarchy
from ._models import (
    AcceptanceCriteria,
    AcceptanceCriteriaCreate,
    AcceptanceCriteriaUpdate,
    DeletedEntity,
    DeletionResult,
    Dependency,
    DependencyInfo,
    Epic,
    EpicCreate,
    EpicUpdate,
    Page,
    PlanningEntity,
    RelationshipCreate,
    RelationshipType,
    Requirement,
    RequirementCreate,
    RequirementRelationship,
    RequirementType,
    RequirementUpdate,
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
    UserStory,
    UserStoryCreate,
    UserStoryUpdate,
)
from ._reference_ids import (
    LOCK_KEYS,
    AllocatedReference,
    Identifier,
    allocate_reference_id,
    find_entity,
    format_reference_id,
    parse_identifier,
)
from ._requirements import DEFAULT_REQUIREMENT_TYPE, RequirementService
from ._types import ConfigService
from ._user_stories import (
    USER_STORY_TEMPLATE,
    UserStoryService,
    validate_user_story_template,
)
from ._workflow import Workflow, WorkflowValidator, normalize_status_name

__all__ = [
    "DEFAULT_REQUIREMENT_TYPE",
    "LOCK_KEYS",
    "MAX_PAGE_LIMIT",
    "MAX_TITLE_LENGTH",
    "USER_STORY_TEMPLATE",
    "AcceptanceCriteria",
    "AcceptanceCriteriaCreate",
    "AcceptanceCriteriaService",
    "AcceptanceCriteriaUpdate",
    "AllocatedReference",
    "ConfigService",
    "DeletedEntity",
    "DeletionEngine",
    "DeletionResult",
    "Dependency",
    "DependencyInfo",
    "EntityService",
    "Epic",
    "EpicCreate",
    "EpicHierarchy",
    "EpicService",
    "EpicUpdate",
    "HierarchyService",
    "Identifier",
    "Page",
    "PlanningEntity",
    "RelationshipCreate",
    "RelationshipType",
    "Requirement",
    "RequirementCreate",
    "RequirementRelationship",
    "RequirementService",
    "RequirementType",
    "RequirementUpdate",
    "Status",
    "StatusCreate",
    "StatusModel",
    "StatusModelCreate",
    "StatusModelDetail",
    "StatusModelUpdate",
    "StatusTransition",
    "StatusTransitionCreate",
    "StatusTransitionUpdate",
    "StatusUpdate",
    "TypeCreate",
    "TypeUpdate",
    "UserStory",
    "UserStoryCreate",
    "UserStoryNode",
    "UserStoryService",
    "UserStoryUpdate",
    "Workflow",
    "WorkflowValidator",
    "allocate_reference_id",
    "find_entity",
    "format_reference_id",
    "normalize_status_name",
    "parse_identifier",
    "render_hierarchy",
    "validate_user_story_template",
]
