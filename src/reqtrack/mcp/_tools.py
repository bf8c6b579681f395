# pyright: reportExplicitAny=false, reportAny=false
"""Tools exposed through ``tools/call``.

Each tool declares a Pydantic argument model, which doubles as the JSON schema
returned by ``tools/list``, and a handler that calls the same services as the
HTTP routes. Identifier arguments accept a UUID or a reference ID.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar, Final
from uuid import UUID

import orjson
from pydantic import BaseModel, ConfigDict, Field

from reqtrack.enums import EntityType, Role
from reqtrack.planning import (
    AcceptanceCriteriaCreate,
    EpicCreate,
    EpicUpdate,
    RelationshipCreate,
    RequirementCreate,
    RequirementUpdate,
    UserStoryCreate,
    UserStoryUpdate,
    render_hierarchy,
)
from reqtrack.search import DEFAULT_SEARCH_LIMIT, SearchOptions

if TYPE_CHECKING:
    from collections.abc import Callable

    from reqtrack.auth import Principal
    from reqtrack.services import Services

__all__ = [
    "Tool",
    "ToolRegistry",
    "create_tool_registry",
    "text_result",
]

_ARGS_CONFIG: Final = ConfigDict(frozen=True, extra="forbid")


def text_result(message: str, data: object = None) -> dict[str, Any]:
    """Build a tool result: a summary line, then the data as indented JSON."""
    content = [{"type": "text", "text": message}]
    if data is not None:
        encoded = orjson.dumps(data, option=orjson.OPT_INDENT_2).decode()
        content.append({"type": "text", "text": encoded})
    return {"content": content}


def _dump(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(mode="json")


# =============================================================================
# Argument models
# =============================================================================


class CreateEpicArgs(BaseModel):
    model_config: ClassVar[ConfigDict] = _ARGS_CONFIG

    title: str = Field(description="Epic title (max 500 characters)")
    priority: int = Field(description="1 Critical, 2 High, 3 Medium, 4 Low")
    description: str | None = None
    assignee_id: UUID | None = None


class UpdateEpicArgs(BaseModel):
    model_config: ClassVar[ConfigDict] = _ARGS_CONFIG

    epic_id: str = Field(description="Epic UUID or reference ID (EP-001)")
    title: str | None = None
    description: str | None = None
    priority: int | None = None
    assignee_id: UUID | None = None
    status: str | None = None


class ListEpicsArgs(BaseModel):
    model_config: ClassVar[ConfigDict] = _ARGS_CONFIG

    status: str | None = None
    priority: int | None = None
    creator_id: UUID | None = None
    assignee_id: UUID | None = None
    order_by: str = "created_at"
    limit: int = 50
    offset: int = 0


class EpicHierarchyArgs(BaseModel):
    model_config: ClassVar[ConfigDict] = _ARGS_CONFIG

    epic_id: str = Field(description="Epic UUID or reference ID (EP-001)")


class CreateUserStoryArgs(BaseModel):
    model_config: ClassVar[ConfigDict] = _ARGS_CONFIG

    epic_id: str = Field(description="Parent epic UUID or reference ID")
    title: str
    priority: int
    description: str | None = Field(
        default=None,
        description="Must follow: As <role>, I want <function>, so that <goal>",
    )
    assignee_id: UUID | None = None


class UpdateUserStoryArgs(BaseModel):
    model_config: ClassVar[ConfigDict] = _ARGS_CONFIG

    user_story_id: str = Field(description="User story UUID or reference ID (US-001)")
    title: str | None = None
    description: str | None = None
    priority: int | None = None
    assignee_id: UUID | None = None
    status: str | None = None


class UserStoryRequirementsArgs(BaseModel):
    model_config: ClassVar[ConfigDict] = _ARGS_CONFIG

    user_story_id: str = Field(description="User story UUID or reference ID (US-001)")


class CreateAcceptanceCriteriaArgs(BaseModel):
    model_config: ClassVar[ConfigDict] = _ARGS_CONFIG

    user_story_id: str = Field(description="User story UUID or reference ID (US-001)")
    description: str = Field(description="Criteria text (max 50000 characters)")


class CreateRequirementArgs(BaseModel):
    model_config: ClassVar[ConfigDict] = _ARGS_CONFIG

    user_story_id: str = Field(description="User story UUID or reference ID (US-001)")
    title: str
    priority: int
    type_id: UUID | None = Field(
        default=None, description="Requirement type; defaults to Functional"
    )
    acceptance_criteria_id: str | None = None
    description: str | None = None
    assignee_id: UUID | None = None


class UpdateRequirementArgs(BaseModel):
    model_config: ClassVar[ConfigDict] = _ARGS_CONFIG

    requirement_id: str = Field(description="Requirement UUID or reference ID (REQ-001)")
    title: str | None = None
    description: str | None = None
    priority: int | None = None
    assignee_id: UUID | None = None
    acceptance_criteria_id: str | None = None
    type_id: UUID | None = None
    status: str | None = None


class CreateRelationshipArgs(BaseModel):
    model_config: ClassVar[ConfigDict] = _ARGS_CONFIG

    source_requirement_id: str
    target_requirement_id: str
    relationship_type_id: UUID


class SearchGlobalArgs(BaseModel):
    model_config: ClassVar[ConfigDict] = _ARGS_CONFIG

    query: str
    entity_types: list[EntityType] | None = None
    limit: int = DEFAULT_SEARCH_LIMIT
    offset: int = 0


class SearchRequirementsArgs(BaseModel):
    model_config: ClassVar[ConfigDict] = _ARGS_CONFIG

    query: str
    limit: int = 50
    offset: int = 0


# =============================================================================
# Handlers
# =============================================================================


def _create_epic(services: Services, principal: Principal, args: CreateEpicArgs) -> dict[str, Any]:
    epic = services.epics.create(
        EpicCreate.model_validate(args.model_dump()), creator_id=principal.user_id
    )
    return text_result(f"Created epic {epic.reference_id}: {epic.title}", _dump(epic))


def _update_epic(services: Services, _principal: Principal, args: UpdateEpicArgs) -> dict[str, Any]:
    changes = args.model_dump(exclude_unset=True, exclude={"epic_id"})
    epic = services.epics.update(args.epic_id, EpicUpdate.model_validate(changes))
    return text_result(f"Updated epic {epic.reference_id}: {epic.title}", _dump(epic))


def _list_epics(services: Services, _principal: Principal, args: ListEpicsArgs) -> dict[str, Any]:
    page = services.epics.list(**args.model_dump())
    return text_result(
        f"Found {len(page.data)} epics (total: {page.total_count})", page.to_dict()
    )


def _epic_hierarchy(
    services: Services, _principal: Principal, args: EpicHierarchyArgs
) -> dict[str, Any]:
    return text_result(render_hierarchy(services.hierarchy.get_epic_hierarchy(args.epic_id)))


def _create_user_story(
    services: Services, principal: Principal, args: CreateUserStoryArgs
) -> dict[str, Any]:
    data = UserStoryCreate.model_validate(args.model_dump(exclude={"epic_id"}))
    story = services.user_stories.create(
        data, creator_id=principal.user_id, epic=args.epic_id
    )
    return text_result(
        f"Created user story {story.reference_id}: {story.title}", _dump(story)
    )


def _update_user_story(
    services: Services, _principal: Principal, args: UpdateUserStoryArgs
) -> dict[str, Any]:
    changes = args.model_dump(exclude_unset=True, exclude={"user_story_id"})
    story = services.user_stories.update(
        args.user_story_id, UserStoryUpdate.model_validate(changes)
    )
    return text_result(
        f"Updated user story {story.reference_id}: {story.title}", _dump(story)
    )


def _user_story_requirements(
    services: Services, _principal: Principal, args: UserStoryRequirementsArgs
) -> dict[str, Any]:
    story = services.user_stories.get(args.user_story_id)
    requirements = services.requirements.list_by_user_story(story.id)
    return text_result(
        f"User story {story.reference_id} has {len(requirements)} requirements",
        {
            "user_story": _dump(story),
            "requirements": [_dump(requirement) for requirement in requirements],
        },
    )


def _create_acceptance_criteria(
    services: Services, principal: Principal, args: CreateAcceptanceCriteriaArgs
) -> dict[str, Any]:
    criteria = services.acceptance_criteria.create(
        AcceptanceCriteriaCreate(description=args.description),
        author_id=principal.user_id,
        user_story=args.user_story_id,
    )
    return text_result(
        f"Created acceptance criteria {criteria.reference_id}", _dump(criteria)
    )


def _create_requirement(
    services: Services, principal: Principal, args: CreateRequirementArgs
) -> dict[str, Any]:
    data = RequirementCreate.model_validate(args.model_dump(exclude={"user_story_id"}))
    requirement = services.requirements.create(
        data, creator_id=principal.user_id, user_story=args.user_story_id
    )
    return text_result(
        f"Created requirement {requirement.reference_id}: {requirement.title}",
        _dump(requirement),
    )


def _update_requirement(
    services: Services, _principal: Principal, args: UpdateRequirementArgs
) -> dict[str, Any]:
    changes = args.model_dump(exclude_unset=True, exclude={"requirement_id"})
    requirement = services.requirements.update(
        args.requirement_id, RequirementUpdate.model_validate(changes)
    )
    return text_result(
        f"Updated requirement {requirement.reference_id}: {requirement.title}",
        _dump(requirement),
    )


def _create_relationship(
    services: Services, principal: Principal, args: CreateRelationshipArgs
) -> dict[str, Any]:
    relationship = services.requirements.create_relationship(
        RelationshipCreate.model_validate(args.model_dump()),
        created_by=principal.user_id,
    )
    return text_result(
        f"Created relationship between {args.source_requirement_id} "
        f"and {args.target_requirement_id}",
        _dump(relationship),
    )


def _search_global(
    services: Services, _principal: Principal, args: SearchGlobalArgs
) -> dict[str, Any]:
    response = services.search.search(
        SearchOptions(
            query=args.query,
            entity_types=args.entity_types,
            limit=args.limit,
            offset=args.offset,
        )
    )
    return text_result(
        f"Found {response.total_count} results for query '{args.query}'",
        _dump(response),
    )


def _search_requirements(
    services: Services, _principal: Principal, args: SearchRequirementsArgs
) -> dict[str, Any]:
    page = services.requirements.search_requirements(
        args.query, limit=args.limit, offset=args.offset
    )
    return text_result(
        f"Found {page.total_count} requirements matching query '{args.query}'",
        page.to_dict(),
    )


# =============================================================================
# Registry
# =============================================================================


@dataclass(frozen=True, slots=True)
class Tool:
    """A callable tool and the schema of its arguments.

    Attributes:
        name: The name clients pass to ``tools/call``.
        description: One-line summary shown by ``tools/list``.
        arguments: Pydantic model that validates the call arguments.
        handler: Called with the services, the caller and parsed arguments.
        role: Minimum role required to call the tool.
    """

    name: str
    description: str
    arguments: type[BaseModel]
    handler: Callable[..., dict[str, Any]]
    role: Role = Role.COMMENTER

    def definition(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.arguments.model_json_schema(),
        }


@dataclass(frozen=True, slots=True)
class ToolRegistry:
    """Lookup of tools by name, in registration order."""

    _tools: dict[str, Tool] = field(default_factory=dict)

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def definitions(self) -> list[dict[str, Any]]:
        return [tool.definition() for tool in self._tools.values()]

    def names(self) -> list[str]:
        return list(self._tools)


def create_tool_registry() -> ToolRegistry:
    """Create the registry of every tool served over JSON-RPC."""
    tools = [
        Tool(
            "create_epic",
            "Create a new epic. The creator is the authenticated user.",
            CreateEpicArgs,
            _create_epic,
            Role.USER,
        ),
        Tool(
            "update_epic",
            "Update an existing epic.",
            UpdateEpicArgs,
            _update_epic,
            Role.USER,
        ),
        Tool("list_epics", "List epics with optional filters.", ListEpicsArgs, _list_epics),
        Tool(
            "epic_hierarchy",
            "Show an epic with its user stories, requirements and acceptance criteria "
            "as a text tree.",
            EpicHierarchyArgs,
            _epic_hierarchy,
        ),
        Tool(
            "create_user_story",
            "Create a new user story within an epic.",
            CreateUserStoryArgs,
            _create_user_story,
            Role.USER,
        ),
        Tool(
            "update_user_story",
            "Update an existing user story.",
            UpdateUserStoryArgs,
            _update_user_story,
            Role.USER,
        ),
        Tool(
            "get_user_story_requirements",
            "List the requirements of a user story.",
            UserStoryRequirementsArgs,
            _user_story_requirements,
        ),
        Tool(
            "create_acceptance_criteria",
            "Add an acceptance criteria to a user story.",
            CreateAcceptanceCriteriaArgs,
            _create_acceptance_criteria,
            Role.USER,
        ),
        Tool(
            "create_requirement",
            "Create a new requirement within a user story.",
            CreateRequirementArgs,
            _create_requirement,
            Role.USER,
        ),
        Tool(
            "update_requirement",
            "Update an existing requirement.",
            UpdateRequirementArgs,
            _update_requirement,
            Role.USER,
        ),
        Tool(
            "create_relationship",
            "Create a typed relationship between two requirements.",
            CreateRelationshipArgs,
            _create_relationship,
            Role.USER,
        ),
        Tool(
            "search_global",
            "Full-text search across epics, user stories, acceptance criteria "
            "and requirements.",
            SearchGlobalArgs,
            _search_global,
        ),
        Tool(
            "search_requirements",
            "Search requirement titles and descriptions.",
            SearchRequirementsArgs,
            _search_requirements,
        ),
    ]
    return ToolRegistry(_tools={tool.name: tool for tool in tools})
