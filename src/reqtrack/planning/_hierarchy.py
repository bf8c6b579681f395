"""Epic hierarchy views.

``get_epic_hierarchy`` returns the epic with its user stories, and each story
with its requirements and acceptance criteria. ``render_epic_hierarchy``
draws the same structure as a text tree for terminals and tool output.
"""

from __future__ import annotations

from io import StringIO
from typing import TYPE_CHECKING, ClassVar, Final

from pydantic import BaseModel, ConfigDict, Field
from rich.console import Console
from rich.text import Text
from rich.tree import Tree

from reqtrack.enums import EntityType
from reqtrack.planning._models import AcceptanceCriteria, Epic, Requirement, UserStory
from reqtrack.planning._reference_ids import find_entity

if TYPE_CHECKING:
    from uuid import UUID

    from reqtrack.store import Store

__all__ = [
    "EpicHierarchy",
    "HierarchyService",
    "UserStoryNode",
    "render_hierarchy",
]

AC_DESCRIPTION_WIDTH: Final = 80
_RENDER_WIDTH: Final = 4096


class UserStoryNode(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    user_story: UserStory
    requirements: list[Requirement] = Field(default_factory=list)
    acceptance_criteria: list[AcceptanceCriteria] = Field(default_factory=list)


class EpicHierarchy(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    epic: Epic
    user_stories: list[UserStoryNode] = Field(default_factory=list)


def _truncate(text: str, width: int) -> str:
    flat = " ".join(text.split())
    if len(flat) <= width:
        return flat
    return flat[: width - 3].rstrip() + "..."


def render_hierarchy(hierarchy: EpicHierarchy) -> str:
    """Render a hierarchy as a box-drawn text tree.

    The epic line reads ``EP-001 [P2] [Backlog] Title``. Acceptance criteria
    descriptions are cut to 80 characters.
    """
    epic = hierarchy.epic
    root = Tree(
        Text(f"{epic.reference_id} [P{int(epic.priority)}] [{epic.status}] {epic.title}")
    )
    if not hierarchy.user_stories:
        _ = root.add(Text("No user stories attached"))

    for node in hierarchy.user_stories:
        story = node.user_story
        branch = root.add(
            Text(
                f"{story.reference_id} [P{int(story.priority)}] "
                f"[{story.status}] {story.title}"
            )
        )
        if node.requirements:
            for requirement in node.requirements:
                _ = branch.add(
                    Text(
                        f"{requirement.reference_id} [P{int(requirement.priority)}] "
                        f"[{requirement.status}] {requirement.title}"
                    )
                )
        else:
            _ = branch.add(Text("No requirements"))

        if node.acceptance_criteria:
            for ac in node.acceptance_criteria:
                _ = branch.add(
                    Text(
                        f"{ac.reference_id} "
                        f"{_truncate(ac.description, AC_DESCRIPTION_WIDTH)}"
                    )
                )
        else:
            _ = branch.add(Text("No acceptance criteria"))

    buffer = StringIO()
    console = Console(
        file=buffer,
        width=_RENDER_WIDTH,
        color_system=None,
        force_terminal=False,
        legacy_windows=False,
    )
    console.print(root)
    return "\n".join(line.rstrip() for line in buffer.getvalue().splitlines())


class HierarchyService:
    """Loads an epic together with everything beneath it."""

    __slots__: Final = ("_store",)

    _store: Store

    def __init__(self, store: Store) -> None:
        self._store = store

    def get_epic_hierarchy(self, epic: str | UUID) -> EpicHierarchy:
        """Load the full tree of an epic.

        Raises:
            ValidationError: If ``epic`` is not a valid epic identifier.
            NotFoundError: If the epic does not exist.
        """
        with self._store.transaction() as tx:
            found = find_entity(tx, Epic, EntityType.EPIC, epic)
            stories = tx.fetch_all(
                UserStory,
                "SELECT * FROM user_stories WHERE epic_id = ? ORDER BY created_at, id",
                (str(found.id),),
            )
            nodes = [
                UserStoryNode(
                    user_story=story,
                    requirements=tx.fetch_all(
                        Requirement,
                        "SELECT * FROM requirements WHERE user_story_id = ? "
                        "ORDER BY created_at, id",
                        (str(story.id),),
                    ),
                    acceptance_criteria=tx.fetch_all(
                        AcceptanceCriteria,
                        "SELECT * FROM acceptance_criteria WHERE user_story_id = ? "
                        "ORDER BY created_at, id",
                        (str(story.id),),
                    ),
                )
                for story in stories
            ]
        return EpicHierarchy(epic=found, user_stories=nodes)

    def render_epic_hierarchy(self, epic: str | UUID) -> str:
        return render_hierarchy(self.get_epic_hierarchy(epic))
