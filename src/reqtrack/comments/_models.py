"""Comment models."""

from typing import ClassVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field

from reqtrack.enums import EntityType
from reqtrack.utils import Timestamp

# Derived fields never written to the comments table
DERIVED_FIELDS = frozenset({"depth", "is_inline", "is_reply", "replies"})


class Comment(BaseModel):
    """A general, reply or inline comment on a planning entity.

    A comment is inline when ``linked_text`` and both offsets are set. After a
    description edit an inline comment follows its ``linked_text`` to its new
    position, or is ``hidden`` when the text is gone or ambiguous.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    id: UUID
    entity_type: EntityType
    entity_id: UUID
    parent_comment_id: UUID | None = None
    author_id: UUID
    content: str
    is_resolved: bool = False
    hidden: bool = False
    linked_text: str | None = None
    text_position_start: int | None = None
    text_position_end: int | None = None
    created_at: Timestamp
    updated_at: Timestamp
    depth: int = 0

    @computed_field
    @property
    def is_inline(self) -> bool:
        return (
            self.linked_text is not None
            and self.text_position_start is not None
            and self.text_position_end is not None
        )

    @computed_field
    @property
    def is_reply(self) -> bool:
        return self.parent_comment_id is not None


class ThreadedComment(Comment):
    """A comment with its replies nested beneath it."""

    replies: list["ThreadedComment"] = Field(default_factory=list)


class CommentCreate(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="forbid")

    content: str
    parent_comment_id: UUID | None = None


class InlineCommentCreate(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="forbid")

    content: str
    linked_text: str
    text_position_start: int
    text_position_end: int


class CommentUpdate(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="forbid")

    content: str


class AnchorCheck(BaseModel):
    """Input to the inline anchor dry run."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="forbid")

    linked_text: str
    text_position_start: int
    text_position_end: int


class AnchorValidation(BaseModel):
    """Result of the inline anchor dry run.

    When the anchor is invalid but its text occurs exactly once in the
    description, ``suggested_start`` and ``suggested_end`` locate it.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    valid: bool
    linked_text: str
    text_position_start: int
    text_position_end: int
    error: str | None = None
    suggested_start: int | None = None
    suggested_end: int | None = None


class TextChange(BaseModel):
    """Input to revalidating every inline comment against a new description."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="forbid")

    new_description: str


class InlineRevalidationResult(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    message: str = "Inline comments validated successfully"
    checked: int
    hidden: int
    restored: int
    moved: int
