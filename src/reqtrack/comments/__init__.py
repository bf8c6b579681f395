"""Comments and inline anchors."""

from ._anchors import (
    AnchorRevalidation,
    anchor_matches,
    find_occurrences,
    reanchor,
    validate_anchor,
)
from ._models import (
    AnchorCheck,
    AnchorValidation,
    Comment,
    CommentCreate,
    CommentUpdate,
    InlineCommentCreate,
    InlineRevalidationResult,
    TextChange,
    ThreadedComment,
)
from ._service import CommentService

__all__ = [
    "AnchorCheck",
    "AnchorRevalidation",
    "AnchorValidation",
    "Comment",
    "CommentCreate",
    "CommentService",
    "CommentUpdate",
    "InlineCommentCreate",
    "InlineRevalidationResult",
    "TextChange",
    "ThreadedComment",
    "anchor_matches",
    "find_occurrences",
    "reanchor",
    "validate_anchor",
]
