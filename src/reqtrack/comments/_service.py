# pyright: reportAny=false
"""Comment storage, threading, resolution and anchor revalidation."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final
from uuid import UUID, uuid4

from reqtrack.comments._anchors import (
    AnchorRevalidation,
    reanchor,
    validate_anchor,
)
from reqtrack.comments._models import (
    DERIVED_FIELDS,
    AnchorValidation,
    Comment,
    InlineRevalidationResult,
    ThreadedComment,
)
from reqtrack.enums import EntityType, Role
from reqtrack.exceptions import (
    ForbiddenError,
    InUseError,
    NotFoundError,
    TextFragmentValidationError,
    ValidationError,
)
from reqtrack.planning._models import AcceptanceCriteria, Epic, Requirement, UserStory
from reqtrack.planning._reference_ids import find_entity
from reqtrack.utils import format_timestamp, utc_now

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from reqtrack.comments._models import (
        AnchorCheck,
        CommentCreate,
        CommentUpdate,
        InlineCommentCreate,
        TextChange,
    )
    from reqtrack.planning import PlanningEntity
    from reqtrack.store import Store, Transaction
    from reqtrack.utils.database import SQLValue

__all__ = ["CommentService"]

_ENTITY_MODELS: Final = {
    EntityType.EPIC: Epic,
    EntityType.USER_STORY: UserStory,
    EntityType.ACCEPTANCE_CRITERIA: AcceptanceCriteria,
    EntityType.REQUIREMENT: Requirement,
}

_SELECT_BY_ENTITY: Final = (
    "SELECT * FROM comments WHERE entity_type = ? AND entity_id = ? "
    "ORDER BY created_at, id"
)


def _content(value: str) -> str:
    content = value.strip()
    if not content:
        msg = "Comment content must not be empty"
        raise ValidationError(msg, field="content")
    return content


def _with_depths(comments: list[Comment]) -> list[Comment]:
    by_id = {comment.id: comment for comment in comments}
    depths: dict[UUID, int] = {}

    def depth(comment: Comment) -> int:
        if comment.id in depths:
            return depths[comment.id]
        parent = by_id.get(comment.parent_comment_id) if comment.parent_comment_id else None
        value = 0 if parent is None else depth(parent) + 1
        depths[comment.id] = value
        return value

    return [comment.model_copy(update={"depth": depth(comment)}) for comment in comments]


def _thread(comments: list[Comment]) -> list[ThreadedComment]:
    children: dict[UUID | None, list[Comment]] = {}
    ids = {comment.id for comment in comments}
    for comment in comments:
        parent = comment.parent_comment_id if comment.parent_comment_id in ids else None
        children.setdefault(parent, []).append(comment)

    def build(comment: Comment) -> ThreadedComment:
        return ThreadedComment.model_validate({
            **comment.model_dump(exclude={"is_inline", "is_reply"}),
            "replies": [build(child) for child in children.get(comment.id, [])],
        })

    return [build(root) for root in children.get(None, [])]


class CommentService:
    """Comments on epics, user stories, acceptance criteria and requirements."""

    __slots__: Final = ("_logger", "_store")

    _store: Store
    _logger: FilteringBoundLogger | None

    def __init__(
        self, store: Store, *, logger: FilteringBoundLogger | None = None
    ) -> None:
        self._store = store
        self._logger = logger

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _entity(
        tx: Transaction, entity_type: EntityType, entity: str | UUID
    ) -> PlanningEntity:
        return find_entity(tx, _ENTITY_MODELS[entity_type], entity_type, entity)

    @staticmethod
    def _comment(tx: Transaction, comment_id: UUID) -> Comment:
        found = tx.fetch_one(Comment, "SELECT * FROM comments WHERE id = ?", (str(comment_id),))
        if found is None:
            msg = "Comment not found"
            raise NotFoundError(msg, entity_type="comment", identifier=str(comment_id))
        return found

    @staticmethod
    def _depth(tx: Transaction, comment: Comment) -> int:
        depth = 0
        parent_id = comment.parent_comment_id
        while parent_id is not None:
            depth += 1
            parent_id_value = tx.fetch_value(
                "SELECT parent_comment_id FROM comments WHERE id = ?", (str(parent_id),)
            )
            parent_id = UUID(str(parent_id_value)) if parent_id_value else None
        return depth

    def _insert(self, tx: Transaction, comment: Comment) -> Comment:
        tx.insert("comments", comment, exclude=set(DERIVED_FIELDS))
        created = comment.model_copy(update={"depth": self._depth(tx, comment)})
        if self._logger is not None:
            self._logger.info(
                "comment_created",
                comment_id=str(comment.id),
                entity_type=comment.entity_type.value,
                entity_id=str(comment.entity_id),
                inline=comment.is_inline,
                reply=comment.is_reply,
            )
        return created

    def _entity_comments(
        self, tx: Transaction, entity_type: EntityType, entity: str | UUID
    ) -> list[Comment]:
        found = self._entity(tx, entity_type, entity)
        return tx.fetch_all(Comment, _SELECT_BY_ENTITY, (entity_type.value, str(found.id)))

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------

    def create(
        self,
        entity_type: EntityType,
        entity: str | UUID,
        author_id: UUID,
        data: CommentCreate,
    ) -> Comment:
        """Add a general comment, or a reply when ``parent_comment_id`` is set.

        Raises:
            ValidationError: On empty content or a parent on another entity.
            NotFoundError: If the entity or parent comment does not exist.
        """
        content = _content(data.content)
        with self._store.transaction() as tx:
            found = self._entity(tx, entity_type, entity)
            if data.parent_comment_id is not None:
                parent = self._comment(tx, data.parent_comment_id)
                if parent.entity_type != entity_type or parent.entity_id != found.id:
                    msg = "Parent comment belongs to a different entity"
                    raise ValidationError(msg, field="parent_comment_id")
            now = utc_now()
            comment = Comment(
                id=uuid4(),
                entity_type=entity_type,
                entity_id=found.id,
                parent_comment_id=data.parent_comment_id,
                author_id=author_id,
                content=content,
                created_at=now,
                updated_at=now,
            )
            return self._insert(tx, comment)

    def create_inline(
        self,
        entity_type: EntityType,
        entity: str | UUID,
        author_id: UUID,
        data: InlineCommentCreate,
    ) -> Comment:
        """Add a comment anchored to a fragment of the entity description.

        Raises:
            TextFragmentValidationError: If the anchor does not match.
        """
        content = _content(data.content)
        with self._store.transaction() as tx:
            found = self._entity(tx, entity_type, entity)
            validate_anchor(
                found.description or "",
                data.linked_text,
                data.text_position_start,
                data.text_position_end,
            )
            now = utc_now()
            comment = Comment(
                id=uuid4(),
                entity_type=entity_type,
                entity_id=found.id,
                author_id=author_id,
                content=content,
                linked_text=data.linked_text,
                text_position_start=data.text_position_start,
                text_position_end=data.text_position_end,
                created_at=now,
                updated_at=now,
            )
            return self._insert(tx, comment)

    def reply(self, parent_id: UUID, author_id: UUID, content: str) -> Comment:
        """Reply to a comment. The reply is a general comment on the same entity."""
        text = _content(content)
        with self._store.transaction() as tx:
            parent = self._comment(tx, parent_id)
            now = utc_now()
            comment = Comment(
                id=uuid4(),
                entity_type=parent.entity_type,
                entity_id=parent.entity_id,
                parent_comment_id=parent.id,
                author_id=author_id,
                content=text,
                created_at=now,
                updated_at=now,
            )
            return self._insert(tx, comment)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, comment_id: UUID) -> Comment:
        with self._store.transaction() as tx:
            comment = self._comment(tx, comment_id)
            return comment.model_copy(update={"depth": self._depth(tx, comment)})

    def list_by_entity(self, entity_type: EntityType, entity: str | UUID) -> list[Comment]:
        with self._store.transaction() as tx:
            return _with_depths(self._entity_comments(tx, entity_type, entity))

    def list_threaded(
        self, entity_type: EntityType, entity: str | UUID
    ) -> list[ThreadedComment]:
        """Return root comments with replies nested under them."""
        with self._store.transaction() as tx:
            return _thread(_with_depths(self._entity_comments(tx, entity_type, entity)))

    def list_by_status(
        self, entity_type: EntityType, entity: str | UUID, *, resolved: bool
    ) -> list[Comment]:
        return [
            comment
            for comment in self.list_by_entity(entity_type, entity)
            if comment.is_resolved == resolved
        ]

    def list_inline(self, entity_type: EntityType, entity: str | UUID) -> list[Comment]:
        return [c for c in self.list_by_entity(entity_type, entity) if c.is_inline]

    def list_visible_inline(
        self, entity_type: EntityType, entity: str | UUID
    ) -> list[Comment]:
        """Return inline comments whose anchor matches the current description."""
        return [
            c for c in self.list_by_entity(entity_type, entity) if c.is_inline and not c.hidden
        ]

    def list_replies(self, parent_id: UUID) -> list[Comment]:
        with self._store.transaction() as tx:
            parent = self._comment(tx, parent_id)
            depth = self._depth(tx, parent) + 1
            replies = tx.fetch_all(
                Comment,
                "SELECT * FROM comments WHERE parent_comment_id = ? ORDER BY created_at, id",
                (str(parent.id),),
            )
        return [reply.model_copy(update={"depth": depth}) for reply in replies]

    # -------------------------------------------------------------------------
    # Updates
    # -------------------------------------------------------------------------

    def update(self, comment_id: UUID, data: CommentUpdate, *, actor_id: UUID) -> Comment:
        """Change a comment's content. Only the author may do this.

        Raises:
            ForbiddenError: If ``actor_id`` is not the author.
        """
        content = _content(data.content)
        with self._store.transaction() as tx:
            comment = self._comment(tx, comment_id)
            if comment.author_id != actor_id:
                msg = "Only the author can edit a comment"
                raise ForbiddenError(msg)
            _ = tx.update(
                "comments",
                {"content": content, "updated_at": format_timestamp(utc_now())},
                key_value=str(comment_id),
            )
            updated = self._comment(tx, comment_id)
            return updated.model_copy(update={"depth": self._depth(tx, updated)})

    def _set_resolved(self, comment_id: UUID, *, resolved: bool) -> Comment:
        with self._store.transaction() as tx:
            comment = self._comment(tx, comment_id)
            if comment.is_resolved != resolved:
                _ = tx.update(
                    "comments",
                    {"is_resolved": int(resolved), "updated_at": format_timestamp(utc_now())},
                    key_value=str(comment_id),
                )
                comment = self._comment(tx, comment_id)
            return comment.model_copy(update={"depth": self._depth(tx, comment)})

    def resolve(self, comment_id: UUID) -> Comment:
        """Mark a comment resolved. Idempotent."""
        return self._set_resolved(comment_id, resolved=True)

    def unresolve(self, comment_id: UUID) -> Comment:
        """Mark a comment unresolved. Idempotent."""
        return self._set_resolved(comment_id, resolved=False)

    def delete(self, comment_id: UUID, *, actor_id: UUID, actor_role: Role) -> None:
        """Delete a comment.

        Raises:
            ForbiddenError: If the actor is neither the author nor an Administrator.
            InUseError: If the comment has replies.
        """
        with self._store.transaction() as tx:
            comment = self._comment(tx, comment_id)
            if comment.author_id != actor_id and actor_role is not Role.ADMINISTRATOR:
                msg = "Only the author or an administrator can delete a comment"
                raise ForbiddenError(msg)
            replies = tx.count(
                "SELECT count(*) FROM comments WHERE parent_comment_id = ?",
                (str(comment_id),),
            )
            if replies:
                msg = f"Comment has {replies} reply(ies) and cannot be deleted"
                raise InUseError(msg)
            _ = tx.delete("comments", str(comment_id))
        if self._logger is not None:
            self._logger.info("comment_deleted", comment_id=str(comment_id))

    # -------------------------------------------------------------------------
    # Anchors
    # -------------------------------------------------------------------------

    def validate_inline(
        self, entity_type: EntityType, entity: str | UUID, check: AnchorCheck
    ) -> AnchorValidation:
        """Dry-run an inline anchor against the entity's current description."""
        with self._store.transaction() as tx:
            found = self._entity(tx, entity_type, entity)
        description = found.description or ""
        error: str | None = None
        suggestion: tuple[int, int] | None = None
        try:
            validate_anchor(
                description,
                check.linked_text,
                check.text_position_start,
                check.text_position_end,
            )
        except TextFragmentValidationError as e:
            error = e.message
            suggestion = reanchor(description, check.linked_text)
        return AnchorValidation(
            valid=error is None,
            linked_text=check.linked_text,
            text_position_start=check.text_position_start,
            text_position_end=check.text_position_end,
            error=error,
            suggested_start=suggestion[0] if suggestion else None,
            suggested_end=suggestion[1] if suggestion else None,
        )

    def validate_after_text_change(
        self, entity_type: EntityType, entity: str | UUID, change: TextChange
    ) -> InlineRevalidationResult:
        """Revalidate the entity's inline comments against ``change.new_description``.

        The entity itself is not modified; only comment anchors and visibility.
        """
        with self._store.transaction() as tx:
            found = self._entity(tx, entity_type, entity)
            outcome = self.revalidate_anchors(entity_type, found.id, change.new_description)
        if self._logger is not None:
            self._logger.info(
                "inline_comments_validated",
                entity_type=entity_type.value,
                entity_id=str(found.id),
                checked=outcome.checked,
                hidden=outcome.hidden,
                moved=outcome.moved,
            )
        return InlineRevalidationResult(
            checked=outcome.checked,
            hidden=outcome.hidden,
            restored=outcome.restored,
            moved=outcome.moved,
        )

    def revalidate_anchors(
        self, entity_type: EntityType, entity_id: UUID, new_description: str
    ) -> AnchorRevalidation:
        """Re-anchor every inline comment of an entity against a new description.

        Each comment's ``linked_text`` is looked up in ``new_description``. At a
        unique position the offsets move there and the comment is visible; when
        the text is missing or occurs more than once the comment is hidden.
        Running this twice with the same description changes nothing.
        """
        checked = hidden = restored = moved = 0
        with self._store.transaction() as tx:
            comments = tx.fetch_all(
                Comment,
                "SELECT * FROM comments WHERE entity_type = ? AND entity_id = ? "
                "AND linked_text IS NOT NULL AND text_position_start IS NOT NULL "
                "AND text_position_end IS NOT NULL ORDER BY created_at, id",
                (entity_type.value, str(entity_id)),
            )
            for comment in comments:
                checked += 1
                position = reanchor(new_description, comment.linked_text or "")
                values: dict[str, SQLValue] = {}
                if position is None:
                    if not comment.hidden:
                        hidden += 1
                        values["hidden"] = 1
                else:
                    if comment.hidden:
                        restored += 1
                        values["hidden"] = 0
                    if position != (comment.text_position_start, comment.text_position_end):
                        moved += 1
                        values["text_position_start"], values["text_position_end"] = position
                if values:
                    _ = tx.update("comments", values, key_value=str(comment.id))
        return AnchorRevalidation(
            checked=checked, hidden=hidden, restored=restored, moved=moved
        )
