"""Unit tests for the comment service."""

from collections.abc import Callable

import pytest

from reqtrack.auth import User
from reqtrack.comments import (
    AnchorCheck,
    CommentCreate,
    CommentUpdate,
    InlineCommentCreate,
    TextChange,
)
from reqtrack.enums import EntityType, Role
from reqtrack.exceptions import (
    ForbiddenError,
    InUseError,
    NotFoundError,
    TextFragmentValidationError,
    ValidationError,
)
from reqtrack.planning import Epic, EpicCreate, EpicUpdate
from reqtrack.services import Services

DESCRIPTION = "This is a test epic description for inline comments."


@pytest.fixture
def epic(services: Services, admin: User) -> Epic:
    return services.epics.create(
        EpicCreate(title="Commented", description=DESCRIPTION), creator_id=admin.id
    )


def _inline(content: str = "Clarify") -> InlineCommentCreate:
    return InlineCommentCreate(
        content=content,
        linked_text="description",
        text_position_start=20,
        text_position_end=31,
    )


class TestCreate:
    def test_general_comment(self, services: Services, admin: User, epic: Epic) -> None:
        comment = services.comments.create(
            EntityType.EPIC, epic.reference_id, admin.id, CommentCreate(content=" Hi ")
        )

        assert comment.content == "Hi"
        assert comment.entity_id == epic.id
        assert comment.depth == 0
        assert not comment.is_inline
        assert not comment.is_resolved

    def test_rejects_empty_content(
        self, services: Services, admin: User, epic: Epic
    ) -> None:
        with pytest.raises(ValidationError):
            _ = services.comments.create(
                EntityType.EPIC, epic.id, admin.id, CommentCreate(content="   ")
            )

    def test_missing_entity(self, services: Services, admin: User) -> None:
        with pytest.raises(NotFoundError):
            _ = services.comments.create(
                EntityType.EPIC, "EP-999", admin.id, CommentCreate(content="Hi")
            )

    def test_parent_on_other_entity(
        self, services: Services, admin: User, epic: Epic
    ) -> None:
        other = services.epics.create(EpicCreate(title="Other"), creator_id=admin.id)
        parent = services.comments.create(
            EntityType.EPIC, other.id, admin.id, CommentCreate(content="Root")
        )

        with pytest.raises(ValidationError, match="different entity"):
            _ = services.comments.create(
                EntityType.EPIC,
                epic.id,
                admin.id,
                CommentCreate(content="Reply", parent_comment_id=parent.id),
            )

    def test_inline_comment(self, services: Services, admin: User, epic: Epic) -> None:
        comment = services.comments.create_inline(EntityType.EPIC, epic.id, admin.id, _inline())

        assert comment.is_inline
        assert comment.linked_text == "description"
        assert not comment.hidden

    def test_inline_comment_rejects_mismatch(
        self, services: Services, admin: User, epic: Epic
    ) -> None:
        with pytest.raises(TextFragmentValidationError):
            _ = services.comments.create_inline(
                EntityType.EPIC,
                epic.id,
                admin.id,
                InlineCommentCreate(
                    content="Nope",
                    linked_text="description",
                    text_position_start=0,
                    text_position_end=11,
                ),
            )


class TestThreads:
    def test_replies_nest_and_carry_depth(
        self, services: Services, admin: User, epic: Epic
    ) -> None:
        root = services.comments.create(
            EntityType.EPIC, epic.id, admin.id, CommentCreate(content="Root")
        )
        child = services.comments.reply(root.id, admin.id, "Child")
        grandchild = services.comments.reply(child.id, admin.id, "Grandchild")

        threads = services.comments.list_threaded(EntityType.EPIC, epic.id)

        assert child.depth == 1
        assert grandchild.depth == 2
        assert [t.id for t in threads] == [root.id]
        assert threads[0].replies[0].id == child.id
        assert threads[0].replies[0].replies[0].id == grandchild.id
        assert [r.id for r in services.comments.list_replies(root.id)] == [child.id]

    def test_comment_with_replies_cannot_be_deleted(
        self, services: Services, admin: User, epic: Epic
    ) -> None:
        root = services.comments.create(
            EntityType.EPIC, epic.id, admin.id, CommentCreate(content="Root")
        )
        _ = services.comments.reply(root.id, admin.id, "Child")

        with pytest.raises(InUseError):
            services.comments.delete(root.id, actor_id=admin.id, actor_role=admin.role)


class TestLifecycle:
    def test_resolve_is_idempotent(
        self, services: Services, admin: User, epic: Epic
    ) -> None:
        comment = services.comments.create(
            EntityType.EPIC, epic.id, admin.id, CommentCreate(content="Fix")
        )

        assert services.comments.resolve(comment.id).is_resolved
        assert services.comments.resolve(comment.id).is_resolved
        assert not services.comments.unresolve(comment.id).is_resolved
        assert services.comments.list_by_status(EntityType.EPIC, epic.id, resolved=False)

    def test_only_author_edits(
        self,
        services: Services,
        admin: User,
        epic: Epic,
        make_user: Callable[..., User],
    ) -> None:
        comment = services.comments.create(
            EntityType.EPIC, epic.id, admin.id, CommentCreate(content="Mine")
        )
        other = make_user(Role.COMMENTER)

        with pytest.raises(ForbiddenError):
            _ = services.comments.update(
                comment.id, CommentUpdate(content="Theirs"), actor_id=other.id
            )
        edited = services.comments.update(
            comment.id, CommentUpdate(content="Edited"), actor_id=admin.id
        )
        assert edited.content == "Edited"

    def test_admin_deletes_any_comment(
        self,
        services: Services,
        admin: User,
        epic: Epic,
        make_user: Callable[..., User],
    ) -> None:
        author = make_user(Role.COMMENTER)
        bystander = make_user(Role.USER)
        comment = services.comments.create(
            EntityType.EPIC, epic.id, author.id, CommentCreate(content="Note")
        )

        with pytest.raises(ForbiddenError):
            services.comments.delete(
                comment.id, actor_id=bystander.id, actor_role=bystander.role
            )
        services.comments.delete(comment.id, actor_id=admin.id, actor_role=admin.role)

        with pytest.raises(NotFoundError):
            _ = services.comments.get(comment.id)


class TestAnchors:
    def test_validate_inline_valid(self, services: Services, epic: Epic) -> None:
        result = services.comments.validate_inline(
            EntityType.EPIC,
            epic.id,
            AnchorCheck(linked_text="description", text_position_start=20, text_position_end=31),
        )

        assert result.valid
        assert result.error is None

    def test_validate_inline_suggests_unique_position(
        self, services: Services, epic: Epic
    ) -> None:
        result = services.comments.validate_inline(
            EntityType.EPIC,
            epic.id,
            AnchorCheck(linked_text="description", text_position_start=0, text_position_end=11),
        )

        assert not result.valid
        assert result.error is not None
        assert (result.suggested_start, result.suggested_end) == (20, 31)

    def test_description_edit_moves_shifted_anchor(
        self, services: Services, admin: User, epic: Epic
    ) -> None:
        comment = services.comments.create_inline(EntityType.EPIC, epic.id, admin.id, _inline())

        _ = services.epics.update(epic.id, EpicUpdate(description="NEW:  " + DESCRIPTION))

        moved = services.comments.get(comment.id)
        assert not moved.hidden
        assert (moved.text_position_start, moved.text_position_end) == (26, 37)
        visible = services.comments.list_visible_inline(EntityType.EPIC, epic.id)
        assert [c.id for c in visible] == [comment.id]

    def test_description_edit_hides_missing_anchor(
        self, services: Services, admin: User, epic: Epic
    ) -> None:
        comment = services.comments.create_inline(EntityType.EPIC, epic.id, admin.id, _inline())

        _ = services.epics.update(epic.id, EpicUpdate(description="Completely rewritten text."))

        hidden = services.comments.get(comment.id)
        assert hidden.hidden
        assert (hidden.text_position_start, hidden.text_position_end) == (20, 31)
        assert services.comments.list_visible_inline(EntityType.EPIC, epic.id) == []
        assert [c.id for c in services.comments.list_inline(EntityType.EPIC, epic.id)] == [
            comment.id
        ]

    def test_description_edit_hides_ambiguous_anchor(
        self, services: Services, admin: User, epic: Epic
    ) -> None:
        comment = services.comments.create_inline(EntityType.EPIC, epic.id, admin.id, _inline())

        _ = services.epics.update(
            epic.id, EpicUpdate(description="A description of the description.")
        )

        assert services.comments.get(comment.id).hidden
        assert services.comments.list_visible_inline(EntityType.EPIC, epic.id) == []

    def test_restored_text_unhides(
        self, services: Services, admin: User, epic: Epic
    ) -> None:
        comment = services.comments.create_inline(EntityType.EPIC, epic.id, admin.id, _inline())
        _ = services.epics.update(epic.id, EpicUpdate(description="Completely rewritten text."))

        _ = services.epics.update(epic.id, EpicUpdate(description="Now with a description"))

        restored = services.comments.get(comment.id)
        assert not restored.hidden
        assert (restored.text_position_start, restored.text_position_end) == (11, 22)

    def test_revalidation_counts(
        self, services: Services, admin: User, epic: Epic
    ) -> None:
        _ = services.comments.create_inline(EntityType.EPIC, epic.id, admin.id, _inline())

        first = services.comments.revalidate_anchors(EntityType.EPIC, epic.id, "changed")
        second = services.comments.revalidate_anchors(EntityType.EPIC, epic.id, "changed")
        back = services.comments.revalidate_anchors(EntityType.EPIC, epic.id, "A description")

        assert (first.checked, first.hidden, first.restored, first.moved) == (1, 1, 0, 0)
        assert (second.checked, second.hidden, second.restored, second.moved) == (1, 0, 0, 0)
        assert (back.checked, back.hidden, back.restored, back.moved) == (1, 0, 1, 1)

    def test_validate_after_text_change_leaves_entity_alone(
        self, services: Services, admin: User, epic: Epic
    ) -> None:
        comment = services.comments.create_inline(EntityType.EPIC, epic.id, admin.id, _inline())

        result = services.comments.validate_after_text_change(
            EntityType.EPIC, epic.reference_id, TextChange(new_description="Nothing left")
        )

        assert (result.checked, result.hidden) == (1, 1)
        assert services.comments.get(comment.id).hidden
        assert services.epics.get(epic.id).description == DESCRIPTION
