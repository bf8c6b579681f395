from collections.abc import Sequence
from typing import Annotated, Any, Literal

from fastapi import APIRouter, Query, Response, status

from reqtrack.comments import (
    AnchorCheck,
    AnchorValidation,
    Comment,
    CommentCreate,
    CommentUpdate,
    InlineCommentCreate,
    InlineRevalidationResult,
    TextChange,
)
from reqtrack.planning import Page
from reqtrack.server._deps import (
    AnyPrincipal,
    ServicesDep,
    entity_type_from_segment,
    parse_uuid,
)
from reqtrack.server._schemas import ReplyRequest

router = APIRouter(tags=["comments"])


# -----------------------------------------------------------------------------
# Comments on an entity
# -----------------------------------------------------------------------------


@router.get("/{entity_segment}/{entity_id}/comments")
def list_entity_comments(  # noqa: PLR0913
    entity_segment: str,
    entity_id: str,
    services: ServicesDep,
    _principal: AnyPrincipal,
    inline: bool = False,  # noqa: FBT001, FBT002
    threaded: bool = False,  # noqa: FBT001, FBT002
    status_filter: Annotated[
        Literal["resolved", "unresolved"] | None, Query(alias="status")
    ] = None,
) -> dict[str, Any]:
    entity_type = entity_type_from_segment(entity_segment)
    comments = services.comments
    found: Sequence[Comment]
    if threaded:
        found = comments.list_threaded(entity_type, entity_id)
    elif inline:
        found = comments.list_inline(entity_type, entity_id)
    elif status_filter is not None:
        found = comments.list_by_status(
            entity_type, entity_id, resolved=status_filter == "resolved"
        )
    else:
        found = comments.list_by_entity(entity_type, entity_id)
    return Page.whole(found).to_dict()


@router.post("/{entity_segment}/{entity_id}/comments", status_code=status.HTTP_201_CREATED)
def create_entity_comment(
    entity_segment: str,
    entity_id: str,
    body: CommentCreate,
    services: ServicesDep,
    principal: AnyPrincipal,
) -> Comment:
    entity_type = entity_type_from_segment(entity_segment)
    return services.comments.create(entity_type, entity_id, principal.user_id, body)


@router.post(
    "/{entity_segment}/{entity_id}/comments/inline", status_code=status.HTTP_201_CREATED
)
def create_inline_comment(
    entity_segment: str,
    entity_id: str,
    body: InlineCommentCreate,
    services: ServicesDep,
    principal: AnyPrincipal,
) -> Comment:
    entity_type = entity_type_from_segment(entity_segment)
    return services.comments.create_inline(entity_type, entity_id, principal.user_id, body)


@router.get("/{entity_segment}/{entity_id}/comments/inline/visible")
def list_visible_inline_comments(
    entity_segment: str,
    entity_id: str,
    services: ServicesDep,
    _principal: AnyPrincipal,
) -> dict[str, Any]:
    entity_type = entity_type_from_segment(entity_segment)
    return Page.whole(services.comments.list_visible_inline(entity_type, entity_id)).to_dict()


@router.post("/{entity_segment}/{entity_id}/comments/inline/validate")
def validate_inline_comment(
    entity_segment: str,
    entity_id: str,
    body: AnchorCheck | TextChange,
    services: ServicesDep,
    _principal: AnyPrincipal,
) -> AnchorValidation | InlineRevalidationResult:
    """Check one anchor, or revalidate every inline comment against ``new_description``.

    A body with ``new_description`` re-anchors the stored inline comments and
    hides those whose text is gone or ambiguous. A body with ``linked_text``
    and offsets is a dry run against the current description.
    """
    entity_type = entity_type_from_segment(entity_segment)
    if isinstance(body, TextChange):
        return services.comments.validate_after_text_change(entity_type, entity_id, body)
    return services.comments.validate_inline(entity_type, entity_id, body)


# -----------------------------------------------------------------------------
# Single comments
# -----------------------------------------------------------------------------


@router.get("/comments/{comment_id}")
def get_comment(comment_id: str, services: ServicesDep, _principal: AnyPrincipal) -> Comment:
    return services.comments.get(parse_uuid(comment_id))


@router.put("/comments/{comment_id}")
def update_comment(
    comment_id: str, body: CommentUpdate, services: ServicesDep, principal: AnyPrincipal
) -> Comment:
    return services.comments.update(
        parse_uuid(comment_id), body, actor_id=principal.user_id
    )


@router.delete("/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_comment(
    comment_id: str, services: ServicesDep, principal: AnyPrincipal
) -> Response:
    services.comments.delete(
        parse_uuid(comment_id), actor_id=principal.user_id, actor_role=principal.role
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/comments/{comment_id}/resolve")
def resolve_comment(
    comment_id: str, services: ServicesDep, _principal: AnyPrincipal
) -> Comment:
    return services.comments.resolve(parse_uuid(comment_id))


@router.post("/comments/{comment_id}/unresolve")
def unresolve_comment(
    comment_id: str, services: ServicesDep, _principal: AnyPrincipal
) -> Comment:
    return services.comments.unresolve(parse_uuid(comment_id))


@router.get("/comments/{comment_id}/replies")
def list_comment_replies(
    comment_id: str, services: ServicesDep, _principal: AnyPrincipal
) -> dict[str, Any]:
    return Page.whole(services.comments.list_replies(parse_uuid(comment_id))).to_dict()


@router.post("/comments/{comment_id}/replies", status_code=status.HTTP_201_CREATED)
def reply_to_comment(
    comment_id: str, body: ReplyRequest, services: ServicesDep, principal: AnyPrincipal
) -> Comment:
    return services.comments.reply(parse_uuid(comment_id), principal.user_id, body.content)
