"""Inline comment anchors.

An anchor is a ``[start, end)`` range into an entity description plus a
snapshot of the text in that range. These functions are pure; the comment
service applies them to stored rows.
"""

from dataclasses import dataclass

from reqtrack.exceptions import TextFragmentValidationError

__all__ = [
    "AnchorRevalidation",
    "anchor_matches",
    "find_occurrences",
    "reanchor",
    "validate_anchor",
]


@dataclass(frozen=True, slots=True)
class AnchorRevalidation:
    """Counts from re-anchoring the inline comments of one entity.

    Attributes:
        checked: Inline comments examined.
        hidden: Comments newly hidden.
        restored: Previously hidden comments made visible again.
        moved: Comments whose offsets changed to follow their text.
    """

    checked: int = 0
    hidden: int = 0
    restored: int = 0
    moved: int = 0


def anchor_matches(description: str, linked_text: str, start: int, end: int) -> bool:
    return 0 <= start < end <= len(description) and description[start:end] == linked_text


def validate_anchor(description: str, linked_text: str, start: int, end: int) -> None:
    """Check that ``description[start:end]`` is exactly ``linked_text``.

    Raises:
        TextFragmentValidationError: If the offsets are out of range or the
            text at them differs.

    Examples:
        >>> validate_anchor("This is a test epic description", "description", 20, 31)
    """
    if not linked_text:
        msg = "Linked text must not be empty"
        raise TextFragmentValidationError(msg, field="linked_text")
    if start < 0 or end <= start:
        msg = "Text positions must satisfy 0 <= start < end"
        raise TextFragmentValidationError(msg, field="text_position_start")
    if end > len(description):
        msg = (
            f"Text position end {end} exceeds description length {len(description)}"
        )
        raise TextFragmentValidationError(msg, field="text_position_end")
    if end - start != len(linked_text):
        msg = "Text position range length does not match linked text length"
        raise TextFragmentValidationError(msg, field="linked_text")
    if description[start:end] != linked_text:
        msg = "Linked text does not match the description at the given positions"
        raise TextFragmentValidationError(msg, field="linked_text")


def find_occurrences(description: str, linked_text: str) -> list[int]:
    """Return every start offset of ``linked_text``, overlapping included.

    Examples:
        >>> find_occurrences("aaa", "aa")
        [0, 1]
    """
    if not linked_text:
        return []
    positions: list[int] = []
    index = description.find(linked_text)
    while index != -1:
        positions.append(index)
        index = description.find(linked_text, index + 1)
    return positions


def reanchor(description: str, linked_text: str) -> tuple[int, int] | None:
    """Find the unique position of ``linked_text`` in ``description``.

    Returns:
        ``(start, end)`` when the text occurs exactly once, otherwise None.

    Examples:
        >>> reanchor("an updated description", "description")
        (11, 22)
        >>> reanchor("two two", "two") is None
        True
    """
    positions = find_occurrences(description, linked_text)
    if len(positions) != 1:
        return None
    start = positions[0]
    return start, start + len(linked_text)
