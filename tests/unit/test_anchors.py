"""Unit tests for inline comment anchor helpers."""

import pytest

from reqtrack.comments import anchor_matches, find_occurrences, reanchor, validate_anchor
from reqtrack.exceptions import TextFragmentValidationError

DESCRIPTION = "This is a test epic description for inline comments."


class TestValidateAnchor:
    def test_accepts_exact_match(self) -> None:
        validate_anchor(DESCRIPTION, "description", 20, 31)

    def test_rejects_empty_linked_text(self) -> None:
        with pytest.raises(TextFragmentValidationError) as exc_info:
            validate_anchor(DESCRIPTION, "", 0, 1)

        assert exc_info.value.field == "linked_text"

    @pytest.mark.parametrize(("start", "end"), [(-1, 5), (5, 5), (6, 5)])
    def test_rejects_bad_range(self, start: int, end: int) -> None:
        with pytest.raises(TextFragmentValidationError) as exc_info:
            validate_anchor(DESCRIPTION, "x", start, end)

        assert exc_info.value.field == "text_position_start"

    def test_rejects_end_past_description(self) -> None:
        with pytest.raises(TextFragmentValidationError) as exc_info:
            validate_anchor("short", "short!", 0, 6)

        assert "exceeds description length" in exc_info.value.message

    def test_rejects_length_mismatch(self) -> None:
        with pytest.raises(TextFragmentValidationError, match="length"):
            validate_anchor(DESCRIPTION, "description", 20, 30)

    def test_rejects_different_text(self) -> None:
        with pytest.raises(TextFragmentValidationError, match="does not match"):
            validate_anchor(DESCRIPTION, "descriptiox", 20, 31)

    def test_error_code(self) -> None:
        with pytest.raises(TextFragmentValidationError) as exc_info:
            validate_anchor(DESCRIPTION, "nope", 0, 4)

        assert exc_info.value.code == "text_fragment_validation_failed"


class TestAnchorMatches:
    def test_true_for_exact_slice(self) -> None:
        assert anchor_matches(DESCRIPTION, "description", 20, 31)

    def test_false_after_edit(self) -> None:
        assert not anchor_matches("An updated description", "description", 20, 31)

    def test_false_out_of_range(self) -> None:
        assert not anchor_matches("abc", "abc", 0, 4)


class TestFindOccurrences:
    def test_overlapping(self) -> None:
        assert find_occurrences("aaa", "aa") == [0, 1]

    def test_none(self) -> None:
        assert find_occurrences("abc", "z") == []

    def test_empty_needle(self) -> None:
        assert find_occurrences("abc", "") == []


class TestReanchor:
    def test_unique_occurrence(self) -> None:
        assert reanchor("an updated description", "description") == (11, 22)

    def test_ambiguous_occurrence(self) -> None:
        assert reanchor("two two", "two") is None

    def test_missing(self) -> None:
        assert reanchor("nothing here", "description") is None
