from hypothesis import given, strategies as st

from reqtrack.comments import anchor_matches, find_occurrences

text = st.text(alphabet="abc xyz", max_size=40)


@given(description=text, linked_text=text, start=st.integers(-5, 45), end=st.integers(-5, 45))
def test_anchor_matches_iff_slice_is_equal(
    description: str, linked_text: str, start: int, end: int
) -> None:
    in_range = 0 <= start < end <= len(description)
    expected = in_range and description[start:end] == linked_text

    assert anchor_matches(description, linked_text, start, end) is expected


@given(description=text, data=st.data())
def test_any_slice_is_a_valid_anchor(description: str, data: st.DataObject) -> None:
    if not description:
        return
    start = data.draw(st.integers(0, len(description) - 1))
    end = data.draw(st.integers(start + 1, len(description)))

    assert anchor_matches(description, description[start:end], start, end)


@given(description=text, linked_text=st.text(alphabet="abc", min_size=1, max_size=3))
def test_occurrences_are_exactly_the_matching_offsets(
    description: str, linked_text: str
) -> None:
    expected = [
        i
        for i in range(len(description))
        if description.startswith(linked_text, i)
    ]

    assert find_occurrences(description, linked_text) == expected
    for start in expected:
        assert anchor_matches(description, linked_text, start, start + len(linked_text))
