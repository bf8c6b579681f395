import pytest
from hypothesis import given, strategies as st

from reqtrack.enums import EntityType
from reqtrack.exceptions import ValidationError
from reqtrack.planning import format_reference_id, parse_identifier

entity_types = st.sampled_from(list(EntityType))


@given(entity_type=entity_types, number=st.integers(1, 99_999))
def test_format_then_parse_round_trips(entity_type: EntityType, number: int) -> None:
    reference = format_reference_id(entity_type, number)

    identifier = parse_identifier(reference.lower(), entity_type)

    assert identifier.uuid is None
    assert identifier.reference_id == reference


@given(entity_type=entity_types, number=st.integers(1, 999))
def test_sequential_references_are_zero_padded(entity_type: EntityType, number: int) -> None:
    reference = format_reference_id(entity_type, number)

    prefix, _, digits = reference.partition("-")
    assert prefix == entity_type.reference_prefix
    assert len(digits) == 3
    assert int(digits) == number


@given(
    entity_type=entity_types,
    other=entity_types,
    number=st.integers(1, 999),
)
def test_foreign_prefix_is_rejected(
    entity_type: EntityType, other: EntityType, number: int
) -> None:
    if entity_type is other:
        return
    with pytest.raises(ValidationError):
        _ = parse_identifier(format_reference_id(other, number), entity_type)


@given(value=st.uuids())
def test_uuids_parse_as_uuids(value: object) -> None:
    identifier = parse_identifier(str(value).upper(), EntityType.EPIC)

    assert identifier.uuid == value
    assert identifier.reference_id is None
