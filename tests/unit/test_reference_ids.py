"""Unit tests for reference ID formatting, parsing and allocation."""

from uuid import UUID, uuid4

import pytest

from reqtrack.enums import EntityType
from reqtrack.exceptions import NotFoundError, ValidationError
from reqtrack.planning import (
    LOCK_KEYS,
    Epic,
    allocate_reference_id,
    find_entity,
    format_reference_id,
    parse_identifier,
)
from reqtrack.planning._reference_ids import fallback_reference_id
from reqtrack.store import Store


class TestFormatReferenceId:
    @pytest.mark.parametrize(
        ("entity_type", "number", "expected"),
        [
            (EntityType.EPIC, 1, "EP-001"),
            (EntityType.USER_STORY, 42, "US-042"),
            (EntityType.ACCEPTANCE_CRITERIA, 7, "AC-007"),
            (EntityType.REQUIREMENT, 1234, "REQ-1234"),
        ],
    )
    def test_zero_pads_to_three_digits(
        self, entity_type: EntityType, number: int, expected: str
    ) -> None:
        assert format_reference_id(entity_type, number) == expected

    def test_fallback_uses_uuid_prefix(self) -> None:
        entity_id = UUID("1a2b3c4d-0000-4000-8000-000000000000")

        assert fallback_reference_id(EntityType.EPIC, entity_id) == "EP-1a2b3c4d"


class TestParseIdentifier:
    def test_uuid(self) -> None:
        value = uuid4()

        identifier = parse_identifier(str(value), EntityType.EPIC)

        assert identifier.uuid == value
        assert identifier.reference_id is None

    def test_reference_is_case_insensitive(self) -> None:
        identifier = parse_identifier("ep-001", EntityType.EPIC)

        assert identifier.reference_id == "EP-001"
        assert str(identifier) == "EP-001"

    def test_fallback_reference(self) -> None:
        identifier = parse_identifier("REQ-1A2B3C4D", EntityType.REQUIREMENT)

        assert identifier.reference_id == "REQ-1a2b3c4d"

    def test_wrong_prefix(self) -> None:
        with pytest.raises(ValidationError, match="not a US- reference"):
            _ = parse_identifier("EP-001", EntityType.USER_STORY)

    @pytest.mark.parametrize("value", ["", "EP-", "EP-00x", "not-an-id", "12345"])
    def test_malformed(self, value: str) -> None:
        with pytest.raises(ValidationError):
            _ = parse_identifier(value, EntityType.EPIC)


class TestAllocateReferenceId:
    def test_sequential_when_lock_is_free(self, store: Store) -> None:
        with store.transaction() as tx:
            allocated = allocate_reference_id(tx, EntityType.EPIC, uuid4())

        assert allocated.reference_id == "EP-001"
        assert allocated.sequence_number == 1

    def test_fallback_when_lock_is_held(self, store: Store) -> None:
        entity_id = uuid4()
        assert store.advisory_locks.try_acquire(LOCK_KEYS[EntityType.EPIC])
        try:
            with store.transaction() as tx:
                allocated = allocate_reference_id(tx, EntityType.EPIC, entity_id)
        finally:
            store.advisory_locks.release(LOCK_KEYS[EntityType.EPIC])

        assert allocated.reference_id == f"EP-{entity_id.hex[:8]}"
        assert allocated.sequence_number is None

    def test_lock_released_after_transaction(self, store: Store) -> None:
        with store.transaction() as tx:
            _ = allocate_reference_id(tx, EntityType.REQUIREMENT, uuid4())

        key = LOCK_KEYS[EntityType.REQUIREMENT]
        assert store.advisory_locks.try_acquire(key)
        store.advisory_locks.release(key)


class TestFindEntity:
    def test_not_found_message(self, store: Store) -> None:
        with store.transaction() as tx, pytest.raises(NotFoundError) as exc_info:
            _ = find_entity(tx, Epic, EntityType.EPIC, "EP-999")

        assert str(exc_info.value) == "Epic not found"
        assert exc_info.value.identifier == "EP-999"
