"""Human-readable reference IDs.

Every primary entity gets a reference such as ``EP-001`` in the transaction
that inserts it. The sequential form is allocated under a per-type advisory
lock; a writer that cannot take the lock immediately falls back to the first
eight hex digits of the entity's UUID (``EP-1a2b3c4d``), which never blocks
and is unique by construction.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final
from uuid import UUID

from reqtrack.enums import EntityType
from reqtrack.exceptions import NotFoundError, ValidationError
from reqtrack.utils.database import safe_identifier

if TYPE_CHECKING:
    from pydantic import BaseModel

    from reqtrack.store import Transaction

LOCK_KEYS: Final[dict[EntityType, int]] = {
    EntityType.EPIC: 2147483647,
    EntityType.USER_STORY: 2147483646,
    EntityType.REQUIREMENT: 2147483645,
    EntityType.ACCEPTANCE_CRITERIA: 2147483644,
}

_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)
_REFERENCE_RE = re.compile(
    r"^(?P<prefix>EP|US|AC|REQ)-(?P<suffix>\d+|[0-9a-f]{8})$", re.IGNORECASE
)


@dataclass(frozen=True, slots=True)
class AllocatedReference:
    reference_id: str
    sequence_number: int | None


@dataclass(frozen=True, slots=True)
class Identifier:
    """A parsed entity identifier: exactly one of ``uuid`` or ``reference_id``."""

    uuid: UUID | None = None
    reference_id: str | None = None

    def __str__(self) -> str:
        return str(self.uuid) if self.uuid is not None else str(self.reference_id)


def format_reference_id(entity_type: EntityType, number: int) -> str:
    """Format a sequential reference.

    Examples:
        >>> format_reference_id(EntityType.EPIC, 7)
        'EP-007'
        >>> format_reference_id(EntityType.REQUIREMENT, 1234)
        'REQ-1234'
    """
    return f"{entity_type.reference_prefix}-{number:03d}"


def fallback_reference_id(entity_type: EntityType, entity_id: UUID) -> str:
    return f"{entity_type.reference_prefix}-{entity_id.hex[:8]}"


def allocate_reference_id(
    tx: Transaction, entity_type: EntityType, entity_id: UUID
) -> AllocatedReference:
    """Allocate the reference ID for a new entity inside ``tx``.

    Args:
        tx: The transaction that will insert the entity. The advisory lock, if
            taken, is held until it commits.
        entity_type: Type of the new entity.
        entity_id: UUID of the new entity, used by the fallback form.

    Returns:
        The reference and, for the sequential form, its sequence number.
    """
    if not tx.try_advisory_lock(LOCK_KEYS[entity_type]):
        return AllocatedReference(fallback_reference_id(entity_type, entity_id), None)

    table = safe_identifier(entity_type.table)
    current = tx.count(f"SELECT max(sequence_number) FROM {table}")  # noqa: S608
    next_number = current + 1
    return AllocatedReference(format_reference_id(entity_type, next_number), next_number)


def parse_identifier(value: str, entity_type: EntityType) -> Identifier:
    """Parse a UUID-or-reference identifier for ``entity_type``.

    Raises:
        ValidationError: If ``value`` is neither form, or is a reference with
            another entity type's prefix.
    """
    candidate = value.strip()
    if _UUID_RE.match(candidate):
        return Identifier(uuid=UUID(candidate))

    match = _REFERENCE_RE.match(candidate)
    if match is None:
        msg = f"Invalid identifier: {value!r} is neither a UUID nor a reference ID"
        raise ValidationError(msg, field="id")

    prefix = match.group("prefix").upper()
    if prefix != entity_type.reference_prefix:
        msg = (
            f"Invalid identifier: {value!r} is not a "
            f"{entity_type.reference_prefix}- reference"
        )
        raise ValidationError(msg, field="id")
    return Identifier(reference_id=f"{prefix}-{match.group('suffix').lower()}")


def find_entity[T: BaseModel](
    tx: Transaction, model: type[T], entity_type: EntityType, value: str | UUID
) -> T:
    """Load an entity row by UUID or reference ID.

    Raises:
        ValidationError: If ``value`` is not a valid identifier for the type.
        NotFoundError: If no such entity exists.
    """
    identifier = (
        Identifier(uuid=value)
        if isinstance(value, UUID)
        else parse_identifier(value, entity_type)
    )
    table = safe_identifier(entity_type.table)
    if identifier.uuid is not None:
        row = tx.fetch_one(
            model,
            f"SELECT * FROM {table} WHERE id = ?",  # noqa: S608
            (str(identifier.uuid),),
        )
    else:
        row = tx.fetch_one(
            model,
            f"SELECT * FROM {table} WHERE reference_id = ? COLLATE NOCASE",  # noqa: S608
            (identifier.reference_id,),
        )
    if row is None:
        label = entity_type.value.replace("_", " ").capitalize()
        msg = f"{label} not found"
        raise NotFoundError(msg, entity_type=entity_type.value, identifier=str(value))
    return row
