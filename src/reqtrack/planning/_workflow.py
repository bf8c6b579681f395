"""Status workflow validation.

Each entity type may have a default status model: a set of statuses and an
optional list of explicit transitions. A model without transitions permits
any move between its statuses; an entity type without a model permits any
status at all.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from reqtrack.enums import EntityType
from reqtrack.exceptions import InvalidStatusError, InvalidTransitionError
from reqtrack.planning._models import Status, StatusModel, StatusTransition

if TYPE_CHECKING:
    from reqtrack.store import Store

# Used when an entity type has no status model at all
BUILTIN_INITIAL_STATUS: Final[dict[EntityType, str]] = {
    EntityType.EPIC: "Backlog",
    EntityType.USER_STORY: "Backlog",
    EntityType.REQUIREMENT: "Draft",
}

_ALIASES: Final[dict[str, str]] = {"canceled": "cancelled"}
_SEPARATORS_RE = re.compile(r"[\s_\-]+")


def normalize_status_name(name: str) -> str:
    """Return the comparison key for a status name.

    Examples:
        >>> normalize_status_name("In_Progress")
        'in progress'
        >>> normalize_status_name(" canceled ")
        'cancelled'
    """
    key = _SEPARATORS_RE.sub(" ", name.strip()).lower()
    return _ALIASES.get(key, key)


@dataclass(frozen=True, slots=True)
class Workflow:
    """The statuses and transitions of one status model.

    Attributes:
        statuses: Canonical status names keyed by normalized name.
        initial: Canonical name of the initial status, if any.
        transitions: Allowed (from, to) pairs of canonical names.
    """

    statuses: dict[str, str] = field(default_factory=dict)
    initial: str | None = None
    transitions: frozenset[tuple[str, str]] = frozenset()

    def canonical(self, name: str) -> str | None:
        return self.statuses.get(normalize_status_name(name))


class WorkflowValidator:
    """Validates status changes against the default status model of a type."""

    __slots__: Final = ("_store",)

    _store: Store

    def __init__(self, store: Store) -> None:
        self._store = store

    def load(self, entity_type: EntityType) -> Workflow | None:
        """Load the default workflow for ``entity_type``.

        Returns:
            The workflow, or None when the type has no default model or the
            model has no statuses.
        """
        with self._store.transaction() as tx:
            model = tx.fetch_one(
                StatusModel,
                "SELECT * FROM status_models WHERE entity_type = ? AND is_default = 1 "
                "ORDER BY created_at LIMIT 1",
                (entity_type.value,),
            )
            if model is None:
                return None
            statuses = tx.fetch_all(
                Status,
                'SELECT * FROM statuses WHERE status_model_id = ? ORDER BY "order", name',
                (str(model.id),),
            )
            if not statuses:
                return None
            transitions = tx.fetch_all(
                StatusTransition,
                "SELECT * FROM status_transitions WHERE status_model_id = ?",
                (str(model.id),),
            )

        names_by_id = {status.id: status.name for status in statuses}
        initial = next((s.name for s in statuses if s.is_initial), None)
        return Workflow(
            statuses={normalize_status_name(s.name): s.name for s in statuses},
            initial=initial,
            transitions=frozenset(
                (names_by_id[t.from_status_id], names_by_id[t.to_status_id])
                for t in transitions
                if t.from_status_id in names_by_id and t.to_status_id in names_by_id
            ),
        )

    def initial_status(self, entity_type: EntityType) -> str:
        """Return the status a new entity of ``entity_type`` starts in."""
        workflow = self.load(entity_type)
        if workflow is not None and workflow.initial is not None:
            return workflow.initial
        return BUILTIN_INITIAL_STATUS.get(entity_type, "Draft")

    def is_initial(self, entity_type: EntityType, status: str) -> bool:
        return normalize_status_name(status) == normalize_status_name(
            self.initial_status(entity_type)
        )

    def validate_transition(
        self, entity_type: EntityType, from_status: str | None, to_status: str
    ) -> str:
        """Check that ``from_status -> to_status`` is allowed.

        Args:
            entity_type: The entity type whose workflow applies.
            from_status: Current status, or None/empty for a new entity.
            to_status: Requested status.

        Returns:
            The canonical spelling of ``to_status``.

        Raises:
            InvalidStatusError: If either status is not part of the workflow.
            InvalidTransitionError: If the workflow does not allow the move.
        """
        if not to_status or not to_status.strip():
            msg = "Status must not be empty"
            raise InvalidStatusError(msg, status=to_status)

        workflow = self.load(entity_type)
        if workflow is None:
            return to_status.strip()

        target = workflow.canonical(to_status)
        if target is None:
            msg = f"Invalid status {to_status!r} for {entity_type.value}"
            raise InvalidStatusError(msg, status=to_status)

        if not from_status:
            if workflow.initial is not None and target != workflow.initial:
                msg = (
                    f"New {entity_type.value} must start in status "
                    f"{workflow.initial!r}, not {target!r}"
                )
                raise InvalidTransitionError(
                    msg, entity_type=entity_type.value, from_status="", to_status=target
                )
            return target

        source = workflow.canonical(from_status)
        if source is None:
            msg = f"Invalid status {from_status!r} for {entity_type.value}"
            raise InvalidStatusError(msg, status=from_status)

        if source == target or not workflow.transitions:
            return target

        if (source, target) not in workflow.transitions:
            msg = f"Transition from {source!r} to {target!r} is not allowed"
            raise InvalidTransitionError(
                msg, entity_type=entity_type.value, from_status=source, to_status=target
            )
        return target
