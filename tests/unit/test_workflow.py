"""Unit tests for status workflow validation."""

import pytest

from reqtrack.enums import EntityType
from reqtrack.exceptions import InvalidStatusError, InvalidTransitionError
from reqtrack.planning import (
    StatusCreate,
    StatusModelCreate,
    StatusTransitionCreate,
    WorkflowValidator,
    normalize_status_name,
)
from reqtrack.services import Services


class TestNormalizeStatusName:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("In_Progress", "in progress"),
            ("in-progress", "in progress"),
            ("  Done  ", "done"),
            ("Canceled", "cancelled"),
        ],
    )
    def test_normalizes(self, name: str, expected: str) -> None:
        assert normalize_status_name(name) == expected


class TestDefaultWorkflow:
    def test_initial_statuses(self, services: Services) -> None:
        workflow = services.workflow

        assert workflow.initial_status(EntityType.EPIC) == "Backlog"
        assert workflow.initial_status(EntityType.USER_STORY) == "Backlog"
        assert workflow.initial_status(EntityType.REQUIREMENT) == "Draft"

    def test_any_move_between_known_statuses(self, services: Services) -> None:
        target = services.workflow.validate_transition(
            EntityType.EPIC, "Backlog", "done"
        )

        assert target == "Done"

    def test_canonicalizes_spelling(self, services: Services) -> None:
        target = services.workflow.validate_transition(
            EntityType.EPIC, "Backlog", "in_progress"
        )

        assert target == "In Progress"

    def test_unknown_status(self, services: Services) -> None:
        with pytest.raises(InvalidStatusError) as exc_info:
            _ = services.workflow.validate_transition(EntityType.EPIC, "Backlog", "Bogus")

        assert exc_info.value.status == "Bogus"
        assert exc_info.value.code == "invalid_status"

    def test_empty_status(self, services: Services) -> None:
        with pytest.raises(InvalidStatusError):
            _ = services.workflow.validate_transition(EntityType.EPIC, "Backlog", "  ")

    def test_new_entity_must_start_in_initial(self, services: Services) -> None:
        with pytest.raises(InvalidTransitionError):
            _ = services.workflow.validate_transition(EntityType.EPIC, None, "Done")

    def test_acceptance_criteria_has_no_model(self, services: Services) -> None:
        assert services.workflow.load(EntityType.ACCEPTANCE_CRITERIA) is None
        assert (
            services.workflow.validate_transition(
                EntityType.ACCEPTANCE_CRITERIA, None, " anything "
            )
            == "anything"
        )


class TestExplicitTransitions:
    @pytest.fixture
    def workflow(self, services: Services) -> WorkflowValidator:
        types = services.types
        model = types.create_status_model(
            StatusModelCreate(entity_type=EntityType.EPIC, name="Strict", is_default=True)
        )
        open_ = types.create_status(model.id, StatusCreate(name="Open", is_initial=True))
        closed = types.create_status(model.id, StatusCreate(name="Closed", is_final=True))
        _ = types.create_status(model.id, StatusCreate(name="Archived"))
        _ = types.create_transition(
            model.id,
            StatusTransitionCreate(from_status_id=open_.id, to_status_id=closed.id),
        )
        return services.workflow

    def test_listed_transition_allowed(self, workflow: WorkflowValidator) -> None:
        assert workflow.validate_transition(EntityType.EPIC, "Open", "Closed") == "Closed"

    def test_same_status_allowed(self, workflow: WorkflowValidator) -> None:
        assert workflow.validate_transition(EntityType.EPIC, "Open", "open") == "Open"

    def test_unlisted_transition_rejected(self, workflow: WorkflowValidator) -> None:
        with pytest.raises(InvalidTransitionError) as exc_info:
            _ = workflow.validate_transition(EntityType.EPIC, "Open", "Archived")

        assert exc_info.value.from_status == "Open"
        assert exc_info.value.to_status == "Archived"
        assert exc_info.value.code == "forbidden_invalid_transition"

    def test_new_default_replaces_seeded_model(self, workflow: WorkflowValidator) -> None:
        assert workflow.initial_status(EntityType.EPIC) == "Open"
