"""Tests for workflow state and event entities."""

from planwise.domain.entities.workflow_events import (
    NotificationLevel,
    WorkflowEvent,
    WorkflowEventType,
)
from planwise.domain.entities.workflow_state import WorkflowPhase, WorkflowState


def test_event_types_are_strings():
    assert WorkflowEventType.PHASE == "phase"
    assert WorkflowEventType.NOTIFICATION == "notification"
    assert WorkflowEventType.EXECUTION_DONE.value == "execution_done"


def test_event_serializes_enums_as_values():
    event = WorkflowEvent(
        event_type=WorkflowEventType.NOTIFICATION,
        phase="idle",
        message="hello",
        level=NotificationLevel.WARNING,
    )
    data = event.model_dump(mode="json")
    assert data["event_type"] == "notification"
    assert data["level"] == "warning"
    assert data["payload"] == {}


class TestWorkflowState:
    def test_defaults_are_idle(self):
        state = WorkflowState()
        assert state.phase is WorkflowPhase.IDLE
        assert state.user_request == ""
        assert state.clarification_questions == []
        assert state.plan == []

    def test_progress_properties(self):
        state = WorkflowState(
            phase=WorkflowPhase.CLARIFICATION,
            user_request="Add a settings page",
            clarification_questions=["Q1?", "Q2?"],
            clarification_answers=["yes"],
        )
        assert state.answered_count == 1
        assert state.all_answered is False
        assert state.next_question == "Q2?"

        state.clarification_answers.append("no")
        assert state.all_answered is True
        assert state.next_question is None

    def test_no_questions_is_never_all_answered(self):
        assert WorkflowState(phase=WorkflowPhase.CLARIFICATION).all_answered is False

    def test_json_round_trip_keeps_plan(self):
        state = WorkflowState(
            phase=WorkflowPhase.READY,
            user_request="Add a settings page",
            clarification_questions=["Q?"],
            clarification_answers=["A"],
            plan=[{"file": "src/Settings.tsx", "action": "new", "description": "Settings page"}],
        )
        restored = WorkflowState.model_validate_json(state.model_dump_json())
        assert restored == state
