"""Workflow state - the single mutable aggregate of a planning session."""

from enum import Enum

from pydantic import BaseModel, Field

from planwise.domain.entities.plan import PlanItem


class WorkflowPhase(str, Enum):
    """Discrete phase of the planning session."""

    IDLE = "idle"
    CLARIFICATION = "clarification"
    PLANNING = "planning"
    READY = "ready"


class WorkflowState(BaseModel):
    """Persisted verbatim under the session key. Defaults describe a fresh idle session."""

    phase: WorkflowPhase = WorkflowPhase.IDLE
    user_request: str = ""
    clarification_questions: list[str] = Field(default_factory=list)
    clarification_answers: list[str] = Field(default_factory=list)
    plan: list[PlanItem] = Field(default_factory=list)

    @property
    def answered_count(self) -> int:
        return len(self.clarification_answers)

    @property
    def all_answered(self) -> bool:
        """True once every question has an answer (and there is at least one question)."""
        questions = len(self.clarification_questions)
        return questions > 0 and self.answered_count == questions

    @property
    def next_question(self) -> str | None:
        """The first unanswered question, if any."""
        if self.answered_count < len(self.clarification_questions):
            return self.clarification_questions[self.answered_count]
        return None
