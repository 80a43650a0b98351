"""Planning DTOs."""

from pydantic import BaseModel, Field

from planwise.domain.entities.workflow_state import WorkflowState


class StartRequest(BaseModel):
    """Request to start a planning session."""

    request: str = Field(..., max_length=10_000)


class AnswerRequest(BaseModel):
    """Answer to the next unanswered clarification question."""

    answer: str = Field(..., max_length=10_000)


class ConfirmRequest(BaseModel):
    """Explicit yes/no for execute and restart."""

    confirm: bool = False


class ItemFailure(BaseModel):
    file: str
    action: str
    error: str


class ExecutionReport(BaseModel):
    """Outcome of applying a plan: best effort, not transactional."""

    applied: int
    total: int
    failures: list[ItemFailure] = Field(default_factory=list)

    @property
    def ratio(self) -> str:
        return f"{self.applied}/{self.total}"


class WorkflowSnapshot(BaseModel):
    """State plus derived readiness flags, for front ends."""

    state: WorkflowState
    status: str
    can_submit: bool
    next_question: str | None = None
    plan_counts: dict[str, int] = Field(default_factory=dict)


class ActionResult(BaseModel):
    """Result of a phase-transition call."""

    ok: bool
    snapshot: WorkflowSnapshot
    report: ExecutionReport | None = None

