"""Collaborator ports used by the workflow engine."""

from typing import Protocol

from planwise.domain.entities.plan import PlanItem
from planwise.domain.entities.project_context import ProjectContext
from planwise.domain.entities.workflow_state import WorkflowState


class WorkflowStorePort(Protocol):
    """Save/load the session state as an opaque blob keyed by session key."""

    def save(self, key: str, state: WorkflowState) -> None:
        """Overwrite the stored state for key."""
        ...

    def load(self, key: str) -> WorkflowState | None:
        """Return the stored state for key, or None when absent/unreadable."""
        ...


class PlanExecutorPort(Protocol):
    """Applies one validated plan item to the workspace."""

    async def apply(self, item: PlanItem) -> None:
        """Apply item. Raises FileApplyError on failure."""
        ...


class ConfirmerPort(Protocol):
    """Explicit yes/no confirmation from the user (modal in UIs)."""

    async def confirm(self, message: str) -> bool:
        ...


class ContextAggregatorPort(Protocol):
    """Builds a ProjectContext from a project root. Raises NoWorkspaceError."""

    def analyze(self, root_path: str | None) -> ProjectContext:
        ...


class GenerationPort(Protocol):
    """Clarification/plan generation. Never raises, never returns an empty result."""

    async def propose_clarifications(
        self,
        request: str,
        context: ProjectContext | None = None,
    ) -> list[str]:
        ...

    async def propose_plan(
        self,
        request: str,
        answers: list[str],
        context: ProjectContext | None = None,
    ) -> list[PlanItem]:
        ...
