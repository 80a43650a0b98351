"""Workflow engine - the planning session state machine.

    idle --start--> clarification --answer*--> clarification --submit--> planning --> ready
    ready --execute--> idle
    any --restart (confirmed)--> idle

One engine owns one session. Operations are awaited one at a time by the
front end; every completed transition is persisted under the session key and
announced to subscribers as WorkflowEvents.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from planwise.application.planning.dto import ExecutionReport, ItemFailure, WorkflowSnapshot
from planwise.domain.entities.plan import count_by_action
from planwise.domain.entities.project_context import ProjectContext
from planwise.domain.entities.workflow_events import (
    NotificationLevel,
    WorkflowEvent,
    WorkflowEventType,
)
from planwise.domain.entities.workflow_state import WorkflowPhase, WorkflowState
from planwise.domain.errors import FileApplyError, InputValidationError, NoWorkspaceError
from planwise.domain.ports.workflow import (
    ConfirmerPort,
    ContextAggregatorPort,
    GenerationPort,
    PlanExecutorPort,
    WorkflowStorePort,
)

logger = logging.getLogger(__name__)

Listener = Callable[[WorkflowEvent], None]

DEFAULT_SESSION_KEY = "planwise.workflowState"
# Per-item progress is only reported for plans larger than this
PROGRESS_THRESHOLD = 3


class WorkflowEngine:
    """Drives a planning session through its phases."""

    def __init__(
        self,
        generator: GenerationPort,
        aggregator: ContextAggregatorPort,
        store: WorkflowStorePort,
        executor: PlanExecutorPort,
        confirmer: ConfirmerPort | None = None,
        workspace_root: str | None = None,
        session_key: str = DEFAULT_SESSION_KEY,
        min_request_length: int = 10,
        min_answer_length: int = 2,
    ) -> None:
        self._generator = generator
        self._aggregator = aggregator
        self._store = store
        self._executor = executor
        self._confirmer = confirmer
        self._workspace_root = workspace_root
        self._session_key = session_key
        self._min_request_length = min_request_length
        self._min_answer_length = min_answer_length
        self._listeners: list[Listener] = []
        self._context: ProjectContext | None = None
        self._context_built = False
        self._state = self._restore()

    def _restore(self) -> WorkflowState:
        state = self._store.load(self._session_key)
        if state is None:
            return WorkflowState()
        if state.phase == WorkflowPhase.PLANNING:
            # planning never completed; the answers are still valid
            logger.info("Stored session was interrupted while planning, resuming clarification")
            state.phase = WorkflowPhase.CLARIFICATION
        if state.phase != WorkflowPhase.READY:
            state.plan = []
        state.clarification_answers = state.clarification_answers[: len(state.clarification_questions)]
        logger.info("Restored workflow state: phase=%s", state.phase.value)
        return state

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register listener for every event; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(
        self,
        event_type: WorkflowEventType,
        message: str | None = None,
        level: NotificationLevel | None = None,
        **payload: Any,
    ) -> None:
        event = WorkflowEvent(
            event_type=event_type,
            phase=self._state.phase.value,
            message=message,
            level=level,
            payload=payload,
        )
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Workflow listener failed on %s event", event_type.value)

    def notify(self, level: NotificationLevel, message: str) -> None:
        """Push a transient notification to subscribers."""
        log = {
            NotificationLevel.ERROR: logger.error,
            NotificationLevel.WARNING: logger.warning,
        }.get(level, logger.info)
        log(message)
        self._emit(WorkflowEventType.NOTIFICATION, message=message, level=level)

    @property
    def state(self) -> WorkflowState:
        """Copy of the current state."""
        return self._state.model_copy(deep=True)

    @property
    def can_submit(self) -> bool:
        return self._state.phase == WorkflowPhase.CLARIFICATION and self._state.all_answered

    def describe_status(self) -> str:
        state = self._state
        if state.phase == WorkflowPhase.IDLE:
            return "Ready - Enter a request to start planning"
        if state.phase == WorkflowPhase.CLARIFICATION:
            return (
                f"Clarification Phase - {state.answered_count}/"
                f"{len(state.clarification_questions)} questions answered"
            )
        if state.phase == WorkflowPhase.PLANNING:
            return "Generating implementation plan..."
        return f"Plan Ready - {len(state.plan)} file changes prepared"

    def snapshot(self) -> WorkflowSnapshot:
        state = self.state
        return WorkflowSnapshot(
            state=state,
            status=self.describe_status(),
            can_submit=self.can_submit,
            next_question=state.next_question,
            plan_counts=count_by_action(state.plan) if state.plan else {},
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _persist(self) -> None:
        self._store.save(self._session_key, self._state)

    def _reset(self) -> None:
        self._state = WorkflowState()
        self._persist()
        self._emit(WorkflowEventType.RESET)

    async def project_context(self) -> ProjectContext | None:
        """Session project context, built on first use. None when there is no workspace."""
        if not self._context_built:
            try:
                self._context = await asyncio.to_thread(self._aggregator.analyze, self._workspace_root)
            except NoWorkspaceError as e:
                logger.warning("Planning without project context: %s", e)
                self._context = None
            self._context_built = True
        return self._context

    def invalidate_context(self) -> None:
        """Drop the cached project context; the next use rebuilds it."""
        self._context = None
        self._context_built = False

    async def _confirm(self, confirmer: ConfirmerPort | None, message: str) -> bool:
        confirmer = confirmer or self._confirmer
        if confirmer is None:
            logger.info("No confirmer available, treating as declined: %s", message)
            return False
        return await confirmer.confirm(message)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def start(self, request: str) -> bool:
        """Begin a session: idle -> clarification with 1-3 questions.

        Raises InputValidationError when request is too short; state is untouched.
        """
        if self._state.phase != WorkflowPhase.IDLE:
            self.notify(
                NotificationLevel.WARNING,
                "A planning session is already in progress. Restart the workflow first.",
            )
            return False
        text = (request or "").strip()
        if len(text) < self._min_request_length:
            raise InputValidationError(
                f"Please enter a more detailed request (at least {self._min_request_length} characters)"
            )

        self._state = WorkflowState(phase=WorkflowPhase.CLARIFICATION, user_request=text)
        self._emit(WorkflowEventType.PHASE)
        self.notify(NotificationLevel.INFO, "Analyzing your request and generating clarification questions...")

        reason = "no clarification questions generated"
        try:
            context = await self.project_context()
            questions = await self._generator.propose_clarifications(text, context)
        except Exception as e:
            logger.exception("Clarification step failed, returning to idle")
            questions, reason = [], str(e)
        if not questions:
            self._state = WorkflowState()
            self._emit(WorkflowEventType.PHASE)
            self.notify(NotificationLevel.ERROR, f"Error generating clarification questions: {reason}")
            return False

        self._state.clarification_questions = list(questions)
        self._persist()
        self._emit(
            WorkflowEventType.QUESTIONS,
            questions=list(questions),
            answered=0,
            total=len(questions),
        )
        self.notify(
            NotificationLevel.INFO,
            f"Generated {len(questions)} clarification questions. Please answer them to proceed.",
        )
        return True

    def answer(self, text: str) -> bool:
        """Record an answer to the next unanswered question.

        Calls beyond the question count are no-ops returning False.
        """
        state = self._state
        if state.phase != WorkflowPhase.CLARIFICATION:
            self.notify(NotificationLevel.WARNING, "There are no clarification questions to answer.")
            return False
        if state.answered_count >= len(state.clarification_questions):
            return False
        answer = (text or "").strip()
        if len(answer) < self._min_answer_length:
            raise InputValidationError("Please provide a meaningful answer")

        state.clarification_answers.append(answer)
        self._persist()
        total = len(state.clarification_questions)
        remaining = total - state.answered_count
        self._emit(
            WorkflowEventType.ANSWER,
            answered=state.answered_count,
            total=total,
            remaining=remaining,
        )
        if remaining:
            self.notify(NotificationLevel.INFO, f"Answer recorded. {remaining} question(s) remaining.")
        else:
            self.notify(
                NotificationLevel.INFO,
                "All questions answered! Ready to generate implementation plan.",
            )
        return True

    async def submit(self) -> bool:
        """Generate the plan once every question is answered: clarification -> ready."""
        if self._state.phase != WorkflowPhase.CLARIFICATION:
            self.notify(NotificationLevel.WARNING, "No clarification session to submit.")
            return False
        if not self._state.all_answered:
            self.notify(NotificationLevel.WARNING, "Please answer all clarification questions first.")
            return False

        # planning is announced but not persisted
        self._state.phase = WorkflowPhase.PLANNING
        self._emit(WorkflowEventType.PHASE)
        self.notify(NotificationLevel.INFO, "Generating detailed implementation plan...")

        context = await self.project_context()
        plan = await self._generator.propose_plan(
            self._state.user_request,
            list(self._state.clarification_answers),
            context,
        )
        if not plan:
            self._state.phase = WorkflowPhase.CLARIFICATION
            self._emit(WorkflowEventType.PHASE)
            self.notify(NotificationLevel.ERROR, "Error generating implementation plan")
            return False

        self._state.plan = list(plan)
        self._state.phase = WorkflowPhase.READY
        self._persist()
        self._emit(
            WorkflowEventType.PLAN,
            total=len(plan),
            counts=count_by_action(plan),
        )
        self.notify(
            NotificationLevel.INFO,
            f"Implementation plan generated successfully! {len(plan)} file changes ready for execution.",
        )
        return True

    async def execute(self, confirmer: ConfirmerPort | None = None) -> ExecutionReport | None:
        """Apply every plan item in order, then reset to idle.

        Returns None when there is nothing to execute or the user declines.
        Item failures are collected; the batch always runs to the end.
        """
        if self._state.phase != WorkflowPhase.READY or not self._state.plan:
            self.notify(NotificationLevel.WARNING, "No implementation plan available to execute.")
            return None
        plan = list(self._state.plan)
        total = len(plan)
        confirmed = await self._confirm(
            confirmer,
            f"Are you sure you want to execute {total} file changes to your workspace?",
        )
        if not confirmed:
            logger.info("Plan execution declined")
            return None

        self.notify(NotificationLevel.INFO, "Executing implementation plan...")
        applied = 0
        failures: list[ItemFailure] = []
        for index, item in enumerate(plan, start=1):
            try:
                await self._executor.apply(item)
            except FileApplyError as e:
                error = e.reason
            except Exception as e:
                logger.exception("Unexpected error applying %s", item.file)
                error = str(e) or type(e).__name__
            else:
                applied += 1
                error = None

            if error is not None:
                failures.append(ItemFailure(file=item.file, action=item.action.value, error=error))
                self.notify(NotificationLevel.ERROR, f"Failed to apply change to {item.file}: {error}")
            if total > PROGRESS_THRESHOLD:
                self._emit(
                    WorkflowEventType.EXECUTION_PROGRESS,
                    message=f"Progress: {index}/{total} files processed",
                    index=index,
                    total=total,
                    file=item.file,
                    ok=error is None,
                )

        report = ExecutionReport(applied=applied, total=total, failures=failures)
        self._emit(WorkflowEventType.EXECUTION_DONE, **report.model_dump())
        self.notify(
            NotificationLevel.INFO if not failures else NotificationLevel.WARNING,
            f"Execution completed! Successfully applied {report.ratio} file changes.",
        )
        # the workspace changed underneath the cached context
        self.invalidate_context()
        self._reset()
        return report

    async def restart(self, confirmer: ConfirmerPort | None = None) -> bool:
        """Discard the session after confirmation. Returns False when declined."""
        confirmed = await self._confirm(
            confirmer,
            "Are you sure you want to restart the planning workflow? This will clear all current progress.",
        )
        if not confirmed:
            return False
        self._reset()
        self.notify(NotificationLevel.INFO, "Workflow restarted. Ready for a new planning session.")
        return True
