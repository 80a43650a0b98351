"""Tests for WorkflowEngine: phase transitions, persistence and execution."""

from pathlib import Path

import pytest

from planwise.application.generation.adapter import GenerationAdapter
from planwise.application.planning.confirmers import StaticConfirmer
from planwise.application.planning.use_case import WorkflowEngine
from planwise.domain.entities.plan import PlanItem
from planwise.domain.entities.workflow_events import NotificationLevel, WorkflowEventType
from planwise.domain.entities.workflow_state import WorkflowPhase, WorkflowState
from planwise.domain.errors import FileApplyError, InputValidationError, NoWorkspaceError
from planwise.domain.ports.config import GenerationConfig
from planwise.infrastructure.analyzer import ContextAggregator
from planwise.infrastructure.executor.file_applier import PlanFileApplier
from planwise.infrastructure.persistence.workflow_store import (
    InMemoryWorkflowStore,
    JsonWorkflowStore,
)

REQUEST = "Add a settings page with dark mode"
AUTH_REQUEST = "Add user authentication with Auth0"


class FakeGenerator:
    def __init__(self, questions=None, plan=None):
        self.questions = ["Which theme?", "Persist per user?"] if questions is None else questions
        self.plan = (
            [
                PlanItem(file="src/Settings.tsx", action="new", description="Settings page"),
                PlanItem(file="src/App.tsx", action="modify", description="Add settings route"),
            ]
            if plan is None
            else plan
        )
        self.clarification_calls = []
        self.plan_calls = []

    async def propose_clarifications(self, request, context=None):
        self.clarification_calls.append((request, context))
        return list(self.questions)

    async def propose_plan(self, request, answers, context=None):
        self.plan_calls.append((request, answers, context))
        return list(self.plan)


class FakeAggregator:
    def __init__(self, context=None, error=None):
        self.context = context
        self.error = error
        self.calls = 0

    def analyze(self, root_path):
        self.calls += 1
        if self.error:
            raise self.error
        return self.context


class RecordingExecutor:
    def __init__(self, fail_on=()):
        self.fail_on = set(fail_on)
        self.applied = []

    async def apply(self, item):
        if item.file in self.fail_on:
            raise FileApplyError(item.file, "file not found")
        self.applied.append(item.file)


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def aggregator(react_context):
    return FakeAggregator(context=react_context)


@pytest.fixture
def store():
    return InMemoryWorkflowStore()


@pytest.fixture
def executor():
    return RecordingExecutor()


@pytest.fixture
def engine(generator, aggregator, store, executor):
    return WorkflowEngine(
        generator=generator,
        aggregator=aggregator,
        store=store,
        executor=executor,
        confirmer=StaticConfirmer(True),
        workspace_root="/workspace",
    )


@pytest.fixture
def events(engine):
    received = []
    engine.subscribe(received.append)
    return received


async def _to_ready(engine: WorkflowEngine) -> None:
    assert await engine.start(REQUEST)
    assert engine.answer("Dark and light")
    assert engine.answer("Yes, per user")
    assert await engine.submit()


class TestStart:
    @pytest.mark.asyncio
    async def test_start_enters_clarification(self, engine, generator, react_context, store):
        assert await engine.start(f"  {REQUEST}  ") is True

        state = engine.state
        assert state.phase is WorkflowPhase.CLARIFICATION
        assert state.user_request == REQUEST
        assert state.clarification_questions == ["Which theme?", "Persist per user?"]
        assert state.clarification_answers == []
        assert generator.clarification_calls == [(REQUEST, react_context)]
        assert store.load("planwise.workflowState") == state

    @pytest.mark.asyncio
    async def test_short_request_rejected_without_mutation(self, engine, generator, events):
        with pytest.raises(InputValidationError):
            await engine.start("too short")
        assert engine.state == WorkflowState()
        assert generator.clarification_calls == []
        assert events == []

    @pytest.mark.asyncio
    async def test_start_outside_idle_is_refused(self, engine, generator):
        await engine.start(REQUEST)
        assert await engine.start("Another long enough request") is False
        assert len(generator.clarification_calls) == 1

    @pytest.mark.asyncio
    async def test_context_built_once_per_session(self, engine, aggregator):
        await _to_ready(engine)
        assert aggregator.calls == 1

    @pytest.mark.asyncio
    async def test_missing_workspace_plans_without_context(self, generator, store, executor):
        engine = WorkflowEngine(
            generator=generator,
            aggregator=FakeAggregator(error=NoWorkspaceError("No workspace folder found")),
            store=store,
            executor=executor,
        )
        assert await engine.start(REQUEST) is True
        assert generator.clarification_calls == [(REQUEST, None)]

    @pytest.mark.asyncio
    async def test_empty_questions_revert_to_idle(self, aggregator, store, executor, events):
        engine = WorkflowEngine(
            generator=FakeGenerator(questions=[]),
            aggregator=aggregator,
            store=store,
            executor=executor,
        )
        engine.subscribe(events.append)
        assert await engine.start(REQUEST) is False
        assert engine.state.phase is WorkflowPhase.IDLE
        assert any(e.level is NotificationLevel.ERROR for e in events)

    @pytest.mark.asyncio
    async def test_aggregator_crash_reverts_to_idle(self, generator, react_context, store, executor):
        aggregator = FakeAggregator(error=RuntimeError("Symlink loop from '/workspace/a'"))
        engine = WorkflowEngine(
            generator=generator,
            aggregator=aggregator,
            store=store,
            executor=executor,
        )
        received = []
        engine.subscribe(received.append)

        assert await engine.start(REQUEST) is False

        assert engine.state == WorkflowState()
        assert store.load("planwise.workflowState") is None
        errors = [e for e in received if e.level is NotificationLevel.ERROR]
        assert "Symlink loop" in errors[-1].message
        assert generator.clarification_calls == []

        aggregator.error = None
        aggregator.context = react_context
        assert await engine.start(REQUEST) is True
        assert engine.state.phase is WorkflowPhase.CLARIFICATION

    @pytest.mark.asyncio
    async def test_start_emits_phase_questions_and_notification(self, engine, events):
        await engine.start(REQUEST)
        types = [e.event_type for e in events]
        assert types[0] is WorkflowEventType.PHASE
        assert events[0].phase == "clarification"
        questions = next(e for e in events if e.event_type is WorkflowEventType.QUESTIONS)
        assert questions.payload["total"] == 2
        assert types[-1] is WorkflowEventType.NOTIFICATION


class TestAnswer:
    @pytest.mark.asyncio
    async def test_answers_fill_in_order(self, engine, events):
        await engine.start(REQUEST)
        assert engine.answer("Dark and light") is True
        assert engine.state.next_question == "Persist per user?"
        assert engine.can_submit is False
        assert engine.answer("Yes") is True
        assert engine.can_submit is True

        progress = [e for e in events if e.event_type is WorkflowEventType.ANSWER]
        assert [(e.payload["answered"], e.payload["remaining"]) for e in progress] == [(1, 1), (2, 0)]

    @pytest.mark.asyncio
    async def test_excess_answers_are_noops(self, engine):
        await engine.start(REQUEST)
        engine.answer("Dark and light")
        engine.answer("Yes")
        assert engine.answer("One more") is False
        assert engine.state.clarification_answers == ["Dark and light", "Yes"]

    @pytest.mark.asyncio
    async def test_short_answer_rejected(self, engine):
        await engine.start(REQUEST)
        with pytest.raises(InputValidationError):
            engine.answer(" x ")
        assert engine.state.clarification_answers == []

    def test_answer_while_idle(self, engine):
        assert engine.answer("Something") is False
        assert engine.state.phase is WorkflowPhase.IDLE


class TestSubmit:
    @pytest.mark.asyncio
    async def test_partial_answers_do_not_generate(self, engine, generator, events):
        await engine.start(REQUEST)
        engine.answer("Dark and light")

        assert await engine.submit() is False
        assert generator.plan_calls == []
        assert engine.state.phase is WorkflowPhase.CLARIFICATION
        assert events[-1].level is NotificationLevel.WARNING

    @pytest.mark.asyncio
    async def test_submit_reaches_ready(self, engine, generator, react_context, events):
        await _to_ready(engine)

        state = engine.state
        assert state.phase is WorkflowPhase.READY
        assert [item.file for item in state.plan] == ["src/Settings.tsx", "src/App.tsx"]
        assert generator.plan_calls == [(REQUEST, ["Dark and light", "Yes, per user"], react_context)]
        phases = [e.phase for e in events if e.event_type is WorkflowEventType.PHASE]
        assert "planning" in phases
        plan_event = next(e for e in events if e.event_type is WorkflowEventType.PLAN)
        assert plan_event.payload["counts"] == {"new": 1, "modify": 1, "remove": 0}
        assert engine.describe_status() == "Plan Ready - 2 file changes prepared"

    @pytest.mark.asyncio
    async def test_empty_plan_returns_to_clarification(self, aggregator, store, executor):
        engine = WorkflowEngine(
            generator=FakeGenerator(plan=[]),
            aggregator=aggregator,
            store=store,
            executor=executor,
        )
        await engine.start(REQUEST)
        engine.answer("Dark and light")
        engine.answer("Yes")
        assert await engine.submit() is False
        assert engine.state.phase is WorkflowPhase.CLARIFICATION
        assert engine.state.plan == []


class TestExecute:
    @pytest.mark.asyncio
    async def test_execute_applies_all_and_resets(self, engine, executor, store):
        await _to_ready(engine)

        report = await engine.execute()

        assert report.applied == 2 and report.total == 2
        assert report.ratio == "2/2"
        assert executor.applied == ["src/Settings.tsx", "src/App.tsx"]
        assert engine.state == WorkflowState()
        assert store.load("planwise.workflowState") == WorkflowState()

    @pytest.mark.asyncio
    async def test_failure_does_not_abort_batch(self, engine, store):
        await _to_ready(engine)
        failing = RecordingExecutor(fail_on={"src/Settings.tsx"})
        engine._executor = failing

        report = await engine.execute()

        assert report.ratio == "1/2"
        assert report.failures[0].file == "src/Settings.tsx"
        assert failing.applied == ["src/App.tsx"]
        assert engine.state.phase is WorkflowPhase.IDLE

    @pytest.mark.asyncio
    async def test_unexpected_error_is_reported_per_item(self, engine):
        await _to_ready(engine)

        class Exploding:
            async def apply(self, item):
                raise RuntimeError("disk on fire")

        engine._executor = Exploding()
        report = await engine.execute()
        assert report.applied == 0
        assert [f.error for f in report.failures] == ["disk on fire", "disk on fire"]

    @pytest.mark.asyncio
    async def test_declined_execution_keeps_plan(self, engine, executor):
        await _to_ready(engine)

        assert await engine.execute(StaticConfirmer(False)) is None
        assert executor.applied == []
        assert engine.state.phase is WorkflowPhase.READY

    @pytest.mark.asyncio
    async def test_execute_without_plan(self, engine):
        assert await engine.execute() is None

    @pytest.mark.asyncio
    async def test_progress_events_only_for_larger_plans(self, aggregator, store, events):
        plan = [PlanItem(file=f"src/f{i}.ts", action="new", description="d") for i in range(4)]
        engine = WorkflowEngine(
            generator=FakeGenerator(plan=plan),
            aggregator=aggregator,
            store=store,
            executor=RecordingExecutor(),
            confirmer=StaticConfirmer(True),
        )
        engine.subscribe(events.append)
        await _to_ready(engine)
        await engine.execute()

        progress = [e for e in events if e.event_type is WorkflowEventType.EXECUTION_PROGRESS]
        assert [e.payload["index"] for e in progress] == [1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_execution_invalidates_context(self, engine, aggregator):
        await _to_ready(engine)
        await engine.execute()
        await engine.start(REQUEST)
        assert aggregator.calls == 2


class TestRestart:
    @pytest.mark.asyncio
    async def test_confirmed_restart_clears_state(self, engine, events):
        await engine.start(REQUEST)
        assert await engine.restart() is True
        assert engine.state == WorkflowState()
        assert any(e.event_type is WorkflowEventType.RESET for e in events)

    @pytest.mark.asyncio
    async def test_declined_restart_keeps_state(self, engine):
        await engine.start(REQUEST)
        assert await engine.restart(StaticConfirmer(False)) is False
        assert engine.state.phase is WorkflowPhase.CLARIFICATION

    @pytest.mark.asyncio
    async def test_no_confirmer_declines(self, generator, aggregator, store, executor):
        engine = WorkflowEngine(generator, aggregator, store, executor)
        await engine.start(REQUEST)
        assert await engine.restart() is False


class TestPersistence:
    @pytest.mark.asyncio
    async def test_state_survives_reconstruction(self, engine, generator, aggregator, store, executor):
        await engine.start(REQUEST)
        engine.answer("Dark and light")

        restored = WorkflowEngine(generator, aggregator, store, executor)

        assert restored.state == engine.state
        assert restored.describe_status() == "Clarification Phase - 1/2 questions answered"

    def test_interrupted_planning_resumes_clarification(self, generator, aggregator, executor):
        store = InMemoryWorkflowStore()
        store.save(
            "planwise.workflowState",
            WorkflowState(
                phase=WorkflowPhase.PLANNING,
                user_request=REQUEST,
                clarification_questions=["Q?"],
                clarification_answers=["A1"],
            ),
        )
        engine = WorkflowEngine(generator, aggregator, store, executor)
        assert engine.state.phase is WorkflowPhase.CLARIFICATION
        assert engine.can_submit is True

    def test_custom_session_key(self, generator, aggregator, executor):
        store = InMemoryWorkflowStore()
        store.save("other", WorkflowState(phase=WorkflowPhase.CLARIFICATION, clarification_questions=["Q?"]))
        engine = WorkflowEngine(generator, aggregator, store, executor, session_key="other")
        assert engine.state.clarification_questions == ["Q?"]


def test_unsubscribe_stops_delivery(engine):
    received = []
    unsubscribe = engine.subscribe(received.append)
    unsubscribe()
    engine.notify(NotificationLevel.INFO, "hello")
    assert received == []


def test_failing_listener_does_not_break_others(engine):
    received = []

    def broken(event):
        raise ValueError("listener bug")

    engine.subscribe(broken)
    engine.subscribe(received.append)
    engine.notify(NotificationLevel.INFO, "hello")
    assert [e.message for e in received] == ["hello"]


class TestEndToEnd:
    """Real adapter (no credential), real aggregator, real file applier."""

    def _engine(self, workspace: Path, tmp_path: Path, store) -> WorkflowEngine:
        adapter = GenerationAdapter(
            GenerationConfig(),
            backend_factory=lambda key: None,
            resolve_credential=lambda: None,
        )
        return WorkflowEngine(
            generator=adapter,
            aggregator=ContextAggregator(),
            store=store,
            executor=PlanFileApplier(workspace, backup_dir=tmp_path / "backups"),
            confirmer=StaticConfirmer(True),
            workspace_root=str(workspace),
        )

    @pytest.mark.asyncio
    async def test_auth0_fallback_flow(self, workspace, tmp_path):
        store = JsonWorkflowStore(tmp_path / "state.json")
        engine = self._engine(workspace, tmp_path, store)

        assert await engine.start(AUTH_REQUEST)
        assert len(engine.state.clarification_questions) == 3
        for answer in ("Auth0", "Google and GitHub", "No"):
            engine.answer(answer)
        assert await engine.submit()
        assert engine.snapshot().plan_counts == {"new": 4, "modify": 1, "remove": 1}

        report = await engine.execute()

        assert report.ratio == "6/6"
        assert (workspace / "src" / "types" / "auth.ts").exists()
        assert (workspace / "src" / "components" / "ProtectedRoute.tsx").exists()
        assert not (workspace / "src" / "utils" / "localAuth.ts").exists()
        assert "PLAN: Add Auth0 provider" in (workspace / "src" / "App.tsx").read_text()
        assert len(list((tmp_path / "backups").iterdir())) == 2
        assert engine.state.phase is WorkflowPhase.IDLE
        assert store.load("planwise.workflowState") == WorkflowState()

    @pytest.mark.asyncio
    async def test_missing_file_fails_single_item(self, workspace, tmp_path):
        (workspace / "src" / "utils" / "localAuth.ts").unlink()
        engine = self._engine(workspace, tmp_path, InMemoryWorkflowStore())

        await engine.start(AUTH_REQUEST)
        for answer in ("Auth0", "Google", "No"):
            engine.answer(answer)
        await engine.submit()
        report = await engine.execute()

        assert report.ratio == "5/6"
        assert report.failures[0].file == "src/utils/localAuth.ts"
        assert engine.state.phase is WorkflowPhase.IDLE

    @pytest.mark.asyncio
    async def test_resume_after_restart_of_process(self, workspace, tmp_path):
        state_file = tmp_path / "state.json"
        engine = self._engine(workspace, tmp_path, JsonWorkflowStore(state_file))
        await engine.start(AUTH_REQUEST)
        engine.answer("Auth0")

        resumed = self._engine(workspace, tmp_path, JsonWorkflowStore(state_file))

        assert resumed.state.clarification_answers == ["Auth0"]
        assert resumed.state.next_question == engine.state.clarification_questions[1]
