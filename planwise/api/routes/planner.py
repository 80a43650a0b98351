"""Planner API routes - a thin front end over the workflow engine.

Confirmation for execute/restart comes from the request body (``confirm``);
an absent or false flag declines.
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sse_starlette.sse import EventSourceResponse

from planwise.api.container import Container
from planwise.api.dependencies import get_container, get_engine, get_generation_adapter, limiter
from planwise.application.generation.adapter import GenerationAdapter
from planwise.application.planning.confirmers import StaticConfirmer
from planwise.application.planning.dto import (
    ActionResult,
    AnswerRequest,
    ConfirmRequest,
    StartRequest,
    WorkflowSnapshot,
)
from planwise.application.planning.use_case import WorkflowEngine
from planwise.domain.entities.workflow_events import WorkflowEvent
from planwise.domain.errors import InputValidationError
from planwise.infrastructure.analyzer import render_context_summary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/planner", tags=["planner"])


@router.get("/state", response_model=WorkflowSnapshot)
@limiter.limit("120/minute")
async def get_state(request: Request, engine: WorkflowEngine = Depends(get_engine)) -> WorkflowSnapshot:
    """Current session state and derived status."""
    return engine.snapshot()


@router.post("/start", response_model=ActionResult)
@limiter.limit("30/minute")
async def start(
    request: Request,
    body: StartRequest,
    container: Container = Depends(get_container),
    engine: WorkflowEngine = Depends(get_engine),
) -> ActionResult:
    """Begin a planning session with a free-text request."""
    async with container.operation_lock:
        try:
            ok = await engine.start(body.request)
        except InputValidationError as e:
            raise HTTPException(status_code=422, detail=str(e)) from e
    return ActionResult(ok=ok, snapshot=engine.snapshot())


@router.post("/answer", response_model=ActionResult)
@limiter.limit("60/minute")
async def answer(
    request: Request,
    body: AnswerRequest,
    container: Container = Depends(get_container),
    engine: WorkflowEngine = Depends(get_engine),
) -> ActionResult:
    """Answer the next unanswered clarification question."""
    async with container.operation_lock:
        try:
            ok = engine.answer(body.answer)
        except InputValidationError as e:
            raise HTTPException(status_code=422, detail=str(e)) from e
    return ActionResult(ok=ok, snapshot=engine.snapshot())


@router.post("/submit", response_model=ActionResult)
@limiter.limit("30/minute")
async def submit(
    request: Request,
    container: Container = Depends(get_container),
    engine: WorkflowEngine = Depends(get_engine),
) -> ActionResult:
    """Generate the implementation plan once all questions are answered."""
    async with container.operation_lock:
        ok = await engine.submit()
    return ActionResult(ok=ok, snapshot=engine.snapshot())


@router.post("/execute", response_model=ActionResult)
@limiter.limit("10/minute")
async def execute(
    request: Request,
    body: ConfirmRequest,
    container: Container = Depends(get_container),
    engine: WorkflowEngine = Depends(get_engine),
) -> ActionResult:
    """Apply the ready plan to the workspace."""
    async with container.operation_lock:
        report = await engine.execute(StaticConfirmer(body.confirm))
    return ActionResult(ok=report is not None, snapshot=engine.snapshot(), report=report)


@router.post("/restart", response_model=ActionResult)
@limiter.limit("30/minute")
async def restart(
    request: Request,
    body: ConfirmRequest,
    container: Container = Depends(get_container),
    engine: WorkflowEngine = Depends(get_engine),
) -> ActionResult:
    """Discard the current session."""
    async with container.operation_lock:
        ok = await engine.restart(StaticConfirmer(body.confirm))
    return ActionResult(ok=ok, snapshot=engine.snapshot())


@router.get("/context")
@limiter.limit("30/minute")
async def project_context(
    request: Request,
    container: Container = Depends(get_container),
    engine: WorkflowEngine = Depends(get_engine),
) -> dict:
    """Project context used for generation, with its prompt summary."""
    async with container.operation_lock:
        context = await engine.project_context()
    if context is None:
        raise HTTPException(status_code=404, detail="No workspace folder found")
    return {
        "context": context.model_dump(),
        "summary": render_context_summary(context),
    }


@router.post("/backend/refresh")
@limiter.limit("10/minute")
async def refresh_backend(
    request: Request,
    container: Container = Depends(get_container),
    adapter: GenerationAdapter = Depends(get_generation_adapter),
) -> dict:
    """Re-resolve the credential and re-run the backend handshake.

    Waits for any in-flight operation so the backend client is not closed under it.
    """
    async with container.operation_lock:
        initialized = await adapter.refresh()
    return {"initialized": initialized, "reason": adapter.unavailable_reason}


@router.get("/events", response_model=None)
async def events(request: Request, engine: WorkflowEngine = Depends(get_engine)) -> EventSourceResponse:
    """SSE stream of workflow events."""
    queue: asyncio.Queue[WorkflowEvent] = asyncio.Queue()
    unsubscribe = engine.subscribe(queue.put_nowait)

    async def event_generator():
        try:
            while True:
                event = await queue.get()
                yield {"event": event.event_type.value, "data": event.model_dump_json()}
        finally:
            unsubscribe()
            logger.debug("Event stream closed")

    return EventSourceResponse(event_generator())
