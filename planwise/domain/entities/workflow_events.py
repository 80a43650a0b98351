"""Workflow event types pushed to front ends after each mutating operation."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class WorkflowEventType(str, Enum):
    """Event types streamed to clients."""

    PHASE = "phase"  # phase changed (including in-flight phases)
    QUESTIONS = "questions"
    ANSWER = "answer"  # answered/total progress
    PLAN = "plan"  # plan ready, counts by action
    EXECUTION_PROGRESS = "execution_progress"
    EXECUTION_DONE = "execution_done"
    NOTIFICATION = "notification"  # transient info/warning/error message
    RESET = "reset"


class NotificationLevel(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class WorkflowEvent(BaseModel):
    """Single observable event."""

    event_type: WorkflowEventType
    phase: str
    message: str | None = None
    level: NotificationLevel | None = None
    payload: dict[str, Any] = Field(default_factory=dict)
