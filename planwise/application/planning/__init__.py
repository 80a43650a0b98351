"""Planning workflow: engine, DTOs and confirmers."""

from planwise.application.planning.confirmers import StaticConfirmer
from planwise.application.planning.use_case import WorkflowEngine

__all__ = ["StaticConfirmer", "WorkflowEngine"]
