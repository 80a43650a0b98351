"""FastAPI dependencies - resolve services from the app's container."""

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from planwise.api.container import Container
from planwise.application.generation.adapter import GenerationAdapter
from planwise.application.planning.use_case import WorkflowEngine

limiter = Limiter(key_func=get_remote_address)


def get_container(request: Request) -> Container:
    return request.app.state.container


def get_engine(request: Request) -> WorkflowEngine:
    return get_container(request).workflow_engine


def get_generation_adapter(request: Request) -> GenerationAdapter:
    return get_container(request).generation_adapter
