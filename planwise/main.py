"""Application entry point."""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from planwise.api.container import Container
from planwise.api.dependencies import limiter
from planwise.api.routes.planner import router as planner_router
from planwise.shared.logging import setup_logging

log = structlog.get_logger()


def _apply_logging_config(container: Container) -> None:
    c = container.config
    setup_logging(
        level=c.log_level,
        file_path=c.log_file or "",
        rotation_max_mb=c.log_rotation_max_mb,
        rotation_backups=c.log_rotation_backups,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: logging, state restore, backend initialization. Shutdown: close backend."""
    container: Container = app.state.container
    _apply_logging_config(container)
    log.info(
        "startup_begin",
        llm_provider=container.config.llm.provider,
        workspace=container.workspace_root,
    )
    engine = container.workflow_engine
    await container.generation_adapter.initialize()
    log.info("startup_complete", phase=engine.state.phase.value)
    yield
    log.info("shutdown_begin")
    await container.aclose()
    log.info("shutdown_complete")


def create_app(container: Container | None = None) -> FastAPI:
    """Build the FastAPI app around container (a fresh one by default)."""
    container = container or Container()
    app = FastAPI(
        title="Planwise",
        version="0.1.0",
        description="Clarify a feature request, plan the file changes, apply them",
        lifespan=lifespan,
    )
    app.state.container = container

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=container.config.security.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(planner_router)

    @app.get("/health")
    @limiter.limit(f"{container.config.security.rate_limit_requests_per_minute}/minute")
    async def health(request: Request) -> dict:
        """Health check with backend status."""
        adapter = request.app.state.container.generation_adapter
        return {
            "status": "ok",
            "service": "planwise",
            "llm_provider": container.config.llm.provider,
            "backend_initialized": adapter.is_initialized,
            "backend_unavailable_reason": adapter.unavailable_reason,
        }

    return app


app = create_app()
