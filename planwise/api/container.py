"""Dependency Injection Container - one per application instance.

The container is attached to ``app.state`` by ``create_app``; there is no
process-wide instance.
"""

import asyncio
from functools import cached_property
from pathlib import Path
from typing import TYPE_CHECKING

from planwise.domain.ports.config import AppConfig
from planwise.infrastructure.config import CredentialResolver, load_config

if TYPE_CHECKING:
    from planwise.application.generation.adapter import GenerationAdapter
    from planwise.application.planning.use_case import WorkflowEngine
    from planwise.domain.ports.workflow import WorkflowStorePort
    from planwise.infrastructure.analyzer.context_aggregator import ContextAggregator
    from planwise.infrastructure.executor.file_applier import PlanFileApplier


class Container:
    """Lazily builds and caches the planner's services.

    Usage:
        container = Container()
        engine = container.workflow_engine
    """

    def __init__(self, config: AppConfig | None = None, store: "WorkflowStorePort | None" = None):
        self._config_override = config
        self._store_override = store

    @cached_property
    def config(self) -> AppConfig:
        if self._config_override:
            return self._config_override
        return load_config()

    @cached_property
    def workspace_root(self) -> str:
        """Configured project root, or the current working directory."""
        configured = self.config.workflow.workspace_root.strip()
        return configured or str(Path.cwd().resolve())

    @cached_property
    def credential_resolver(self) -> CredentialResolver:
        return CredentialResolver(
            self.config.credentials,
            settings_key=self.config.openai_compatible.api_key,
            workspace_root=self.workspace_root,
        )

    @cached_property
    def generation_adapter(self) -> "GenerationAdapter":
        """Generation adapter bound to the configured backend provider."""
        from planwise.application.generation.adapter import GenerationAdapter
        from planwise.infrastructure.llm import build_llm_backend, requires_credential

        config = self.config
        return GenerationAdapter(
            config.generation.for_provider(config.llm.provider),
            backend_factory=lambda api_key: build_llm_backend(config, api_key),
            resolve_credential=self.credential_resolver.resolve,
            credential_required=requires_credential(config.llm.provider),
        )

    @cached_property
    def context_aggregator(self) -> "ContextAggregator":
        from planwise.infrastructure.analyzer.context_aggregator import ContextAggregator

        analyzer = self.config.analyzer
        return ContextAggregator(
            max_file_size=analyzer.max_file_size,
            max_total_files=analyzer.max_total_files,
            max_tree_depth=analyzer.max_tree_depth,
        )

    @cached_property
    def workflow_store(self) -> "WorkflowStorePort":
        if self._store_override is not None:
            return self._store_override
        from planwise.infrastructure.persistence.workflow_store import JsonWorkflowStore

        return JsonWorkflowStore(self.config.workflow.state_file)

    @cached_property
    def plan_executor(self) -> "PlanFileApplier":
        from planwise.infrastructure.executor.file_applier import PlanFileApplier

        return PlanFileApplier(self.workspace_root, backup_dir=self.config.executor.backup_dir)

    @cached_property
    def workflow_engine(self) -> "WorkflowEngine":
        """Session engine; adapter notifications are forwarded to its subscribers."""
        from planwise.application.planning.use_case import WorkflowEngine

        workflow = self.config.workflow
        engine = WorkflowEngine(
            generator=self.generation_adapter,
            aggregator=self.context_aggregator,
            store=self.workflow_store,
            executor=self.plan_executor,
            workspace_root=self.workspace_root,
            session_key=workflow.session_key,
            min_request_length=workflow.min_request_length,
            min_answer_length=workflow.min_answer_length,
        )
        self.generation_adapter.set_notifier(engine.notify)
        return engine

    @cached_property
    def operation_lock(self) -> asyncio.Lock:
        """Serializes engine operations across concurrent HTTP requests."""
        return asyncio.Lock()

    async def aclose(self) -> None:
        """Release backend connections if the adapter was ever built."""
        if "generation_adapter" in self.__dict__:
            await self.generation_adapter.close()

    def reset(self) -> None:
        """Drop all cached instances (useful for testing)."""
        for attr in list(self.__dict__.keys()):
            if not attr.startswith("_"):
                delattr(self, attr)
