"""Generation Adapter - wraps the reasoning backend with strict validation and deterministic fallback.

Both operations always return a schema-valid, non-empty result:

- backend uninitialized (no credential, failed handshake) -> fallback, silently
- backend call raises, or its output fails parsing/validation -> fallback, with a
  warning notification since the backend was expected to work

There are no retries: one backend request per operation.
"""

import asyncio
import logging
from collections.abc import Callable

from planwise.application.generation.fallback import fallback_clarifications, fallback_plan
from planwise.application.generation.parsing import Err, parse_plan, parse_questions
from planwise.application.generation.prompts import (
    build_clarification_messages,
    build_plan_messages,
)
from planwise.domain.entities.plan import PlanItem
from planwise.domain.entities.project_context import ProjectContext
from planwise.domain.entities.workflow_events import NotificationLevel
from planwise.domain.errors import BackendUnavailableError
from planwise.domain.ports.config import GenerationConfig
from planwise.domain.ports.llm import LLMMessage, LLMPort

logger = logging.getLogger(__name__)

Notify = Callable[[NotificationLevel, str], None]
BackendFactory = Callable[[str | None], LLMPort]


class GenerationAdapter:
    """Clarification and plan generation against an unreliable backend."""

    def __init__(
        self,
        config: GenerationConfig,
        backend_factory: BackendFactory,
        resolve_credential: Callable[[], str | None],
        credential_required: bool = True,
        notify: Notify | None = None,
    ) -> None:
        self._config = config
        self._backend_factory = backend_factory
        self._resolve_credential = resolve_credential
        self._credential_required = credential_required
        self._notify_cb = notify
        self._backend: LLMPort | None = None
        self._attempted = False
        self._unavailable: BackendUnavailableError | None = None
        self._init_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Backend lifecycle
    # ------------------------------------------------------------------

    @property
    def is_initialized(self) -> bool:
        return self._backend is not None

    @property
    def unavailable_reason(self) -> str | None:
        return str(self._unavailable) if self._unavailable else None

    def set_notifier(self, notify: Notify | None) -> None:
        self._notify_cb = notify

    def _notify(self, level: NotificationLevel, message: str) -> None:
        if self._notify_cb is not None:
            self._notify_cb(level, message)

    async def initialize(self, announce: bool = True) -> bool:
        """Resolve the credential, build the backend and run the handshake."""
        async with self._init_lock:
            self._attempted = True
            await self._drop_backend()
            try:
                self._backend = await self._connect()
            except BackendUnavailableError as e:
                self._unavailable = e
                logger.warning("Backend unavailable, using fallback responses: %s", e)
                if announce:
                    self._notify(NotificationLevel.WARNING, f"{e}. Using fallback responses.")
                return False
            self._unavailable = None
            logger.info("Backend initialized")
            if announce:
                self._notify(NotificationLevel.INFO, "Reasoning backend connected successfully!")
            return True

    async def _connect(self) -> LLMPort:
        api_key = self._resolve_credential()
        if self._credential_required and not api_key:
            raise BackendUnavailableError(
                "API key not found. Set it in the config file, the environment, or a .env file"
            )
        try:
            backend = self._backend_factory(api_key)
        except Exception as e:
            raise BackendUnavailableError(f"Backend initialization failed: {e}") from e
        if self._config.probe_on_init and not await backend.is_available():
            await backend.close()
            raise BackendUnavailableError("Backend handshake failed")
        return backend

    async def refresh(self) -> bool:
        """Explicit credential refresh: re-run initialization from scratch."""
        return await self.initialize()

    async def _drop_backend(self) -> None:
        if self._backend is not None:
            backend, self._backend = self._backend, None
            await backend.close()

    async def close(self) -> None:
        await self._drop_backend()

    async def _ensure_backend(self) -> LLMPort:
        """Return the live backend or raise BackendUnavailableError."""
        if not self._attempted:
            await self.initialize()
        elif self._backend is None and self._config.reprobe_on_call:
            await self.initialize(announce=False)
        if self._backend is None:
            raise self._unavailable or BackendUnavailableError("Backend not initialized")
        return self._backend

    async def _generate(self, messages: list[LLMMessage]) -> str:
        backend = await self._ensure_backend()
        response = await backend.generate(
            messages,
            model=self._config.model,
            temperature=self._config.temperature,
        )
        return response.content

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def propose_clarifications(
        self,
        request: str,
        context: ProjectContext | None = None,
    ) -> list[str]:
        """Return 1-3 clarification questions for request."""
        try:
            text = await self._generate(build_clarification_messages(request, context))
        except BackendUnavailableError:
            return fallback_clarifications(request)
        except Exception as e:
            logger.warning("Error generating clarification questions: %s", e, exc_info=True)
            self._notify(NotificationLevel.WARNING, "Failed to generate questions with AI. Using fallback.")
            return fallback_clarifications(request)

        result = parse_questions(text, limit=self._config.max_questions)
        if isinstance(result, Err):
            logger.warning("Unusable clarification response: %s", result.reason)
            self._notify(NotificationLevel.WARNING, "AI returned no usable questions. Using fallback.")
            return fallback_clarifications(request)
        return result.value

    async def propose_plan(
        self,
        request: str,
        answers: list[str],
        context: ProjectContext | None = None,
    ) -> list[PlanItem]:
        """Return a non-empty, validated plan for request."""
        try:
            text = await self._generate(build_plan_messages(request, answers, context))
        except BackendUnavailableError:
            return fallback_plan(request)
        except Exception as e:
            logger.warning("Error generating plan: %s", e, exc_info=True)
            self._notify(NotificationLevel.WARNING, "Failed to generate plan with AI. Using fallback.")
            return fallback_plan(request)

        result = parse_plan(text)
        if isinstance(result, Err):
            logger.warning("Unusable plan response: %s", result.reason)
            self._notify(NotificationLevel.WARNING, "AI returned no usable plan. Using fallback.")
            return fallback_plan(request)
        return result.value
