"""Ollama adapter - local backend, no credential."""

import logging

import httpx
from ollama import AsyncClient

from planwise.domain.ports.config import OllamaConfig
from planwise.domain.ports.llm import LLMMessage, LLMResponse

logger = logging.getLogger(__name__)

# Connect timeout: fail fast when the host is down so the fallback kicks in quickly
DEFAULT_CONNECT_TIMEOUT = 5.0


class OllamaAdapter:
    """Ollama implementation of LLMPort."""

    def __init__(self, config: OllamaConfig) -> None:
        self._config = config
        read_timeout = float(config.timeout) if config.timeout else 120.0
        timeout = httpx.Timeout(
            connect=DEFAULT_CONNECT_TIMEOUT,
            read=read_timeout,
            write=read_timeout,
            pool=30.0,
        )
        self._client = AsyncClient(host=config.host, timeout=timeout)

    def _ollama_options(self, temperature: float) -> dict:
        """Build options dict: temperature + optional num_ctx from config."""
        opts: dict = {"temperature": temperature}
        if self._config.num_ctx is not None:
            opts["num_ctx"] = self._config.num_ctx
        return opts

    async def generate(
        self,
        messages: list[LLMMessage],
        model: str | None = None,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """Generate a single response."""
        model = model or "llama3"
        response = await self._client.chat(
            model=model,
            messages=[{"role": m.role, "content": m.content} for m in messages],
            options=self._ollama_options(temperature),
        )
        content = response.message.content if response.message else ""
        return LLMResponse(content=content or "", model=response.model or model, done=True)

    async def is_available(self) -> bool:
        """Handshake: check the Ollama server answers /api/tags."""
        try:
            async with httpx.AsyncClient(timeout=DEFAULT_CONNECT_TIMEOUT) as client:
                resp = await client.get(f"{self._config.host.rstrip('/')}/api/tags")
                return resp.status_code == 200
        except (httpx.HTTPError, OSError) as e:
            logger.debug("Ollama handshake failed: %s", e)
            return False

    async def close(self) -> None:
        """Nothing to release: the ollama client owns its connection pool."""
        return None
