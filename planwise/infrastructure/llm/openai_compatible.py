"""OpenAI-compatible adapter - Gemini (OpenAI endpoint), LM Studio, vLLM, hosted APIs."""

import logging

import httpx

from planwise.domain.ports.config import OpenAICompatibleConfig
from planwise.domain.ports.llm import LLMMessage, LLMResponse

logger = logging.getLogger(__name__)

HANDSHAKE_TIMEOUT = 10.0


class OpenAICompatibleAdapter:
    """Implements LLMPort via /chat/completions with a bearer credential."""

    def __init__(self, config: OpenAICompatibleConfig, api_key: str | None = None) -> None:
        """Initialize with endpoint config and the resolved credential."""
        self._config = config
        self._base_url = config.base_url.rstrip("/")
        self._headers = {"Content-Type": "application/json"}
        if api_key:
            self._headers["Authorization"] = f"Bearer {api_key}"
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create persistent async HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self._config.timeout,
                headers=self._headers,
            )
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client (call during app shutdown)."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def _chat_body(self, model: str, messages: list[dict], temperature: float) -> dict:
        """Build request body; optional max_tokens from config."""
        body: dict = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "stream": False,
        }
        if self._config.max_tokens is not None:
            body["max_tokens"] = self._config.max_tokens
        return body

    async def generate(
        self,
        messages: list[LLMMessage],
        model: str | None = None,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """Generate a single response (non-streaming)."""
        model = model or "default"
        body = self._chat_body(
            model,
            [{"role": m.role, "content": m.content} for m in messages],
            temperature,
        )
        client = self._get_client()
        resp = await client.post(f"{self._base_url}/chat/completions", json=body)
        if resp.status_code >= 400:
            logger.error("LLM API error %s: %s", resp.status_code, resp.text[:500])
        resp.raise_for_status()
        data = resp.json()
        choice = (data.get("choices") or [{}])[0]
        content = (choice.get("message") or {}).get("content") or ""
        return LLMResponse(content=content, model=data.get("model") or model, done=True)

    async def is_available(self) -> bool:
        """Handshake: list models with the configured credential."""
        try:
            async with httpx.AsyncClient(timeout=HANDSHAKE_TIMEOUT) as client:
                resp = await client.get(f"{self._base_url}/models", headers=self._headers)
                if resp.status_code != 200:
                    logger.debug("OpenAI-compatible handshake rejected: HTTP %s", resp.status_code)
                return resp.status_code == 200
        except (httpx.ConnectTimeout, httpx.ConnectError, httpx.ReadTimeout, OSError) as e:
            logger.debug("OpenAI-compatible handshake failed (connection): %s", e)
            return False
        except httpx.HTTPError as e:
            logger.debug("OpenAI-compatible handshake failed (HTTP): %s", e)
            return False
