"""LLM Port - interface for the reasoning backend."""

from typing import Protocol

from pydantic import BaseModel


class LLMMessage(BaseModel):
    """Single message in a prompt."""

    role: str  # "system" | "user" | "assistant"
    content: str


class LLMResponse(BaseModel):
    """Raw text returned by the backend."""

    content: str
    model: str
    done: bool = True


class LLMPort(Protocol):
    """Interface for reasoning backends (OpenAI-compatible endpoints, Ollama)."""

    async def generate(
        self,
        messages: list[LLMMessage],
        model: str | None = None,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """Generate a single response. One request, no retries."""
        ...

    async def is_available(self) -> bool:
        """Handshake: check the backend answers with the configured credential."""
        ...

    async def close(self) -> None:
        """Release network resources."""
        ...
