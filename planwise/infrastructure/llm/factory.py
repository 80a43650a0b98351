"""Backend construction by configured provider."""

from planwise.domain.ports.config import AppConfig
from planwise.domain.ports.llm import LLMPort
from planwise.infrastructure.llm.ollama import OllamaAdapter
from planwise.infrastructure.llm.openai_compatible import OpenAICompatibleAdapter

# Providers that run without a credential; their initialization is the handshake alone.
CREDENTIAL_FREE_PROVIDERS = {"ollama"}


def requires_credential(provider: str) -> bool:
    return provider not in CREDENTIAL_FREE_PROVIDERS


def build_llm_backend(config: AppConfig, api_key: str | None) -> LLMPort:
    """Create the LLM adapter for config.llm.provider."""
    if config.llm.provider == "ollama":
        return OllamaAdapter(config.ollama)
    return OpenAICompatibleAdapter(config.openai_compatible, api_key=api_key)
