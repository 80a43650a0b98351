"""Config Port - interface for configuration access."""

from typing import Protocol

from pydantic import BaseModel, Field


class LLMConfig(BaseModel):
    """Backend provider selection."""

    provider: str = "openai_compatible"  # "openai_compatible" | "ollama"


class OpenAICompatibleConfig(BaseModel):
    """Any /v1/chat/completions endpoint. Default points at Gemini's OpenAI-compatible API."""

    base_url: str = "https://generativelanguage.googleapis.com/v1beta/openai"
    # Settings-store credential; highest priority source when non-empty.
    api_key: str = ""
    timeout: int = 120
    max_tokens: int | None = 2048


class OllamaConfig(BaseModel):
    """Ollama connection configuration. No credential required."""

    host: str = "http://localhost:11434"
    timeout: int = 120
    num_ctx: int | None = None


class CredentialsConfig(BaseModel):
    """Where the backend credential is looked up after the settings store."""

    env_var: str = "GEMINI_API_KEY"
    env_file_name: str = ".env"


class GenerationConfig(BaseModel):
    """Generation adapter settings."""

    # Explicit model for every provider. Empty = the provider's entry in provider_models.
    model: str = ""
    provider_models: dict[str, str] = Field(
        default_factory=lambda: {"openai_compatible": "gemini-2.0-flash", "ollama": "llama3.1"}
    )
    temperature: float = 0.7
    max_questions: int = 3
    # Handshake on initialize(): a failed probe leaves the adapter in fallback mode.
    probe_on_init: bool = True
    # Re-run initialization before a call while uninitialized (instead of waiting for refresh()).
    reprobe_on_call: bool = False

    def model_for(self, provider: str) -> str:
        """Resolve the model ID for provider. Unknown providers use the OpenAI-compatible entry."""
        if self.model:
            return self.model
        return self.provider_models.get(provider) or self.provider_models.get("openai_compatible", "")

    def for_provider(self, provider: str) -> "GenerationConfig":
        """Copy with model resolved for provider."""
        return self.model_copy(update={"model": self.model_for(provider)})


class AnalyzerConfig(BaseModel):
    """Context aggregator bounds."""

    max_file_size: int = 50_000
    max_total_files: int = 20
    max_tree_depth: int = 3


class WorkflowConfig(BaseModel):
    """Workflow engine settings."""

    workspace_root: str = ""  # Empty = current working directory
    session_key: str = "planwise.workflowState"
    state_file: str = "output/workflow_state.json"
    min_request_length: int = 10
    min_answer_length: int = 2


class ExecutorConfig(BaseModel):
    """Default plan applier settings."""

    backup_dir: str = "output/backups"


class SecurityConfig(BaseModel):
    """Security settings."""

    rate_limit_requests_per_minute: int = 100
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:5173"])


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = "127.0.0.1"
    port: int = 8000


class AppConfig(BaseModel):
    """Full application configuration."""

    server: ServerConfig = ServerConfig()
    llm: LLMConfig = LLMConfig()
    openai_compatible: OpenAICompatibleConfig = OpenAICompatibleConfig()
    ollama: OllamaConfig = OllamaConfig()
    credentials: CredentialsConfig = CredentialsConfig()
    generation: GenerationConfig = GenerationConfig()
    analyzer: AnalyzerConfig = AnalyzerConfig()
    workflow: WorkflowConfig = WorkflowConfig()
    executor: ExecutorConfig = ExecutorConfig()
    security: SecurityConfig = SecurityConfig()
    log_level: str = "INFO"
    # Log file: path relative to cwd or absolute. Empty = only stdout.
    log_file: str = ""
    log_rotation_max_mb: int = 5
    log_rotation_backups: int = 3


class ConfigPort(Protocol):
    """Interface for configuration providers."""

    def get_config(self) -> AppConfig:
        """Get the full application configuration."""
        ...
