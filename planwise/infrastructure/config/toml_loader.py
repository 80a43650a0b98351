"""TOML configuration loader with env overrides."""

import logging
import os
import tomllib
from pathlib import Path

from planwise.domain.ports.config import (
    AnalyzerConfig,
    AppConfig,
    CredentialsConfig,
    ExecutorConfig,
    GenerationConfig,
    LLMConfig,
    OllamaConfig,
    OpenAICompatibleConfig,
    SecurityConfig,
    ServerConfig,
    WorkflowConfig,
)

logger = logging.getLogger(__name__)


def _load_toml(path: Path) -> dict:
    """Load TOML file."""
    with open(path, "rb") as f:
        return tomllib.load(f)


def _merge(base: dict, override: dict) -> dict:
    """Shallow-merge sections: tables are merged key by key, scalars replaced."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def _int_env(name: str) -> int | None:
    raw = os.getenv(name)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning("Invalid %s env value: %r, ignoring", name, raw)
        return None


def _apply_env_overrides(config: dict) -> dict:
    """Apply environment variable overrides."""
    if provider := os.getenv("LLM_PROVIDER"):
        config.setdefault("llm", {})["provider"] = provider
    if host := os.getenv("OLLAMA_HOST"):
        config.setdefault("ollama", {})["host"] = host
    if base_url := os.getenv("OPENAI_BASE_URL"):
        config.setdefault("openai_compatible", {})["base_url"] = base_url
    if model := os.getenv("PLANWISE_MODEL"):
        config.setdefault("generation", {})["model"] = model
    if workspace := os.getenv("PLANWISE_WORKSPACE"):
        config.setdefault("workflow", {})["workspace_root"] = workspace.strip()
    if state_file := os.getenv("PLANWISE_STATE_FILE"):
        config.setdefault("workflow", {})["state_file"] = state_file.strip()
    if (port := _int_env("PORT")) is not None:
        config.setdefault("server", {})["port"] = port
    if level := os.getenv("LOG_LEVEL"):
        config.setdefault("logging", {})["level"] = level.upper()
    if path := os.getenv("LOG_FILE"):
        config.setdefault("logging", {})["file"] = path.strip()
    if origins := os.getenv("CORS_ORIGINS"):
        config.setdefault("security", {})["cors_origins"] = [o.strip() for o in origins.split(",")]
    if (rate := _int_env("RATE_LIMIT_PER_MINUTE")) is not None:
        config.setdefault("security", {})["rate_limit_requests_per_minute"] = rate
    return config


def load_config(config_dir: Path | None = None) -> AppConfig:
    """Load configuration from TOML files with env overrides.

    Loads default.toml, then development.toml if exists.
    """
    if config_dir is None:
        config_dir = Path(__file__).resolve().parent.parent.parent.parent / "config"

    config: dict = {}

    default_path = config_dir / "default.toml"
    if default_path.exists():
        config = _load_toml(default_path)

    dev_path = config_dir / "development.toml"
    if dev_path.exists():
        config = _merge(config, _load_toml(dev_path))

    config = _apply_env_overrides(config)

    logging_raw = config.get("logging") or {}
    return AppConfig(
        server=ServerConfig(**(config.get("server") or {})),
        llm=LLMConfig(**(config.get("llm") or {})),
        openai_compatible=OpenAICompatibleConfig(**(config.get("openai_compatible") or {})),
        ollama=OllamaConfig(**(config.get("ollama") or {})),
        credentials=CredentialsConfig(**(config.get("credentials") or {})),
        generation=GenerationConfig(**(config.get("generation") or {})),
        analyzer=AnalyzerConfig(**(config.get("analyzer") or {})),
        workflow=WorkflowConfig(**(config.get("workflow") or {})),
        executor=ExecutorConfig(**(config.get("executor") or {})),
        security=SecurityConfig(**(config.get("security") or {})),
        log_level=logging_raw.get("level", "INFO"),
        log_file=(logging_raw.get("file") or "").strip(),
        log_rotation_max_mb=int(logging_raw.get("log_rotation_max_mb", 5)),
        log_rotation_backups=int(logging_raw.get("log_rotation_backups", 3)),
    )
