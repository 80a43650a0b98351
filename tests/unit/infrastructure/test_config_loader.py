"""Tests for TOML config loader and credential resolution."""

from pathlib import Path

import pytest

from planwise.domain.ports.config import CredentialsConfig
from planwise.infrastructure.config import CredentialResolver, load_config
from planwise.infrastructure.config.toml_loader import _apply_env_overrides

ENV_VARS = (
    "LLM_PROVIDER",
    "OLLAMA_HOST",
    "OPENAI_BASE_URL",
    "PLANWISE_MODEL",
    "PLANWISE_WORKSPACE",
    "PLANWISE_STATE_FILE",
    "PORT",
    "LOG_LEVEL",
    "LOG_FILE",
    "CORS_ORIGINS",
    "RATE_LIMIT_PER_MINUTE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestLoadConfig:
    def test_repo_defaults(self):
        config = load_config()
        assert config.llm.provider == "openai_compatible"
        assert config.generation.max_questions == 3
        assert config.workflow.min_request_length == 10
        assert config.analyzer.max_total_files == 20

    def test_model_defaults_per_provider(self):
        generation = load_config().generation
        assert generation.model_for("openai_compatible") == "gemini-2.0-flash"
        assert generation.model_for("ollama") == "llama3.1"
        assert generation.for_provider("ollama").model == "llama3.1"

    def test_explicit_model_wins_for_every_provider(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PLANWISE_MODEL", "qwen2.5")
        generation = load_config(tmp_path).generation
        assert generation.model_for("ollama") == "qwen2.5"
        assert generation.model_for("openai_compatible") == "qwen2.5"

    def test_empty_dir_uses_model_defaults(self, tmp_path):
        config = load_config(tmp_path)
        assert config.server.port == 8000
        assert config.workflow.session_key == "planwise.workflowState"
        assert config.credentials.env_var == "GEMINI_API_KEY"
        assert config.log_file == ""

    def test_development_overrides_default(self, tmp_path):
        (tmp_path / "default.toml").write_text(
            '[llm]\nprovider = "openai_compatible"\n\n[server]\nport = 8000\nhost = "0.0.0.0"\n'
        )
        (tmp_path / "development.toml").write_text('[server]\nport = 9000\n')

        config = load_config(tmp_path)

        assert config.server.port == 9000
        assert config.server.host == "0.0.0.0"

    def test_logging_table(self, tmp_path):
        (tmp_path / "default.toml").write_text('[logging]\nlevel = "DEBUG"\nfile = " logs/app.log "\n')
        config = load_config(tmp_path)
        assert config.log_level == "DEBUG"
        assert config.log_file == "logs/app.log"

    def test_env_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LLM_PROVIDER", "ollama")
        monkeypatch.setenv("PLANWISE_MODEL", "llama3.1")
        monkeypatch.setenv("PLANWISE_WORKSPACE", " /srv/project ")
        monkeypatch.setenv("PORT", "8123")
        monkeypatch.setenv("CORS_ORIGINS", "http://a, http://b")

        config = load_config(tmp_path)

        assert config.llm.provider == "ollama"
        assert config.generation.model == "llama3.1"
        assert config.workflow.workspace_root == "/srv/project"
        assert config.server.port == 8123
        assert config.security.cors_origins == ["http://a", "http://b"]


def test_invalid_int_env_ignored(monkeypatch):
    monkeypatch.setenv("PORT", "not-a-port")
    monkeypatch.setenv("RATE_LIMIT_PER_MINUTE", "50")
    config = _apply_env_overrides({})
    assert "server" not in config
    assert config["security"]["rate_limit_requests_per_minute"] == 50


class TestCredentialResolver:
    VAR = "PLANWISE_TEST_KEY"

    @pytest.fixture
    def roots(self, tmp_path: Path):
        project = tmp_path / "project"
        app = tmp_path / "app"
        project.mkdir()
        app.mkdir()
        return project, app

    def _resolver(self, roots, settings_key=""):
        project, app = roots
        return CredentialResolver(
            CredentialsConfig(env_var=self.VAR),
            settings_key=settings_key,
            workspace_root=project,
            app_root=app,
        )

    def test_settings_key_wins(self, roots, monkeypatch):
        monkeypatch.setenv(self.VAR, "from-env")
        assert self._resolver(roots, settings_key=" from-settings ").resolve() == "from-settings"

    def test_env_before_files(self, roots, monkeypatch):
        monkeypatch.setenv(self.VAR, "from-env")
        (roots[0] / ".env").write_text(f"{self.VAR}=from-project\n")
        assert self._resolver(roots).resolve() == "from-env"

    def test_project_env_file_before_app_env_file(self, roots, monkeypatch):
        monkeypatch.delenv(self.VAR, raising=False)
        (roots[0] / ".env").write_text(f'{self.VAR}="from-project"\n')
        (roots[1] / ".env").write_text(f"{self.VAR}=from-app\n")
        assert self._resolver(roots).resolve() == "from-project"

    def test_app_env_file_last(self, roots, monkeypatch):
        monkeypatch.delenv(self.VAR, raising=False)
        (roots[0] / ".env").write_text("OTHER=1\n")
        (roots[1] / ".env").write_text(f"{self.VAR}=from-app\n")
        assert self._resolver(roots).resolve() == "from-app"

    def test_nothing_found(self, roots, monkeypatch):
        monkeypatch.delenv(self.VAR, raising=False)
        assert self._resolver(roots).resolve() is None

    def test_env_files_not_exported(self, roots, monkeypatch):
        import os

        monkeypatch.delenv(self.VAR, raising=False)
        (roots[0] / ".env").write_text(f"{self.VAR}=from-project\n")
        self._resolver(roots).resolve()
        assert self.VAR not in os.environ
