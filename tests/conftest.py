"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest

from planwise.domain.entities.project_context import ProjectContext
from planwise.domain.ports.config import (
    AppConfig,
    CredentialsConfig,
    ExecutorConfig,
    WorkflowConfig,
)

# Env var no test environment sets; keeps credential lookup empty so generation uses fallbacks
UNSET_CREDENTIAL_VAR = "PLANWISE_TEST_UNSET_API_KEY"


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Small React project with a local auth helper."""
    root = tmp_path / "project"
    (root / "src" / "utils").mkdir(parents=True)
    (root / "package.json").write_text(
        '{"name": "demo", "dependencies": {"react": "^18.2.0"}, "devDependencies": {"typescript": "^5.0.0"}}',
        encoding="utf-8",
    )
    (root / "src" / "App.tsx").write_text(
        "export default function App() {\n  return null;\n}\n", encoding="utf-8"
    )
    (root / "src" / "utils" / "localAuth.ts").write_text(
        "export const login = () => true;\n", encoding="utf-8"
    )
    return root


@pytest.fixture
def app_config(tmp_path: Path, workspace: Path) -> AppConfig:
    """Config pointing at the tmp workspace, with no reachable credential."""
    return AppConfig(
        credentials=CredentialsConfig(env_var=UNSET_CREDENTIAL_VAR, env_file_name=".env.planwise-test"),
        workflow=WorkflowConfig(
            workspace_root=str(workspace),
            state_file=str(tmp_path / "state" / "workflow_state.json"),
        ),
        executor=ExecutorConfig(backup_dir=str(tmp_path / "backups")),
    )


@pytest.fixture
def react_context() -> ProjectContext:
    return ProjectContext(
        project_type="React Application",
        frameworks=("React", "TypeScript"),
        languages=("JSON", "TypeScript React"),
        dependencies=("react", "typescript"),
        structure="package.json\nsrc\n  App.tsx\n",
    )
