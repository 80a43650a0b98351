"""Backend credential resolution.

Sources, first non-empty wins:
1. settings store (``openai_compatible.api_key`` in the TOML config)
2. process environment variable (``credentials.env_var``)
3. project-local ``.env`` in the workspace root
4. application-local ``.env`` next to the installed package

``.env`` files are read with ``dotenv_values`` and never exported into ``os.environ``.
"""

import logging
import os
from pathlib import Path

from dotenv import dotenv_values

from planwise.domain.ports.config import CredentialsConfig

logger = logging.getLogger(__name__)

APP_ROOT = Path(__file__).resolve().parent.parent.parent.parent


class CredentialResolver:
    """Resolves the backend API key from settings, environment and .env files."""

    def __init__(
        self,
        config: CredentialsConfig,
        settings_key: str = "",
        workspace_root: str | Path | None = None,
        app_root: str | Path | None = None,
    ) -> None:
        self._config = config
        self._settings_key = settings_key
        self._workspace_root = Path(workspace_root) if workspace_root else None
        self._app_root = Path(app_root) if app_root else APP_ROOT

    def resolve(self) -> str | None:
        """Return the credential, or None when every source is empty."""
        if self._settings_key and self._settings_key.strip():
            logger.debug("Backend credential taken from settings")
            return self._settings_key.strip()

        env_value = os.getenv(self._config.env_var, "").strip()
        if env_value:
            logger.debug("Backend credential taken from env var %s", self._config.env_var)
            return env_value

        for label, root in (("project", self._workspace_root), ("application", self._app_root)):
            if root is None:
                continue
            value = self._read_env_file(root / self._config.env_file_name)
            if value:
                logger.debug("Backend credential taken from %s %s", label, self._config.env_file_name)
                return value

        logger.warning("No backend credential found in any location")
        return None

    def _read_env_file(self, path: Path) -> str | None:
        if not path.is_file():
            return None
        try:
            values = dotenv_values(path)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Failed to read %s: %s", path, e)
            return None
        value = (values.get(self._config.env_var) or "").strip()
        return value or None
