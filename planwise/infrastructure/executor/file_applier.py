"""PlanFileApplier - default executor: applies plan items to the workspace with backup.

- new: creates the file with a stub header carrying the description; fails if it exists
- modify: backs the file up, then appends the description as a plan note
- remove: backs the file up, then deletes it

Paths are confined to the workspace root.
"""

import asyncio
import logging
import shutil
from datetime import datetime
from pathlib import Path, PurePosixPath

from planwise.domain.entities.plan import PlanAction, PlanItem
from planwise.domain.errors import FileApplyError

logger = logging.getLogger(__name__)

# Line comment prefix/suffix by extension; files without comment syntax get no note
_COMMENT_STYLES: dict[str, tuple[str, str]] = {
    ".py": ("# ", ""),
    ".sh": ("# ", ""),
    ".toml": ("# ", ""),
    ".yaml": ("# ", ""),
    ".yml": ("# ", ""),
    ".ts": ("// ", ""),
    ".tsx": ("// ", ""),
    ".js": ("// ", ""),
    ".jsx": ("// ", ""),
    ".go": ("// ", ""),
    ".rs": ("// ", ""),
    ".java": ("// ", ""),
    ".css": ("/* ", " */"),
    ".scss": ("// ", ""),
    ".md": ("<!-- ", " -->"),
    ".html": ("<!-- ", " -->"),
    ".sql": ("-- ", ""),
}
_NO_COMMENT = {".json"}


def _comment(path: Path, text: str) -> str | None:
    suffix = path.suffix.lower()
    if suffix in _NO_COMMENT:
        return None
    prefix, suffix_mark = _COMMENT_STYLES.get(suffix, ("# ", ""))
    return f"{prefix}{text}{suffix_mark}\n"


class PlanFileApplier:
    """Implements PlanExecutorPort on the local file system."""

    def __init__(self, workspace_root: str | Path, backup_dir: str | Path = "output/backups") -> None:
        self._root = Path(workspace_root).resolve()
        self._backup_dir = Path(backup_dir)

    def _resolve(self, item: PlanItem) -> Path:
        relative = PurePosixPath(item.file.replace("\\", "/"))
        if relative.is_absolute():
            raise FileApplyError(item.file, "absolute paths are not allowed")
        target = (self._root / relative).resolve()
        try:
            target.relative_to(self._root)
        except ValueError:
            raise FileApplyError(item.file, "path is outside the workspace") from None
        return target

    def _create_backup(self, file_path: Path) -> Path:
        """Copy file_path into the backup dir as src__dir__name.YYYYmmdd_HHMMSS_ffffff.bak.

        The name carries the workspace-relative path, so files sharing a basename
        in one batch never overwrite each other's backup.
        """
        self._backup_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        flat_name = "__".join(file_path.relative_to(self._root).parts)
        backup_path = self._backup_dir / f"{flat_name}.{timestamp}.bak"
        counter = 1
        while backup_path.exists():
            backup_path = self._backup_dir / f"{flat_name}.{timestamp}.{counter}.bak"
            counter += 1
        shutil.copy2(file_path, backup_path)
        return backup_path

    def _create(self, item: PlanItem, target: Path) -> None:
        if target.exists():
            raise FileApplyError(item.file, "already exists")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(_comment(target, item.description) or "", encoding="utf-8")

    def _modify(self, item: PlanItem, target: Path) -> None:
        if not target.is_file():
            raise FileApplyError(item.file, "file not found")
        backup = self._create_backup(target)
        logger.debug("Backed up %s to %s", target, backup)
        note = _comment(target, f"PLAN: {item.description}")
        if note is None:
            return
        existing = target.read_text(encoding="utf-8", errors="replace")
        separator = "" if not existing or existing.endswith("\n") else "\n"
        with target.open("a", encoding="utf-8") as f:
            f.write(separator + note)

    def _remove(self, item: PlanItem, target: Path) -> None:
        if not target.is_file():
            raise FileApplyError(item.file, "file not found")
        backup = self._create_backup(target)
        logger.debug("Backed up %s to %s", target, backup)
        target.unlink()

    def apply_sync(self, item: PlanItem) -> None:
        target = self._resolve(item)
        handlers = {
            PlanAction.NEW: self._create,
            PlanAction.MODIFY: self._modify,
            PlanAction.REMOVE: self._remove,
        }
        try:
            handlers[item.action](item, target)
        except OSError as e:
            raise FileApplyError(item.file, str(e)) from e
        logger.info("Applied %s %s", item.action.value, item.file)

    async def apply(self, item: PlanItem) -> None:
        """Apply item off the event loop. Raises FileApplyError."""
        await asyncio.to_thread(self.apply_sync, item)
