"""Workflow state stores - opaque save/load of the session state keyed by session key."""

import json
import logging
import threading
from pathlib import Path

from pydantic import ValidationError

from planwise.domain.entities.workflow_state import WorkflowState

logger = logging.getLogger(__name__)

STATE_FILE = Path("output/workflow_state.json")


class JsonWorkflowStore:
    """File-backed store: one JSON object mapping session keys to state blobs.

    Every save overwrites the key's whole blob; the file is written to a temp
    file first and renamed into place.
    """

    def __init__(self, state_file: str | Path | None = None) -> None:
        self._file = Path(state_file) if state_file else STATE_FILE
        self._lock = threading.Lock()

    def _read_all(self) -> dict:
        if not self._file.exists():
            return {}
        try:
            data = json.loads(self._file.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            logger.warning("Corrupted workflow state file %s: %s", self._file, e)
            return {}
        except OSError as e:
            logger.warning("Cannot read workflow state file %s: %s", self._file, e)
            return {}
        return data if isinstance(data, dict) else {}

    def load(self, key: str) -> WorkflowState | None:
        """Return the stored state for key, or None when absent or unreadable."""
        with self._lock:
            raw = self._read_all().get(key)
        if raw is None:
            return None
        try:
            return WorkflowState.model_validate(raw)
        except ValidationError as e:
            logger.warning("Discarding malformed workflow state for %s: %s", key, e)
            return None

    def save(self, key: str, state: WorkflowState) -> None:
        """Overwrite the blob for key. Other keys in the file are preserved."""
        with self._lock:
            data = self._read_all()
            data[key] = state.model_dump(mode="json")
            self._file.parent.mkdir(parents=True, exist_ok=True)
            tmp_file = self._file.with_suffix(".tmp")
            try:
                tmp_file.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
                tmp_file.replace(self._file)
            except OSError:
                logger.warning("Failed to save workflow state to %s", self._file, exc_info=True)
                tmp_file.unlink(missing_ok=True)
                raise


class InMemoryWorkflowStore:
    """Process-local store; blobs are serialized so loads never alias live state."""

    def __init__(self) -> None:
        self._blobs: dict[str, str] = {}

    def load(self, key: str) -> WorkflowState | None:
        blob = self._blobs.get(key)
        return WorkflowState.model_validate_json(blob) if blob is not None else None

    def save(self, key: str, state: WorkflowState) -> None:
        self._blobs[key] = state.model_dump_json()
