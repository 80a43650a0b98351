"""Project context - bounded summary of a project tree, built once per session."""

from pydantic import BaseModel, ConfigDict


class FileInfo(BaseModel):
    """A representative file surfaced to the reasoning backend."""

    path: str  # Relative to project root, POSIX separators
    content: str
    language: str
    size: int  # Bytes on disk

    model_config = ConfigDict(frozen=True)


class ProjectContext(BaseModel):
    """Immutable result of context aggregation."""

    project_type: str
    frameworks: tuple[str, ...] = ()
    languages: tuple[str, ...] = ()
    key_files: tuple[FileInfo, ...] = ()
    dependencies: tuple[str, ...] = ()
    structure: str = ""

    model_config = ConfigDict(frozen=True)
