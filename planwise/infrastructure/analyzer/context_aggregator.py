"""Context Aggregator - distills a project tree into a bounded ProjectContext.

Read-only: the scanned project is never modified.

- Key files are picked greedily in pattern-priority order (manifests and
  configs first) under a global cap; oversized files are skipped.
- Frameworks, languages and project type come from fixed lookup tables.
- The directory tree is rendered to a fixed depth.
"""

import logging
import os
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path, PurePosixPath

from planwise.domain.entities.project_context import FileInfo, ProjectContext
from planwise.domain.errors import NoWorkspaceError
from planwise.infrastructure.analyzer.manifests import (
    NODE_MANIFEST,
    PYTHON_MANIFESTS,
    extract_dependencies,
    manifest_name,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KeyFilePattern:
    """File-name globs, optionally restricted to files below a directory with a given name."""

    names: tuple[str, ...]
    under: str | None = None

    def matches(self, rel_path: PurePosixPath) -> bool:
        if not any(fnmatchcase(rel_path.name, pattern) for pattern in self.names):
            return False
        return self.under is None or self.under in rel_path.parts[:-1]


SOURCE_GLOBS = ("*.ts", "*.tsx", "*.js", "*.jsx", "*.py")

KEY_FILE_PATTERNS: tuple[KeyFilePattern, ...] = (
    # Manifests
    KeyFilePattern((NODE_MANIFEST,)),
    *(KeyFilePattern((name,)) for name in PYTHON_MANIFESTS),
    # Configs
    KeyFilePattern(("tsconfig.json",)),
    KeyFilePattern(("next.config.*",)),
    KeyFilePattern(("vite.config.*",)),
    KeyFilePattern(("webpack.config.*",)),
    KeyFilePattern(("tailwind.config.*",)),
    # Source trees
    *(KeyFilePattern(SOURCE_GLOBS, under=d) for d in ("src", "app", "pages", "components", "lib", "utils")),
    # Docs, containers, environment
    KeyFilePattern(("*.md",)),
    KeyFilePattern(("Dockerfile",)),
    KeyFilePattern((".env*",)),
)

# Never descended into, neither for key files nor for the tree
DEPENDENCY_CACHE_DIRS = {
    "node_modules",
    "bower_components",
    "__pycache__",
    ".git",
    ".venv",
    "venv",
    ".tox",
    ".next",
    ".pytest_cache",
    ".mypy_cache",
    ".ruff_cache",
}

# Dot-entries normally hidden from the tree; these names are kept
TREE_ALLOWED_NAMES = {"src", "app", "pages", "components"}

LANGUAGE_BY_EXTENSION = {
    ".ts": "TypeScript",
    ".tsx": "TypeScript React",
    ".js": "JavaScript",
    ".jsx": "JavaScript React",
    ".json": "JSON",
    ".md": "Markdown",
    ".css": "CSS",
    ".scss": "SCSS",
    ".html": "HTML",
    ".py": "Python",
    ".toml": "TOML",
    ".yaml": "YAML",
    ".yml": "YAML",
    ".java": "Java",
    ".go": "Go",
    ".rs": "Rust",
}
UNKNOWN_LANGUAGE = "Unknown"

# Dependency name (lowercase) -> framework, in detection order
DEPENDENCY_FRAMEWORKS = (
    ("next", "Next.js"),
    ("react", "React"),
    ("vue", "Vue.js"),
    ("svelte", "Svelte"),
    ("express", "Express"),
    ("fastify", "Fastify"),
    ("tailwindcss", "Tailwind CSS"),
    ("typescript", "TypeScript"),
    ("fastapi", "FastAPI"),
    ("django", "Django"),
    ("flask", "Flask"),
)

# Substring of a key file path -> framework
CONFIG_FRAMEWORKS = (
    ("next.config", "Next.js"),
    ("vite.config", "Vite"),
    ("tailwind.config", "Tailwind CSS"),
)

# First match wins
PROJECT_TYPE_CASCADE = (
    ("Next.js", "Next.js Application"),
    ("React", "React Application"),
    ("Vue.js", "Vue.js Application"),
    ("Svelte", "Svelte Application"),
    ("Express", "Node.js Backend"),
    ("FastAPI", "FastAPI Service"),
    ("Django", "Django Application"),
    ("Flask", "Flask Application"),
)
NODE_PROJECT = "Node.js Project"
PYTHON_PROJECT = "Python Project"
UNKNOWN_PROJECT = "Unknown Project"

STRUCTURE_UNAVAILABLE = "Unable to generate project structure"


def language_for(path: str) -> str:
    """Language label from file extension, "Unknown" when unrecognized."""
    return LANGUAGE_BY_EXTENSION.get(PurePosixPath(path).suffix.lower(), UNKNOWN_LANGUAGE)


class ContextAggregator:
    """Builds a ProjectContext from a project root."""

    def __init__(
        self,
        max_file_size: int = 50_000,
        max_total_files: int = 20,
        max_tree_depth: int = 3,
    ) -> None:
        if max_file_size <= 0 or max_total_files <= 0 or max_tree_depth <= 0:
            raise ValueError("analyzer limits must be positive")
        self.max_file_size = max_file_size
        self.max_total_files = max_total_files
        self.max_tree_depth = max_tree_depth

    def analyze(self, root_path: str | Path | None) -> ProjectContext:
        """Scan root_path and build its context.

        Raises:
            NoWorkspaceError: root is missing, does not exist, or is not a directory.
        """
        if not root_path:
            raise NoWorkspaceError("No workspace folder found")
        root = Path(root_path).expanduser().resolve()
        if not root.is_dir():
            raise NoWorkspaceError(f"Workspace folder is not a directory: {root}")

        logger.info("Analyzing workspace: %s", root)

        key_files = self.find_key_files(root)
        dependencies = extract_dependencies(key_files)
        frameworks = self.detect_frameworks(key_files, dependencies)

        return ProjectContext(
            project_type=self.determine_project_type(frameworks, key_files),
            frameworks=tuple(frameworks),
            languages=tuple(self.detect_languages(key_files)),
            key_files=tuple(key_files),
            dependencies=tuple(dependencies),
            structure=self.generate_structure(root),
        )

    # ------------------------------------------------------------------
    # Key files
    # ------------------------------------------------------------------

    def _candidate_paths(self, root: Path) -> list[PurePosixPath]:
        """All files under root outside dependency caches, sorted, relative POSIX paths."""

        def on_error(error: OSError) -> None:
            logger.info("Error reading directory %s: %s", error.filename, error)

        candidates = []
        for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
            dirnames[:] = sorted(d for d in dirnames if d not in DEPENDENCY_CACHE_DIRS)
            rel_dir = Path(dirpath).relative_to(root)
            for name in sorted(filenames):
                candidates.append(PurePosixPath((rel_dir / name).as_posix()))
        return candidates

    def find_key_files(self, root: Path) -> list[FileInfo]:
        """Greedy, priority-ordered selection under the global file cap."""
        candidates = self._candidate_paths(root)
        files: list[FileInfo] = []
        taken: set[PurePosixPath] = set()

        for pattern in KEY_FILE_PATTERNS:
            if len(files) >= self.max_total_files:
                break
            for rel_path in candidates:
                if len(files) >= self.max_total_files:
                    break
                if rel_path in taken or not pattern.matches(rel_path):
                    continue
                taken.add(rel_path)
                info = self._read_file(root, rel_path)
                if info is not None:
                    files.append(info)

        return files

    def _read_file(self, root: Path, rel_path: PurePosixPath) -> FileInfo | None:
        full_path = root / rel_path
        try:
            size = full_path.stat().st_size
            if size > self.max_file_size:
                return None
            content = full_path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.info("Error reading file %s: %s", full_path, e)
            return None
        return FileInfo(
            path=str(rel_path),
            content=content,
            language=language_for(str(rel_path)),
            size=size,
        )

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    def detect_frameworks(self, files: list[FileInfo], dependencies: list[str]) -> list[str]:
        deps = {d.lower() for d in dependencies}
        frameworks: list[str] = []
        for dependency, framework in DEPENDENCY_FRAMEWORKS:
            if dependency in deps:
                frameworks.append(framework)
        for marker, framework in CONFIG_FRAMEWORKS:
            if any(marker in f.path for f in files):
                frameworks.append(framework)
        return list(dict.fromkeys(frameworks))

    def detect_languages(self, files: list[FileInfo]) -> list[str]:
        return list(dict.fromkeys(f.language for f in files))

    def determine_project_type(self, frameworks: list[str], files: list[FileInfo]) -> str:
        for framework, project_type in PROJECT_TYPE_CASCADE:
            if framework in frameworks:
                return project_type
        manifests = {manifest_name(f.path) for f in files}
        if NODE_MANIFEST in manifests:
            return NODE_PROJECT
        if manifests & set(PYTHON_MANIFESTS):
            return PYTHON_PROJECT
        return UNKNOWN_PROJECT

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    def generate_structure(self, root: Path) -> str:
        try:
            return self._build_tree(root, 0)
        except OSError as e:
            logger.info("Error generating structure: %s", e)
            return STRUCTURE_UNAVAILABLE

    def _build_tree(self, dir_path: Path, depth: int) -> str:
        if depth >= self.max_tree_depth:
            return ""

        try:
            with os.scandir(dir_path) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            if depth == 0:
                raise
            logger.info("Error reading directory %s: %s", dir_path, e)
            return ""

        indent = "  " * depth
        lines: list[str] = []
        for entry in entries:
            if entry.name.startswith(".") and entry.name not in TREE_ALLOWED_NAMES:
                continue
            if entry.name in DEPENDENCY_CACHE_DIRS:
                continue
            lines.append(f"{indent}{entry.name}\n")
            try:
                is_dir = entry.is_dir(follow_symlinks=False)
            except OSError:
                is_dir = False
            if is_dir and depth < self.max_tree_depth - 1:
                lines.append(self._build_tree(Path(entry.path), depth + 1))
        return "".join(lines)


def render_context_summary(
    context: ProjectContext,
    max_dependencies: int = 15,
    max_listed_files: int = 10,
    max_config_excerpts: int = 3,
    excerpt_chars: int = 1000,
) -> str:
    """Compact, prompt-ready text summary of a ProjectContext."""
    key_files_info = "\n".join(
        f"{f.path} ({f.language})" for f in context.key_files[:max_listed_files]
    )
    config_files = [
        f
        for f in context.key_files
        if manifest_name(f.path) or "tsconfig.json" in f.path or ".config" in f.path
    ][:max_config_excerpts]
    config_excerpts = "\n".join(
        f"\n--- {f.path} ---\n{f.content[:excerpt_chars]}" for f in config_files
    )

    return (
        "CURRENT PROJECT CONTEXT:\n\n"
        f"Project Type: {context.project_type}\n"
        f"Frameworks: {', '.join(context.frameworks)}\n"
        f"Languages: {', '.join(context.languages)}\n"
        f"Dependencies: {', '.join(context.dependencies[:max_dependencies])}\n\n"
        f"Project Structure:\n{context.structure}\n"
        f"Key Files:\n{key_files_info}\n\n"
        f"Configuration Files:{config_excerpts}\n\n"
        "---"
    )
