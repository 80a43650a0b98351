"""Manifest parsing - flat dependency name lists from package.json, pyproject.toml, requirements.txt.

Best-effort: a manifest that fails to parse contributes no dependencies.
"""

import json
import logging
import re
import tomllib
from pathlib import PurePosixPath

from planwise.domain.entities.project_context import FileInfo

logger = logging.getLogger(__name__)

NODE_MANIFEST = "package.json"
PYTHON_MANIFESTS = ("pyproject.toml", "requirements.txt")
MANIFEST_NAMES = (NODE_MANIFEST, *PYTHON_MANIFESTS)

# PEP 508 distribution name at the start of a requirement string
_REQUIREMENT_NAME = re.compile(r"^\s*([A-Za-z0-9][A-Za-z0-9._-]*)")


def manifest_name(path: str) -> str | None:
    """Return the manifest file name if path is a manifest, else None."""
    name = PurePosixPath(path).name
    return name if name in MANIFEST_NAMES else None


def _requirement_name(spec: str) -> str | None:
    match = _REQUIREMENT_NAME.match(spec)
    return match.group(1) if match else None


def parse_package_json(content: str) -> list[str]:
    """dependencies + devDependencies keys, in file order."""
    data = json.loads(content)
    if not isinstance(data, dict):
        return []
    deps: dict = {}
    for section in ("dependencies", "devDependencies"):
        value = data.get(section)
        if isinstance(value, dict):
            deps.update(value)
    return list(deps.keys())


def parse_pyproject(content: str) -> list[str]:
    """PEP 621 dependencies/optional-dependencies and Poetry dependency tables."""
    data = tomllib.loads(content)
    names: list[str] = []

    project = data.get("project") or {}
    specs = list(project.get("dependencies") or [])
    for group in (project.get("optional-dependencies") or {}).values():
        specs.extend(group or [])
    for spec in specs:
        if isinstance(spec, str) and (name := _requirement_name(spec)):
            names.append(name)

    poetry = (data.get("tool") or {}).get("poetry") or {}
    tables = [poetry.get("dependencies") or {}, poetry.get("dev-dependencies") or {}]
    tables.extend((group or {}).get("dependencies") or {} for group in (poetry.get("group") or {}).values())
    for table in tables:
        names.extend(key for key in table if key.lower() != "python")
    return names


def parse_requirements(content: str) -> list[str]:
    """Names from a pip requirements file; options, includes and comments are skipped."""
    names = []
    for line in content.splitlines():
        line = line.split("#", 1)[0].strip()
        if not line or line.startswith("-"):
            continue
        if name := _requirement_name(line):
            names.append(name)
    return names


_PARSERS = {
    "package.json": parse_package_json,
    "pyproject.toml": parse_pyproject,
    "requirements.txt": parse_requirements,
}


def extract_dependencies(key_files: list[FileInfo] | tuple[FileInfo, ...]) -> list[str]:
    """Merge dependency names from every manifest among key_files (first occurrence wins)."""
    seen: set[str] = set()
    dependencies: list[str] = []
    for file in key_files:
        name = manifest_name(file.path)
        if name is None:
            continue
        try:
            found = _PARSERS[name](file.content)
        except (json.JSONDecodeError, tomllib.TOMLDecodeError, TypeError, AttributeError) as e:
            logger.info("Error parsing %s: %s", file.path, e)
            continue
        for dep in found:
            if dep not in seen:
                seen.add(dep)
                dependencies.append(dep)
    return dependencies
