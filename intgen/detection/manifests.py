"""Dependency manifest readers used by the project scanner."""

from __future__ import annotations

import json
import re
import tomllib
from pathlib import Path
from typing import Dict, List, Tuple

_NODE_SECTIONS = ("dependencies", "devDependencies", "peerDependencies")
_REQUIREMENT_SPLIT = re.compile(r"[<>=!~;\[ ]")


def load_package_json(root: Path) -> Dict[str, object]:
    """Return the parsed package.json contents or an empty dict."""
    package_json = root / "package.json"
    if not package_json.exists():
        return {}
    try:
        data = json.loads(package_json.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError):
        return {}
    if isinstance(data, dict):
        return data
    return {}


def load_node_dependencies(root: Path) -> Dict[str, Tuple[str, str]]:
    """Map package name to ``(version, section)`` across package.json dependency sections.

    The first section listing a package wins.
    """
    data = load_package_json(root)
    found: Dict[str, Tuple[str, str]] = {}
    for section in _NODE_SECTIONS:
        deps = data.get(section)
        if not isinstance(deps, dict):
            continue
        for name, version in deps.items():
            if name not in found:
                found[name] = (str(version), section)
    return found


def load_python_dependencies(root: Path) -> Dict[str, Tuple[str, str]]:
    """Map lower-cased package name to ``(version spec, source file)``."""
    deps: Dict[str, Tuple[str, str]] = {}

    requirements = root / "requirements.txt"
    if requirements.exists():
        for name, spec in _parse_requirements(requirements):
            deps.setdefault(name.lower(), (spec, "requirements.txt"))

    pyproject = root / "pyproject.toml"
    if pyproject.exists():
        for name, spec in _parse_pyproject(pyproject):
            deps.setdefault(name.lower(), (spec, "pyproject.toml"))

    return deps


def _split_requirement(line: str) -> Tuple[str, str]:
    name = _REQUIREMENT_SPLIT.split(line, 1)[0].strip()
    spec = line[len(name):].split(";", 1)[0].strip()
    return name, spec or "*"


def _parse_requirements(path: Path) -> List[Tuple[str, str]]:
    packages: List[Tuple[str, str]] = []
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return packages
    for line in text.splitlines():
        stripped = line.split("#", 1)[0].strip()
        if not stripped or stripped.startswith("-"):
            continue
        name, spec = _split_requirement(stripped)
        if name:
            packages.append((name, spec))
    return packages


def _parse_pyproject(path: Path) -> List[Tuple[str, str]]:
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError):
        return []

    packages: List[Tuple[str, str]] = []
    project = data.get("project")
    if isinstance(project, dict):
        requirements = list(project.get("dependencies", []) or [])
        optional = project.get("optional-dependencies", {}) or {}
        for values in optional.values():
            requirements.extend(values or [])
        for requirement in requirements:
            if isinstance(requirement, str):
                name, spec = _split_requirement(requirement.strip())
                if name:
                    packages.append((name, spec))

    tool = data.get("tool")
    poetry = tool.get("poetry", {}) if isinstance(tool, dict) else {}
    if isinstance(poetry, dict):
        poetry_deps = poetry.get("dependencies", {}) or {}
        for name, spec in poetry_deps.items():
            if name.lower() == "python":
                continue
            if isinstance(spec, dict):
                spec = spec.get("version", "*")
            packages.append((name, str(spec) if isinstance(spec, str) else "*"))
    return packages
