"""Project scanning: walks a target project and emits framework evidence."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from .detection.manifests import load_node_dependencies, load_python_dependencies
from .detection.rules import (
    BUILTIN_RULES,
    REQUIRED_CONTENT_BONUS,
    DetectionRule,
    glob_to_regex,
)
from .errors import NotFoundError
from .logging import get_logger
from .models import Evidence, EvidenceType, ScanReport

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".venv",
    "venv",
    "node_modules",
    "__pycache__",
    ".pytest_cache",
    ".mypy_cache",
    ".next",
    ".idea",
    "dist",
    "build",
}

_EXCLUDED_FILES = {
    ".DS_Store",
    "Thumbs.db",
}


@dataclass
class IgnoreRule:
    """Represents an ignore rule parsed from .gitignore or configured exclusions."""

    pattern: str
    directory_only: bool
    anchored: bool
    negate: bool
    has_slash: bool

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if not self.pattern:
            return False
        if self.directory_only and not is_dir:
            return False

        if self.anchored or self.has_slash:
            if fnmatchcase(rel_path, self.pattern):
                return True
            return self.directory_only and rel_path.startswith(f"{self.pattern}/")

        return any(fnmatchcase(part, self.pattern) for part in rel_path.split("/"))


def build_ignore_rule(pattern: str, negate: bool = False) -> IgnoreRule | None:
    pattern = pattern.strip()
    if not pattern:
        return None

    directory_only = pattern.endswith("/")
    if directory_only:
        pattern = pattern[:-1]

    anchored = pattern.startswith("/")
    if anchored:
        pattern = pattern[1:]

    return IgnoreRule(
        pattern=pattern,
        directory_only=directory_only,
        anchored=anchored,
        negate=negate,
        has_slash="/" in pattern,
    )


def _parse_gitignore(path: Path) -> List[IgnoreRule]:
    if not path.exists():
        return []
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return []

    rules: List[IgnoreRule] = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        negate = line.startswith("!")
        if negate:
            line = line[1:]
        rule = build_ignore_rule(line, negate=negate)
        if rule is not None:
            rules.append(rule)
    return rules


def _should_ignore(rel_path: str, is_dir: bool, rules: Sequence[IgnoreRule]) -> bool:
    ignored = False
    for rule in rules:
        if rule.matches(rel_path, is_dir):
            ignored = not rule.negate
    return ignored


class ProjectScanner:
    """Walks a project directory and evaluates detection rules against it."""

    def __init__(
        self,
        rules: Sequence[DetectionRule] = BUILTIN_RULES,
        *,
        exclude_paths: Iterable[str] = (),
    ) -> None:
        self.rules = tuple(rules)
        self.exclude_rules = [
            rule for rule in (build_ignore_rule(pattern) for pattern in exclude_paths) if rule
        ]
        self.logger = get_logger("scanner")

    def scan(self, project_path: str | os.PathLike[str]) -> ScanReport:
        """Return evidence for every rule that matched the project."""
        root = Path(project_path).expanduser().resolve()
        if not root.exists():
            raise NotFoundError(f"Project path not found: {project_path}")
        if not root.is_dir():
            raise NotFoundError(f"Project path is not a directory: {project_path}")

        skipped: List[str] = []
        ignore_rules = _parse_gitignore(root / ".gitignore") + self.exclude_rules
        files = sorted(self._iter_files(root, ignore_rules, skipped))
        file_set = set(files)
        node_deps = load_node_dependencies(root)
        python_deps = load_python_dependencies(root)
        contents = _ContentReader(root, skipped)

        evidence: List[Evidence] = []
        for rule in self.rules:
            evidence.extend(self._evaluate_files(root, rule, file_set, contents))
            evidence.extend(_evaluate_dependencies(rule, node_deps, python_deps))
            evidence.extend(_evaluate_patterns(rule, files))
            evidence.extend(_evaluate_contents(rule, files, contents))

        self.logger.debug(
            "Scanned %s: %d file(s), %d evidence item(s), %d skipped",
            root,
            len(files),
            len(evidence),
            len(skipped),
        )
        return ScanReport(root=str(root), evidence=evidence, files=files, skipped=sorted(set(skipped)))

    def _iter_files(
        self, root: Path, rules: Sequence[IgnoreRule], skipped: List[str]
    ) -> Iterator[str]:
        def _on_error(error: OSError) -> None:
            failed = Path(error.filename) if error.filename else root
            try:
                skipped.append(failed.relative_to(root).as_posix() or ".")
            except ValueError:
                skipped.append(str(failed))

        for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
            current_dir = Path(dirpath)
            rel_dir = current_dir.relative_to(root).as_posix() if current_dir != root else ""

            kept_dirs = []
            for name in dirnames:
                if name in _EXCLUDED_DIRS:
                    continue
                rel_path = f"{rel_dir}/{name}" if rel_dir else name
                if _should_ignore(rel_path, True, rules):
                    continue
                kept_dirs.append(name)
            dirnames[:] = sorted(kept_dirs)

            for filename in filenames:
                if filename in _EXCLUDED_FILES:
                    continue
                rel_path = f"{rel_dir}/{filename}" if rel_dir else filename
                if _should_ignore(rel_path, False, rules):
                    continue
                yield rel_path

    def _evaluate_files(
        self,
        root: Path,
        rule: DetectionRule,
        file_set: set[str],
        contents: "_ContentReader",
    ) -> List[Evidence]:
        found: List[Evidence] = []
        for indicator in rule.files:
            if indicator.path not in file_set and not (root / indicator.path).is_file():
                continue
            found.append(
                Evidence(
                    evidence_type=indicator.evidence_type,
                    value=indicator.path,
                    confidence_weight=indicator.weight,
                    source=indicator.path,
                    framework=rule.framework,
                )
            )
            if indicator.required_content is None:
                continue
            text = contents.read(indicator.path)
            if text is not None and indicator.required_content in text:
                found.append(
                    Evidence(
                        evidence_type=EvidenceType.CONTENT,
                        value=indicator.required_content,
                        confidence_weight=REQUIRED_CONTENT_BONUS,
                        source=indicator.path,
                        framework=rule.framework,
                    )
                )
        return found


class _ContentReader:
    """Reads project files as text once, recording unreadable ones."""

    def __init__(self, root: Path, skipped: List[str]) -> None:
        self.root = root
        self.skipped = skipped
        self._cache: Dict[str, Optional[str]] = {}

    def read(self, rel_path: str) -> Optional[str]:
        if rel_path not in self._cache:
            try:
                self._cache[rel_path] = (self.root / rel_path).read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError):
                self.skipped.append(rel_path)
                self._cache[rel_path] = None
        return self._cache[rel_path]


def _evaluate_dependencies(
    rule: DetectionRule,
    node_deps: Dict[str, Tuple[str, str]],
    python_deps: Dict[str, Tuple[str, str]],
) -> List[Evidence]:
    found: List[Evidence] = []
    for indicator in rule.dependencies:
        if indicator.ecosystem == "python":
            entry = python_deps.get(indicator.package.lower())
            source_prefix = ""
        else:
            entry = node_deps.get(indicator.package)
            source_prefix = "package.json::"
        if entry is None:
            continue
        version, section = entry
        found.append(
            Evidence(
                evidence_type=EvidenceType.DEPENDENCY,
                value=f"{indicator.package}@{version}",
                confidence_weight=indicator.weight,
                source=f"{source_prefix}{section}",
                framework=rule.framework,
            )
        )
    return found


def _evaluate_patterns(rule: DetectionRule, files: Sequence[str]) -> List[Evidence]:
    found: List[Evidence] = []
    for indicator in rule.patterns:
        regex = glob_to_regex(indicator.pattern)
        matches = [path for path in files if regex.match(path)]
        if len(matches) < max(indicator.min_matches, 1):
            continue
        found.append(
            Evidence(
                evidence_type=EvidenceType.FILE,
                value=f"{indicator.pattern} (matched {len(matches)} files)",
                confidence_weight=indicator.weight,
                source=matches[0],
                framework=rule.framework,
            )
        )
    return found


def _evaluate_contents(
    rule: DetectionRule, files: Sequence[str], contents: _ContentReader
) -> List[Evidence]:
    found: List[Evidence] = []
    for indicator in rule.contents:
        suffixes = tuple(f".{ext}" for ext in indicator.extensions)
        candidates = [path for path in files if path.endswith(suffixes)][: indicator.max_files]
        regex = re.compile(indicator.pattern)
        matched = []
        for path in candidates:
            text = contents.read(path)
            if text and regex.search(text):
                matched.append(path)
        if not matched:
            continue
        found.append(
            Evidence(
                evidence_type=EvidenceType.CONTENT,
                value=f"{indicator.pattern} (found in {len(matched)} files)",
                confidence_weight=indicator.weight,
                source=matched[0],
                framework=rule.framework,
            )
        )
    return found
