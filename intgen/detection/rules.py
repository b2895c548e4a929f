"""Built-in framework detection rules evaluated by the project scanner."""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Pattern, Tuple

from ..models import EvidenceType

# Bonus applied when an indicator file also contains its required content.
REQUIRED_CONTENT_BONUS = 0.2


@dataclass(frozen=True)
class FileIndicator:
    path: str
    weight: float
    required_content: str | None = None
    evidence_type: EvidenceType = EvidenceType.CONFIG


@dataclass(frozen=True)
class DependencyIndicator:
    package: str
    weight: float
    ecosystem: str = "node"


@dataclass(frozen=True)
class PatternIndicator:
    pattern: str
    weight: float
    min_matches: int = 1


@dataclass(frozen=True)
class ContentIndicator:
    pattern: str
    weight: float
    extensions: Tuple[str, ...]
    max_files: int = 10


@dataclass(frozen=True)
class DetectionRule:
    """Indicators that together describe one framework."""

    framework: str
    name: str
    files: Tuple[FileIndicator, ...] = ()
    dependencies: Tuple[DependencyIndicator, ...] = ()
    patterns: Tuple[PatternIndicator, ...] = ()
    contents: Tuple[ContentIndicator, ...] = ()


_JS = ("js", "ts", "jsx", "tsx")

BUILTIN_RULES: Tuple[DetectionRule, ...] = (
    DetectionRule(
        framework="nextjs",
        name="Next.js",
        files=(
            FileIndicator("next.config.js", 0.8),
            FileIndicator("next.config.ts", 0.8),
            FileIndicator("next.config.mjs", 0.8),
        ),
        dependencies=(DependencyIndicator("next", 0.9),),
        patterns=(
            PatternIndicator("pages/**/*.{js,ts,jsx,tsx}", 0.6),
            PatternIndicator("app/**/*.{js,ts,jsx,tsx}", 0.7),
        ),
        contents=(ContentIndicator(r"from.*next/", 0.5, _JS),),
    ),
    DetectionRule(
        framework="react",
        name="React",
        dependencies=(
            DependencyIndicator("react", 0.8),
            DependencyIndicator("react-dom", 0.7),
        ),
        patterns=(PatternIndicator("src/**/*.{jsx,tsx}", 0.6),),
        contents=(ContentIndicator(r"from.*react", 0.4, _JS),),
    ),
    DetectionRule(
        framework="vue",
        name="Vue.js",
        files=(
            FileIndicator("vue.config.js", 0.8),
            FileIndicator("vite.config.js", 0.6, required_content="@vitejs/plugin-vue"),
        ),
        dependencies=(
            DependencyIndicator("vue", 0.9),
            DependencyIndicator("@vue/cli-service", 0.7),
        ),
        patterns=(PatternIndicator("src/**/*.vue", 0.8),),
    ),
    DetectionRule(
        framework="express",
        name="Express.js",
        dependencies=(DependencyIndicator("express", 0.9),),
        contents=(
            ContentIndicator(r"require.*express", 0.7, ("js", "ts"), max_files=5),
            ContentIndicator(r"from.*express", 0.7, ("js", "ts"), max_files=5),
        ),
    ),
    DetectionRule(
        framework="nestjs",
        name="NestJS",
        files=(FileIndicator("nest-cli.json", 0.9),),
        dependencies=(
            DependencyIndicator("@nestjs/core", 0.9),
            DependencyIndicator("@nestjs/common", 0.8),
        ),
        contents=(ContentIndicator(r"from.*@nestjs/", 0.6, ("ts",)),),
    ),
    DetectionRule(
        framework="svelte",
        name="Svelte",
        files=(FileIndicator("svelte.config.js", 0.9),),
        dependencies=(DependencyIndicator("svelte", 0.9),),
        patterns=(PatternIndicator("src/**/*.svelte", 0.8),),
    ),
    DetectionRule(
        framework="angular",
        name="Angular",
        files=(
            FileIndicator("angular.json", 0.9),
            FileIndicator(
                "src/main.ts",
                0.6,
                required_content="platformBrowserDynamic",
                evidence_type=EvidenceType.FILE,
            ),
        ),
        dependencies=(DependencyIndicator("@angular/core", 0.9),),
        contents=(ContentIndicator(r"from.*@angular/", 0.6, ("ts",)),),
    ),
    DetectionRule(
        framework="fastapi",
        name="FastAPI",
        dependencies=(DependencyIndicator("fastapi", 0.9, ecosystem="python"),),
        contents=(ContentIndicator(r"from\s+fastapi\s+import", 0.6, ("py",)),),
    ),
    DetectionRule(
        framework="django",
        name="Django",
        files=(
            FileIndicator(
                "manage.py",
                0.6,
                required_content="DJANGO_SETTINGS_MODULE",
                evidence_type=EvidenceType.FILE,
            ),
        ),
        dependencies=(DependencyIndicator("django", 0.9, ecosystem="python"),),
        contents=(ContentIndicator(r"from\s+django", 0.5, ("py",)),),
    ),
    DetectionRule(
        framework="flask",
        name="Flask",
        dependencies=(DependencyIndicator("flask", 0.9, ecosystem="python"),),
        contents=(ContentIndicator(r"from\s+flask\s+import", 0.6, ("py",)),),
    ),
)


def glob_to_regex(pattern: str) -> Pattern[str]:
    """Compile a path glob supporting ``**`` segments and ``{a,b}`` alternatives."""
    return _compile_glob(pattern)


@lru_cache(maxsize=128)
def _compile_glob(pattern: str) -> Pattern[str]:
    parts = []
    index = 0
    while index < len(pattern):
        char = pattern[index]
        if pattern.startswith("**/", index):
            parts.append("(?:.*/)?")
            index += 3
            continue
        if pattern.startswith("**", index):
            parts.append(".*")
            index += 2
            continue
        if char == "*":
            parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        elif char == "{":
            end = pattern.find("}", index)
            if end == -1:
                parts.append(re.escape(char))
            else:
                options = pattern[index + 1 : end].split(",")
                parts.append("(?:" + "|".join(re.escape(opt.strip()) for opt in options) + ")")
                index = end + 1
                continue
        else:
            parts.append(re.escape(char))
        index += 1
    return re.compile("^" + "".join(parts) + "$")
