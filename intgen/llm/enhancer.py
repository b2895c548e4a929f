"""AI enhancement of rendered files through an LLM runner."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import List, Optional, Protocol, Sequence

from jinja2 import Environment

from ..errors import EnhancementError
from ..logging import get_logger
from ..models import RenderedFile
from ..stores import ResultCache, text_fingerprint
from .runner import LLMRunner

ENHANCEMENT_INSTRUCTIONS = {
    "code_quality": (
        "Improve readability and maintainability. Add proper error handling, "
        "improve naming and tidy the structure."
    ),
    "performance": "Remove unnecessary work and keep the bundle small.",
    "security": "Validate inputs and guard against common vulnerabilities.",
    "documentation": "Add concise doc comments for exported symbols.",
    "best_practices": "Apply framework-specific conventions.",
}

_PROMPT = Environment(autoescape=False, trim_blocks=True, lstrip_blocks=True).from_string(
    """You are an expert {{ framework or "web" }} developer. Enhance the following {{ file.language }} code for {{ enhancement_type }}.

Context:
- Framework: {{ framework or "unknown" }}
- File: {{ file.path }} ({{ file.category }})
- Enhancement level: {{ options.level }}
{% if options.focus_areas %}
- Focus areas: {{ options.focus_areas | join(", ") }}
{% endif %}

Instructions: {{ instructions }}{% if options.preserve_structure %} Preserve the existing code structure.{% endif %}

Environment variables are referenced by name only. Never inline secret values.

Current code:
```{{ file.language }}
{{ file.content }}
```

Return only the improved code in a single fenced code block."""
)

_CODE_BLOCK = re.compile(r"```[\w+-]*\n(.*?)```", re.DOTALL)


@dataclass(frozen=True)
class EnhancementOptions:
    level: str = "moderate"
    framework: str = ""
    preserve_structure: bool = True
    focus_areas: tuple[str, ...] = ()


@dataclass
class EnhancementChange:
    path: str
    description: str
    category: str


@dataclass
class EnhancementOutcome:
    files: List[RenderedFile]
    changes: List[EnhancementChange] = field(default_factory=list)


class Enhancer(Protocol):
    def enhance(
        self,
        files: Sequence[RenderedFile],
        enhancement_type: str,
        options: EnhancementOptions,
    ) -> EnhancementOutcome:
        ...


class LLMEnhancer:
    """Rewrites each rendered file through the LLM, memoizing responses by content."""

    def __init__(
        self,
        runner: LLMRunner,
        *,
        cache: Optional[ResultCache[str]] = None,
    ) -> None:
        self.runner = runner
        self.cache = cache if cache is not None else ResultCache()
        self.logger = get_logger("llm.enhancer")

    def enhance(
        self,
        files: Sequence[RenderedFile],
        enhancement_type: str = "code_quality",
        options: EnhancementOptions | None = None,
    ) -> EnhancementOutcome:
        options = options or EnhancementOptions()
        instructions = ENHANCEMENT_INSTRUCTIONS.get(
            enhancement_type, "Improve the code following general best practices."
        )
        outcome = EnhancementOutcome(files=[])
        for item in files:
            prompt = _PROMPT.render(
                file=item,
                framework=options.framework,
                enhancement_type=enhancement_type,
                instructions=instructions,
                options=options,
            )
            key = text_fingerprint(self.runner.model, enhancement_type, prompt)
            content = self.cache.get(key)
            if content is None:
                self.logger.debug("Enhancing %s via %s", item.path, self.runner.model)
                content = extract_code(self.runner.run(prompt))
                if not content.strip():
                    raise EnhancementError(f"Enhancement returned no code for {item.path}")
                self.cache.put(key, content)
            if _normalize(content) != _normalize(item.content):
                outcome.changes.append(
                    EnhancementChange(
                        path=item.path,
                        description=f"Enhanced {item.category} file for {enhancement_type}",
                        category=enhancement_type,
                    )
                )
                item = replace(item, content=_with_newline(content, item.content))
            outcome.files.append(item)
        return outcome


def extract_code(response: str) -> str:
    """Return the first fenced code block of ``response``, or the whole response."""
    match = _CODE_BLOCK.search(response)
    if match:
        return match.group(1).strip("\n")
    return response.strip()


def _normalize(text: str) -> str:
    return text.strip().replace("\r\n", "\n")


def _with_newline(content: str, original: str) -> str:
    if original.endswith("\n") and not content.endswith("\n"):
        return content + "\n"
    return content
