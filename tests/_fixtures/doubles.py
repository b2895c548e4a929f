"""Test doubles for orchestrator collaborators."""

from __future__ import annotations

from typing import Any, Callable, List, Sequence

from intgen.llm import EnhancementOptions, EnhancementOutcome
from intgen.models import GeneratedFile, RenderedFile
from intgen.rendering import JinjaRenderer, RenderContext


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class DeferredSpawn:
    """Collects session work so tests decide when it runs."""

    def __init__(self) -> None:
        self.pending: List[Callable[[], None]] = []
        self.names: List[str] = []

    def __call__(self, target: Callable[[], None], name: str) -> None:
        self.pending.append(target)
        self.names.append(name)

    def run_all(self) -> None:
        while self.pending:
            self.pending.pop(0)()


def run_inline(target: Callable[[], None], name: str) -> None:
    target()


class RecordingRenderer:
    """Delegates to the Jinja renderer while counting calls."""

    def __init__(self, delegate: JinjaRenderer) -> None:
        self.delegate = delegate
        self.calls: List[tuple[str, str]] = []

    def render(
        self, template_id: str, framework_variant: str, context: RenderContext
    ) -> List[RenderedFile]:
        self.calls.append((template_id, framework_variant))
        return self.delegate.render(template_id, framework_variant, context)


class CancellingRenderer:
    """Cancels every active session of ``orchestrator`` mid-render, then renders normally."""

    def __init__(self, delegate: JinjaRenderer) -> None:
        self.delegate = delegate
        self.orchestrator: Any = None

    def render(
        self, template_id: str, framework_variant: str, context: RenderContext
    ) -> List[RenderedFile]:
        for session in self.orchestrator.list_active():
            self.orchestrator.cancel(session.id)
        return self.delegate.render(template_id, framework_variant, context)


class FailingRenderer:
    def render(
        self, template_id: str, framework_variant: str, context: RenderContext
    ) -> List[RenderedFile]:
        raise RuntimeError("template backend unavailable")


class UppercaseEnhancer:
    """Enhancer stand-in that appends a marker comment to every file."""

    def __init__(self) -> None:
        self.calls = 0

    def enhance(
        self,
        files: Sequence[RenderedFile],
        enhancement_type: str,
        options: EnhancementOptions,
    ) -> EnhancementOutcome:
        self.calls += 1
        enhanced = [
            RenderedFile(
                path=item.path,
                content=item.content + "// enhanced\n",
                file_type=item.file_type,
                language=item.language,
                is_required=item.is_required,
                category=item.category,
            )
            for item in files
        ]
        return EnhancementOutcome(files=enhanced)


class BrokenEnhancer:
    def enhance(
        self,
        files: Sequence[RenderedFile],
        enhancement_type: str,
        options: EnhancementOptions,
    ) -> EnhancementOutcome:
        raise RuntimeError("model runner offline")


class RecordingWriter:
    def __init__(self) -> None:
        self.calls: List[tuple[List[str], str]] = []

    def write(self, files: Sequence[GeneratedFile], output_path: str) -> List[str]:
        paths = [item.path for item in files]
        self.calls.append((paths, output_path))
        return paths


__all__ = [
    "BrokenEnhancer",
    "CancellingRenderer",
    "DeferredSpawn",
    "FailingRenderer",
    "ManualClock",
    "RecordingRenderer",
    "RecordingWriter",
    "UppercaseEnhancer",
    "run_inline",
]
