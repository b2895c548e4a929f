"""Tests for the LLM-backed enhancer."""

from __future__ import annotations

import pytest

from intgen.errors import EnhancementError
from intgen.llm import EnhancementOptions, LLMEnhancer, LLMRunner
from intgen.llm.enhancer import extract_code
from intgen.models import RenderedFile


def _file(content: str = "export const stripe = 1;\n") -> RenderedFile:
    return RenderedFile(
        path="lib/stripe.ts",
        content=content,
        file_type="typescript",
        language="typescript",
        is_required=True,
        category="client",
    )


def _runner(responses: list[str], prompts: list[str]) -> LLMRunner:
    def fake(request):
        prompts.append(request.prompt)
        return responses.pop(0)

    return LLMRunner(model="test-model", base_url=None, api_key=None, runner=fake)


def test_enhancer_replaces_content_and_records_change() -> None:
    prompts: list[str] = []
    enhancer = LLMEnhancer(_runner(["```ts\nexport const stripe = 2;\n```"], prompts))

    outcome = enhancer.enhance([_file()], "security", EnhancementOptions(framework="nextjs"))

    assert outcome.files[0].content == "export const stripe = 2;\n"
    assert [change.category for change in outcome.changes] == ["security"]
    assert "nextjs" in prompts[0]
    assert "Validate inputs" in prompts[0]
    assert "Never inline secret values" in prompts[0]


def test_enhancer_keeps_unchanged_files_without_changes() -> None:
    prompts: list[str] = []
    enhancer = LLMEnhancer(_runner(["export const stripe = 1;"], prompts))

    outcome = enhancer.enhance([_file()])

    assert outcome.files[0].content == "export const stripe = 1;\n"
    assert outcome.changes == []


def test_enhancer_memoizes_identical_prompts() -> None:
    prompts: list[str] = []
    enhancer = LLMEnhancer(_runner(["```\nconst a = 1;\n```"], prompts))

    first = enhancer.enhance([_file()])
    second = enhancer.enhance([_file()])

    assert len(prompts) == 1
    assert first.files[0].content == second.files[0].content


def test_enhancer_rejects_empty_responses() -> None:
    enhancer = LLMEnhancer(_runner(["```ts\n\n```"], []))

    with pytest.raises(EnhancementError):
        enhancer.enhance([_file()])


def test_extract_code_without_fence_returns_text() -> None:
    assert extract_code("  plain text  ") == "plain text"
    assert extract_code("intro\n```python\nprint(1)\n```\noutro") == "print(1)"
