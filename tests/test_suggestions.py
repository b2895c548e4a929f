"""Tests for intgen.suggestions."""

from __future__ import annotations

from intgen.catalog import CatalogRegistry
from intgen.suggestions import TemplateSuggestionEngine


def test_suggestions_rank_exact_matches_above_substring(registry: CatalogRegistry) -> None:
    engine = TemplateSuggestionEngine(registry)

    suggestions = engine.suggest(
        ["STRIPE_SECRET_KEY", "STRIPE_WEBHOOK_SECRET", "STRIPE_CUSTOM", "OPENAI_API_KEY"]
    )

    assert [item.template_id for item in suggestions] == ["stripe-config", "openai-config"]
    stripe, openai = suggestions
    assert stripe.confidence == 1.0
    assert stripe.matched_env_vars == ["STRIPE_SECRET_KEY", "STRIPE_WEBHOOK_SECRET", "STRIPE_CUSTOM"]
    assert stripe.reason.startswith("Matched 3 environment variable(s) for Stripe")
    assert openai.confidence == 0.6
    assert openai.required_env_vars == frozenset({"OPENAI_API_KEY"})


def test_suggestions_break_ties_by_setup_time(registry: CatalogRegistry) -> None:
    suggestions = TemplateSuggestionEngine(registry).suggest(["STRIPE_SECRET_KEY", "RESEND_API_KEY"])

    assert [item.template_id for item in suggestions] == ["resend-config", "stripe-config"]
    assert {item.confidence for item in suggestions} == {0.6}


def test_suggestions_skip_templates_without_matches(registry: CatalogRegistry) -> None:
    engine = TemplateSuggestionEngine(registry)

    assert engine.suggest([]) == []
    assert engine.suggest(["  ", ""]) == []
    assert engine.suggest(["DATABASE_HOST"]) == []


def test_suggestions_use_detected_framework_hint(registry: CatalogRegistry) -> None:
    seen: list[str] = []

    def detect(path: str) -> str:
        seen.append(path)
        return "nextjs"

    engine = TemplateSuggestionEngine(registry, detect=detect)

    suggestions = engine.suggest(["STRIPE_SECRET_KEY"], project_path="/srv/shop")

    assert seen == ["/srv/shop"]
    assert suggestions[0].framework == "nextjs"


def test_suggestions_survive_failed_detection(registry: CatalogRegistry) -> None:
    def detect(path: str) -> str:
        raise OSError("permission denied")

    engine = TemplateSuggestionEngine(registry, detect=detect)

    suggestions = engine.suggest(["OPENAI_API_KEY"], project_path="/locked")

    assert suggestions[0].template_id == "openai-config"
    # Without a hint the best scored compatible framework is used.
    assert suggestions[0].framework == "fastapi"
