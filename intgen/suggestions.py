"""Template suggestions from a project's environment variable names."""

from __future__ import annotations

from typing import Callable, Iterable, List, Optional

from .catalog import CatalogRegistry
from .config import ScoringConfig
from .detection.scoring import env_match_score, setup_minutes
from .logging import get_logger
from .models import IntegrationTemplate, Provider, TemplateSuggestion

# Returns the primary framework detected in a project directory, or None.
FrameworkHint = Callable[[str], Optional[str]]


class TemplateSuggestionEngine:
    """Ranks catalog templates by how well their env var patterns match a project."""

    def __init__(
        self,
        registry: CatalogRegistry,
        *,
        detect: FrameworkHint | None = None,
        scoring: ScoringConfig | None = None,
    ) -> None:
        self.registry = registry
        self.detect = detect
        self.scoring = scoring or ScoringConfig()
        self.logger = get_logger("suggestions")

    def suggest(
        self,
        env_var_names: Iterable[str],
        project_path: str | None = None,
    ) -> List[TemplateSuggestion]:
        names = sorted({name.strip() for name in env_var_names if name and name.strip()})
        if not names:
            return []

        hint = self._framework_hint(project_path)
        suggestions: List[TemplateSuggestion] = []
        for template in self.registry.templates():
            provider = self.registry.find_provider(template.provider_id)
            if provider is None:
                continue
            suggestion = self._score(template, provider, names, hint)
            if suggestion is not None:
                suggestions.append(suggestion)

        suggestions.sort(
            key=lambda item: (
                -item.confidence,
                setup_minutes(item.estimated_setup_time),
                item.template_id,
            )
        )
        return suggestions

    def _score(
        self,
        template: IntegrationTemplate,
        provider: Provider,
        names: List[str],
        hint: Optional[str],
    ) -> Optional[TemplateSuggestion]:
        exact_patterns = (
            set(template.required_env_vars)
            | set(template.optional_env_vars)
            | set(provider.env_patterns)
        )
        exact = [name for name in names if name in exact_patterns]
        substring = [
            name
            for name in names
            if name not in exact_patterns
            and any(pattern in name for pattern in provider.key_patterns)
        ]
        if not exact and not substring:
            return None

        confidence = env_match_score(len(exact), len(substring), self.scoring)
        matched = exact + substring
        reason = f"Matched {len(matched)} environment variable(s) for {provider.name}: " + ", ".join(matched)

        frameworks = self.registry.template_frameworks(template)
        framework = hint if hint and hint in frameworks else self.registry.best_framework(template)

        return TemplateSuggestion(
            template_id=template.id,
            template_name=template.name,
            provider_id=provider.id,
            provider_name=provider.name,
            confidence=confidence,
            reason=reason,
            framework=framework,
            required_env_vars=frozenset(template.required_env_vars),
            estimated_setup_time=template.estimated_setup_time,
            difficulty_level=template.difficulty_level,
            tags=template.tags,
            matched_env_vars=matched,
        )

    def _framework_hint(self, project_path: str | None) -> Optional[str]:
        if not project_path or self.detect is None:
            return None
        try:
            return self.detect(project_path)
        except Exception as exc:
            self.logger.warning("Framework detection failed for %s: %s", project_path, exc)
            return None
