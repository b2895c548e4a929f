"""Content rendering for integration templates."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Protocol, Sequence

from jinja2 import Environment, StrictUndefined, TemplateError

from ..catalog import CatalogRegistry
from ..errors import NotFoundError, RenderError
from ..models import IntegrationTemplate, RenderedFile, TemplateFile


@dataclass(frozen=True)
class RenderContext:
    """Values exposed to template files. Holds environment variable names, never values."""

    provider_id: str
    framework: str
    features: tuple[str, ...] = ()
    env_var_names: tuple[str, ...] = ()


class ContentRenderer(Protocol):
    def render(
        self, template_id: str, framework_variant: str, context: RenderContext
    ) -> List[RenderedFile]:
        ...


class JinjaRenderer:
    """Renders catalog template files with Jinja2."""

    def __init__(self, registry: CatalogRegistry) -> None:
        self.registry = registry
        self.env = Environment(
            autoescape=False,
            keep_trailing_newline=True,
            undefined=StrictUndefined,
        )

    def render(
        self, template_id: str, framework_variant: str, context: RenderContext
    ) -> List[RenderedFile]:
        try:
            template = self.registry.get_template(template_id)
        except NotFoundError as exc:
            raise RenderError(str(exc)) from exc

        variables = self._variables(template, context)
        rendered: List[RenderedFile] = []
        for item in sorted(template.files, key=lambda entry: entry.priority):
            if not conditions_met(item.conditions, context):
                continue
            source = item.framework_variants.get(framework_variant, item.content)
            try:
                content = self.env.from_string(source).render(**variables)
            except TemplateError as exc:
                raise RenderError(f"Failed to render {item.path}: {exc}") from exc
            rendered.append(_rendered_file(item, content))
        return rendered

    @staticmethod
    def _variables(template: IntegrationTemplate, context: RenderContext) -> Dict[str, object]:
        env_vars = sorted(set(context.env_var_names))
        features = sorted(set(context.features))

        def env_var(name: str) -> str:
            return name

        def has_feature(name: str) -> bool:
            return name in features

        return {
            "template": template,
            "provider_id": context.provider_id,
            "framework": context.framework,
            "features": features,
            "env_vars": env_vars,
            "env_var": env_var,
            "has_feature": has_feature,
        }


def conditions_met(conditions: Sequence[str], context: RenderContext) -> bool:
    """All conditions must hold. Supports ``feature:``, ``framework:`` and ``env:`` with optional ``!``."""
    for condition in conditions:
        negate = condition.startswith("!")
        kind, _, value = condition.lstrip("!").partition(":")
        if kind == "feature":
            holds = value in context.features
        elif kind == "framework":
            holds = value == context.framework
        elif kind == "env":
            holds = value in context.env_var_names
        else:
            raise RenderError(f"Unknown file condition '{condition}'")
        if holds == negate:
            return False
    return True


def _rendered_file(item: TemplateFile, content: str) -> RenderedFile:
    return RenderedFile(
        path=item.path,
        content=content,
        file_type=item.file_type,
        language=item.language,
        is_required=item.is_required,
        category=item.category,
    )
