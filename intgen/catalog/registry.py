"""Catalog of providers, integration templates and the framework compatibility model."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import yaml

from ..errors import ConfigError, NotFoundError, UnsupportedCombinationError
from ..logging import get_logger
from ..models import (
    CompatibilityLevel,
    ContentRule,
    DifficultyLevel,
    FrameworkCompatibilityInfo,
    IntegrationTemplate,
    Provider,
    TemplateFile,
)

BUILTIN_CATALOG = Path(__file__).with_name("builtin.yml")

_LEVEL_SCORES = {
    CompatibilityLevel.FULL: 3.0,
    CompatibilityLevel.PARTIAL: 2.0,
    CompatibilityLevel.MINIMAL: 1.0,
    CompatibilityLevel.UNSUPPORTED: 0.0,
}


class CatalogRegistry:
    """Holds providers, templates and per-provider framework compatibility.

    The registry is built once and passed explicitly to the components that need it.
    ``register_template`` is the only mutation; reads return snapshots.
    """

    def __init__(
        self,
        providers: Iterable[Provider] = (),
        templates: Iterable[IntegrationTemplate] = (),
        compatibility: Mapping[str, Iterable[FrameworkCompatibilityInfo]] | None = None,
    ) -> None:
        self._lock = threading.RLock()
        self._providers: Dict[str, Provider] = {}
        self._templates: Dict[str, IntegrationTemplate] = {}
        self._compatibility: Dict[str, Dict[str, FrameworkCompatibilityInfo]] = {}
        self.logger = get_logger("catalog")

        for provider in providers:
            self._providers[provider.id] = provider
        for provider_id, entries in (compatibility or {}).items():
            self._compatibility[provider_id] = {entry.framework: entry for entry in entries}
        for template in templates:
            self.register_template(template)

    # ------------------------------------------------------------------
    # Construction

    @classmethod
    def from_files(cls, *paths: Path) -> "CatalogRegistry":
        """Build a registry from one or more catalog YAML files, later files extending earlier ones."""
        registry = cls()
        for path in paths:
            registry._load_file(path)
        return registry

    @classmethod
    def builtin(cls, extra_catalog: Path | None = None) -> "CatalogRegistry":
        paths = [BUILTIN_CATALOG]
        if extra_catalog is not None:
            paths.append(extra_catalog)
        return cls.from_files(*paths)

    def _load_file(self, path: Path) -> None:
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise ConfigError(f"Catalog file not found: {path}") from exc
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse catalog {path.name}: {exc}") from exc
        if data is None:
            return
        if not isinstance(data, dict):
            raise ConfigError(f"Catalog {path.name} must contain a mapping at the root")

        with self._lock:
            for raw in _as_list(data.get("providers")):
                provider, entries = _parse_provider(raw, path)
                self._providers[provider.id] = provider
                self._compatibility.setdefault(provider.id, {}).update(
                    {entry.framework: entry for entry in entries}
                )
            for raw in _as_list(data.get("templates")):
                self.register_template(_parse_template(raw, path))
        self.logger.debug("Loaded catalog %s", path)

    # ------------------------------------------------------------------
    # Providers and compatibility

    def providers(self) -> List[Provider]:
        with self._lock:
            return sorted(self._providers.values(), key=lambda provider: provider.id)

    def find_provider(self, provider_id: str) -> Optional[Provider]:
        with self._lock:
            return self._providers.get(provider_id)

    def get_provider(self, provider_id: str) -> Provider:
        provider = self.find_provider(provider_id)
        if provider is None:
            raise NotFoundError(f"Unknown provider '{provider_id}'")
        return provider

    def compatibility(self, provider_id: str, framework: str) -> Optional[FrameworkCompatibilityInfo]:
        with self._lock:
            return self._compatibility.get(provider_id, {}).get(framework)

    def require_compatibility(self, provider_id: str, framework: str) -> FrameworkCompatibilityInfo:
        """Strict lookup: raise when the pairing is absent from the compatibility model."""
        entry = self.compatibility(provider_id, framework)
        if entry is None:
            raise UnsupportedCombinationError(provider_id, framework)
        return entry

    def provider_compatibility(self, provider_id: str) -> List[FrameworkCompatibilityInfo]:
        self.get_provider(provider_id)
        with self._lock:
            entries = list(self._compatibility.get(provider_id, {}).values())
        return sorted(entries, key=lambda entry: entry.framework)

    # ------------------------------------------------------------------
    # Templates

    def templates(self, provider_id: str | None = None) -> List[IntegrationTemplate]:
        with self._lock:
            items = list(self._templates.values())
        if provider_id is not None:
            items = [template for template in items if template.provider_id == provider_id]
        return sorted(items, key=lambda template: template.id)

    def find_template(self, template_id: str) -> Optional[IntegrationTemplate]:
        with self._lock:
            return self._templates.get(template_id)

    def get_template(self, template_id: str) -> IntegrationTemplate:
        template = self.find_template(template_id)
        if template is None:
            raise NotFoundError(f"Unknown template '{template_id}'")
        return template

    def register_template(self, template: IntegrationTemplate) -> None:
        """Add or replace a template. Its provider must already be registered."""
        with self._lock:
            if template.provider_id not in self._providers:
                raise NotFoundError(
                    f"Template '{template.id}' references unknown provider '{template.provider_id}'"
                )
            replaced = template.id in self._templates
            self._templates[template.id] = template
        self.logger.debug("%s template %s", "Replaced" if replaced else "Registered", template.id)

    def template_frameworks(self, template: IntegrationTemplate) -> List[str]:
        """Frameworks a template targets: its own list, or every framework its provider knows."""
        if template.frameworks:
            return list(template.frameworks)
        with self._lock:
            return sorted(self._compatibility.get(template.provider_id, {}))

    def template_score(self, template: IntegrationTemplate, framework: str) -> float:
        score = 1.0
        entry = self.compatibility(template.provider_id, framework)
        if entry is not None:
            score += _LEVEL_SCORES[entry.compatibility_level] + entry.confidence
        score += 0.5 * sum(1 for item in template.files if framework in item.framework_variants)
        return score

    def select_template(self, provider_id: str, framework: str) -> IntegrationTemplate:
        """Best-scored template of ``provider_id`` targeting ``framework``."""
        self.get_provider(provider_id)
        candidates = [
            template
            for template in self.templates(provider_id)
            if framework in self.template_frameworks(template)
        ]
        if not candidates:
            raise NotFoundError(
                f"No suitable template found for provider '{provider_id}' and framework '{framework}'"
            )
        candidates.sort(key=lambda template: (-self.template_score(template, framework), template.id))
        return candidates[0]

    def best_framework(self, template: IntegrationTemplate) -> Optional[str]:
        """The template framework with the strongest compatibility entry, if any."""
        ranked: List[Tuple[float, str]] = []
        for framework in self.template_frameworks(template):
            entry = self.compatibility(template.provider_id, framework)
            if entry is None or entry.compatibility_level is CompatibilityLevel.UNSUPPORTED:
                continue
            ranked.append((-self.template_score(template, framework), framework))
        if not ranked:
            return None
        return sorted(ranked)[0][1]


# ----------------------------------------------------------------------
# YAML parsing


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    raise ConfigError("Catalog sections must be lists")


def _as_tuple(value: Any) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if isinstance(value, Sequence):
        return tuple(str(item) for item in value)
    return ()


def _require(raw: Mapping[str, Any], key: str, path: Path) -> str:
    value = raw.get(key)
    if not isinstance(value, str) or not value:
        raise ConfigError(f"Catalog {path.name}: entry is missing '{key}'")
    return value


def _parse_provider(raw: Any, path: Path) -> Tuple[Provider, List[FrameworkCompatibilityInfo]]:
    if not isinstance(raw, dict):
        raise ConfigError(f"Catalog {path.name}: provider entries must be mappings")
    provider = Provider(
        id=_require(raw, "id", path),
        name=str(raw.get("name") or raw["id"]),
        description=str(raw.get("description") or ""),
        category=str(raw.get("category") or ""),
        key_patterns=_as_tuple(raw.get("key_patterns")),
        env_patterns=_as_tuple(raw.get("env_patterns")),
        docs_url=str(raw.get("docs_url") or ""),
        dependencies=_as_tuple(raw.get("dependencies")),
    )
    entries = []
    for item in _as_list(raw.get("compatibility")):
        if not isinstance(item, dict):
            raise ConfigError(f"Catalog {path.name}: compatibility entries must be mappings")
        try:
            level = CompatibilityLevel(str(item.get("level", "unsupported")))
        except ValueError as exc:
            raise ConfigError(f"Catalog {path.name}: {exc}") from exc
        entries.append(
            FrameworkCompatibilityInfo(
                framework=_require(item, "framework", path),
                compatibility_level=level,
                confidence=float(item.get("confidence", 0.0)),
                supported_features=frozenset(_as_tuple(item.get("supported_features"))),
                limitations=_as_tuple(item.get("limitations")),
                additional_dependencies=_as_tuple(item.get("additional_dependencies")),
            )
        )
    return provider, entries


def _parse_template(raw: Any, path: Path) -> IntegrationTemplate:
    if not isinstance(raw, dict):
        raise ConfigError(f"Catalog {path.name}: template entries must be mappings")
    files = []
    for index, item in enumerate(_as_list(raw.get("files"))):
        if not isinstance(item, dict):
            raise ConfigError(f"Catalog {path.name}: template files must be mappings")
        variants = item.get("framework_variants") or {}
        files.append(
            TemplateFile(
                path=_require(item, "path", path),
                content=str(item.get("content") or ""),
                file_type=str(item.get("file_type") or _file_type(item["path"])),
                language=str(item.get("language") or _file_type(item["path"])),
                category=str(item.get("category") or "config"),
                is_required=bool(item.get("is_required", True)),
                framework_variants={str(key): str(value) for key, value in variants.items()},
                conditions=_as_tuple(item.get("conditions")),
                priority=int(item.get("priority", index)),
            )
        )
    rules = []
    for item in _as_list(raw.get("validation_rules")):
        rules.append(
            ContentRule(
                rule_type=str(item.get("type")),
                condition=str(item.get("condition", "")),
                message=str(item.get("message", "")),
                severity=str(item.get("severity", "error")),
            )
        )
    try:
        difficulty = DifficultyLevel(str(raw.get("difficulty_level", "beginner")))
    except ValueError as exc:
        raise ConfigError(f"Catalog {path.name}: {exc}") from exc
    return IntegrationTemplate(
        id=_require(raw, "id", path),
        name=str(raw.get("name") or raw["id"]),
        provider_id=_require(raw, "provider_id", path),
        description=str(raw.get("description") or ""),
        version=str(raw.get("version") or "1.0.0"),
        files=tuple(files),
        required_env_vars=_as_tuple(raw.get("required_env_vars")),
        optional_env_vars=_as_tuple(raw.get("optional_env_vars")),
        required_features=frozenset(_as_tuple(raw.get("required_features"))),
        supported_features=frozenset(_as_tuple(raw.get("supported_features"))),
        frameworks=_as_tuple(raw.get("frameworks")),
        dependencies=_as_tuple(raw.get("dependencies")),
        dev_dependencies=_as_tuple(raw.get("dev_dependencies")),
        setup_instructions=_as_tuple(raw.get("setup_instructions")),
        next_steps=_as_tuple(raw.get("next_steps")),
        tags=frozenset(_as_tuple(raw.get("tags"))),
        difficulty_level=difficulty,
        estimated_setup_time=str(raw.get("estimated_setup_time") or "10 minutes"),
        validation_rules=tuple(rules),
    )


_FILE_TYPES = {
    ".ts": "typescript",
    ".tsx": "typescript",
    ".js": "javascript",
    ".mjs": "javascript",
    ".jsx": "javascript",
    ".py": "python",
    ".json": "json",
    ".env": "env",
    ".yml": "yaml",
    ".yaml": "yaml",
}


def _file_type(path: str) -> str:
    return _FILE_TYPES.get(Path(path).suffix.lower(), "text")
