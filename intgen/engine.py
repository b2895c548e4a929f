"""Caller-facing facade over detection, suggestions, validation and generation."""

from __future__ import annotations

import time
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional, Sequence

from .catalog import CatalogRegistry
from .config import IntgenConfig
from .detection import FrameworkDetector
from .errors import EnhancementError, ErrorKind, NotFoundError, Result
from .llm import Enhancer, LLMEnhancer, LLMRunner
from .logging import get_logger
from .models import (
    BatchValidationResult,
    CacheStats,
    Evidence,
    FrameworkCompatibilityInfo,
    FrameworkDetectionResult,
    GenerationRequest,
    GenerationResult,
    GenerationSession,
    IntegrationTemplate,
    ProjectAnalysis,
    Provider,
    ScanReport,
    SessionEvent,
    TemplateSuggestion,
    TemplateValidationResult,
    ValidationRequest,
)
from .orchestrator import GenerationOrchestrator, Spawn
from .rendering import ContentRenderer
from .scanner import ProjectScanner
from .stores import ResultCache
from .suggestions import TemplateSuggestionEngine
from .validators import CompatibilityValidator
from .writer import ArtifactWriter


class IntegrationEngine:
    """Single entry point used by the CLI and the HTTP service."""

    def __init__(
        self,
        config: IntgenConfig | None = None,
        *,
        registry: CatalogRegistry | None = None,
        scanner: ProjectScanner | None = None,
        renderer: ContentRenderer | None = None,
        enhancer: Enhancer | None = None,
        writer: ArtifactWriter | None = None,
        cache: ResultCache[GenerationResult] | None = None,
        spawn: Spawn | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.config = config or IntgenConfig(root=Path.cwd())
        self.logger = get_logger("engine")
        self.registry = registry or CatalogRegistry.builtin(self.config.catalog_path)
        self.scanner = scanner or ProjectScanner(exclude_paths=self.config.exclude_paths)
        self.detector = FrameworkDetector(self.config.detection, self.config.scoring)
        self.validator = CompatibilityValidator(self.registry)
        self.suggestions = TemplateSuggestionEngine(
            self.registry,
            detect=self._primary_framework,
            scoring=self.config.scoring,
        )
        self.cache: ResultCache[GenerationResult] = (
            cache if cache is not None else ResultCache(self.config.cache.ttl_seconds)
        )
        self.orchestrator = GenerationOrchestrator(
            self.registry,
            scanner=self.scanner,
            detector=self.detector,
            validator=self.validator,
            renderer=renderer,
            enhancer=enhancer if enhancer is not None else self._default_enhancer(),
            writer=writer,
            cache=self.cache,
            retention_seconds=self.config.sessions.retention_seconds,
            spawn=spawn,
            clock=clock or time.monotonic,
        )

    def _default_enhancer(self) -> Optional[Enhancer]:
        try:
            runner = LLMRunner.from_config(self.config.llm)
        except EnhancementError as exc:
            self.logger.warning("AI enhancement disabled: %s", exc)
            return None
        return LLMEnhancer(runner, cache=ResultCache(self.config.cache.ttl_seconds))

    # ------------------------------------------------------------------
    # Detection

    def scan_project(self, project_path: str) -> Result[ScanReport]:
        """Scan a project; unreadable or missing paths fall back to an empty scan."""
        try:
            return Result.success(self.scanner.scan(project_path))
        except NotFoundError as exc:
            kind, detail = ErrorKind.NOT_FOUND, str(exc)
        except OSError as exc:
            kind, detail = ErrorKind.SCAN_FAILURE, str(exc)
        self.logger.warning("Scan of %s fell back to empty evidence: %s", project_path, detail)
        empty = ScanReport(root=str(project_path), evidence=[], files=[])
        return Result.degraded(empty, kind, fallback="empty_scan", detail=detail)

    def detect_frameworks(
        self,
        project_path: str | None = None,
        *,
        evidence: Iterable[Evidence] | None = None,
    ) -> List[FrameworkDetectionResult]:
        if evidence is None:
            evidence = self.scan_project(project_path or ".").value.evidence
        return self.detector.detect(evidence)

    def analyze_project(
        self,
        project_path: str | None = None,
        *,
        evidence: Iterable[Evidence] | None = None,
    ) -> ProjectAnalysis:
        if evidence is None:
            evidence = self.scan_project(project_path or ".").value.evidence
        return self.detector.analyze(evidence)

    def _primary_framework(self, project_path: str) -> Optional[str]:
        analysis = self.analyze_project(project_path)
        if analysis.primary_framework is None:
            return None
        return analysis.primary_framework.framework

    # ------------------------------------------------------------------
    # Catalog, suggestions and validation

    def providers(self) -> List[Provider]:
        return self.registry.providers()

    def templates(self, provider_id: str | None = None) -> List[IntegrationTemplate]:
        return self.registry.templates(provider_id)

    def register_custom_template(self, template: IntegrationTemplate) -> None:
        self.registry.register_template(template)

    def get_template_suggestions(
        self,
        env_var_names: Iterable[str],
        project_path: str | None = None,
    ) -> List[TemplateSuggestion]:
        return self.suggestions.suggest(env_var_names, project_path)

    def validate_combination(
        self,
        provider_id: str,
        framework: str,
        *,
        template_id: str | None = None,
        features: Sequence[str] = (),
    ) -> TemplateValidationResult:
        return self.validator.validate(provider_id, template_id, framework, features)

    def batch_validate(self, requests: Sequence[ValidationRequest]) -> BatchValidationResult:
        return self.validator.batch_validate(requests)

    def provider_compatibility(self, provider_id: str) -> List[FrameworkCompatibilityInfo]:
        return self.validator.provider_compatibility(provider_id)

    def resolve_compatibility(self, provider_id: str, framework: str) -> Result[FrameworkCompatibilityInfo]:
        return self.validator.resolve_compatibility(provider_id, framework)

    # ------------------------------------------------------------------
    # Sessions

    def start_generation(self, request: GenerationRequest) -> str:
        return self.orchestrator.start_generation(request)

    def start_preview(self, request: GenerationRequest) -> str:
        return self.orchestrator.start_preview(request)

    def get_session_status(self, session_id: str) -> GenerationSession:
        return self.orchestrator.get_status(session_id)

    def cancel_session(self, session_id: str) -> bool:
        return self.orchestrator.cancel(session_id)

    def list_active_sessions(self) -> List[GenerationSession]:
        return self.orchestrator.list_active()

    def subscribe(self, session_id: str) -> Iterator[SessionEvent]:
        return self.orchestrator.subscribe(session_id)

    def poll_events(self, session_id: str) -> List[SessionEvent]:
        return self.orchestrator.poll_events(session_id)

    def get_session_result(self, session_id: str) -> Optional[GenerationResult]:
        return self.orchestrator.get_result(session_id)

    # ------------------------------------------------------------------
    # Cache

    def clear_cache(self) -> int:
        return self.cache.clear()

    def cache_stats(self) -> CacheStats:
        return self.cache.stats()
