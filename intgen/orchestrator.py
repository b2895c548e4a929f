"""Generation session orchestration: cancellable, progress-reporting pipelines."""

from __future__ import annotations

import copy
import hashlib
import logging
import threading
import time
import uuid
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Sequence

from .catalog import CatalogRegistry
from .detection import FrameworkDetector
from .errors import (
    ErrorKind,
    GenerationFailure,
    InvalidRequestError,
    NotFoundError,
    Result,
)
from .llm.enhancer import EnhancementOptions, Enhancer
from .logging import get_logger
from .models import (
    ContentCheck,
    GeneratedFile,
    GenerationRequest,
    GenerationResult,
    GenerationSession,
    IntegrationTemplate,
    Progress,
    RenderedFile,
    SessionEvent,
    SessionStatus,
    TemplateInfo,
    TemplateValidationResult,
)
from .rendering import ContentRenderer, JinjaRenderer, RenderContext
from .scanner import ProjectScanner
from .sessions import EVENT_COMPLETED, EVENT_PROGRESS, ProgressChannel, SessionRecord
from .stores import ResultCache, request_fingerprint
from .validators import CompatibilityValidator
from .writer import ArtifactWriter, FileSystemWriter

STEP_RESOLVE_FRAMEWORK = "Resolving framework"
STEP_SELECT_TEMPLATE = "Selecting template"
STEP_VALIDATE = "Validating compatibility"
STEP_RENDER = "Rendering files"
STEP_ENHANCE = "Applying AI enhancement"
STEP_CHECK_CONTENT = "Checking generated content"
STEP_PERSIST = "Persisting files"
STEP_FINALIZE = "Finalizing"
STEP_REUSE_CACHED = "Reusing cached result"

MAX_FILE_SIZE = 1024 * 1024

Spawn = Callable[[Callable[[], None], str], None]


def _spawn_thread(target: Callable[[], None], name: str) -> None:
    thread = threading.Thread(target=target, name=name, daemon=True)
    thread.start()


class _SessionStopped(Exception):
    """Raised inside a worker when its session reached a terminal state elsewhere."""


@dataclass
class _RunState:
    framework: str = ""
    rendered: List[RenderedFile] = field(default_factory=list)
    files: List[GeneratedFile] = field(default_factory=list)
    checks: List[ContentCheck] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    fallbacks: List[str] = field(default_factory=list)
    llm_enhanced: bool = False
    written: List[str] = field(default_factory=list)


class GenerationOrchestrator:
    """Runs generation and preview sessions on background threads."""

    def __init__(
        self,
        registry: CatalogRegistry,
        *,
        scanner: ProjectScanner | None = None,
        detector: FrameworkDetector | None = None,
        validator: CompatibilityValidator | None = None,
        renderer: ContentRenderer | None = None,
        enhancer: Enhancer | None = None,
        writer: ArtifactWriter | None = None,
        cache: ResultCache[GenerationResult] | None = None,
        retention_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
        spawn: Spawn | None = None,
    ) -> None:
        self.registry = registry
        self.scanner = scanner or ProjectScanner()
        self.detector = detector or FrameworkDetector()
        self.validator = validator or CompatibilityValidator(registry)
        self.renderer = renderer or JinjaRenderer(registry)
        self.enhancer = enhancer
        self.writer = writer or FileSystemWriter()
        self.cache = cache if cache is not None else ResultCache()
        self.retention_seconds = retention_seconds
        self._clock = clock
        self._spawn = spawn or _spawn_thread
        self._sessions: Dict[str, SessionRecord] = {}
        self._lock = threading.RLock()
        self.logger = get_logger("orchestrator")

    # ------------------------------------------------------------------
    # Public API

    def start_generation(self, request: GenerationRequest) -> str:
        """Create a session that renders and writes files; returns its id immediately."""
        return self._start(replace(request, preview_only=False))

    def start_preview(self, request: GenerationRequest) -> str:
        """Create a session that renders files without writing them."""
        return self._start(replace(request, preview_only=True))

    def get_status(self, session_id: str) -> GenerationSession:
        with self._lock:
            record = self._require(session_id)
            return record.snapshot(self._clock())

    def get_result(self, session_id: str) -> Optional[GenerationResult]:
        with self._lock:
            return self._require(session_id).result

    def cancel(self, session_id: str) -> bool:
        """Cancel a running session. False for unknown or already finished sessions."""
        with self._lock:
            record = self._sessions.get(session_id)
            if record is None or record.status.is_terminal:
                return False
            record.progress = replace(record.progress, status_message="Cancelled by caller")
            self._finish(record, SessionStatus.CANCELLED)
        self.logger.info("Session %s cancelled", session_id)
        return True

    def list_active(self) -> List[GenerationSession]:
        self.prune()
        with self._lock:
            now = self._clock()
            return [
                record.snapshot(now)
                for record in self._sessions.values()
                if not record.status.is_terminal
            ]

    def channel(self, session_id: str) -> ProgressChannel:
        with self._lock:
            return self._require(session_id).channel

    def subscribe(self, session_id: str) -> Iterator[SessionEvent]:
        """Blocking iterator over a session's events, ending with its completion event."""
        return iter(self.channel(session_id))

    def poll_events(self, session_id: str) -> List[SessionEvent]:
        return self.channel(session_id).drain()

    def prune(self) -> int:
        """Forget finished sessions older than the retention window."""
        with self._lock:
            now = self._clock()
            expired = [
                session_id
                for session_id, record in self._sessions.items()
                if record.finished_clock is not None
                and now - record.finished_clock >= self.retention_seconds
            ]
            for session_id in expired:
                del self._sessions[session_id]
        if expired:
            self.logger.debug("Pruned %d finished session(s)", len(expired))
        return len(expired)

    # ------------------------------------------------------------------
    # Session lifecycle

    def _start(self, request: GenerationRequest) -> str:
        request = self._normalize(request)
        self.prune()
        record = SessionRecord(
            id=uuid.uuid4().hex,
            request=request,
            # Auto-detected requests are keyed once the framework is resolved.
            fingerprint=_fingerprint(request, request.framework) if request.framework else "",
            started_at=datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            started_clock=self._clock(),
        )
        with self._lock:
            self._sessions[record.id] = record
        self.logger.info(
            "Session %s started (%s, provider=%s)",
            record.id,
            "preview" if request.preview_only else "generation",
            request.provider_id,
        )
        self._spawn(lambda: self._run(record), f"intgen-session-{record.id[:8]}")
        return record.id

    def _normalize(self, request: GenerationRequest) -> GenerationRequest:
        provider_id = request.provider_id.strip()
        if not provider_id:
            raise InvalidRequestError("provider_id is required")
        framework = request.framework.strip()
        if not framework and not request.project_path:
            raise InvalidRequestError("Either framework or project_path is required")
        if not request.preview_only and not (request.output_path or request.project_path):
            raise InvalidRequestError("output_path or project_path is required to write files")
        names = sorted({name.strip() for name in request.env_var_names if name and name.strip()})
        for name in names:
            if "=" in name:
                raise InvalidRequestError(
                    f"Environment variable names must not contain values: '{name.split('=', 1)[0]}'"
                )
        self.registry.get_provider(provider_id)
        if request.template_id:
            self.registry.get_template(request.template_id)
        return replace(
            request,
            provider_id=provider_id,
            framework=framework,
            features=tuple(sorted({feature for feature in request.features if feature})),
            env_var_names=tuple(names),
        )

    def _run(self, record: SessionRecord) -> None:
        request = record.request
        try:
            framework = request.framework
            detected = not framework
            if detected:
                self._begin_step(
                    record, _fresh_steps(request), STEP_RESOLVE_FRAMEWORK, "Detecting the project framework"
                )
                framework = self._detect_framework(record)
                self._complete_step(record, STEP_RESOLVE_FRAMEWORK)
                with self._lock:
                    record.fingerprint = _fingerprint(request, framework)

            cached = self.cache.get(record.fingerprint)
            if cached is not None:
                self._run_cached(record, cached, detected=detected)
            else:
                self._run_fresh(record, framework, detected=detected)
        except _SessionStopped:
            self.logger.debug("Session %s stopped at a step boundary", record.id)
        except GenerationFailure as exc:
            self._fail(record, exc)
        except Exception as exc:
            step = record.progress.current_step
            self._log_exception(f"Session {record.id} failed during {step}", exc)
            self._fail(
                record,
                GenerationFailure(step, str(exc), last_successful_step=record.last_successful_step),
            )

    def _run_cached(self, record: SessionRecord, cached: GenerationResult, *, detected: bool) -> None:
        request = record.request
        steps = [STEP_RESOLVE_FRAMEWORK] if detected else []
        steps.append(STEP_REUSE_CACHED)
        if not request.preview_only:
            steps.append(STEP_PERSIST)
        self.logger.debug("Cache hit for session %s", record.id)
        with self._lock:
            record.from_cache = True

        self._begin_step(record, steps, STEP_REUSE_CACHED, "Reusing a previously generated result")
        result = copy.deepcopy(cached)
        result.written_paths = []
        self._complete_step(record, STEP_REUSE_CACHED)

        if not request.preview_only:
            self._begin_step(record, steps, STEP_PERSIST, f"Writing {len(result.files)} file(s)")
            result.written_paths = self._persist(record, result.files)
            self._complete_step(record, STEP_PERSIST)

        with self._lock:
            if record.status.is_terminal:
                raise _SessionStopped()
            record.result = result
            self._finish(record, SessionStatus.COMPLETED)
        self.logger.info("Session %s completed from cache", record.id)

    def _run_fresh(self, record: SessionRecord, framework: str, *, detected: bool) -> None:
        request = record.request
        steps = _fresh_steps(request)
        state = _RunState(framework=framework)

        if not detected:
            self._begin_step(record, steps, STEP_RESOLVE_FRAMEWORK, f"Using the requested framework {framework}")
            self._complete_step(record, STEP_RESOLVE_FRAMEWORK)

        self._begin_step(record, steps, STEP_SELECT_TEMPLATE, f"Choosing a template for {framework}")
        template = self._select_template(record, framework)
        self._complete_step(record, STEP_SELECT_TEMPLATE)

        self._begin_step(record, steps, STEP_VALIDATE, "Checking template requirements")
        validation = self._validate(record, state, template)
        self._complete_step(record, STEP_VALIDATE)

        self._begin_step(record, steps, STEP_RENDER, f"Processing {len(template.files)} template file(s)")
        state.rendered = self._render(record, state, template)
        self._complete_step(record, STEP_RENDER)

        message = "Enhancing generated code" if request.use_llm_enhancement else "Enhancement not requested"
        self._begin_step(record, steps, STEP_ENHANCE, message)
        if request.use_llm_enhancement:
            enhanced = self._enhance(state)
            state.rendered = enhanced.value
            state.llm_enhanced = enhanced.ok
            if not enhanced.ok:
                state.fallbacks.append(enhanced.fallback or "unenhanced")
                state.warnings.append(f"AI enhancement unavailable: {enhanced.detail}")
        self._complete_step(record, STEP_ENHANCE)

        self._begin_step(record, steps, STEP_CHECK_CONTENT, "Validating generated content")
        state.files = self._build_files(record, state, template)
        state.checks = self._check_content(state, template)
        self._complete_step(record, STEP_CHECK_CONTENT)

        if not request.preview_only:
            self._begin_step(record, steps, STEP_PERSIST, f"Writing {len(state.files)} file(s)")
            state.written = self._persist(record, state.files)
            self._complete_step(record, STEP_PERSIST)

        self._begin_step(record, steps, STEP_FINALIZE, "Preparing the result")
        result = self._build_result(record, state, template, validation)
        self._complete_step(record, STEP_FINALIZE)

        with self._lock:
            if record.status.is_terminal:
                raise _SessionStopped()
            record.result = result
            self.cache.put(record.fingerprint, _cacheable(result))
            self._finish(record, SessionStatus.COMPLETED)
        self.logger.info(
            "Session %s completed: %d file(s) from %s", record.id, len(result.files), template.id
        )

    # ------------------------------------------------------------------
    # Progress and terminal states

    def _begin_step(self, record: SessionRecord, steps: Sequence[str], step: str, message: str) -> None:
        number = steps.index(step) + 1
        total = len(steps)
        with self._lock:
            if record.status.is_terminal:
                raise _SessionStopped()
            elapsed = self._clock() - record.started_clock
            eta = None
            if number > 1:
                eta = round(elapsed / (number - 1) * (total - number + 1), 3)
            record.progress = Progress(
                current_step=step,
                current_step_number=number,
                total_steps=total,
                progress=round((number - 1) * 100 / total),
                status_message=message,
                eta_seconds=eta,
            )
            record.status = SessionStatus.IN_PROGRESS
            record.channel.publish(record.event(EVENT_PROGRESS))
        self.logger.debug("Session %s: step %d/%d %s", record.id, number, total, step)

    def _complete_step(self, record: SessionRecord, step: str) -> None:
        with self._lock:
            record.last_successful_step = step

    def _finish(self, record: SessionRecord, status: SessionStatus) -> None:
        """Move to a terminal state and emit the single completion event. Caller holds the lock."""
        if record.completion_emitted:
            return
        record.status = status
        record.finished_clock = self._clock()
        if status is SessionStatus.COMPLETED:
            record.progress = replace(
                record.progress,
                current_step="Completed",
                current_step_number=record.progress.total_steps,
                progress=100,
                status_message="Generation completed",
                eta_seconds=0.0,
            )
        record.completion_emitted = True
        record.channel.publish(record.event(EVENT_COMPLETED))

    def _fail(self, record: SessionRecord, failure: GenerationFailure) -> None:
        with self._lock:
            if record.status.is_terminal:
                return
            if failure.last_successful_step is None and record.last_successful_step:
                failure = GenerationFailure(
                    failure.step, failure.reason, last_successful_step=record.last_successful_step
                )
            record.progress = replace(
                record.progress,
                has_error=True,
                error_message=str(failure),
                status_message=f"{failure.step} failed",
                eta_seconds=None,
            )
            self._finish(record, SessionStatus.FAILED)
        self.logger.warning("Session %s failed: %s", record.id, failure)

    def _require(self, session_id: str) -> SessionRecord:
        record = self._sessions.get(session_id)
        if record is None:
            raise NotFoundError(f"Unknown session '{session_id}'")
        return record

    def _log_exception(self, message: str, exc: Exception) -> None:
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.exception("%s: %s", message, exc)
        else:
            self.logger.error("%s: %s", message, exc)

    # ------------------------------------------------------------------
    # Pipeline steps

    def _detect_framework(self, record: SessionRecord) -> str:
        request = record.request
        try:
            report = self.scanner.scan(request.project_path or "")
        except NotFoundError as exc:
            raise self._failure(record, STEP_RESOLVE_FRAMEWORK, str(exc)) from exc
        results = self.detector.detect(report.evidence)
        if not results:
            raise self._failure(record, STEP_RESOLVE_FRAMEWORK, "No framework detected in the project")
        self.logger.debug(
            "Session %s detected %s (%.2f)", record.id, results[0].framework, results[0].confidence
        )
        return results[0].framework

    def _select_template(self, record: SessionRecord, framework: str) -> IntegrationTemplate:
        request = record.request
        try:
            if request.template_id:
                return self.registry.get_template(request.template_id)
            return self.registry.select_template(request.provider_id, framework)
        except NotFoundError as exc:
            raise self._failure(record, STEP_SELECT_TEMPLATE, str(exc)) from exc

    def _validate(
        self, record: SessionRecord, state: _RunState, template: IntegrationTemplate
    ) -> TemplateValidationResult:
        request = record.request
        validation = self.validator.validate(
            request.provider_id, template.id, state.framework, request.features
        )
        if not validation.is_valid:
            raise self._failure(record, STEP_VALIDATE, "; ".join(validation.errors))
        for name in template.required_env_vars:
            if name not in request.env_var_names:
                raise self._failure(
                    record, STEP_VALIDATE, f"Required environment variable '{name}' not provided"
                )
        state.warnings.extend(validation.warnings)
        return validation

    def _render(
        self, record: SessionRecord, state: _RunState, template: IntegrationTemplate
    ) -> List[RenderedFile]:
        request = record.request
        context = RenderContext(
            provider_id=request.provider_id,
            framework=state.framework,
            features=request.features,
            env_var_names=request.env_var_names,
        )
        try:
            rendered = list(self.renderer.render(template.id, state.framework, context))
        except Exception as exc:
            raise self._failure(record, STEP_RENDER, str(exc)) from exc
        if not rendered:
            raise self._failure(record, STEP_RENDER, "Template produced no files")
        return rendered

    def _enhance(self, state: _RunState) -> Result[List[RenderedFile]]:
        if self.enhancer is None:
            return Result.degraded(
                state.rendered,
                ErrorKind.ENHANCEMENT_FAILURE,
                fallback="unenhanced",
                detail="no enhancement backend configured",
            )
        try:
            outcome = self.enhancer.enhance(
                state.rendered,
                "code_quality",
                EnhancementOptions(framework=state.framework),
            )
        except Exception as exc:
            self.logger.warning("AI enhancement failed; keeping unenhanced output: %s", exc)
            return Result.degraded(
                state.rendered,
                ErrorKind.ENHANCEMENT_FAILURE,
                fallback="unenhanced",
                detail=str(exc),
            )
        return Result.success(list(outcome.files))

    def _build_files(
        self, record: SessionRecord, state: _RunState, template: IntegrationTemplate
    ) -> List[GeneratedFile]:
        base = record.request.output_path or record.request.project_path
        files = []
        for item in state.rendered:
            encoded = item.content.encode("utf-8")
            files.append(
                GeneratedFile(
                    path=item.path,
                    content=item.content,
                    file_type=item.file_type,
                    language=item.language,
                    is_required=item.is_required,
                    category=item.category,
                    exists=bool(base) and (Path(base) / item.path).exists(),
                    size=len(encoded),
                    checksum=hashlib.sha256(encoded).hexdigest(),
                    template_id=template.id,
                )
            )
        return files

    def _check_content(self, state: _RunState, template: IntegrationTemplate) -> List[ContentCheck]:
        by_path = {item.path: item for item in state.files}
        checks: List[ContentCheck] = []
        for item in state.files:
            if not item.content.strip():
                checks.append(ContentCheck(f"non-empty:{item.path}", False, "warning", f"{item.path} is empty"))
            if item.size > MAX_FILE_SIZE:
                checks.append(
                    ContentCheck(f"max-size:{item.path}", False, "warning", f"{item.path} exceeds 1MB")
                )
        for index, rule in enumerate(template.validation_rules):
            rule_id = f"{template.id}:{rule.rule_type}:{index}"
            if rule.rule_type == "file_exists":
                passed = rule.condition in by_path
            elif rule.rule_type == "content_contains":
                path, _, needle = rule.condition.partition("|")
                target = by_path.get(path)
                passed = target is not None and needle in target.content
            else:
                checks.append(ContentCheck(rule_id, False, "warning", f"Unknown rule type '{rule.rule_type}'"))
                continue
            checks.append(ContentCheck(rule_id, passed, rule.severity, None if passed else rule.message))

        for check in checks:
            if check.passed:
                continue
            if check.severity == "error":
                raise GenerationFailure(STEP_CHECK_CONTENT, check.message or check.rule_id)
            state.warnings.append(check.message or check.rule_id)
        return checks

    def _persist(self, record: SessionRecord, files: Sequence[GeneratedFile]) -> List[str]:
        output = record.request.output_path or record.request.project_path or ""
        try:
            return list(self.writer.write(files, output))
        except Exception as exc:
            raise self._failure(record, STEP_PERSIST, str(exc)) from exc

    def _build_result(
        self,
        record: SessionRecord,
        state: _RunState,
        template: IntegrationTemplate,
        validation: TemplateValidationResult,
    ) -> GenerationResult:
        request = record.request
        provider = self.registry.get_provider(template.provider_id)
        entry = self.registry.compatibility(template.provider_id, state.framework)
        dependencies = list(dict.fromkeys(template.dependencies + (entry.additional_dependencies if entry else ())))
        return GenerationResult(
            files=state.files,
            template_info=TemplateInfo(
                template_id=template.id,
                template_name=template.name,
                template_version=template.version,
                provider_id=provider.id,
                provider_name=provider.name,
                framework=state.framework,
                compatibility_level=validation.compatibility_level,
                enabled_features=list(request.features),
                generated_at=datetime.now(UTC).isoformat().replace("+00:00", "Z"),
                llm_enhanced=state.llm_enhanced,
            ),
            dependencies=dependencies,
            dev_dependencies=list(template.dev_dependencies),
            setup_instructions=list(template.setup_instructions),
            next_steps=list(template.next_steps),
            content_checks=state.checks,
            warnings=state.warnings,
            recommendations=[f"Consider enabling the '{feature}' feature" for feature in validation.suggestions],
            written_paths=state.written,
            fallbacks=state.fallbacks,
        )

    @staticmethod
    def _failure(record: SessionRecord, step: str, message: str) -> GenerationFailure:
        return GenerationFailure(step, message, last_successful_step=record.last_successful_step)


def _fresh_steps(request: GenerationRequest) -> List[str]:
    steps = [
        STEP_RESOLVE_FRAMEWORK,
        STEP_SELECT_TEMPLATE,
        STEP_VALIDATE,
        STEP_RENDER,
        STEP_ENHANCE,
        STEP_CHECK_CONTENT,
    ]
    if not request.preview_only:
        steps.append(STEP_PERSIST)
    steps.append(STEP_FINALIZE)
    return steps


def _fingerprint(request: GenerationRequest, framework: str) -> str:
    return request_fingerprint(
        provider_id=request.provider_id,
        template_id=request.template_id,
        framework=framework,
        features=request.features,
        env_var_names=request.env_var_names,
        use_llm_enhancement=request.use_llm_enhancement,
    )


def _cacheable(result: GenerationResult) -> GenerationResult:
    cached = copy.deepcopy(result)
    cached.written_paths = []
    return cached
