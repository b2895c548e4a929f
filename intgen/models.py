"""Core data models shared across intgen components."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional


class EvidenceType(str, Enum):
    FILE = "file"
    DEPENDENCY = "dependency"
    CONFIG = "config"
    CONTENT = "content"


class CompatibilityLevel(str, Enum):
    FULL = "full"
    PARTIAL = "partial"
    MINIMAL = "minimal"
    UNSUPPORTED = "unsupported"


class DifficultyLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class SessionStatus(str, Enum):
    STARTING = "starting"
    IN_PROGRESS = "inProgress"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATUSES


_TERMINAL_STATUSES = frozenset(
    {SessionStatus.COMPLETED, SessionStatus.FAILED, SessionStatus.CANCELLED}
)


# ---------------------------------------------------------------------------
# Detection


@dataclass(frozen=True)
class Evidence:
    """A single observed signal supporting a framework guess."""

    evidence_type: EvidenceType
    value: str
    confidence_weight: float
    source: str
    framework: Optional[str] = None

    def __post_init__(self) -> None:
        weight = float(self.confidence_weight)
        weight = min(max(weight, 0.0), 1.0) if math.isfinite(weight) else 0.0
        object.__setattr__(self, "confidence_weight", weight)
        object.__setattr__(self, "evidence_type", EvidenceType(self.evidence_type))


@dataclass
class FrameworkDetectionResult:
    """Ranked framework guess derived from its evidence list."""

    framework: str
    confidence: float
    evidence: List[Evidence]
    version: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ProjectAnalysis:
    """Project-level summary built on top of per-framework detections."""

    detected_frameworks: List[FrameworkDetectionResult]
    primary_framework: Optional[FrameworkDetectionResult]
    project_type: str
    confidence: float


@dataclass
class ScanReport:
    """Evidence collected from a project directory plus anything that could not be read."""

    root: str
    evidence: List[Evidence]
    files: List[str]
    skipped: List[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Catalog


@dataclass(frozen=True)
class FrameworkCompatibilityInfo:
    framework: str
    compatibility_level: CompatibilityLevel
    confidence: float
    supported_features: FrozenSet[str] = frozenset()
    limitations: tuple[str, ...] = ()
    additional_dependencies: tuple[str, ...] = ()


@dataclass(frozen=True)
class Provider:
    id: str
    name: str
    description: str = ""
    category: str = ""
    key_patterns: tuple[str, ...] = ()
    env_patterns: tuple[str, ...] = ()
    docs_url: str = ""
    dependencies: tuple[str, ...] = ()


@dataclass(frozen=True)
class ContentRule:
    """Check applied to generated files (``file_exists`` or ``content_contains``)."""

    rule_type: str
    condition: str
    message: str
    severity: str = "error"


@dataclass(frozen=True)
class TemplateFile:
    path: str
    content: str
    file_type: str = "typescript"
    language: str = "typescript"
    category: str = "config"
    is_required: bool = True
    framework_variants: Dict[str, str] = field(default_factory=dict, hash=False)
    conditions: tuple[str, ...] = ()
    priority: int = 0


@dataclass(frozen=True)
class IntegrationTemplate:
    id: str
    name: str
    provider_id: str
    description: str = ""
    version: str = "1.0.0"
    files: tuple[TemplateFile, ...] = ()
    required_env_vars: tuple[str, ...] = ()
    optional_env_vars: tuple[str, ...] = ()
    required_features: FrozenSet[str] = frozenset()
    supported_features: FrozenSet[str] = frozenset()
    frameworks: tuple[str, ...] = ()
    dependencies: tuple[str, ...] = ()
    dev_dependencies: tuple[str, ...] = ()
    setup_instructions: tuple[str, ...] = ()
    next_steps: tuple[str, ...] = ()
    tags: FrozenSet[str] = frozenset()
    difficulty_level: DifficultyLevel = DifficultyLevel.BEGINNER
    estimated_setup_time: str = "10 minutes"
    validation_rules: tuple[ContentRule, ...] = ()


# ---------------------------------------------------------------------------
# Suggestions and validation


@dataclass
class TemplateSuggestion:
    template_id: str
    template_name: str
    provider_id: str
    provider_name: str
    confidence: float
    reason: str
    framework: Optional[str]
    required_env_vars: FrozenSet[str]
    estimated_setup_time: str
    difficulty_level: DifficultyLevel
    tags: FrozenSet[str]
    matched_env_vars: List[str] = field(default_factory=list)


@dataclass
class TemplateValidationResult:
    """Diagnostics for one provider/template/framework/features combination."""

    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    compatible_frameworks: List[str] = field(default_factory=list)
    missing_requirements: List[str] = field(default_factory=list)
    compatibility_level: CompatibilityLevel = CompatibilityLevel.UNSUPPORTED

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class ValidationRequest:
    provider_id: str
    framework: str
    template_id: Optional[str] = None
    features: tuple[str, ...] = ()


@dataclass
class ValidationSummary:
    total_requests: int = 0
    valid_count: int = 0
    invalid_count: int = 0
    warning_count: int = 0
    error_count: int = 0


@dataclass
class BatchValidationResult:
    results: List[TemplateValidationResult]
    summary: ValidationSummary


# ---------------------------------------------------------------------------
# Generation


@dataclass(frozen=True)
class GenerationRequest:
    """Normalized input for a generation or preview session.

    Only environment variable names are accepted; values never enter the system.
    """

    provider_id: str
    framework: str = ""
    template_id: Optional[str] = None
    features: tuple[str, ...] = ()
    env_var_names: tuple[str, ...] = ()
    project_path: Optional[str] = None
    output_path: Optional[str] = None
    use_llm_enhancement: bool = False
    preview_only: bool = False


@dataclass
class Progress:
    current_step: str
    current_step_number: int
    total_steps: int
    progress: int
    status_message: str
    has_error: bool = False
    error_message: Optional[str] = None
    eta_seconds: Optional[float] = None


@dataclass
class GenerationSession:
    """Snapshot of a session as seen by callers."""

    id: str
    provider_id: str
    status: SessionStatus
    progress: Progress
    started_at: str
    duration_seconds: float
    preview_only: bool = False
    from_cache: bool = False
    fingerprint: str = ""


@dataclass
class SessionEvent:
    session_id: str
    kind: str
    progress: Progress
    status: SessionStatus


@dataclass
class RenderedFile:
    path: str
    content: str
    file_type: str
    language: str
    is_required: bool
    category: str


@dataclass
class GeneratedFile:
    path: str
    content: str
    file_type: str
    language: str
    is_required: bool
    category: str
    exists: bool
    size: int
    checksum: str
    template_id: str


@dataclass
class ContentCheck:
    rule_id: str
    passed: bool
    severity: str
    message: Optional[str] = None


@dataclass
class TemplateInfo:
    template_id: str
    template_name: str
    template_version: str
    provider_id: str
    provider_name: str
    framework: str
    compatibility_level: CompatibilityLevel
    enabled_features: List[str]
    generated_at: str
    llm_enhanced: bool


@dataclass
class GenerationResult:
    files: List[GeneratedFile]
    template_info: TemplateInfo
    dependencies: List[str] = field(default_factory=list)
    dev_dependencies: List[str] = field(default_factory=list)
    setup_instructions: List[str] = field(default_factory=list)
    next_steps: List[str] = field(default_factory=list)
    content_checks: List[ContentCheck] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    written_paths: List[str] = field(default_factory=list)
    fallbacks: List[str] = field(default_factory=list)


@dataclass
class CacheStats:
    hit_count: int = 0
    miss_count: int = 0
    eviction_count: int = 0
    size: int = 0
