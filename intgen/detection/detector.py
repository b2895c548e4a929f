"""Framework detection: turns evidence into ranked framework guesses."""

from __future__ import annotations

from collections import OrderedDict
from typing import Dict, Iterable, List, Optional

from ..config import DetectionConfig, ScoringConfig
from ..logging import get_logger
from ..models import (
    Evidence,
    EvidenceType,
    FrameworkDetectionResult,
    ProjectAnalysis,
)
from .scoring import evidence_confidence, overall_confidence

FRONTEND_FRAMEWORKS = frozenset({"nextjs", "react", "vue", "angular", "svelte"})
BACKEND_FRAMEWORKS = frozenset({"express", "nestjs", "fastapi", "django", "flask"})


class FrameworkDetector:
    """Scores candidate frameworks from evidence. Performs no I/O."""

    def __init__(
        self,
        config: DetectionConfig | None = None,
        scoring: ScoringConfig | None = None,
    ) -> None:
        self.config = config or DetectionConfig()
        self.scoring = scoring or ScoringConfig()
        self.logger = get_logger("detection")

    def detect(
        self,
        evidence: Iterable[Evidence],
        config: DetectionConfig | None = None,
    ) -> List[FrameworkDetectionResult]:
        """Return frameworks ordered by confidence (descending)."""
        config = config or self.config
        grouped: Dict[str, List[Evidence]] = OrderedDict()
        for item in evidence:
            if not item.framework:
                continue
            grouped.setdefault(item.framework, []).append(item)

        results: List[FrameworkDetectionResult] = []
        for framework, items in grouped.items():
            confidence = evidence_confidence(item.confidence_weight for item in items)
            self.logger.debug(
                "Scored %s at %.3f from %d evidence item(s)", framework, confidence, len(items)
            )
            if confidence < config.min_confidence or confidence > config.max_confidence:
                continue
            results.append(
                FrameworkDetectionResult(
                    framework=framework,
                    confidence=confidence,
                    evidence=list(items),
                    version=_extract_version(items),
                    metadata={
                        "evidence_count": len(items),
                        "evidence_types": sorted({item.evidence_type.value for item in items}),
                    },
                )
            )

        results.sort(key=lambda result: (-result.confidence, -len(result.evidence), result.framework))
        results = results[: max(config.max_results, 0)]
        if not config.include_evidence:
            for result in results:
                result.evidence = []
        return results

    def overall_confidence(self, results: List[FrameworkDetectionResult]) -> float:
        return overall_confidence([result.confidence for result in results], self.scoring)

    def analyze(
        self,
        evidence: Iterable[Evidence],
        config: DetectionConfig | None = None,
    ) -> ProjectAnalysis:
        """Summarize the project: detected frameworks, primary framework and project type."""
        evidence = list(evidence)
        results = self.detect(evidence, config)
        return ProjectAnalysis(
            detected_frameworks=results,
            primary_framework=results[0] if results else None,
            project_type=_project_type(results, evidence),
            confidence=self.overall_confidence(results),
        )


def _extract_version(items: Iterable[Evidence]) -> Optional[str]:
    for item in items:
        if item.evidence_type is not EvidenceType.DEPENDENCY:
            continue
        name, sep, version = item.value.rpartition("@")
        if sep and name and version:
            return version
    return None


def _project_type(results: List[FrameworkDetectionResult], evidence: List[Evidence]) -> str:
    names = {result.framework for result in results}
    frontend = bool(names & FRONTEND_FRAMEWORKS)
    backend = bool(names & BACKEND_FRAMEWORKS)
    if frontend and backend:
        return "fullstack"
    if frontend:
        return "frontend"
    if backend:
        return "backend"
    for item in evidence:
        if item.evidence_type is EvidenceType.FILE and item.source.startswith("lib/"):
            return "library"
    return "unknown"
