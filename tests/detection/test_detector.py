"""Tests for intgen.detection.detector."""

from __future__ import annotations

from intgen.config import DetectionConfig
from intgen.detection import FrameworkDetector
from intgen.models import Evidence, EvidenceType


def _evidence(kind: EvidenceType, value: str, weight: float, framework: str) -> Evidence:
    return Evidence(kind, value, weight, source=value, framework=framework)


def test_detect_clamps_and_ranks_nextjs_above_react() -> None:
    evidence = [
        _evidence(EvidenceType.FILE, "package.json", 0.5, "nextjs"),
        _evidence(EvidenceType.DEPENDENCY, "next", 0.6, "nextjs"),
        _evidence(EvidenceType.DEPENDENCY, "react", 0.4, "react"),
    ]

    results = FrameworkDetector().detect(evidence)

    assert [result.framework for result in results] == ["nextjs", "react"]
    assert results[0].confidence == 1.0
    assert results[1].confidence == 0.4
    assert results[0].metadata == {"evidence_count": 2, "evidence_types": ["dependency", "file"]}


def test_detect_never_exceeds_one_for_huge_evidence_lists() -> None:
    evidence = [
        _evidence(EvidenceType.CONTENT, f"signal-{index}", 5.0, "express")
        for index in range(10_000)
    ]

    results = FrameworkDetector().detect(evidence)

    assert len(results) == 1
    assert 0.0 <= results[0].confidence <= 1.0
    assert results[0].confidence == 1.0


def test_evidence_weights_are_clamped_on_creation() -> None:
    assert Evidence(EvidenceType.FILE, "x", 3.5, "x").confidence_weight == 1.0
    assert Evidence(EvidenceType.FILE, "x", -1, "x").confidence_weight == 0.0
    assert Evidence("dependency", "x", 0.5, "x").evidence_type is EvidenceType.DEPENDENCY


def test_non_finite_weights_never_produce_a_score() -> None:
    assert Evidence(EvidenceType.FILE, "x", float("nan"), "x").confidence_weight == 0.0
    assert Evidence(EvidenceType.FILE, "x", float("inf"), "x").confidence_weight == 0.0

    results = FrameworkDetector(DetectionConfig(min_confidence=0.0)).detect(
        [
            _evidence(EvidenceType.FILE, "src/App.jsx", float("nan"), "react"),
            _evidence(EvidenceType.DEPENDENCY, "react@18.3.1", 0.8, "react"),
        ]
    )

    assert [(result.framework, result.confidence) for result in results] == [("react", 0.8)]


def test_detect_is_deterministic_with_tie_breaks() -> None:
    evidence = [
        _evidence(EvidenceType.DEPENDENCY, "vue", 0.5, "vue"),
        _evidence(EvidenceType.DEPENDENCY, "svelte", 0.5, "svelte"),
        _evidence(EvidenceType.FILE, "angular.json", 0.25, "angular"),
        _evidence(EvidenceType.FILE, "src/main.ts", 0.25, "angular"),
    ]
    detector = FrameworkDetector()

    first = detector.detect(evidence)
    second = detector.detect(list(reversed(evidence)))

    # Equal confidence: more evidence first, then alphabetical.
    assert [result.framework for result in first] == ["angular", "svelte", "vue"]
    assert [(r.framework, r.confidence) for r in first] == [
        (r.framework, r.confidence) for r in second
    ]


def test_detect_filters_by_threshold_and_limits_results() -> None:
    evidence = [
        _evidence(EvidenceType.DEPENDENCY, "next", 0.9, "nextjs"),
        _evidence(EvidenceType.DEPENDENCY, "react", 0.6, "react"),
        _evidence(EvidenceType.DEPENDENCY, "vue", 0.2, "vue"),
        _evidence(EvidenceType.DEPENDENCY, "orphan", 0.9, ""),
    ]
    config = DetectionConfig(min_confidence=0.3, max_results=1, include_evidence=False)

    results = FrameworkDetector(config).detect(evidence)

    assert [result.framework for result in results] == ["nextjs"]
    assert results[0].evidence == []


def test_detect_returns_empty_list_without_evidence() -> None:
    assert FrameworkDetector().detect([]) == []


def test_detect_extracts_version_from_dependency_evidence() -> None:
    evidence = [_evidence(EvidenceType.DEPENDENCY, "@nestjs/core@10.3.0", 0.9, "nestjs")]

    results = FrameworkDetector().detect(evidence)

    assert results[0].version == "10.3.0"


def test_analyze_reports_fullstack_and_corroboration_bonus() -> None:
    evidence = [
        _evidence(EvidenceType.DEPENDENCY, "react", 0.8, "react"),
        _evidence(EvidenceType.DEPENDENCY, "express", 0.9, "express"),
    ]

    analysis = FrameworkDetector().analyze(evidence)

    assert analysis.project_type == "fullstack"
    assert analysis.primary_framework is not None
    assert analysis.primary_framework.framework == "express"
    assert analysis.confidence == 0.95


def test_analyze_falls_back_to_library_or_unknown() -> None:
    library = [Evidence(EvidenceType.FILE, "lib/index.ts", 0.1, "lib/index.ts")]

    assert FrameworkDetector().analyze(library).project_type == "library"
    empty = FrameworkDetector().analyze([])
    assert empty.project_type == "unknown"
    assert empty.primary_framework is None
    assert empty.confidence == 0.0
