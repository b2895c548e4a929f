"""Scoring helpers shared by the detector and the suggestion engine."""

from __future__ import annotations

import math
import re
from typing import Iterable, Sequence

from ..config import ScoringConfig

_MINUTES_PATTERN = re.compile(r"(\d+(?:\.\d+)?)")


def clamp(value: float, lower: float = 0.0, upper: float = 1.0) -> float:
    return min(max(value, lower), upper)


def evidence_confidence(weights: Iterable[float]) -> float:
    """Sum evidence weights into a confidence in [0, 1]. Non-finite weights count as zero."""
    return round(clamp(sum(weight for weight in weights if math.isfinite(weight))), 6)


def overall_confidence(confidences: Sequence[float], scoring: ScoringConfig | None = None) -> float:
    """Project confidence: the top score plus a small bonus per corroborating framework."""
    if not confidences:
        return 0.0
    scoring = scoring or ScoringConfig()
    extra = min(len(confidences) - 1, scoring.corroboration_cap)
    return round(clamp(max(confidences) + scoring.corroboration_bonus * extra), 6)


def env_match_score(exact: int, substring: int, scoring: ScoringConfig | None = None) -> float:
    """Confidence of a template given counts of exact and substring env var matches."""
    scoring = scoring or ScoringConfig()
    raw = exact * scoring.exact_weight + substring * scoring.substring_weight
    return round(clamp(raw), 6)


def setup_minutes(estimate: str) -> float:
    """Parse strings like ``"5 minutes"``, ``"1 hour"`` or ``"5-15 minutes"``.

    Ranges use their lower bound; unparseable values sort last.
    """
    match = _MINUTES_PATTERN.search(estimate or "")
    if not match:
        return float("inf")
    value = float(match.group(1))
    if "hour" in estimate.lower():
        value *= 60
    return value
