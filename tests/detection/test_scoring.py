"""Tests for intgen.detection.scoring."""

from __future__ import annotations

import math

from intgen.config import ScoringConfig
from intgen.detection.scoring import (
    env_match_score,
    evidence_confidence,
    overall_confidence,
    setup_minutes,
)


def test_evidence_confidence_sums_and_clamps() -> None:
    assert evidence_confidence([0.2, 0.3]) == 0.5
    assert evidence_confidence([0.9, 0.9]) == 1.0
    assert evidence_confidence([]) == 0.0
    assert evidence_confidence([float("nan"), 0.4]) == 0.4
    assert evidence_confidence([float("inf"), float("-inf")]) == 0.0


def test_overall_confidence_caps_corroboration_bonus() -> None:
    assert overall_confidence([]) == 0.0
    assert overall_confidence([0.5]) == 0.5
    assert overall_confidence([0.5, 0.4, 0.4]) == 0.6
    # Only three corroborating frameworks count.
    assert overall_confidence([0.5, 0.1, 0.1, 0.1, 0.1, 0.1]) == 0.65


def test_env_match_score_uses_configured_weights() -> None:
    assert env_match_score(1, 0) == 0.6
    assert env_match_score(0, 1) == 0.4
    assert env_match_score(3, 2) == 1.0
    custom = ScoringConfig(exact_weight=0.3, substring_weight=0.1)
    assert env_match_score(1, 1, custom) == 0.4


def test_setup_minutes_parses_estimates() -> None:
    assert setup_minutes("5 minutes") == 5
    assert setup_minutes("5-15 minutes") == 5
    assert setup_minutes("1 hour") == 60
    assert math.isinf(setup_minutes("a while"))
