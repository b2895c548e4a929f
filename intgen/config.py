"""Configuration loading for intgen (.intgen.yml)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml

from .errors import ConfigError

CONFIG_FILENAME = ".intgen.yml"


@dataclass
class DetectionConfig:
    """Thresholds applied when ranking framework candidates."""

    min_confidence: float = 0.3
    max_confidence: float = 1.0
    max_results: int = 10
    include_evidence: bool = True


@dataclass
class ScoringConfig:
    """Weights used by suggestion matching and multi-framework confidence."""

    substring_weight: float = 0.4
    exact_weight: float = 0.6
    corroboration_bonus: float = 0.05
    corroboration_cap: int = 3


@dataclass
class CacheConfig:
    ttl_seconds: float = 24 * 60 * 60


@dataclass
class SessionConfig:
    retention_seconds: float = 300.0


@dataclass
class LLMConfig:
    """LLM runtime settings used by the enhancement backend."""

    model: Optional[str] = None
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    request_timeout: Optional[float] = None


@dataclass
class IntgenConfig:
    """Represents the settings defined in .intgen.yml."""

    root: Path
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    sessions: SessionConfig = field(default_factory=SessionConfig)
    catalog_path: Optional[Path] = None
    llm: Optional[LLMConfig] = None
    exclude_paths: List[str] = field(default_factory=list)


def load_config(
    config_path: Path,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> IntgenConfig:
    """Load configuration from disk and apply environment overrides."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()
    env = os.environ if environ is None else environ

    data: Dict[str, Any] = {}
    if config_file.exists():
        data = _read_config(config_file)

    detection = DetectionConfig()
    detection_data = _as_dict(data.get("detection"))
    if detection_data:
        detection = DetectionConfig(
            min_confidence=_pick(_as_float(detection_data.get("min_confidence")), detection.min_confidence),
            max_confidence=_pick(_as_float(detection_data.get("max_confidence")), detection.max_confidence),
            max_results=_pick(_as_int(detection_data.get("max_results")), detection.max_results),
            include_evidence=_pick(_as_bool(detection_data.get("include_evidence")), detection.include_evidence),
        )
        if detection.min_confidence > detection.max_confidence:
            raise ConfigError("detection.min_confidence must not exceed detection.max_confidence")

    scoring = ScoringConfig()
    scoring_data = _as_dict(data.get("scoring"))
    if scoring_data:
        scoring = ScoringConfig(
            substring_weight=_pick(_as_float(scoring_data.get("substring_weight")), scoring.substring_weight),
            exact_weight=_pick(_as_float(scoring_data.get("exact_weight")), scoring.exact_weight),
            corroboration_bonus=_pick(
                _as_float(scoring_data.get("corroboration_bonus")), scoring.corroboration_bonus
            ),
            corroboration_cap=_pick(_as_int(scoring_data.get("corroboration_cap")), scoring.corroboration_cap),
        )

    cache = CacheConfig()
    cache_data = _as_dict(data.get("cache"))
    ttl = _as_float(env.get("INTGEN_CACHE_TTL"))
    if ttl is None:
        ttl = _as_float(cache_data.get("ttl_seconds"))
    if ttl is not None:
        if ttl <= 0:
            raise ConfigError("cache.ttl_seconds must be positive")
        cache.ttl_seconds = ttl

    sessions = SessionConfig()
    sessions_data = _as_dict(data.get("sessions"))
    retention = _as_float(sessions_data.get("retention_seconds"))
    if retention is not None:
        sessions.retention_seconds = retention

    catalog_data = _as_dict(data.get("catalog"))
    catalog_str = _as_str(catalog_data.get("path")) if catalog_data else None
    catalog_path = (root / catalog_str).resolve() if catalog_str else None

    llm_data = _as_dict(data.get("llm"))
    llm: Optional[LLMConfig] = LLMConfig(
        model=_as_str(env.get("INTGEN_LLM_MODEL")) or _as_str(llm_data.get("model")),
        base_url=_as_str(env.get("INTGEN_LLM_BASE_URL")) or _as_str(llm_data.get("base_url")),
        api_key=_as_str(llm_data.get("api_key")),
        temperature=_as_float(llm_data.get("temperature")),
        max_tokens=_as_int(llm_data.get("max_tokens")),
        request_timeout=_as_float(llm_data.get("request_timeout")),
    )
    if not any(
        (
            llm.model,
            llm.base_url,
            llm.api_key,
            llm.temperature,
            llm.max_tokens,
            llm.request_timeout,
        )
    ):
        llm = None

    return IntgenConfig(
        root=root,
        detection=detection,
        scoring=scoring,
        cache=cache,
        sessions=sessions,
        catalog_path=catalog_path,
        llm=llm,
        exclude_paths=_as_str_list(data.get("exclude_paths")),
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.suffix not in {".yml", ".yaml"}:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"{path.name} must contain a mapping at the root")
    return loaded


def _pick(value: Any, default: Any) -> Any:
    return default if value is None else value


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value or None
    return str(value) if isinstance(value, (int, float, bool)) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []
