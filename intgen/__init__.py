"""Framework detection and integration generation for third-party API providers."""

from .config import IntgenConfig, load_config
from .engine import IntegrationEngine
from .errors import (
    ConfigError,
    GenerationFailure,
    IntgenError,
    InvalidRequestError,
    NotFoundError,
    Result,
)
from .models import (
    Evidence,
    EvidenceType,
    GenerationRequest,
    GenerationResult,
    GenerationSession,
    SessionStatus,
)

__all__ = [
    "ConfigError",
    "Evidence",
    "EvidenceType",
    "GenerationFailure",
    "GenerationRequest",
    "GenerationResult",
    "GenerationSession",
    "IntegrationEngine",
    "IntgenConfig",
    "IntgenError",
    "InvalidRequestError",
    "NotFoundError",
    "Result",
    "SessionStatus",
    "load_config",
]
