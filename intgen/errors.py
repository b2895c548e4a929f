"""Error taxonomy and the explicit fallback result type."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class IntgenError(RuntimeError):
    """Base class for errors raised by intgen components."""


class ConfigError(IntgenError):
    """Raised when a configuration or catalog file cannot be parsed."""


class NotFoundError(IntgenError, LookupError):
    """Raised for unknown provider, template, session or project identifiers."""


class InvalidRequestError(IntgenError, ValueError):
    """Raised when a generation request is malformed."""


class UnsupportedCombinationError(IntgenError):
    """Raised when a provider/framework pairing is absent from the compatibility model."""

    def __init__(self, provider_id: str, framework: str) -> None:
        super().__init__(
            f"Framework '{framework}' is not supported for provider '{provider_id}'"
        )
        self.provider_id = provider_id
        self.framework = framework


class RenderError(IntgenError):
    """Raised by content renderers when a template cannot be rendered."""


class EnhancementError(IntgenError):
    """Raised by enhancement backends; sessions degrade to unenhanced output."""


class GenerationFailure(IntgenError):
    """A generation step failed irrecoverably."""

    def __init__(
        self,
        step: str,
        message: str,
        *,
        last_successful_step: Optional[str] = None,
    ) -> None:
        detail = f"{step} failed: {message}"
        if last_successful_step:
            detail += f" (last successful step: {last_successful_step})"
        super().__init__(detail)
        self.step = step
        self.reason = message
        self.last_successful_step = last_successful_step


class ErrorKind(str, Enum):
    """Classifies why an operation fell back instead of producing its primary value."""

    NOT_FOUND = "not_found"
    UNSUPPORTED_COMBINATION = "unsupported_combination"
    SCAN_FAILURE = "scan_failure"
    GENERATION_FAILURE = "generation_failure"
    ENHANCEMENT_FAILURE = "enhancement_failure"


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of an operation with a documented fallback.

    ``value`` always holds something usable: the primary value on success or the
    fallback value otherwise. ``fallback`` names the fallback that fired so callers
    and tests can tell them apart.
    """

    value: T
    error: Optional[ErrorKind] = None
    detail: Optional[str] = None
    fallback: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def degraded(
        cls, value: T, error: ErrorKind, *, fallback: str, detail: str | None = None
    ) -> "Result[T]":
        return cls(value=value, error=error, detail=detail, fallback=fallback)


__all__ = [
    "ConfigError",
    "EnhancementError",
    "ErrorKind",
    "GenerationFailure",
    "IntgenError",
    "InvalidRequestError",
    "NotFoundError",
    "RenderError",
    "Result",
    "UnsupportedCombinationError",
]
