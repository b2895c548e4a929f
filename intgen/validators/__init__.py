"""Compatibility validation for integration requests."""

from .compatibility import FRAMEWORK_NOT_SUPPORTED, CompatibilityValidator

__all__ = ["CompatibilityValidator", "FRAMEWORK_NOT_SUPPORTED"]
