"""Framework detection from project evidence."""

from .detector import BACKEND_FRAMEWORKS, FRONTEND_FRAMEWORKS, FrameworkDetector
from .rules import BUILTIN_RULES, DetectionRule

__all__ = [
    "BACKEND_FRAMEWORKS",
    "BUILTIN_RULES",
    "DetectionRule",
    "FRONTEND_FRAMEWORKS",
    "FrameworkDetector",
]
