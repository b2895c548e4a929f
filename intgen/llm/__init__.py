"""LLM runner and AI enhancement backend."""

from .enhancer import EnhancementOptions, EnhancementOutcome, Enhancer, LLMEnhancer
from .runner import LLMRequest, LLMRunner

__all__ = [
    "EnhancementOptions",
    "EnhancementOutcome",
    "Enhancer",
    "LLMEnhancer",
    "LLMRequest",
    "LLMRunner",
]
