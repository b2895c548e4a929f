"""Cache stores."""

from .result_cache import ResultCache, request_fingerprint, text_fingerprint

__all__ = ["ResultCache", "request_fingerprint", "text_fingerprint"]
