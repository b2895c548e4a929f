"""In-memory TTL cache for generation results."""

from __future__ import annotations

import hashlib
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Iterable, Optional, TypeVar

from ..logging import get_logger
from ..models import CacheStats

T = TypeVar("T")

DEFAULT_TTL_SECONDS = 24 * 60 * 60


@dataclass
class CacheEntry(Generic[T]):
    value: T
    created_at: float
    expires_at: float


class ResultCache(Generic[T]):
    """Stores values keyed by request fingerprint with lazy expiry on access."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry[T]] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self.logger = get_logger("stores.result_cache")

    def get(self, key: str) -> Optional[T]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            if self._clock() >= entry.expires_at:
                del self._entries[key]
                self._evictions += 1
                self._misses += 1
                self.logger.debug("Cache entry %s expired", key[:12])
                return None
            self._hits += 1
            return entry.value

    def put(self, key: str, value: T) -> None:
        if value is None:
            raise ValueError("ResultCache does not store None")
        now = self._clock()
        with self._lock:
            self._entries[key] = CacheEntry(value=value, created_at=now, expires_at=now + self.ttl_seconds)

    def clear(self) -> int:
        """Drop every entry; returns how many were removed."""
        with self._lock:
            removed = len(self._entries)
            self._entries.clear()
            self._evictions += removed
        self.logger.info("Cleared %d cached result(s)", removed)
        return removed

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                hit_count=self._hits,
                miss_count=self._misses,
                eviction_count=self._evictions,
                size=len(self._entries),
            )


def request_fingerprint(
    *,
    provider_id: str,
    template_id: Optional[str],
    framework: str,
    features: Iterable[str],
    env_var_names: Iterable[str],
    use_llm_enhancement: bool,
) -> str:
    """Stable key for a normalized generation request.

    Feature and env var order or duplicates do not change the key.
    """
    env_digest = hashlib.sha256()
    for name in sorted(set(env_var_names)):
        env_digest.update(name.encode("utf-8"))
        env_digest.update(b"\0")

    digest = hashlib.sha256()
    for part in (
        provider_id,
        template_id or "",
        framework,
        ",".join(sorted(set(features))),
        "llm" if use_llm_enhancement else "plain",
        env_digest.hexdigest(),
    ):
        digest.update(part.encode("utf-8"))
        digest.update(b"\0")
    return digest.hexdigest()


def text_fingerprint(*parts: str) -> str:
    digest = hashlib.sha256()
    for part in parts:
        digest.update(part.encode("utf-8"))
        digest.update(b"\0")
    return digest.hexdigest()
