"""
Result cache for completed scores.

Entries are keyed `review_cache_<submissionId>` and hold
`{"data": <score>, "timestamp": <epoch ms>, "ttl_ms": <ms>}`. Expiry is checked
at read time and expired entries are evicted lazily; nothing sweeps in the
background. The cache is best-effort: a miss must fall back to the stored
Score, never to re-running the pipeline.
"""

import copy
import logging
import os
import threading
import time
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

KEY_PREFIX = "review_cache_"
DEFAULT_TTL_MINUTES = float(os.getenv("REVIEW_CACHE_TTL_MINUTES", "30"))


def _now_ms() -> int:
    return int(time.time() * 1000)


def cache_key(submission_id: str) -> str:
    return f"{KEY_PREFIX}{submission_id}"


class ReviewCache:
    def __init__(self, ttl_minutes: float = DEFAULT_TTL_MINUTES, clock: Callable[[], int] = _now_ms) -> None:
        if ttl_minutes <= 0:
            raise ValueError("ttl_minutes must be positive")
        self.ttl_minutes = ttl_minutes
        self._clock = clock
        self._entries: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def get(self, submission_id: str) -> Optional[Dict[str, Any]]:
        """Return a copy of the cached score dict, or None when absent or expired."""
        key = cache_key(submission_id)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug("Cache miss for %s", key)
                return None
            age_ms = self._clock() - entry["timestamp"]
            if age_ms > entry["ttl_ms"]:
                del self._entries[key]
                logger.debug("Cache entry %s expired after %dms", key, age_ms)
                return None
            return copy.deepcopy(entry["data"])

    def put(self, submission_id: str, score: Dict[str, Any], ttl_minutes: Optional[float] = None) -> None:
        ttl = self.ttl_minutes if ttl_minutes is None else ttl_minutes
        if ttl <= 0:
            raise ValueError("ttl_minutes must be positive")
        with self._lock:
            self._entries[cache_key(submission_id)] = {
                "data": copy.deepcopy(score),
                "timestamp": self._clock(),
                "ttl_ms": int(ttl * 60 * 1000),
            }

    def invalidate(self, submission_id: str) -> None:
        with self._lock:
            self._entries.pop(cache_key(submission_id), None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
