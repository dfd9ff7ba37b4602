"""In-memory LRU cache of analysis results, keyed by normalized username."""

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from ..domain.models import Analysis, normalize_username
from ..foundation.config import CacheConfig
from ..foundation.logging import get_logger, LogContext


def cache_key(username: str) -> str:
    """``"  u/Alice "`` and ``"alice"`` share one entry."""
    return normalize_username(username).lower()


@dataclass
class CacheEntry:
    """One cached analysis with its insertion time."""
    key: str
    analysis: Analysis
    added_at: float

    def is_expired(self, ttl_seconds: Optional[float], now: float) -> bool:
        if ttl_seconds is None:
            return False
        return (now - self.added_at) > ttl_seconds


class ResultCache:
    """Bounded, thread-safe store of the latest analysis per user.

    Least recently used entries are evicted past ``max_entries``. With
    ``ttl_seconds`` set, entries older than that read as misses. Writes are
    last-writer-wins.
    """

    def __init__(
        self,
        max_entries: int = 256,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.time
    ):
        if max_entries <= 0:
            raise ValueError(f"max_entries must be positive, got {max_entries}")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.RLock()
        self.hits = 0
        self.misses = 0
        self.evictions = 0
        self.logger = get_logger(__name__, LogContext(component="ResultCache"))

    @classmethod
    def from_config(cls, config: CacheConfig) -> "ResultCache":
        return cls(max_entries=config.max_entries, ttl_seconds=config.ttl_seconds)

    def get(self, username: str) -> Optional[Analysis]:
        key = cache_key(username)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            if entry.is_expired(self.ttl_seconds, self._clock()):
                del self._entries[key]
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            return entry.analysis

    def put(self, username: str, analysis: Analysis) -> None:
        key = cache_key(username)
        with self._lock:
            self._entries[key] = CacheEntry(key=key, analysis=analysis, added_at=self._clock())
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                self.evictions += 1
                self.logger.debug("Evicted cached analysis", key=evicted)

    def clear(self, username: str) -> bool:
        """Drop one user's entry; False when there was none."""
        with self._lock:
            return self._entries.pop(cache_key(username), None) is not None

    def clear_all(self) -> int:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            return count

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "entry_count": len(self._entries),
                "max_entries": self.max_entries,
                "ttl_seconds": self.ttl_seconds,
                "hits": self.hits,
                "misses": self.misses,
                "evictions": self.evictions,
            }

    def get_debug_info(self) -> List[Dict[str, Any]]:
        """Per-entry summary, most recently used last."""
        now = self._clock()
        with self._lock:
            return [
                {
                    "key": entry.key,
                    "id": entry.analysis.id,
                    "status": entry.analysis.status.value,
                    "analysis_date": entry.analysis.analysis_date.isoformat(),
                    "age_seconds": round(now - entry.added_at, 3),
                    "expired": entry.is_expired(self.ttl_seconds, now),
                }
                for entry in self._entries.values()
            ]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, username: str) -> bool:
        # Membership does not count as a hit or miss
        with self._lock:
            entry = self._entries.get(cache_key(username))
            return entry is not None and not entry.is_expired(self.ttl_seconds, self._clock())
