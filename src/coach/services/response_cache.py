"""Per-user response cache for repeated chat messages."""
import hashlib
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from coach.core.config import settings
from coach.core.logging import logger


@dataclass(frozen=True)
class CacheEntry:
    """A cached model reply."""
    response: str
    stored_at: float


def cache_key(message: str, words: Optional[int] = None) -> str:
    """
    Key a message by its first few lower-cased words.

    Messages that only differ after the first ``words`` words share a key.
    That collision is accepted on purpose: near-duplicate questions reuse
    the earlier answer.
    """
    words = words if words is not None else settings.cache.key_words
    normalized = ":".join(message.lower().strip().split()[:words])
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()[:16]


class ResponseCache:
    """Thread-safe TTL cache of model replies keyed by (user_id, message)."""

    def __init__(
        self,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.cache_ttl_seconds
        self._clock = clock
        self._entries: Dict[Tuple[str, str], CacheEntry] = {}
        self._lock = threading.Lock()

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.stored_at >= self.ttl_seconds

    def get(self, user_id: str, message: str) -> Optional[str]:
        """Return the cached reply, dropping it if it has expired."""
        key = (user_id, cache_key(message))
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._is_expired(entry, now):
                del self._entries[key]
                return None
        logger.info(f"[Cache] HIT for user {user_id}")
        return entry.response

    def set(self, user_id: str, message: str, response: str) -> None:
        """Store a reply. Last writer wins for the same key."""
        key = (user_id, cache_key(message))
        entry = CacheEntry(response=response, stored_at=self._clock())
        with self._lock:
            self._entries[key] = entry

    def clear_expired(self) -> int:
        """Remove expired entries and return how many were dropped."""
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if self._is_expired(entry, now)]
            for key in expired:
                del self._entries[key]
        logger.info(f"[Cache] Cleanup: {len(expired)} expired entries removed")
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


# Process-wide instance
response_cache = ResponseCache()
