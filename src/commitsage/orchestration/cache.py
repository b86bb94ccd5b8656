"""
In-process cache of generated commit messages.

Entries are keyed by a SHA-256 digest of the diff content, the model
name and the custom prompt. The cache holds at most ``max_entries``
messages; the least recently used one is evicted first and entries
expire after ``ttl`` seconds.
"""

from __future__ import annotations

import hashlib
import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Iterable, Optional

from commitsage.diff.models import ChangeRecord
from commitsage.llm.models import GenerationResponse


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


DEFAULT_MAX_ENTRIES = 100
DEFAULT_TTL = 60 * 60.0


@dataclass(frozen=True)
class CacheEntry:
    """A cached message and the monotonic time at which it expires."""

    response: GenerationResponse
    expires_at: float

    def is_expired(self, now: Optional[float] = None) -> bool:
        return (time.monotonic() if now is None else now) >= self.expires_at


def make_cache_key(records: Iterable[ChangeRecord], model: str, custom_context: str = "") -> str:
    """Digest identifying a diff sent to ``model`` with ``custom_context``."""
    digest = hashlib.sha256()
    for record in records:
        digest.update(record.content.encode("utf-8"))
    digest.update(f"|{model}|{custom_context}".encode("utf-8"))
    return digest.hexdigest()


class ResponseCache:
    """Thread-safe LRU cache of :class:`GenerationResponse` with a TTL."""

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES, ttl: float = DEFAULT_TTL) -> None:
        if max_entries <= 0:
            raise ValueError("'max_entries' must be a positive integer")
        if ttl <= 0:
            raise ValueError("'ttl' must be positive")
        self.max_entries = max_entries
        self.ttl = ttl
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[GenerationResponse]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired():
                del self._entries[key]
                logger.debug("Cache entry expired: %s", key[:12])
                return None
            self._entries.move_to_end(key)
            return entry.response

    def set(self, key: str, response: GenerationResponse, ttl: Optional[float] = None) -> None:
        expires_at = time.monotonic() + (ttl if ttl is not None and ttl > 0 else self.ttl)
        with self._lock:
            if key in self._entries:
                self._entries.move_to_end(key)
            elif len(self._entries) >= self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted least recently used cache entry: %s", evicted[:12])
            self._entries[key] = CacheEntry(response=response, expires_at=expires_at)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def clean_expired(self) -> int:
        """Drop expired entries and return how many were removed."""
        now = time.monotonic()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
