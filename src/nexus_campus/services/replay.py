"""Replay cache for signed internal requests.

A cache entry maps a signature to the epoch second after which it may be
forgotten. Entries only need to outlive the signature validity window, so
the default store is process-local memory; Redis can be swapped in when the
verifier runs in several processes.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from threading import Lock
from typing import Any, Protocol

import redis

from nexus_campus.core.settings import settings

logger = logging.getLogger(__name__)

REPLAY_KEY_PREFIX = "nexus:replay:"


class ReplayCache(Protocol):
    """Storage for signatures that have already been accepted."""

    def purge(self, now: int) -> None:
        """Drop entries whose expiry is at or before ``now``."""

    def contains(self, signature: str, now: int) -> bool:
        """Return True if ``signature`` is recorded with an expiry after ``now``."""

    def remember(self, signature: str, expires_at: int, now: int) -> bool:
        """Record ``signature`` until ``expires_at``.

        Returns False if an unexpired entry already existed, meaning a
        concurrent verification accepted the same signature first.
        """


class InMemoryReplayCache:
    """Thread-safe dictionary-backed replay cache."""

    def __init__(self) -> None:
        self._entries: dict[str, int] = {}
        self._lock = Lock()

    def purge(self, now: int) -> None:
        with self._lock:
            expired = [sig for sig, expiry in self._entries.items() if expiry <= now]
            for sig in expired:
                del self._entries[sig]

    def contains(self, signature: str, now: int) -> bool:
        with self._lock:
            expiry = self._entries.get(signature)
            return expiry is not None and expiry > now

    def remember(self, signature: str, expires_at: int, now: int) -> bool:
        with self._lock:
            expiry = self._entries.get(signature)
            if expiry is not None and expiry > now:
                return False
            self._entries[signature] = expires_at
            return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class RedisReplayCache:
    """Replay cache shared across processes through Redis key expiry."""

    def __init__(self, client: Any, prefix: str = REPLAY_KEY_PREFIX) -> None:
        self._redis = client
        self._prefix = prefix

    def _key(self, signature: str) -> str:
        return f"{self._prefix}{signature}"

    def purge(self, now: int) -> None:
        # Redis expires keys on its own.
        return None

    def contains(self, signature: str, now: int) -> bool:
        return bool(self._redis.exists(self._key(signature)))

    def remember(self, signature: str, expires_at: int, now: int) -> bool:
        return bool(self._redis.set(self._key(signature), "1", nx=True, exat=expires_at))


@lru_cache(maxsize=1)
def get_replay_cache() -> ReplayCache:
    """Return the process-wide replay cache selected by settings."""
    backend = settings.replay_backend.lower()
    if backend == "redis":
        logger.info("Using Redis replay cache at %s", settings.redis_url)
        return RedisReplayCache(redis.from_url(settings.redis_url))
    if backend != "memory":
        logger.warning("Unknown REPLAY_BACKEND %r; falling back to in-memory cache", backend)
    return InMemoryReplayCache()
