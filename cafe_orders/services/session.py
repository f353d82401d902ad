"""
Checkout Session Cache for Cafe Orders
======================================

Conversational checkout sessions live only in memory. A session that is
abandoned mid-checkout simply expires, and its partial selection goes with
it: nothing about an unconfirmed checkout is ever persisted.

Cache Eviction Strategy:
------------------------
1. **TTL-based**: Sessions not accessed within CHECKOUT_SESSION_TTL_SECONDS
   are eligible for eviction. Checked probabilistically (~1% of reads) to
   avoid overhead.

2. **LRU-based**: When the cache reaches CHECKOUT_SESSION_MAX_CACHE_SIZE, the
   oldest 10% of sessions (by last access time) are evicted to make room.

Thread Safety:
--------------
All cache operations are protected by a threading.Lock, because FastAPI
serves sync endpoints from a thread pool.

Usage:
------
    cache = CheckoutSessionCache()
    cache.save(session)
    session = cache.get(session_id)
    if session is None:
        raise HTTPException(404, "Session not found")
"""

import logging
import random
import threading
import time
from typing import Any, Callable, Dict, Optional

from .. import config
from ..checkout.models import CheckoutSession


logger = logging.getLogger(__name__)


class CheckoutSessionCache:
    """
    In-memory TTL/LRU cache of CheckoutSessions keyed by session id.

    Args:
        ttl_seconds: Idle time after which a session expires
        max_size: Maximum number of cached sessions
        time_fn: Clock in seconds, injectable for tests
    """

    def __init__(
        self,
        ttl_seconds: Optional[int] = None,
        max_size: Optional[int] = None,
        time_fn: Callable[[], float] = time.time,
    ):
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else config.CHECKOUT_SESSION_TTL_SECONDS
        self.max_size = max_size if max_size is not None else config.CHECKOUT_SESSION_MAX_CACHE_SIZE
        self._time = time_fn
        # {session_id: {"data": CheckoutSession, "last_access": timestamp}}
        self._cache: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    # =========================================================================
    # Cache Maintenance
    # =========================================================================

    def cleanup_expired(self) -> int:
        """
        Remove sessions not accessed within the TTL.

        Returns:
            int: Number of sessions removed
        """
        now = self._time()
        with self._lock:
            expired = [
                sid for sid, entry in self._cache.items()
                if now - entry["last_access"] > self.ttl_seconds
            ]
            for sid in expired:
                del self._cache[sid]

        if expired:
            logger.debug("Cleaned up %d expired checkout sessions", len(expired))
        return len(expired)

    def _evict_oldest(self, count: int) -> None:
        """Evict the least recently used sessions. Caller holds the lock."""
        if len(self._cache) < self.max_size:
            return
        sorted_sessions = sorted(self._cache.items(), key=lambda x: x[1]["last_access"])
        for sid, _ in sorted_sessions[:max(1, count)]:
            del self._cache[sid]
        logger.debug("Evicted %d oldest checkout sessions", max(1, count))

    # =========================================================================
    # Public API
    # =========================================================================

    def get(self, session_id: str) -> Optional[CheckoutSession]:
        """
        Return a live session, or None if unknown or expired.

        Side Effects:
            - Updates last_access on a hit
            - May trigger probabilistic cleanup (~1% of calls)
        """
        if random.randint(1, 100) == 1:
            self.cleanup_expired()

        now = self._time()
        with self._lock:
            entry = self._cache.get(session_id)
            if entry is None:
                return None
            if now - entry["last_access"] > self.ttl_seconds:
                del self._cache[session_id]
                logger.debug("Checkout session %s expired", session_id)
                return None
            entry["last_access"] = now
            return entry["data"]

    def save(self, session: CheckoutSession) -> None:
        with self._lock:
            if len(self._cache) >= self.max_size and session.session_id not in self._cache:
                self._evict_oldest(self.max_size // 10)
            self._cache[session.session_id] = {
                "data": session,
                "last_access": self._time(),
            }

    def delete(self, session_id: str) -> bool:
        with self._lock:
            return self._cache.pop(session_id, None) is not None

    def clear(self) -> int:
        """
        Clear all sessions. Useful for testing and maintenance.

        Returns:
            int: Number of sessions that were cached before clearing
        """
        with self._lock:
            count = len(self._cache)
            self._cache.clear()
        logger.info("Cleared %d checkout sessions from cache", count)
        return count

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            access_times = [entry["last_access"] for entry in self._cache.values()]
            return {
                "size": len(self._cache),
                "max_size": self.max_size,
                "ttl_seconds": self.ttl_seconds,
                "oldest_access": min(access_times) if access_times else None,
                "newest_access": max(access_times) if access_times else None,
            }
