"""
api/limiter.py -- Fixed-window rate limiter for the login and register forms.

One RateLimiter instance is created in the lifespan and stored on
app.state.limiter. Login and register share it under a single "auth"
namespace keyed by client address, so both forms draw from one bucket per
client.

Counting is done by the `limits` package (the engine underneath slowapi)
with FixedWindowRateLimiter over a storage URI, "memory://" by default:
  1. No entry for key, or its window has expired -> start a new window with
     count=1 and allow.
  2. count > limit after the hit -> reject. Expiry is set only on the first
     hit of a window, so rejected attempts never extend it.
  3. Otherwise allow.
Exactly `limit` attempts are allowed per window; attempt limit+1 is rejected.

Handlers decide what a rejection looks like (a 200 page with a message), so
slowapi's decorator and 429 handler are not mounted.

Concurrency: FastAPI runs sync handlers in a thread pool. The hit and the
compare are serialized by a lock so two racing attempts can never both be
admitted as the limit-th one.

Scaling gap: with "memory://" state is per process. Multiple workers or
instances each keep their own counters, multiplying the effective limit.
Known limitation.
"""

from __future__ import annotations

import logging
import threading

from limits import RateLimitItemPerSecond
from limits.storage import storage_from_string
from limits.strategies import FixedWindowRateLimiter

logger = logging.getLogger("crudadmin.limiter")

UNKNOWN_CLIENT = "unknown"

_NAMESPACE = "auth"


class RateLimiter:
    """Fixed-window counters keyed by client identifier.

    Usage:
        limiter = RateLimiter()
        if limiter.is_limited(client_key(request), limit=5, window_seconds=60):
            ...reject...
        limiter.sweep()   # drop expired windows; the lifespan calls this every 60 s
    """

    def __init__(self, storage_uri: str = "memory://") -> None:
        self._storage = storage_from_string(storage_uri)
        self._strategy = FixedWindowRateLimiter(self._storage)
        # Storage keys seen since the last sweep or reset.
        self._keys: set[str] = set()
        self._lock = threading.Lock()

    def is_limited(self, key: str, limit: int, window_seconds: int) -> bool:
        """Record an attempt for key and return True if it must be rejected."""
        item = RateLimitItemPerSecond(limit, window_seconds)
        with self._lock:
            self._keys.add(item.key_for(_NAMESPACE, key))
            return not self._strategy.hit(item, _NAMESPACE, key)

    def sweep(self) -> int:
        """Remove expired windows. Returns the number of entries removed.

        Reading an expired key makes the storage drop it, so a zero count
        means the window is gone whether this pass or the storage's own
        expiry removed it.
        """
        with self._lock:
            expired = [key for key in self._keys if self._storage.get(key) == 0]
            self._keys.difference_update(expired)
        if expired:
            logger.debug("Swept %d expired rate-limit windows", len(expired))
        return len(expired)

    def reset(self) -> None:
        """Forget every window."""
        with self._lock:
            self._storage.reset()
            self._keys.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)


def client_key(forwarded_for: str | None) -> str:
    """Derive the rate-limit key from an X-Forwarded-For header value.

    Uses the first (client-most) address. Requests without the header all
    share the UNKNOWN_CLIENT bucket.
    """
    if not forwarded_for:
        return UNKNOWN_CLIENT
    first = forwarded_for.split(",")[0].strip()
    return first or UNKNOWN_CLIENT
