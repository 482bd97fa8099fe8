# ==================== UTILS/RATELIMIT.PY ====================
"""Fixed-window request counters keyed by ``"<operation>:<ip-or-user>"``.

The window key is ``floor(now / window)``. A counter starts at the first hit
inside a window and expires with it, so a rejected call never pushes the
reset time further out.

Two stores are available:

* ``RedisWindowStore`` shares counters between processes (``INCR`` plus
  ``PEXPIREAT`` in one pipeline).
* ``LocalWindowStore`` keeps counters in a dict behind a lock. Expired windows
  are dropped by ``evict_expired()``, which the store also runs on its own every
  ``sweep_interval`` seconds while it is being used.
"""
import logging
import math
import threading
import time
from dataclasses import dataclass

import redis
from django.conf import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitResult:
    success: bool
    limit: int
    remaining: int
    reset: int  # epoch milliseconds


def retry_after_seconds(result, now_ms=None):
    """Seconds a rejected caller should wait, for the ``Retry-After`` header"""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return max(0, math.ceil((result.reset - now_ms) / 1000))


def _window_bounds(now_ms, window_seconds):
    window_ms = window_seconds * 1000
    window_key = now_ms // window_ms
    return window_key, (window_key + 1) * window_ms


class LocalWindowStore:
    """In-process counters for single-instance and development deployments"""

    def __init__(self, sweep_interval=60, clock=time.time):
        self._counters = {}
        self._lock = threading.Lock()
        self._clock = clock
        self.sweep_interval = sweep_interval
        self._last_sweep = clock()

    def increment(self, key, expires_at_ms):
        with self._lock:
            self._maybe_sweep()
            count, _ = self._counters.get(key, (0, expires_at_ms))
            count += 1
            self._counters[key] = (count, expires_at_ms)
            return count

    def evict_expired(self, now_ms=None):
        """Drop every window whose expiry has passed. Returns the number removed."""
        if now_ms is None:
            now_ms = int(self._clock() * 1000)
        with self._lock:
            return self._evict_expired_locked(now_ms)

    def _evict_expired_locked(self, now_ms):
        # Caller holds self._lock
        expired = [key for key, (_, expires_at) in self._counters.items() if expires_at <= now_ms]
        for key in expired:
            del self._counters[key]
        return len(expired)

    def _maybe_sweep(self):
        now = self._clock()
        if now - self._last_sweep >= self.sweep_interval:
            removed = self._evict_expired_locked(int(now * 1000))
            self._last_sweep = now
            if removed:
                logger.debug(f"Evicted {removed} expired rate limit windows")

    def __len__(self):
        return len(self._counters)


class RedisWindowStore:
    """Counters shared by every app instance through Redis.

    When Redis cannot be reached the call is counted in ``fallback`` instead,
    so an outage degrades to per-process limits rather than failing requests.
    """

    def __init__(self, client, fallback=None):
        self.client = client
        self.fallback = fallback

    @classmethod
    def from_url(cls, url, fallback=None):
        return cls(redis.Redis.from_url(url, socket_timeout=1), fallback=fallback)

    def increment(self, key, expires_at_ms):
        try:
            pipe = self.client.pipeline()
            pipe.incr(key)
            pipe.pexpireat(key, expires_at_ms)
            count, _ = pipe.execute()
            return int(count)
        except redis.RedisError as e:
            if self.fallback is None:
                raise
            logger.warning(f"Redis rate limit store unavailable, counting locally: {str(e)}")
            return self.fallback.increment(key, expires_at_ms)


class RateLimiter:
    def __init__(self, store, clock=time.time, namespace='ratelimit'):
        self.store = store
        self.clock = clock
        self.namespace = namespace

    def hit(self, identifier, limit, window_seconds):
        """Count one call for ``identifier`` and decide whether it is admitted"""
        now_ms = int(self.clock() * 1000)
        window_key, reset_ms = _window_bounds(now_ms, window_seconds)
        key = f"{self.namespace}:{identifier}:{window_key}"

        count = self.store.increment(key, reset_ms)

        if count > limit:
            return RateLimitResult(success=False, limit=limit, remaining=0, reset=reset_ms)
        return RateLimitResult(success=True, limit=limit, remaining=limit - count, reset=reset_ms)


_limiter = None
_limiter_lock = threading.Lock()


def build_rate_limiter():
    """Create a limiter backed by Redis when configured, otherwise by process memory"""
    local_store = LocalWindowStore(sweep_interval=getattr(settings, 'RATE_LIMIT_SWEEP_SECONDS', 60))
    redis_url = getattr(settings, 'RATE_LIMIT_REDIS_URL', '')
    if redis_url:
        logger.info("Rate limiting with shared Redis counters")
        return RateLimiter(RedisWindowStore.from_url(redis_url, fallback=local_store))
    logger.info("Rate limiting with in-process counters")
    return RateLimiter(local_store)


def get_rate_limiter():
    global _limiter
    with _limiter_lock:
        if _limiter is None:
            _limiter = build_rate_limiter()
        return _limiter


def reset_rate_limiter():
    """Forget the process-wide limiter so the next call rebuilds it from settings"""
    global _limiter
    with _limiter_lock:
        _limiter = None
