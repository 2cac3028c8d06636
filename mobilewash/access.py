# mobilewash/access.py
"""
Request gating: bot user-agent blocking and a pluggable per-client rate limiter.

Env vars:
- RATE_LIMIT_ENABLED (default: false)
- RATE_LIMIT_PER_MINUTE (default: 60)
- REDIS_URL - optional, enables Redis-based distributed limiter
"""

import os
import time
import threading
from typing import Optional, Tuple, Dict

import redis

from mobilewash import monitoring

RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "false").lower() in ("1", "true", "yes")
RATE_LIMIT_PER_MINUTE = int(os.getenv("RATE_LIMIT_PER_MINUTE", "60"))
REDIS_URL = os.getenv("REDIS_URL", "")

BLOCKED_USER_AGENTS = ["openrouter", "bot", "crawler", "spider", "curl", "wget", "python", "scrapy"]


def is_blocked_user_agent(user_agent: Optional[str]) -> bool:
    ua = (user_agent or "").lower()
    return any(blocked in ua for blocked in BLOCKED_USER_AGENTS)


class InMemoryFixedWindowLimiter:
    """Thread-safe in-memory fixed-window rate limiter (per-process)."""

    def __init__(self, limit_per_minute: int = 60, clock=time.time):
        self.limit = limit_per_minute
        self._clock = clock
        self._store: Dict[str, Tuple[int, int]] = {}  # client -> (window_minute, count)
        self._lock = threading.Lock()

    def allow_request(self, client_key: str) -> Tuple[bool, Optional[int]]:
        window = int(self._clock()) // 60
        with self._lock:
            wstart, count = self._store.get(client_key, (window, 0))
            if wstart != window:
                count = 0
            if count >= self.limit:
                return False, 0
            self._store[client_key] = (window, count + 1)
            return True, self.limit - (count + 1)

    def reset(self):
        """Reset all state (useful for tests)."""
        with self._lock:
            self._store.clear()


class RedisFixedWindowLimiter:
    """Redis fixed-window counter using INCR + EXPIRE."""

    def __init__(self, redis_url: str, limit_per_minute: int = 60):
        self.limit = limit_per_minute
        self._client = redis.from_url(redis_url, decode_responses=True)

    def allow_request(self, client_key: str) -> Tuple[bool, Optional[int]]:
        window = int(time.time()) // 60
        key = f"rate:{client_key}:{window}"
        try:
            count = int(self._client.incr(key))
            if count == 1:
                self._client.expire(key, 120)
        except redis.RedisError as e:
            # Fail open on Redis errors
            monitoring.logger.warning("Rate limiter backend unavailable", extra={"error": str(e)})
            return True, None
        if count > self.limit:
            return False, 0
        return True, self.limit - count

    def reset(self):
        pass


def _build_limiter():
    if REDIS_URL:
        try:
            return RedisFixedWindowLimiter(REDIS_URL, RATE_LIMIT_PER_MINUTE)
        except (redis.RedisError, ValueError) as e:
            monitoring.logger.warning("Falling back to in-memory rate limiter", extra={"error": str(e)})
    return InMemoryFixedWindowLimiter(RATE_LIMIT_PER_MINUTE)


_rate_limiter = _build_limiter()


def check_rate_limit(client_key: str) -> Tuple[bool, Optional[int]]:
    """Check and consume quota. Returns (allowed, remaining)."""
    if not RATE_LIMIT_ENABLED:
        return True, None
    return _rate_limiter.allow_request(client_key or "anonymous")


def get_limiter():
    """Return the current limiter instance (for testing)."""
    return _rate_limiter
