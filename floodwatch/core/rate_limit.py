"""
FloodWatch — In-process fixed-window rate limiting (per client IP).
"""

from __future__ import annotations

import time
from threading import Lock
from typing import Callable, Dict, List, Optional, Tuple

from fastapi import Request

from floodwatch.config import get_settings
from floodwatch.core.exceptions import RateLimitError


class FixedWindowRateLimiter:
    """Counts requests per key inside a fixed window and rejects the overflow."""

    def __init__(self, window_seconds: float = 60.0) -> None:
        self.window = window_seconds
        self._lock = Lock()
        self._state: Dict[str, Tuple[float, int]] = {}
        self._last_purge = 0.0

    def hit(self, key: str, limit: int, now: Optional[float] = None) -> None:
        """Record one request for ``key``; raise RateLimitError past ``limit``."""
        now = time.time() if now is None else now
        with self._lock:
            if now - self._last_purge >= self.window:
                self._purge(now)
            started, count = self._state.get(key, (now, 0))
            if now - started >= self.window:
                started, count = now, 0
            count += 1
            self._state[key] = (started, count)
            if count <= limit:
                return
            retry_after = max(1, int(self.window - (now - started)))
        raise RateLimitError(retry_after)

    def _purge(self, now: float) -> None:
        # Caller holds the lock.
        expired = [k for k, (started, _) in self._state.items() if now - started >= self.window]
        for key in expired:
            del self._state[key]
        self._last_purge = now

    def __len__(self) -> int:
        return len(self._state)

    def reset(self) -> None:
        with self._lock:
            self._state.clear()
            self._last_purge = 0.0


limiter = FixedWindowRateLimiter()


def _client_ip(request: Request, trusted_proxies: List[str]) -> str:
    """
    The connecting peer address. X-Forwarded-For is only honoured when the
    peer is a configured proxy; then the rightmost hop not added by a trusted
    proxy is the client.
    """
    peer = request.client.host if request.client else "unknown"
    trust_all = "*" in trusted_proxies
    if not (trust_all or peer in trusted_proxies):
        return peer

    forwarded = request.headers.get("x-forwarded-for", "")
    hops = [h.strip() for h in forwarded.split(",") if h.strip()]
    for hop in reversed(hops):
        if trust_all or hop not in trusted_proxies:
            return hop
    return hops[0] if hops else peer


def rate_limit(scope: str) -> Callable[[Request], None]:
    """Build a FastAPI dependency enforcing the configured limit for ``scope``."""

    def dependency(request: Request) -> None:
        settings = get_settings()
        per_minute = (
            settings.AUTH_RATE_LIMIT_PER_MINUTE
            if scope == "auth"
            else settings.API_RATE_LIMIT_PER_MINUTE
        )
        client_ip = _client_ip(request, settings.FORWARDED_ALLOW_IPS)
        limiter.hit(f"{scope}:{client_ip}", per_minute)

    return dependency


auth_rate_limit = rate_limit("auth")
api_rate_limit = rate_limit("api")
