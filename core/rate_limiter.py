# core/rate_limiter.py

"""
Fixed-window, in-memory rate limiter for the login endpoints.

The store lives for the life of the process: it is created at import,
never persisted, pruned by core.scheduler and reset on restart. Counters
are not shared between instances, so this is advisory protection only.
"""

import math
import time
from dataclasses import dataclass
from threading import Lock
from typing import Dict, Optional

from fastapi import HTTPException, Request


@dataclass
class RateLimitWindow:
    count: int
    reset_at: float


@dataclass
class RateLimitResult:
    limited: bool
    remaining: int
    reset_at: float


_rate_limit_store: Dict[str, RateLimitWindow] = {}
_lock = Lock()


def _now() -> float:
    return time.time()


def check_rate_limit(
    identifier: str,
    max_requests: int = 10,
    window_seconds: int = 60,
) -> RateLimitResult:
    """
    Count one attempt for `identifier` and report whether it is over the limit.

    The first attempt opens a window of `window_seconds`; attempts after
    `max_requests` inside that window are limited and not counted.
    """
    now = _now()

    with _lock:
        window = _rate_limit_store.get(identifier)

        if window is not None and now >= window.reset_at:
            del _rate_limit_store[identifier]
            window = None

        if window is None:
            window = RateLimitWindow(count=1, reset_at=now + window_seconds)
            _rate_limit_store[identifier] = window
            return RateLimitResult(False, max_requests - 1, window.reset_at)

        if window.count >= max_requests:
            return RateLimitResult(True, 0, window.reset_at)

        window.count += 1
        return RateLimitResult(False, max_requests - window.count, window.reset_at)


def retry_after_seconds(result: RateLimitResult) -> int:
    """Whole seconds until the window resets, never less than 1."""
    return max(1, math.ceil(result.reset_at - _now()))


def cleanup_expired() -> int:
    """Drop windows that have already reset. Returns how many were removed."""
    now = _now()
    with _lock:
        expired = [key for key, window in _rate_limit_store.items() if now >= window.reset_at]
        for key in expired:
            del _rate_limit_store[key]
    return len(expired)


def active_windows() -> int:
    with _lock:
        return len(_rate_limit_store)


def reset_rate_limits():
    with _lock:
        _rate_limit_store.clear()


def get_client_ip(request: Request) -> str:
    """
    Client IP as seen behind proxies.
    First X-Forwarded-For value wins, then X-Real-IP, then the socket peer.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    if request.client and request.client.host:
        return request.client.host

    return "unknown"


def require_rate_limit(
    request: Request,
    identifier: Optional[str] = None,
    max_requests: int = 10,
    window_seconds: int = 60,
    message: str = "Too many requests. Please try again later.",
) -> int:
    """
    Raise 429 Too Many Requests when the caller is over the limit.

    Args:
        request: FastAPI Request object
        identifier: Rate limit key (defaults to the client IP)
        max_requests: Attempts allowed per window
        window_seconds: Window length in seconds
        message: Detail returned with the 429

    Returns:
        Attempts remaining in the current window
    """
    if identifier is None:
        identifier = get_client_ip(request)

    result = check_rate_limit(identifier, max_requests, window_seconds)

    if result.limited:
        raise HTTPException(
            status_code=429,
            detail=message,
            headers={
                "X-RateLimit-Limit": str(max_requests),
                "X-RateLimit-Window": str(window_seconds),
                "Retry-After": str(retry_after_seconds(result)),
            },
        )

    return result.remaining
