"""In-memory fixed-window rate limiter.

The HTTP middleware throttles credential routes (category ``auth``) per client
address and everything else (category ``default``) per bearer token. State
lives in this process only; several workers each keep their own counts.

``check_and_increment`` returns ``(allowed, meta)`` where ``meta`` holds
``limit``, ``remaining``, ``reset_epoch``, ``window_start``, ``count`` and
``category``; the middleware turns these into ``X-RateLimit-*`` headers.
"""
from __future__ import annotations

import time
import asyncio
from dataclasses import dataclass, field
from typing import Dict, Tuple

BucketKey = Tuple[str, str]


@dataclass
class Window:
    start: int
    length: int
    count: int = 0
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    @property
    def reset_epoch(self) -> int:
        return self.start + self.length


class InMemoryRateLimiter:
    # Buckets whose window ended are dropped once this many are held
    PRUNE_THRESHOLD = 10_000

    def __init__(self):
        self._windows: Dict[BucketKey, Window] = {}

    def _now(self) -> int:
        return int(time.time())

    def _window(self, key: BucketKey, now: int, window_seconds: int) -> Window:
        start = now - (now % window_seconds)
        window = self._windows.get(key)
        if window is None:
            if len(self._windows) >= self.PRUNE_THRESHOLD:
                self.prune(now)
            window = self._windows[key] = Window(start=start, length=window_seconds)
        elif window.start != start or window.length != window_seconds:
            # New window (or the limit settings changed): start counting again
            window.start, window.length, window.count = start, window_seconds, 0
        return window

    async def check_and_increment(self, key: str, category: str, limit: int, window_seconds: int) -> Tuple[bool, dict]:
        window = self._window((key, category), self._now(), window_seconds)
        async with window.lock:
            window.count += 1
            allowed = window.count <= limit
            return allowed, {
                "limit": limit,
                "remaining": max(0, limit - window.count),
                "reset_epoch": window.reset_epoch,
                "window_start": window.start,
                "count": window.count,
                "category": category,
            }

    def prune(self, now: int | None = None) -> int:
        """Drop windows that have already ended; returns how many were removed."""
        now = self._now() if now is None else now
        expired = [k for k, w in self._windows.items() if w.reset_epoch <= now]
        for k in expired:
            del self._windows[k]
        return len(expired)

    def reset(self) -> None:
        self._windows.clear()


rate_limiter = InMemoryRateLimiter()

__all__ = ["rate_limiter", "InMemoryRateLimiter"]
