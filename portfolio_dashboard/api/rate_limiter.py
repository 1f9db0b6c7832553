"""
In-process fixed-window rate limiting.

A RateLimiter is used either as a FastAPI route dependency (raises AppError)
or as app-wide HTTP middleware (answers 429 itself, since middleware runs
outside the exception handlers).
"""

from __future__ import annotations

import math
import threading
import time
from typing import Awaitable, Callable, Dict, Iterable, Tuple

from fastapi import Request, Response
from fastapi.responses import JSONResponse

from portfolio_dashboard.api.errors import AppError, error_body


def _client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


class RateLimiter:
    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        message: str = "Too many requests. Please try again later.",
        skip_paths: Iterable[str] = (),
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_requests <= 0 or window_seconds <= 0:
            raise ValueError("max_requests and window_seconds must be positive")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.message = message
        self.skip_paths = frozenset(skip_paths)
        self._clock = clock
        # client -> (window start, count)
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._last_sweep = clock()
        self._lock = threading.Lock()

    @property
    def retry_after(self) -> int:
        return math.ceil(self.window_seconds)

    @property
    def tracked_clients(self) -> int:
        with self._lock:
            return len(self._windows)

    def _evict_expired(self, now: float) -> None:
        # caller holds the lock; runs at most once per window
        if now - self._last_sweep < self.window_seconds:
            return
        self._windows = {
            client: entry
            for client, entry in self._windows.items()
            if now - entry[0] < self.window_seconds
        }
        self._last_sweep = now

    def hit(self, client: str) -> Tuple[bool, int, float]:
        """
        Count one request. Returns (allowed, remaining, seconds until reset).
        """
        now = self._clock()
        with self._lock:
            self._evict_expired(now)
            start, count = self._windows.get(client, (now, 0))
            if now - start >= self.window_seconds:
                start, count = now, 0
            count += 1
            self._windows[client] = (start, count)
        reset_in = max(0.0, self.window_seconds - (now - start))
        return count <= self.max_requests, max(0, self.max_requests - count), reset_in

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()
            self._last_sweep = self._clock()

    def _check(self, request: Request) -> Tuple[bool, Dict[str, str]]:
        allowed, remaining, reset_in = self.hit(_client_key(request))
        headers = {
            "RateLimit-Limit": str(self.max_requests),
            "RateLimit-Remaining": str(remaining),
            "RateLimit-Reset": str(math.ceil(reset_in)),
        }
        if not allowed:
            headers["Retry-After"] = str(self.retry_after)
        return allowed, headers

    async def __call__(self, request: Request, response: Response) -> None:
        allowed, headers = self._check(request)
        if not allowed:
            raise AppError(
                status=429,
                message=self.message,
                headers=headers,
                extra={"retryAfter": self.retry_after},
            )
        response.headers.update(headers)

    async def middleware(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Dispatch function for ``app.middleware("http")``."""
        if request.url.path in self.skip_paths:
            return await call_next(request)

        allowed, headers = self._check(request)
        if not allowed:
            return JSONResponse(
                status_code=429,
                content=error_body(429, self.message, retryAfter=self.retry_after),
                headers=headers,
            )

        response = await call_next(request)
        # a stricter route-level limiter may already have set these
        for name, value in headers.items():
            response.headers.setdefault(name, value)
        return response
