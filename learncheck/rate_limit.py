# learncheck/rate_limit.py
"""
Per-client fixed-window rate limiting for the API.

A request is counted against every rule whose path prefix it matches, so the
LLM endpoints are bound by both the general /api limit and their own stricter
one.
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

MAX_TRACKED_CLIENTS = 10000


@dataclass
class RateLimitRule:
    name: str
    path_prefixes: Tuple[str, ...]
    max_requests: int
    window_seconds: int
    message: str = "Too many requests from this IP, please try again later"

    def __post_init__(self) -> None:
        if self.max_requests <= 0:
            raise ValueError("max_requests must be positive")
        if self.window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

    def matches(self, path: str) -> bool:
        return any(path.startswith(prefix) for prefix in self.path_prefixes)


@dataclass
class Window:
    started: float
    count: int = 0


@dataclass
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_seconds: float
    rule: Optional[RateLimitRule] = None

    def to_headers(self) -> Dict[str, str]:
        headers = {
            "RateLimit-Limit": str(self.limit),
            "RateLimit-Remaining": str(self.remaining),
            "RateLimit-Reset": str(int(self.reset_seconds + 0.999)),
        }
        if not self.allowed:
            headers["Retry-After"] = headers["RateLimit-Reset"]
        return headers


class RateLimiter:
    def __init__(
        self,
        rules: List[RateLimitRule],
        clock: Callable[[], float] = time.monotonic,
        max_windows: int = MAX_TRACKED_CLIENTS,
    ):
        self.rules = rules
        self.max_windows = max_windows
        self._clock = clock
        self._windows: Dict[Tuple[str, str], Window] = {}
        self._lock = asyncio.Lock()

    def _evict(self, now: float) -> None:
        """Drop windows past their own rule's length, then the oldest ones down to 90% of the cap."""
        lengths = {r.name: r.window_seconds for r in self.rules}
        stale = [k for k, w in self._windows.items() if now - w.started >= lengths.get(k[0], 0)]
        for key in stale:
            del self._windows[key]

        overflow = len(self._windows) - self.max_windows * 9 // 10
        if overflow > 0:
            oldest = sorted(self._windows, key=lambda k: self._windows[k].started)[:overflow]
            for key in oldest:
                del self._windows[key]
        logger.debug("Evicted %d expired and %d live rate limit windows", len(stale), max(0, overflow))

    async def check(self, client: str, path: str) -> Optional[RateLimitResult]:
        """Count one request; returns None when no rule covers the path."""
        applicable = [r for r in self.rules if r.matches(path)]
        if not applicable:
            return None

        async with self._lock:
            now = self._clock()
            if len(self._windows) >= self.max_windows:
                self._evict(now)

            results = []
            for rule in applicable:
                key = (rule.name, client)
                window = self._windows.get(key)
                if window is None or now - window.started >= rule.window_seconds:
                    window = Window(started=now)
                    self._windows[key] = window
                window.count += 1
                results.append(
                    RateLimitResult(
                        allowed=window.count <= rule.max_requests,
                        limit=rule.max_requests,
                        remaining=max(0, rule.max_requests - window.count),
                        reset_seconds=max(0.0, rule.window_seconds - (now - window.started)),
                        rule=rule,
                    )
                )

        blocked = [r for r in results if not r.allowed]
        if blocked:
            return blocked[0]
        return min(results, key=lambda r: r.remaining)

    def reset(self) -> None:
        self._windows.clear()


def client_key(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        limiter: RateLimiter,
        key_func: Callable[[Request], str] = client_key,
    ) -> None:
        super().__init__(app)
        self._limiter = limiter
        self._key_func = key_func

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        client = self._key_func(request)
        result = await self._limiter.check(client, request.url.path)
        if result is None:
            return await call_next(request)

        if not result.allowed:
            logger.warning("Rate limit '%s' exceeded for IP: %s", result.rule.name, client)
            return JSONResponse(
                status_code=429,
                content={
                    "success": False,
                    "error": result.rule.message,
                    "status": "error",
                    "retryAfter": int(result.reset_seconds + 0.999),
                },
                headers=result.to_headers(),
            )

        response = await call_next(request)
        for header, value in result.to_headers().items():
            response.headers[header] = value
        return response


def default_rules(
    general_max: int = 100,
    general_window: int = 15 * 60,
    ai_max: int = 5,
    ai_window: int = 60,
) -> List[RateLimitRule]:
    return [
        RateLimitRule("general", ("/api",), general_max, general_window),
        RateLimitRule(
            "ai",
            ("/api/llm", "/api/generate-questions"),
            ai_max,
            ai_window,
            message="Too many AI requests, please try again later",
        ),
    ]
