"""
Rate limiting middleware

Fixed window per client IP and path. Buckets live in this process only;
with several instances each one counts separately, exact limits need a
shared counter store.
"""
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from docverctl.core.config import settings
from docverctl.utils.logger import get_logger

logger = get_logger("rate_limit")

LIMITED_PREFIXES = ("/projects", "/admin", "/github", "/users")


def get_client_ip(request: Request) -> str:
    """
    Client IP, honouring X-Forwarded-For only when TRUST_PROXY is set.
    Otherwise the header is attacker controlled and would bypass the limit.
    """
    if settings.TRUST_PROXY:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip

    if request.client is None:
        return "local"
    return request.client.host


@dataclass
class Bucket:
    count: int
    reset_at: float


class FixedWindowRateLimiter:
    """Counts hits per key; the window restarts on the first hit after it expires"""

    def __init__(self, max_requests: int, window_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock
        self.buckets: Dict[str, Bucket] = {}
        self.next_sweep = clock() + window_seconds

    def hit(self, key: str) -> Tuple[bool, int]:
        """Record a request; returns (allowed, seconds until the window resets)"""
        now = self.clock()
        if now >= self.next_sweep:
            self.sweep(now)

        bucket = self.buckets.get(key)

        if bucket is None or bucket.reset_at <= now:
            self.buckets[key] = Bucket(count=1, reset_at=now + self.window_seconds)
            return True, int(self.window_seconds)

        retry_after = max(0, int(bucket.reset_at - now))
        if bucket.count >= self.max_requests:
            return False, retry_after

        bucket.count += 1
        return True, retry_after

    def sweep(self, now: float):
        """Drop expired buckets; runs at most once per window"""
        expired = [key for key, bucket in self.buckets.items() if bucket.reset_at <= now]
        for key in expired:
            del self.buckets[key]
        self.next_sweep = now + self.window_seconds

    def reset(self):
        self.buckets.clear()


rate_limiter = FixedWindowRateLimiter(settings.RATE_LIMIT_MAX_REQUESTS, settings.RATE_LIMIT_WINDOW_SECONDS)


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, limiter: Optional[FixedWindowRateLimiter] = None):
        super().__init__(app)
        self.limiter = limiter or rate_limiter

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if not path.startswith(LIMITED_PREFIXES):
            return await call_next(request)

        key = f"{get_client_ip(request)}:{path}"
        allowed, retry_after = self.limiter.hit(key)
        if not allowed:
            logger.warning(f"Rate limit exceeded for {key}")
            return JSONResponse(
                status_code=429,
                content={"error": "Too many requests. Please try again later."},
                headers={"Retry-After": str(retry_after)},
            )

        return await call_next(request)
