"""
HTTP middleware: CORS for the ads routes, rate limiting, payload size,
security headers and access logging.
"""
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from ads_gateway.config import Settings
from ads_gateway.errors import error_envelope

logger = logging.getLogger(__name__)

ADS_PREFIX = "/api/ads/"
API_PREFIX = "/api/"

ALLOWED_METHODS = ["GET", "POST", "OPTIONS"]
ALLOWED_HEADERS = ["Content-Type", "Authorization", "developer-token", "login-customer-id"]

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "X-DNS-Prefetch-Control": "off",
    "Referrer-Policy": "no-referrer",
}


def cors_headers(settings: Settings) -> Dict[str, str]:
    """Headers attached to every /api/ads/* response, errors included."""
    return {
        "Access-Control-Allow-Origin": settings.frontend_url,
        "Access-Control-Allow-Credentials": "true",
        "Vary": "Origin",
    }


def preflight_headers(settings: Settings) -> Dict[str, str]:
    return {
        "Access-Control-Allow-Origin": settings.frontend_url,
        "Access-Control-Allow-Methods": ",".join(ALLOWED_METHODS),
        "Access-Control-Allow-Headers": ",".join(ALLOWED_HEADERS),
        "Access-Control-Allow-Credentials": "true",
        "Vary": "Origin",
    }


def is_ads_path(path: str) -> bool:
    return path.startswith(ADS_PREFIX) or path == ADS_PREFIX.rstrip("/")


@dataclass
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_in_seconds: int


class FixedWindowRateLimiter:
    """
    In-process fixed window limiter: at most ``max_requests`` per key per window.

    State lives in this process only; counters reset on restart.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, Tuple[float, int]] = {}

    def hit(self, key: str) -> RateLimitResult:
        """Count one request for ``key`` and report whether it is allowed."""
        now = self._clock()
        window_start, count = self._windows.get(key, (now, 0))

        if now - window_start >= self.window_seconds:
            window_start, count = now, 0
            self._prune(now)

        count += 1
        self._windows[key] = (window_start, count)

        reset_in = max(0, int(round(window_start + self.window_seconds - now)))
        return RateLimitResult(
            allowed=count <= self.max_requests,
            limit=self.max_requests,
            remaining=max(0, self.max_requests - count),
            reset_in_seconds=reset_in,
        )

    def _prune(self, now: float) -> None:
        expired = [
            key for key, (start, _) in self._windows.items()
            if now - start >= self.window_seconds
        ]
        for key in expired:
            del self._windows[key]


def payload_too_large(max_bytes: int) -> JSONResponse:
    return JSONResponse(
        status_code=413,
        content=error_envelope(
            "Payload too large",
            message=f"Request body exceeds {max_bytes} bytes",
        ),
    )


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def register_middleware(
    app: FastAPI,
    settings: Settings,
    rate_limiter: Optional[FixedWindowRateLimiter] = None,
) -> FixedWindowRateLimiter:
    """
    Attach the gateway middleware stack to ``app``.

    Registration order matters: the last middleware added runs first, so
    ads CORS handling wraps everything else and preflights never reach
    the rate limiter or the routes.
    """
    if rate_limiter is None:
        rate_limiter = FixedWindowRateLimiter(
            max_requests=settings.rate_limit_max_requests,
            window_seconds=settings.rate_limit_window_minutes * 60,
        )

    @app.middleware("http")
    async def limit_payload_size(request: Request, call_next):
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > settings.max_body_bytes:
            return payload_too_large(settings.max_body_bytes)
        return await call_next(request)

    @app.middleware("http")
    async def rate_limit(request: Request, call_next):
        if not request.url.path.startswith(API_PREFIX):
            return await call_next(request)

        result = rate_limiter.hit(_client_ip(request))
        limit_headers = {
            "X-RateLimit-Limit": str(result.limit),
            "X-RateLimit-Remaining": str(result.remaining),
            "X-RateLimit-Reset": str(result.reset_in_seconds),
        }

        if not result.allowed:
            logger.warning(f"Rate limit exceeded for {_client_ip(request)}")
            return JSONResponse(
                status_code=429,
                content=error_envelope(
                    "Too many requests",
                    message="Too many requests from this IP, please try again later.",
                ),
                headers=limit_headers,
            )

        response = await call_next(request)
        response.headers.update(limit_headers)
        return response

    @app.middleware("http")
    async def security_headers_and_access_log(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            f'{_client_ip(request)} "{request.method} {request.url.path}" '
            f"{response.status_code} {duration_ms:.1f}ms"
        )
        return response

    @app.middleware("http")
    async def ads_cors(request: Request, call_next):
        if not is_ads_path(request.url.path):
            return await call_next(request)

        if request.method == "OPTIONS":
            return Response(status_code=200, headers=preflight_headers(settings))

        response = await call_next(request)
        response.headers.update(cors_headers(settings))
        return response

    return rate_limiter
