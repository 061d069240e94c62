import logging

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import settings
from app.services.rate_limiter import RateLimiter
from app.utils.error_handler import rate_limited_response
from app.utils.request_utils import client_key_from_headers

logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Admission control for the expensive endpoints.

    The limiter is consulted (and its lock released) before the request
    reaches any handler, so no shared state is held during store I/O.
    """

    def __init__(self, app, limiter: RateLimiter, paths=None):
        super().__init__(app)
        self.limiter = limiter
        self.paths = tuple(paths if paths is not None else settings.RATE_LIMITED_PATHS)

    def is_limited_path(self, path: str) -> bool:
        return any(path.startswith(prefix) for prefix in self.paths)

    async def dispatch(self, request: Request, call_next):
        if not self.is_limited_path(request.url.path):
            return await call_next(request)

        client_key = client_key_from_headers(request.headers)
        decision = self.limiter.admit(client_key)

        if not decision.allowed:
            logger.warning("[RateLimiter] Rejected %s on %s", client_key, request.url.path)
            # App exception handlers do not run for middleware
            return rate_limited_response(self.limiter.retry_after_seconds)

        response = await call_next(request)
        response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
        return response
