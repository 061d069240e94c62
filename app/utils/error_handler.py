import asyncio
import logging
from dataclasses import dataclass, field
from typing import List

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.exceptions import (
    IncompatibleFacet,
    NotFound,
    RateLimited,
    UpstreamError,
    VibeFeedError,
)

logger = logging.getLogger(__name__)


@dataclass
class StreamResult:
    name: str
    items: List = field(default_factory=list)
    failed: bool = False


def settle_stream(name: str, outcome) -> StreamResult:
    """
    Turn one gathered stream outcome into a StreamResult.

    Upstream and facet errors degrade the stream, a missing seed/embedding
    is just an empty stream. Anything else is a bug and is re-raised.
    """
    if isinstance(outcome, asyncio.CancelledError):
        raise outcome
    if isinstance(outcome, NotFound):
        logger.info("[Feed] Stream %s empty: %s", name, outcome.message)
        return StreamResult(name)
    if isinstance(outcome, (UpstreamError, IncompatibleFacet)):
        logger.warning("[Feed] Stream %s failed: %s", name, outcome.message)
        return StreamResult(name, failed=True)
    if isinstance(outcome, BaseException):
        raise outcome
    return StreamResult(name, list(outcome or []))


def rate_limited_response(retry_after: int, message: str = "Too many requests. Please try again later.") -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={"detail": message},
        headers={"Retry-After": str(retry_after), "X-RateLimit-Remaining": "0"},
    )


async def _vibe_feed_error_handler(request: Request, exc: VibeFeedError):
    if exc.status_code >= 500:
        logger.error("[API] %s %s -> %s: %s", request.method, request.url.path, exc.__class__.__name__, exc.message)
    if isinstance(exc, RateLimited):
        return rate_limited_response(exc.retry_after, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(VibeFeedError, _vibe_feed_error_handler)
