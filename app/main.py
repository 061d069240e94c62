"""
Main entry point for the FastAPI application.

- Builds the app with one process-wide RateLimiter
- Includes all API routers
- Adds CORS and rate limiting middleware
- Starts the limiter's sweep job on startup and stops it on shutdown
"""

# app/main.py
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core import logging_config  # noqa: F401  configures logging
from app.api.v1.router import api_router
from app.core.config import settings
from app.middleware.rate_limit_middleware import RateLimitMiddleware
from app.services.rate_limiter import RateLimiter
from app.utils.error_handler import register_exception_handlers
from app.utils.scheduler import build_scheduler, start_scheduler, stop_scheduler


def create_app(rate_limiter: Optional[RateLimiter] = None, sweep: bool = settings.RATE_LIMIT_SWEEP_ENABLED) -> FastAPI:
    limiter = rate_limiter or RateLimiter()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        scheduler = build_scheduler(limiter) if sweep else None
        if scheduler is not None:
            start_scheduler(scheduler)
        try:
            yield
        finally:
            if scheduler is not None:
                stop_scheduler(scheduler)
            limiter.reset()

    app = FastAPI(title="Vibe Feed Backend", lifespan=lifespan)
    app.state.rate_limiter = limiter

    app.add_middleware(RateLimitMiddleware, limiter=limiter)

    # Allow CORS for all origins (adjust in production)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Retry-After", "X-RateLimit-Remaining"],
    )

    register_exception_handlers(app)

    # Include versioned API routes
    app.include_router(api_router, prefix="/api/v1")
    return app


app = create_app()
