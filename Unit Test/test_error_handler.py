import asyncio

import pytest
from starlette.requests import Request

from app.core.exceptions import IncompatibleFacet, NotFound, RateLimited, UpstreamError, ValidationError
from app.services.rate_limiter import RateLimiter
from app.utils.cursor import decode_cursor, encode_cursor
from app.utils.error_handler import _vibe_feed_error_handler, rate_limited_response, settle_stream
from app.utils.scheduler import build_scheduler


def test_settle_stream():
    assert settle_stream("pins", [1, 2]).items == [1, 2]
    assert settle_stream("pins", None).items == []

    empty = settle_stream("facet:tone", NotFound("no embedding"))
    assert empty.items == [] and not empty.failed

    for error in (UpstreamError("down"), IncompatibleFacet("mismatch")):
        assert settle_stream("facet:tone", error).failed

    with pytest.raises(KeyError):
        settle_stream("pins", KeyError("bug"))
    with pytest.raises(asyncio.CancelledError):
        settle_stream("pins", asyncio.CancelledError())


def test_cursor_is_opaque_and_validated():
    token = encode_cursor((1, -0.75, "game:42"))
    assert decode_cursor(token) == (1, -0.75, "game:42")

    for bad in ("", "!!!", encode_cursor((True, 0.0, "x")), "WzEsMl0"):
        with pytest.raises(ValidationError):
            decode_cursor(bad)


def test_sweep_job_is_registered():
    limiter = RateLimiter()
    scheduler = build_scheduler(limiter, interval_seconds=300)
    job = scheduler.get_job("rate-limit-sweep")
    assert job is not None
    assert job.func == limiter.sweep
    assert job.trigger.interval.total_seconds() == 300


def test_rate_limited_response():
    res = rate_limited_response(42)
    assert res.status_code == 429
    assert res.headers["Retry-After"] == "42"
    assert res.headers["X-RateLimit-Remaining"] == "0"
    assert res.body == b'{"detail":"Too many requests. Please try again later."}'


def test_rate_limited_handler_matches_middleware_response():
    request = Request({"type": "http", "method": "POST", "path": "/api/v1/feed", "headers": []})
    res = asyncio.run(_vibe_feed_error_handler(request, RateLimited(retry_after=42)))
    expected = rate_limited_response(42)
    assert res.status_code == expected.status_code
    assert res.body == expected.body
    assert res.headers["Retry-After"] == "42"
    assert res.headers["X-RateLimit-Remaining"] == "0"
