"""
Per-client fixed-window rate limiting for the expensive endpoints.

One RateLimiter is built per serving process (see app.main.create_app) and
shared by every request. State lives in memory only: a restart forgets all
windows, which is fine for abuse mitigation.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from app.core.config import settings

logger = logging.getLogger(__name__)


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


@dataclass
class RateRecord:
    client_key: str
    count: int
    reset_at: float


@dataclass(frozen=True)
class RateDecision:
    allowed: bool
    remaining: int
    reset_at: float


class RateLimiter:
    def __init__(
        self,
        max_requests: int = settings.RATE_LIMIT_MAX_REQUESTS,
        window_ms: int = settings.RATE_LIMIT_WINDOW_MS,
        clock: Optional[Callable[[], float]] = None,
    ):
        if max_requests < 1 or window_ms < 1:
            raise ValueError("max_requests and window_ms must be positive")
        self.max_requests = max_requests
        self.window_ms = window_ms
        self._clock = clock or monotonic_ms
        self._records: Dict[str, RateRecord] = {}
        self._lock = threading.Lock()

    @property
    def retry_after_seconds(self) -> int:
        return max(1, self.window_ms // 1000)

    def admit(self, client_key: str) -> RateDecision:
        # Whole read-modify-write happens under the lock so two requests can
        # never both take the last slot.
        with self._lock:
            now = self._clock()
            record = self._records.get(client_key)

            if record is None or now > record.reset_at:
                record = RateRecord(client_key=client_key, count=1, reset_at=now + self.window_ms)
                self._records[client_key] = record
                return RateDecision(True, self.max_requests - 1, record.reset_at)

            if record.count >= self.max_requests:
                return RateDecision(False, 0, record.reset_at)

            record.count += 1
            return RateDecision(True, self.max_requests - record.count, record.reset_at)

    def sweep(self) -> int:
        """Drop records whose window has elapsed. Returns how many were removed."""
        with self._lock:
            now = self._clock()
            stale = [key for key, record in self._records.items() if now > record.reset_at]
            for key in stale:
                del self._records[key]
        if stale:
            logger.info("[RateLimiter] Swept %d stale client windows", len(stale))
        return len(stale)

    def reset(self):
        with self._lock:
            self._records.clear()

    def __len__(self):
        with self._lock:
            return len(self._records)
