from apscheduler.schedulers.asyncio import AsyncIOScheduler

from app.core.config import settings
from app.services.rate_limiter import RateLimiter


# Periodic sweep bounds the rate limiter's memory in long-lived processes
def build_scheduler(limiter: RateLimiter, interval_seconds: int = settings.RATE_LIMIT_SWEEP_SECONDS) -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler()
    scheduler.add_job(limiter.sweep, 'interval', seconds=interval_seconds, max_instances=1, id="rate-limit-sweep")
    return scheduler

def start_scheduler(scheduler: AsyncIOScheduler):
    scheduler.start()

def stop_scheduler(scheduler: AsyncIOScheduler):
    if scheduler.running:
        scheduler.shutdown(wait=False)
