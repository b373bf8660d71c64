from __future__ import annotations

from typing import Any, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from flatflow.config import Settings, get_settings
from flatflow.logging import get_logger
from flatflow.services.cache import ResultCache


def setup_cache_sweeper(
    cache: ResultCache[Any],
    settings: Optional[Settings] = None,
    start: bool = True,
) -> AsyncIOScheduler:
    settings = settings or get_settings()

    scheduler = AsyncIOScheduler(timezone=settings.tz)
    scheduler.add_job(
        _sweep_job,
        IntervalTrigger(seconds=settings.cache_sweep_interval_seconds),
        kwargs={"cache": cache},
        id="cache-sweep",
        replace_existing=True,
    )
    if start:
        scheduler.start()
    return scheduler


async def _sweep_job(cache: ResultCache[Any]) -> None:
    log = get_logger(__name__)
    removed = cache.sweep()
    log.debug("cache.sweep.job", removed=removed, remaining=len(cache))
