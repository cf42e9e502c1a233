"""SchedulerService: periodic pull job with APScheduler + Redis distributed locking.

Runs one interval job, ``pull_job``, which hands the selected pull
sitegroups to the host's pull handler. The interval and sitegroups come from
the settings document and are refreshed whenever an administrator changes
them. Redis SET NX keeps concurrent backend instances from pulling at the
same time.
"""

from __future__ import annotations

import asyncio
import importlib
import inspect
import logging
from collections.abc import Callable
from datetime import timedelta
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from redis.asyncio import Redis

from syndication.config import settings

logger = logging.getLogger(__name__)

PULL_JOB_ID = "pull_job"
PULL_LOCK_KEY = "syndication:pull_lock"

PullHandler = Callable[[list[str]], Any]


def load_pull_handler(path: str) -> PullHandler | None:
    """Resolve a ``module:function`` path to the host's pull handler."""
    if not path:
        return None
    module_name, _, attr = path.partition(":")
    module = importlib.import_module(module_name)
    return getattr(module, attr)


class SchedulerService:
    def __init__(
        self,
        redis_client: Redis,
        pull_handler: PullHandler | None = None,
        lock_ttl: int | None = None,
    ) -> None:
        self.redis_client = redis_client
        self.pull_handler = pull_handler
        self.lock_ttl = lock_ttl or settings.pull_lock_ttl
        self.sitegroups: list[str] = []
        self.interval = settings.default_pull_interval
        self._scheduler: AsyncIOScheduler | None = None
        self.pull_task: asyncio.Task | None = None

    async def start(self, interval: int, sitegroups: list[str]) -> None:
        self._scheduler = AsyncIOScheduler()
        self._scheduler.start()
        logger.info("Scheduler started")
        await self.refresh_pull_jobs(interval, sitegroups)

    async def stop(self) -> None:
        if self.pull_task and not self.pull_task.done():
            self.pull_task.cancel()
        if self._scheduler:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            logger.info("Scheduler stopped")

    @property
    def job_interval(self) -> int | None:
        """Seconds between scheduled pulls, or None when no pull job is scheduled."""
        if not self._scheduler:
            return None
        job = self._scheduler.get_job(PULL_JOB_ID)
        if job is None:
            return None
        interval: timedelta = job.trigger.interval
        return int(interval.total_seconds())

    async def refresh_pull_jobs(self, interval: int, sitegroups: list[str]) -> None:
        self.interval = interval
        self.sitegroups = list(sitegroups)
        if not self._scheduler:
            return

        if not self.sitegroups:
            if self._scheduler.get_job(PULL_JOB_ID):
                self._scheduler.remove_job(PULL_JOB_ID)
            logger.info("No pull sitegroups selected, pull job unscheduled")
            return

        self._scheduler.add_job(
            self._run_scheduled_pull,
            "interval",
            seconds=interval,
            id=PULL_JOB_ID,
            name="Syndication Pull",
            max_instances=1,
            replace_existing=True,
        )
        logger.info("Pull job scheduled every %d s for sitegroups %s", interval, self.sitegroups)

    async def pull_now(self) -> bool:
        """Start a manual pull in the background.

        Returns False when no pull was started: no handler is configured or
        another pull holds the lock.
        """
        if self.pull_handler is None:
            logger.warning("No pull handler configured, skipping manual pull")
            return False
        if not await self.acquire_pull_lock():
            logger.info("Pull already running (lock held), skipping manual pull")
            return False

        logger.info("Pull now requested")
        self.pull_task = asyncio.create_task(self._run_manual_pull())
        return True

    async def acquire_pull_lock(self, ttl_seconds: int | None = None) -> bool:
        acquired = await self.redis_client.set(
            PULL_LOCK_KEY, "1", nx=True, ex=ttl_seconds or self.lock_ttl
        )
        return bool(acquired)

    async def release_pull_lock(self) -> None:
        await self.redis_client.delete(PULL_LOCK_KEY)

    async def _run_scheduled_pull(self) -> None:
        await self.trigger_pull("scheduled")

    async def _run_manual_pull(self) -> None:
        try:
            await self._run_locked_pull("manual")
        except Exception:
            logger.exception("Manual pull failed")

    async def trigger_pull(self, trigger: str) -> dict[str, Any]:
        if self.pull_handler is None:
            logger.warning("No pull handler configured, skipping %s pull", trigger)
            return {"status": "skipped", "reason": "No pull handler configured"}

        if not await self.acquire_pull_lock():
            logger.info("Pull already running (lock held), skipping")
            return {"status": "skipped", "reason": "Pull already running"}

        return await self._run_locked_pull(trigger)

    async def _run_locked_pull(self, trigger: str) -> dict[str, Any]:
        """Run the pull handler; the caller must already hold the pull lock."""
        try:
            logger.info("Starting pull (trigger=%s) for sitegroups %s", trigger, self.sitegroups)
            result = self.pull_handler(list(self.sitegroups))
            if inspect.isawaitable(result):
                await result
            return {"status": "completed"}
        finally:
            await self.release_pull_lock()
