"""APScheduler-backed timer registry: one DateTrigger job per reminder id."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

from apscheduler.job import Job
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger

LOGGER = logging.getLogger(__name__)

FireCallback = Callable[[], Awaitable[None]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _job_name_reminder(reminder_id: str) -> str:
    return f"reminder:{reminder_id}"


class AppScheduler:
    """Owns the mapping reminder id -> armed job.

    Timer identity is the reminder id. Arming a time that is not strictly in
    the future is a no-op; re-arming a pending id replaces its job.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], datetime] = _utcnow,
        scheduler: AsyncIOScheduler | None = None,
    ) -> None:
        self._scheduler = scheduler or AsyncIOScheduler(timezone=timezone.utc)
        self._clock = clock
        self._jobs: dict[str, Job] = {}

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def start(self) -> None:
        if self._scheduler.running:
            LOGGER.info("AppScheduler already started, skipping")
            return
        # Raises RuntimeError outside a running loop; jobs must share the bot's loop.
        loop = asyncio.get_running_loop()
        self._scheduler._eventloop = loop
        self._scheduler.start()
        LOGGER.info("AppScheduler (APScheduler) started")

    def shutdown(self, wait: bool = False) -> None:
        self._jobs.clear()
        if not self._scheduler.running:
            return
        try:
            self._scheduler.shutdown(wait=wait)
            LOGGER.info("AppScheduler shutdown")
        except Exception:
            LOGGER.exception("AppScheduler shutdown error")

    def arm(self, reminder_id: str, due_at: datetime, on_fire: FireCallback) -> bool:
        if due_at.tzinfo is None:
            due_at = due_at.replace(tzinfo=timezone.utc)
        now = self._clock()
        if due_at <= now:
            LOGGER.info(
                "Reminder not armed (due time not in the future): reminder_id=%s due_at=%s now=%s",
                reminder_id,
                due_at.isoformat(),
                now.isoformat(),
            )
            return False
        self.cancel(reminder_id)
        job = self._scheduler.add_job(
            self._run,
            trigger=DateTrigger(run_date=due_at, timezone=timezone.utc),
            id=_job_name_reminder(reminder_id),
            replace_existing=True,
            misfire_grace_time=None,
            kwargs={"reminder_id": reminder_id, "on_fire": on_fire},
        )
        self._jobs[reminder_id] = job
        LOGGER.info(
            "Reminder job scheduled: reminder_id=%s due_at=%s",
            reminder_id,
            due_at.isoformat(),
        )
        return True

    def cancel(self, reminder_id: str) -> bool:
        job = self._jobs.pop(reminder_id, None)
        if job is None:
            return False
        try:
            job.remove()
        except JobLookupError:
            return False
        LOGGER.info("Reminder job removed: reminder_id=%s", reminder_id)
        return True

    def is_armed(self, reminder_id: str) -> bool:
        return reminder_id in self._jobs

    def armed_ids(self) -> list[str]:
        return list(self._jobs)

    async def _run(self, reminder_id: str, on_fire: FireCallback) -> None:
        self._jobs.pop(reminder_id, None)
        try:
            await on_fire()
        except Exception:
            LOGGER.exception("Reminder fire callback failed: reminder_id=%s", reminder_id)
