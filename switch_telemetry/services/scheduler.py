"""
Scheduler Service.

Drives the aggregator with APScheduler:
- sample job: every SAMPLE_INTERVAL_SECONDS (fixed)
- flush job:  every write_interval_seconds (operator configured)

Both jobs run on the asyncio loop and only compete for the aggregator lock.
A stop request pauses both drivers and waits for cycles already running;
one final flush is then attempted so the samples pending at shutdown are
not lost. Batches still unwritten at exit make the exit code non-zero.
"""
from __future__ import annotations

import asyncio
import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from switch_telemetry.core.config import SAMPLE_INTERVAL_SECONDS
from switch_telemetry.services.aggregator import CollectionError, CounterAggregator
from switch_telemetry.services.archive import ArchiveWriteError

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ARCHIVE_FAILURE = 1


def next_boundary(now: datetime, period_seconds: int) -> datetime:
    """Earliest whole-second instant >= now that is a multiple of period."""
    boundary = math.ceil(now.timestamp() / period_seconds) * period_seconds
    return datetime.fromtimestamp(boundary, tz=timezone.utc)


class SchedulerService:
    """
    Periodic sample/flush driver for one CounterAggregator.

    Uses APScheduler to run the two cycles at their configured intervals.
    """

    def __init__(
        self,
        aggregator: CounterAggregator,
        *,
        write_interval_seconds: int,
        sample_interval_seconds: int = SAMPLE_INTERVAL_SECONDS,
        align_start: bool = True,
    ) -> None:
        """Initialize scheduler."""
        self.aggregator = aggregator
        self.write_interval_seconds = write_interval_seconds
        self.sample_interval_seconds = sample_interval_seconds
        self.align_start = align_start
        self.scheduler = AsyncIOScheduler(
            job_defaults={
                "max_instances": 1,
                "coalesce": True,
                "misfire_grace_time": sample_interval_seconds,
            },
            timezone=timezone.utc,
        )
        self._stop_event: asyncio.Event | None = None
        self._in_flight: set[asyncio.Task] = set()
        self.exit_code = EXIT_OK

    # ── Control ──────────────────────────────────────────────────

    def request_stop(self, exit_code: int | None = None) -> None:
        """Ask run() to stop; safe to call from a signal handler."""
        if exit_code is not None and self.exit_code == EXIT_OK:
            self.exit_code = exit_code
        if self._stop_event is not None:
            self._stop_event.set()

    def get_jobs(self) -> list[dict[str, Any]]:
        """Get list of all scheduled jobs."""
        return [
            {
                "id": job.id,
                "name": job.name,
                "next_run": str(job.next_run_time),
                "trigger": str(job.trigger),
            }
            for job in self.scheduler.get_jobs()
        ]

    async def run(self) -> int:
        """
        Run until request_stop() is called.

        Returns:
            Process exit code (non-zero after a fatal archive failure).
        """
        self._stop_event = asyncio.Event()

        start = datetime.now(timezone.utc)
        if self.align_start:
            start = next_boundary(start, self.sample_interval_seconds)
            delay = (start - datetime.now(timezone.utc)).total_seconds()
            if delay > 0:
                logger.info("Waiting %.3fs to start on a %ds boundary", delay, self.sample_interval_seconds)
                await asyncio.sleep(delay)

        self.aggregator.interval_start = start
        self._add_jobs(start)
        self.scheduler.start()
        logger.info(
            "Scheduler started: sample every %ds, flush every %ds",
            self.sample_interval_seconds, self.write_interval_seconds,
        )

        # Interval triggers first fire one period after start; sample now.
        await self.run_sample(start)

        try:
            await self._stop_event.wait()
        finally:
            await self.stop()
            if self.exit_code == EXIT_OK:
                await self._final_flush()

        return self.exit_code

    async def stop(self) -> None:
        """Stop both periodic drivers after in-flight cycles have finished."""
        if not self.scheduler.running:
            return
        self.scheduler.pause()
        if self._in_flight:
            logger.info("Waiting for %d in-flight cycle(s)", len(self._in_flight))
            await asyncio.gather(*self._in_flight, return_exceptions=True)
        self.scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")

    # ── Jobs ─────────────────────────────────────────────────────

    def _add_jobs(self, start: datetime) -> None:
        self.scheduler.add_job(
            self._sample_job,
            trigger=IntervalTrigger(
                seconds=self.sample_interval_seconds,
                start_date=start + timedelta(seconds=self.sample_interval_seconds),
                timezone=timezone.utc,
            ),
            id="sample",
            replace_existing=True,
        )
        self.scheduler.add_job(
            self._flush_job,
            trigger=IntervalTrigger(
                seconds=self.write_interval_seconds,
                start_date=start + timedelta(seconds=self.write_interval_seconds),
                timezone=timezone.utc,
            ),
            id="flush",
            replace_existing=True,
        )

    def _track(self, coro: Any) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        return task

    # Job bodies run as tracked tasks behind asyncio.shield: scheduler
    # shutdown cancels the job futures, never the cycle itself.
    async def _sample_job(self) -> None:
        await asyncio.shield(self._track(self.run_sample(datetime.now(timezone.utc))))

    async def _flush_job(self) -> None:
        await asyncio.shield(self._track(self.run_flush(datetime.now(timezone.utc))))

    async def run_sample(self, now: datetime) -> bool:
        """One sampling cycle; failures are counted and the cycle skipped."""
        try:
            await self.aggregator.sample(now)
        except CollectionError as e:
            logger.debug("Sample cycle at %s skipped: %s", now.isoformat(), e)
            return False
        return True

    async def run_flush(self, now: datetime) -> bool:
        """One archive cycle; a fatal archive failure stops the process."""
        try:
            await self.aggregator.flush(now)
        except ArchiveWriteError as e:
            logger.critical("Failed to write archive, shutting down: %s", e)
            self.request_stop(EXIT_ARCHIVE_FAILURE)
            return False
        return True

    async def _final_flush(self) -> None:
        """Best-effort flush of pending samples at shutdown."""
        logger.info("Flushing pending samples before exit")
        try:
            await self.aggregator.flush(datetime.now(timezone.utc))
        except ArchiveWriteError as e:
            logger.error("Final flush failed, pending samples lost: %s", e)
            self.exit_code = EXIT_ARCHIVE_FAILURE
            return

        unwritten = self.aggregator.unwritten_batches
        if unwritten:
            logger.critical(
                "Exiting with %d unwritten archive batch(es), samples lost", unwritten,
            )
            self.exit_code = EXIT_ARCHIVE_FAILURE
