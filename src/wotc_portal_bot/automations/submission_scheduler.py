#!/usr/bin/env python3
"""
Submission Scheduler.

Polls the job store on a fixed interval and runs up to ``max_concurrent``
jobs as independent asyncio tasks. Each job is claimed atomically before
dispatch, so several schedulers can share one database.
"""

import asyncio
from typing import Awaitable, Callable, List, Optional, Set

from wotc_portal_bot.application.interfaces import IJobStore, ILoggingService
from wotc_portal_bot.application.services.job_runner import JobRunner
from wotc_portal_bot.config import config
from wotc_portal_bot.domain.services import Clock, SystemClock

SleepFunction = Callable[[float], Awaitable[None]]


class SubmissionScheduler:
    """
    Poll, claim and dispatch loop.

    The running-job counter is incremented before a task is created and
    decremented in the task's ``finally``, so a poll never dispatches more
    than ``max_concurrent`` jobs even while earlier tasks are starting.
    """

    def __init__(
        self,
        job_store: IJobStore,
        runner: JobRunner,
        logging_service: ILoggingService,
        max_concurrent: Optional[int] = None,
        poll_interval: Optional[float] = None,
        clock: Optional[Clock] = None,
        sleep: Optional[SleepFunction] = None,
    ):
        """
        Initialize scheduler.

        Args:
            job_store: Persistence for jobs and records
            runner: Executes claimed jobs
            logging_service: Service for logging operations
            max_concurrent: Concurrency ceiling (config default if None)
            poll_interval: Seconds between polls (config default if None)
            clock: Time source (system clock if None)
            sleep: Awaitable sleep between polls; the default wakes early on ``stop()``
        """
        self.job_store = job_store
        self.runner = runner
        self.logger = logging_service
        self.max_concurrent = max_concurrent or config.MAX_CONCURRENT_JOBS
        self.poll_interval = poll_interval if poll_interval is not None else config.POLL_INTERVAL_SECONDS
        self.clock = clock or SystemClock()
        self._sleep = sleep or self._wait_for_stop

        self._running_ids: Set[str] = set()
        self._tasks: Set[asyncio.Task] = set()
        self._stop_event: Optional[asyncio.Event] = None
        self._loop_task: Optional[asyncio.Task] = None
        self.polls = 0
        self.dispatched = 0

    @property
    def running(self) -> int:
        return len(self._running_ids)

    def active_job_ids(self) -> Set[str]:
        """Ids of jobs running in this process."""
        return set(self._running_ids)

    # ================================
    # POLL AND DISPATCH
    # ================================

    async def poll_and_dispatch(self) -> List[str]:
        """
        Claim and dispatch as many due jobs as the ceiling allows.

        Returns:
            Ids of the jobs dispatched by this poll
        """
        self.polls += 1
        available = self.max_concurrent - self.running
        if available <= 0:
            self.logger.debug(f"⏸️ At capacity ({self.running}/{self.max_concurrent}); skipping poll")
            return []

        now = self.clock.now()
        try:
            candidates = await asyncio.to_thread(self.job_store.find_dispatchable, available, now)
        except Exception as e:
            self.logger.error(f"❌ Poll failed: {e}")
            return []

        dispatched: List[str] = []
        for job in candidates:
            if self.running >= self.max_concurrent:
                break
            try:
                claimed = await asyncio.to_thread(self.job_store.claim, job.id, now)
            except Exception as e:
                self.logger.error(f"❌ Claim failed for job {job.id}: {e}")
                continue
            if not claimed:
                self.logger.debug(f"Job {job.id} was claimed elsewhere")
                continue

            self._running_ids.add(job.id)
            task = asyncio.create_task(self._run(job.id), name=f"submission-{job.id}")
            self._tasks.add(task)
            task.add_done_callback(self._on_task_done)
            dispatched.append(job.id)

        if dispatched:
            self.dispatched += len(dispatched)
            self.logger.info(
                f"📥 Dispatched {len(dispatched)} job(s); {self.running}/{self.max_concurrent} running"
            )
        return dispatched

    async def _run(self, job_id: str):
        try:
            return await self.runner.run_job(job_id)
        finally:
            self._running_ids.discard(job_id)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            self.logger.warning(f"⚠️ Task {task.get_name()} was cancelled")
            return
        error = task.exception()
        if error is not None:
            self.logger.error(f"❌ Task {task.get_name()} crashed: {error}")

    async def wait_idle(self) -> None:
        """Wait until every dispatched job has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ================================
    # LIFECYCLE
    # ================================

    async def run_forever(self) -> None:
        """Poll until ``stop()``; running jobs are awaited before returning."""
        if self._stop_event is None:
            self._stop_event = asyncio.Event()
        self.logger.info(
            f"🚀 Scheduler started: every {self.poll_interval:g}s, up to {self.max_concurrent} concurrent jobs"
        )
        try:
            while not self._stop_event.is_set():
                try:
                    await self.poll_and_dispatch()
                except Exception as e:
                    self.logger.error(f"❌ Scheduler poll error: {e}")
                if self._stop_event.is_set():
                    break
                await self._sleep(self.poll_interval)
        finally:
            await self.wait_idle()
            self.logger.info(f"🛑 Scheduler stopped after {self.polls} polls, {self.dispatched} jobs dispatched")

    def start(self) -> asyncio.Task:
        """Run the loop as a background task on the current event loop."""
        if self._loop_task is None or self._loop_task.done():
            self._stop_event = asyncio.Event()
            self._loop_task = asyncio.create_task(self.run_forever(), name="submission-scheduler")
        return self._loop_task

    async def stop(self) -> None:
        """Stop polling and wait for running jobs."""
        if self._stop_event is not None:
            self._stop_event.set()
        if self._loop_task is not None:
            await self._loop_task
            self._loop_task = None

    async def _wait_for_stop(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass
