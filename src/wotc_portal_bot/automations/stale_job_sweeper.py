"""Recovery of jobs left in_progress by a process that died mid-run."""

import asyncio
from datetime import timedelta
from typing import Callable, Iterable, List, Optional

from wotc_portal_bot.application.interfaces import IJobStore, ILoggingService
from wotc_portal_bot.application.services.job_runner import JobRunner, RunOutcome
from wotc_portal_bot.config import config
from wotc_portal_bot.domain.services import Clock, SystemClock


class StaleJobSweeper:
    """
    Routes stuck jobs through the normal failure accounting.

    A job is stale when it has been in_progress longer than the timeout.
    It is requeued with its portal's backoff while retries remain,
    otherwise failed.
    Jobs this process is still running are never touched.
    """

    def __init__(
        self,
        job_store: IJobStore,
        runner: JobRunner,
        logging_service: ILoggingService,
        timeout_minutes: Optional[float] = None,
        clock: Optional[Clock] = None,
        active_job_ids: Optional[Callable[[], Iterable[str]]] = None,
    ):
        self.job_store = job_store
        self.runner = runner
        self.logger = logging_service
        self.timeout_minutes = timeout_minutes or config.STALE_JOB_TIMEOUT_MINUTES
        self.clock = clock or SystemClock()
        self.active_job_ids = active_job_ids or (lambda: ())

    @property
    def reason(self) -> str:
        return f"stale: exceeded {self.timeout_minutes:g} minutes in progress"

    async def sweep(self) -> List[RunOutcome]:
        """
        Run one sweep.

        Returns:
            Outcomes for every stale job handled
        """
        cutoff = self.clock.now() - timedelta(minutes=self.timeout_minutes)
        stale = await asyncio.to_thread(self.job_store.find_stale, cutoff)
        active = set(self.active_job_ids())

        outcomes: List[RunOutcome] = []
        for job in stale:
            if job.id in active:
                continue
            self.logger.warning(f"⚠️ Job {job.id} in progress since {job.started_at}; treating as stale")
            try:
                portal_config = await asyncio.to_thread(self.job_store.get_portal_config, job.jurisdiction_code)
                outcomes.append(await self.runner.record_failure(job, self.reason, None, portal_config))
            except Exception as e:
                self.logger.error(f"❌ Could not recover stale job {job.id}: {e}")

        if outcomes:
            self.logger.info(f"🧹 Stale sweep handled {len(outcomes)} job(s)")
        return outcomes

    async def run_forever(self, stop_event: asyncio.Event, interval: Optional[float] = None) -> None:
        """Sweep every ``interval`` seconds until ``stop_event`` is set."""
        interval = interval or config.SWEEP_INTERVAL_SECONDS
        while not stop_event.is_set():
            try:
                await self.sweep()
            except Exception as e:
                self.logger.error(f"❌ Stale sweep failed: {e}")
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
