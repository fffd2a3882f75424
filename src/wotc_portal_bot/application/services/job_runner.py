"""
Job Runner: executes one claimed submission job end to end.

Loads the job's records and portal configuration, drops records that fail
pre-encode validation, encodes the rest, hands the artifact to the portal
driver and maps the driver's result back onto job and record state.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from wotc_portal_bot.application.interfaces import IJobStore, ILoggingService, IPortalDriver, IRecordRepository
from wotc_portal_bot.application.services.notification_service import NotificationService
from wotc_portal_bot.config import config
from wotc_portal_bot.domain.models import (
    ConfigurationError,
    DriverResult,
    JobEvent,
    JobEventType,
    JobStatus,
    PortalConfig,
    SubmissionJob,
    SubmissionRecord,
)
from wotc_portal_bot.domain.services import Clock, FormatEncoder, RetryPolicy, SystemClock, get_jurisdiction, messages_by_record

RECORD_DATA_NOT_FOUND = "Record data not found"


@dataclass(frozen=True)
class RunOutcome:
    """What happened to a job after one run."""

    job_id: str
    status: JobStatus
    message: str
    records_submitted: int = 0
    records_rejected: int = 0
    confirmation_number: Optional[str] = None
    next_retry_at: Optional[datetime] = None

    @property
    def retried(self) -> bool:
        return self.status == JobStatus.PENDING


class JobRunner:
    """
    Runs claimed jobs and owns their failure accounting.

    Store calls are blocking and go through ``asyncio.to_thread``; the driver
    is awaited directly. ``run_job`` never raises for a job it could load:
    anything unexpected becomes a failed attempt.
    """

    def __init__(
        self,
        job_store: IJobStore,
        record_repository: IRecordRepository,
        encoder: FormatEncoder,
        driver: IPortalDriver,
        notifications: NotificationService,
        logging_service: ILoggingService,
        clock: Optional[Clock] = None,
        retry_delay_base: Optional[float] = None,
    ):
        """
        Initialize job runner.

        Args:
            job_store: Persistence for jobs and records
            record_repository: Source of canonical record data
            encoder: Format encoder
            driver: Portal driver
            notifications: Terminal-state fan-out
            logging_service: Service for logging operations
            clock: Time source (system clock if None)
            retry_delay_base: Override for every portal's backoff base, in seconds
        """
        self.job_store = job_store
        self.records = record_repository
        self.encoder = encoder
        self.driver = driver
        self.notifications = notifications
        self.logger = logging_service
        self.clock = clock or SystemClock()
        self.retry_delay_base = retry_delay_base

    # ================================
    # RUN
    # ================================

    async def run_job(self, job_id: str) -> Optional[RunOutcome]:
        """
        Execute one claimed job.

        Args:
            job_id: Job previously moved to in_progress by ``claim``

        Returns:
            RunOutcome, or None when the job is missing or not in progress
        """
        job = await asyncio.to_thread(self.job_store.get_job, job_id)
        if job is None:
            self.logger.error(f"❌ Job {job_id} not found")
            return None
        if job.status != JobStatus.IN_PROGRESS:
            self.logger.warning(f"⚠️ Job {job_id} is {job.status.value}, not in progress; skipping")
            return None

        self.logger.info(f"🚀 Running job {job.id} for {job.jurisdiction_code} ({len(job.record_ids)} records)")
        portal_config: Optional[PortalConfig] = None

        try:
            portal_config = await self._load_portal_config(job)
            records = await self._prepare_records(job)
            if not records:
                return await self._fail_terminal(job, "No valid records to submit after validation")

            ceiling = self._ceiling(job, portal_config)
            if len(records) > ceiling:
                return await self._fail_terminal(
                    job, f"{len(records)} records exceed the {ceiling}-record limit for {job.jurisdiction_code}"
                )

            artifact = self.encoder.encode(job.jurisdiction_code, records)
            self.logger.info(f"📤 Encoded {artifact.row_count} records into {artifact.file_name}")

            with self.logger.time_operation(f"Portal submission for job {job.id}"):
                result = await self.driver.submit(artifact, portal_config, job.id)
            if result.success:
                return await self._complete(job, result)
            return await self.record_failure(job, result.message, result, portal_config)

        except ConfigurationError as e:
            self.logger.error(f"❌ Job {job.id} configuration error: {e}")
            return await self._fail_terminal(job, str(e))
        except Exception as e:
            self.logger.error(f"❌ Job {job.id} failed unexpectedly: {e}")
            return await self.record_failure(job, str(e), None, portal_config)

    async def _load_portal_config(self, job: SubmissionJob) -> PortalConfig:
        """
        Raises:
            ConfigurationError: No config, automation disabled, no browser portal or no credentials
        """
        code = job.jurisdiction_code
        portal_config = await asyncio.to_thread(self.job_store.get_portal_config, code)
        if portal_config is None:
            raise ConfigurationError(f"Portal configuration not found for {code}")
        if not portal_config.automation_enabled:
            raise ConfigurationError(f"Automation is not enabled for {code}")

        descriptor = get_jurisdiction(code)
        if not descriptor.has_browser_portal:
            raise ConfigurationError(f"{descriptor.name} has no browser portal; batches are delivered as CSDC files")
        if not portal_config.has_credentials:
            raise ConfigurationError(f"Portal credentials are not configured for {code}")
        return portal_config

    async def _prepare_records(self, job: SubmissionJob) -> List[SubmissionRecord]:
        """Load bound records in enqueue order; exclude the ones that cannot be encoded."""
        bound = {record.id for record in await asyncio.to_thread(self.job_store.get_records, job.id)}
        ordered = [rid for rid in job.record_ids if rid in bound]
        data = await asyncio.to_thread(self.records.load, ordered)

        valid: List[SubmissionRecord] = []
        invalid: Dict[str, str] = {}
        for record_id in ordered:
            record = data.get(record_id)
            if record is None:
                invalid[record_id] = RECORD_DATA_NOT_FOUND
                continue
            validation = self.encoder.validate(job.jurisdiction_code, record.employee, record.screening)
            if validation.valid:
                valid.append(record)
            else:
                invalid[record_id] = validation.reason

        if invalid:
            excluded = await asyncio.to_thread(self.job_store.exclude_records, job.id, invalid)
            self.logger.warning(f"⚠️ Job {job.id}: excluded {excluded} record(s) that failed validation")
            for record_id, reason in invalid.items():
                self.logger.debug(f"   {record_id}: {reason}")

        return valid

    @staticmethod
    def _ceiling(job: SubmissionJob, portal_config: PortalConfig) -> int:
        ceiling = get_jurisdiction(job.jurisdiction_code).max_records
        if portal_config.max_records_per_batch:
            ceiling = min(ceiling, portal_config.max_records_per_batch)
        return ceiling

    # ================================
    # OUTCOMES
    # ================================

    async def _complete(self, job: SubmissionJob, result: DriverResult) -> RunOutcome:
        now = self.clock.now()
        confirmation = ", ".join(result.confirmation_numbers) or None
        reasons = messages_by_record(result.rejected_rows)

        done = await asyncio.to_thread(
            self.job_store.complete,
            job.id,
            now,
            confirmation,
            list(result.submitted_record_ids),
            reasons,
            result.to_summary(),
        )
        if not done:
            return RunOutcome(job.id, JobStatus.IN_PROGRESS, "Job left in_progress before completion")

        refreshed = await asyncio.to_thread(self.job_store.get_job, job.id)
        self.logger.info(
            f"✅ Job {job.id} completed: {refreshed.records_submitted} submitted, "
            f"{refreshed.records_rejected} rejected, confirmation {confirmation or 'n/a'}"
        )
        await self._publish(refreshed, JobEventType.SUBMITTED, result)
        return RunOutcome(
            job_id=job.id,
            status=JobStatus.COMPLETED,
            message=result.message,
            records_submitted=refreshed.records_submitted,
            records_rejected=refreshed.records_rejected,
            confirmation_number=confirmation,
        )

    async def record_failure(
        self,
        job: SubmissionJob,
        message: str,
        driver_result: Optional[DriverResult] = None,
        portal_config: Optional[PortalConfig] = None,
    ) -> RunOutcome:
        """
        Count one failed attempt: back to pending with backoff, or failed when exhausted.

        Args:
            job: Job as loaded before the attempt
            message: Failure reason stored on the job and its records
            driver_result: Driver outcome, when the driver ran
            portal_config: Supplies the backoff base, when loaded

        Returns:
            RunOutcome with status PENDING (retry scheduled) or FAILED
        """
        now = self.clock.now()
        retry_count = job.retry_count + 1
        policy = RetryPolicy(job.max_retries, self._retry_base(portal_config))
        summary = driver_result.to_summary() if driver_result else None

        if policy.should_retry(retry_count):
            next_retry_at = policy.next_retry_at(now, retry_count)
            moved = await asyncio.to_thread(
                self.job_store.schedule_retry, job.id, now, next_retry_at, message, retry_count
            )
            if moved:
                self.logger.warning(
                    f"🔄 Job {job.id} attempt {retry_count}/{job.max_retries} failed: {message}. "
                    f"Retrying at {next_retry_at.isoformat()}"
                )
                return RunOutcome(job.id, JobStatus.PENDING, message, next_retry_at=next_retry_at)
            return RunOutcome(job.id, JobStatus.IN_PROGRESS, "Job left in_progress before retry scheduling")

        failed = await asyncio.to_thread(self.job_store.fail, job.id, now, message, retry_count, summary)
        if not failed:
            return RunOutcome(job.id, JobStatus.IN_PROGRESS, "Job left in_progress before failing")

        self.logger.error(f"❌ Job {job.id} failed after {retry_count} attempt(s): {message}")
        refreshed = await asyncio.to_thread(self.job_store.get_job, job.id)
        await self._publish(refreshed, JobEventType.FAILED, driver_result)
        return RunOutcome(job.id, JobStatus.FAILED, message, records_rejected=refreshed.records_rejected)

    async def _fail_terminal(self, job: SubmissionJob, message: str) -> RunOutcome:
        """Fail without retry; used for configuration and validation outcomes."""
        now = self.clock.now()
        failed = await asyncio.to_thread(self.job_store.fail, job.id, now, message)
        if not failed:
            return RunOutcome(job.id, JobStatus.IN_PROGRESS, "Job left in_progress before failing")

        self.logger.error(f"❌ Job {job.id} failed without retry: {message}")
        refreshed = await asyncio.to_thread(self.job_store.get_job, job.id)
        await self._publish(refreshed, JobEventType.FAILED, None)
        return RunOutcome(job.id, JobStatus.FAILED, message, records_rejected=refreshed.records_rejected)

    def _retry_base(self, portal_config: Optional[PortalConfig]) -> float:
        if self.retry_delay_base is not None:
            return self.retry_delay_base
        if portal_config is not None:
            return portal_config.retry_delay_base_seconds
        return config.RETRY_DELAY_BASE_SECONDS

    async def _publish(
        self, job: SubmissionJob, event_type: JobEventType, driver_result: Optional[DriverResult]
    ) -> None:
        rejected: Tuple[Dict, ...] = tuple(row.to_dict() for row in driver_result.rejected_rows) if driver_result else ()
        event = JobEvent(
            event=event_type,
            job_id=job.id,
            jurisdiction_code=job.jurisdiction_code,
            employer_id=job.employer_id,
            occurred_at=self.clock.now(),
            confirmation_number=job.confirmation_number,
            records_submitted=job.records_submitted,
            records_rejected=job.records_rejected,
            error_message=job.error_message,
            rejected_rows=rejected,
        )
        try:
            await self.notifications.publish(event)
        except Exception as e:
            self.logger.error(f"❌ Publishing {event_type.value} for job {job.id} failed: {e}")
