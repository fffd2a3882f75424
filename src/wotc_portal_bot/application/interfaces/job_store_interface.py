"""Interface for the persistent job store."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from wotc_portal_bot.domain.models import JobStatus, PortalConfig, QueueRecord, SubmissionJob


class IJobStore(ABC):
    """
    Interface for job and record persistence.

    State-changing operations are conditional on the current status and
    return ``False`` when the row was not in the expected state, so two
    processes sharing a database can never both win the same transition.
    """

    @abstractmethod
    def enqueue(
        self,
        jurisdiction_code: str,
        employer_id: str,
        record_ids: Sequence[str],
        now: datetime,
        max_retries: Optional[int] = None,
    ) -> SubmissionJob:
        """Create a pending job and bind its records in one transaction."""

    @abstractmethod
    def get_job(self, job_id: str) -> Optional[SubmissionJob]:
        """Get one job by id."""

    @abstractmethod
    def list_jobs(self, status: Optional[JobStatus] = None, limit: int = 50) -> List[SubmissionJob]:
        """List jobs, newest first."""

    @abstractmethod
    def get_records(self, job_id: str) -> List[QueueRecord]:
        """Records currently bound to a job."""

    @abstractmethod
    def find_dispatchable(self, limit: int, now: datetime) -> List[SubmissionJob]:
        """Pending jobs whose retry time has passed, oldest first."""

    @abstractmethod
    def claim(self, job_id: str, now: datetime) -> bool:
        """Move a pending job to in_progress. False when another worker won."""

    @abstractmethod
    def complete(
        self,
        job_id: str,
        now: datetime,
        confirmation_number: Optional[str],
        submitted_record_ids: Sequence[str],
        rejected_reasons: Dict[str, str],
        result_summary: Optional[Dict] = None,
    ) -> bool:
        """Mark the job completed and reconcile each bound record."""

    @abstractmethod
    def schedule_retry(
        self, job_id: str, now: datetime, next_retry_at: datetime, error_message: str, retry_count: int
    ) -> bool:
        """Return the job to pending and release its records."""

    @abstractmethod
    def fail(
        self,
        job_id: str,
        now: datetime,
        error_message: str,
        retry_count: Optional[int] = None,
        result_summary: Optional[Dict] = None,
    ) -> bool:
        """Mark the job failed and fail every bound record."""

    @abstractmethod
    def exclude_records(self, job_id: str, reasons: Dict[str, str]) -> int:
        """Fail and unbind records that did not pass pre-encode validation."""

    @abstractmethod
    def find_stale(self, started_before: datetime) -> List[SubmissionJob]:
        """In-progress jobs started before the cutoff."""

    @abstractmethod
    def get_portal_config(self, jurisdiction_code: str) -> Optional[PortalConfig]:
        """Get the portal settings for one jurisdiction."""

    @abstractmethod
    def save_portal_config(self, portal_config: PortalConfig) -> None:
        """Insert or replace portal settings."""
