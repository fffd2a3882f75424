"""Domain models for submission jobs, queue records and portal configuration."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class JobStatus(Enum):
    """Lifecycle of a submission job."""

    PENDING = "pending"  # Waiting for a poller, possibly until next_retry_at
    IN_PROGRESS = "in_progress"  # Claimed by exactly one orchestrator
    COMPLETED = "completed"  # Portal accepted the batch
    FAILED = "failed"  # Retries exhausted or non-retryable error

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class RecordStatus(Enum):
    """Lifecycle of a queue record."""

    READY = "ready"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    FAILED = "failed"


@dataclass(frozen=True)
class SubmissionJob:
    """
    Snapshot of a submission job as persisted by the job store.

    A job is bound to one jurisdiction and one employer. ``record_ids`` keeps
    the ids requested at enqueue time; records excluded later are unbound from
    the job but stay listed here for the audit trail.
    """

    id: str
    jurisdiction_code: str
    employer_id: str
    record_ids: Tuple[str, ...]
    status: JobStatus = JobStatus.PENDING
    retry_count: int = 0
    max_retries: int = 3
    next_retry_at: Optional[datetime] = None
    confirmation_number: Optional[str] = None
    error_message: Optional[str] = None
    records_submitted: int = 0
    records_rejected: int = 0
    result_summary: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def __post_init__(self):
        """Validate job on creation."""
        if self.retry_count < 0:
            raise ValueError("retry_count cannot be negative")
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


@dataclass(frozen=True)
class QueueRecord:
    """A submission-ready record as tracked by the queue."""

    id: str
    employer_id: str = ""
    jurisdiction_code: str = ""
    status: RecordStatus = RecordStatus.READY
    assigned_job_id: Optional[str] = None
    failure_count: int = 0
    last_failure_reason: Optional[str] = None
    confirmation_number: Optional[str] = None
    submitted_at: Optional[datetime] = None


@dataclass(frozen=True)
class PortalConfig:
    """
    Static per-jurisdiction portal settings.

    Read-only while the scheduler runs; edited through ``seed-portals`` or by
    the platform that owns the credential vault.
    """

    jurisdiction_code: str
    name: str = ""
    portal_url: str = ""
    username: str = ""
    password: str = ""
    automation_enabled: bool = False
    max_retries: int = 3
    retry_delay_base_seconds: float = 5.0
    max_records_per_batch: Optional[int] = None

    def __post_init__(self):
        """Validate configuration on creation."""
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        if self.retry_delay_base_seconds <= 0:
            raise ValueError("retry_delay_base_seconds must be positive")

    @property
    def has_credentials(self) -> bool:
        return bool(self.username and self.password)

    def __repr__(self) -> str:
        return (
            f"PortalConfig(jurisdiction_code={self.jurisdiction_code!r}, portal_url={self.portal_url!r}, "
            f"automation_enabled={self.automation_enabled}, max_retries={self.max_retries})"
        )


class JobEventType(Enum):
    """Terminal events published to notification hooks."""

    SUBMITTED = "submission.submitted"
    FAILED = "submission.failed"


@dataclass(frozen=True)
class JobEvent:
    """Notification payload for a job that reached a terminal state."""

    event: JobEventType
    job_id: str
    jurisdiction_code: str
    employer_id: str
    occurred_at: datetime
    confirmation_number: Optional[str] = None
    records_submitted: int = 0
    records_rejected: int = 0
    error_message: Optional[str] = None
    rejected_rows: Tuple[Dict[str, Any], ...] = field(default_factory=tuple)

    def to_payload(self) -> Dict[str, Any]:
        """Serialize for webhook delivery."""
        return {
            "event": self.event.value,
            "timestamp": self.occurred_at.isoformat(),
            "data": {
                "jobId": self.job_id,
                "jurisdictionCode": self.jurisdiction_code,
                "employerId": self.employer_id,
                "confirmationNumber": self.confirmation_number,
                "recordsSubmitted": self.records_submitted,
                "recordsRejected": self.records_rejected,
                "errorMessage": self.error_message,
                "rejectedRows": list(self.rejected_rows),
            },
        }
