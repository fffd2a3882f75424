"""ORM tables and their conversion to domain snapshots."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Boolean, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from wotc_portal_bot.domain.models import (
    JobStatus,
    PortalConfig,
    QueueRecord,
    RecordStatus,
    SubmissionJob,
)

from .base import Base


class SubmissionJobRow(Base):
    """One batch submission to one jurisdiction for one employer."""

    __tablename__ = "submission_jobs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    jurisdiction_code: Mapped[str] = mapped_column(String(2), index=True)
    employer_id: Mapped[str] = mapped_column(String(64), index=True)
    record_ids: Mapped[List[str]] = mapped_column(JSON, default=list)
    status: Mapped[str] = mapped_column(String(16), index=True, default=JobStatus.PENDING.value)
    retry_count: Mapped[int] = mapped_column(Integer, default=0)
    max_retries: Mapped[int] = mapped_column(Integer, default=3)
    next_retry_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    confirmation_number: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    records_submitted: Mapped[int] = mapped_column(Integer, default=0)
    records_rejected: Mapped[int] = mapped_column(Integer, default=0)
    result_summary: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime)
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    def to_domain(self) -> SubmissionJob:
        return SubmissionJob(
            id=self.id,
            jurisdiction_code=self.jurisdiction_code,
            employer_id=self.employer_id,
            record_ids=tuple(self.record_ids or ()),
            status=JobStatus(self.status),
            retry_count=self.retry_count,
            max_retries=self.max_retries,
            next_retry_at=self.next_retry_at,
            confirmation_number=self.confirmation_number,
            error_message=self.error_message,
            records_submitted=self.records_submitted,
            records_rejected=self.records_rejected,
            result_summary=self.result_summary,
            created_at=self.created_at,
            updated_at=self.updated_at,
            started_at=self.started_at,
            completed_at=self.completed_at,
        )


class QueueRecordRow(Base):
    """Submission state of one employee record."""

    __tablename__ = "queue_records"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    employer_id: Mapped[str] = mapped_column(String(64), default="")
    jurisdiction_code: Mapped[str] = mapped_column(String(2), default="")
    status: Mapped[str] = mapped_column(String(16), index=True, default=RecordStatus.READY.value)
    assigned_job_id: Mapped[Optional[str]] = mapped_column(String(36), index=True, nullable=True)
    failure_count: Mapped[int] = mapped_column(Integer, default=0)
    last_failure_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    confirmation_number: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    submitted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    def to_domain(self) -> QueueRecord:
        return QueueRecord(
            id=self.id,
            employer_id=self.employer_id,
            jurisdiction_code=self.jurisdiction_code,
            status=RecordStatus(self.status),
            assigned_job_id=self.assigned_job_id,
            failure_count=self.failure_count,
            last_failure_reason=self.last_failure_reason,
            confirmation_number=self.confirmation_number,
            submitted_at=self.submitted_at,
        )


class PortalConfigRow(Base):
    """Portal URL, credentials and automation switch for one jurisdiction."""

    __tablename__ = "portal_configs"

    jurisdiction_code: Mapped[str] = mapped_column(String(2), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), default="")
    portal_url: Mapped[str] = mapped_column(String(512), default="")
    username: Mapped[str] = mapped_column(String(255), default="")
    password: Mapped[str] = mapped_column(String(255), default="")
    automation_enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    max_retries: Mapped[int] = mapped_column(Integer, default=3)
    retry_delay_base_seconds: Mapped[float] = mapped_column(Float, default=5.0)
    max_records_per_batch: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    def to_domain(self) -> PortalConfig:
        return PortalConfig(
            jurisdiction_code=self.jurisdiction_code,
            name=self.name,
            portal_url=self.portal_url,
            username=self.username,
            password=self.password,
            automation_enabled=self.automation_enabled,
            max_retries=self.max_retries,
            retry_delay_base_seconds=self.retry_delay_base_seconds,
            max_records_per_batch=self.max_records_per_batch,
        )

    def apply(self, portal_config: PortalConfig) -> None:
        self.name = portal_config.name
        self.portal_url = portal_config.portal_url
        self.username = portal_config.username
        self.password = portal_config.password
        self.automation_enabled = portal_config.automation_enabled
        self.max_retries = portal_config.max_retries
        self.retry_delay_base_seconds = portal_config.retry_delay_base_seconds
        self.max_records_per_batch = portal_config.max_records_per_batch
