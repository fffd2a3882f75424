"""
Job Store backed by SQLAlchemy.

Every state change is a conditional ``UPDATE ... WHERE status = ...`` whose
row count says whether this caller won. Two schedulers sharing a database
therefore never both claim, complete or retry the same job.
"""

import uuid
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from sqlalchemy import or_, select, update

from wotc_portal_bot.application.interfaces import IJobStore, ILoggingService
from wotc_portal_bot.db import Database, PortalConfigRow, QueueRecordRow, SubmissionJobRow
from wotc_portal_bot.domain.models import (
    JobStatus,
    PortalConfig,
    QueueRecord,
    RecordAlreadyBound,
    RecordCeilingExceeded,
    RecordStatus,
    SubmissionJob,
    UnsupportedJurisdiction,
)
from wotc_portal_bot.domain.services import get_jurisdiction

NOT_IN_FINAL_BATCH = "Not present in final submitted batch"

_TERMINAL_JOB_STATUSES = (JobStatus.COMPLETED.value, JobStatus.FAILED.value)
_NO_SYNC = {"synchronize_session": False}


class SqlJobStore(IJobStore):
    """
    Job store on any SQLAlchemy engine (SQLite by default).

    Methods are synchronous and open one transaction each; async callers
    run them through ``asyncio.to_thread``.
    """

    def __init__(self, database: Database, logging_service: ILoggingService, default_max_retries: int = 3):
        """
        Initialize job store.

        Args:
            database: Engine and session factory
            logging_service: Service for logging operations
            default_max_retries: Used when neither the caller nor the portal config sets one
        """
        self.database = database
        self.logger = logging_service
        self.default_max_retries = default_max_retries

    # ================================
    # ENQUEUE
    # ================================

    def enqueue(
        self,
        jurisdiction_code: str,
        employer_id: str,
        record_ids: Sequence[str],
        now: datetime,
        max_retries: Optional[int] = None,
    ) -> SubmissionJob:
        """
        Create a pending job and bind its records to it.

        A record can be bound when it is unassigned or assigned to a terminal
        job, and has not been submitted. Unknown record ids are created as
        ``ready``. Nothing is written unless every record binds.

        Raises:
            ValueError: No record ids, or unknown jurisdiction
            RecordCeilingExceeded: More records than one artifact may carry
            RecordAlreadyBound: Some record is live on another job or submitted
        """
        code = (jurisdiction_code or "").upper()
        ids = list(dict.fromkeys(rid for rid in record_ids if rid))
        if not ids:
            raise ValueError("At least one record id is required")
        try:
            descriptor = get_jurisdiction(code)
        except UnsupportedJurisdiction as e:
            raise ValueError(str(e)) from e
        if len(ids) > descriptor.max_records:
            raise RecordCeilingExceeded(code, len(ids), descriptor.max_records)

        job_id = str(uuid.uuid4())
        with self.database.session_scope() as session:
            if max_retries is None:
                portal = session.get(PortalConfigRow, code)
                max_retries = portal.max_retries if portal else self.default_max_retries

            session.add(
                SubmissionJobRow(
                    id=job_id,
                    jurisdiction_code=code,
                    employer_id=employer_id,
                    record_ids=ids,
                    status=JobStatus.PENDING.value,
                    retry_count=0,
                    max_retries=max_retries,
                    records_submitted=0,
                    records_rejected=0,
                    created_at=now,
                    updated_at=now,
                )
            )

            existing = set(session.scalars(select(QueueRecordRow.id).where(QueueRecordRow.id.in_(ids))))
            for rid in ids:
                if rid not in existing:
                    session.add(
                        QueueRecordRow(
                            id=rid,
                            employer_id=employer_id,
                            jurisdiction_code=code,
                            status=RecordStatus.READY.value,
                            failure_count=0,
                        )
                    )
            session.flush()

            terminal_jobs = select(SubmissionJobRow.id).where(SubmissionJobRow.status.in_(_TERMINAL_JOB_STATUSES))
            refused = []
            for rid in ids:
                result = session.execute(
                    update(QueueRecordRow)
                    .where(
                        QueueRecordRow.id == rid,
                        QueueRecordRow.status != RecordStatus.SUBMITTED.value,
                        or_(QueueRecordRow.assigned_job_id.is_(None), QueueRecordRow.assigned_job_id.in_(terminal_jobs)),
                    )
                    .values(
                        assigned_job_id=job_id,
                        status=RecordStatus.READY.value,
                        employer_id=employer_id,
                        jurisdiction_code=code,
                    )
                    .execution_options(**_NO_SYNC)
                )
                if result.rowcount != 1:
                    refused.append(rid)

            if refused:
                self.logger.warning(f"⚠️ Enqueue refused for {code}: {len(refused)} record(s) already bound")
                raise RecordAlreadyBound(refused)

            job = session.get(SubmissionJobRow, job_id).to_domain()

        self.logger.info(f"📥 Enqueued job {job_id} for {code} with {len(ids)} records")
        return job

    # ================================
    # QUERIES
    # ================================

    def get_job(self, job_id: str) -> Optional[SubmissionJob]:
        with self.database.session_scope() as session:
            row = session.get(SubmissionJobRow, job_id)
            return row.to_domain() if row else None

    def list_jobs(self, status: Optional[JobStatus] = None, limit: int = 50) -> List[SubmissionJob]:
        query = select(SubmissionJobRow).order_by(SubmissionJobRow.created_at.desc()).limit(limit)
        if status is not None:
            query = query.where(SubmissionJobRow.status == status.value)
        with self.database.session_scope() as session:
            return [row.to_domain() for row in session.scalars(query)]

    def get_records(self, job_id: str) -> List[QueueRecord]:
        query = select(QueueRecordRow).where(QueueRecordRow.assigned_job_id == job_id).order_by(QueueRecordRow.id)
        with self.database.session_scope() as session:
            return [row.to_domain() for row in session.scalars(query)]

    def get_record(self, record_id: str) -> Optional[QueueRecord]:
        with self.database.session_scope() as session:
            row = session.get(QueueRecordRow, record_id)
            return row.to_domain() if row else None

    def find_dispatchable(self, limit: int, now: datetime) -> List[SubmissionJob]:
        """Pending jobs whose ``next_retry_at`` is unset or past, oldest first."""
        if limit <= 0:
            return []
        query = (
            select(SubmissionJobRow)
            .where(
                SubmissionJobRow.status == JobStatus.PENDING.value,
                or_(SubmissionJobRow.next_retry_at.is_(None), SubmissionJobRow.next_retry_at <= now),
            )
            .order_by(SubmissionJobRow.created_at, SubmissionJobRow.id)
            .limit(limit)
        )
        with self.database.session_scope() as session:
            return [row.to_domain() for row in session.scalars(query)]

    def find_stale(self, started_before: datetime) -> List[SubmissionJob]:
        query = (
            select(SubmissionJobRow)
            .where(
                SubmissionJobRow.status == JobStatus.IN_PROGRESS.value,
                SubmissionJobRow.started_at < started_before,
            )
            .order_by(SubmissionJobRow.started_at)
        )
        with self.database.session_scope() as session:
            return [row.to_domain() for row in session.scalars(query)]

    # ================================
    # TRANSITIONS
    # ================================

    def claim(self, job_id: str, now: datetime) -> bool:
        """
        Move a pending job to in_progress together with its records.

        Returns:
            True when this caller won the claim
        """
        with self.database.session_scope() as session:
            result = session.execute(
                update(SubmissionJobRow)
                .where(SubmissionJobRow.id == job_id, SubmissionJobRow.status == JobStatus.PENDING.value)
                .values(status=JobStatus.IN_PROGRESS.value, started_at=now, updated_at=now)
                .execution_options(**_NO_SYNC)
            )
            if result.rowcount != 1:
                return False

            session.execute(
                update(QueueRecordRow)
                .where(QueueRecordRow.assigned_job_id == job_id)
                .values(status=RecordStatus.IN_PROGRESS.value)
                .execution_options(**_NO_SYNC)
            )

        self.logger.debug(f"🔒 Claimed job {job_id}")
        return True

    def complete(
        self,
        job_id: str,
        now: datetime,
        confirmation_number: Optional[str],
        submitted_record_ids: Sequence[str],
        rejected_reasons: Dict[str, str],
        result_summary: Optional[Dict] = None,
    ) -> bool:
        """
        Mark an in-progress job completed and reconcile its records.

        Bound records listed in ``submitted_record_ids`` become submitted with
        the confirmation number; the rest fail with their rejection reason.
        """
        submitted = set(submitted_record_ids)
        with self.database.session_scope() as session:
            if not self._transition(session, job_id, JobStatus.COMPLETED, now):
                return False

            accepted = 0
            for record in session.scalars(select(QueueRecordRow).where(QueueRecordRow.assigned_job_id == job_id)):
                if record.id in submitted:
                    record.status = RecordStatus.SUBMITTED.value
                    record.confirmation_number = confirmation_number
                    record.submitted_at = now
                    record.last_failure_reason = None
                    accepted += 1
                else:
                    record.status = RecordStatus.FAILED.value
                    record.failure_count += 1
                    record.last_failure_reason = rejected_reasons.get(record.id, NOT_IN_FINAL_BATCH)

            job = session.get(SubmissionJobRow, job_id)
            job.confirmation_number = confirmation_number
            job.records_submitted = accepted
            job.records_rejected = len(job.record_ids or ()) - accepted
            job.result_summary = result_summary
            job.next_retry_at = None
            job.error_message = None

        self.logger.debug(f"🏁 Job {job_id} completed: {accepted} submitted")
        return True

    def schedule_retry(
        self, job_id: str, now: datetime, next_retry_at: datetime, error_message: str, retry_count: int
    ) -> bool:
        """Send an in-progress job back to pending and release its records."""
        with self.database.session_scope() as session:
            if not self._transition(
                session,
                job_id,
                JobStatus.PENDING,
                now,
                retry_count=retry_count,
                next_retry_at=next_retry_at,
                error_message=error_message,
                started_at=None,
            ):
                return False

            session.execute(
                update(QueueRecordRow)
                .where(QueueRecordRow.assigned_job_id == job_id)
                .values(status=RecordStatus.READY.value, last_failure_reason=error_message)
                .execution_options(**_NO_SYNC)
            )

        self.logger.debug(f"🔄 Job {job_id} rescheduled for {next_retry_at.isoformat()}")
        return True

    def fail(
        self,
        job_id: str,
        now: datetime,
        error_message: str,
        retry_count: Optional[int] = None,
        result_summary: Optional[Dict] = None,
    ) -> bool:
        """Mark an in-progress job failed; every bound record fails with the same reason."""
        values = {"error_message": error_message, "next_retry_at": None, "records_submitted": 0}
        if retry_count is not None:
            values["retry_count"] = retry_count
        if result_summary is not None:
            values["result_summary"] = result_summary

        with self.database.session_scope() as session:
            if not self._transition(session, job_id, JobStatus.FAILED, now, **values):
                return False

            job = session.get(SubmissionJobRow, job_id)
            job.records_rejected = len(job.record_ids or ())

            session.execute(
                update(QueueRecordRow)
                .where(QueueRecordRow.assigned_job_id == job_id)
                .values(
                    status=RecordStatus.FAILED.value,
                    failure_count=QueueRecordRow.failure_count + 1,
                    last_failure_reason=error_message,
                )
                .execution_options(**_NO_SYNC)
            )

        self.logger.debug(f"💀 Job {job_id} failed: {error_message}")
        return True

    def exclude_records(self, job_id: str, reasons: Dict[str, str]) -> int:
        """
        Fail and unbind records that cannot be encoded.

        Returns:
            Number of records excluded
        """
        excluded = 0
        with self.database.session_scope() as session:
            for record_id, reason in reasons.items():
                result = session.execute(
                    update(QueueRecordRow)
                    .where(QueueRecordRow.id == record_id, QueueRecordRow.assigned_job_id == job_id)
                    .values(
                        status=RecordStatus.FAILED.value,
                        failure_count=QueueRecordRow.failure_count + 1,
                        last_failure_reason=reason,
                        assigned_job_id=None,
                    )
                    .execution_options(**_NO_SYNC)
                )
                excluded += result.rowcount
        return excluded

    def _transition(self, session, job_id: str, target: JobStatus, now: datetime, **values) -> bool:
        """Conditional move out of in_progress. False when the job was not in progress."""
        if target.is_terminal:
            values["completed_at"] = now
        result = session.execute(
            update(SubmissionJobRow)
            .where(SubmissionJobRow.id == job_id, SubmissionJobRow.status == JobStatus.IN_PROGRESS.value)
            .values(status=target.value, updated_at=now, **values)
            .execution_options(**_NO_SYNC)
        )
        if result.rowcount != 1:
            self.logger.warning(f"⚠️ Job {job_id} was not in progress; {target.value} transition skipped")
            return False
        return True

    # ================================
    # PORTAL CONFIGURATION
    # ================================

    def get_portal_config(self, jurisdiction_code: str) -> Optional[PortalConfig]:
        with self.database.session_scope() as session:
            row = session.get(PortalConfigRow, jurisdiction_code.upper())
            return row.to_domain() if row else None

    def save_portal_config(self, portal_config: PortalConfig) -> None:
        code = portal_config.jurisdiction_code.upper()
        with self.database.session_scope() as session:
            row = session.get(PortalConfigRow, code)
            if row is None:
                row = PortalConfigRow(jurisdiction_code=code)
                session.add(row)
            row.apply(portal_config)
