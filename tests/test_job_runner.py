import asyncio
from datetime import timedelta

import pytest

from fakes import (
    START,
    ExplodingHook,
    FakeBrowserService,
    ScriptedDriver,
    build_record,
    build_records,
    error_table,
    portal_config,
)
from wotc_portal_bot.application.services import BatchPortalDriver, JobRunner, NotificationService
from wotc_portal_bot.application.services.job_runner import RECORD_DATA_NOT_FOUND
from wotc_portal_bot.domain.models import DriverResult, JobEventType, JobStatus, RecordStatus

LOGIN_FAILED = "Login failed - did not reach dashboard. Current URL: https://portal.example.gov/Account/Login"


def _start(store, repository, records, code="AZ"):
    for record in records:
        repository.add(record)
    job = store.enqueue(code, "emp-1", [record.record_id for record in records], START)
    assert store.claim(job.id, START)
    return job


def _run(runner, job_id):
    return asyncio.run(runner.run_job(job_id))


# ================================
# SUCCESS PATHS
# ================================


def test_partial_acceptance_end_to_end(store, repository, make_runner, hook, timing, logger, tmp_path):
    browser = FakeBrowserService(validation_passes=[error_table((3, "SSN is invalid"), (7, "DOB required", "Form8850_ApplicantDOB"))])
    driver = BatchPortalDriver(
        lambda session_logger: browser,
        timing,
        logger,
        max_attempts=3,
        screenshot_dir=str(tmp_path / "screenshots"),
        upload_dir=str(tmp_path / "uploads"),
    )
    job = _start(store, repository, build_records(10))

    outcome = _run(make_runner(driver), job.id)

    assert outcome.status == JobStatus.COMPLETED
    assert (outcome.records_submitted, outcome.records_rejected) == (8, 2)
    assert outcome.confirmation_number == "20451"

    done = store.get_job(job.id)
    assert done.status == JobStatus.COMPLETED
    assert done.result_summary["attempts"] == 2
    records = {r.id: r for r in store.get_records(job.id)}
    assert records["rec-03"].status == RecordStatus.FAILED
    assert records["rec-03"].last_failure_reason == "Form8850_ApplicantSSN: SSN is invalid"
    assert records["rec-07"].last_failure_reason == "Form8850_ApplicantDOB: DOB required"
    assert sum(r.status == RecordStatus.SUBMITTED for r in records.values()) == 8

    [event] = hook.events
    assert event.event == JobEventType.SUBMITTED
    assert event.records_submitted == 8
    assert {row["recordId"] for row in event.rejected_rows} == {"rec-03", "rec-07"}


def test_invalid_records_are_excluded_before_encoding(store, repository, make_runner):
    records = [build_record(1), build_record(2, ssn=""), build_record(3)]
    job = _start(store, repository, records)
    driver = ScriptedDriver("accept")

    outcome = _run(make_runner(driver), job.id)

    assert outcome.status == JobStatus.COMPLETED
    assert driver.artifacts[0].record_ids == ("rec-01", "rec-03")
    assert driver.job_ids == [job.id]
    excluded = store.get_record("rec-02")
    assert excluded.status == RecordStatus.FAILED
    assert excluded.last_failure_reason == "SSN required"
    assert excluded.assigned_job_id is None
    assert store.get_job(job.id).records_rejected == 1


def test_records_without_data_are_excluded(store, repository, make_runner):
    repository.add(build_record(1))
    job = store.enqueue("AZ", "emp-1", ["rec-01", "rec-02"], START)
    assert store.claim(job.id, START)

    outcome = _run(make_runner(ScriptedDriver("accept")), job.id)

    assert outcome.status == JobStatus.COMPLETED
    assert store.get_record("rec-02").last_failure_reason == RECORD_DATA_NOT_FOUND


def test_run_skips_missing_and_unclaimed_jobs(store, repository, make_runner):
    repository.add(build_record(1))
    pending = store.enqueue("AZ", "emp-1", ["rec-01"], START)
    runner = make_runner(ScriptedDriver())

    assert _run(runner, "no-such-job") is None
    assert _run(runner, pending.id) is None
    assert store.get_job(pending.id).status == JobStatus.PENDING


# ================================
# NON-RETRYABLE FAILURES
# ================================


def test_all_invalid_fails_without_retry(store, repository, make_runner, hook):
    job = _start(store, repository, [build_record(1, groups=()), build_record(2, city="")])
    driver = ScriptedDriver()

    outcome = _run(make_runner(driver), job.id)

    assert outcome.status == JobStatus.FAILED
    assert outcome.message == "No valid records to submit after validation"
    assert driver.artifacts == []
    failed = store.get_job(job.id)
    assert failed.retry_count == 0
    assert hook.events[0].event == JobEventType.FAILED


@pytest.mark.parametrize(
    "code, config, expected",
    [
        ("TX", None, "Portal configuration not found for TX"),
        ("AZ", portal_config("AZ", automation_enabled=False), "Automation is not enabled for AZ"),
        ("AZ", portal_config("AZ", password=""), "Portal credentials are not configured for AZ"),
        ("GA", portal_config("GA"), "Georgia has no browser portal; batches are delivered as CSDC files"),
    ],
)
def test_configuration_errors_fail_without_retry(store, repository, make_runner, code, config, expected):
    if config is not None:
        store.save_portal_config(config)
    job = _start(store, repository, build_records(2, state=code), code=code)
    driver = ScriptedDriver()

    outcome = _run(make_runner(driver), job.id)

    assert outcome.status == JobStatus.FAILED
    assert outcome.message == expected
    assert driver.artifacts == []
    assert store.get_job(job.id).error_message == expected


def test_portal_batch_limit_fails_without_retry(store, repository, make_runner):
    store.save_portal_config(portal_config("AZ", max_records_per_batch=2))
    job = _start(store, repository, build_records(3))

    outcome = _run(make_runner(ScriptedDriver()), job.id)

    assert outcome.status == JobStatus.FAILED
    assert outcome.message == "3 records exceed the 2-record limit for AZ"


# ================================
# RETRIES
# ================================


def test_driver_failures_back_off_then_fail(store, repository, make_runner, clock, hook):
    job = _start(store, repository, build_records(2))
    failure = DriverResult.failed(LOGIN_FAILED, requested=2)
    runner = make_runner(ScriptedDriver(failure, failure, failure))

    first = _run(runner, job.id)
    assert first.retried
    assert first.next_retry_at == START + timedelta(seconds=5)
    assert store.get_job(job.id).retry_count == 1
    assert all(r.status == RecordStatus.READY for r in store.get_records(job.id))

    now = clock.advance(seconds=5)
    assert store.claim(job.id, now)
    second = _run(runner, job.id)
    assert second.next_retry_at == now + timedelta(seconds=10)

    now = clock.advance(seconds=10)
    assert store.claim(job.id, now)
    third = _run(runner, job.id)

    assert third.status == JobStatus.FAILED
    failed = store.get_job(job.id)
    assert failed.status == JobStatus.FAILED
    assert failed.retry_count == 3
    assert failed.error_message == LOGIN_FAILED
    assert failed.result_summary["success"] is False
    assert [e.event for e in hook.events] == [JobEventType.FAILED]
    assert hook.events[0].error_message == LOGIN_FAILED


def test_unexpected_exception_counts_as_attempt(store, repository, make_runner):
    job = _start(store, repository, build_records(1))

    outcome = _run(make_runner(ScriptedDriver(RuntimeError("chrome crashed"))), job.id)

    assert outcome.retried
    pending = store.get_job(job.id)
    assert pending.status == JobStatus.PENDING
    assert pending.error_message == "chrome crashed"
    assert pending.retry_count == 1


def test_runner_backoff_override(store, repository, encoder, logger, clock):
    job = _start(store, repository, build_records(1))
    runner = JobRunner(
        store,
        repository,
        encoder,
        ScriptedDriver(DriverResult.failed("timeout", requested=1)),
        NotificationService([], logger),
        logger,
        clock=clock,
        retry_delay_base=60,
    )

    outcome = _run(runner, job.id)

    assert outcome.next_retry_at == START + timedelta(seconds=60)


# ================================
# NOTIFICATIONS
# ================================


def test_failing_hook_does_not_affect_outcome(store, repository, make_runner, hook):
    job = _start(store, repository, build_records(1))

    outcome = _run(make_runner(ScriptedDriver("accept"), hooks=[ExplodingHook(), hook]), job.id)

    assert outcome.status == JobStatus.COMPLETED
    assert store.get_job(job.id).status == JobStatus.COMPLETED
    assert hook.events[0].confirmation_number == "C-1"
