#!/usr/bin/env python3
"""
WOTC Portal Bot - Main Entry Point.

Single entry point for the submission scheduler and its maintenance
commands. Wires the services together from config.py.
"""

import argparse
import asyncio
import sys
from dataclasses import dataclass
from typing import List, Optional

from wotc_portal_bot.application.services import (
    BatchPortalDriver,
    BrowserService,
    JobRunner,
    JsonRecordRepository,
    LoggingService,
    SqlJobStore,
    TimingService,
    build_notification_service,
)
from wotc_portal_bot.automations import StaleJobSweeper, SubmissionScheduler
from wotc_portal_bot.config import config
from wotc_portal_bot.db import Database
from wotc_portal_bot.domain.models import JobStatus, PortalConfig, SubmissionError
from wotc_portal_bot.domain.services import (
    EncoderOptions,
    FormatEncoder,
    SystemClock,
    get_jurisdiction,
    supported_codes,
)


@dataclass
class Services:
    """Everything a command needs, built once from configuration."""

    logger: LoggingService
    database: Database
    job_store: SqlJobStore
    records: JsonRecordRepository
    encoder: FormatEncoder
    runner: JobRunner
    scheduler: SubmissionScheduler
    sweeper: StaleJobSweeper

    def close(self) -> None:
        self.database.dispose()


def build_services(database_url: Optional[str] = None, records_file: Optional[str] = None) -> Services:
    """Create and wire every service with dependency injection."""
    log_level = "DEBUG" if config.ENABLE_DEBUG_LOGS else config.LOG_LEVEL
    logger = LoggingService(log_level=log_level, log_file=config.LOG_FILE or None)
    clock = SystemClock()

    database = Database(database_url or config.DATABASE_URL, echo=config.DATABASE_ECHO)
    database.create_tables()
    job_store = SqlJobStore(database, logger.child("store"), default_max_retries=config.MAX_RETRIES)
    records = JsonRecordRepository(records_file or config.RECORDS_FILE, logger.child("records"))
    encoder = FormatEncoder(EncoderOptions(consultant_ein=config.CONSULTANT_EIN, csdc_pin=config.CSDC_PIN))

    driver_logger = logger.child("driver")
    driver = BatchPortalDriver(
        browser_factory=BrowserService,
        timing_service=TimingService(driver_logger),
        logging_service=driver_logger,
    )
    runner = JobRunner(
        job_store=job_store,
        record_repository=records,
        encoder=encoder,
        driver=driver,
        notifications=build_notification_service(logger.child("notify")),
        logging_service=logger.child("runner"),
        clock=clock,
    )
    scheduler = SubmissionScheduler(job_store, runner, logger.child("scheduler"), clock=clock)
    sweeper = StaleJobSweeper(
        job_store, runner, logger.child("sweeper"), clock=clock, active_job_ids=scheduler.active_job_ids
    )
    return Services(logger, database, job_store, records, encoder, runner, scheduler, sweeper)


# ================================
# COMMANDS
# ================================


def run_scheduler(services: Services) -> int:
    """Run the scheduler loop and the stale sweeper until interrupted."""
    print("🚀 WOTC Portal Bot - Submission Scheduler")
    print("=" * 60)
    print(f"⏱️ Poll interval: {services.scheduler.poll_interval:g}s")
    print(f"⚙️ Max concurrent jobs: {services.scheduler.max_concurrent}")
    print(f"🧹 Stale timeout: {services.sweeper.timeout_minutes:g} minutes")
    print("=" * 60)

    async def _serve():
        sweeper_stop = asyncio.Event()
        sweeper_task = asyncio.create_task(services.sweeper.run_forever(sweeper_stop))
        try:
            await services.scheduler.run_forever()
        finally:
            sweeper_stop.set()
            await sweeper_task

    try:
        asyncio.run(_serve())
    except KeyboardInterrupt:
        print("\n⚠️ Scheduler interrupted by user")
    return 0


def poll_once(services: Services) -> int:
    """One poll-and-dispatch cycle, waiting for the dispatched jobs."""

    async def _poll() -> List[str]:
        dispatched = await services.scheduler.poll_and_dispatch()
        await services.scheduler.wait_idle()
        return dispatched

    dispatched = asyncio.run(_poll())

    print("\n" + "=" * 60)
    print("📊 POLL RESULTS")
    print("=" * 60)
    if not dispatched:
        print("ℹ️ No jobs were due")
    for job_id in dispatched:
        print_job_line(services.job_store.get_job(job_id))
    print("=" * 60)
    return 0


def enqueue(services: Services, code: str, employer_id: str, record_ids: List[str], max_retries: Optional[int]) -> int:
    """Create a pending job."""
    try:
        job = services.job_store.enqueue(code, employer_id, record_ids, SystemClock().now(), max_retries=max_retries)
    except (SubmissionError, ValueError) as e:
        print(f"❌ Enqueue failed: {e}")
        return 1

    print(f"✅ Enqueued job {job.id}")
    print(f"   Jurisdiction: {job.jurisdiction_code}")
    print(f"   Records: {len(job.record_ids)}")
    print(f"   Max retries: {job.max_retries}")
    return 0


def show_status(services: Services, job_id: Optional[str], status: Optional[str], limit: int) -> int:
    """Print recent jobs, or one job with its records."""
    store = services.job_store

    if job_id:
        job = store.get_job(job_id)
        if job is None:
            print(f"❌ Job not found: {job_id}")
            return 1

        print("=" * 60)
        print(f"📋 JOB {job.id}")
        print("=" * 60)
        print(f"Jurisdiction:  {job.jurisdiction_code}")
        print(f"Employer:      {job.employer_id}")
        print(f"Status:        {job.status.value}")
        print(f"Attempts:      {job.retry_count}/{job.max_retries}")
        if job.next_retry_at:
            print(f"Next retry:    {job.next_retry_at.isoformat()}")
        if job.confirmation_number:
            print(f"Confirmation:  {job.confirmation_number}")
        if job.error_message:
            print(f"Error:         {job.error_message}")
        print(f"Submitted:     {job.records_submitted}")
        print(f"Rejected:      {job.records_rejected}")
        print("-" * 60)
        for record_id in job.record_ids:
            record = store.get_record(record_id)
            if record is None:
                continue
            line = f"   {record.id}: {record.status.value}"
            if record.assigned_job_id != job.id:
                line += " (excluded)"
            if record.last_failure_reason:
                line += f" - {record.last_failure_reason}"
            print(line)
        print("=" * 60)
        return 0

    job_status = JobStatus(status) if status else None
    jobs = store.list_jobs(job_status, limit)
    print("=" * 60)
    print(f"📋 {len(jobs)} JOB(S)")
    print("=" * 60)
    for job in jobs:
        print_job_line(job)
    print("=" * 60)
    return 0


def print_job_line(job) -> None:
    if job is None:
        return
    icon = {"completed": "✅", "failed": "❌", "pending": "⏳", "in_progress": "🔄"}.get(job.status.value, "•")
    line = f"{icon} {job.id} {job.jurisdiction_code} {job.status.value} ({job.records_submitted}/{len(job.record_ids)})"
    if job.confirmation_number:
        line += f" #{job.confirmation_number}"
    if job.error_message and job.status != JobStatus.COMPLETED:
        line += f" - {job.error_message}"
    print(line)


def seed_portals(services: Services, codes: Optional[List[str]]) -> int:
    """Write registry defaults and env credentials into the portal config table."""
    store = services.job_store
    selected = [code.upper() for code in codes] if codes else supported_codes()

    print("=" * 60)
    print("🔐 SEEDING PORTAL CONFIGURATIONS")
    print("=" * 60)
    for code in selected:
        try:
            descriptor = get_jurisdiction(code)
        except SubmissionError as e:
            print(f"❌ {e}")
            return 1

        existing = store.get_portal_config(code)
        credentials = config.portal_credentials(code)
        username = credentials["username"] or (existing.username if existing else "")
        password = credentials["password"] or (existing.password if existing else "")
        enabled = bool(username and password) and descriptor.has_browser_portal

        store.save_portal_config(
            PortalConfig(
                jurisdiction_code=code,
                name=descriptor.name,
                portal_url=(existing.portal_url if existing and existing.portal_url else descriptor.portal_url),
                username=username,
                password=password,
                automation_enabled=enabled,
                max_retries=existing.max_retries if existing else config.MAX_RETRIES,
                retry_delay_base_seconds=(
                    existing.retry_delay_base_seconds if existing else config.RETRY_DELAY_BASE_SECONDS
                ),
                max_records_per_batch=existing.max_records_per_batch if existing else None,
            )
        )
        print(f"{'✅' if enabled else '⚪'} {code} {descriptor.name}: automation {'enabled' if enabled else 'disabled'}")
    print("=" * 60)
    return 0


def encode_preview(services: Services, code: str, out: Optional[str]) -> int:
    """Render the records file into one jurisdiction's artifact."""
    try:
        records = services.records.all_records()
    except (OSError, ValueError) as e:
        print(f"❌ Could not read records: {e}")
        return 1

    valid = []
    for record in records:
        result = services.encoder.validate(code, record.employee, record.screening)
        if result.valid:
            valid.append(record)
        else:
            print(f"⚠️ {record.record_id}: {result.reason}")

    try:
        artifact = services.encoder.encode(code, valid)
    except SubmissionError as e:
        print(f"❌ Encoding failed: {e}")
        return 1

    if out:
        with open(out, "w", encoding="utf-8") as f:
            f.write(artifact.content)
        print(f"✅ Wrote {artifact.row_count} rows to {out}")
    else:
        print(artifact.content)
    return 0


def sweep(services: Services) -> int:
    """Run one staleness sweep."""
    outcomes = asyncio.run(services.sweeper.sweep())
    print(f"🧹 Stale jobs handled: {len(outcomes)}")
    for outcome in outcomes:
        print(f"   {outcome.job_id}: {outcome.status.value}")
    return 0


# ================================
# CLI
# ================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wotc-bot",
        description="WOTC Portal Bot - batch submission to state WOTC portals",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  wotc-bot seed-portals                         # Load portal settings and credentials
  wotc-bot enqueue AZ emp-1 rec-1 rec-2 rec-3   # Queue three records for Arizona
  wotc-bot run                                  # Start the scheduler
  wotc-bot poll-once                            # Run due jobs once and exit
  wotc-bot status                               # Recent jobs
  wotc-bot encode TX --records records.json     # Preview a Texas bulk file
        """,
    )
    parser.add_argument("--database", help="Database URL (default: DATABASE_URL)")
    parser.add_argument("--records", help="Records JSON file (default: RECORDS_FILE)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("run", help="Start the scheduler loop and the stale sweeper")
    subparsers.add_parser("poll-once", help="Dispatch due jobs once and wait for them")

    enqueue_parser = subparsers.add_parser("enqueue", help="Create a pending submission job")
    enqueue_parser.add_argument("code", help="Two-letter jurisdiction code")
    enqueue_parser.add_argument("employer_id", help="Employer id")
    enqueue_parser.add_argument("record_ids", nargs="+", help="Record ids to submit")
    enqueue_parser.add_argument("--max-retries", type=int, help="Override the portal's retry budget")

    status_parser = subparsers.add_parser("status", help="Show jobs or one job with its records")
    status_parser.add_argument("job_id", nargs="?", help="Job id")
    status_parser.add_argument("--status", choices=[s.value for s in JobStatus], help="Filter by status")
    status_parser.add_argument("--limit", type=int, default=20, help="Number of jobs to list (default: 20)")

    seed_parser = subparsers.add_parser("seed-portals", help="Write portal configs from registry and env")
    seed_parser.add_argument("codes", nargs="*", help="Jurisdiction codes (default: all)")

    encode_parser = subparsers.add_parser("encode", help="Preview an artifact from the records file")
    encode_parser.add_argument("code", help="Two-letter jurisdiction code")
    encode_parser.add_argument("--records", dest="encode_records", help="Records JSON file to encode")
    encode_parser.add_argument("--out", help="Write the artifact here instead of stdout")

    subparsers.add_parser("sweep", help="Recover jobs stuck in progress")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point with command line interface."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    records_file = getattr(args, "encode_records", None) or args.records
    services = build_services(args.database, records_file)
    try:
        if args.command == "run":
            return run_scheduler(services)
        elif args.command == "poll-once":
            return poll_once(services)
        elif args.command == "enqueue":
            return enqueue(services, args.code, args.employer_id, args.record_ids, args.max_retries)
        elif args.command == "status":
            return show_status(services, args.job_id, args.status, args.limit)
        elif args.command == "seed-portals":
            return seed_portals(services, args.codes)
        elif args.command == "encode":
            return encode_preview(services, args.code, args.out)
        elif args.command == "sweep":
            return sweep(services)
        parser.print_help()
        return 0
    finally:
        services.close()


if __name__ == "__main__":
    sys.exit(main())
