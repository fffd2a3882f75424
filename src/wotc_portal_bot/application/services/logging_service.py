"""Console logging with an optional append-only run log."""

import threading
import time
from datetime import datetime
from typing import Optional

from wotc_portal_bot.application.interfaces import ILoggingService

LEVELS = {"DEBUG": 0, "INFO": 1, "WARNING": 2, "ERROR": 3}
LEVEL_ICONS = {"DEBUG": "🔍", "INFO": "ℹ️", "WARNING": "⚠️", "ERROR": "❌"}


class LoggingService(ILoggingService):
    """
    Timestamped console logging for the scheduler and its jobs.

    Lines look like ``[09:00:01] ℹ️ INFO: [driver] message``. When
    ``log_file`` is set every line is also appended there with a full date,
    which keeps an audit trail of portal sessions across restarts. Children
    share the parent's file lock, so concurrent jobs never interleave
    partial lines.
    """

    def __init__(
        self,
        log_level: str = "INFO",
        prefix: str = "",
        log_file: Optional[str] = None,
        _lock: Optional[threading.Lock] = None,
    ):
        """
        Initialize logging service.

        Args:
            log_level: Minimum log level to output (DEBUG, INFO, WARNING, ERROR)
            prefix: Tag printed before every message (component or job id)
            log_file: Optional path that receives a copy of every line
        """
        self.log_level = log_level.upper()
        self.prefix = prefix
        self.log_file = log_file
        self._lock = _lock or threading.Lock()

    def is_enabled(self, level: str) -> bool:
        return LEVELS.get(level.upper(), 1) >= LEVELS.get(self.log_level, 1)

    def log(self, level: str, message: str) -> None:
        """Log a message at the specified level."""
        level = level.upper()
        if not self.is_enabled(level):
            return

        now = datetime.now()
        tag = f"[{self.prefix}] " if self.prefix else ""
        body = f"{LEVEL_ICONS.get(level, '📝')} {level}: {tag}{message}"
        print(f"[{now.strftime('%H:%M:%S')}] {body}", flush=True)

        if self.log_file:
            with self._lock:
                with open(self.log_file, "a", encoding="utf-8") as f:
                    f.write(f"[{now.isoformat(timespec='seconds')}] {body}\n")

    def child(self, prefix: str) -> "LoggingService":
        """Same level and sinks, nested prefix (``runner/job-1``)."""
        nested = f"{self.prefix}/{prefix}" if self.prefix else prefix
        return LoggingService(self.log_level, nested, self.log_file, self._lock)

    def time_operation(self, operation_name: str) -> "TimingContext":
        """Context manager for timing operations."""
        return TimingContext(self, operation_name)


class TimingContext:
    """Logs how long a block took; ``elapsed`` stays readable afterwards."""

    def __init__(self, logging_service: ILoggingService, operation_name: str):
        self.logger = logging_service
        self.operation_name = operation_name
        self.start_time: Optional[float] = None
        self.elapsed = 0.0

    def __enter__(self):
        self.start_time = time.monotonic()
        self.logger.debug(f"⏱️ Starting {self.operation_name}...")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time is None:
            return
        self.elapsed = time.monotonic() - self.start_time
        if exc_type is None:
            self.logger.info(f"⏱️ {self.operation_name} took {self.elapsed:.1f}s")
        else:
            self.logger.error(f"❌ {self.operation_name} failed after {self.elapsed:.1f}s: {exc_val}")
