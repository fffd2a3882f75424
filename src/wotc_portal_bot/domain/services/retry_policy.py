"""Exponential backoff rules for failed submission attempts."""

from dataclasses import dataclass
from datetime import datetime, timedelta


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry bookkeeping for one job.

    ``retry_count`` passed to the methods below is the count *after* the
    failed attempt has been recorded, so the first retry waits ``base``
    seconds, the second ``2 * base`` and so on.
    """

    max_retries: int = 3
    base_delay_seconds: float = 5.0

    def __post_init__(self):
        """Validate policy on creation."""
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        if self.base_delay_seconds <= 0:
            raise ValueError("base_delay_seconds must be positive")

    def should_retry(self, retry_count: int) -> bool:
        """True while another attempt is allowed."""
        return retry_count < self.max_retries

    def backoff_seconds(self, retry_count: int) -> float:
        """Delay before the next attempt: base * 2^(retry_count - 1)."""
        return self.base_delay_seconds * (2 ** max(retry_count - 1, 0))

    def next_retry_at(self, now: datetime, retry_count: int) -> datetime:
        return now + timedelta(seconds=self.backoff_seconds(retry_count))
