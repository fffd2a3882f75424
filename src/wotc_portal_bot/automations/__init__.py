"""Long-running controllers for WOTC batch submission."""

from .stale_job_sweeper import StaleJobSweeper
from .submission_scheduler import SubmissionScheduler

__all__ = ["SubmissionScheduler", "StaleJobSweeper"]
