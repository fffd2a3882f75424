"""SQLAlchemy persistence for jobs, queue records and portal settings."""

from .base import Base
from .engine import Database
from .tables import PortalConfigRow, QueueRecordRow, SubmissionJobRow

__all__ = ["Base", "Database", "PortalConfigRow", "QueueRecordRow", "SubmissionJobRow"]
