"""Application service interfaces for dependency injection."""

from .browser_interface import IBrowserService, Locator
from .job_store_interface import IJobStore
from .logging_interface import ILoggingService
from .notification_interface import INotificationHook
from .portal_driver_interface import IPortalDriver
from .record_repository_interface import IRecordRepository

__all__ = [
    "IBrowserService",
    "IJobStore",
    "ILoggingService",
    "INotificationHook",
    "IPortalDriver",
    "IRecordRepository",
    "Locator",
]
