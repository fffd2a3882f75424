"""Application services package."""

from .browser_service import BrowserService
from .job_runner import JobRunner, RunOutcome
from .job_store import SqlJobStore
from .logging_service import LoggingService
from .notification_service import (
    LoggingNotificationHook,
    NotificationService,
    WebhookNotificationHook,
    build_notification_service,
)
from .portal_driver import BatchPortalDriver
from .portal_layouts import LAYOUTS, PortalLayout, layout_for
from .record_repository import InMemoryRecordRepository, JsonRecordRepository
from .timing_service import TimingService

__all__ = [
    "BrowserService",
    "LoggingService",
    "TimingService",
    "BatchPortalDriver",
    "PortalLayout",
    "LAYOUTS",
    "layout_for",
    "SqlJobStore",
    "JobRunner",
    "RunOutcome",
    "NotificationService",
    "WebhookNotificationHook",
    "LoggingNotificationHook",
    "build_notification_service",
    "InMemoryRecordRepository",
    "JsonRecordRepository",
]
