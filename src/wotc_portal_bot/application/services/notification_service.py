"""Notification hooks for terminal job states."""

import asyncio
import hashlib
import hmac
import json
import uuid
from typing import List, Optional, Sequence

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from wotc_portal_bot.application.interfaces import ILoggingService, INotificationHook
from wotc_portal_bot.config import config
from wotc_portal_bot.domain.models import JobEvent, JobEventType

USER_AGENT = "WOTC-Webhook/1.0"
RETRY_STATUSES = (429, 500, 502, 503, 504)


def sign_payload(body: bytes, secret: str) -> str:
    """HMAC-SHA256 hex digest of the exact request body."""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_signature(body: bytes, secret: str, signature: str) -> bool:
    """Constant-time check of an ``X-Webhook-Signature`` header; receivers use this."""
    return hmac.compare_digest(sign_payload(body, secret), signature or "")


def build_session(max_retries: int, backoff_factor: float = 0.5) -> requests.Session:
    """Session that retries POSTs on throttling and server errors."""
    session = requests.Session()
    retry = Retry(
        total=max_retries,
        backoff_factor=backoff_factor,
        status_forcelist=RETRY_STATUSES,
        allowed_methods=("POST",),
        raise_on_status=False,
    )
    session.mount("https://", HTTPAdapter(max_retries=retry))
    session.mount("http://", HTTPAdapter(max_retries=retry))
    return session


class WebhookNotificationHook(INotificationHook):
    """
    POSTs job events as signed JSON.

    Headers:
        X-Webhook-Event: event name (``submission.submitted`` / ``submission.failed``)
        X-Webhook-Event-Id: unique per delivery, for receiver-side de-duplication
        X-Webhook-Signature: HMAC-SHA256 of the body with the shared secret (when set)
    """

    name = "webhook"

    def __init__(
        self,
        url: str,
        logging_service: ILoggingService,
        secret: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize webhook hook.

        Args:
            url: Receiver endpoint
            logging_service: Service for logging operations
            secret: Shared signing secret (config default if None)
            timeout: Request timeout in seconds (config default if None)
            max_retries: Transport retries on 429/5xx (config default if None)
            session: Pre-built session, mainly for tests
        """
        self.url = url
        self.logger = logging_service
        self.secret = config.WEBHOOK_SECRET if secret is None else secret
        self.timeout = timeout or config.WEBHOOK_TIMEOUT
        retries = config.WEBHOOK_MAX_RETRIES if max_retries is None else max_retries
        self.session = session or build_session(retries)

    def build_request(self, event: JobEvent):
        """Serialize an event into (body, headers)."""
        body = json.dumps(event.to_payload(), separators=(",", ":"), sort_keys=True).encode("utf-8")
        headers = {
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
            "X-Webhook-Event": event.event.value,
            "X-Webhook-Event-Id": str(uuid.uuid4()),
        }
        if self.secret:
            headers["X-Webhook-Signature"] = sign_payload(body, self.secret)
        return body, headers

    def notify(self, event: JobEvent) -> None:
        """
        Deliver one event.

        Raises:
            requests.RequestException: Delivery failed after transport retries
        """
        body, headers = self.build_request(event)
        response = self.session.post(self.url, data=body, headers=headers, timeout=self.timeout)
        response.raise_for_status()
        self.logger.debug(f"📨 Webhook {event.event.value} for job {event.job_id} -> {response.status_code}")


class LoggingNotificationHook(INotificationHook):
    """Writes a one-line summary of each event to the log."""

    name = "log"

    def __init__(self, logging_service: ILoggingService):
        self.logger = logging_service

    def notify(self, event: JobEvent) -> None:
        if event.event == JobEventType.SUBMITTED:
            self.logger.info(
                f"📊 Job {event.job_id} ({event.jurisdiction_code}) submitted: "
                f"{event.records_submitted} accepted, {event.records_rejected} rejected, "
                f"confirmation {event.confirmation_number or 'n/a'}"
            )
        else:
            self.logger.warning(
                f"📊 Job {event.job_id} ({event.jurisdiction_code}) failed: {event.error_message}"
            )


class NotificationService:
    """
    Fans events out to every registered hook.

    Hooks run in worker threads so a slow receiver never blocks the event
    loop. A failing hook is logged and never affects other hooks or the
    job's state.
    """

    def __init__(self, hooks: Sequence[INotificationHook], logging_service: ILoggingService):
        self.hooks: List[INotificationHook] = list(hooks)
        self.logger = logging_service

    async def publish(self, event: JobEvent) -> int:
        """
        Deliver an event to every hook.

        Returns:
            Number of hooks that accepted the event
        """
        if not self.hooks:
            return 0
        results = await asyncio.gather(
            *(asyncio.to_thread(hook.notify, event) for hook in self.hooks), return_exceptions=True
        )
        delivered = 0
        for hook, result in zip(self.hooks, results):
            if isinstance(result, Exception):
                self.logger.error(f"❌ Notification hook '{hook.name}' failed for job {event.job_id}: {result}")
            else:
                delivered += 1
        return delivered


def build_notification_service(logging_service: ILoggingService, webhook_url: Optional[str] = None) -> NotificationService:
    """Log hook always, webhook hook when a URL is configured."""
    hooks: List[INotificationHook] = [LoggingNotificationHook(logging_service)]
    url = config.WEBHOOK_URL if webhook_url is None else webhook_url
    if url:
        hooks.append(WebhookNotificationHook(url, logging_service))
    return NotificationService(hooks, logging_service)
