import asyncio
import json

import pytest
import requests

from fakes import START, ExplodingHook, RecordingHook
from wotc_portal_bot.application.services import (
    LoggingNotificationHook,
    NotificationService,
    WebhookNotificationHook,
    build_notification_service,
)
from wotc_portal_bot.application.services.notification_service import RETRY_STATUSES, build_session, verify_signature
from wotc_portal_bot.domain.models import JobEvent, JobEventType


class FakeResponse:
    def __init__(self, status_code):
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")


class FakeSession:
    def __init__(self, status_code=200):
        self.status_code = status_code
        self.posts = []

    def post(self, url, data=None, headers=None, timeout=None):
        self.posts.append({"url": url, "data": data, "headers": headers, "timeout": timeout})
        return FakeResponse(self.status_code)


def _event(event_type=JobEventType.SUBMITTED, **kwargs):
    values = {
        "event": event_type,
        "job_id": "job-1",
        "jurisdiction_code": "AZ",
        "employer_id": "emp-1",
        "occurred_at": START,
        "confirmation_number": "20451",
        "records_submitted": 8,
        "records_rejected": 2,
    }
    values.update(kwargs)
    return JobEvent(**values)


def test_webhook_posts_signed_json(logger):
    session = FakeSession()
    hook = WebhookNotificationHook("https://hooks.example.com/wotc", logger, secret="shh", timeout=5, session=session)

    hook.notify(_event())

    [post] = session.posts
    assert post["url"] == "https://hooks.example.com/wotc"
    assert post["timeout"] == 5
    headers = post["headers"]
    assert headers["X-Webhook-Event"] == "submission.submitted"
    assert headers["User-Agent"] == "WOTC-Webhook/1.0"
    assert verify_signature(post["data"], "shh", headers["X-Webhook-Signature"])
    assert not verify_signature(post["data"], "other", headers["X-Webhook-Signature"])

    payload = json.loads(post["data"])
    assert payload["event"] == "submission.submitted"
    assert payload["timestamp"] == "2026-01-05T09:00:00"
    assert payload["data"]["jobId"] == "job-1"
    assert payload["data"]["recordsRejected"] == 2


def test_event_ids_are_unique_and_signature_optional(logger):
    hook = WebhookNotificationHook("https://hooks.example.com", logger, secret="", session=FakeSession())

    _, first = hook.build_request(_event())
    _, second = hook.build_request(_event())

    assert first["X-Webhook-Event-Id"] != second["X-Webhook-Event-Id"]
    assert "X-Webhook-Signature" not in first


def test_webhook_raises_on_error_status(logger):
    hook = WebhookNotificationHook("https://hooks.example.com", logger, session=FakeSession(500))

    with pytest.raises(requests.HTTPError):
        hook.notify(_event(JobEventType.FAILED, error_message="Login failed"))


def test_session_retries_posts_on_server_errors():
    session = build_session(4)
    retry = session.get_adapter("https://hooks.example.com").max_retries

    assert retry.total == 4
    assert "POST" in retry.allowed_methods
    assert set(retry.status_forcelist) == set(RETRY_STATUSES)


def test_publish_isolates_failing_hooks(logger):
    recording = RecordingHook()
    service = NotificationService([ExplodingHook(), LoggingNotificationHook(logger), recording], logger)

    delivered = asyncio.run(service.publish(_event()))

    assert delivered == 2
    assert recording.events[0].job_id == "job-1"
    assert asyncio.run(NotificationService([], logger).publish(_event())) == 0


def test_build_notification_service_adds_webhook_when_configured(logger):
    assert [hook.name for hook in build_notification_service(logger, webhook_url="").hooks] == ["log"]
    service = build_notification_service(logger, webhook_url="https://hooks.example.com")
    assert [hook.name for hook in service.hooks] == ["log", "webhook"]
