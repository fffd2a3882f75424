"""Exceptions raised by the submission domain."""


class SubmissionError(Exception):
    """Base class for submission failures."""


class ConfigurationError(SubmissionError):
    """Portal configuration is missing or disables automation. Never retried."""


class UnsupportedJurisdiction(ConfigurationError):
    """No descriptor is registered for the requested jurisdiction code."""

    def __init__(self, code: str):
        super().__init__(f"Unsupported jurisdiction: {code}")
        self.code = code


class RecordCeilingExceeded(SubmissionError):
    """A batch holds more records than one artifact may carry."""

    def __init__(self, code: str, count: int, ceiling: int):
        super().__init__(f"{code} artifacts are limited to {ceiling} records, got {count}")
        self.code = code
        self.count = count
        self.ceiling = ceiling


class RecordAlreadyBound(SubmissionError):
    """A record is already attached to a live job or has been submitted."""

    def __init__(self, record_ids):
        ids = ", ".join(sorted(record_ids))
        super().__init__(f"Records already bound to an active job or submitted: {ids}")
        self.record_ids = tuple(sorted(record_ids))


class PortalInteractionError(SubmissionError):
    """The portal UI did not reach the expected state within one attempt."""


class InvalidTransition(SubmissionError):
    """The driver state machine was asked to make an illegal move."""

    def __init__(self, current, target):
        super().__init__(f"Illegal driver transition {current.value} -> {target.value}")
        self.current = current
        self.target = target
