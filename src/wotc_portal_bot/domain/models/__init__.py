"""Domain models for WOTC batch submission."""

from .artifact import Artifact, ArtifactFormat, DelimitedFormat, FixedWidthFormat, ValidationResult, XmlFormat
from .errors import (
    ConfigurationError,
    InvalidTransition,
    PortalInteractionError,
    RecordAlreadyBound,
    RecordCeilingExceeded,
    SubmissionError,
    UnsupportedJurisdiction,
)
from .job import JobEvent, JobEventType, JobStatus, PortalConfig, QueueRecord, RecordStatus, SubmissionJob
from .jurisdiction import JurisdictionDescriptor, PortalFamily, SignatorRotation
from .portal import (
    Classification,
    DriverResult,
    DriverState,
    ErrorKind,
    ErrorRow,
    LoginResult,
    Receipt,
    RowAction,
    RowVerdict,
    TableRow,
)
from .records import Employee, Employer, Screening, SubmissionRecord, parse_date

__all__ = [
    "Artifact",
    "ArtifactFormat",
    "DelimitedFormat",
    "FixedWidthFormat",
    "XmlFormat",
    "ValidationResult",
    "ConfigurationError",
    "InvalidTransition",
    "PortalInteractionError",
    "RecordAlreadyBound",
    "RecordCeilingExceeded",
    "SubmissionError",
    "UnsupportedJurisdiction",
    "JobEvent",
    "JobEventType",
    "JobStatus",
    "PortalConfig",
    "QueueRecord",
    "RecordStatus",
    "SubmissionJob",
    "JurisdictionDescriptor",
    "PortalFamily",
    "SignatorRotation",
    "Classification",
    "DriverResult",
    "DriverState",
    "ErrorKind",
    "ErrorRow",
    "LoginResult",
    "Receipt",
    "RowAction",
    "RowVerdict",
    "TableRow",
    "Employee",
    "Employer",
    "Screening",
    "SubmissionRecord",
    "parse_date",
]
