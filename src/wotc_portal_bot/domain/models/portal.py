"""Domain models for portal feedback and driver results."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class DriverState(Enum):
    """States of the batch submission state machine."""

    LOGGED_OUT = "logged_out"
    LOGGING_IN = "logging_in"
    DASHBOARD = "dashboard"
    UPLOAD_STAGED = "upload_staged"
    VALIDATING = "validating"
    CLEAN = "clean"
    CONFIRMING = "confirming"
    DONE = "done"
    HAS_ERRORS = "has_errors"
    RECOVERING = "recovering"
    DELETED = "deleted"
    ABORTED = "aborted"

    @property
    def is_terminal(self) -> bool:
        return self in (DriverState.DONE, DriverState.ABORTED)


class ErrorKind(Enum):
    """How a rejected row can be handled."""

    SIGNER_ONLY = "signer_only"  # Only "signer not authorized" messages
    MIXED = "mixed"  # Signer message plus anything else
    OTHER = "other"  # No signer message at all


class RowAction(Enum):
    FIX_SIGNER = "fix_signer"
    REMOVE = "remove"


@dataclass(frozen=True)
class TableRow:
    """Raw text of one HTML table row as scraped from the portal."""

    text: str
    cells: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ErrorRow:
    """
    One validation error reported by a portal.

    ``row_number`` is the 1-based data row of the uploaded artifact; values of
    zero or less mean the portal did not say which row failed. ``record_id``
    is filled in by the driver from the artifact that was uploaded.
    """

    row_number: int
    message: str
    reference_id: str = ""
    applicant_name: str = ""
    field_name: str = ""
    severity: str = "Error"
    record_id: Optional[str] = None

    @property
    def dedupe_key(self) -> Tuple[str, int, str]:
        return (self.reference_id, self.row_number, self.message)

    def with_record_id(self, record_id: Optional[str]) -> "ErrorRow":
        return ErrorRow(
            row_number=self.row_number,
            message=self.message,
            reference_id=self.reference_id,
            applicant_name=self.applicant_name,
            field_name=self.field_name,
            severity=self.severity,
            record_id=record_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rowNumber": self.row_number,
            "referenceId": self.reference_id,
            "applicantName": self.applicant_name,
            "fieldName": self.field_name,
            "severity": self.severity,
            "message": self.message,
            "recordId": self.record_id,
        }


@dataclass(frozen=True)
class RowVerdict:
    """Classification of every error reported against one artifact row."""

    row_number: int
    kind: ErrorKind
    action: RowAction
    messages: Tuple[str, ...]


@dataclass(frozen=True)
class Classification:
    """Result of classifying one validation pass."""

    verdicts: Tuple[RowVerdict, ...] = field(default_factory=tuple)
    unattributed: Tuple[ErrorRow, ...] = field(default_factory=tuple)

    @property
    def fix_rows(self) -> Tuple[int, ...]:
        return tuple(v.row_number for v in self.verdicts if v.action == RowAction.FIX_SIGNER)

    @property
    def remove_rows(self) -> Tuple[int, ...]:
        return tuple(v.row_number for v in self.verdicts if v.action == RowAction.REMOVE)

    @property
    def is_actionable(self) -> bool:
        """True when at least one row can be fixed or dropped."""
        return bool(self.verdicts)


@dataclass(frozen=True)
class LoginResult:
    """Outcome of a login attempt; failures carry a diagnostic instead of raising."""

    success: bool
    message: str
    url: str = ""
    screenshots: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Receipt:
    """
    What the portal reported after a batch was committed.

    ``accepted`` and ``rejected`` are None when the portal shows no counts;
    ``ssns`` holds the applicant SSNs listed on the receipt, digits only.
    """

    confirmation_numbers: Tuple[str, ...] = field(default_factory=tuple)
    accepted: Optional[int] = None
    rejected: Optional[int] = None
    ssns: Tuple[str, ...] = field(default_factory=tuple)

    def is_short_of(self, row_count: int) -> bool:
        return self.accepted is not None and self.accepted < row_count


@dataclass(frozen=True)
class DriverResult:
    """
    Structured outcome of one portal submission.

    ``records_submitted`` counts the records the portal confirmed. It can be
    fewer than were requested when rows were removed during recovery or the
    receipt accepted only part of the batch.
    """

    success: bool
    message: str
    confirmation_numbers: Tuple[str, ...] = field(default_factory=tuple)
    rejected_rows: Tuple[ErrorRow, ...] = field(default_factory=tuple)
    records_submitted: int = 0
    records_rejected: int = 0
    submitted_record_ids: Tuple[str, ...] = field(default_factory=tuple)
    screenshots: Tuple[str, ...] = field(default_factory=tuple)
    attempts: int = 0
    state_history: Tuple[DriverState, ...] = field(default_factory=tuple)
    receipt_accepted: Optional[int] = None
    receipt_rejected: Optional[int] = None

    @classmethod
    def succeeded(
        cls,
        message: str,
        submitted_record_ids: List[str],
        requested: int,
        confirmation_numbers: Optional[List[str]] = None,
        rejected_rows: Optional[List[ErrorRow]] = None,
        screenshots: Optional[List[str]] = None,
        attempts: int = 1,
        state_history: Optional[List[DriverState]] = None,
        receipt: Optional[Receipt] = None,
    ) -> "DriverResult":
        """Create a successful result."""
        return cls(
            success=True,
            message=message,
            confirmation_numbers=tuple(confirmation_numbers or ()),
            rejected_rows=tuple(rejected_rows or ()),
            records_submitted=len(submitted_record_ids),
            records_rejected=requested - len(submitted_record_ids),
            submitted_record_ids=tuple(submitted_record_ids),
            screenshots=tuple(screenshots or ()),
            attempts=attempts,
            state_history=tuple(state_history or ()),
            receipt_accepted=receipt.accepted if receipt else None,
            receipt_rejected=receipt.rejected if receipt else None,
        )

    @classmethod
    def failed(
        cls,
        message: str,
        requested: int,
        rejected_rows: Optional[List[ErrorRow]] = None,
        screenshots: Optional[List[str]] = None,
        attempts: int = 0,
        state_history: Optional[List[DriverState]] = None,
    ) -> "DriverResult":
        """Create a failed result; nothing was submitted."""
        return cls(
            success=False,
            message=message,
            rejected_rows=tuple(rejected_rows or ()),
            records_submitted=0,
            records_rejected=requested,
            screenshots=tuple(screenshots or ()),
            attempts=attempts,
            state_history=tuple(state_history or ()),
        )

    def to_summary(self) -> Dict[str, Any]:
        """JSON-safe summary persisted on the job row."""
        return {
            "success": self.success,
            "message": self.message,
            "confirmationNumbers": list(self.confirmation_numbers),
            "recordsSubmitted": self.records_submitted,
            "recordsRejected": self.records_rejected,
            "rejectedRows": [row.to_dict() for row in self.rejected_rows],
            "screenshots": list(self.screenshots),
            "attempts": self.attempts,
            "states": [state.value for state in self.state_history],
            "receiptAccepted": self.receipt_accepted,
            "receiptRejected": self.receipt_rejected,
        }
