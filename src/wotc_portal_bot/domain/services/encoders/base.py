"""Base class for jurisdiction-family encoders."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from ...models.artifact import Artifact, ArtifactFormat, ValidationResult
from ...models.errors import RecordCeilingExceeded
from ...models.jurisdiction import JurisdictionDescriptor, PortalFamily
from ...models.records import Employee, Screening, SubmissionRecord


@dataclass(frozen=True)
class EncoderOptions:
    """Settings that come from configuration rather than from the records."""

    consultant_ein: str = "861505473"
    csdc_pin: str = ""


class JurisdictionEncoder(ABC):
    """
    Pure transform from canonical records to one portal family's format.

    Subclasses provide the format, one row per record and the family's
    validation rules. Encoding is deterministic: no clock, no randomness,
    no I/O.
    """

    family: PortalFamily
    ssn_field: Optional[str] = None

    def __init__(self, options: EncoderOptions = None):
        self.options = options or EncoderOptions()

    @abstractmethod
    def artifact_format(self, descriptor: JurisdictionDescriptor) -> ArtifactFormat:
        """Format used to render this family's artifacts."""

    @abstractmethod
    def build_row(self, record: SubmissionRecord, descriptor: JurisdictionDescriptor) -> Dict[str, str]:
        """Map one record onto the family's columns."""

    @abstractmethod
    def validate(self, employee: Employee, screening: Screening) -> ValidationResult:
        """Check required fields and preconditions without encoding."""

    def encode(self, descriptor: JurisdictionDescriptor, records: Sequence[SubmissionRecord]) -> Artifact:
        """
        Render records into an artifact.

        Raises:
            RecordCeilingExceeded: Before any row is built, when the batch is
                larger than the jurisdiction allows
        """
        if len(records) > descriptor.max_records:
            raise RecordCeilingExceeded(descriptor.code, len(records), descriptor.max_records)

        rows = [self.build_row(record, descriptor) for record in records]
        return Artifact(
            jurisdiction_code=descriptor.code,
            format=self.artifact_format(descriptor),
            rows=tuple(rows),
            record_ids=tuple(record.record_id for record in records),
            file_stem=descriptor.file_stem or f"{descriptor.code}_WOTC_Batch",
            signer_field=descriptor.signer_field,
            ssn_field=self.ssn_field,
        )


def required_field_errors(employee: Employee, require_state: bool = True) -> List[str]:
    """Missing-field messages shared by every family."""
    errors = []
    if not employee.first_name:
        errors.append("First name required")
    if not employee.last_name:
        errors.append("Last name required")
    if not employee.ssn:
        errors.append("SSN required")
    if not employee.date_of_birth:
        errors.append("Date of birth required")
    if not employee.effective_hire_date:
        errors.append("Hire date required")
    if not employee.address:
        errors.append("Address required")
    if not employee.city:
        errors.append("City required")
    if require_state and not employee.state:
        errors.append("State required")
    if not employee.zip_code:
        errors.append("ZIP code required")
    return errors
