"""Jurisdiction encoders and the facade that dispatches between them."""

from typing import Dict, Optional, Sequence

from ...models.artifact import Artifact, ValidationResult
from ...models.errors import UnsupportedJurisdiction
from ...models.jurisdiction import PortalFamily
from ...models.records import Employee, Screening, SubmissionRecord
from ..jurisdictions import get_jurisdiction
from .base import EncoderOptions, JurisdictionEncoder
from .california import CaliforniaEncoder
from .certlink import CERTLINK_COLUMNS, CertLinkEncoder
from .csdc import CSDC_LAYOUT, CsdcEncoder
from .texas import TEXAS_COLUMNS, TexasEncoder


class FormatEncoder:
    """
    Entry point for rendering and validating batches by jurisdiction code.

    Usage:
        encoder = FormatEncoder(EncoderOptions(consultant_ein="861505473"))
        artifact = encoder.encode("AZ", records)
    """

    def __init__(self, options: Optional[EncoderOptions] = None):
        options = options or EncoderOptions()
        self._encoders: Dict[PortalFamily, JurisdictionEncoder] = {
            PortalFamily.CERTLINK: CertLinkEncoder(options),
            PortalFamily.TEXAS_OLS: TexasEncoder(options),
            PortalFamily.CALIFORNIA_EDD: CaliforniaEncoder(options),
            PortalFamily.CSDC: CsdcEncoder(options),
        }

    def encoder_for(self, code: str) -> JurisdictionEncoder:
        return self._encoders[get_jurisdiction(code).family]

    def encode(self, code: str, records: Sequence[SubmissionRecord]) -> Artifact:
        """
        Render records for one jurisdiction.

        Raises:
            UnsupportedJurisdiction: Unknown code
            RecordCeilingExceeded: Too many records for one artifact
        """
        descriptor = get_jurisdiction(code)
        return self._encoders[descriptor.family].encode(descriptor, records)

    def validate(self, code: str, employee: Employee, screening: Screening) -> ValidationResult:
        """Pre-encode checks. Unknown jurisdictions are reported as invalid, not raised."""
        try:
            encoder = self.encoder_for(code)
        except UnsupportedJurisdiction:
            return ValidationResult.from_errors([f"Validation not implemented for jurisdiction: {code}"])
        return encoder.validate(employee, screening)


__all__ = [
    "FormatEncoder",
    "EncoderOptions",
    "JurisdictionEncoder",
    "CertLinkEncoder",
    "TexasEncoder",
    "CaliforniaEncoder",
    "CsdcEncoder",
    "CERTLINK_COLUMNS",
    "TEXAS_COLUMNS",
    "CSDC_LAYOUT",
]
