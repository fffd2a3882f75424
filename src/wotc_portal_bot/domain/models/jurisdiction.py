"""Domain models describing jurisdictions and their signer lists."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


class PortalFamily(Enum):
    """Portal software families. Jurisdictions in a family share format and UI."""

    CERTLINK = "certlink"
    TEXAS_OLS = "texas_ols"
    CALIFORNIA_EDD = "california_edd"
    CSDC = "csdc"


@dataclass(frozen=True)
class SignatorRotation:
    """
    Ordered list of authorized signer names for one jurisdiction.

    When a portal rejects the signer on a row, the row moves to the next
    candidate, wrapping around at the end of the list.
    """

    candidates: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def default(self) -> str:
        return self.candidates[0] if self.candidates else ""

    @property
    def can_rotate(self) -> bool:
        """At least two candidates are needed for rotation to change anything."""
        return len(self.candidates) >= 2

    def next_after(self, current: str) -> str:
        """
        Get the candidate following ``current``.

        Args:
            current: Signer name currently on the row

        Returns:
            The next candidate, or the second candidate when ``current`` is
            not in the list
        """
        if not self.candidates:
            return current
        try:
            index = self.candidates.index(current)
        except ValueError:
            return self.candidates[1 % len(self.candidates)]
        return self.candidates[(index + 1) % len(self.candidates)]


@dataclass(frozen=True)
class JurisdictionDescriptor:
    """Everything the encoder and the driver need to know about one jurisdiction."""

    code: str
    name: str
    family: PortalFamily
    max_records: int
    portal_url: str = ""
    signers: SignatorRotation = field(default_factory=SignatorRotation)
    signer_field: Optional[str] = None
    file_stem: str = ""

    def __post_init__(self):
        """Validate descriptor on creation."""
        if len(self.code) != 2 or not self.code.isupper():
            raise ValueError(f"Jurisdiction code must be two upper-case letters: {self.code!r}")
        if self.max_records < 1:
            raise ValueError("max_records must be positive")

    @property
    def has_browser_portal(self) -> bool:
        """CSDC states take file drops, not a browser session."""
        return self.family != PortalFamily.CSDC
