"""Domain models for rendered submission artifacts."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple
from xml.sax.saxutils import escape

from .jurisdiction import SignatorRotation

Row = Mapping[str, str]

_XML_ENTITIES = {'"': "&quot;", "'": "&apos;"}


def csv_quote(value: str, force: bool = False) -> str:
    """Quote a delimited field when forced or when it would break the row."""
    if force or any(ch in value for ch in (",", '"', "\n", "\r")):
        return '"' + value.replace('"', '""') + '"'
    return value


class ArtifactFormat(ABC):
    """Serializer turning structured rows into the bytes a portal expects."""

    extension = "txt"
    mime_type = "text/plain"

    @abstractmethod
    def render(self, rows: Sequence[Row]) -> str:
        """Render rows into the artifact body."""


@dataclass(frozen=True)
class DelimitedFormat(ArtifactFormat):
    """
    Comma-delimited text with a header row.

    ``quote_columns`` are always wrapped in quotes so spreadsheet-style
    importers keep leading zeros. With ``quoting`` off, values are written
    verbatim and the encoder is responsible for stripping delimiters.
    """

    columns: Tuple[str, ...]
    quote_columns: FrozenSet[str] = frozenset()
    quoting: bool = True
    extension = "csv"
    mime_type = "text/csv"

    def render(self, rows: Sequence[Row]) -> str:
        lines = [",".join(self.columns)]
        for row in rows:
            values = []
            for column in self.columns:
                value = row.get(column, "")
                if self.quoting:
                    value = csv_quote(value, force=column in self.quote_columns and value != "")
                values.append(value)
            lines.append(",".join(values))
        return "\n".join(lines)


@dataclass(frozen=True)
class FixedWidthFormat(ArtifactFormat):
    """Headerless fixed-width records; values are truncated or space padded."""

    layout: Tuple[Tuple[str, int], ...]

    @property
    def record_width(self) -> int:
        return sum(width for _, width in self.layout)

    def render(self, rows: Sequence[Row]) -> str:
        lines = []
        for row in rows:
            lines.append("".join(row.get(name, "")[:width].ljust(width) for name, width in self.layout))
        return "\n".join(lines)


@dataclass(frozen=True)
class XmlFormat(ArtifactFormat):
    """
    Batch XML document: one item element per row, grouped into sections.

    Row keys are ``section.field``; a field written ``parent.child`` renders
    as a nested element on one line.
    """

    root: str
    item: str
    sections: Tuple[Tuple[str, Tuple[str, ...]], ...]
    extension = "xml"
    mime_type = "application/xml"

    def render(self, rows: Sequence[Row]) -> str:
        lines = ['<?xml version="1.0" encoding="UTF-8" standalone="yes"?>', f"<{self.root}>"]
        for row in rows:
            lines.append(f"    <{self.item}>")
            for section, fields in self.sections:
                lines.append(f"        <{section}>")
                for name in fields:
                    value = escape(row.get(f"{section}.{name}", ""), _XML_ENTITIES)
                    lines.append("            " + self._element(name, value))
                lines.append(f"        </{section}>")
            lines.append(f"    </{self.item}>")
        lines.append(f"</{self.root}>")
        return "\n".join(lines)

    @staticmethod
    def _element(name: str, value: str) -> str:
        parts = name.split(".")
        opening = "".join(f"<{part}>" for part in parts)
        closing = "".join(f"</{part}>" for part in reversed(parts))
        return f"{opening}{value}{closing}"


@dataclass(frozen=True)
class Artifact:
    """
    A rendered batch ready for upload.

    Keeps the structured rows next to the record ids (same order) so the
    driver can drop or amend individual rows and re-render without parsing
    its own output back.
    """

    jurisdiction_code: str
    format: ArtifactFormat
    rows: Tuple[Dict[str, str], ...]
    record_ids: Tuple[str, ...]
    file_stem: str
    signer_field: Optional[str] = None
    ssn_field: Optional[str] = None

    def __post_init__(self):
        """Validate artifact on creation."""
        if len(self.rows) != len(self.record_ids):
            raise ValueError("Artifact rows and record ids must line up")

    @property
    def content(self) -> str:
        return self.format.render(self.rows)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def is_empty(self) -> bool:
        return not self.rows

    @property
    def file_name(self) -> str:
        return f"{self.file_stem}.{self.format.extension}"

    @property
    def mime_type(self) -> str:
        return self.format.mime_type

    def record_id_for_row(self, row_number: int) -> Optional[str]:
        """Map a 1-based data row number to its record id."""
        if 1 <= row_number <= len(self.record_ids):
            return self.record_ids[row_number - 1]
        return None

    def record_ids_for_ssns(self, ssns: Iterable[str]) -> List[str]:
        """
        Record ids whose row carries one of ``ssns``, in artifact order.

        A four-digit value matches on the last four digits, for receipts that
        mask the rest of the number.
        """
        if not self.ssn_field:
            return []
        full = {ssn for ssn in ssns if len(ssn) > 4}
        last_four = {ssn for ssn in ssns if len(ssn) == 4}
        matched = []
        for row, record_id in zip(self.rows, self.record_ids):
            ssn = "".join(ch for ch in row.get(self.ssn_field, "") if ch.isdigit())
            if ssn and (ssn in full or ssn[-4:] in last_four):
                matched.append(record_id)
        return matched

    def corrected(
        self,
        remove_rows: Iterable[int],
        fix_rows: Iterable[int],
        rotation: SignatorRotation,
    ) -> "Artifact":
        """
        Build the next upload from portal feedback.

        Args:
            remove_rows: 1-based rows to drop
            fix_rows: 1-based rows whose signer advances to the next candidate
            rotation: Signer candidates for this jurisdiction

        Returns:
            New artifact; this one is left untouched
        """
        removed = set(remove_rows)
        fixed = set(fix_rows) - removed
        rows: List[Dict[str, str]] = []
        record_ids: List[str] = []

        for index, (row, record_id) in enumerate(zip(self.rows, self.record_ids), start=1):
            if index in removed:
                continue
            new_row = dict(row)
            if index in fixed and self.signer_field and rotation.can_rotate:
                new_row[self.signer_field] = rotation.next_after(row.get(self.signer_field, ""))
            rows.append(new_row)
            record_ids.append(record_id)

        return Artifact(
            jurisdiction_code=self.jurisdiction_code,
            format=self.format,
            rows=tuple(rows),
            record_ids=tuple(record_ids),
            file_stem=self.file_stem,
            signer_field=self.signer_field,
            ssn_field=self.ssn_field,
        )


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of pre-encode validation for one record."""

    valid: bool
    errors: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_errors(cls, errors: Sequence[str]) -> "ValidationResult":
        return cls(valid=not errors, errors=tuple(errors))

    @property
    def reason(self) -> str:
        return "; ".join(self.errors)
