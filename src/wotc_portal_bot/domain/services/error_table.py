"""Parsers turning scraped portal feedback into ErrorRow values."""

import re
from typing import Iterable, List, Sequence

from ..models.portal import ErrorRow, TableRow

APPLICANT_HEADER = re.compile(r"Applicant Name:\s*(.+?)\s+Reference Number:\s*([a-f0-9]{8})", re.IGNORECASE)
ROW_REFERENCE = re.compile(r"\b(?:row|record)\s*#?\s*(\d+)\b", re.IGNORECASE)
# "Line 4: ..." or "error on line 4"; "Address Line 1" is a field name, not a row
LINE_REFERENCE = re.compile(r"(?:^|\b(?:on|at|in)\s+)line\s*#?\s*(\d+)\b", re.IGNORECASE)


def _row_number(text: str) -> int:
    try:
        return int(text.strip())
    except (TypeError, ValueError):
        return 0


def parse_detail_table(rows: Sequence[TableRow]) -> List[ErrorRow]:
    """
    Parse a header/detail error table.

    The table interleaves applicant header rows
    (``Applicant Name: X  Reference Number: 0a1b2c3d``) with detail rows of
    ``[row number, message, field, severity]``. Details inherit the most
    recent header. Only severity ``Error`` is kept; warnings do not block
    the batch.
    """
    errors: List[ErrorRow] = []
    applicant = ""
    reference = ""

    for row in rows:
        text = (row.text or "").strip()
        if not text:
            continue

        header = APPLICANT_HEADER.search(text)
        if header:
            applicant = header.group(1).strip()
            reference = header.group(2).lower()
            continue

        if len(row.cells) < 4:
            continue

        severity = row.cells[3].strip()
        if severity.lower() != "error":
            continue

        errors.append(
            ErrorRow(
                row_number=_row_number(row.cells[0]),
                message=row.cells[1].strip(),
                reference_id=reference,
                applicant_name=applicant,
                field_name=row.cells[2].strip(),
                severity=severity,
            )
        )

    return errors


def message_row_number(text: str) -> int:
    """
    Data row a free-text message refers to, or 0 when it names none.

    An explicit ``row N`` / ``record N`` anywhere in the message wins over a
    ``line N`` reference, which only counts when nothing else names a row.
    """
    for pattern in (ROW_REFERENCE, LINE_REFERENCE):
        numbers = [int(match.group(1)) for match in pattern.finditer(text)]
        if numbers:
            return numbers[0]
    return 0


def parse_message_list(messages: Iterable[str]) -> List[ErrorRow]:
    """Parse free-text validation messages; the row number is taken from the text when present."""
    errors = []
    for message in messages:
        text = (message or "").strip()
        if not text:
            continue
        errors.append(ErrorRow(row_number=message_row_number(text), message=text))
    return errors


def dedupe(rows: Iterable[ErrorRow]) -> List[ErrorRow]:
    """Drop repeated (reference, row, message) triples, keeping first-seen order."""
    seen = set()
    unique = []
    for row in rows:
        if row.dedupe_key in seen:
            continue
        seen.add(row.dedupe_key)
        unique.append(row)
    return unique
