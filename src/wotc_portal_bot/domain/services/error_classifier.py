"""Classification of portal validation errors into corrective actions."""

import re
from collections import OrderedDict
from typing import Dict, Iterable, List, Pattern, Sequence, Tuple

from ..models.portal import Classification, ErrorKind, ErrorRow, RowAction, RowVerdict

SIGNER_REJECTION_PATTERNS: Tuple[str, ...] = (
    r"signator listed is not on employer'?s power of attorney",
    r"signator.*not.*(authorized|power of attorney)",
    r"signer.*not.*authorized",
)


class ErrorClassifier:
    """
    Decides, row by row, whether portal feedback can be corrected.

    A row whose only complaint is the signer name can be fixed by rotating to
    another authorized signer. Any other complaint, alone or alongside a
    signer complaint, means the row has to leave the batch. Browser code
    never looks at message text; it hands rows here.
    """

    def __init__(self, signer_patterns: Sequence[str] = SIGNER_REJECTION_PATTERNS):
        self._signer_patterns: List[Pattern[str]] = [re.compile(p, re.IGNORECASE) for p in signer_patterns]

    def is_signer_message(self, message: str) -> bool:
        return any(p.search(message or "") for p in self._signer_patterns)

    def kind_of(self, messages: Iterable[str]) -> ErrorKind:
        """Tag a set of messages reported against one row."""
        signer = other = False
        for message in messages:
            if self.is_signer_message(message):
                signer = True
            else:
                other = True
        if signer and not other:
            return ErrorKind.SIGNER_ONLY
        if signer and other:
            return ErrorKind.MIXED
        return ErrorKind.OTHER

    def classify(self, rows: Sequence[ErrorRow], candidate_count: int) -> Classification:
        """
        Classify one validation pass.

        Args:
            rows: De-duplicated error rows from the portal
            candidate_count: Number of signer candidates for the jurisdiction

        Returns:
            One verdict per row number, plus rows that name no row
        """
        by_row: "OrderedDict[int, List[str]]" = OrderedDict()
        unattributed: List[ErrorRow] = []

        for row in rows:
            if row.row_number <= 0:
                unattributed.append(row)
                continue
            by_row.setdefault(row.row_number, []).append(row.message)

        verdicts = []
        for row_number in sorted(by_row):
            messages = by_row[row_number]
            kind = self.kind_of(messages)
            if kind == ErrorKind.SIGNER_ONLY and candidate_count >= 2:
                action = RowAction.FIX_SIGNER
            else:
                action = RowAction.REMOVE
            verdicts.append(RowVerdict(row_number, kind, action, tuple(messages)))

        return Classification(verdicts=tuple(verdicts), unattributed=tuple(unattributed))


def messages_by_record(rows: Iterable[ErrorRow]) -> Dict[str, str]:
    """Collapse rejected rows into one failure reason per record id."""
    reasons: Dict[str, List[str]] = {}
    for row in rows:
        if not row.record_id:
            continue
        bucket = reasons.setdefault(row.record_id, [])
        text = f"{row.field_name}: {row.message}" if row.field_name else row.message
        if text not in bucket:
            bucket.append(text)
    return {record_id: "; ".join(texts) for record_id, texts in reasons.items()}
