"""Sources of canonical submission records."""

import json
import os
from typing import Any, Dict, Iterable, List, Optional, Sequence

from wotc_portal_bot.application.interfaces import ILoggingService, IRecordRepository
from wotc_portal_bot.domain.models import SubmissionRecord


class InMemoryRecordRepository(IRecordRepository):
    """Records held in a dict; used by tests and by callers that already have the data."""

    def __init__(self, records: Iterable[SubmissionRecord] = ()):
        self._records: Dict[str, SubmissionRecord] = {record.record_id: record for record in records}

    def add(self, record: SubmissionRecord) -> None:
        self._records[record.record_id] = record

    def load(self, record_ids: Sequence[str]) -> Dict[str, SubmissionRecord]:
        return {rid: self._records[rid] for rid in record_ids if rid in self._records}


class JsonRecordRepository(IRecordRepository):
    """
    Records exported by the upstream platform as a JSON file.

    The file holds either a list of records or ``{"records": [...]}``; each
    record has ``id``, ``employee``, ``employer`` and ``screening`` objects.
    The file is re-read when its modification time changes, so an exporter
    can refresh it while the scheduler runs.
    """

    def __init__(self, file_path: str, logging_service: ILoggingService):
        """
        Initialize record repository.

        Args:
            file_path: Path to the JSON export
            logging_service: Service for logging operations
        """
        self.file_path = file_path
        self.logger = logging_service
        self._records: Dict[str, SubmissionRecord] = {}
        self._loaded_mtime: Optional[float] = None

    def load(self, record_ids: Sequence[str]) -> Dict[str, SubmissionRecord]:
        self._refresh()
        return {rid: self._records[rid] for rid in record_ids if rid in self._records}

    def all_records(self) -> List[SubmissionRecord]:
        self._refresh()
        return list(self._records.values())

    def _refresh(self) -> None:
        if not os.path.exists(self.file_path):
            if self._loaded_mtime is None:
                self.logger.warning(f"⚠️ Records file not found: {self.file_path}")
            return

        mtime = os.path.getmtime(self.file_path)
        if mtime == self._loaded_mtime:
            return

        try:
            self.logger.info(f"📥 Loading records from {self.file_path}")
            with open(self.file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            self._records = {record.record_id: record for record in parse_records(data)}
            self._loaded_mtime = mtime
            self.logger.info(f"✅ Loaded {len(self._records)} records")
        except (OSError, ValueError) as e:
            self.logger.error(f"❌ Failed to load records from {self.file_path}: {e}")
            raise


def parse_records(data: Any) -> List[SubmissionRecord]:
    """Accept a list of record dicts or an object with a ``records`` list."""
    items = data.get("records", []) if isinstance(data, dict) else data
    if not isinstance(items, list):
        raise ValueError("Records JSON must be a list or an object with a 'records' list")
    return [SubmissionRecord.from_dict(item) for item in items]
