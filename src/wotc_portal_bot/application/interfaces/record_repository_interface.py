"""Interface for the source of canonical submission records."""

from abc import ABC, abstractmethod
from typing import Dict, Sequence

from wotc_portal_bot.domain.models import SubmissionRecord


class IRecordRepository(ABC):
    """Interface for loading employee/employer/screening data by record id."""

    @abstractmethod
    def load(self, record_ids: Sequence[str]) -> Dict[str, SubmissionRecord]:
        """Get the records that exist; missing ids are simply absent from the result."""
