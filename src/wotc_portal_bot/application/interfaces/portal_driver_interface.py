"""Interface for portal drivers."""

from abc import ABC, abstractmethod
from typing import Optional

from wotc_portal_bot.domain.models import Artifact, DriverResult, PortalConfig


class IPortalDriver(ABC):
    """Interface for submitting one artifact to one state portal."""

    @abstractmethod
    async def submit(
        self, artifact: Artifact, portal_config: PortalConfig, job_id: Optional[str] = None
    ) -> DriverResult:
        """
        Log in, upload, recover from validation errors and confirm. Never raises.

        ``job_id`` tags the session's log lines.
        """
