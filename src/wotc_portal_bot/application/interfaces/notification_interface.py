"""Interface for notification hooks."""

from abc import ABC, abstractmethod

from wotc_portal_bot.domain.models import JobEvent


class INotificationHook(ABC):
    """Interface for collaborators told about terminal job states."""

    name = "hook"

    @abstractmethod
    def notify(self, event: JobEvent) -> None:
        """Deliver one event. May block and may raise."""
