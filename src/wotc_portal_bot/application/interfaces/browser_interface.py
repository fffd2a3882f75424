"""Interface for browser automation service."""

from abc import ABC, abstractmethod
from typing import List, Tuple

from wotc_portal_bot.domain.models import TableRow

# (strategy, value) pair, e.g. ("css selector", "#Email")
Locator = Tuple[str, str]


class IBrowserService(ABC):
    """
    Interface for the browser operations the portal driver needs.

    Every method is a coroutine so the driver never blocks the event loop.
    Lookups that can legitimately miss return ``False`` or an empty list;
    interactions with a missing element raise.
    """

    @abstractmethod
    async def start(self) -> None:
        """Launch the browser session."""

    @abstractmethod
    async def close(self) -> None:
        """Close browser and cleanup. Safe to call more than once."""

    @abstractmethod
    async def goto(self, url: str) -> None:
        """Navigate to a URL."""

    @abstractmethod
    async def current_url(self) -> str:
        """Get the URL of the current page."""

    @abstractmethod
    async def wait_for(self, locator: Locator, timeout: float) -> bool:
        """Wait until an element is present. False on timeout."""

    @abstractmethod
    async def wait_for_url(self, pattern: str, timeout: float) -> bool:
        """Wait until the current URL contains ``pattern``. False on timeout."""

    @abstractmethod
    async def exists(self, locator: Locator) -> bool:
        """Check whether at least one element matches."""

    @abstractmethod
    async def click(self, locator: Locator) -> None:
        """Click the first matching element."""

    @abstractmethod
    async def clear(self, locator: Locator) -> None:
        """Clear an input field."""

    @abstractmethod
    async def send_keys(self, locator: Locator, text: str) -> None:
        """Type text into an element."""

    @abstractmethod
    async def is_checked(self, locator: Locator) -> bool:
        """Get the checked state of a checkbox."""

    @abstractmethod
    async def upload_file(self, locator: Locator, path: str) -> None:
        """Attach a local file to a file input."""

    @abstractmethod
    async def table_rows(self, locator: Locator) -> List[TableRow]:
        """Text and cell texts of every matching table row."""

    @abstractmethod
    async def texts(self, locator: Locator) -> List[str]:
        """Visible text of every matching element."""

    @abstractmethod
    async def page_text(self) -> str:
        """Visible text of the whole page body."""

    @abstractmethod
    async def screenshot(self, path: str) -> bool:
        """Save a screenshot. False when the capture failed."""
