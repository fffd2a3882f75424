"""
Timing Service for portal automation.

Centralizes the human-like pacing used while driving state portals.
Delay ranges come from config.py; the random source and the sleep
function are injectable so tests run instantly and deterministically.
"""

import asyncio
import random
from typing import Awaitable, Callable, Optional

from wotc_portal_bot.application.interfaces import ILoggingService
from wotc_portal_bot.config import config

Sleep = Callable[[float], Awaitable[None]]


class TimingService:
    """
    Service that handles all pacing and delay operations.

    Portals flag sessions that act faster than a person would, so every
    click and keystroke in the driver goes through here.
    """

    def __init__(
        self,
        logging_service: ILoggingService,
        rng: Optional[random.Random] = None,
        sleep: Optional[Sleep] = None,
        human_delay: Optional[tuple] = None,
        typing_delay: Optional[tuple] = None,
    ):
        """
        Initialize timing service.

        Args:
            logging_service: Service for logging timing operations
            rng: Random source (a fresh ``random.Random`` if None)
            sleep: Awaitable sleep (``asyncio.sleep`` if None)
            human_delay: (min, max) seconds between actions, config default if None
            typing_delay: (min, max) seconds between keystrokes, config default if None
        """
        self.logger = logging_service
        self.rng = rng or random.Random()
        self._sleep = sleep or asyncio.sleep
        self.human_delay_range = human_delay or (config.HUMAN_DELAY_MIN, config.HUMAN_DELAY_MAX)
        self.typing_delay_range = typing_delay or (config.TYPING_DELAY_MIN, config.TYPING_DELAY_MAX)

    async def human_delay(self, description: str = "") -> float:
        """Pause for a random human-scale interval; returns the delay used."""
        low, high = self.human_delay_range
        seconds = self.rng.uniform(low, high)
        if description:
            self.logger.debug(f"⏱️ Pausing {seconds:.2f}s before {description}")
        await self._sleep(seconds)
        return seconds

    async def keystroke_delay(self) -> None:
        """Pause between two typed characters."""
        low, high = self.typing_delay_range
        await self._sleep(self.rng.uniform(low, high))

