"""
Pacing
Randomized delays between page interactions so the browser does not act at
machine speed.
"""

import asyncio
import logging
import random
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)


class DelayStrategy(ABC):
    """Waits somewhere inside a ``[min_seconds, max_seconds]`` window."""

    @abstractmethod
    async def wait(self, min_seconds: float, max_seconds: float) -> None:
        ...


class RandomDelay(DelayStrategy):
    """Sleeps for a uniformly random duration inside the window."""

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    def pick(self, min_seconds: float, max_seconds: float) -> float:
        if max_seconds < min_seconds:
            min_seconds, max_seconds = max_seconds, min_seconds
        return self._rng.uniform(min_seconds, max_seconds)

    async def wait(self, min_seconds: float, max_seconds: float) -> None:
        delay = self.pick(min_seconds, max_seconds)
        logger.debug(f"[PACING] Adding random delay of {delay:.2f} seconds")
        await asyncio.sleep(delay)


class NoDelay(DelayStrategy):
    """Returns immediately; records the requested windows."""

    def __init__(self):
        self.calls: List[Tuple[float, float]] = []

    async def wait(self, min_seconds: float, max_seconds: float) -> None:
        self.calls.append((min_seconds, max_seconds))
