import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

Sleeper = Callable[[float], Awaitable[None]]


class ConstantBackoff:
    """
    Retry delay policy with the same wait between every attempt.

    `sleep` is injectable so tests can record delays instead of waiting.
    """

    def __init__(self, delay_s: float = 1.0, sleep: Sleeper = asyncio.sleep):
        self.delay_s = delay_s
        self._sleep = sleep

    def delay_for(self, attempt: int) -> float:
        return self.delay_s

    async def wait(self, attempt: int) -> None:
        delay = self.delay_for(attempt)
        if delay > 0:
            logger.debug("Waiting before retry", extra={"attempt": attempt, "delay_s": delay})
            await self._sleep(delay)
