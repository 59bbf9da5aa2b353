"""
Status Poller.

Re-reads generation status on a timer until it reaches completed or failed.
Polling only observes: stopping the iteration (break, aclose, task cancel)
has no effect on the generation job.

A read error is not a failed job. Persistence errors are logged and polling
continues with exponential backoff; the interval resets after a good read.
"""

import asyncio
import logging
from typing import AsyncIterator, Awaitable, Callable

from glowfit.config import settings
from glowfit.errors import PersistenceError
from glowfit.models.plan import GenerationStatus

logger = logging.getLogger(__name__)

StatusReader = Callable[[str], Awaitable[GenerationStatus]]


class StatusPoller:
    """Yields GenerationStatus snapshots for one user until a terminal state."""

    def __init__(
        self,
        read_status: StatusReader,
        *,
        interval_ms: int | None = None,
        max_backoff_ms: int | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._read_status = read_status
        self.interval_ms = interval_ms or settings.poll_interval_ms
        self.max_backoff_ms = max_backoff_ms or settings.poll_max_backoff_ms
        self._sleep = sleep

    async def poll(
        self,
        user_id: str,
        interval_ms: int | None = None,
        *,
        max_polls: int | None = None,
    ) -> AsyncIterator[GenerationStatus]:
        """
        Iterate status reads for a user.

        Args:
            user_id: Whose generation to watch
            interval_ms: Delay between reads (defaults to the poller's interval)
            max_polls: Stop after this many read attempts, terminal or not

        Yields:
            One GenerationStatus per successful read; the last one is terminal
            unless max_polls ran out first
        """
        interval = (interval_ms or self.interval_ms) / 1000
        max_backoff = max(self.max_backoff_ms / 1000, interval)
        delay = interval
        attempts = 0

        while True:
            attempts += 1
            try:
                status = await self._read_status(user_id)
            except PersistenceError as e:
                delay = min(delay * 2, max_backoff)
                logger.warning(f"Status read failed for user {user_id}: {e}; retrying in {delay:.1f}s")
            else:
                delay = interval
                yield status
                if status.is_terminal:
                    return

            if max_polls is not None and attempts >= max_polls:
                logger.info(f"Stopped polling user {user_id} after {attempts} attempts")
                return

            await self._sleep(delay)
