"""Fixed-interval poller that drives the aggregator refresh cadence."""
import asyncio
import logging
from typing import List, Optional

from livegames.clients.scoreboard import GameRecord
from livegames.errors import LiveGamesError
from livegames.services.aggregator import LiveGamesAggregator

logger = logging.getLogger(__name__)


class LiveGamesPoller:
    """
    Calls ``get_live_games`` immediately and then every ``interval`` seconds.

    A failed cycle is not retried early; the next tick is the retry. Stopping
    prevents further ticks but lets a cycle that is already running finish,
    and whatever that cycle returns is discarded.
    """

    def __init__(self, aggregator: LiveGamesAggregator, interval: float):
        self.aggregator = aggregator
        self.interval = interval
        self.last_games: List[GameRecord] = []
        self.last_error: Optional[str] = None
        self.cycles = 0
        self._stopping = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._stopping.clear()
        self._task = asyncio.create_task(self._run())
        logger.info(f"Live games poller started ({self.interval:.0f}s interval)")

    async def stop(self) -> None:
        """Stop scheduling cycles and wait for the current one to end."""
        self._stopping.set()
        if self._task is not None:
            await self._task
            self._task = None
        logger.info("Live games poller stopped")

    async def _run(self) -> None:
        while not self._stopping.is_set():
            await self.poll_once()
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass

    async def poll_once(self) -> None:
        """Run one cycle and record its outcome for display."""
        try:
            games = await self.aggregator.get_live_games()
        except LiveGamesError as e:
            if not self._stopping.is_set():
                logger.error(f"Live games poll failed: {e}")
                self.last_error = str(e)
            return
        except Exception as e:
            logger.error(f"Unexpected error polling live games: {e}", exc_info=True)
            if not self._stopping.is_set():
                self.last_error = "Failed to fetch live scores"
            return

        if self._stopping.is_set():
            logger.debug("Discarding live games result that arrived after stop")
            return

        self.cycles += 1
        self.last_games = games
        self.last_error = None
