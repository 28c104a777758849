"""
Live Games Aggregation Service

Owns the refresh cadence and the last good combined result. On each stale
call it fetches markets and scores concurrently, correlates them and swaps in
a new immutable snapshot.
"""
import asyncio
import logging
from typing import List, Dict, Any, Optional, Tuple
from dataclasses import dataclass

from livegames.config import get_settings
from livegames.clients.markets import MarketClient
from livegames.clients.scoreboard import ScoreboardClient, GameRecord
from livegames.errors import AggregationError
from livegames.services.correlator import correlate
from livegames.utils.throttle import FetchThrottle, Clock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LiveGamesSnapshot:
    """A completed refresh cycle. Replaced wholesale, never modified."""
    games: Tuple[GameRecord, ...] = ()
    fetched_at: Optional[float] = None
    market_count: int = 0
    score_count: int = 0


class LiveGamesAggregator:
    """
    Serves the games that have an active market.

    Within ``refresh_interval`` seconds of the last successful cycle, and as
    long as that cycle found at least one game, calls are answered from the
    snapshot without touching the network. Otherwise both feeds are fetched
    concurrently. If a cycle fails the previous snapshot is served; with no
    previous snapshot the failure is raised as ``AggregationError``.
    """

    def __init__(
        self,
        market_client: MarketClient,
        scoreboard_client: ScoreboardClient,
        refresh_interval: Optional[float] = None,
        clock: Optional[Clock] = None,
    ):
        if refresh_interval is None:
            refresh_interval = get_settings().live_games_refresh_interval
        self.market_client = market_client
        self.scoreboard_client = scoreboard_client
        self.throttle = FetchThrottle(refresh_interval, name="live_games", clock=clock)
        self._snapshot = LiveGamesSnapshot()

    @property
    def snapshot(self) -> LiveGamesSnapshot:
        return self._snapshot

    async def get_live_games(self) -> List[GameRecord]:
        """
        Get the current list of games with an active market.

        Raises:
            AggregationError: The refresh failed and there is no previous
                result to serve.
        """
        snapshot = self._snapshot
        if snapshot.games and self.throttle.is_fresh():
            return list(snapshot.games)

        markets, games = await asyncio.gather(
            self.market_client.fetch_markets(),
            self.scoreboard_client.get_all_scores(),
            return_exceptions=True
        )

        errors = [r for r in (markets, games) if isinstance(r, Exception)]
        if errors:
            for error in errors:
                logger.error(f"Live games refresh failed: {error}")
            if snapshot.games:
                logger.warning(f"Serving {len(snapshot.games)} games from the previous refresh")
                return list(snapshot.games)
            raise AggregationError(f"Unable to load live games: {errors[0]}") from errors[0]

        matched = correlate(markets, games)
        self._snapshot = LiveGamesSnapshot(
            games=tuple(matched),
            fetched_at=self.throttle.mark_success(),
            market_count=len(markets),
            score_count=len(games),
        )
        logger.info(f"Refreshed live games: {len(matched)} games with active markets")
        return matched

    def source_ages(self) -> Dict[str, Optional[float]]:
        """
        Seconds since each source last completed a fresh fetch.

        A cycle that ran on stale source caches still counts as a refresh of
        the live games list, so these can be older than the list itself.
        """
        return {
            "markets": self.market_client.get_status().get("age_seconds"),
            "scoreboard": self.scoreboard_client.get_status().get("age_seconds"),
        }

    def get_status(self) -> Dict[str, Any]:
        """Summarize cache state for the status endpoint."""
        snapshot = self._snapshot
        return {
            "live_games": len(snapshot.games),
            "markets": snapshot.market_count,
            "scores": snapshot.score_count,
            "last_updated_seconds_ago": self.throttle.age,
            "cache": self.throttle.get_status(),
            "sources": {
                "markets": self.market_client.get_status(),
                "scoreboard": self.scoreboard_client.get_status(),
            },
        }

    async def close(self) -> None:
        """Close both upstream clients."""
        await self.market_client.close()
        await self.scoreboard_client.close()
