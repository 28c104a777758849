"""Exceptions raised by the live games aggregator."""
from typing import Optional


class LiveGamesError(Exception):
    """Base class for aggregator errors."""


class MarketFetchError(LiveGamesError):
    """The market feed failed and there is no cached listing to fall back to."""


class ScoreboardFetchError(LiveGamesError):
    """A scoreboard request failed, or every configured sport failed."""

    def __init__(self, message: str, sport: Optional[str] = None):
        super().__init__(message)
        self.sport = sport


class AggregationError(LiveGamesError):
    """A refresh cycle failed and no previous result exists."""
