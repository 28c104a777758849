"""Business logic services."""
from .correlator import correlate, matches_any_market, find_matching_market
from .aggregator import LiveGamesAggregator, LiveGamesSnapshot
from .poller import LiveGamesPoller

__all__ = [
    "correlate",
    "matches_any_market",
    "find_matching_market",
    "LiveGamesAggregator",
    "LiveGamesSnapshot",
    "LiveGamesPoller",
]
