"""API clients for the market and scoreboard feeds."""
from .markets import MarketClient, Market, MarketTeams
from .scoreboard import ScoreboardClient, GameRecord, Sport

__all__ = ["MarketClient", "Market", "MarketTeams", "ScoreboardClient", "GameRecord", "Sport"]
