"""Configuration management for the live games aggregator."""
from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Alpha Arcade market feed
    market_api_url: str = "https://g08245wvl7.execute-api.us-east-1.amazonaws.com/api/get-markets"

    # ESPN scoreboard feed
    scoreboard_api_url: str = "https://site.api.espn.com/apis/site/v2/sports"
    scoreboard_sports: List[str] = ["MLB", "NBA", "NFL", "NHL"]

    # Refresh cadence (seconds). A failed cycle does not count as a refresh,
    # so the next call after a failure always goes upstream.
    market_refresh_interval: float = 30.0
    score_refresh_interval: float = 30.0
    live_games_refresh_interval: float = 30.0

    # Upstream request timeout (seconds)
    http_timeout: float = 10.0

    # Run the in-process poller instead of refreshing on request
    poll_enabled: bool = False

    # Server Config
    host: str = "0.0.0.0"
    port: int = 8000

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
