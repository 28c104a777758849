"""
Live Games Aggregator - FastAPI Backend

Main entry point for the API server that polls the Alpha Arcade market feed
and ESPN scoreboards, and serves the live games that have an active market.
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Dict, Any, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from livegames import __version__
from livegames.config import get_settings
from livegames.clients import MarketClient, ScoreboardClient, GameRecord
from livegames.errors import AggregationError
from livegames.services import LiveGamesAggregator, LiveGamesPoller

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def build_aggregator() -> LiveGamesAggregator:
    """Construct the clients and the aggregator that owns them."""
    return LiveGamesAggregator(MarketClient(), ScoreboardClient())


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize and cleanup application resources."""
    # Startup
    logger.info("Initializing application...")
    settings = get_settings()

    if getattr(app.state, "aggregator", None) is None:
        app.state.aggregator = build_aggregator()

    app.state.poller = None
    if settings.poll_enabled:
        app.state.poller = LiveGamesPoller(
            app.state.aggregator,
            interval=settings.live_games_refresh_interval
        )
        app.state.poller.start()

    logger.info("Application initialized successfully")

    yield

    # Shutdown
    logger.info("Shutting down...")
    if app.state.poller:
        await app.state.poller.stop()
    await app.state.aggregator.close()


app = FastAPI(
    title="Live Games Aggregator",
    description="Live scores for games with an active prediction market",
    version=__version__,
    lifespan=lifespan
)

# CORS middleware for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Pydantic models for API responses
class HealthResponse(BaseModel):
    status: str
    timestamp: str


class LiveGamesResponse(BaseModel):
    games: List[Dict[str, Any]]
    count: int
    by_sport: Dict[str, int]
    last_updated_seconds_ago: Optional[float]
    source_ages_seconds: Dict[str, Optional[float]]


class MarketsResponse(BaseModel):
    count: int
    active_sports_count: int
    markets: List[Dict[str, Any]]
    active_sports_markets: List[Dict[str, Any]]


def _count_by_sport(games: List[GameRecord]) -> Dict[str, int]:
    """Count games by sport."""
    counts: Dict[str, int] = {}
    for game in games:
        counts[game.sport.value] = counts.get(game.sport.value, 0) + 1
    return counts


# Health endpoints
@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Check API health."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.utcnow().isoformat()
    )


@app.get("/api/status")
async def get_status(request: Request):
    """Get detailed status of the aggregator and its feeds."""
    settings = get_settings()
    poller = request.app.state.poller

    return {
        "status": "operational",
        "cache": request.app.state.aggregator.get_status(),
        "poller": {
            "enabled": poller is not None,
            "running": poller.running if poller else False,
            "cycles": poller.cycles if poller else 0,
            "last_error": poller.last_error if poller else None
        },
        "config": {
            "market_refresh_interval": settings.market_refresh_interval,
            "score_refresh_interval": settings.score_refresh_interval,
            "live_games_refresh_interval": settings.live_games_refresh_interval,
            "sports": settings.scoreboard_sports
        }
    }


@app.get("/api/live-games", response_model=LiveGamesResponse)
async def get_live_games(request: Request):
    """
    Get live games that have an active sports market.

    With the poller enabled this serves the poller's latest cycle; otherwise
    the aggregator refreshes on demand, subject to its refresh interval.

    ``last_updated_seconds_ago`` is the age of the correlated list. When an
    upstream feed was down the list may have been built from that feed's
    cached data; ``source_ages_seconds`` gives the age of each feed's last
    fresh fetch.
    """
    aggregator: LiveGamesAggregator = request.app.state.aggregator
    poller: Optional[LiveGamesPoller] = request.app.state.poller

    if poller is not None:
        if poller.last_error and not poller.last_games:
            raise HTTPException(status_code=503, detail=poller.last_error)
        games = poller.last_games
    else:
        try:
            games = await aggregator.get_live_games()
        except AggregationError as e:
            logger.error(f"Error fetching live games: {e}")
            raise HTTPException(status_code=503, detail=str(e))

    return LiveGamesResponse(
        games=[g.to_dict() for g in games],
        count=len(games),
        by_sport=_count_by_sport(games),
        last_updated_seconds_ago=aggregator.throttle.age,
        source_ages_seconds=aggregator.source_ages(),
    )


@app.get("/api/markets", response_model=MarketsResponse)
async def get_markets(request: Request):
    """Cached markets from the last market fetch and their active sports subset."""
    market_client: MarketClient = request.app.state.aggregator.market_client
    markets = market_client.markets
    active = market_client.get_active_sports_markets()

    return MarketsResponse(
        count=len(markets),
        active_sports_count=len(active),
        markets=[m.to_dict() for m in markets],
        active_sports_markets=[m.to_dict() for m in active]
    )


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "livegames.main:app",
        host=settings.host,
        port=settings.port,
        reload=True
    )
