"""Shared fixtures and payload builders for the live games tests."""

import asyncio
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from livegames.clients.markets import Market
from livegames.clients.scoreboard import GameRecord, Sport

MARKET_URL = "https://markets.test/api/get-markets"
SCOREBOARD_URL = "https://scores.test/sports"


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


def market_payload(
    market_id: str = "m1",
    secondary_title: Optional[str] = "Dodgers vs. Giants",
    categories: Optional[List[str]] = None,
    volume: float = 100,
    **extra: Any,
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "id": market_id,
        "title": "Who will win?",
        "categories": ["Baseball"] if categories is None else categories,
        "marketVolume": volume,
        "endTs": 1760000000,
        "marketAppId": 123,
        "yesProb": 0.55,
        "noProb": 0.45,
    }
    if secondary_title is not None:
        payload["secondaryTitle"] = secondary_title
    payload.update(extra)
    return payload


def event_payload(
    event_id: str,
    home: str,
    away: str,
    home_score: Any = "0",
    away_score: Any = "0",
    status_name: str = "STATUS_IN_PROGRESS",
    detail: str = "",
    period: Any = 1,
    clock: str = "12:00",
) -> Dict[str, Any]:
    return {
        "id": event_id,
        "status": {
            "type": {"name": status_name, "detail": detail},
            "period": period,
            "displayClock": clock,
        },
        "competitions": [
            {
                "competitors": [
                    {"homeAway": "home", "team": {"name": home}, "score": home_score},
                    {"homeAway": "away", "team": {"name": away}, "score": away_score},
                ]
            }
        ],
    }


def make_market(
    secondary_title: Optional[str] = "Dodgers vs. Giants",
    categories: tuple = ("Baseball",),
    volume: float = 100,
    market_id: str = "m1",
) -> Market:
    return Market(
        id=market_id,
        title="Who will win?",
        categories=categories,
        market_volume=volume,
        secondary_title=secondary_title,
    )


def make_game(
    home: str,
    away: str,
    sport: Sport = Sport.MLB,
    game_id: str = "g1",
    status: str = "STATUS_IN_PROGRESS",
) -> GameRecord:
    return GameRecord(
        id=game_id,
        sport=sport,
        home_team=home,
        away_team=away,
        home_score=1,
        away_score=0,
        status=status,
        period=3,
        time_remaining="0:00",
    )


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.requests: List[httpx.Request] = []

        def record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(record)


class FakeMarketSource:
    """Stands in for MarketClient and records when fetches start and end."""

    def __init__(self, markets: List[Market], log: List[str]):
        self.markets = markets
        self.error: Optional[Exception] = None
        self.age_seconds: Optional[float] = None
        self.calls = 0
        self.log = log

    async def fetch_markets(self) -> List[Market]:
        self.calls += 1
        self.log.append("markets:start")
        await asyncio.sleep(0)
        self.log.append("markets:end")
        if self.error:
            raise self.error
        return list(self.markets)

    def get_status(self):
        return {"age_seconds": self.age_seconds}

    async def close(self):
        pass


class FakeScoreSource:
    """Stands in for ScoreboardClient and records when fetches start and end."""

    def __init__(self, games: List[GameRecord], log: List[str]):
        self.games = games
        self.error: Optional[Exception] = None
        self.age_seconds: Optional[float] = None
        self.calls = 0
        self.log = log

    async def get_all_scores(self) -> List[GameRecord]:
        self.calls += 1
        self.log.append("scores:start")
        await asyncio.sleep(0)
        self.log.append("scores:end")
        if self.error:
            raise self.error
        return list(self.games)

    def get_status(self):
        return {"age_seconds": self.age_seconds}

    async def close(self):
        pass

