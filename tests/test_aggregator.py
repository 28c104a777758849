"""Tests for the live games aggregator."""

from typing import List

import httpx
import pytest

from livegames.clients.markets import MarketClient
from livegames.clients.scoreboard import ScoreboardClient, Sport
from livegames.errors import AggregationError, MarketFetchError, ScoreboardFetchError
from livegames.services.aggregator import LiveGamesAggregator

from conftest import (
    MARKET_URL,
    SCOREBOARD_URL,
    FakeMarketSource,
    FakeScoreSource,
    RecordingTransport,
    event_payload,
    make_game,
    make_market,
    market_payload,
)


FIVE_GAMES = [
    ("Giants", "Dodgers"),
    ("Mets", "Phillies"),
    ("Cubs", "Cardinals"),
    ("Astros", "Rangers"),
    ("Padres", "Rockies"),
]


@pytest.fixture
def log() -> List[str]:
    return []


@pytest.fixture
def sources(log):
    markets = [
        make_market(f"{away} vs. {home}", market_id=f"m{i}")
        for i, (home, away) in enumerate(FIVE_GAMES)
    ]
    games = [make_game(home, away, game_id=str(i)) for i, (home, away) in enumerate(FIVE_GAMES)]
    games.append(make_game("Yankees", "Red Sox", game_id="99"))
    return FakeMarketSource(markets, log), FakeScoreSource(games, log)


@pytest.fixture
def aggregator(sources, clock) -> LiveGamesAggregator:
    market_source, score_source = sources
    return LiveGamesAggregator(market_source, score_source, refresh_interval=30.0, clock=clock)


class TestGetLiveGames:
    """Tests for LiveGamesAggregator.get_live_games."""

    @pytest.mark.asyncio
    async def test_returns_games_with_markets(self, aggregator):
        games = await aggregator.get_live_games()

        assert [g.id for g in games] == ["0", "1", "2", "3", "4"]
        assert aggregator.snapshot.market_count == 5
        assert aggregator.snapshot.score_count == 6

    @pytest.mark.asyncio
    async def test_second_call_within_interval_is_cached(self, aggregator, sources, clock):
        market_source, score_source = sources

        first = await aggregator.get_live_games()
        clock.advance(29)
        second = await aggregator.get_live_games()

        assert market_source.calls == 1
        assert score_source.calls == 1
        assert second == first
        assert all(a is b for a, b in zip(first, second))

    @pytest.mark.asyncio
    async def test_refresh_fetches_both_sources_concurrently(self, aggregator, sources, clock, log):
        market_source, score_source = sources

        await aggregator.get_live_games()
        clock.advance(30)
        log.clear()
        await aggregator.get_live_games()

        assert market_source.calls == 2
        assert score_source.calls == 2
        assert log[:2] == ["markets:start", "scores:start"]
        assert sorted(log[2:]) == ["markets:end", "scores:end"]

    @pytest.mark.asyncio
    async def test_failed_cycle_serves_previous_result(self, aggregator, sources, clock):
        market_source, score_source = sources

        first = await aggregator.get_live_games()
        assert len(first) == 5

        market_source.error = MarketFetchError("market feed down")
        score_source.error = ScoreboardFetchError("All scoreboard feeds failed")
        clock.advance(31)
        second = await aggregator.get_live_games()

        assert second == first

    @pytest.mark.asyncio
    async def test_one_source_failing_serves_previous_result(self, aggregator, sources, clock):
        market_source, _ = sources

        first = await aggregator.get_live_games()
        market_source.error = MarketFetchError("market feed down")
        clock.advance(31)

        assert await aggregator.get_live_games() == first

    @pytest.mark.asyncio
    async def test_failed_cycle_does_not_advance_timestamp(self, aggregator, sources, clock):
        market_source, _ = sources

        await aggregator.get_live_games()
        fetched_at = aggregator.snapshot.fetched_at

        market_source.error = MarketFetchError("market feed down")
        clock.advance(31)
        await aggregator.get_live_games()
        assert aggregator.snapshot.fetched_at == fetched_at

        market_source.error = None
        await aggregator.get_live_games()
        assert market_source.calls == 3
        assert aggregator.snapshot.fetched_at == fetched_at + 31

    @pytest.mark.asyncio
    async def test_failure_without_previous_result_raises(self, aggregator, sources):
        market_source, score_source = sources
        market_source.error = MarketFetchError("market feed down")
        score_source.error = ScoreboardFetchError("All scoreboard feeds failed")

        with pytest.raises(AggregationError) as exc_info:
            await aggregator.get_live_games()

        assert isinstance(exc_info.value.__cause__, MarketFetchError)

    @pytest.mark.asyncio
    async def test_empty_result_is_not_served_from_cache(self, aggregator, sources, clock):
        market_source, score_source = sources
        market_source.markets = []

        assert await aggregator.get_live_games() == []
        clock.advance(1)
        await aggregator.get_live_games()

        assert market_source.calls == 2
        assert score_source.calls == 2

    @pytest.mark.asyncio
    async def test_status(self, aggregator, clock):
        await aggregator.get_live_games()
        clock.advance(4)

        status = aggregator.get_status()

        assert status["live_games"] == 5
        assert status["last_updated_seconds_ago"] == 4
        assert status["cache"]["fresh"] is True

    @pytest.mark.asyncio
    async def test_source_ages_reported_apart_from_refresh(self, aggregator, sources, clock):
        market_source, score_source = sources

        await aggregator.get_live_games()
        clock.advance(31)
        market_source.age_seconds = 31.0
        score_source.age_seconds = 2.0
        await aggregator.get_live_games()

        assert aggregator.throttle.age == 0
        assert aggregator.source_ages() == {"markets": 31.0, "scoreboard": 2.0}


class TestEndToEnd:
    """Aggregator wired to the real clients over a mocked transport."""

    @pytest.mark.asyncio
    async def test_only_games_with_markets_are_served(self, clock):
        def market_handler(request):
            return httpx.Response(200, json={"markets": [
                market_payload("m1", "Dodgers vs. Giants", ["Baseball"], 100),
                market_payload("m2", "Lakers vs. Celtics", ["Basketball"], 0),
                market_payload("m3", "Knicks at Nets", ["Basketball"], 50),
            ]})

        feeds = {
            "baseball": [
                event_payload("401", "Giants", "Dodgers", "2", "1", detail="Top 3rd", period=3),
                event_payload("402", "Mets", "Phillies", "0", "0"),
            ],
            "basketball": [event_payload("501", "Celtics", "Lakers")],
            "football": [],
            "hockey": [],
        }

        def score_handler(request):
            return httpx.Response(200, json={"events": feeds[request.url.path.split("/")[2]]})

        market_transport = RecordingTransport(market_handler)
        score_transport = RecordingTransport(score_handler)
        aggregator = LiveGamesAggregator(
            MarketClient(base_url=MARKET_URL, transport=market_transport, clock=clock),
            ScoreboardClient(base_url=SCOREBOARD_URL, transport=score_transport, clock=clock),
            refresh_interval=30.0,
            clock=clock,
        )

        games = await aggregator.get_live_games()
        await aggregator.get_live_games()

        assert len(games) == 1
        game = games[0]
        assert (game.sport, game.id) == (Sport.MLB, "401")
        assert (game.home_team, game.away_team) == ("Giants", "Dodgers")
        assert game.inning_state == "Top"
        assert game.status == "STATUS_IN_PROGRESS"
        assert len(market_transport.requests) == 1
        assert len(score_transport.requests) == 4
        await aggregator.close()
