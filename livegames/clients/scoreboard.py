"""
ESPN Scoreboard Client

Fetches live scoreboards for MLB, NBA, NFL and NHL from ESPN's public site
API and normalizes each event into a GameRecord.

Each sport is fetched independently: one failing feed never prevents the
others from being returned.
"""
import httpx
import asyncio
import logging
from typing import List, Dict, Any, Optional, Sequence, Tuple
from dataclasses import dataclass
from enum import Enum

from livegames.config import get_settings
from livegames.errors import ScoreboardFetchError
from livegames.utils.throttle import FetchThrottle, Clock

logger = logging.getLogger(__name__)


class Sport(str, Enum):
    """Sports polled from the scoreboard API."""
    MLB = "MLB"
    NBA = "NBA"
    NFL = "NFL"
    NHL = "NHL"

    @property
    def path(self) -> str:
        """Scoreboard path suffix for this sport."""
        return SPORT_PATHS[self]

    def period_label(self, period: int) -> str:
        """Display label for the current period (inning, quarter or period)."""
        if self is Sport.MLB:
            return f"Inning {period}"
        if self in (Sport.NBA, Sport.NFL):
            return f"Q{period}"
        return f"Period {period}"


SPORT_PATHS: Dict[Sport, str] = {
    Sport.MLB: "/baseball/mlb/scoreboard",
    Sport.NBA: "/basketball/nba/scoreboard",
    Sport.NFL: "/football/nfl/scoreboard",
    Sport.NHL: "/hockey/nhl/scoreboard",
}


@dataclass(frozen=True)
class GameRecord:
    """
    One event from one sport's scoreboard.

    Team names are the display names given by the feed. A score of None means
    the feed's value could not be parsed; it is never folded into 0, which is
    a real score.
    """
    id: str
    sport: Sport
    home_team: str
    away_team: str
    home_score: Optional[int]
    away_score: Optional[int]
    status: str
    period: int
    time_remaining: str
    inning_state: Optional[str] = None

    @property
    def key(self) -> Tuple[str, str]:
        """Identity across sports; raw ids are only unique within one feed."""
        return (self.sport.value, self.id)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "sport": self.sport.value,
            "home_team": self.home_team,
            "away_team": self.away_team,
            "home_score": self.home_score,
            "away_score": self.away_score,
            "home_score_known": self.home_score is not None,
            "away_score_known": self.away_score is not None,
            "status": self.status,
            "period": self.period,
            "period_label": self.sport.period_label(self.period),
            "time_remaining": self.time_remaining,
            "inning_state": self.inning_state,
        }


def parse_score(value: Any) -> Optional[int]:
    """Parse a string-encoded score; None when it is not an integer."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def parse_inning_state(detail: Any) -> Optional[str]:
    """Read "Top"/"Bottom" out of a baseball status detail such as "Top 5th"."""
    if not isinstance(detail, str):
        return None
    if "Top" in detail:
        return "Top"
    if "Bottom" in detail:
        return "Bottom"
    return None


def _find_competitor(competitors: List[Any], side: str) -> Optional[Dict[str, Any]]:
    for competitor in competitors:
        if isinstance(competitor, dict) and competitor.get("homeAway") == side:
            return competitor
    return None


def _team_name(competitor: Dict[str, Any]) -> Optional[str]:
    team = competitor.get("team")
    if not isinstance(team, dict):
        return None
    name = team.get("name")
    return name if isinstance(name, str) and name else None


class ScoreboardClient:
    """
    Client for ESPN's scoreboard endpoints.

    Keeps the last good list for every sport. ``get_all_scores`` is throttled
    by ``refresh_interval`` and only counts a refresh as successful when
    every sport was fetched fresh.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        sports: Optional[Sequence[Sport]] = None,
        refresh_interval: Optional[float] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Optional[Clock] = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.scoreboard_api_url).rstrip("/")
        if sports is None:
            sports = [Sport(s) for s in settings.scoreboard_sports]
        self.sports: List[Sport] = list(sports)
        self.timeout = timeout if timeout is not None else settings.http_timeout
        self.throttle = FetchThrottle(
            refresh_interval if refresh_interval is not None else settings.score_refresh_interval,
            name="scoreboard",
            clock=clock,
        )
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._by_sport: Dict[Sport, List[GameRecord]] = {}
        self._games: List[GameRecord] = []

    @property
    def games(self) -> List[GameRecord]:
        """The most recently combined list (possibly stale)."""
        return list(self._games)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                headers={
                    "Accept": "application/json",
                    "User-Agent": "LiveGamesAggregator/1.0"
                }
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def fetch_sport(self, sport: Sport) -> List[GameRecord]:
        """
        Fetch and normalize one sport's scoreboard.

        Events that cannot be mapped are dropped with a warning.

        Raises:
            ScoreboardFetchError: The request failed or the body has no
                events list.
        """
        client = await self._get_client()
        url = f"{self.base_url}{sport.path}"

        try:
            response = await client.get(url)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise ScoreboardFetchError(
                f"HTTP {e.response.status_code} from {sport.value} scoreboard", sport=sport.value
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise ScoreboardFetchError(
                f"Error fetching {sport.value} scoreboard: {e}", sport=sport.value
            ) from e

        events = data.get("events") if isinstance(data, dict) else None
        if not isinstance(events, list):
            raise ScoreboardFetchError(
                f"{sport.value} scoreboard response has no events list", sport=sport.value
            )

        games = []
        for event in events:
            game = self._parse_event(event, sport)
            if game:
                games.append(game)

        self._by_sport[sport] = games
        logger.info(f"Fetched {len(games)} {sport.value} games")
        return games

    async def get_all_scores(self) -> List[GameRecord]:
        """
        Fetch every configured sport concurrently and concatenate the results.

        A sport that fails is logged and replaced by its last good list, or
        left out if it has none.

        Raises:
            ScoreboardFetchError: Every sport failed and none has cached data.
        """
        if self.throttle.is_fresh():
            return self.games

        results = await asyncio.gather(
            *(self.fetch_sport(sport) for sport in self.sports),
            return_exceptions=True
        )

        all_games: List[GameRecord] = []
        failures = []
        served_any = False
        for sport, result in zip(self.sports, results):
            if isinstance(result, Exception):
                failures.append(sport)
                cached = self._by_sport.get(sport)
                if cached is not None:
                    logger.warning(
                        f"{sport.value} scores unavailable, using {len(cached)} cached games: {result}"
                    )
                    all_games.extend(cached)
                    served_any = True
                else:
                    logger.error(f"{sport.value} scores unavailable: {result}")
                continue
            all_games.extend(result)
            served_any = True

        if self.sports and not served_any:
            raise ScoreboardFetchError("All scoreboard feeds failed")

        self._games = all_games
        if not failures:
            self.throttle.mark_success()
        return self.games

    def get_status(self) -> Dict[str, Any]:
        status = self.throttle.get_status()
        status["cached_games"] = len(self._games)
        status["sports"] = {
            sport.value: len(self._by_sport.get(sport, [])) for sport in self.sports
        }
        return status

    def _parse_event(self, event: Any, sport: Sport) -> Optional[GameRecord]:
        """
        Map one raw event into a GameRecord.

        Returns None when the event lacks an id, a competitions list, or a
        named home and away competitor.
        """
        if not isinstance(event, dict) or event.get("id") in (None, ""):
            logger.warning(f"Dropping {sport.value} event without id")
            return None
        event_id = str(event["id"])

        competitions = event.get("competitions")
        competition = competitions[0] if isinstance(competitions, list) and competitions else None
        competitors = competition.get("competitors") if isinstance(competition, dict) else None
        if not isinstance(competitors, list):
            logger.warning(f"Dropping {sport.value} event {event_id}: no competitors")
            return None

        home = _find_competitor(competitors, "home")
        away = _find_competitor(competitors, "away")
        if home is None or away is None:
            logger.warning(f"Dropping {sport.value} event {event_id}: missing home/away competitor")
            return None

        home_team, away_team = _team_name(home), _team_name(away)
        if home_team is None or away_team is None:
            logger.warning(f"Dropping {sport.value} event {event_id}: missing team name")
            return None

        status = event.get("status")
        if not isinstance(status, dict):
            status = {}
        status_type = status.get("type")
        if not isinstance(status_type, dict):
            status_type = {}

        try:
            period = int(status.get("period") or 0)
        except (TypeError, ValueError, OverflowError):
            period = 0

        clock = status.get("displayClock")
        return GameRecord(
            id=event_id,
            sport=sport,
            home_team=home_team,
            away_team=away_team,
            home_score=parse_score(home.get("score")),
            away_score=parse_score(away.get("score")),
            status=str(status_type.get("name") or ""),
            period=period,
            time_remaining=clock if isinstance(clock, str) else "",
            inning_state=parse_inning_state(status_type.get("detail")) if sport is Sport.MLB else None,
        )
