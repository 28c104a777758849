"""
Alpha Arcade Market Client

Fetches prediction-market listings from the Alpha Arcade get-markets API,
keeps the last good listing as a cache, and exposes the sports filtering and
team extraction used to correlate markets with live games.
"""
import httpx
import logging
from typing import List, Dict, Any, Optional, Sequence, Tuple
from dataclasses import dataclass

from livegames.config import get_settings
from livegames.errors import MarketFetchError
from livegames.utils.throttle import FetchThrottle, Clock

logger = logging.getLogger(__name__)


SPORTS_CATEGORIES = frozenset({"Baseball", "Basketball", "Football", "Hockey"})
SPORTS_CATEGORY_PREFIX = "SPORT"
TEAM_SEPARATOR = " vs. "


@dataclass(frozen=True)
class MarketTeams:
    """Two team names parsed from a market's secondary title."""
    home_team: str
    away_team: str


@dataclass(frozen=True)
class Market:
    """Normalized Alpha Arcade market data."""
    id: str
    title: str
    categories: Tuple[str, ...] = ()
    market_volume: float = 0.0
    end_ts: Optional[int] = None
    secondary_title: Optional[str] = None
    label: Optional[str] = None
    market_app_id: Optional[int] = None
    yes_prob: Optional[float] = None
    no_prob: Optional[float] = None

    @property
    def is_sports(self) -> bool:
        return any(is_sports_category(c) for c in self.categories)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "title": self.title,
            "secondary_title": self.secondary_title,
            "categories": list(self.categories),
            "market_volume": self.market_volume,
            "end_ts": self.end_ts,
            "label": self.label,
            "market_app_id": self.market_app_id,
            "yes_prob": self.yes_prob,
            "no_prob": self.no_prob,
        }


def is_sports_category(category: str) -> bool:
    """Check a single category against the sports taxonomy."""
    return category.startswith(SPORTS_CATEGORY_PREFIX) or category in SPORTS_CATEGORIES


def filter_active_sports_markets(markets: Sequence[Market]) -> List[Market]:
    """
    Keep sports markets that have seen trading activity.

    A market qualifies when at least one category is a sports category and
    its volume is strictly positive. Input order is preserved.
    """
    return [m for m in markets if m.is_sports and m.market_volume > 0]


def extract_teams(market: Market) -> Optional[MarketTeams]:
    """
    Parse "<home> vs. <away>" out of a market's secondary title.

    The separator is the literal, case-sensitive " vs. "; the title is split
    at its first occurrence and both sides are trimmed. Returns None when the
    title is missing or does not follow the pattern.
    """
    title = market.secondary_title
    if not title:
        return None

    home, sep, away = title.partition(TEAM_SEPARATOR)
    if not sep:
        return None

    home, away = home.strip(), away.strip()
    if not home or not away:
        return None

    return MarketTeams(home_team=home, away_team=away)


def _to_float(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError, OverflowError):
        return None


def _to_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None


def _optional_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


class MarketClient:
    """
    Client for the Alpha Arcade market feed.

    Requests are throttled: within ``refresh_interval`` seconds of the last
    successful fetch the cached listing is returned without a request. When a
    request fails the stale listing is returned if there is one.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        refresh_interval: Optional[float] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Optional[Clock] = None,
    ):
        settings = get_settings()
        self.base_url = base_url or settings.market_api_url
        self.timeout = timeout if timeout is not None else settings.http_timeout
        self.throttle = FetchThrottle(
            refresh_interval if refresh_interval is not None else settings.market_refresh_interval,
            name="markets",
            clock=clock,
        )
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._markets: List[Market] = []

    @property
    def markets(self) -> List[Market]:
        """The most recently fetched listing (possibly stale)."""
        return list(self._markets)

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

    async def _request(self, params: Optional[Dict] = None) -> Any:
        client = await self._get_client()

        try:
            response = await client.get(self.base_url, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error from market API: {e.response.status_code}")
            raise
        except httpx.HTTPError as e:
            logger.error(f"Error fetching from market API: {e}")
            raise

    async def fetch_markets(self) -> List[Market]:
        """
        Fetch active markets, honouring the refresh interval.

        Returns:
            The fresh listing, or the cached one when throttled or when the
            request fails and a non-empty cache exists.

        Raises:
            MarketFetchError: The request failed and nothing is cached.
        """
        if self.throttle.is_fresh():
            return self.markets

        try:
            data = await self._request(params={"activeOnly": "true"})
            markets = self._parse_response(data)
        except (httpx.HTTPError, ValueError) as e:
            if self._markets:
                logger.warning(
                    f"Market fetch failed, serving {len(self._markets)} cached markets: {e}"
                )
                return self.markets
            raise MarketFetchError(f"Market fetch failed with no cached data: {e}") from e

        self._markets = markets
        self.throttle.mark_success()
        logger.info(f"Fetched {len(markets)} active markets")
        return self.markets

    def _parse_response(self, data: Any) -> List[Market]:
        """
        Convert a get-markets body into Market objects.

        Raises:
            ValueError: The body is not an object holding a markets list.
        """
        if not isinstance(data, dict) or not isinstance(data.get("markets"), list):
            raise ValueError("Market response has no markets list")

        markets = []
        for item in data["markets"]:
            market = self._parse_market(item)
            if market:
                markets.append(market)
        return markets

    def _parse_market(self, data: Any) -> Optional[Market]:
        """
        Parse raw API data into a Market, or None if it has no usable id.

        Optional fields that are missing or of the wrong type are left unset.
        """
        if not isinstance(data, dict):
            logger.warning(f"Skipping non-object market entry: {data!r}")
            return None

        market_id = data.get("id")
        if market_id is None or market_id == "":
            logger.warning("Skipping market without id")
            return None

        categories = data.get("categories")
        if not isinstance(categories, list):
            categories = []

        return Market(
            id=str(market_id),
            title=_optional_str(data.get("title")) or "",
            categories=tuple(c for c in categories if isinstance(c, str)),
            market_volume=_to_float(data.get("marketVolume")) or 0.0,
            end_ts=_to_int(data.get("endTs")),
            secondary_title=_optional_str(data.get("secondaryTitle")),
            label=_optional_str(data.get("label")),
            market_app_id=_to_int(data.get("marketAppId")),
            yes_prob=_to_float(data.get("yesProb")),
            no_prob=_to_float(data.get("noProb")),
        )

    def get_active_sports_markets(self) -> List[Market]:
        """Active sports markets from the cached listing, no request."""
        return filter_active_sports_markets(self._markets)

    def get_status(self) -> Dict[str, Any]:
        status = self.throttle.get_status()
        status["cached_markets"] = len(self._markets)
        return status
