"""
Market/Game Correlation

Decides which scoreboard games have an active market by comparing the two
team names parsed from each market title against the game's teams.
"""
import logging
from typing import List, Optional, Sequence

from livegames.clients.markets import Market, extract_teams, filter_active_sports_markets
from livegames.clients.scoreboard import GameRecord

logger = logging.getLogger(__name__)


def _market_matches(game: GameRecord, market: Market) -> bool:
    teams = extract_teams(market)
    if teams is None:
        return False

    game_teams = {game.home_team.casefold(), game.away_team.casefold()}
    return (
        teams.home_team.casefold() in game_teams
        and teams.away_team.casefold() in game_teams
    )


def find_matching_market(game: GameRecord, active_markets: Sequence[Market]) -> Optional[Market]:
    """Return the first market whose two teams are both playing in ``game``."""
    for market in active_markets:
        if _market_matches(game, market):
            return market
    return None


def matches_any_market(game: GameRecord, active_markets: Sequence[Market]) -> bool:
    """
    Check whether any market covers this game.

    Both market teams must appear in the game, compared case-insensitively.
    Which side is home is ignored.
    """
    return find_matching_market(game, active_markets) is not None


def correlate(markets: Sequence[Market], games: Sequence[GameRecord]) -> List[GameRecord]:
    """
    Keep the games that have an active sports market.

    Game order is preserved and nothing is deduplicated.
    """
    active_markets = filter_active_sports_markets(markets)

    matched = []
    for game in games:
        market = find_matching_market(game, active_markets)
        if market is None:
            continue
        logger.debug(f"{game.sport.value} {game.away_team} @ {game.home_team} matched market {market.id}")
        matched.append(game)

    logger.info(
        f"Correlated {len(matched)} of {len(games)} games against "
        f"{len(active_markets)} active sports markets"
    )
    return matched
