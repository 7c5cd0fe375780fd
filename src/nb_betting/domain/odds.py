"""Odds lookup — the single place that decides which multiplier a bet gets.

Called once, at placement; the result is stored on the bet together with
potential_winning, and settlement credits the stored value.
"""

from src.nb_market.domain.models import GameTypeConfig, OptionGame
from src.nb_rules.selection import HurfBothSelection, Selection


def resolve_odds_bps(config: GameTypeConfig, selection: Selection) -> int:
    if isinstance(selection, HurfBothSelection) and config.both_odds_bps is not None:
        return config.both_odds_bps
    return config.odds_bps


def resolve_option_odds_bps(game: OptionGame) -> int:
    return game.odds_bps
