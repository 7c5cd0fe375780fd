"""evaluate(game_type, selection, result_value) -> won?

Pure: no I/O, no odds. The Settlement Engine is the only production caller.
A selection that does not belong to game_type is a programming error and
raises InvalidSelectionError rather than silently losing.
"""

from collections.abc import Callable
from typing import Any

from src.nb_common.enums import GameType
from src.nb_common.errors import InvalidSelectionError
from src.nb_rules.rules import cross, hurf, jodi, odd_even, option
from src.nb_rules.selection import (
    CrossSelection,
    HurfBothSelection,
    HurfSelection,
    JodiSelection,
    OddEvenSelection,
    Selection,
    TeamSelection,
    parse_selection,
)

_RULES: dict[GameType, tuple[tuple[type, ...], Callable[[Any, str], bool]]] = {
    GameType.JODI: ((JodiSelection,), jodi.matches),
    GameType.HURF: ((HurfSelection, HurfBothSelection), hurf.matches),
    GameType.CROSS: ((CrossSelection,), cross.matches),
    GameType.ODD_EVEN: ((OddEvenSelection,), odd_even.matches),
    GameType.OPTION: ((TeamSelection,), option.matches),
}


def evaluate(game_type: GameType, selection: Selection | str, result_value: str) -> bool:
    """Accepts a parsed variant or a stored canonical selection string."""
    if isinstance(selection, str):
        selection = parse_selection(game_type, selection)
    variants, rule = _RULES[game_type]
    if not isinstance(selection, variants):
        raise InvalidSelectionError(game_type.value, repr(selection))
    return rule(selection, result_value)
