"""Tagged selection variants and the strict selection parser.

A bet's selection arrives as free text from the client. It is parsed ONCE,
at placement, into one of the variants below; only the canonical encoding is
stored. Settlement re-parses the stored canonical string, which the same
parser accepts unchanged.

Accepted input per game type:

    JODI      "45"                               -> "45"
    HURF      "0-5" | "Left: 5" | "left:5"       -> "0-5"   (position 0 = left digit)
              "1-2" | "Right: 2"                 -> "1-2"
              "52"  | "Both: 52"                 -> "52"    (both positions)
    CROSS     "1,2,3" | "123" | "3, 1"           -> "1,2,3" (distinct digits, sorted)
    ODD_EVEN  "odd" | "EVEN"                     -> "odd" | "even"
    OPTION    "a" | "B"                          -> "A" | "B"
"""

import re
from dataclasses import dataclass

from src.nb_common.enums import GameType, Team
from src.nb_common.errors import InvalidSelectionError

LEFT, RIGHT = 0, 1

_DIGITS = frozenset("0123456789")
_TWO_DIGITS = re.compile(r"[0-9]{2}")
_HURF_SINGLE = re.compile(r"([01])-([0-9])")
_HURF_NAMED = re.compile(r"(left|right|both)\s*:\s*([0-9]+)", re.IGNORECASE)
_CROSS_SEPARATORS = re.compile(r"[\s,]+")


@dataclass(frozen=True)
class JodiSelection:
    digits: str

    def encode(self) -> str:
        return self.digits


@dataclass(frozen=True)
class HurfSelection:
    """One digit at one position of the result."""

    position: int
    digit: str

    def encode(self) -> str:
        return f"{self.position}-{self.digit}"


@dataclass(frozen=True)
class HurfBothSelection:
    """Both positions at once; pays the market's both_odds_bps."""

    digits: str

    def encode(self) -> str:
        return self.digits


@dataclass(frozen=True)
class CrossSelection:
    digits: frozenset[str]

    def encode(self) -> str:
        return ",".join(sorted(self.digits))


@dataclass(frozen=True)
class OddEvenSelection:
    parity: str   # "odd" | "even"

    def encode(self) -> str:
        return self.parity


@dataclass(frozen=True)
class TeamSelection:
    team: Team

    def encode(self) -> str:
        return self.team.value


Selection = (
    JodiSelection
    | HurfSelection
    | HurfBothSelection
    | CrossSelection
    | OddEvenSelection
    | TeamSelection
)


def parse_selection(game_type: GameType, raw: str) -> Selection:
    """Parse raw client input into its variant; InvalidSelectionError otherwise."""
    if not isinstance(raw, str):
        raise InvalidSelectionError(game_type.value, str(raw))
    text = raw.strip()
    parser = _PARSERS.get(game_type)
    if parser is None or not text:
        raise InvalidSelectionError(game_type.value, raw)
    selection = parser(text)
    if selection is None:
        raise InvalidSelectionError(game_type.value, raw)
    return selection


def _parse_jodi(text: str) -> Selection | None:
    return JodiSelection(text) if _TWO_DIGITS.fullmatch(text) else None


def _parse_hurf(text: str) -> Selection | None:
    m = _HURF_SINGLE.fullmatch(text)
    if m:
        return HurfSelection(position=int(m.group(1)), digit=m.group(2))
    if _TWO_DIGITS.fullmatch(text):
        return HurfBothSelection(text)
    m = _HURF_NAMED.fullmatch(text)
    if m is None:
        return None
    mode, digits = m.group(1).lower(), m.group(2)
    if mode == "both":
        return HurfBothSelection(digits) if len(digits) == 2 else None
    if len(digits) != 1:
        return None
    return HurfSelection(position=LEFT if mode == "left" else RIGHT, digit=digits)


def _parse_cross(text: str) -> Selection | None:
    parts = [p for p in _CROSS_SEPARATORS.split(text) if p]
    # "123" is shorthand for "1,2,3"
    if len(parts) == 1 and set(parts[0]) <= _DIGITS:
        parts = list(parts[0])
    if not parts or any(p not in _DIGITS for p in parts):
        return None
    if len(set(parts)) != len(parts):
        return None
    return CrossSelection(frozenset(parts))


def _parse_odd_even(text: str) -> Selection | None:
    lowered = text.lower()
    return OddEvenSelection(lowered) if lowered in ("odd", "even") else None


def _parse_team(text: str) -> Selection | None:
    upper = text.upper()
    if upper not in (Team.A.value, Team.B.value):
        return None
    return TeamSelection(Team(upper))


_PARSERS = {
    GameType.JODI: _parse_jodi,
    GameType.HURF: _parse_hurf,
    GameType.CROSS: _parse_cross,
    GameType.ODD_EVEN: _parse_odd_even,
    GameType.OPTION: _parse_team,
}
