"""Declared-result validation. Runs before any state change."""

import re

from src.nb_common.enums import Team
from src.nb_common.errors import InvalidResultError

# [0-9], not \d: \d also matches non-ASCII digits such as "٤٥"
_MARKET_RESULT = re.compile(r"[0-9]{2}")


def parse_market_result(value: str) -> str:
    """A market result is exactly two digits, e.g. "07" or "52"."""
    text = value.strip() if isinstance(value, str) else ""
    if not _MARKET_RESULT.fullmatch(text):
        raise InvalidResultError(str(value), "market results are exactly two digits")
    return text


def parse_option_result(value: str) -> Team:
    text = value.strip().upper() if isinstance(value, str) else ""
    if text not in (Team.A.value, Team.B.value):
        raise InvalidResultError(str(value), "option results are 'A' or 'B'")
    return Team(text)
