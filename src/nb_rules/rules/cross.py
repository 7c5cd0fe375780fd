"""CROSS wins when any picked digit appears anywhere in the result.

"1,2,3" vs "52" -> won (2 appears); "1,3" vs "52" -> lost.
"""

from src.nb_rules.selection import CrossSelection


def matches(selection: CrossSelection, result_value: str) -> bool:
    return not selection.digits.isdisjoint(result_value)
