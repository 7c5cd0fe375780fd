"""HURF: a single digit at one position, or both positions at once."""

from src.nb_rules.selection import HurfBothSelection, HurfSelection


def matches(selection: HurfSelection | HurfBothSelection, result_value: str) -> bool:
    if isinstance(selection, HurfBothSelection):
        return selection.digits == result_value
    if selection.position >= len(result_value):
        return False
    return result_value[selection.position] == selection.digit
