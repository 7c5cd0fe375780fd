from src.nb_rules.selection import JodiSelection


def matches(selection: JodiSelection, result_value: str) -> bool:
    return selection.digits == result_value
