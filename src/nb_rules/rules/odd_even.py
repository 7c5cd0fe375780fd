from src.nb_common.errors import InvalidResultError
from src.nb_rules.selection import OddEvenSelection


def matches(selection: OddEvenSelection, result_value: str) -> bool:
    if not (isinstance(result_value, str) and result_value.isascii() and result_value.isdigit()):
        raise InvalidResultError(str(result_value), "ODD_EVEN needs a numeric result")
    number = int(result_value)
    parity = "even" if number % 2 == 0 else "odd"
    return selection.parity == parity
