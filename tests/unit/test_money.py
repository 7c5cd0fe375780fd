"""Unit tests for integer money helpers."""

import pytest

from src.nb_common.errors import InvalidAmountError, InvalidMarketConfigError
from src.nb_common.money import (
    calculate_payout,
    cents_to_display,
    odds_to_display,
    validate_amount,
    validate_odds,
)


class TestCalculatePayout:
    def test_jodi_x90(self) -> None:
        assert calculate_payout(100, 900_000) == 9000

    def test_fractional_multiplier(self) -> None:
        # 10.00 at x1.9 -> 19.00
        assert calculate_payout(1000, 19000) == 1900

    def test_floors_fractional_cent(self) -> None:
        # 333 * 1.5 = 499.5 -> 499, never rounded up
        assert calculate_payout(333, 15000) == 499

    def test_even_odds_returns_stake(self) -> None:
        assert calculate_payout(777, 10000) == 777


class TestValidateAmount:
    @pytest.mark.parametrize("amount", [0, -1, -500])
    def test_non_positive_rejected(self, amount: int) -> None:
        with pytest.raises(InvalidAmountError) as exc:
            validate_amount(amount)
        assert exc.value.code == 2003

    def test_float_rejected(self) -> None:
        with pytest.raises(InvalidAmountError):
            validate_amount(10.5)  # type: ignore[arg-type]

    def test_bool_rejected(self) -> None:
        with pytest.raises(InvalidAmountError):
            validate_amount(True)

    def test_positive_int_accepted(self) -> None:
        validate_amount(1)


class TestValidateOdds:
    def test_below_even_rejected(self) -> None:
        with pytest.raises(InvalidMarketConfigError):
            validate_odds(9999)

    def test_even_accepted(self) -> None:
        validate_odds(10000)


def test_odds_display() -> None:
    assert odds_to_display(19000) == "x1.9"
    assert odds_to_display(90000) == "x9"
    assert odds_to_display(12345) == "x1.2345"


def test_cents_display() -> None:
    assert cents_to_display(6500) == "$65.00"
    assert cents_to_display(123456) == "$1,234.56"
    assert cents_to_display(-1200) == "-$12.00"
