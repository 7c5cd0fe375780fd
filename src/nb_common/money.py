"""Integer money arithmetic — cents and basis-point odds.

All stakes, payouts and balances are int cents. No float, no Decimal.
Odds are stored as basis points of the payout multiplier:
  odds_bps = 19000  ->  x1.9
"""

from src.nb_common.errors import InvalidAmountError, InvalidMarketConfigError

ODDS_SCALE = 10_000


def validate_amount(amount: int) -> None:
    """Stake / transfer amounts must be a strictly positive number of cents."""
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmountError(amount)


def validate_odds(odds_bps: int) -> None:
    """Odds must pay at least the stake back (multiplier >= x1.0)."""
    if isinstance(odds_bps, bool) or not isinstance(odds_bps, int) or odds_bps < ODDS_SCALE:
        raise InvalidMarketConfigError(
            f"odds_bps must be an int >= {ODDS_SCALE}, got {odds_bps!r}"
        )


def calculate_payout(amount: int, odds_bps: int) -> int:
    """Potential winning for a stake: floor(amount * odds).

    The single payout formula. Bet Registry computes it at placement and the
    Settlement Engine credits the stored value, never recomputing it.
    Floor division: the house never pays out a fractional cent.
    """
    return amount * odds_bps // ODDS_SCALE


def odds_to_display(odds_bps: int) -> str:
    """19000 -> 'x1.9', 90000 -> 'x9', 12345 -> 'x1.2345'."""
    whole, frac = divmod(odds_bps, ODDS_SCALE)
    if frac == 0:
        return f"x{whole}"
    return f"x{whole}.{frac:04d}".rstrip("0")


def cents_to_display(cents: int) -> str:
    """Convert cents to display string: 6500 -> '$65.00', -1200 -> '-$12.00'."""
    if cents < 0:
        abs_cents = -cents
        return f"-${abs_cents // 100:,}.{abs_cents % 100:02d}"
    return f"${cents // 100:,}.{cents % 100:02d}"
