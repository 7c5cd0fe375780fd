"""Pydantic schemas for nb_betting API requests and responses."""

from pydantic import BaseModel, Field

from src.nb_betting.domain.models import Bet
from src.nb_common.datetime_utils import iso_or_none
from src.nb_common.enums import GameType
from src.nb_common.money import cents_to_display, odds_to_display


class PlaceMarketBetRequest(BaseModel):
    market_id: str = Field(..., min_length=1, max_length=64)
    game_type: GameType
    selection: str = Field(..., min_length=1, max_length=32)
    # Positivity is a domain rule (InvalidAmountError), not a schema rule
    amount_cents: int


class PlaceOptionBetRequest(BaseModel):
    option_game_id: str = Field(..., min_length=1, max_length=64)
    selection: str = Field(..., min_length=1, max_length=8, description="'A' or 'B'")
    amount_cents: int


class BetOut(BaseModel):
    id: str
    account_id: str
    target_type: str
    target_id: str
    game_type: str
    selection: str
    amount_cents: int
    amount_display: str
    odds_bps: int
    odds_display: str
    potential_winning_cents: int
    potential_winning_display: str
    status: str
    debit_transaction_id: int | None
    created_at: str | None
    settled_at: str | None

    @classmethod
    def from_domain(cls, b: Bet) -> "BetOut":
        return cls(
            id=b.id,
            account_id=b.account_id,
            target_type=b.target_type,
            target_id=b.target_id,
            game_type=b.game_type,
            selection=b.selection,
            amount_cents=b.amount,
            amount_display=cents_to_display(b.amount),
            odds_bps=b.odds_bps,
            odds_display=odds_to_display(b.odds_bps),
            potential_winning_cents=b.potential_winning,
            potential_winning_display=cents_to_display(b.potential_winning),
            status=b.status,
            debit_transaction_id=b.debit_transaction_id,
            created_at=iso_or_none(b.created_at),
            settled_at=iso_or_none(b.settled_at),
        )


class BetListResponse(BaseModel):
    items: list[BetOut]
