"""Pydantic schemas for nb_market API requests and responses.

Status in responses is always the EFFECTIVE status (stored status combined
with the clock at response time); the stored value is exposed separately.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from src.nb_common.datetime_utils import iso_or_none
from src.nb_common.enums import GameType
from src.nb_common.money import odds_to_display
from src.nb_market.domain.models import GameTypeConfig, Market, OptionGame

# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class GameTypeConfigIn(BaseModel):
    game_type: GameType
    odds_bps: int = Field(..., description="Payout multiplier in basis points, 19000 = x1.9")
    both_odds_bps: int | None = Field(
        None, description="HURF only: odds for a both-positions pick"
    )
    is_active: bool = True


class CreateMarketRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    opening_time: datetime
    closing_time: datetime
    game_types: list[GameTypeConfigIn] = Field(..., min_length=1)


class CreateOptionGameRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    team_a: str = Field(..., min_length=1, max_length=100)
    team_b: str = Field(..., min_length=1, max_length=100)
    opening_time: datetime
    closing_time: datetime
    odds_bps: int


class UpdateGameTypeRequest(BaseModel):
    """Partial update; omitted fields keep their stored value."""

    odds_bps: int | None = None
    both_odds_bps: int | None = None
    is_active: bool | None = None


class DeclareResultRequest(BaseModel):
    result_value: str = Field(..., min_length=1, max_length=10)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class GameTypeConfigOut(BaseModel):
    game_type: str
    odds_bps: int
    odds_display: str
    both_odds_bps: int | None
    both_odds_display: str | None
    is_active: bool

    @classmethod
    def from_domain(cls, cfg: GameTypeConfig) -> "GameTypeConfigOut":
        return cls(
            game_type=cfg.game_type.value,
            odds_bps=cfg.odds_bps,
            odds_display=odds_to_display(cfg.odds_bps),
            both_odds_bps=cfg.both_odds_bps,
            both_odds_display=(
                odds_to_display(cfg.both_odds_bps) if cfg.both_odds_bps is not None else None
            ),
            is_active=cfg.is_active,
        )


class MarketOut(BaseModel):
    id: str
    name: str
    status: str
    stored_status: str
    result_status: str
    result_value: str | None
    opening_time: str
    closing_time: str
    declared_at: str | None
    game_types: list[GameTypeConfigOut]

    @classmethod
    def from_domain(cls, m: Market, now: datetime) -> "MarketOut":
        return cls(
            id=m.id,
            name=m.name,
            status=m.effective_status(now).value,
            stored_status=m.status,
            result_status=m.result_status,
            result_value=m.result_value,
            opening_time=m.opening_time.isoformat(),
            closing_time=m.closing_time.isoformat(),
            declared_at=iso_or_none(m.declared_at),
            game_types=[GameTypeConfigOut.from_domain(c) for c in m.game_types],
        )


class OptionGameOut(BaseModel):
    id: str
    title: str
    team_a: str
    team_b: str
    status: str
    stored_status: str
    result_status: str
    winning_team: str | None
    odds_bps: int
    odds_display: str
    opening_time: str
    closing_time: str
    declared_at: str | None

    @classmethod
    def from_domain(cls, g: OptionGame, now: datetime) -> "OptionGameOut":
        return cls(
            id=g.id,
            title=g.title,
            team_a=g.team_a,
            team_b=g.team_b,
            status=g.effective_status(now).value,
            stored_status=g.status,
            result_status=g.result_status,
            winning_team=g.winning_team,
            odds_bps=g.odds_bps,
            odds_display=odds_to_display(g.odds_bps),
            opening_time=g.opening_time.isoformat(),
            closing_time=g.closing_time.isoformat(),
            declared_at=iso_or_none(g.declared_at),
        )
