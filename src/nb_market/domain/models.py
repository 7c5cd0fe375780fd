"""Domain models for nb_market — pure dataclasses, no SQLAlchemy dependency.

Lifecycle of both markets and option games:

    UPCOMING ──opening / admin open──▶ OPEN ──closing / admin close──▶ CLOSED
                                                                 │
                                                   result declared (terminal)

The stored status only records explicit admin actions; the clock does the
rest. effective_status() combines the two and is what every caller uses.
"""

from dataclasses import dataclass, field
from datetime import datetime

from src.nb_common.enums import GameType, MarketStatus, ResultStatus


def effective_status(
    stored: str, opening_time: datetime, closing_time: datetime, now: datetime
) -> MarketStatus:
    """CLOSED wins over OPEN, OPEN wins over UPCOMING."""
    if stored == MarketStatus.CLOSED.value or now >= closing_time:
        return MarketStatus.CLOSED
    if stored == MarketStatus.OPEN.value or now >= opening_time:
        return MarketStatus.OPEN
    return MarketStatus.UPCOMING


@dataclass
class GameTypeConfig:
    game_type: GameType
    odds_bps: int
    both_odds_bps: int | None = None   # HURF only: odds for the both-positions pick
    is_active: bool = True


@dataclass
class Market:
    id: str
    name: str
    opening_time: datetime
    closing_time: datetime
    status: str                    # stored MarketStatus value
    result_status: str             # ResultStatus value
    result_value: str | None = None
    declared_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    game_types: list[GameTypeConfig] = field(default_factory=list)

    def effective_status(self, now: datetime) -> MarketStatus:
        return effective_status(self.status, self.opening_time, self.closing_time, now)

    def accepts_bets(self, now: datetime) -> bool:
        return (
            self.result_status == ResultStatus.PENDING.value
            and self.effective_status(now) is MarketStatus.OPEN
            and now < self.closing_time
        )

    @property
    def is_declared(self) -> bool:
        return self.result_status == ResultStatus.DECLARED.value

    def config_for(self, game_type: GameType) -> GameTypeConfig | None:
        for cfg in self.game_types:
            if cfg.game_type is game_type:
                return cfg
        return None


@dataclass
class OptionGame:
    id: str
    title: str
    team_a: str
    team_b: str
    opening_time: datetime
    closing_time: datetime
    status: str
    result_status: str
    odds_bps: int
    winning_team: str | None = None    # "A" | "B" once declared
    declared_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def effective_status(self, now: datetime) -> MarketStatus:
        return effective_status(self.status, self.opening_time, self.closing_time, now)

    def accepts_bets(self, now: datetime) -> bool:
        return (
            self.result_status == ResultStatus.PENDING.value
            and self.effective_status(now) is MarketStatus.OPEN
            and now < self.closing_time
        )

    @property
    def is_declared(self) -> bool:
        return self.result_status == ResultStatus.DECLARED.value
