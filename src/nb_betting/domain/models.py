"""Domain model for nb_betting — one Bet shape for both bet variants.

A market bet has market_id set and a market game type; an option bet has
option_game_id set and game_type OPTION. target_id returns whichever is set.
"""

from dataclasses import dataclass
from datetime import datetime

from src.nb_common.enums import BetStatus, TargetType


@dataclass
class Bet:
    id: str
    account_id: str
    target_type: str            # TargetType value
    market_id: str | None
    option_game_id: str | None
    game_type: str              # GameType value
    selection: str              # canonical encoding
    amount: int                 # stake, cents; equals the BET_DEBIT amount
    odds_bps: int               # locked at placement
    potential_winning: int      # cents; the exact amount credited if the bet wins
    status: str                 # BetStatus value
    debit_transaction_id: int | None = None
    created_at: datetime | None = None
    settled_at: datetime | None = None

    @property
    def target_id(self) -> str:
        if self.target_type == TargetType.MARKET.value:
            return self.market_id or ""
        return self.option_game_id or ""

    @property
    def is_pending(self) -> bool:
        return self.status == BetStatus.PENDING.value
