"""BetRepository — raw text() SQL for the bets table.

mark_settled is the per-bet exactly-once guard: UPDATE ... WHERE status =
'PENDING'. A resumed or concurrent settlement run that reaches an already
settled bet matches 0 rows and must skip it (no second credit).
"""

from datetime import datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.nb_betting.domain.models import Bet
from src.nb_common.datetime_utils import as_utc

_BET_COLUMNS = """
    id, account_id, target_type, market_id, option_game_id, game_type,
    selection, amount, odds_bps, potential_winning, status,
    debit_transaction_id, created_at, settled_at
"""

_INSERT_BET_SQL = text("""
    INSERT INTO bets
        (id, account_id, target_type, market_id, option_game_id, game_type,
         selection, amount, odds_bps, potential_winning, status,
         debit_transaction_id, created_at)
    VALUES
        (:id, :account_id, :target_type, :market_id, :option_game_id, :game_type,
         :selection, :amount, :odds_bps, :potential_winning, :status,
         :debit_transaction_id, :created_at)
""")

_GET_BET_SQL = text(f"""
    SELECT {_BET_COLUMNS}
    FROM bets
    WHERE id = :bet_id
""")

_LIST_BY_ACCOUNT_SQL = text(f"""
    SELECT {_BET_COLUMNS}
    FROM bets
    WHERE account_id = :account_id
      AND (CAST(:status AS TEXT) IS NULL OR status = CAST(:status AS TEXT))
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

_LIST_BY_MARKET_SQL = text(f"""
    SELECT {_BET_COLUMNS}
    FROM bets
    WHERE market_id = :target_id
      AND (CAST(:status AS TEXT) IS NULL OR status = CAST(:status AS TEXT))
    ORDER BY created_at, id
""")

_LIST_BY_OPTION_SQL = text(f"""
    SELECT {_BET_COLUMNS}
    FROM bets
    WHERE option_game_id = :target_id
      AND (CAST(:status AS TEXT) IS NULL OR status = CAST(:status AS TEXT))
    ORDER BY created_at, id
""")

_MARK_SETTLED_SQL = text("""
    UPDATE bets
    SET status = :status, settled_at = :settled_at
    WHERE id = :bet_id AND status = 'PENDING'
""")


def _row_to_bet(row: Any) -> Bet:
    return Bet(
        id=row.id,
        account_id=row.account_id,
        target_type=row.target_type,
        market_id=row.market_id,
        option_game_id=row.option_game_id,
        game_type=row.game_type,
        selection=row.selection,
        amount=int(row.amount),
        odds_bps=int(row.odds_bps),
        potential_winning=int(row.potential_winning),
        status=row.status,
        debit_transaction_id=row.debit_transaction_id,
        created_at=as_utc(row.created_at),
        settled_at=as_utc(row.settled_at),
    )


class BetRepository:
    async def insert_bet(self, db: AsyncSession, bet: Bet) -> Bet:
        await db.execute(
            _INSERT_BET_SQL,
            {
                "id": bet.id,
                "account_id": bet.account_id,
                "target_type": bet.target_type,
                "market_id": bet.market_id,
                "option_game_id": bet.option_game_id,
                "game_type": bet.game_type,
                "selection": bet.selection,
                "amount": bet.amount,
                "odds_bps": bet.odds_bps,
                "potential_winning": bet.potential_winning,
                "status": bet.status,
                "debit_transaction_id": bet.debit_transaction_id,
                "created_at": bet.created_at,
            },
        )
        return bet

    async def get_bet(self, db: AsyncSession, bet_id: str) -> Bet | None:
        row = (await db.execute(_GET_BET_SQL, {"bet_id": bet_id})).fetchone()
        return _row_to_bet(row) if row else None

    async def list_bets_by_account(
        self, db: AsyncSession, account_id: str, status: str | None, limit: int
    ) -> list[Bet]:
        result = await db.execute(
            _LIST_BY_ACCOUNT_SQL,
            {"account_id": account_id, "status": status, "limit": limit},
        )
        return [_row_to_bet(row) for row in result.fetchall()]

    async def list_bets_by_target(
        self, db: AsyncSession, target_type: str, target_id: str, status: str | None
    ) -> list[Bet]:
        sql = _LIST_BY_MARKET_SQL if target_type == "MARKET" else _LIST_BY_OPTION_SQL
        result = await db.execute(sql, {"target_id": target_id, "status": status})
        return [_row_to_bet(row) for row in result.fetchall()]

    async def mark_settled(
        self, db: AsyncSession, bet_id: str, status: str, settled_at: datetime
    ) -> bool:
        """False means the bet was no longer PENDING."""
        result = await db.execute(
            _MARK_SETTLED_SQL,
            {"bet_id": bet_id, "status": status, "settled_at": settled_at},
        )
        return result.rowcount == 1  # type: ignore[attr-defined]
