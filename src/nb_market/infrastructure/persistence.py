"""MarketRepository / OptionGameRepository — raw text() SQL.

declare_result is the linearization point of settlement: one conditional
UPDATE ... WHERE result_status = 'PENDING'. Of two concurrent declarations
exactly one matches a row; the other sees rowcount 0.

Nothing here commits; the calling service owns the transaction.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.nb_common.datetime_utils import as_utc
from src.nb_common.enums import GameType
from src.nb_market.domain.models import GameTypeConfig, Market, OptionGame

# ---------------------------------------------------------------------------
# SQL: markets
# ---------------------------------------------------------------------------

_MARKET_COLUMNS = """
    id, name, opening_time, closing_time, status, result_status,
    result_value, declared_at, created_at, updated_at
"""

_INSERT_MARKET_SQL = text("""
    INSERT INTO markets
        (id, name, opening_time, closing_time, status, result_status,
         created_at, updated_at)
    VALUES
        (:id, :name, :opening_time, :closing_time, :status, 'PENDING',
         :now, :now)
""")

_INSERT_GAME_TYPE_SQL = text("""
    INSERT INTO market_game_types (market_id, game_type, odds_bps, both_odds_bps, is_active)
    VALUES (:market_id, :game_type, :odds_bps, :both_odds_bps, :is_active)
""")

_GET_MARKET_SQL = text(f"""
    SELECT {_MARKET_COLUMNS}
    FROM markets
    WHERE id = :market_id
""")

_GET_GAME_TYPES_SQL = text("""
    SELECT game_type, odds_bps, both_odds_bps, is_active
    FROM market_game_types
    WHERE market_id = :market_id
    ORDER BY game_type
""")

_LIST_MARKETS_SQL = text(f"""
    SELECT {_MARKET_COLUMNS}
    FROM markets
    WHERE (CAST(:result_status AS TEXT) IS NULL OR result_status = CAST(:result_status AS TEXT))
    ORDER BY opening_time DESC, id DESC
    LIMIT :limit
""")

# Declared markets keep the odds their bets were settled against
_UPDATE_GAME_TYPE_SQL = text("""
    UPDATE market_game_types
    SET odds_bps = :odds_bps, both_odds_bps = :both_odds_bps, is_active = :is_active
    WHERE market_id = :market_id
      AND game_type = :game_type
      AND EXISTS (
          SELECT 1 FROM markets
          WHERE id = :market_id AND result_status = 'PENDING'
      )
""")

# A declared market is frozen: status changes only while result_status is PENDING
_SET_MARKET_STATUS_SQL = text("""
    UPDATE markets
    SET status = :status, updated_at = :now
    WHERE id = :market_id AND result_status = 'PENDING'
""")

# No-op write that row-locks an open, undeclared market for the rest of the
# transaction; a concurrent close or declaration waits for (or beats) it.
_HOLD_MARKET_OPEN_SQL = text("""
    UPDATE markets
    SET updated_at = updated_at
    WHERE id = :market_id
      AND result_status = 'PENDING'
      AND status <> 'CLOSED'
      AND (status = 'OPEN' OR opening_time <= :now)
      AND closing_time > :now
""")

_DECLARE_MARKET_SQL = text("""
    UPDATE markets
    SET result_status = 'DECLARED',
        result_value = :result_value,
        status = 'CLOSED',
        declared_at = :now,
        updated_at = :now
    WHERE id = :market_id AND result_status = 'PENDING'
""")

# ---------------------------------------------------------------------------
# SQL: option games
# ---------------------------------------------------------------------------

_OPTION_COLUMNS = """
    id, title, team_a, team_b, opening_time, closing_time, status,
    result_status, winning_team, odds_bps, declared_at, created_at, updated_at
"""

_INSERT_OPTION_SQL = text("""
    INSERT INTO option_games
        (id, title, team_a, team_b, opening_time, closing_time, status,
         result_status, odds_bps, created_at, updated_at)
    VALUES
        (:id, :title, :team_a, :team_b, :opening_time, :closing_time, :status,
         'PENDING', :odds_bps, :now, :now)
""")

_GET_OPTION_SQL = text(f"""
    SELECT {_OPTION_COLUMNS}
    FROM option_games
    WHERE id = :option_game_id
""")

_LIST_OPTIONS_SQL = text(f"""
    SELECT {_OPTION_COLUMNS}
    FROM option_games
    WHERE (CAST(:result_status AS TEXT) IS NULL OR result_status = CAST(:result_status AS TEXT))
    ORDER BY opening_time DESC, id DESC
    LIMIT :limit
""")

_SET_OPTION_STATUS_SQL = text("""
    UPDATE option_games
    SET status = :status, updated_at = :now
    WHERE id = :option_game_id AND result_status = 'PENDING'
""")

_HOLD_OPTION_OPEN_SQL = text("""
    UPDATE option_games
    SET updated_at = updated_at
    WHERE id = :option_game_id
      AND result_status = 'PENDING'
      AND status <> 'CLOSED'
      AND (status = 'OPEN' OR opening_time <= :now)
      AND closing_time > :now
""")

_DECLARE_OPTION_SQL = text("""
    UPDATE option_games
    SET result_status = 'DECLARED',
        winning_team = :winning_team,
        status = 'CLOSED',
        declared_at = :now,
        updated_at = :now
    WHERE id = :option_game_id AND result_status = 'PENDING'
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_market(row: Any, game_types: list[GameTypeConfig]) -> Market:
    return Market(
        id=row.id,
        name=row.name,
        opening_time=as_utc(row.opening_time),  # type: ignore[arg-type]
        closing_time=as_utc(row.closing_time),  # type: ignore[arg-type]
        status=row.status,
        result_status=row.result_status,
        result_value=row.result_value,
        declared_at=as_utc(row.declared_at),
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
        game_types=game_types,
    )


def _row_to_config(row: Any) -> GameTypeConfig:
    return GameTypeConfig(
        game_type=GameType(row.game_type),
        odds_bps=int(row.odds_bps),
        both_odds_bps=int(row.both_odds_bps) if row.both_odds_bps is not None else None,
        is_active=bool(row.is_active),
    )


def _row_to_option_game(row: Any) -> OptionGame:
    return OptionGame(
        id=row.id,
        title=row.title,
        team_a=row.team_a,
        team_b=row.team_b,
        opening_time=as_utc(row.opening_time),  # type: ignore[arg-type]
        closing_time=as_utc(row.closing_time),  # type: ignore[arg-type]
        status=row.status,
        result_status=row.result_status,
        winning_team=row.winning_team,
        odds_bps=int(row.odds_bps),
        declared_at=as_utc(row.declared_at),
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
    )


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


class MarketRepository:
    async def insert_market(self, db: AsyncSession, market: Market) -> Market:
        await db.execute(
            _INSERT_MARKET_SQL,
            {
                "id": market.id,
                "name": market.name,
                "opening_time": market.opening_time,
                "closing_time": market.closing_time,
                "status": market.status,
                "now": market.created_at,
            },
        )
        for cfg in market.game_types:
            await db.execute(
                _INSERT_GAME_TYPE_SQL,
                {
                    "market_id": market.id,
                    "game_type": cfg.game_type.value,
                    "odds_bps": cfg.odds_bps,
                    "both_odds_bps": cfg.both_odds_bps,
                    "is_active": cfg.is_active,
                },
            )
        return market

    async def get_market(self, db: AsyncSession, market_id: str) -> Market | None:
        result = await db.execute(_GET_MARKET_SQL, {"market_id": market_id})
        row = result.fetchone()
        if row is None:
            return None
        return _row_to_market(row, await self._load_game_types(db, market_id))

    async def list_markets(
        self, db: AsyncSession, result_status: str | None, limit: int
    ) -> list[Market]:
        result = await db.execute(
            _LIST_MARKETS_SQL, {"result_status": result_status, "limit": limit}
        )
        rows = result.fetchall()
        # N+1 on game types; list pages are small (limit <= 100)
        return [_row_to_market(row, await self._load_game_types(db, row.id)) for row in rows]

    async def update_game_type(
        self, db: AsyncSession, market_id: str, cfg: GameTypeConfig
    ) -> bool:
        """False means the market is already declared (or the game type is not offered)."""
        result = await db.execute(
            _UPDATE_GAME_TYPE_SQL,
            {
                "market_id": market_id,
                "game_type": cfg.game_type.value,
                "odds_bps": cfg.odds_bps,
                "both_odds_bps": cfg.both_odds_bps,
                "is_active": cfg.is_active,
            },
        )
        return result.rowcount == 1  # type: ignore[attr-defined]

    async def set_status(
        self, db: AsyncSession, market_id: str, status: str, now: datetime
    ) -> bool:
        """False means the market is unknown or already declared."""
        result = await db.execute(
            _SET_MARKET_STATUS_SQL, {"market_id": market_id, "status": status, "now": now}
        )
        return result.rowcount == 1  # type: ignore[attr-defined]

    async def hold_open(self, db: AsyncSession, market_id: str, now: datetime) -> bool:
        """True if the market still takes bets; the row stays locked until commit."""
        result = await db.execute(_HOLD_MARKET_OPEN_SQL, {"market_id": market_id, "now": now})
        return result.rowcount == 1  # type: ignore[attr-defined]

    async def declare_result(
        self, db: AsyncSession, market_id: str, result_value: str, now: datetime
    ) -> bool:
        """True for exactly one caller per market."""
        result = await db.execute(
            _DECLARE_MARKET_SQL,
            {"market_id": market_id, "result_value": result_value, "now": now},
        )
        return result.rowcount == 1  # type: ignore[attr-defined]

    async def _load_game_types(self, db: AsyncSession, market_id: str) -> list[GameTypeConfig]:
        result = await db.execute(_GET_GAME_TYPES_SQL, {"market_id": market_id})
        return [_row_to_config(row) for row in result.fetchall()]


class OptionGameRepository:
    async def insert_option_game(self, db: AsyncSession, game: OptionGame) -> OptionGame:
        await db.execute(
            _INSERT_OPTION_SQL,
            {
                "id": game.id,
                "title": game.title,
                "team_a": game.team_a,
                "team_b": game.team_b,
                "opening_time": game.opening_time,
                "closing_time": game.closing_time,
                "status": game.status,
                "odds_bps": game.odds_bps,
                "now": game.created_at,
            },
        )
        return game

    async def get_option_game(
        self, db: AsyncSession, option_game_id: str
    ) -> OptionGame | None:
        result = await db.execute(_GET_OPTION_SQL, {"option_game_id": option_game_id})
        row = result.fetchone()
        return _row_to_option_game(row) if row else None

    async def list_option_games(
        self, db: AsyncSession, result_status: str | None, limit: int
    ) -> list[OptionGame]:
        result = await db.execute(
            _LIST_OPTIONS_SQL, {"result_status": result_status, "limit": limit}
        )
        return [_row_to_option_game(row) for row in result.fetchall()]

    async def set_status(
        self, db: AsyncSession, option_game_id: str, status: str, now: datetime
    ) -> bool:
        result = await db.execute(
            _SET_OPTION_STATUS_SQL,
            {"option_game_id": option_game_id, "status": status, "now": now},
        )
        return result.rowcount == 1  # type: ignore[attr-defined]

    async def hold_open(self, db: AsyncSession, option_game_id: str, now: datetime) -> bool:
        result = await db.execute(
            _HOLD_OPTION_OPEN_SQL, {"option_game_id": option_game_id, "now": now}
        )
        return result.rowcount == 1  # type: ignore[attr-defined]

    async def declare_result(
        self, db: AsyncSession, option_game_id: str, winning_team: str, now: datetime
    ) -> bool:
        result = await db.execute(
            _DECLARE_OPTION_SQL,
            {"option_game_id": option_game_id, "winning_team": winning_team, "now": now},
        )
        return result.rowcount == 1  # type: ignore[attr-defined]
