"""Repository Protocols for markets and option games.

Unit tests inject mocks that conform to these Protocols.
Infrastructure layer provides the real implementations.
"""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.nb_market.domain.models import GameTypeConfig, Market, OptionGame


class MarketRepositoryProtocol(Protocol):
    async def insert_market(self, db: AsyncSession, market: Market) -> Market: ...

    async def get_market(self, db: AsyncSession, market_id: str) -> Market | None: ...

    async def list_markets(
        self, db: AsyncSession, result_status: str | None, limit: int
    ) -> list[Market]: ...

    async def update_game_type(
        self, db: AsyncSession, market_id: str, cfg: GameTypeConfig
    ) -> bool: ...

    async def set_status(
        self, db: AsyncSession, market_id: str, status: str, now: datetime
    ) -> bool: ...

    async def hold_open(self, db: AsyncSession, market_id: str, now: datetime) -> bool: ...

    async def declare_result(
        self, db: AsyncSession, market_id: str, result_value: str, now: datetime
    ) -> bool: ...


class OptionGameRepositoryProtocol(Protocol):
    async def insert_option_game(self, db: AsyncSession, game: OptionGame) -> OptionGame: ...

    async def get_option_game(
        self, db: AsyncSession, option_game_id: str
    ) -> OptionGame | None: ...

    async def list_option_games(
        self, db: AsyncSession, result_status: str | None, limit: int
    ) -> list[OptionGame]: ...

    async def set_status(
        self, db: AsyncSession, option_game_id: str, status: str, now: datetime
    ) -> bool: ...

    async def hold_open(self, db: AsyncSession, option_game_id: str, now: datetime) -> bool: ...

    async def declare_result(
        self, db: AsyncSession, option_game_id: str, winning_team: str, now: datetime
    ) -> bool: ...
