"""Repository Protocol — dependency inversion for testability."""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.nb_betting.domain.models import Bet


class BetRepositoryProtocol(Protocol):
    async def insert_bet(self, db: AsyncSession, bet: Bet) -> Bet: ...

    async def get_bet(self, db: AsyncSession, bet_id: str) -> Bet | None: ...

    async def list_bets_by_account(
        self,
        db: AsyncSession,
        account_id: str,
        status: str | None,
        limit: int,
    ) -> list[Bet]: ...

    async def list_bets_by_target(
        self,
        db: AsyncSession,
        target_type: str,
        target_id: str,
        status: str | None,
    ) -> list[Bet]: ...

    async def mark_settled(
        self, db: AsyncSession, bet_id: str, status: str, settled_at: datetime
    ) -> bool: ...
