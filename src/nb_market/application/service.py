"""MarketCatalogueService — create, open/close and read markets and option games.

Result declaration is NOT here: it belongs to the Settlement Engine, which
owns the conditional declare and the payout run that follows it.
"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.nb_common.datetime_utils import as_utc, utc_now
from src.nb_common.enums import MARKET_GAME_TYPES, GameType, MarketStatus, ResultStatus
from src.nb_common.errors import (
    AlreadyDeclaredError,
    InvalidMarketConfigError,
    MarketNotFoundError,
    OptionGameNotFoundError,
)
from src.nb_common.ids import new_id
from src.nb_common.money import validate_odds
from src.nb_market.application.schemas import (
    CreateMarketRequest,
    CreateOptionGameRequest,
    GameTypeConfigIn,
    MarketOut,
    OptionGameOut,
    UpdateGameTypeRequest,
)
from src.nb_market.domain.models import GameTypeConfig, Market, OptionGame
from src.nb_market.domain.repository import (
    MarketRepositoryProtocol,
    OptionGameRepositoryProtocol,
)
from src.nb_market.infrastructure.persistence import MarketRepository, OptionGameRepository

logger = logging.getLogger(__name__)


def build_game_type_configs(
    items: list[GameTypeConfigIn], both_factor: int = settings.HURF_BOTH_ODDS_FACTOR
) -> list[GameTypeConfig]:
    """Validate the per-market game-type table.

    HURF without explicit both_odds_bps gets odds_bps * both_factor, fixed
    here once so that bet placement only ever reads a stored number.
    """
    seen: set[GameType] = set()
    configs: list[GameTypeConfig] = []
    for item in items:
        if item.game_type not in MARKET_GAME_TYPES:
            raise InvalidMarketConfigError(f"{item.game_type.value} cannot be offered on a market")
        if item.game_type in seen:
            raise InvalidMarketConfigError(f"duplicate game type {item.game_type.value}")
        seen.add(item.game_type)
        validate_odds(item.odds_bps)

        both = item.both_odds_bps
        if item.game_type is GameType.HURF:
            if both is None:
                both = item.odds_bps * both_factor
            validate_odds(both)
        elif both is not None:
            raise InvalidMarketConfigError("both_odds_bps only applies to HURF")

        configs.append(
            GameTypeConfig(
                game_type=item.game_type,
                odds_bps=item.odds_bps,
                both_odds_bps=both,
                is_active=item.is_active,
            )
        )
    if not configs:
        raise InvalidMarketConfigError("at least one game type is required")
    return configs


def _validate_window(opening_time: datetime, closing_time: datetime) -> tuple[datetime, datetime]:
    opening: datetime = as_utc(opening_time)  # type: ignore[assignment]
    closing: datetime = as_utc(closing_time)  # type: ignore[assignment]
    if closing <= opening:
        raise InvalidMarketConfigError("closing_time must be after opening_time")
    return opening, closing


class MarketCatalogueService:
    def __init__(
        self,
        market_repo: MarketRepositoryProtocol | None = None,
        option_repo: OptionGameRepositoryProtocol | None = None,
    ) -> None:
        self._markets: MarketRepositoryProtocol = market_repo or MarketRepository()
        self._options: OptionGameRepositoryProtocol = option_repo or OptionGameRepository()

    # ------------------------------------------------------------------
    # Markets
    # ------------------------------------------------------------------

    async def create_market(self, db: AsyncSession, body: CreateMarketRequest) -> MarketOut:
        opening, closing = _validate_window(body.opening_time, body.closing_time)
        configs = build_game_type_configs(body.game_types)
        now = utc_now()
        market = Market(
            id=new_id("mkt"),
            name=body.name,
            opening_time=opening,
            closing_time=closing,
            status=MarketStatus.UPCOMING.value,
            result_status=ResultStatus.PENDING.value,
            created_at=now,
            updated_at=now,
            game_types=configs,
        )
        try:
            await self._markets.insert_market(db, market)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(
            "Market created: %s %r game_types=%s",
            market.id, market.name, [c.game_type.value for c in configs],
        )
        return MarketOut.from_domain(market, now)

    async def get_market(self, db: AsyncSession, market_id: str) -> MarketOut:
        market = await self._markets.get_market(db, market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        return MarketOut.from_domain(market, utc_now())

    async def list_markets(
        self, db: AsyncSession, result_status: str | None, limit: int
    ) -> list[MarketOut]:
        now = utc_now()
        markets = await self._markets.list_markets(db, result_status, limit)
        return [MarketOut.from_domain(m, now) for m in markets]

    async def open_market(self, db: AsyncSession, market_id: str) -> MarketOut:
        return await self._set_market_status(db, market_id, MarketStatus.OPEN)

    async def close_market(self, db: AsyncSession, market_id: str) -> MarketOut:
        return await self._set_market_status(db, market_id, MarketStatus.CLOSED)

    async def _set_market_status(
        self, db: AsyncSession, market_id: str, status: MarketStatus
    ) -> MarketOut:
        market = await self._markets.get_market(db, market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        if market.is_declared:
            raise AlreadyDeclaredError(market_id)
        now = utc_now()
        try:
            if not await self._markets.set_status(db, market_id, status.value, now):
                raise AlreadyDeclaredError(market_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        market.status = status.value
        market.updated_at = now
        logger.info("Market %s set %s", market_id, status.value)
        return MarketOut.from_domain(market, now)

    async def update_game_type_config(
        self,
        db: AsyncSession,
        market_id: str,
        game_type: GameType,
        body: UpdateGameTypeRequest,
    ) -> MarketOut:
        """Change odds or the active flag of one offered game type.

        Only future bets see the change; placed bets keep the odds_bps they
        locked in. HURF both odds keep their stored value unless given.
        """
        market = await self._markets.get_market(db, market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        if market.is_declared:
            raise AlreadyDeclaredError(market_id)
        current = market.config_for(game_type)
        if current is None:
            raise InvalidMarketConfigError(f"{game_type.value} is not offered on {market_id}")

        odds = body.odds_bps if body.odds_bps is not None else current.odds_bps
        validate_odds(odds)
        both = current.both_odds_bps
        if body.both_odds_bps is not None:
            if game_type is not GameType.HURF:
                raise InvalidMarketConfigError("both_odds_bps only applies to HURF")
            validate_odds(body.both_odds_bps)
            both = body.both_odds_bps
        updated = GameTypeConfig(
            game_type=game_type,
            odds_bps=odds,
            both_odds_bps=both,
            is_active=body.is_active if body.is_active is not None else current.is_active,
        )

        try:
            if not await self._markets.update_game_type(db, market_id, updated):
                raise AlreadyDeclaredError(market_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        market.game_types = [updated if c.game_type is game_type else c for c in market.game_types]
        logger.info(
            "Market %s %s updated: odds_bps=%d both_odds_bps=%s active=%s",
            market_id, game_type.value, updated.odds_bps, updated.both_odds_bps,
            updated.is_active,
        )
        return MarketOut.from_domain(market, utc_now())

    # ------------------------------------------------------------------
    # Option games
    # ------------------------------------------------------------------

    async def create_option_game(
        self, db: AsyncSession, body: CreateOptionGameRequest
    ) -> OptionGameOut:
        opening, closing = _validate_window(body.opening_time, body.closing_time)
        validate_odds(body.odds_bps)
        if body.team_a.strip().lower() == body.team_b.strip().lower():
            raise InvalidMarketConfigError("team_a and team_b must differ")
        now = utc_now()
        game = OptionGame(
            id=new_id("opt"),
            title=body.title,
            team_a=body.team_a,
            team_b=body.team_b,
            opening_time=opening,
            closing_time=closing,
            status=MarketStatus.UPCOMING.value,
            result_status=ResultStatus.PENDING.value,
            odds_bps=body.odds_bps,
            created_at=now,
            updated_at=now,
        )
        try:
            await self._options.insert_option_game(db, game)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Option game created: %s %r", game.id, game.title)
        return OptionGameOut.from_domain(game, now)

    async def get_option_game(self, db: AsyncSession, option_game_id: str) -> OptionGameOut:
        game = await self._options.get_option_game(db, option_game_id)
        if game is None:
            raise OptionGameNotFoundError(option_game_id)
        return OptionGameOut.from_domain(game, utc_now())

    async def list_option_games(
        self, db: AsyncSession, result_status: str | None, limit: int
    ) -> list[OptionGameOut]:
        now = utc_now()
        games = await self._options.list_option_games(db, result_status, limit)
        return [OptionGameOut.from_domain(g, now) for g in games]

    async def open_option_game(self, db: AsyncSession, option_game_id: str) -> OptionGameOut:
        return await self._set_option_status(db, option_game_id, MarketStatus.OPEN)

    async def close_option_game(self, db: AsyncSession, option_game_id: str) -> OptionGameOut:
        return await self._set_option_status(db, option_game_id, MarketStatus.CLOSED)

    async def _set_option_status(
        self, db: AsyncSession, option_game_id: str, status: MarketStatus
    ) -> OptionGameOut:
        game = await self._options.get_option_game(db, option_game_id)
        if game is None:
            raise OptionGameNotFoundError(option_game_id)
        if game.is_declared:
            raise AlreadyDeclaredError(option_game_id)
        now = utc_now()
        try:
            if not await self._options.set_status(db, option_game_id, status.value, now):
                raise AlreadyDeclaredError(option_game_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        game.status = status.value
        game.updated_at = now
        logger.info("Option game %s set %s", option_game_id, status.value)
        return OptionGameOut.from_domain(game, now)
