"""nb_market REST endpoints.

GET   /markets                         — list (any authenticated principal)
GET   /markets/{market_id}             — detail with game-type odds
POST  /markets                         — create (admin)
POST  /markets/{market_id}/open|close  — explicit lifecycle override (admin)
PATCH /markets/{market_id}/game-types/{game_type}
                                       — odds / active flag (admin)

Same shape, without game types, under /option-games for option games.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.nb_common.database import get_db_session
from src.nb_common.enums import GameType
from src.nb_common.response import ApiResponse, success_response
from src.nb_gateway.auth.dependencies import Principal, get_current_principal, require_admin
from src.nb_market.application.schemas import (
    CreateMarketRequest,
    CreateOptionGameRequest,
    UpdateGameTypeRequest,
)
from src.nb_market.application.service import MarketCatalogueService

router = APIRouter(prefix="/markets", tags=["markets"])
option_router = APIRouter(prefix="/option-games", tags=["option-games"])

_service = MarketCatalogueService()


# ---------------------------------------------------------------------------
# Markets
# ---------------------------------------------------------------------------


@router.get("")
async def list_markets(
    request: Request,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    result_status: str | None = Query(None, description="PENDING or DECLARED"),
    limit: int = Query(20, ge=1, le=100),
) -> ApiResponse:
    items = await _service.list_markets(db, result_status, limit)
    return success_response({"items": [m.model_dump() for m in items]}, request)


@router.get("/{market_id}")
async def get_market(
    market_id: str,
    request: Request,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_market(db, market_id)
    return success_response(result.model_dump(), request)


@router.post("")
async def create_market(
    body: CreateMarketRequest,
    request: Request,
    principal: Annotated[Principal, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.create_market(db, body)
    return success_response(result.model_dump(), request)


@router.post("/{market_id}/open")
async def open_market(
    market_id: str,
    request: Request,
    principal: Annotated[Principal, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.open_market(db, market_id)
    return success_response(result.model_dump(), request)


@router.post("/{market_id}/close")
async def close_market(
    market_id: str,
    request: Request,
    principal: Annotated[Principal, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.close_market(db, market_id)
    return success_response(result.model_dump(), request)


@router.patch("/{market_id}/game-types/{game_type}")
async def update_game_type(
    market_id: str,
    game_type: GameType,
    body: UpdateGameTypeRequest,
    request: Request,
    principal: Annotated[Principal, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.update_game_type_config(db, market_id, game_type, body)
    return success_response(result.model_dump(), request)


# ---------------------------------------------------------------------------
# Option games
# ---------------------------------------------------------------------------


@option_router.get("")
async def list_option_games(
    request: Request,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    result_status: str | None = Query(None, description="PENDING or DECLARED"),
    limit: int = Query(20, ge=1, le=100),
) -> ApiResponse:
    items = await _service.list_option_games(db, result_status, limit)
    return success_response({"items": [g.model_dump() for g in items]}, request)


@option_router.get("/{option_game_id}")
async def get_option_game(
    option_game_id: str,
    request: Request,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_option_game(db, option_game_id)
    return success_response(result.model_dump(), request)


@option_router.post("")
async def create_option_game(
    body: CreateOptionGameRequest,
    request: Request,
    principal: Annotated[Principal, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.create_option_game(db, body)
    return success_response(result.model_dump(), request)


@option_router.post("/{option_game_id}/open")
async def open_option_game(
    option_game_id: str,
    request: Request,
    principal: Annotated[Principal, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.open_option_game(db, option_game_id)
    return success_response(result.model_dump(), request)


@option_router.post("/{option_game_id}/close")
async def close_option_game(
    option_game_id: str,
    request: Request,
    principal: Annotated[Principal, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.close_option_game(db, option_game_id)
    return success_response(result.model_dump(), request)
