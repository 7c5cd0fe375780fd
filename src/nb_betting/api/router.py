"""nb_betting REST API — players place and read their own bets."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.nb_betting.application.schemas import (
    BetListResponse,
    BetOut,
    PlaceMarketBetRequest,
    PlaceOptionBetRequest,
)
from src.nb_betting.application.service import BetRegistry
from src.nb_common.database import get_db_session
from src.nb_common.response import ApiResponse, success_response
from src.nb_gateway.auth.dependencies import Principal, get_current_principal

router = APIRouter(prefix="/bets", tags=["bets"])

_registry = BetRegistry()


@router.post("/market")
async def place_market_bet(
    body: PlaceMarketBetRequest,
    request: Request,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    bet = await _registry.place_market_bet(
        db, principal.user_id, body.market_id, body.game_type, body.selection, body.amount_cents
    )
    return success_response(BetOut.from_domain(bet).model_dump(), request)


@router.post("/option")
async def place_option_bet(
    body: PlaceOptionBetRequest,
    request: Request,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    bet = await _registry.place_option_bet(
        db, principal.user_id, body.option_game_id, body.selection, body.amount_cents
    )
    return success_response(BetOut.from_domain(bet).model_dump(), request)


@router.get("")
async def list_my_bets(
    request: Request,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    status: str | None = Query(None, description="PENDING, WON or LOST"),
    limit: int = Query(50, ge=1, le=200),
) -> ApiResponse:
    bets = await _registry.list_bets_by_account(db, principal.user_id, status, limit)
    data = BetListResponse(items=[BetOut.from_domain(b) for b in bets])
    return success_response(data.model_dump(), request)


@router.get("/{bet_id}")
async def get_bet(
    bet_id: str,
    request: Request,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    owner = None if principal.is_staff else principal.user_id
    bet = await _registry.get_bet(db, bet_id, owner)
    return success_response(BetOut.from_domain(bet).model_dump(), request)
