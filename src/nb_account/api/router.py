"""nb_account REST API — the caller's own wallet balance and history."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.nb_account.application.service import AccountApplicationService
from src.nb_common.database import get_db_session
from src.nb_common.response import ApiResponse, success_response
from src.nb_gateway.auth.dependencies import Principal, get_current_principal

router = APIRouter(prefix="/accounts", tags=["accounts"])

_service = AccountApplicationService()


@router.get("/me")
async def get_my_account(
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_account(db, principal.user_id)
    return success_response(data.model_dump(), request)


@router.get("/me/transactions")
async def list_my_transactions(
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    status: str | None = Query(None, description="Filter by TransactionStatus"),
    kind: str | None = Query(None, description="Filter by TransactionKind"),
) -> ApiResponse:
    data = await _service.list_transactions(
        db, principal.user_id, cursor, limit, status=status, kind=kind
    )
    return success_response(data.model_dump(), request)
