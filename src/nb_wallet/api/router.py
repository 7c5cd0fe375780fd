"""nb_wallet REST API — players request deposits and withdrawals."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.nb_account.application.schemas import FundsRequest
from src.nb_common.database import get_db_session
from src.nb_common.response import ApiResponse, success_response
from src.nb_gateway.auth.dependencies import Principal, get_current_principal
from src.nb_wallet.application.service import TransactionApprovalService

router = APIRouter(prefix="/wallet", tags=["wallet"])

_service = TransactionApprovalService()


@router.post("/deposits")
async def request_deposit(
    body: FundsRequest,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.request_deposit(db, principal.user_id, body.amount_cents, body.remarks)
    return success_response(data.model_dump(), request)


@router.post("/withdrawals")
async def request_withdrawal(
    body: FundsRequest,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.request_withdrawal(
        db, principal.user_id, body.amount_cents, body.remarks
    )
    return success_response(data.model_dump(), request)
