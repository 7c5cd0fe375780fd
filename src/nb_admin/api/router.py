"""Admin / subadmin REST API.

Staff (admin or subadmin):
  POST /admin/accounts                               open a wallet
  POST /admin/accounts/{id}/adjustments              signed manual adjustment
  GET  /admin/accounts/{id}/reconcile                cached balance vs. ledger replay
  GET  /admin/transactions                           approval queue / audit listing
  POST /admin/transactions/{id}/approve|reject       settle a deposit/withdrawal
  GET  /admin/{markets|option-games}/{id}/bets       bets placed on a target

Admin only:
  POST /admin/{markets|option-games}/{id}/declare-result
  POST /admin/{markets|option-games}/{id}/resume-settlement
"""

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.nb_account.application.schemas import (
    AdjustmentRequest,
    OpenAccountRequest,
)
from src.nb_account.application.service import AccountApplicationService
from src.nb_admin.application.schemas import SettlementReportOut
from src.nb_betting.application.schemas import BetListResponse, BetOut
from src.nb_betting.application.service import BetRegistry
from src.nb_common.database import get_db_session, get_session_factory
from src.nb_common.enums import ApprovalOutcome, TargetType
from src.nb_common.response import ApiResponse, success_response
from src.nb_gateway.auth.dependencies import Principal, require_admin, require_staff
from src.nb_market.application.schemas import DeclareResultRequest
from src.nb_settlement.application.engine import SettlementEngine
from src.nb_wallet.application.service import TransactionApprovalService

router = APIRouter(prefix="/admin", tags=["admin"])

_accounts = AccountApplicationService()
_approvals = TransactionApprovalService()
_registry = BetRegistry()

# URL segment -> target type
Collection = Literal["markets", "option-games"]
_TARGETS = {"markets": TargetType.MARKET, "option-games": TargetType.OPTION_GAME}


def _target_type(segment: str) -> TargetType:
    return _TARGETS[segment]


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


@router.post("/accounts")
async def open_account(
    body: OpenAccountRequest,
    request: Request,
    principal: Annotated[Principal, Depends(require_staff)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    data = await _accounts.open_account(db, body.account_id)
    return success_response(data.model_dump(), request)


@router.post("/accounts/{account_id}/adjustments")
async def adjust_account(
    account_id: str,
    body: AdjustmentRequest,
    request: Request,
    principal: Annotated[Principal, Depends(require_staff)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    data = await _accounts.adjust(
        db, account_id, body.delta_cents, principal.user_id, body.remarks
    )
    return success_response(data.model_dump(), request)


@router.get("/accounts/{account_id}/reconcile")
async def reconcile_account(
    account_id: str,
    request: Request,
    principal: Annotated[Principal, Depends(require_staff)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    data = await _accounts.reconcile(db, account_id)
    return success_response(data.model_dump(), request)


# ---------------------------------------------------------------------------
# Deposit / withdrawal approval
# ---------------------------------------------------------------------------


@router.get("/transactions")
async def list_transactions(
    request: Request,
    principal: Annotated[Principal, Depends(require_staff)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    account_id: str | None = Query(None),
    status: str | None = Query(None, description="e.g. PENDING for the approval queue"),
    kind: str | None = Query(None),
    cursor: str | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
) -> ApiResponse:
    data = await _accounts.list_transactions(
        db, account_id, cursor, limit, status=status, kind=kind
    )
    return success_response(data.model_dump(), request)


@router.post("/transactions/{transaction_id}/approve")
async def approve_transaction(
    transaction_id: int,
    request: Request,
    principal: Annotated[Principal, Depends(require_staff)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    data = await _approvals.settle(db, transaction_id, ApprovalOutcome.APPROVE, principal)
    return success_response(data.model_dump(), request)


@router.post("/transactions/{transaction_id}/reject")
async def reject_transaction(
    transaction_id: int,
    request: Request,
    principal: Annotated[Principal, Depends(require_staff)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    data = await _approvals.settle(db, transaction_id, ApprovalOutcome.REJECT, principal)
    return success_response(data.model_dump(), request)


# ---------------------------------------------------------------------------
# Results and settlement
# ---------------------------------------------------------------------------


@router.get("/{collection}/{target_id}/bets")
async def list_target_bets(
    collection: Collection,
    target_id: str,
    request: Request,
    principal: Annotated[Principal, Depends(require_staff)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    status: str | None = Query(None),
) -> ApiResponse:
    bets = await _registry.list_bets_by_target(db, _target_type(collection), target_id, status)
    data = BetListResponse(items=[BetOut.from_domain(b) for b in bets])
    return success_response(data.model_dump(), request)


@router.post("/{collection}/{target_id}/declare-result")
async def declare_result(
    collection: Collection,
    target_id: str,
    body: DeclareResultRequest,
    request: Request,
    principal: Annotated[Principal, Depends(require_admin)],
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
) -> ApiResponse:
    engine = SettlementEngine(session_factory=session_factory)
    report = await engine.declare_result(_target_type(collection), target_id, body.result_value)
    return success_response(SettlementReportOut.from_domain(report).model_dump(), request)


@router.post("/{collection}/{target_id}/resume-settlement")
async def resume_settlement(
    collection: Collection,
    target_id: str,
    request: Request,
    principal: Annotated[Principal, Depends(require_admin)],
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
) -> ApiResponse:
    engine = SettlementEngine(session_factory=session_factory)
    report = await engine.resume_settlement(_target_type(collection), target_id)
    return success_response(SettlementReportOut.from_domain(report).model_dump(), request)
