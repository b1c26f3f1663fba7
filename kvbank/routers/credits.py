"""
Credits router — revolving credit line endpoints.

Endpoints:
  POST   /credits                                   — Open a credit line (admin)
  POST   /credits/{account_id}/{credit_id}/approve  — pending → active (admin)
  POST   /credits/{account_id}/{credit_id}/draw     — Draw into the balance (owner or admin)
  POST   /credits/{account_id}/{credit_id}/repay    — Pay down from the balance (owner or admin)
  PUT    /credits/{account_id}/{credit_id}/limit    — Change the limit (admin)
  POST   /credits/{account_id}/{credit_id}/close    — active → closed (admin)
  DELETE /credits/{account_id}/{credit_id}          — Remove a non-active line (admin)
"""

from fastapi import APIRouter, Depends, status

from kvbank.dependencies import (
    Principal,
    authorize_account,
    get_current_principal,
    get_repository,
    require_admin,
)
from kvbank.schemas.credit import (
    CreditAmountRequest,
    CreditCreateRequest,
    CreditLimitRequest,
    CreditMovementResponse,
    CreditResponse,
)
from kvbank.schemas.movement import MovementResponse
from kvbank.services import ledger_service
from kvbank.services.account_repository import AccountRepository

router = APIRouter()


@router.post(
    "",
    response_model=CreditResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Open a credit line",
)
async def open_credit(
    request: CreditCreateRequest,
    _: Principal = Depends(require_admin),
    repository: AccountRepository = Depends(get_repository),
):
    return await ledger_service.open_credit(
        repository,
        request.account_id,
        request.limit_cents,
        request.interest_rate,
        credit_score=request.credit_score,
        monthly_payment_cents=request.monthly_payment_cents,
        next_payment_date=request.next_payment_date,
        pending=request.pending,
    )


@router.post(
    "/{account_id}/{credit_id}/approve",
    response_model=CreditResponse,
    summary="Approve a pending credit line",
)
async def approve_credit(
    account_id: str,
    credit_id: str,
    _: Principal = Depends(require_admin),
    repository: AccountRepository = Depends(get_repository),
):
    return await ledger_service.approve_credit(repository, account_id, credit_id)


@router.post(
    "/{account_id}/{credit_id}/draw",
    response_model=CreditMovementResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Draw from a credit line",
)
async def draw_credit(
    account_id: str,
    credit_id: str,
    request: CreditAmountRequest,
    principal: Principal = Depends(get_current_principal),
    repository: AccountRepository = Depends(get_repository),
):
    """
    Credits the drawn amount to the account balance. Rejected with 422 if
    it would pass the limit.
    """
    authorize_account(principal, account_id)
    credit, movement = await ledger_service.draw_credit(
        repository, account_id, credit_id, request.amount_cents
    )
    return CreditMovementResponse(
        credit=CreditResponse.model_validate(credit),
        movement=MovementResponse.model_validate(movement),
    )


@router.post(
    "/{account_id}/{credit_id}/repay",
    response_model=CreditMovementResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Repay a credit line",
)
async def repay_credit(
    account_id: str,
    credit_id: str,
    request: CreditAmountRequest,
    principal: Principal = Depends(get_current_principal),
    repository: AccountRepository = Depends(get_repository),
):
    authorize_account(principal, account_id)
    credit, movement = await ledger_service.repay_credit(
        repository, account_id, credit_id, request.amount_cents
    )
    return CreditMovementResponse(
        credit=CreditResponse.model_validate(credit),
        movement=MovementResponse.model_validate(movement),
    )


@router.put(
    "/{account_id}/{credit_id}/limit",
    response_model=CreditResponse,
    summary="Change a credit limit",
)
async def adjust_credit_limit(
    account_id: str,
    credit_id: str,
    request: CreditLimitRequest,
    _: Principal = Depends(require_admin),
    repository: AccountRepository = Depends(get_repository),
):
    return await ledger_service.adjust_credit_limit(
        repository, account_id, credit_id, request.limit_cents
    )


@router.post(
    "/{account_id}/{credit_id}/close",
    response_model=CreditResponse,
    summary="Close a credit line",
)
async def close_credit(
    account_id: str,
    credit_id: str,
    _: Principal = Depends(require_admin),
    repository: AccountRepository = Depends(get_repository),
):
    return await ledger_service.close_credit(repository, account_id, credit_id)


@router.delete(
    "/{account_id}/{credit_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a pending or closed credit line",
)
async def delete_credit(
    account_id: str,
    credit_id: str,
    _: Principal = Depends(require_admin),
    repository: AccountRepository = Depends(get_repository),
):
    await ledger_service.delete_credit(repository, account_id, credit_id)
