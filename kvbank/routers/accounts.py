"""
Accounts router — bank account management endpoints.

Admin endpoints (require JWT + ADMIN role):
    POST   /accounts                       — Create an account
    GET    /accounts                       — List all accounts
    GET    /accounts/by-number/{number}    — Look up by account number
    PUT    /accounts/{account_id}          — Update profile or balance
    DELETE /accounts/{account_id}          — Deactivate (soft delete)

Owner-or-admin endpoints (a member may only target their own account):
    GET    /accounts/{account_id}            — Account details and history
    GET    /accounts/{account_id}/balance    — Cached vs. computed balance
    GET    /accounts/{account_id}/movements  — Movement history
    POST   /accounts/{account_id}/movements  — Deposit, withdraw, transfer out
"""

from fastapi import APIRouter, Depends, Query, status

from kvbank.dependencies import (
    Principal,
    authorize_account,
    get_current_principal,
    get_repository,
    require_admin,
)
from kvbank.exceptions import AccountNotFoundError
from kvbank.models.account import AccountDraft
from kvbank.schemas.account import (
    AccountCreateRequest,
    AccountResponse,
    AccountSummaryResponse,
    AccountUpdateRequest,
    BalanceResponse,
)
from kvbank.schemas.movement import MovementCreateRequest, MovementResponse
from kvbank.services import ledger_service
from kvbank.services.account_repository import AccountRepository

router = APIRouter()


# ---------------------------------------------------------------------------
# Admin endpoints
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=AccountResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a bank account",
)
async def create_account(
    request: AccountCreateRequest,
    _: Principal = Depends(require_admin),
    repository: AccountRepository = Depends(get_repository),
):
    """
    Create an account with a generated id and account number.

    A positive `initial_balance_cents` is recorded as an "Initial deposit"
    movement.
    """
    return await repository.create(AccountDraft(**request.model_dump()))


@router.get(
    "",
    response_model=list[AccountSummaryResponse],
    summary="List all accounts",
)
async def list_accounts(
    active_only: bool = Query(False, description="Hide deactivated accounts"),
    _: Principal = Depends(require_admin),
    repository: AccountRepository = Depends(get_repository),
):
    accounts = await repository.list_all()
    if active_only:
        accounts = [account for account in accounts if account.is_active]
    return accounts


@router.get(
    "/by-number/{account_number}",
    response_model=AccountResponse,
    summary="Look up an account by its number",
)
async def get_account_by_number(
    account_number: str,
    _: Principal = Depends(require_admin),
    repository: AccountRepository = Depends(get_repository),
):
    account = await repository.get_by_account_number(account_number)
    if account is None:
        raise AccountNotFoundError(account_number)
    return account


@router.put(
    "/{account_id}",
    response_model=AccountResponse,
    summary="Update an account",
)
async def update_account(
    account_id: str,
    request: AccountUpdateRequest,
    _: Principal = Depends(require_admin),
    repository: AccountRepository = Depends(get_repository),
):
    """
    Update profile fields. A new `balance_cents` is applied as an
    "Administrative adjustment" movement for the difference.
    """
    return await repository.update(account_id, request.model_dump(exclude_unset=True))


@router.delete(
    "/{account_id}",
    response_model=AccountSummaryResponse,
    summary="Deactivate an account",
)
async def deactivate_account(
    account_id: str,
    _: Principal = Depends(require_admin),
    repository: AccountRepository = Depends(get_repository),
):
    """
    Soft delete: the account is kept with `is_active=false`. Refused with
    409 while the account holds money or has an active loan.
    """
    return await repository.soft_delete(account_id)


# ---------------------------------------------------------------------------
# Owner-or-admin endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/{account_id}",
    response_model=AccountResponse,
    summary="Get account details",
)
async def get_account(
    account_id: str,
    principal: Principal = Depends(get_current_principal),
    repository: AccountRepository = Depends(get_repository),
):
    authorize_account(principal, account_id)
    return await repository.require(account_id)


@router.get(
    "/{account_id}/balance",
    response_model=BalanceResponse,
    summary="Get account balance",
)
async def get_balance(
    account_id: str,
    principal: Principal = Depends(get_current_principal),
    repository: AccountRepository = Depends(get_repository),
):
    """
    Returns both the stored balance and the balance recomputed from the
    movement history. `match` is false only if the data is inconsistent.
    """
    authorize_account(principal, account_id)
    account = await repository.require(account_id)
    computed = account.computed_balance_cents()
    return BalanceResponse(
        account_id=account.id,
        cached_balance_cents=account.balance_cents,
        computed_balance_cents=computed,
        match=computed == account.balance_cents,
    )


@router.get(
    "/{account_id}/movements",
    response_model=list[MovementResponse],
    summary="List account movements",
)
async def list_movements(
    account_id: str,
    principal: Principal = Depends(get_current_principal),
    repository: AccountRepository = Depends(get_repository),
):
    """Movements in the order they were recorded (oldest first)."""
    authorize_account(principal, account_id)
    account = await repository.require(account_id)
    return account.movements


@router.post(
    "/{account_id}/movements",
    response_model=MovementResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a deposit, withdrawal or outgoing transfer",
)
async def create_movement(
    account_id: str,
    request: MovementCreateRequest,
    principal: Principal = Depends(get_current_principal),
    repository: AccountRepository = Depends(get_repository),
):
    """
    - **kind**: `deposit` adds to the balance; `withdrawal` and `transfer`
      subtract from it
    - **amount_cents**: Positive integer in cents (e.g., $50.00 = 5000)

    A debit larger than the balance is rejected with 422 and nothing is
    recorded.
    """
    authorize_account(principal, account_id)
    return await ledger_service.record_movement(
        repository, account_id, request.kind, request.amount_cents, request.description
    )
