"""
FastAPI dependencies for storage access, authentication and authorization.

The chain every protected route goes through:

  get_repository (app.state -> AccountRepository)
  get_current_principal (JWT -> Principal)
      ├── require_admin (Principal -> Principal)           [ADMIN role]
      └── authorize_account (Principal + account id)       [owner or ADMIN]

Roles:
  - MEMBER: The owner of one account. Can read that account, record
    movements on it, transfer from it and request loans for it.
  - ADMIN: The single bank administrator. Can create, edit and deactivate
    any account, grant loans and credit lines, and run maintenance tasks.

The repository lives on `app.state`, built by the application factory.
"""

from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError

from kvbank.exceptions import UnauthorizedAccessError
from kvbank.security import decode_access_token
from kvbank.services.account_repository import AccountRepository
from kvbank.services.auth_service import ADMIN_SUBJECT, ROLE_ADMIN, ROLE_MEMBER


# Bearer token from the Authorization header; tokenUrl feeds the docs UI
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


@dataclass(frozen=True)
class Principal:
    """The authenticated caller: the administrator or one account owner."""
    subject: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


def get_repository(request: Request) -> AccountRepository:
    return request.app.state.repository


async def get_current_principal(
    token: str = Depends(oauth2_scheme),
    repository: AccountRepository = Depends(get_repository),
) -> Principal:
    """
    Extract and validate the JWT token, then return the caller's Principal.

    Member tokens are only honoured while the account exists and is active,
    so a deactivated account loses access immediately.

    Raises:
        HTTPException 401: If the token is invalid or the account is gone.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_access_token(token)
    except JWTError:
        raise credentials_exception

    subject: str | None = payload.get("sub")
    role: str | None = payload.get("role")
    if subject is None or role not in (ROLE_ADMIN, ROLE_MEMBER):
        raise credentials_exception

    if role == ROLE_ADMIN:
        if subject != ADMIN_SUBJECT:
            raise credentials_exception
        return Principal(subject=subject, role=role)

    account = await repository.get_by_id(subject)
    if account is None or not account.is_active:
        raise credentials_exception
    return Principal(subject=subject, role=role)


async def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    """
    Require the authenticated caller to be the administrator.

    Raises:
        HTTPException 403: If the caller is a member.
    """
    if not principal.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return principal


def authorize_account(principal: Principal, account_id: str) -> None:
    """
    Allow the administrator, or the member who owns `account_id`.

    Raises:
        UnauthorizedAccessError: If a member targets someone else's account.
    """
    if principal.is_admin or principal.subject == account_id:
        return
    raise UnauthorizedAccessError("You do not have access to this account")
