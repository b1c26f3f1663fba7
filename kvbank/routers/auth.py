"""
Authentication router — signup, login and identity endpoints.

Signup and login are the only public (unauthenticated) endpoints in the API.
Everything else requires a valid JWT token.

Endpoints:
  POST /auth/signup  — Open an account and get a token
  POST /auth/login   — Authenticate (admin name, email or account number)
  GET  /auth/me      — Who am I?

Security audit notes:
  - Plaintext passwords exist only in memory during request processing;
    they are hashed before anything is stored and never logged.
  - A failed login always returns the same 401 body, whatever the reason.
"""

from fastapi import APIRouter, Depends, status

from kvbank.dependencies import Principal, get_current_principal, get_repository
from kvbank.models.account import AccountDraft
from kvbank.schemas.auth import (
    LoginRequest,
    PrincipalResponse,
    SignupRequest,
    SignupResponse,
    TokenResponse,
)
from kvbank.services import auth_service
from kvbank.services.account_repository import AccountRepository

router = APIRouter()


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Open an account",
)
async def signup(
    request: SignupRequest,
    repository: AccountRepository = Depends(get_repository),
):
    """
    Self-service account opening. The new account starts with a zero
    balance and the owner is logged in immediately.
    """
    account, token = await auth_service.signup(
        repository,
        AccountDraft(**request.model_dump()),
    )
    return SignupResponse(
        account_id=account.id,
        account_number=account.account_number,
        email=account.email,
        token=token,
    )


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Log in and receive a JWT token",
)
async def login(
    request: LoginRequest,
    repository: AccountRepository = Depends(get_repository),
):
    """
    Authenticate with the administrator login name, or an account email or
    account number, plus the password.
    """
    token, role = await auth_service.login(repository, request.identifier, request.password)
    return TokenResponse(token=token, role=role)


@router.get(
    "/me",
    response_model=PrincipalResponse,
    summary="Describe the authenticated caller",
)
async def me(principal: Principal = Depends(get_current_principal)):
    return PrincipalResponse(subject=principal.subject, role=principal.role)
