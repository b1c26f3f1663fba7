"""
Pydantic schemas for authentication endpoints (signup and login).

These schemas define the request/response contracts for the auth API.
Pydantic validates incoming data automatically — if a required field is
missing or the wrong type, FastAPI returns a 422 error before our code
even runs.
"""

from pydantic import BaseModel, EmailStr, Field

from kvbank.models.account import AccountType


class SignupRequest(BaseModel):
    """Request body for POST /auth/signup."""
    full_name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    password: str = Field(min_length=6)
    account_type: AccountType = AccountType.CHECKING
    phone: str = ""
    address: str = ""


class LoginRequest(BaseModel):
    """
    Request body for POST /auth/login.

    `identifier` is the admin login name, an email or an account number.
    """
    identifier: str = Field(min_length=1)
    password: str


class TokenResponse(BaseModel):
    """Response body for successful login — contains the JWT."""
    token: str
    token_type: str = "bearer"
    role: str


class SignupResponse(BaseModel):
    """Response body for successful signup — account info + JWT."""
    account_id: str
    account_number: str
    email: str
    token: str
    token_type: str = "bearer"


class PrincipalResponse(BaseModel):
    """Response body for GET /auth/me."""
    subject: str
    role: str
