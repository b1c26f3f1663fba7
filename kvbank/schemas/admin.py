"""
Pydantic schemas for the administrator endpoints.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, EmailStr, Field


class AdminProfileResponse(BaseModel):
    """The administrator profile. Never includes the password hash."""
    name: str
    email: str
    phone: str
    last_login: datetime | None

    model_config = {"from_attributes": True}


class AdminProfileUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    email: EmailStr | None = None
    phone: str | None = None
    password: str | None = Field(default=None, min_length=6)

    model_config = {"extra": "forbid"}


class ActivityEntryResponse(BaseModel):
    action: str
    account_id: str | None
    timestamp: datetime
    details: dict[str, Any]

    model_config = {"from_attributes": True}


class InitResponse(BaseModel):
    accounts_created: int


class BackupResponse(BaseModel):
    key: str
