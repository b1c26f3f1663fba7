"""
Administrator profile and activity log entries.

There is exactly one administrator. Its profile lives in a single scalar
document; the login name is fixed by configuration (ADMIN_LOGIN) and only
the Argon2 hash of its password is stored.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from kvbank.models.account import utcnow


class AdminInfo(BaseModel):
    name: str = "Main Administrator"
    email: str = "admin@kvbank.local"
    phone: str = ""
    password_hash: str
    last_login: datetime | None = None


class ActivityEntry(BaseModel):
    """One audit record in the per-day activity log."""
    action: str
    account_id: str | None = None
    timestamp: datetime = Field(default_factory=utcnow)
    details: dict[str, Any] = Field(default_factory=dict)
