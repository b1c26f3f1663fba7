"""
Authentication service — login, signup and the administrator profile.

This module contains the core auth logic, separated from HTTP concerns.
The router calls these functions and translates the results into HTTP
responses.

There are two kinds of principal:
  - The administrator: a single profile stored under `bank:admin`, logging
    in with the configured ADMIN_LOGIN name. On first use the profile is
    created with ADMIN_DEFAULT_PASSWORD, hashed like every other password.
  - Members: account owners, logging in with their email or account number.

Login flow:
  1. Try the administrator credentials
  2. Otherwise look the identifier up as an email, then as an account number
  3. Verify the password against the stored Argon2 hash
  4. Return a JWT whose "sub" is "admin" or the account id

Security notes:
  - Passwords are only ever compared through Argon2 verification
  - Every failure surfaces as the same InvalidCredentialsError; the actual
    reason (unknown identifier, wrong password, inactive account) is only
    written to the log
"""

import logging
from functools import lru_cache

from kvbank.config import get_settings
from kvbank.exceptions import InvalidCredentialsError, ValidationError
from kvbank.models.account import Account, AccountDraft, utcnow
from kvbank.models.admin import AdminInfo
from kvbank.security import create_access_token, hash_password, verify_password
from kvbank.services.account_repository import AccountRepository

logger = logging.getLogger(__name__)

ADMIN_SUBJECT = "admin"
ROLE_ADMIN = "admin"
ROLE_MEMBER = "member"

ADMIN_PROFILE_FIELDS = frozenset({"name", "email", "phone", "password"})


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    """Hash verified when no account matches, so misses cost as much as hits."""
    return hash_password("kvbank-no-such-account")


async def get_admin_info(repository: AccountRepository) -> AdminInfo:
    """
    Return the administrator profile, creating the default one if missing.
    """
    admin = await repository.get_admin_info()
    if admin is None:
        settings = get_settings()
        admin = AdminInfo(password_hash=hash_password(settings.ADMIN_DEFAULT_PASSWORD))
        await repository.save_admin_info(admin)
        logger.info("Created default administrator profile")
    return admin


async def update_admin_info(repository: AccountRepository, fields: dict) -> AdminInfo:
    """
    Update the administrator profile. A new password is hashed before storage.

    Raises:
        ValidationError: For unknown fields or a blank password.
    """
    rejected = sorted(set(fields) - ADMIN_PROFILE_FIELDS)
    if rejected:
        raise ValidationError(f"Fields cannot be updated: {', '.join(rejected)}", fields=rejected)

    admin = await get_admin_info(repository)
    changes = {name: value for name, value in fields.items() if value is not None}

    password = changes.pop("password", None)
    if password is not None:
        if not password.strip():
            raise ValidationError("Password cannot be blank", fields=["password"])
        admin.password_hash = hash_password(password)

    admin = admin.model_copy(update=changes)
    await repository.save_admin_info(admin)
    await repository.activity_log.record(
        "UPDATE_ADMIN",
        details={"changes": sorted(changes) + (["password_changed"] if password else [])},
    )
    return admin


async def verify_admin(repository: AccountRepository, identifier: str, password: str) -> bool:
    """Check administrator credentials and stamp last_login on success."""
    if identifier != get_settings().ADMIN_LOGIN:
        return False

    admin = await get_admin_info(repository)
    if not verify_password(password, admin.password_hash):
        logger.info("Administrator login rejected: wrong password")
        return False

    admin.last_login = utcnow()
    await repository.save_admin_info(admin)
    return True


async def verify_user(
    repository: AccountRepository, identifier: str, password: str
) -> Account | None:
    """
    Check member credentials.

    The identifier is tried as an email first, then as an account number.

    Returns:
        The account on success, None otherwise. Callers cannot tell an
        unknown identifier from a wrong password.
    """
    account = await repository.get_by_email(identifier)
    if account is None:
        account = await repository.get_by_account_number(identifier)

    if account is None or not account.is_active or not account.password_hash:
        verify_password(password, _dummy_hash())
        if account is None:
            logger.info("Login rejected: unknown identifier")
        else:
            logger.info("Login rejected: account %s is inactive or has no password", account.id)
        return None
    if not verify_password(password, account.password_hash):
        logger.info("Login rejected: wrong password for account %s", account.id)
        return None
    return account


async def login(repository: AccountRepository, identifier: str, password: str) -> tuple[str, str]:
    """
    Authenticate an administrator or member and return a JWT token.

    Returns:
        Tuple of (JWT token string, role).

    Raises:
        InvalidCredentialsError: If the credentials match no principal.
    """
    identifier = identifier.strip()

    if await verify_admin(repository, identifier, password):
        await repository.activity_log.record("ADMIN_LOGIN")
        token = create_access_token(ADMIN_SUBJECT, ROLE_ADMIN)
        return token, ROLE_ADMIN

    account = await verify_user(repository, identifier, password)
    if account is None:
        raise InvalidCredentialsError()

    await repository.activity_log.record("LOGIN", account.id)
    token = create_access_token(account.id, ROLE_MEMBER)
    return token, ROLE_MEMBER


async def signup(repository: AccountRepository, draft: AccountDraft) -> tuple[Account, str]:
    """
    Self-service registration: create an account and log its owner in.

    Unlike accounts created by the administrator, a password is mandatory.

    Raises:
        ValidationError: Missing password or required profile fields.
        DuplicateEmailError: If an active account already uses the email.
    """
    if not draft.password or not draft.password.strip():
        raise ValidationError("Password is required", fields=["password"])

    account = await repository.create(draft)
    token = create_access_token(account.id, ROLE_MEMBER)
    return account, token
