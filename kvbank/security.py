"""
Security utilities: password hashing and JWT tokens.

All cryptographic operations live here so they're easy to audit and update.

Passwords (members and the administrator alike) are stored only as Argon2id
hashes through passlib's CryptContext. Tokens are HS256 JWTs carrying two
claims the API cares about:

    sub   "admin" for the administrator, otherwise the account id
    role  "admin" or "member"

plus "iat"/"exp". Lifetime defaults to ACCESS_TOKEN_EXPIRE_MINUTES.
"""

from datetime import datetime, timedelta, timezone

from jose import jwt
from passlib.context import CryptContext

from kvbank.config import get_settings

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(plain_password: str) -> str:
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """Check a password against a stored hash. A missing or foreign hash never verifies."""
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Not a hash passlib recognizes (e.g. a legacy plaintext value)
        return False


def create_access_token(
    subject: str,
    role: str | None,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Issue a signed token for `subject`.

    `role` may be None only to mint deliberately incomplete tokens; the API
    rejects a token without a known role.
    """
    settings = get_settings()
    issued_at = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    claims = {"sub": subject, "iat": issued_at, "exp": issued_at + lifetime}
    if role is not None:
        claims["role"] = role
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Verify signature and expiry and return the claims.

    Raises:
        JWTError: If the token is expired, tampered with, or invalid.
    """
    settings = get_settings()
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
