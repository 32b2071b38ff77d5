"""
Security utilities for authentication.

Provides:
- Password hashing and verification (bcrypt)
- Session token (JWT) encoding and decoding
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from educore.config import settings

logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.bcrypt_rounds,
)

ACCESS_TOKEN_TYPE = "access"


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plain text password

    Returns:
        Bcrypt hashed password
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against a hash.

    Malformed hashes count as a mismatch.
    """
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        logger.warning("Stored password hash could not be parsed")
        return False


def normalize_email(email: str) -> str:
    """Emails are unique case-insensitively; store and look them up lower-cased."""
    return email.strip().lower()


def create_access_token(
    claims: dict[str, Any],
    expires_delta: timedelta | None = None,
    now: datetime | None = None,
) -> str:
    """
    Create a signed session token.

    Args:
        claims: Identity claims (``sub``, ``tenant_id``, ``role``)
        expires_delta: Token lifetime (default: from settings)
        now: Issue time, mainly for tests

    Returns:
        Encoded JWT token
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)

    issued_at = now or datetime.now(timezone.utc)

    to_encode = claims.copy()
    to_encode.update({
        "iat": issued_at,
        "exp": issued_at + expires_delta,
        "type": ACCESS_TOKEN_TYPE,
        "jti": uuid.uuid4().hex,
    })

    return jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.algorithm
    )


def decode_token(token: str, verify_exp: bool = True) -> dict[str, Any]:
    """
    Decode and verify a session token.

    With ``verify_exp=False`` the signature is still checked but expiry is
    left to the caller.

    Raises:
        ExpiredSignatureError: Signature is valid but the token has expired
        JWTError: Token is malformed or the signature does not verify
    """
    try:
        return jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
            options={
                "verify_exp": verify_exp,
                # python-jose turns require_exp into verify_exp
                "require_exp": verify_exp,
                "require_sub": True,
            },
        )
    except ExpiredSignatureError:
        raise
    except JWTError as e:
        logger.warning(f"JWT decode error: {e}")
        raise
