"""Security utilities for session tokens and vote-time password checks.

Sessions are short-lived JWTs whose subject is the voter email. The vote-time
password check compares against the plaintext password held in the voter
record; it is a weak re-authentication inherited from the data source and is
not a substitute for a real credential check.
"""

import hmac
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from core.config import settings

# Token issuer and audience for validation
TOKEN_ISSUER = "evote-gateway"
TOKEN_AUDIENCE = "evote-mobile"


def create_access_token(
    email: str,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a JWT access token for the given voter email."""
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {
        "sub": email,
        "exp": expire,
        "iat": now,
        "type": "access",
        "iss": TOKEN_ISSUER,
        "aud": TOKEN_AUDIENCE,
        "jti": secrets.token_urlsafe(16),  # Unique token ID for revocation
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict[str, Any] | None:
    """
    Decode and validate a JWT token.

    Returns:
        The decoded payload or None if invalid
    """
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            issuer=TOKEN_ISSUER,
            audience=TOKEN_AUDIENCE,
        )
    except JWTError:
        return None

    if payload.get("type") != "access" or not payload.get("sub") or not payload.get("jti"):
        return None
    return payload


def verify_plaintext_password(candidate: str, stored: str) -> bool:
    """Compare a re-entered password with the stored one in constant time."""
    if not stored:
        return False
    return hmac.compare_digest(candidate.encode("utf-8"), stored.encode("utf-8"))
