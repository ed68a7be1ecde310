"""
JWT authentication utilities.

WHY: Checkout and portal endpoints act on behalf of a signed-in user. The
token only needs to carry the user id; the user row is always reloaded so
deactivated accounts cannot start new billing sessions.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, Any, Optional

from jose import jwt, JWTError

from billing_bridge.core.config import settings
from billing_bridge.core.exceptions import (
    TokenExpiredError,
    TokenInvalidError,
)


def create_access_token(
    user_id: int,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a JWT access token for a user.

    Token includes:
    - user_id: Local user primary key
    - exp: Expiration time (default: JWT_EXPIRATION_MINUTES)
    - iat / nbf: Issued at / not before

    Args:
        user_id: Local user id
        expires_delta: Optional custom expiration time

    Returns:
        JWT token string
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.JWT_EXPIRATION_MINUTES))

    to_encode = {
        "user_id": user_id,
        "exp": expire,
        "iat": now,
        "nbf": now,
    }
    return jwt.encode(
        to_encode,
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )


def verify_token(token: str) -> Dict[str, Any]:
    """
    Verify and decode a JWT token.

    Args:
        token: JWT token string

    Returns:
        Decoded token payload

    Raises:
        TokenExpiredError: If token has expired
        TokenInvalidError: If token is malformed or signature invalid
    """
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )

    except jwt.ExpiredSignatureError:
        raise TokenExpiredError(reason="expired")

    except JWTError as e:
        raise TokenInvalidError(error=str(e))
