"""JWT token generation and validation utilities.

Uses the algorithm and secret from settings.
Tokens include standard claims (exp, iat, sub) plus a custom role claim.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from zynkly.lib.settings import settings


def create_access_token(
    user_id: str,
    role: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a JWT access token for a user.

    Args:
        user_id: UUID of the user (stored in 'sub' claim)
        role: Role of the user (customer, admin)
        expires_delta: Optional custom expiration time, defaults to
            ``settings.jwt_expiration_minutes``

    Returns:
        Encoded JWT token string

    Example:
        >>> token = create_access_token("123e4567-e89b-12d3-a456-426614174000", "customer")
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.jwt_expiration_minutes)

    now = datetime.now(timezone.utc)

    payload = {
        "sub": user_id,
        "role": role,
        "iat": now,
        "exp": now + expires_delta,
    }

    return jwt.encode(
        payload,
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )


def verify_token(token: str) -> dict:
    """Verify and decode a JWT token.

    Args:
        token: JWT token string to verify

    Returns:
        Decoded token payload with claims

    Raises:
        jwt.InvalidTokenError: If token is invalid, expired, or signature doesn't match
    """
    return jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[settings.jwt_algorithm],
    )


def get_user_from_token(token: str) -> tuple[str, str]:
    """Extract user_id and role from a token.

    Raises:
        jwt.InvalidTokenError: If token is invalid
        KeyError: If required claims are missing
    """
    payload = verify_token(token)
    return payload["sub"], payload["role"]
