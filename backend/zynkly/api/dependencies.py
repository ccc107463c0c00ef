"""
API dependencies for FastAPI dependency injection.

Provides database sessions, authentication and the process-wide collaborators
(notification service, payment provider) that the app factory stores on
``app.state``.
"""
from typing import Optional
from uuid import UUID

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from zynkly.api.middleware.error_handler import ForbiddenException, UnauthorizedException
from zynkly.lib.db import get_db as get_db_session
from zynkly.lib.jwt import verify_token
from zynkly.models.users import User
from zynkly.services.notification_service import NotificationService
from zynkly.services.payment_service import RazorpayProvider


# Re-export get_db for convenience
get_db = get_db_session


# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """
    Dependency to get current authenticated user from JWT token.

    Args:
        credentials: Bearer token from Authorization header
        db: Database session

    Returns:
        Authenticated user

    Raises:
        UnauthorizedException: 401 if token missing/invalid or user not found
    """
    if credentials is None:
        raise UnauthorizedException("No token, authorization denied")

    try:
        payload = verify_token(credentials.credentials)
        user_id = UUID(payload.get("sub", ""))
    except (jwt.InvalidTokenError, ValueError, TypeError):
        raise UnauthorizedException("Token is not valid")

    user = db.get(User, user_id)
    if user is None:
        # Token outlived the account
        raise UnauthorizedException("Token is not valid")

    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    """Dependency that only lets administrators through."""
    if not user.is_admin:
        raise ForbiddenException("Access denied. Admin only.")
    return user


def get_notification_service(request: Request) -> NotificationService:
    return request.app.state.notifications


def get_payment_provider(request: Request) -> RazorpayProvider:
    return request.app.state.payment_provider
