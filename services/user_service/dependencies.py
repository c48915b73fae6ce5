"""
User Service Dependencies

FastAPI dependencies for authentication and authorization. The booking service
consumes these to obtain a verified caller identity.
"""

import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from services.user_service.auth_utils import TokenError, jwt_manager
from services.user_service.models import UserModel
from services.user_service.repository import UserRepository
from shared.database import Database
from shared.domain.exceptions import AuthenticationError, AuthorizationError, ErrorCode

logger = structlog.get_logger(__name__)

# Bearer token scheme
security = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> UserModel:
    """
    Dependency to get current authenticated user from JWT token.

    The user is loaded in a short-lived session of its own so that no
    transaction stays open for the rest of the request.

    Args:
        request: Incoming request (carries the database handle)
        credentials: HTTP bearer credentials

    Returns:
        UserModel: Authenticated user

    Raises:
        AuthenticationError: If authentication fails
    """
    if credentials is None:
        raise AuthenticationError("You are not logged in. Please log in to get access.")

    try:
        user_id = jwt_manager.get_user_id_from_token(credentials.credentials)
    except TokenError as e:
        logger.warning("Token validation failed", error=str(e))
        raise AuthenticationError(
            "Invalid token. Please log in again.", error_code=ErrorCode.INVALID_TOKEN
        )

    database: Database = request.app.state.database
    async with database.session() as session:
        user = await UserRepository(session).get_user_by_id(user_id)

    if user is None:
        raise AuthenticationError("The user belonging to this token no longer exists.")

    return user


async def require_admin(current_user: UserModel = Depends(get_current_user)) -> UserModel:
    """
    Dependency to require admin privileges.

    Args:
        current_user: Current user

    Returns:
        UserModel: Admin user

    Raises:
        AuthorizationError: If user is not an admin
    """
    if not current_user.is_admin:
        raise AuthorizationError(
            "You do not have permission to perform this action.",
            action="admin",
        )
    return current_user
