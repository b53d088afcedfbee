"""Authentication dependencies for FastAPI."""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from insights.auth.models import User
from insights.auth.tokens import get_user_from_token
from insights.logging_config import get_logger

logger = get_logger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> User | None:
    """Get current authenticated user.

    Args:
        request: FastAPI request
        credentials: Bearer token

    Returns:
        User or None if not authenticated
    """
    if not credentials:
        return None

    user = get_user_from_token(credentials.credentials)

    if user:
        # Store user in request state for later use
        request.state.user = user

    return user


def require_auth(user: User | None = Depends(get_current_user)) -> User:
    """Require authentication - raises 401 if not authenticated.

    Args:
        user: Current user from get_current_user

    Returns:
        Authenticated user

    Raises:
        HTTPException: 401 if not authenticated
    """
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_admin(user: User = Depends(require_auth)) -> User:
    """Require admin privileges.

    Args:
        user: Authenticated user

    Returns:
        Admin user

    Raises:
        HTTPException: 403 if not admin
    """
    if not user.is_admin:
        logger.info("admin_access_denied", user_id=user.id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user
