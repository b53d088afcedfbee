"""Access token verification.

Tokens are issued by the platform's auth service; this module only
decodes them and resolves the user. ``create_access_token`` exists for
tooling and tests that need to act as a given user.
"""

from datetime import datetime, timedelta

from jose import JWTError, jwt

from insights.auth.models import User
from insights.logging_config import get_logger
from insights.settings import settings
from insights.storage.db import db

logger = get_logger(__name__)

JWT_EXPIRE_HOURS = 2


def create_access_token(user_id: int, expires_in: timedelta | None = None) -> str:
    """Create a signed access token for a user.

    Args:
        user_id: User ID stored in ``sub``
        expires_in: Lifetime (defaults to JWT_EXPIRE_HOURS)

    Returns:
        Encoded JWT
    """
    expire = datetime.utcnow() + (expires_in or timedelta(hours=JWT_EXPIRE_HOURS))
    payload = {
        "sub": str(user_id),
        "exp": expire,
        "type": "access",
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict | None:
    """Decode and verify a JWT.

    Returns:
        Token payload, or None if invalid/expired
    """
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        logger.debug("token_decode_failed", error=str(e))
        return None


def get_user_from_token(token: str) -> User | None:
    """Resolve the user an access token belongs to."""
    payload = decode_token(token)
    if not payload or payload.get("type") != "access":
        return None

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        return None

    with db.session() as session:
        return session.get(User, user_id)
