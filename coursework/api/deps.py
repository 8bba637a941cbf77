"""API Dependencies"""

from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import ValidationError

from coursework.database import get_db  # noqa: F401 (re-exported for endpoints)
from coursework.core.security import decode_token
from coursework.models.enums import UserRole
from coursework.schemas.auth import CurrentUser

# Security scheme for bearer token
security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> CurrentUser:
    """
    Resolve the authenticated principal from the JWT access token.

    Args:
        credentials: HTTP authorization credentials

    Returns:
        Current user (id and role)

    Raises:
        HTTPException: If token is invalid or carries no usable principal
    """
    payload = decode_token(credentials.credentials)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id: Optional[str] = payload.get("sub")
    try:
        return CurrentUser(id=user_id, role=payload.get("role"))
    except ValidationError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user ID or role",
            headers={"WWW-Authenticate": "Bearer"},
        )


def require_roles(*roles: UserRole):
    """Build a dependency that only admits the given roles."""

    async def _require(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not enough permissions"
            )
        return current_user

    return _require


require_teacher = require_roles(UserRole.TEACHER, UserRole.ADMIN)
require_student = require_roles(UserRole.STUDENT)
