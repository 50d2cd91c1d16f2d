"""
FastAPI dependencies for authentication, database, and authorization.
"""

from typing import Annotated

from fastapi import Cookie, Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import get_db
from app.models.user import User
from app.services.guardian import Guardian

# Type alias for database dependency
DBSession = Annotated[AsyncSession, Depends(get_db)]


async def get_current_user_optional(
    db: DBSession,
    session_token: str | None = Cookie(default=None),
    authorization: str | None = Header(default=None),
) -> User | None:
    """Get current user from session cookie or bearer token (None if not authenticated).

    Sessions are issued by the forum's login flow; this service only
    validates them.
    """
    token = session_token
    if not token and authorization and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()
    if not token:
        return None

    result = await db.execute(
        select(User).where(User.session_token == token)
    )
    user = result.scalar_one_or_none()
    if user and user.is_active and user.is_session_valid():
        return user
    return None


async def get_current_user(
    user: Annotated[User | None, Depends(get_current_user_optional)],
) -> User:
    """Get current user, raising 401 if not authenticated."""
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return user


# Type aliases for common dependencies
CurrentUser = Annotated[User, Depends(get_current_user)]
CurrentUserOptional = Annotated[User | None, Depends(get_current_user_optional)]


async def get_guardian(user: CurrentUserOptional) -> Guardian:
    """Authorization object for the requesting viewer."""
    return Guardian(user)


ViewerGuardian = Annotated[Guardian, Depends(get_guardian)]
