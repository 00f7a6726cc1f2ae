"""
FastAPI dependencies: auth guards, database session and Graph client.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Optional

from fastapi import Cookie, Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.core.security import decode_access_token
from leavedesk.db.session import async_session_factory
from leavedesk.integrations.graph import GraphClient
from leavedesk.models.user import User

# auto_error=False so we can fall back to the cookie when the header is missing
bearer_scheme = HTTPBearer(auto_error=False)


# ── Database session ────────────────────────────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


# ── Graph client ────────────────────────────────────────────────────
def get_graph_client(request: Request) -> Optional[GraphClient]:
    """The client built by the application lifespan, if any."""
    return getattr(request.app.state, "graph", None)


# ── Auth dependencies ───────────────────────────────────────────────
async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    access_token: Optional[str] = Cookie(default=None),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Decode the SSO-issued JWT from the header or cookie and look up the user."""

    # Priority: Header > Cookie
    final_token = credentials.credentials if credentials else None
    if not final_token and access_token:
        if access_token.startswith("Bearer "):
            final_token = access_token.split(" ")[1]
        else:
            final_token = access_token

    credentials_exc = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not final_token:
        raise credentials_exc

    payload = decode_access_token(final_token)
    if payload is None:
        raise credentials_exc

    user_id: str | None = payload.get("sub")
    if user_id is None or not user_id.isdigit():
        raise credentials_exc

    result = await db.execute(select(User).where(User.id == int(user_id)))
    user = result.scalar_one_or_none()
    if user is None:
        raise credentials_exc
    return user


async def get_current_active_user(
    current_user: User = Depends(get_current_user),
) -> User:
    """Reject deactivated accounts."""
    if not current_user.is_active:
        raise HTTPException(status_code=400, detail="Inactive user account")
    return current_user


async def require_manager(
    current_user: User = Depends(get_current_active_user),
) -> User:
    """Managers and admins only."""
    if not current_user.is_manager:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Manager privileges required",
        )
    return current_user


async def require_admin(
    current_user: User = Depends(get_current_active_user),
) -> User:
    """Only allow admin role to proceed."""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return current_user
