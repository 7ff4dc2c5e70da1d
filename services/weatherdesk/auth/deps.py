"""Shared auth dependencies: current user, optional user, admin guard."""

from typing import Optional

from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from services.weatherdesk.auth.roles import UserRole
from services.weatherdesk.db.models import User
from services.weatherdesk.db.session import get_db
from services.weatherdesk.middleware.request_auth import (
    has_identity_headers,
    verify_request_signature,
)


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Resolve the signed X-User-Id to an active User row.

    401 if the signature is bad, the user does not exist, or the account
    has been deactivated.
    """
    user_id = await verify_request_signature(request)
    user = await db.get(User, user_id)
    if user is None or not user.isActive:
        raise HTTPException(status_code=401, detail="User not found or inactive")
    request.state.user_id = user.id
    return user


async def get_optional_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """Like get_current_user, but anonymous requests resolve to None."""
    if not has_identity_headers(request):
        return None
    return await get_current_user(request, db)


async def require_admin(user: User = Depends(get_current_user)) -> User:
    """403 unless the current user holds the ADMIN role."""
    if user.role != UserRole.ADMIN:
        raise HTTPException(status_code=403, detail="Admin role required")
    return user
