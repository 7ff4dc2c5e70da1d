"""
User administration: list, stats, view, activate/deactivate, change role.

Admin-only except GET /users/{id}, which a user may call for their own id.
Admins cannot deactivate themselves or change their own role.
"""

import logging
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from services.weatherdesk.auth.deps import get_current_user, require_admin
from services.weatherdesk.auth.roles import UserRole
from services.weatherdesk.db.models import User, WeatherQuery
from services.weatherdesk.db.session import get_db
from services.weatherdesk.routers._envelope import ok

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])

# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------


class UserStatusUpdate(BaseModel):
    isActive: bool = Field(..., description="Whether the account may log in")


class UserRoleUpdate(BaseModel):
    role: UserRole


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

NEW_USER_WINDOW_DAYS = 30


def user_to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "username": user.username,
        "role": user.role.value,
        "isActive": user.isActive,
        "createdAt": user.createdAt.isoformat() if user.createdAt else None,
        "updatedAt": user.updatedAt.isoformat() if user.updatedAt else None,
    }


def _query_count_subquery():
    return (
        select(func.count(WeatherQuery.id))
        .where(WeatherQuery.userId == User.id)
        .correlate(User)
        .scalar_subquery()
        .label("weatherQueryCount")
    )


async def _count(db: AsyncSession, *where) -> int:
    stmt = select(func.count()).select_from(User)
    if where:
        stmt = stmt.where(*where)
    result = await db.execute(stmt)
    return result.scalar() or 0


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.get("")
async def list_users(
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """All users, newest first, with their weather query counts."""
    result = await db.execute(
        select(User, _query_count_subquery()).order_by(User.createdAt.desc())
    )
    return ok(request, [
        {**user_to_dict(u), "weatherQueryCount": count or 0}
        for u, count in result.all()
    ])


@router.get("/stats")
async def user_stats(
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    total = await _count(db)
    active = await _count(db, User.isActive.is_(True))
    admins = await _count(db, User.role == UserRole.ADMIN)
    since = datetime.now(timezone.utc) - timedelta(days=NEW_USER_WINDOW_DAYS)
    recent = await _count(db, User.createdAt >= since)

    return ok(request, {
        "totalUsers": total,
        "activeUsers": active,
        "inactiveUsers": total - active,
        "adminUsers": admins,
        "regularUsers": total - admins,
        "usersLast30Days": recent,
    })


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current: User = Depends(get_current_user),
):
    """Own profile, or any profile for admins."""
    if current.role != UserRole.ADMIN and current.id != user_id:
        raise HTTPException(status_code=403, detail="You can only view your own profile")

    result = await db.execute(
        select(User, _query_count_subquery()).where(User.id == user_id)
    )
    row = result.first()
    if row is None:
        raise HTTPException(status_code=404, detail="User not found")

    user, count = row
    return ok(request, {**user_to_dict(user), "weatherQueryCount": count or 0})


@router.patch("/{user_id}/status")
async def update_user_status(
    user_id: str,
    body: UserStatusUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    if admin.id == user_id and not body.isActive:
        raise HTTPException(status_code=403, detail="You cannot deactivate your own account")

    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    user.isActive = body.isActive
    user.updatedAt = datetime.now(timezone.utc)
    await db.commit()
    await db.refresh(user)

    logger.info("User %s status set to active=%s by admin %s", user_id, body.isActive, admin.id)
    return ok(request, user_to_dict(user))


@router.patch("/{user_id}/role")
async def update_user_role(
    user_id: str,
    body: UserRoleUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    if admin.id == user_id:
        raise HTTPException(status_code=403, detail="You cannot change your own role")

    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    user.role = body.role
    user.updatedAt = datetime.now(timezone.utc)
    await db.commit()
    await db.refresh(user)

    logger.info("User %s role set to %s by admin %s", user_id, body.role.value, admin.id)
    return ok(request, user_to_dict(user))
