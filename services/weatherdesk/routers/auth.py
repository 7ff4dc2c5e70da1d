"""
Registration, credential check, and current-user profile.

No tokens are minted here: after a successful /auth/login the gateway
establishes its own session and signs subsequent requests with X-User-Id
(see middleware/request_auth.py).
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from services.weatherdesk.auth.deps import get_current_user, get_optional_user
from services.weatherdesk.auth.roles import UserRole
from services.weatherdesk.db.models import User
from services.weatherdesk.db.session import get_db
from services.weatherdesk.routers._envelope import ok
from services.weatherdesk.users.passwords import hash_password, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


class RegisterRequest(BaseModel):
    email: EmailStr
    username: str = Field(..., min_length=3)
    password: str = Field(..., min_length=6)
    role: Optional[UserRole] = Field(default=None, description="Honoured for admin callers only")


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


def public_profile(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "username": user.username,
        "role": user.role.value,
    }


@router.post("/register", status_code=201)
async def register(
    body: RegisterRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    creator: Optional[User] = Depends(get_optional_user),
):
    """
    Create an account. Anonymous callers always get USER; an authenticated
    admin may pick the role and is recorded as the creator.
    """
    existing = await db.execute(
        select(User).where(or_(User.email == body.email, User.username == body.username))
    )
    if existing.scalars().first() is not None:
        raise HTTPException(status_code=409, detail="User with this email or username already exists")

    is_admin_creator = creator is not None and creator.role == UserRole.ADMIN
    role = body.role if (is_admin_creator and body.role) else UserRole.USER

    now = datetime.now(timezone.utc)
    user = User(
        id=str(uuid.uuid4()),
        email=body.email,
        username=body.username,
        password=hash_password(body.password),
        role=role,
        isActive=True,
        createdById=creator.id if is_admin_creator else None,
        createdAt=now,
        updatedAt=now,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.info("User registered: %s (%s)", user.username, role.value)

    return ok(request, {
        "id": user.id,
        "email": user.email,
        "username": user.username,
        "role": user.role.value,
        "isActive": user.isActive,
        "createdAt": user.createdAt.isoformat(),
    })


@router.post("/login")
async def login(
    body: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Check credentials. Unknown email, bad password and inactive account all read as 401."""
    result = await db.execute(select(User).where(User.email == body.email))
    user = result.scalars().first()

    if user is None or not user.isActive or not verify_password(body.password, user.password):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    return ok(request, {"user": public_profile(user)})


@router.get("/me")
async def me(request: Request, user: User = Depends(get_current_user)):
    return ok(request, public_profile(user))
