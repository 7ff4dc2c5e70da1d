"""
Seed an admin and a regular test user.

Skips entirely if any ADMIN already exists, so it is safe to re-run.

Usage:
    python -m services.weatherdesk.scripts.seed_users
"""

import asyncio
import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from services.weatherdesk.auth.roles import UserRole
from services.weatherdesk.db.models import User
from services.weatherdesk.users.passwords import hash_password

logger = logging.getLogger(__name__)

SEED_ADMIN = {"email": "admin@weather.com", "username": "admin", "password": "admin123"}
SEED_USER = {"email": "user@weather.com", "username": "testuser", "password": "user123"}


def _new_user(spec: dict, role: UserRole, created_by: str | None = None) -> User:
    now = datetime.now(timezone.utc)
    return User(
        id=str(uuid.uuid4()),
        email=spec["email"],
        username=spec["username"],
        password=hash_password(spec["password"]),
        role=role,
        isActive=True,
        createdById=created_by,
        createdAt=now,
        updatedAt=now,
    )


async def seed_users(session: AsyncSession) -> list[User]:
    """Create the seed accounts. Returns the created users (empty if skipped)."""
    result = await session.execute(select(User).where(User.role == UserRole.ADMIN))
    if result.scalars().first() is not None:
        logger.info("Admin user already exists, skipping seed.")
        return []

    admin = _new_user(SEED_ADMIN, UserRole.ADMIN)
    session.add(admin)
    regular = _new_user(SEED_USER, UserRole.USER, created_by=admin.id)
    session.add(regular)
    await session.commit()

    for user in (admin, regular):
        logger.info("Seeded %s user: %s <%s>", user.role.value, user.username, user.email)
    return [admin, regular]


async def main() -> None:
    from services.weatherdesk.db.engine import standalone_session

    async with standalone_session() as session:
        await seed_users(session)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    asyncio.run(main())
