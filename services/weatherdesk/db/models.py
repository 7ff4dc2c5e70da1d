"""
SQLAlchemy DeclarativeBase models for users and weather query history.

Column names use camelCase to match the PostgreSQL column names the
service was deployed against.

These models are NOT used for migrations; the schema is owned externally.
"""

import uuid as _uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, Enum, Float, ForeignKey, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from services.weatherdesk.auth.roles import UserRole


# create_type=False: the enum type already exists in the database.
UserRoleEnum = Enum(
    UserRole,
    name="UserRole",
    create_type=False,
    values_callable=lambda enum: [member.value for member in enum],
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(_uuid.uuid4()))
    email: Mapped[str] = mapped_column(String, unique=True)
    username: Mapped[str] = mapped_column(String, unique=True)
    password: Mapped[str] = mapped_column(String)
    role: Mapped[UserRole] = mapped_column(UserRoleEnum, default=UserRole.USER)
    isActive: Mapped[bool] = mapped_column(Boolean, default=True)
    createdById: Mapped[Optional[str]] = mapped_column(String, ForeignKey("users.id"), nullable=True)
    createdAt: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updatedAt: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class WeatherQuery(Base):
    """Latest weather snapshot per cache key. One row per logical location."""

    __tablename__ = "weather_queries"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(_uuid.uuid4()))
    userId: Mapped[str] = mapped_column(String, ForeignKey("users.id"))
    city: Mapped[str] = mapped_column(String)
    country: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    latitude: Mapped[float] = mapped_column(Float)
    longitude: Mapped[float] = mapped_column(Float)
    temperature: Mapped[float] = mapped_column(Float)
    description: Mapped[str] = mapped_column(String)
    humidity: Mapped[int] = mapped_column(Integer)
    pressure: Mapped[int] = mapped_column(Integer)
    windSpeed: Mapped[float] = mapped_column(Float)
    windDeg: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    visibility: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    uvIndex: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    feelsLike: Mapped[float] = mapped_column(Float)
    icon: Mapped[str] = mapped_column(String)
    cacheKey: Mapped[str] = mapped_column(String, unique=True)
    queryTime: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    user: Mapped[User] = relationship(lazy="raise")
