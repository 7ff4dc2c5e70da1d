"""
WeatherQuery history: upsert on every lookup, plus read-only list/stat queries.

Upsert semantics (keyed on cacheKey):
  - no row  -> insert with all weather fields, requesting userId, now()
  - row     -> overwrite mutable weather fields + queryTime; userId, cacheKey
               and the location columns stay as first written

record_query() is best-effort: the caller already holds a valid weather
result, so persistence failures are logged and discarded. Cancellation (the
caller's history timeout) rolls the session back and propagates.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from services.weatherdesk.db.models import User, WeatherQuery
from services.weatherdesk.weather.models import WeatherData

logger = logging.getLogger(__name__)

# Fields refreshed on every repeat lookup of the same cache key
MUTABLE_FIELDS = (
    "temperature",
    "description",
    "humidity",
    "pressure",
    "windSpeed",
    "windDeg",
    "visibility",
    "feelsLike",
    "icon",
)

TOP_CITIES_LIMIT = 10


def _now() -> datetime:
    return datetime.now(timezone.utc)


class WeatherHistory:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def record_query(self, data: WeatherData, user_id: str, cache_key: str) -> None:
        """Create-if-absent-else-update the row for cache_key. Raises only on cancellation."""
        try:
            result = await self.session.execute(
                select(WeatherQuery).where(WeatherQuery.cacheKey == cache_key)
            )
            row = result.scalars().first()

            if row is None:
                self.session.add(
                    WeatherQuery(
                        userId=user_id,
                        city=data.city,
                        country=data.country,
                        latitude=data.latitude,
                        longitude=data.longitude,
                        uvIndex=None,
                        cacheKey=cache_key,
                        queryTime=_now(),
                        **{field: getattr(data, field) for field in MUTABLE_FIELDS},
                    )
                )
            else:
                for field in MUTABLE_FIELDS:
                    setattr(row, field, getattr(data, field))
                row.queryTime = _now()

            await self.session.commit()
            logger.info(
                "Weather query saved/updated for user: %s, cache key: %s", user_id, cache_key
            )
        except asyncio.CancelledError:
            logger.warning("Weather query save cancelled for cache key: %s", cache_key)
            await self._rollback()
            raise
        except Exception:
            logger.exception("Failed to save weather query for cache key: %s", cache_key)
            await self._rollback()

    async def _rollback(self) -> None:
        try:
            await self.session.rollback()
        except Exception:
            logger.warning("Rollback after failed weather query save also failed", exc_info=True)

    async def list_user_history(
        self, user_id: str, limit: int = 10, offset: int = 0
    ) -> list[dict[str, Any]]:
        """The user's own rows, newest first."""
        result = await self.session.execute(
            select(WeatherQuery)
            .where(WeatherQuery.userId == user_id)
            .order_by(WeatherQuery.queryTime.desc())
            .offset(offset)
            .limit(limit)
        )
        return [
            {
                "id": q.id,
                "city": q.city,
                "country": q.country,
                "temperature": q.temperature,
                "description": q.description,
                "humidity": q.humidity,
                "pressure": q.pressure,
                "windSpeed": q.windSpeed,
                "feelsLike": q.feelsLike,
                "icon": q.icon,
                "queryTime": q.queryTime.isoformat(),
            }
            for q in result.scalars().all()
        ]

    async def list_all_history(self, limit: int = 50, offset: int = 0) -> list[dict[str, Any]]:
        """Every row, newest first, with the owning user's identity."""
        result = await self.session.execute(
            select(WeatherQuery, User)
            .join(User, User.id == WeatherQuery.userId)
            .order_by(WeatherQuery.queryTime.desc())
            .offset(offset)
            .limit(limit)
        )
        return [
            {
                **query_to_dict(q),
                "user": {"id": u.id, "username": u.username, "email": u.email},
            }
            for q, u in result.all()
        ]

    async def weather_stats(self) -> dict[str, Any]:
        total = await self.session.execute(select(func.count()).select_from(WeatherQuery))
        total_queries = total.scalar() or 0

        since = _now() - timedelta(hours=24)
        recent = await self.session.execute(
            select(func.count()).select_from(WeatherQuery).where(WeatherQuery.queryTime >= since)
        )
        queries_last_24h = recent.scalar() or 0

        city_count = func.count(WeatherQuery.id).label("count")
        grouped = await self.session.execute(
            select(WeatherQuery.city, city_count)
            .group_by(WeatherQuery.city)
            .order_by(city_count.desc())
        )
        cities = grouped.all()

        return {
            "totalQueries": total_queries,
            "uniqueCities": len(cities),
            "queriesLast24h": queries_last_24h,
            "topCities": [
                {"city": city, "count": count} for city, count in cities[:TOP_CITIES_LIMIT]
            ],
        }


def query_to_dict(q: WeatherQuery) -> dict[str, Any]:
    return {
        "id": q.id,
        "userId": q.userId,
        "city": q.city,
        "country": q.country,
        "latitude": q.latitude,
        "longitude": q.longitude,
        "temperature": q.temperature,
        "description": q.description,
        "humidity": q.humidity,
        "pressure": q.pressure,
        "windSpeed": q.windSpeed,
        "windDeg": q.windDeg,
        "visibility": q.visibility,
        "uvIndex": q.uvIndex,
        "feelsLike": q.feelsLike,
        "icon": q.icon,
        "cacheKey": q.cacheKey,
        "queryTime": q.queryTime.isoformat(),
    }
