"""
WeatherService: one location lookup through cache, provider and history.

Sequence for one lookup (each step awaited before the next):

  1. validate        InvalidQuery before touching cache or provider
  2. cache read      exactly one
  3. provider fetch  only on miss; errors propagate, nothing is written
  4. cache write     only after a successful fetch
  5. history upsert  on hit and miss alike, best-effort

Steps 2-4 share lookup_deadline_s; running out raises asyncio.TimeoutError
and nothing reaches history. Step 5 has its own history_timeout_s and a
slow write is abandoned (rolled back) without failing the lookup.

No retries and no single-flight: two concurrent misses for the same key both
call the provider, and the later history write wins.
"""

from __future__ import annotations

import asyncio
import logging

from services.weatherdesk.weather.cache import WeatherCache, cache_key
from services.weatherdesk.weather.errors import InvalidQuery, WeatherError
from services.weatherdesk.weather.history import WeatherHistory
from services.weatherdesk.weather.models import LocationQuery, WeatherData
from services.weatherdesk.weather.provider import OpenWeatherProvider

logger = logging.getLogger(__name__)


class WeatherService:
    """
    Usage:
        service = WeatherService(cache=WeatherCache(store), provider=OpenWeatherProvider(key))
        data = await service.get_weather(query, user_id, WeatherHistory(session))

    A deadline of None means unbounded.
    """

    def __init__(
        self,
        cache: WeatherCache,
        provider: OpenWeatherProvider,
        lookup_deadline_s: float | None = None,
        history_timeout_s: float | None = None,
    ) -> None:
        self._cache = cache
        self._provider = provider
        self._lookup_deadline_s = lookup_deadline_s
        self._history_timeout_s = history_timeout_s

    async def get_weather(
        self,
        query: LocationQuery,
        user_id: str,
        history: WeatherHistory,
    ) -> WeatherData:
        if not query.is_usable:
            raise InvalidQuery()

        key = cache_key(query)

        try:
            data = await asyncio.wait_for(self._lookup(query, key), self._lookup_deadline_s)
        except asyncio.TimeoutError:
            logger.warning(
                "Weather lookup exceeded %.1fs deadline for key=%s", self._lookup_deadline_s, key
            )
            raise

        try:
            await asyncio.wait_for(
                history.record_query(data, user_id, key), self._history_timeout_s
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Weather history write exceeded %.1fs for key=%s; skipped",
                self._history_timeout_s,
                key,
            )

        return data

    async def _lookup(self, query: LocationQuery, key: str) -> WeatherData:
        data = await self._cache.get(key)
        if data is not None:
            logger.info("Weather data retrieved from cache for key: %s", key)
            return data

        try:
            data = await self._provider.fetch(query)
        except WeatherError as exc:
            logger.warning("Weather lookup failed for key=%s: %s", key, exc.code)
            raise
        await self._cache.set(key, data)
        logger.info("Weather data cached for key: %s", key)
        return data
