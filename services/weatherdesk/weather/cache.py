"""
Weather cache, keyed per location query.

Cache key format:
  weather:{city}                 city only, lowercased
  weather:{city}:{country}       city + country, both lowercased
  weather:{lat}:{lon}            coordinates, shortest digits, positional
                                 above 1e-6 (0.00001, 1e-7)

The same key is the unique match key for WeatherQuery history rows, so the
format is part of the persisted data and must stay stable.

TTL: settings.weather_cache_ttl_s (default 300 seconds).

The flat WeatherData record is cached as JSON. Store failures degrade to
cache misses so a Redis outage never fails a lookup.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from pydantic import ValidationError

from services.weatherdesk.cache.store import CacheStore
from services.weatherdesk.weather.models import LocationQuery, WeatherData

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300


def _format_coordinate(value: float) -> str:
    """Shortest round-trip digits, written positionally down to 1e-6.

    51.5074  -> '51.5074'
    10.0     -> '10'
    0.00001  -> '0.00001'
    1e-07    -> '1e-7'
    """
    value = float(value)
    if value.is_integer():
        return str(int(value))
    text = repr(value)
    if "e" not in text:
        return text
    mantissa, exponent = text.split("e")
    if int(exponent) >= -6:
        return format(Decimal(text), "f")
    return f"{mantissa}e{int(exponent)}"


def cache_key(query: LocationQuery) -> str:
    """Build the cache key for a usable query. City takes precedence."""
    if query.has_city:
        key = f"weather:{query.city.lower()}"
        if query.country:
            key += f":{query.country.lower()}"
        return key
    return f"weather:{_format_coordinate(query.lat)}:{_format_coordinate(query.lon)}"


class WeatherCache:
    """
    Cache-store-backed weather cache.

    Usage:
        cache = WeatherCache(build_cache_store(redis), ttl_s=300)
        data = await cache.get(key)
        if data is None:
            data = await provider.fetch(query)
            await cache.set(key, data)
    """

    def __init__(self, store: CacheStore, ttl_s: int = DEFAULT_TTL_SECONDS) -> None:
        self._store = store
        self.ttl_s = ttl_s

    async def get(self, key: str) -> WeatherData | None:
        """Return cached weather for key, or None on miss / unavailable."""
        try:
            raw = await self._store.get(key)
        except Exception:
            logger.warning("Weather cache GET failed for key=%s", key, exc_info=True)
            return None

        if raw is None:
            logger.debug("Weather cache miss: %s", key)
            return None

        try:
            data = WeatherData.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding unreadable weather cache entry: %s", key)
            return None
        logger.debug("Weather cache hit: %s", key)
        return data

    async def set(self, key: str, data: WeatherData) -> None:
        """Write weather data with the configured TTL."""
        try:
            await self._store.set(key, data.model_dump_json(), self.ttl_s)
            logger.debug("Weather cached: key=%s ttl=%ds", key, self.ttl_s)
        except Exception:
            logger.warning("Weather cache SET failed for key=%s", key, exc_info=True)
