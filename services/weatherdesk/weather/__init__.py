"""
Weather service package.

OpenWeatherMap lookups behind a TTL cache, with a WeatherQuery history row
upserted per cache key on every lookup.
"""

from services.weatherdesk.weather.cache import WeatherCache, cache_key
from services.weatherdesk.weather.history import WeatherHistory
from services.weatherdesk.weather.models import LocationQuery, WeatherData
from services.weatherdesk.weather.provider import OpenWeatherProvider
from services.weatherdesk.weather.service import WeatherService

__all__ = [
    "WeatherService",
    "WeatherCache",
    "WeatherHistory",
    "OpenWeatherProvider",
    "LocationQuery",
    "WeatherData",
    "cache_key",
]
