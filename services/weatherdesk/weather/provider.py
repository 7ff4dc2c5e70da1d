"""
OpenWeatherMap /weather client.

One GET per call, metric units, no retries. The response is flattened into
WeatherData:

  {
    "coord":   {"lon": -0.1257, "lat": 51.5085},
    "weather": [{"id": 500, "main": "Rain", "description": "light rain", "icon": "10d"}],
    "main":    {"temp": 12.3, "feels_like": 11.6, "pressure": 1012, "humidity": 81},
    "visibility": 10000,
    "wind":    {"speed": 4.1, "deg": 240},
    "sys":     {"country": "GB"},
    "name":    "London"
  }

Failure classification:
  404                      -> CityNotFound
  401                      -> InvalidApiKey
  anything else            -> ProviderUnavailable
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from services.weatherdesk.weather.errors import (
    CityNotFound,
    InvalidApiKey,
    ProviderUnavailable,
    WeatherConfigError,
)
from services.weatherdesk.weather.models import LocationQuery, WeatherData

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.openweathermap.org/data/2.5"

# HTTP timeout for OpenWeatherMap calls
_API_TIMEOUT_S = 8.0

_REDACTED = "[API_KEY]"


def build_params(query: LocationQuery, api_key: str) -> dict[str, str | float]:
    """Query parameters for /weather. httpx handles URL encoding."""
    params: dict[str, str | float] = {"appid": api_key, "units": "metric"}
    if query.has_city:
        params["q"] = f"{query.city},{query.country}" if query.country else query.city
    else:
        params["lat"] = query.lat
        params["lon"] = query.lon
    return params


def redact(url: str, api_key: str) -> str:
    """Strip the API key from a URL before it reaches a log line."""
    if not api_key:
        return url
    return url.replace(api_key, _REDACTED)


def normalize(payload: dict[str, Any]) -> WeatherData:
    """Flatten the nested provider document. Raises KeyError/IndexError/TypeError on bad shape."""
    primary = payload["weather"][0]
    main = payload["main"]
    wind = payload.get("wind") or {}
    return WeatherData(
        city=payload["name"],
        country=(payload.get("sys") or {}).get("country"),
        latitude=payload["coord"]["lat"],
        longitude=payload["coord"]["lon"],
        temperature=main["temp"],
        description=primary["description"],
        humidity=main["humidity"],
        pressure=main["pressure"],
        windSpeed=wind.get("speed", 0.0),
        windDeg=wind.get("deg"),
        visibility=payload.get("visibility"),
        feelsLike=main["feels_like"],
        icon=primary["icon"],
    )


class OpenWeatherProvider:
    """
    Usage:
        provider = OpenWeatherProvider(api_key="...")
        data = await provider.fetch(LocationQuery(city="London", country="GB"))
    """

    def __init__(
        self,
        api_key: str,
        api_url: str = DEFAULT_API_URL,
        timeout_s: float = _API_TIMEOUT_S,
    ) -> None:
        if not api_key:
            raise WeatherConfigError("OpenWeather API key is required (OPENWEATHER_API_KEY)")
        self._api_key = api_key
        self._endpoint = f"{api_url.rstrip('/')}/weather"
        self._timeout_s = timeout_s

    async def fetch(self, query: LocationQuery) -> WeatherData:
        params = build_params(query, self._api_key)
        url = httpx.URL(self._endpoint, params=params)
        logger.info("Fetching weather data from: %s", redact(str(url), self._api_key))

        try:
            async with httpx.AsyncClient(timeout=self._timeout_s) as client:
                resp = await client.get(self._endpoint, params=params)
                resp.raise_for_status()
                payload = resp.json()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.warning(
                "OpenWeatherMap returned %d: %s",
                status,
                redact(exc.response.text[:200], self._api_key),
            )
            if status == 404:
                raise CityNotFound() from exc
            if status == 401:
                raise InvalidApiKey() from exc
            raise ProviderUnavailable() from exc
        except (httpx.HTTPError, ValueError) as exc:
            # Transport errors, timeouts, and non-JSON bodies
            logger.warning("OpenWeatherMap fetch failed: %s", type(exc).__name__)
            raise ProviderUnavailable() from exc

        try:
            return normalize(payload)
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            logger.warning("OpenWeatherMap response had unexpected shape: %s", exc)
            raise ProviderUnavailable() from exc
