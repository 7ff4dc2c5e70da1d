"""
Weather lookup request and result shapes.

LocationQuery is what the caller asks for; WeatherData is the flat record
returned to callers, cached in Redis, and copied into WeatherQuery rows.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class LocationQuery(BaseModel):
    city: str | None = None
    country: str | None = Field(default=None, description="ISO 3166 country code")
    lat: float | None = Field(default=None, ge=-90.0, le=90.0)
    lon: float | None = Field(default=None, ge=-180.0, le=180.0)

    @property
    def has_city(self) -> bool:
        return bool(self.city and self.city.strip())

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lon is not None

    @property
    def is_usable(self) -> bool:
        return self.has_city or self.has_coordinates


class WeatherData(BaseModel):
    city: str
    country: str | None = None
    latitude: float
    longitude: float
    temperature: float
    description: str
    humidity: int
    pressure: int
    windSpeed: float
    windDeg: int | None = None
    visibility: int | None = None
    feelsLike: float
    icon: str
