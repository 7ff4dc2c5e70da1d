"""
Weather endpoints.

GET /weather/current         cached OpenWeatherMap lookup (authenticated)
GET /weather/history         caller's own lookup history
GET /weather/admin/history   everyone's history (admin)
GET /weather/admin/stats     aggregate lookup stats (admin)

All lookup failures (bad query, unknown city, provider trouble) surface as
400 with a distinguishing error code; a lookup past its deadline is 504.
"""

from __future__ import annotations

import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from services.weatherdesk.auth.deps import get_current_user, require_admin
from services.weatherdesk.db.models import User
from services.weatherdesk.db.session import get_db
from services.weatherdesk.routers._envelope import ok
from services.weatherdesk.weather.errors import WeatherError
from services.weatherdesk.weather.history import WeatherHistory
from services.weatherdesk.weather.models import LocationQuery
from services.weatherdesk.weather.service import WeatherService

router = APIRouter(prefix="/weather", tags=["weather"])


def get_weather_service(request: Request) -> WeatherService:
    service: WeatherService | None = getattr(request.app.state, "weather_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Weather service unavailable")
    return service


@router.get("/current")
async def current_weather(
    request: Request,
    city: Optional[str] = Query(None, description="City name", examples=["London"]),
    country: Optional[str] = Query(None, description="ISO 3166 country code", examples=["GB"]),
    lat: Optional[float] = Query(None, ge=-90.0, le=90.0, description="Latitude"),
    lon: Optional[float] = Query(None, ge=-180.0, le=180.0, description="Longitude"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    service: WeatherService = Depends(get_weather_service),
):
    query = LocationQuery(city=city, country=country, lat=lat, lon=lon)

    try:
        data = await service.get_weather(query, user.id, WeatherHistory(db))
    except WeatherError as exc:
        raise HTTPException(
            status_code=400,
            detail={"code": exc.code, "message": exc.message},
        ) from exc
    except asyncio.TimeoutError as exc:
        raise HTTPException(
            status_code=504,
            detail={"code": "LOOKUP_TIMEOUT", "message": "Weather lookup timed out"},
        ) from exc

    return ok(request, data.model_dump())


@router.get("/history")
async def my_history(
    request: Request,
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    rows = await WeatherHistory(db).list_user_history(user.id, limit=limit, offset=offset)
    return ok(request, rows)


@router.get("/admin/history")
async def all_history(
    request: Request,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    rows = await WeatherHistory(db).list_all_history(limit=limit, offset=offset)
    return ok(request, rows)


@router.get("/admin/stats")
async def stats(
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return ok(request, await WeatherHistory(db).weather_stats())
