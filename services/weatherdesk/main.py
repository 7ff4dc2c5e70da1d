"""
Weatherdesk FastAPI service: accounts, user admin and cached weather lookups.

Entrypoint: uvicorn services.weatherdesk.main:app --host 0.0.0.0 --port 8000
"""

import logging
import uuid
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

from services.weatherdesk.cache.store import build_cache_store
from services.weatherdesk.config import settings
from services.weatherdesk.db.engine import create_engine, session_factory
from services.weatherdesk.middleware.cors import setup_cors
from services.weatherdesk.middleware.rate_limit import RateLimitMiddleware
from services.weatherdesk.middleware.sentry import setup_sentry
from services.weatherdesk.routers import auth, health, users, weather
from services.weatherdesk.routers._envelope import error_body
from services.weatherdesk.weather.cache import WeatherCache
from services.weatherdesk.weather.provider import OpenWeatherProvider
from services.weatherdesk.weather.service import WeatherService

logger = logging.getLogger(__name__)

# Shared redis reference: set during lifespan, read by rate limiter
_redis_holder: dict = {"client": None}

# Default error codes when a route raises HTTPException with a plain string detail
_STATUS_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    503: "SERVICE_UNAVAILABLE",
    504: "GATEWAY_TIMEOUT",
}


async def _connect_redis() -> aioredis.Redis | None:
    """Redis client, or None when unset or unreachable (cache falls back to memory)."""
    if not settings.redis_url:
        return None
    client = aioredis.from_url(settings.redis_url, decode_responses=True, socket_connect_timeout=5)
    try:
        await client.ping()
    except Exception:
        logger.warning("Redis unreachable; continuing without it", exc_info=True)
        await client.aclose()
        return None
    return client


def _build_weather_service(cache_store) -> WeatherService:
    """Raises WeatherConfigError when OPENWEATHER_API_KEY is missing."""
    return WeatherService(
        cache=WeatherCache(cache_store, ttl_s=settings.weather_cache_ttl_s),
        provider=OpenWeatherProvider(
            api_key=settings.openweather_api_key,
            api_url=settings.openweather_api_url,
            timeout_s=settings.weather_api_timeout_s,
        ),
        lookup_deadline_s=settings.weather_lookup_deadline_s,
        history_timeout_s=settings.weather_history_timeout_s,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_sentry()

    redis_client = await _connect_redis()
    _redis_holder["client"] = redis_client

    db_engine = create_engine()
    app.state.db_session_factory = session_factory(db_engine)

    app.state.cache_store = build_cache_store(redis_client)
    app.state.weather_service = _build_weather_service(app.state.cache_store)
    logger.info(
        "Weatherdesk started (env=%s, cache=%s)",
        settings.environment,
        app.state.cache_store.backend,
    )

    try:
        yield
    finally:
        await db_engine.dispose()
        if redis_client is not None:
            await redis_client.aclose()


app = FastAPI(
    title="Weatherdesk API",
    version=settings.app_version,
    docs_url="/docs" if settings.environment == "development" else None,
    redoc_url=None,
    lifespan=lifespan,
)
app.state.settings = settings

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(weather.router)

# -- Middleware (order matters: last added = outermost in Starlette) --

setup_cors(app)


@app.middleware("http")
async def request_envelope_middleware(request: Request, call_next) -> Response:
    request_id = request.headers.get("x-request-id", str(uuid.uuid4()))
    request.state.request_id = request_id

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# Rate limiting: uses lazy redis reference from lifespan
class _LazyRateLimitMiddleware(RateLimitMiddleware):
    """Rate limiter that picks up Redis client after lifespan init."""

    def __init__(self, app):
        super().__init__(app, redis_client=None)

    async def dispatch(self, request, call_next):
        self.redis = _redis_holder.get("client")
        return await super().dispatch(request, call_next)


app.add_middleware(_LazyRateLimitMiddleware)


# -- Exception Handlers --

@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if isinstance(exc.detail, dict):
        code = exc.detail.get("code", _STATUS_CODES.get(exc.status_code, "ERROR"))
        message = exc.detail.get("message", "")
    else:
        code = _STATUS_CODES.get(exc.status_code, "ERROR")
        message = str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(request, code, message),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = errors[0].get("msg", "Validation error.") if errors else "Validation error."
    return JSONResponse(
        status_code=422,
        content=error_body(request, "VALIDATION_ERROR", message),
    )


@app.exception_handler(Exception)
async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=error_body(request, "INTERNAL_ERROR", "An unexpected error occurred."),
    )
