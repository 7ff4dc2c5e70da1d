"""Health check endpoint."""

from fastapi import APIRouter, Request

from services.weatherdesk.routers._envelope import ok

router = APIRouter()


@router.get("/health")
async def health_check(request: Request) -> dict:
    cache = getattr(request.app.state, "cache_store", None)
    return ok(request, {
        "status": "healthy",
        "version": request.app.state.settings.app_version,
        "cache": getattr(cache, "backend", "none"),
    })
