"""
Sentry setup. Events leave the process without gateway signatures, cookies
or the OpenWeatherMap key (httpx breadcrumbs carry the provider URL, which
includes appid).
"""

from typing import Any

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from services.weatherdesk.config import settings
from services.weatherdesk.weather.provider import redact

FILTERED = "[FILTERED]"
SENSITIVE_HEADERS = frozenset({"authorization", "cookie", "set-cookie", "x-auth-signature"})


def _scrub_headers(headers: Any) -> None:
    if not isinstance(headers, dict):
        return
    for name in headers:
        if name.lower() in SENSITIVE_HEADERS:
            headers[name] = FILTERED


def _scrub_breadcrumb(crumb: dict[str, Any]) -> None:
    data = crumb.get("data")
    if not isinstance(data, dict):
        return
    _scrub_headers(data.get("headers"))
    if isinstance(data.get("url"), str):
        data["url"] = redact(data["url"], settings.openweather_api_key)


def scrub_event(event: dict[str, Any], hint: dict[str, Any]) -> dict[str, Any]:
    """before_send hook."""
    for crumb in (event.get("breadcrumbs") or {}).get("values", []):
        _scrub_breadcrumb(crumb)
    request = event.get("request")
    if isinstance(request, dict):
        _scrub_headers(request.get("headers"))
    return event


def setup_sentry() -> None:
    if not settings.sentry_dsn:
        return

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        release=f"{settings.app_name}@{settings.app_version}",
        traces_sample_rate=settings.sentry_traces_sample_rate,
        before_send=scrub_event,
        integrations=[
            StarletteIntegration(transaction_style="endpoint"),
            FastApiIntegration(transaction_style="endpoint"),
        ],
        send_default_pii=False,
    )
