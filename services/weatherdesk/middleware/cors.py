"""
CORS middleware configuration.
Origins come from settings.cors_origins. No wildcards.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from services.weatherdesk.config import settings


def setup_cors(app: FastAPI) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
        allow_headers=[
            "Content-Type",
            "X-Request-ID",
            "X-User-Id",
            "X-Auth-Timestamp",
            "X-Auth-Signature",
            "X-Body-Hash",
        ],
        max_age=600,
    )
