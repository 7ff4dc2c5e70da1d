"""
SQLAlchemy async database module.

Re-exports engine, session, and model utilities for the FastAPI service.
"""

from services.weatherdesk.db.engine import create_engine, session_factory, standalone_session
from services.weatherdesk.db.session import get_db
from services.weatherdesk.db.models import Base, User, WeatherQuery

__all__ = [
    "create_engine",
    "session_factory",
    "standalone_session",
    "get_db",
    "Base",
    "User",
    "WeatherQuery",
]
