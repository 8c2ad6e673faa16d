"""Core app configuration, database, cache and security."""

from userservice.core.cache import get_cache
from userservice.core.config import get_settings, settings
from userservice.core.database import get_db

__all__ = ["get_cache", "get_settings", "settings", "get_db"]
