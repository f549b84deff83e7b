"""
Configuration module for the event scheduler backend.

Provides centralized configuration for:
- Database connection
- Logging and environment
- CORS origins and default profile timezone
"""

from backend.src.config.settings import AppSettings, get_settings

__all__ = [
    "AppSettings",
    "get_settings",
]
