"""
SQLAlchemy models for the event scheduler.

This module provides the declarative base class and imports all models
to ensure they are registered with SQLAlchemy's metadata.
"""

from sqlalchemy.orm import declarative_base

# All models inherit from this Base class
Base = declarative_base()


# Import all models here so they are registered with Base.metadata
# This is required for Alembic autogenerate to detect models
from backend.src.models.profile import Profile  # noqa: E402
from backend.src.models.event import Event, EventProfile  # noqa: E402
from backend.src.models.event_update_log import EventUpdateLog  # noqa: E402


__all__ = [
    "Base",
    "Profile",
    "Event",
    "EventProfile",
    "EventUpdateLog",
]
