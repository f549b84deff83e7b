"""
Service layer for business logic.

Service classes are imported from their modules directly
(e.g. ``from backend.src.services.event_service import EventService``);
this package only re-exports the exception taxonomy so that model modules
can depend on ``backend.src.services.guid`` without import cycles.
"""

from backend.src.services.exceptions import (
    ServiceError,
    NotFoundError,
    ValidationError,
    ConflictError,
    InactiveProfileError,
    ConcurrentUpdateError,
    DependencyUnavailableError,
)

__all__ = [
    "ServiceError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "InactiveProfileError",
    "ConcurrentUpdateError",
    "DependencyUnavailableError",
]
