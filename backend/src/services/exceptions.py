"""
Custom exceptions for service layer.

Provides specific exception types for business logic errors
that can be translated to appropriate HTTP responses.
"""

from typing import Any, Dict, List, Optional


class ServiceError(Exception):
    """Base exception for service layer errors."""
    pass


class NotFoundError(ServiceError):
    """Raised when a requested resource is not found."""

    def __init__(self, resource: str, identifier: Any):
        self.resource = resource
        self.identifier = identifier
        self.message = f"{resource} {identifier} not found"
        super().__init__(self.message)


class ValidationError(ServiceError):
    """
    Raised when input validation fails.

    Attributes:
        message: Human-readable message (first failing field)
        field: Name of the first failing field, if known
        errors: All field errors as {"field": ..., "message": ...} dicts
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        errors: Optional[List[Dict[str, str]]] = None
    ):
        self.message = message
        self.field = field
        self.errors = errors or ([{"field": field, "message": message}] if field else [])
        super().__init__(message)


class ConflictError(ServiceError):
    """Raised when an operation conflicts with existing state."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InactiveProfileError(ConflictError):
    """Raised when an operation references a profile that is inactive or unknown."""

    def __init__(self, message: str, profile_guid: Optional[str] = None):
        self.profile_guid = profile_guid
        super().__init__(message)


class ConcurrentUpdateError(ServiceError):
    """
    Raised when an event was modified by another writer.

    Either the caller supplied a stale revision, or the optimistic lock on
    the events row detected a concurrent commit.
    """

    def __init__(
        self,
        event_guid: str,
        expected_revision: Optional[int] = None,
        current_revision: Optional[int] = None
    ):
        self.event_guid = event_guid
        self.expected_revision = expected_revision
        self.current_revision = current_revision
        if expected_revision is not None and current_revision is not None:
            self.message = (
                f"Event {event_guid} was modified concurrently "
                f"(expected revision {expected_revision}, current revision {current_revision}). "
                "Reload the event and try again."
            )
        else:
            self.message = (
                f"Event {event_guid} was modified concurrently. "
                "Reload the event and try again."
            )
        super().__init__(self.message)


class DependencyUnavailableError(ServiceError):
    """Raised when the persistence layer cannot be reached."""

    def __init__(self, dependency: str = "database", detail: Optional[str] = None):
        self.dependency = dependency
        self.detail = detail
        self.message = f"The {dependency} is currently unavailable. Please try again later."
        super().__init__(self.message)
