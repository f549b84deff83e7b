"""
Pydantic schemas for API request/response validation.

This module exports all schema classes for use in API endpoints.
"""

from backend.src.schemas.common import ApiListResponse, ApiResponse, ErrorResponse
from backend.src.schemas.profile import (
    ProfileCreate,
    ProfileTimezoneUpdate,
    ProfileResponse,
    TimezoneOption,
)
from backend.src.schemas.event import (
    EventCreate,
    EventUpdate,
    ProfileSummary,
    EventResponse,
    FieldChangeResponse,
    EventLogResponse,
    EventLogsResponse,
)

__all__ = [
    "ApiResponse",
    "ApiListResponse",
    "ErrorResponse",
    "ProfileCreate",
    "ProfileTimezoneUpdate",
    "ProfileResponse",
    "TimezoneOption",
    "EventCreate",
    "EventUpdate",
    "ProfileSummary",
    "EventResponse",
    "FieldChangeResponse",
    "EventLogResponse",
    "EventLogsResponse",
]
