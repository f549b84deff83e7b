"""
Pydantic schemas for profile API request/response validation.

Request schemas only check shape and types; naming and timezone rules live
in services.validation so the API and the service layer report the same
messages.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from backend.src.services.timezone_service import TimezoneService


# ============================================================================
# Profile Request Schemas
# ============================================================================


class ProfileCreate(BaseModel):
    """
    Schema for creating a new profile.

    Example:
        >>> ProfileCreate(name="Ann", timezone="America/New_York")
    """

    name: Optional[str] = Field(default=None, description="Profile name (1-50 characters)")
    timezone: Optional[str] = Field(
        default=None,
        description="IANA timezone identifier (defaults to EVSCHED_DEFAULT_TIMEZONE)",
    )

    model_config = {
        "json_schema_extra": {
            "example": {"name": "Ann", "timezone": "America/New_York"}
        }
    }


class ProfileTimezoneUpdate(BaseModel):
    """Schema for changing a profile's timezone."""

    timezone: Optional[str] = Field(default=None, description="IANA timezone identifier")


# ============================================================================
# Profile Response Schemas
# ============================================================================


class ProfileResponse(BaseModel):
    """
    Profile as returned by the API.

    utc_offset is the offset in effect when the response was built.
    """

    guid: str = Field(..., description="Profile GUID (pro_xxx)")
    name: str
    timezone: str
    utc_offset: str = Field(..., description="Current UTC offset, e.g. UTC-4")
    is_active: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, profile, at: Optional[datetime] = None) -> "ProfileResponse":
        return cls(
            guid=profile.guid,
            name=profile.name,
            timezone=profile.timezone,
            utc_offset=TimezoneService.current_offset(profile.timezone, at),
            is_active=profile.is_active,
            created_at=profile.created_at,
            updated_at=profile.updated_at,
        )

    model_config = {
        "json_schema_extra": {
            "example": {
                "guid": "pro_01hgw2bbg0000000000000001",
                "name": "Ann",
                "timezone": "America/New_York",
                "utc_offset": "UTC-4",
                "is_active": True,
                "created_at": "2025-06-01T10:00:00Z",
                "updated_at": "2025-06-01T10:00:00Z",
            }
        }
    }


class TimezoneOption(BaseModel):
    """A selectable timezone with its current offset."""

    timezone: str
    utc_offset: str
