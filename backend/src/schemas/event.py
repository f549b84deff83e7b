"""
Pydantic schemas for event API request/response validation.

Provides data validation and serialization for:
- Event creation and partial update requests
- Event API responses
- Audit trail responses

Design:
- Instants are ISO-8601; values without an offset are taken as UTC unless
  input_timezone names the zone they were entered in
- Update requests distinguish "absent" from "null" through
  model_dump(exclude_unset=True); absent fields are not compared
- GUIDs are exposed, never internal IDs
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from backend.src.services.timezone_service import TimezoneService


# ============================================================================
# Event Request Schemas
# ============================================================================


class WallClockInput(BaseModel):
    """
    Optional zone for datetime-local form values.

    When input_timezone is set, start/end values without an offset are
    wall-clock times in that zone and are pinned to UTC instants. Values
    that carry an offset are left alone.
    """

    input_timezone: Optional[str] = Field(
        default=None,
        description="IANA zone of start/end values sent without an offset",
    )

    @model_validator(mode="after")
    def pin_wall_clock_times(self):
        if self.input_timezone:
            for name in ("start_date_time", "end_date_time"):
                value = getattr(self, name)
                if value is not None and value.tzinfo is None:
                    setattr(self, name, TimezoneService.convert(value, self.input_timezone, "UTC"))
        return self


class EventCreate(WallClockInput):
    """
    Schema for creating a new event.

    Example:
        >>> EventCreate(
        ...     title="Sync",
        ...     profiles=["pro_01hgw2bbg0000000000000001"],
        ...     timezone="America/New_York",
        ...     start_date_time="2025-06-01T10:00:00Z",
        ...     end_date_time="2025-06-01T11:00:00Z",
        ...     created_by="pro_01hgw2bbg0000000000000001",
        ... )
    """

    title: Optional[str] = Field(default=None, description="Event title (1-100 characters)")
    description: Optional[str] = Field(default=None, description="Optional description (max 500)")
    profiles: Optional[List[str]] = Field(default=None, description="Assigned profile GUIDs, in order")
    timezone: Optional[str] = Field(default=None, description="IANA timezone the event is planned in")
    start_date_time: Optional[datetime] = Field(default=None, description="Start instant")
    end_date_time: Optional[datetime] = Field(default=None, description="End instant")
    created_by: Optional[str] = Field(default=None, description="Creator profile GUID")

    model_config = {
        "json_schema_extra": {
            "example": {
                "title": "Sync",
                "description": "Weekly sync",
                "profiles": ["pro_01hgw2bbg0000000000000001"],
                "timezone": "America/New_York",
                "start_date_time": "2025-06-01T14:00:00Z",
                "end_date_time": "2025-06-01T15:00:00Z",
                "created_by": "pro_01hgw2bbg0000000000000001",
            }
        }
    }


class EventUpdate(WallClockInput):
    """
    Schema for a partial event update.

    Only the fields present in the request body are compared and applied.
    updated_by is required when something actually changes. revision, when
    sent, makes the write conditional on the event not having changed since.
    """

    title: Optional[str] = None
    description: Optional[str] = None
    profiles: Optional[List[str]] = None
    timezone: Optional[str] = None
    start_date_time: Optional[datetime] = None
    end_date_time: Optional[datetime] = None
    updated_by: Optional[str] = Field(default=None, description="GUID of the profile making the change")
    revision: Optional[int] = Field(default=None, ge=1, description="Revision the client last read")

    def field_updates(self) -> Dict[str, Any]:
        """Supplied event fields, without updated_by, revision and input_timezone."""
        return self.model_dump(
            exclude_unset=True,
            exclude={"updated_by", "revision", "input_timezone"},
        )

    model_config = {
        "json_schema_extra": {
            "example": {
                "title": "Sync Call",
                "updated_by": "pro_01hgw2bbg0000000000000001",
                "revision": 1,
            }
        }
    }


# ============================================================================
# Event Response Schemas
# ============================================================================


class ProfileSummary(BaseModel):
    guid: str
    name: str
    timezone: Optional[str] = None


class EventResponse(BaseModel):
    """Event as returned by the API."""

    guid: str = Field(..., description="Event GUID (evt_xxx)")
    title: str
    description: Optional[str] = None
    timezone: str
    start_date_time: datetime
    end_date_time: datetime
    profiles: List[ProfileSummary]
    created_by: ProfileSummary
    revision: int = Field(..., description="Optimistic-lock revision")
    update_count: int = Field(..., description="Number of audit log entries")
    is_ongoing: bool
    duration_hours: float
    created_at: datetime
    updated_at: datetime


class FieldChangeResponse(BaseModel):
    """One changed field inside an audit log entry."""

    field: str
    field_label: str
    previous: Any = None
    updated: Any = None
    previous_display: str
    updated_display: str


class EventLogResponse(BaseModel):
    """One audit log entry."""

    guid: str = Field(..., description="Log entry GUID (log_xxx)")
    sequence: int
    updated_by: ProfileSummary
    timestamp: datetime
    timestamp_display: str
    changes: List[FieldChangeResponse]


class EventLogsResponse(BaseModel):
    """Audit trail of an event, most recent entry first."""

    event_guid: str
    event_title: str
    timezone: str
    logs: List[EventLogResponse]
