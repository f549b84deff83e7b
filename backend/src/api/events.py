"""
Events API endpoints.

Provides:
- List all events, events of one profile, upcoming events
- Get an event by GUID
- Create an event
- Partially update an event (records an audit log entry when something changed)
- Read an event's audit trail rendered in a viewer timezone

Design:
- Static paths are declared before /{guid} so they are not captured by it
- Updates may carry the revision the client last read; a stale revision or
  a concurrent writer yields 409
- All endpoints use GUID format (evt_xxx, pro_xxx) for identifiers
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from backend.src.api.profiles import validation_detail
from backend.src.db.database import get_db
from backend.src.schemas.common import ApiListResponse, ApiResponse
from backend.src.schemas.event import (
    EventCreate,
    EventLogsResponse,
    EventResponse,
    EventUpdate,
)
from backend.src.services.event_service import EventService
from backend.src.services.exceptions import (
    ConcurrentUpdateError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from backend.src.utils.logging_config import get_logger


logger = get_logger("api")

router = APIRouter(
    prefix="/events",
    tags=["Events"],
)


# ============================================================================
# Dependencies
# ============================================================================


def get_event_service(db: Session = Depends(get_db)) -> EventService:
    """Create EventService instance with database session."""
    return EventService(db=db)


def _event_list(service: EventService, events: list) -> ApiListResponse[EventResponse]:
    return ApiListResponse[EventResponse].of(
        [EventResponse(**service.build_event_response(event)) for event in events]
    )


# ============================================================================
# API Endpoints
# ============================================================================


@router.get(
    "",
    response_model=ApiListResponse[EventResponse],
    summary="List events",
)
async def list_events(
    event_service: EventService = Depends(get_event_service),
) -> ApiListResponse[EventResponse]:
    """List every event ordered by start time."""
    events = event_service.list_all()
    logger.info(f"Retrieved {len(events)} events")
    return _event_list(event_service, events)


@router.get(
    "/profile/{profile_guid}",
    response_model=ApiListResponse[EventResponse],
    summary="List events for a profile",
)
async def list_profile_events(
    profile_guid: str,
    event_service: EventService = Depends(get_event_service),
) -> ApiListResponse[EventResponse]:
    """
    List events assigned to a profile, ordered by start time.

    Raises:
        404: Profile not found or inactive
    """
    try:
        events = event_service.list_by_profile(profile_guid)
    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Profile not found or inactive",
        )

    logger.info(f"Retrieved {len(events)} events for profile {profile_guid}")
    return _event_list(event_service, events)


@router.get(
    "/upcoming/events",
    response_model=ApiListResponse[EventResponse],
    summary="List upcoming events",
)
async def list_upcoming_events(
    event_service: EventService = Depends(get_event_service),
) -> ApiListResponse[EventResponse]:
    """Events that have not started yet, ordered by start time."""
    events = event_service.list_upcoming()
    logger.info(f"Retrieved {len(events)} upcoming events")
    return _event_list(event_service, events)


@router.get(
    "/{guid}",
    response_model=ApiResponse[EventResponse],
    summary="Get event",
)
async def get_event(
    guid: str,
    event_service: EventService = Depends(get_event_service),
) -> ApiResponse[EventResponse]:
    """
    Get a single event.

    Raises:
        404: Event not found
    """
    try:
        event = event_service.get_by_guid(guid)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")

    return ApiResponse[EventResponse](data=EventResponse(**event_service.build_event_response(event)))


@router.post(
    "",
    response_model=ApiResponse[EventResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create event",
)
async def create_event(
    event_data: EventCreate,
    event_service: EventService = Depends(get_event_service),
) -> ApiResponse[EventResponse]:
    """
    Create a new event.

    Raises:
        400: Missing or invalid fields, unknown or inactive profiles
    """
    try:
        event = event_service.create(
            title=event_data.title,
            description=event_data.description,
            profile_guids=event_data.profiles,
            timezone=event_data.timezone,
            start_date_time=event_data.start_date_time,
            end_date_time=event_data.end_date_time,
            created_by_guid=event_data.created_by,
        )
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=validation_detail(e))
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

    return ApiResponse[EventResponse](
        data=EventResponse(**event_service.build_event_response(event)),
        message="Event created successfully",
    )


@router.put(
    "/{guid}",
    response_model=ApiResponse[EventResponse],
    summary="Update event",
)
async def update_event(
    guid: str,
    event_data: EventUpdate,
    event_service: EventService = Depends(get_event_service),
) -> ApiResponse[EventResponse]:
    """
    Partially update an event.

    Only fields present in the body are compared. When at least one of them
    differs from the stored value, one audit log entry is appended.

    Raises:
        400: Invalid fields, post-update end not after start, missing or
             inactive updated_by, inactive profiles
        404: Event not found
        409: Event modified concurrently (stale revision)
    """
    try:
        event = event_service.update(
            guid,
            updated_by_guid=event_data.updated_by,
            expected_revision=event_data.revision,
            **event_data.field_updates(),
        )
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=validation_detail(e))
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except ConcurrentUpdateError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)

    return ApiResponse[EventResponse](
        data=EventResponse(**event_service.build_event_response(event)),
        message="Event updated successfully",
    )


@router.get(
    "/{guid}/logs",
    response_model=ApiResponse[EventLogsResponse],
    summary="Get event audit trail",
)
async def get_event_logs(
    guid: str,
    timezone: str = Query("UTC", description="IANA timezone used for display strings"),
    event_service: EventService = Depends(get_event_service),
) -> ApiResponse[EventLogsResponse]:
    """
    Audit trail of an event, most recent entry first.

    Raises:
        400: Invalid timezone
        404: Event not found
    """
    try:
        logs = event_service.get_logs(guid, viewer_timezone=timezone)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=validation_detail(e))

    logger.info(f"Retrieved {len(logs['logs'])} log entries for event {guid}")
    return ApiResponse[EventLogsResponse](data=EventLogsResponse(**logs))
