"""
Profiles API endpoints.

Provides:
- List active profiles (with current UTC offsets)
- List common timezones for selectors
- Get a profile by GUID
- Create a profile
- Change a profile's timezone

Design:
- Uses dependency injection for services
- Service exceptions are translated to HTTP status codes here; main.py
  shapes every error into the response envelope
- All endpoints use GUID format (pro_xxx) for identifiers
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from backend.src.config.settings import get_settings
from backend.src.db.database import get_db
from backend.src.schemas.common import ApiListResponse, ApiResponse
from backend.src.schemas.profile import (
    ProfileCreate,
    ProfileResponse,
    ProfileTimezoneUpdate,
    TimezoneOption,
)
from backend.src.services.exceptions import (
    ConflictError,
    InactiveProfileError,
    NotFoundError,
    ValidationError,
)
from backend.src.services.profile_service import ProfileService
from backend.src.services.timezone_service import TimezoneService
from backend.src.utils.logging_config import get_logger


logger = get_logger("api")

router = APIRouter(
    prefix="/profiles",
    tags=["Profiles"],
)


# ============================================================================
# Dependencies
# ============================================================================


def get_profile_service(db: Session = Depends(get_db)) -> ProfileService:
    """Create ProfileService instance with database session."""
    return ProfileService(db=db)


def validation_detail(e: ValidationError) -> dict:
    """HTTPException detail carrying every field error."""
    return {"message": e.message, "errors": e.errors}


# ============================================================================
# API Endpoints
# ============================================================================


@router.get(
    "",
    response_model=ApiListResponse[ProfileResponse],
    summary="List active profiles",
)
async def list_profiles(
    profile_service: ProfileService = Depends(get_profile_service),
) -> ApiListResponse[ProfileResponse]:
    """List active profiles ordered by name, each with its current UTC offset."""
    profiles = profile_service.list_active()
    logger.info(f"Retrieved {len(profiles)} active profiles")
    return ApiListResponse[ProfileResponse].of(
        [ProfileResponse.from_model(profile) for profile in profiles]
    )


@router.get(
    "/utils/timezones",
    response_model=ApiListResponse[TimezoneOption],
    summary="List common timezones",
)
async def list_timezones() -> ApiListResponse[TimezoneOption]:
    """Common timezones with the offset currently in effect."""
    options = [TimezoneOption(**option) for option in TimezoneService.list_common_timezones()]
    return ApiListResponse[TimezoneOption].of(options)


@router.get(
    "/{guid}",
    response_model=ApiResponse[ProfileResponse],
    summary="Get profile",
)
async def get_profile(
    guid: str,
    profile_service: ProfileService = Depends(get_profile_service),
) -> ApiResponse[ProfileResponse]:
    """
    Get a single active profile.

    Raises:
        404: Profile not found
        400: Profile is inactive
    """
    try:
        profile = profile_service.get_active(guid)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    except InactiveProfileError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

    return ApiResponse[ProfileResponse](data=ProfileResponse.from_model(profile))


@router.post(
    "",
    response_model=ApiResponse[ProfileResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create profile",
)
async def create_profile(
    profile_data: ProfileCreate,
    profile_service: ProfileService = Depends(get_profile_service),
) -> ApiResponse[ProfileResponse]:
    """
    Create a new profile.

    Raises:
        400: Missing or duplicate name, invalid timezone
    """
    try:
        timezone = profile_data.timezone
        if timezone is None:
            timezone = get_settings().default_timezone
        profile = profile_service.create(name=profile_data.name, timezone=timezone)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=validation_detail(e))
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

    logger.info(f"Created profile via API: {profile.guid}")
    return ApiResponse[ProfileResponse](
        data=ProfileResponse.from_model(profile),
        message="Profile created successfully",
    )


@router.put(
    "/{guid}/timezone",
    response_model=ApiResponse[ProfileResponse],
    summary="Update profile timezone",
)
async def update_profile_timezone(
    guid: str,
    timezone_data: ProfileTimezoneUpdate,
    profile_service: ProfileService = Depends(get_profile_service),
) -> ApiResponse[ProfileResponse]:
    """
    Change the timezone of an active profile.

    Raises:
        400: Missing/invalid timezone or inactive profile
        404: Profile not found
    """
    try:
        profile = profile_service.update_timezone(guid, timezone_data.timezone)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=validation_detail(e))
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    except InactiveProfileError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

    return ApiResponse[ProfileResponse](
        data=ProfileResponse.from_model(profile),
        message="Timezone updated successfully",
    )
