"""
Profile service for managing scheduling participants.

Provides business logic for creating, reading and updating profiles.

Design:
- Profiles are never hard-deleted; deactivate() is a soft delete
- Name uniqueness is enforced among active profiles only, on the trimmed
  name (case-sensitive)
- Inactive profiles remain readable by GUID but cannot be modified or
  assigned to events
"""

from typing import List, Sequence

from sqlalchemy.orm import Session

from backend.src.models import Profile
from backend.src.services.exceptions import (
    ConflictError,
    InactiveProfileError,
    NotFoundError,
    ValidationError,
)
from backend.src.services.timezone_service import TimezoneService
from backend.src.services.validation import validate_profile
from backend.src.utils.logging_config import get_logger


logger = get_logger("services")


class ProfileService:
    """
    Service for managing profiles.

    Usage:
        >>> service = ProfileService(db_session)
        >>> profile = service.create(name="Ann", timezone="America/New_York")
        >>> service.update_timezone(profile.guid, "Europe/Paris")
    """

    def __init__(self, db: Session):
        """
        Initialize profile service.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    def list_active(self) -> List[Profile]:
        """List active profiles ordered by name."""
        return (
            self.db.query(Profile)
            .filter(Profile.is_active.is_(True))
            .order_by(Profile.name.asc(), Profile.id.asc())
            .all()
        )

    def get_by_guid(self, guid: str) -> Profile:
        """
        Get a profile by GUID, active or not.

        Raises:
            NotFoundError: If the GUID is malformed or unknown
        """
        try:
            uuid_value = Profile.parse_guid(guid)
        except ValueError:
            raise NotFoundError("Profile", guid)

        profile = self.db.query(Profile).filter(Profile.uuid == uuid_value).first()
        if not profile:
            raise NotFoundError("Profile", guid)
        return profile

    def get_active(self, guid: str) -> Profile:
        """
        Get an active profile by GUID.

        Raises:
            NotFoundError: If the profile does not exist
            InactiveProfileError: If the profile has been deactivated
        """
        profile = self.get_by_guid(guid)
        if not profile.is_active:
            raise InactiveProfileError("Profile is not active", profile_guid=guid)
        return profile

    def _ensure_unique_name(self, name: str, exclude_id: int = None) -> None:
        query = (
            self.db.query(Profile)
            .filter(Profile.name == name)
            .filter(Profile.is_active.is_(True))
        )
        if exclude_id is not None:
            query = query.filter(Profile.id != exclude_id)
        if query.first():
            raise ConflictError("Profile with this name already exists")

    def create(self, name: str, timezone: str = "UTC") -> Profile:
        """
        Create a new profile.

        Args:
            name: Display name (trimmed, 1-50 characters)
            timezone: IANA timezone identifier

        Returns:
            Created Profile instance

        Raises:
            ValidationError: If name or timezone is invalid
            ConflictError: If an active profile already has this name
        """
        validate_profile(name, timezone).raise_if_invalid()
        name = name.strip()
        self._ensure_unique_name(name)

        profile = Profile(name=name, timezone=timezone)
        self.db.add(profile)
        self.db.commit()
        self.db.refresh(profile)

        logger.info(f"Created profile: {profile.name} ({profile.guid}) in {profile.timezone}")
        return profile

    def update_timezone(self, guid: str, timezone: str) -> Profile:
        """
        Change a profile's timezone.

        Raises:
            ValidationError: If the timezone is missing or invalid
            NotFoundError: If the profile does not exist
            InactiveProfileError: If the profile is inactive
        """
        if not timezone:
            raise ValidationError("Timezone is required", field="timezone")
        if not TimezoneService.is_valid_timezone(timezone):
            raise ValidationError("Invalid timezone provided", field="timezone")

        profile = self.get_by_guid(guid)
        if not profile.is_active:
            raise InactiveProfileError("Cannot update inactive profile", profile_guid=guid)

        previous = profile.timezone
        profile.timezone = timezone
        self.db.commit()
        self.db.refresh(profile)

        logger.info(f"Updated timezone for profile {profile.guid}: {previous} -> {timezone}")
        return profile

    def rename(self, guid: str, name: str) -> Profile:
        """
        Rename an active profile.

        Raises:
            ValidationError: If the name is missing or too long
            NotFoundError: If the profile does not exist
            InactiveProfileError: If the profile is inactive
            ConflictError: If another active profile already has this name
        """
        profile = self.get_by_guid(guid)
        validate_profile(name, profile.timezone).raise_if_invalid()
        if not profile.is_active:
            raise InactiveProfileError("Cannot update inactive profile", profile_guid=guid)

        name = name.strip()
        self._ensure_unique_name(name, exclude_id=profile.id)
        profile.name = name
        self.db.commit()
        self.db.refresh(profile)

        logger.info(f"Renamed profile {profile.guid} to {profile.name}")
        return profile

    def deactivate(self, guid: str) -> Profile:
        """Soft delete a profile. Deactivating an inactive profile is a no-op."""
        profile = self.get_by_guid(guid)
        if not profile.is_active:
            logger.debug(f"Profile {guid} already inactive")
            return profile

        profile.deactivate()
        self.db.commit()
        self.db.refresh(profile)

        logger.info(f"Deactivated profile: {profile.name} ({profile.guid})")
        return profile

    def resolve_active(self, guids: Sequence[str]) -> List[Profile]:
        """
        Resolve GUIDs to active profiles, preserving the given order.

        Raises:
            InactiveProfileError: If any GUID is malformed, unknown, inactive
                or listed more than once
        """
        message = "One or more assigned profiles are invalid or inactive"
        if len(set(guids)) != len(guids):
            raise InactiveProfileError(message)

        uuids = []
        for guid in guids:
            try:
                uuids.append(Profile.parse_guid(guid))
            except ValueError:
                raise InactiveProfileError(message, profile_guid=guid)

        found = (
            self.db.query(Profile)
            .filter(Profile.uuid.in_(uuids))
            .filter(Profile.is_active.is_(True))
            .all()
        )
        by_uuid = {profile.uuid: profile for profile in found}

        resolved = []
        for guid, uuid_value in zip(guids, uuids):
            profile = by_uuid.get(uuid_value)
            if profile is None:
                raise InactiveProfileError(message, profile_guid=guid)
            resolved.append(profile)
        return resolved
