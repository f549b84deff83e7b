"""
Profile model for scheduling participants.

A profile is a named participant with a home timezone. Events are assigned
to one or more profiles and every event is created (and updated) by a
profile.

Design Rationale:
- Profiles are never hard-deleted; is_active=False is the only removal path
- Inactive profiles stay resolvable so historical events and audit logs
  keep their attribution
- timezone is presentation metadata used when rendering instants for the
  profile; it never changes stored values
"""

from sqlalchemy import Column, Integer, String, Boolean, Index

from backend.src.models import Base
from backend.src.models.mixins import GuidMixin
from backend.src.models.types import UTCDateTime, utcnow


# Maximum profile name length (after trimming)
PROFILE_NAME_MAX_LENGTH = 50


class Profile(Base, GuidMixin):
    """
    Scheduling profile.

    Attributes:
        id: Primary key (internal, never exposed)
        uuid: UUIDv7 for external identification (inherited from GuidMixin)
        guid: GUID string property (pro_xxx, inherited from GuidMixin)
        name: Display name (max 50 characters)
        timezone: IANA timezone identifier (e.g. "Europe/Paris")
        is_active: False once the profile is deactivated (soft delete)
        created_at: Creation timestamp
        updated_at: Last update timestamp

    Indexes:
        - uuid (unique, for GUID lookups)
        - name, is_active (duplicate-name checks among active profiles)
    """

    __tablename__ = "profiles"

    GUID_PREFIX = "pro"

    id = Column(Integer, primary_key=True, autoincrement=True)

    name = Column(String(PROFILE_NAME_MAX_LENGTH), nullable=False)
    timezone = Column(String(64), nullable=False, default="UTC")
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(UTCDateTime, default=utcnow, nullable=False)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        Index("idx_profiles_name_active", "name", "is_active"),
    )

    def deactivate(self) -> None:
        """Soft delete the profile."""
        self.is_active = False

    def __repr__(self) -> str:
        return (
            f"<Profile("
            f"id={self.id}, "
            f"name='{self.name}', "
            f"timezone='{self.timezone}', "
            f"is_active={self.is_active}"
            f")>"
        )

    def __str__(self) -> str:
        return f"{self.name} ({self.timezone})"
