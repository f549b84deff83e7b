"""
Event model for scheduled events.

Events are absolute time ranges assigned to an ordered list of profiles.
Each update that changes a tracked field appends an EventUpdateLog entry.

Design Rationale:
- start/end are stored as UTC instants; timezone is display metadata only
- Profile assignment order is preserved through EventProfile.position, so
  the audit trail can tell a reordering apart from an unchanged list
- revision is the optimistic-lock counter (SQLAlchemy version_id_col):
  an UPDATE that does not match the revision read by the writer fails
- No delete operation: events are kept together with their audit trail
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import Column, Integer, String, Text, ForeignKey, Index, UniqueConstraint
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import relationship

from backend.src.models import Base
from backend.src.models.mixins import GuidMixin
from backend.src.models.types import UTCDateTime, utcnow


EVENT_TITLE_MAX_LENGTH = 100
EVENT_DESCRIPTION_MAX_LENGTH = 500


class Event(Base, GuidMixin):
    """
    Scheduled event model.

    Attributes:
        id: Primary key (internal, never exposed)
        uuid: UUIDv7 for external identification (inherited from GuidMixin)
        guid: GUID string property (evt_xxx, inherited from GuidMixin)
        title: Event title (max 100 characters)
        description: Optional description (max 500 characters)
        timezone: IANA timezone the event was planned in
        start_date_time: Start instant (UTC)
        end_date_time: End instant (UTC, strictly after start)
        created_by_id: FK to the creating profile
        revision: Optimistic-lock counter, starts at 1
        created_at: Creation timestamp
        updated_at: Last update timestamp

    Relationships:
        created_by: Creating profile (many-to-one)
        profile_links: Ordered EventProfile rows (one-to-many)
        update_logs: Audit log entries in append order (one-to-many)

    Indexes:
        - uuid (unique, for GUID lookups)
        - start_date_time (ordering and upcoming queries)
    """

    __tablename__ = "events"

    GUID_PREFIX = "evt"

    id = Column(Integer, primary_key=True, autoincrement=True)

    title = Column(String(EVENT_TITLE_MAX_LENGTH), nullable=False)
    description = Column(Text, nullable=True, default="")
    timezone = Column(String(64), nullable=False, default="UTC")

    start_date_time = Column(UTCDateTime, nullable=False, index=True)
    end_date_time = Column(UTCDateTime, nullable=False)

    created_by_id = Column(
        Integer,
        ForeignKey("profiles.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )

    revision = Column(Integer, nullable=False, default=1)

    created_at = Column(UTCDateTime, default=utcnow, nullable=False)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False)

    created_by = relationship("Profile", foreign_keys=[created_by_id], lazy="joined")
    profile_links = relationship(
        "EventProfile",
        back_populates="event",
        order_by="EventProfile.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    update_logs = relationship(
        "EventUpdateLog",
        back_populates="event",
        order_by="EventUpdateLog.sequence",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": revision}

    @property
    def profiles(self) -> List["Profile"]:
        """Assigned profiles in assignment order."""
        return [link.profile for link in self.profile_links]

    @profiles.setter
    def profiles(self, profiles: List["Profile"]) -> None:
        # Reuse existing links so a reorder never deletes and re-inserts the
        # same (event_id, profile_id) pair within one flush.
        existing = {link.profile.id: link for link in self.profile_links}
        self.profile_links = [
            existing.get(profile.id) or EventProfile(profile=profile)
            for profile in profiles
        ]
        for position, link in enumerate(self.profile_links):
            link.position = position

    @property
    def profile_guids(self) -> List[str]:
        """GUIDs of the assigned profiles in assignment order."""
        return [link.profile.guid for link in self.profile_links]

    @property
    def duration_hours(self) -> float:
        """Duration in hours, rounded to two decimals."""
        seconds = (self.end_date_time - self.start_date_time).total_seconds()
        return round(seconds / 3600, 2)

    def is_ongoing(self, now: Optional[datetime] = None) -> bool:
        """Check whether ``now`` falls inside the event's time range."""
        now = now or utcnow()
        return self.start_date_time <= now <= self.end_date_time

    def __repr__(self) -> str:
        return (
            f"<Event("
            f"id={self.id}, "
            f"title='{self.title}', "
            f"start={self.start_date_time}, "
            f"revision={self.revision}"
            f")>"
        )

    def __str__(self) -> str:
        return f"{self.title} - {self.start_date_time:%Y-%m-%d %H:%M} UTC"


class EventProfile(Base):
    """
    Event-Profile junction model.

    Links profiles to events while keeping the assignment order.
    Note: This is a junction table without its own GUID.

    Attributes:
        id: Primary key
        event_id: FK to events (CASCADE on delete)
        profile_id: FK to profiles (RESTRICT on delete; profiles are never deleted)
        position: 0-based position in the event's profile list

    Constraints:
        - Unique (event_id, profile_id) - a profile is assigned at most once
    """

    __tablename__ = "event_profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)

    event_id = Column(
        Integer,
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    profile_id = Column(
        Integer,
        ForeignKey("profiles.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    position = Column(Integer, nullable=False, default=0)

    event = relationship("Event", back_populates="profile_links")
    profile = relationship("Profile", lazy="joined")

    __table_args__ = (
        UniqueConstraint("event_id", "profile_id", name="uq_event_profile"),
        Index("idx_event_profiles_profile_event", "profile_id", "event_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<EventProfile("
            f"event_id={self.event_id}, "
            f"profile_id={self.profile_id}, "
            f"position={self.position}"
            f")>"
        )
