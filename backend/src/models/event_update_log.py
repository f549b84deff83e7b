"""
EventUpdateLog model for the event audit trail.

One row per successful event update that changed at least one tracked
field. Rows are immutable once written and are only ever appended.

Design Rationale:
- sequence gives the storage order explicitly (1, 2, 3... per event);
  the unique (event_id, sequence) constraint rejects a second writer that
  appends from the same snapshot
- changes holds the ordered field-level diff as JSON using canonical values
  (instants as UTC ISO strings, profiles as GUID lists)
- updated_by is a weak reference to a profile; profiles are never deleted
"""

from typing import Any, Dict, List

from sqlalchemy import Column, Integer, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from backend.src.models import Base
from backend.src.models.mixins import GuidMixin
from backend.src.models.types import JSONBType, UTCDateTime, utcnow


class EventUpdateLog(Base, GuidMixin):
    """
    Audit log entry for a single event update.

    Attributes:
        id: Primary key (internal, never exposed)
        guid: GUID string property (log_xxx, inherited from GuidMixin)
        event_id: FK to the updated event
        sequence: 1-based position in the event's log
        updated_by_id: FK to the profile that made the change
        changes: Ordered list of {"field", "previous", "updated"} dicts
        timestamp: When the update was committed

    Constraints:
        - Unique (event_id, sequence)
    """

    __tablename__ = "event_update_logs"

    GUID_PREFIX = "log"

    id = Column(Integer, primary_key=True, autoincrement=True)

    event_id = Column(
        Integer,
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    sequence = Column(Integer, nullable=False)

    updated_by_id = Column(
        Integer,
        ForeignKey("profiles.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )

    changes = Column(JSONBType, nullable=False, default=list)
    timestamp = Column(UTCDateTime, default=utcnow, nullable=False)

    event = relationship("Event", back_populates="update_logs")
    updated_by = relationship("Profile", lazy="joined")

    __table_args__ = (
        UniqueConstraint("event_id", "sequence", name="uq_event_update_log_sequence"),
    )

    @property
    def changed_fields(self) -> List[str]:
        """Names of the fields changed by this update, in log order."""
        return [change["field"] for change in self.changes or []]

    def get_change(self, field: str) -> Dict[str, Any]:
        """Get the change record for ``field``; KeyError if the field did not change."""
        for change in self.changes or []:
            if change["field"] == field:
                return change
        raise KeyError(field)

    def __repr__(self) -> str:
        return (
            f"<EventUpdateLog("
            f"event_id={self.event_id}, "
            f"sequence={self.sequence}, "
            f"fields={self.changed_fields}"
            f")>"
        )
