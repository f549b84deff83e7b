"""
Field-level diff between a stored event and a proposed update.

The diff is computed over a fixed, ordered set of fields so that audit log
entries always list changes in the same order, regardless of the order in
which a client sent them.

Canonical forms (used both for comparison and for what is written to the
audit log):
- start_date_time / end_date_time: UTC ISO-8601 with millisecond precision
  and a "Z" suffix, e.g. "2025-06-01T10:00:00.000Z"
- profiles: list of profile GUIDs in assignment order
- everything else: unchanged

Profile lists compare positionally: the same profiles in a different order
is a change.
"""

from dataclasses import dataclass, fields as dataclass_fields
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple

from backend.src.services.timezone_service import parse_instant


COMPARABLE_FIELDS = (
    "title",
    "description",
    "profiles",
    "timezone",
    "start_date_time",
    "end_date_time",
)

DATETIME_FIELDS = frozenset({"start_date_time", "end_date_time"})


@dataclass(frozen=True)
class EventSnapshot:
    """Immutable copy of an event's comparable fields."""

    title: str
    description: Optional[str]
    profiles: Tuple[str, ...]
    timezone: str
    start_date_time: datetime
    end_date_time: datetime

    @classmethod
    def from_event(cls, event) -> "EventSnapshot":
        return cls(
            title=event.title,
            description=event.description,
            profiles=tuple(event.profile_guids),
            timezone=event.timezone,
            start_date_time=event.start_date_time,
            end_date_time=event.end_date_time,
        )

    def as_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in dataclass_fields(self)}


@dataclass(frozen=True)
class FieldChange:
    """A single changed field with canonical previous and updated values."""

    field: str
    previous: Any
    updated: Any

    def to_dict(self) -> Dict[str, Any]:
        return {"field": self.field, "previous": self.previous, "updated": self.updated}


def _canonical_instant(value: Any) -> Optional[str]:
    if value is None:
        return None
    instant = parse_instant(value).astimezone(timezone.utc)
    return instant.strftime("%Y-%m-%dT%H:%M:%S.") + f"{instant.microsecond // 1000:03d}Z"


def _profile_key(item: Any) -> str:
    # Profile objects and bare GUID strings are both accepted
    return item if isinstance(item, str) else item.guid


def canonicalize(field: str, value: Any) -> Any:
    """
    Canonical, JSON-compatible form of a comparable field value.

    Raises:
        ValueError: If a datetime field holds an unparsable string
    """
    if field in DATETIME_FIELDS:
        return _canonical_instant(value)
    if field == "profiles":
        if value is None:
            return None
        return [_profile_key(item) for item in value]
    return value


def compute_changes(
    existing: EventSnapshot,
    proposed: Mapping[str, Any]
) -> List[FieldChange]:
    """
    Compare proposed values against an event snapshot.

    Args:
        existing: Snapshot of the stored event
        proposed: Field values supplied by the update; absent fields are
            left alone (not treated as cleared)

    Returns:
        Changes in COMPARABLE_FIELDS order; empty when nothing differs
    """
    changes = []
    current = existing.as_dict()
    for field in COMPARABLE_FIELDS:
        if field not in proposed:
            continue
        previous = canonicalize(field, current[field])
        updated = canonicalize(field, proposed[field])
        if previous != updated:
            changes.append(FieldChange(field=field, previous=previous, updated=updated))
    return changes
