"""
Event service for scheduling events and keeping their audit trail.

Provides business logic for creating, listing and updating events, and for
rendering the audit trail of an event in a viewer's timezone.

Design:
- All validation runs before the session is touched; a rejected create or
  update leaves no partial record
- Updates diff the proposed values against a snapshot of the stored event
  and append exactly one EventUpdateLog when something changed
- Optimistic locking: events.revision is the mapper version counter, so a
  writer working from a stale row fails with ConcurrentUpdateError.
  Callers may also pass the revision they last read (expected_revision)
- No delete operation
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from backend.src.models import Event, EventProfile, EventUpdateLog, Profile
from backend.src.models.types import utcnow
from backend.src.services.event_diff import (
    COMPARABLE_FIELDS,
    DATETIME_FIELDS,
    EventSnapshot,
    compute_changes,
)
from backend.src.services.exceptions import (
    ConcurrentUpdateError,
    InactiveProfileError,
    NotFoundError,
    ServiceError,
    ValidationError,
)
from backend.src.services.profile_service import ProfileService
from backend.src.services.timezone_service import (
    MISSING_VALUE,
    TimezoneService,
    parse_instant,
)
from backend.src.services.validation import validate_event_create, validate_event_update
from backend.src.utils.logging_config import get_logger


logger = get_logger("services")


# Display names used when rendering the audit trail
FIELD_LABELS = {
    "title": "Event Title",
    "description": "Description",
    "profiles": "Assigned Profiles",
    "timezone": "Timezone",
    "start_date_time": "Start Time",
    "end_date_time": "End Time",
}


class EventService:
    """
    Service for managing events.

    Usage:
        >>> service = EventService(db_session)
        >>> event = service.create(
        ...     title="Sync",
        ...     profile_guids=[ann.guid],
        ...     timezone="America/New_York",
        ...     start_date_time=start,
        ...     end_date_time=end,
        ...     created_by_guid=ann.guid,
        ... )
        >>> service.update(event.guid, updated_by_guid=ann.guid, title="Sync Call")
    """

    def __init__(self, db: Session):
        """
        Initialize event service.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db
        self.profile_service = ProfileService(db)

    def _parse_event_guid(self, guid: str):
        try:
            return Event.parse_guid(guid)
        except ValueError:
            raise NotFoundError("Event", guid)

    def get_by_guid(self, guid: str) -> Event:
        """
        Get an event by GUID.

        Raises:
            NotFoundError: If the GUID is malformed or unknown
        """
        uuid_value = self._parse_event_guid(guid)
        event = self.db.query(Event).filter(Event.uuid == uuid_value).first()
        if not event:
            raise NotFoundError("Event", guid)
        return event

    def _get_for_update(self, guid: str) -> Event:
        # FOR UPDATE OF events only; SQLite ignores the clause
        uuid_value = self._parse_event_guid(guid)
        event = (
            self.db.query(Event)
            .filter(Event.uuid == uuid_value)
            .with_for_update(of=Event)
            .populate_existing()
            .first()
        )
        if not event:
            raise NotFoundError("Event", guid)
        return event

    def list_all(self) -> List[Event]:
        """List every event ordered by start time."""
        return (
            self.db.query(Event)
            .order_by(Event.start_date_time.asc(), Event.id.asc())
            .all()
        )

    def list_by_profile(self, profile_guid: str) -> List[Event]:
        """
        List the events assigned to a profile, ordered by start time.

        Raises:
            NotFoundError: If the profile does not exist or is inactive
        """
        try:
            profile = self.profile_service.get_active(profile_guid)
        except InactiveProfileError:
            raise NotFoundError("Profile", profile_guid)

        return (
            self.db.query(Event)
            .join(EventProfile, EventProfile.event_id == Event.id)
            .filter(EventProfile.profile_id == profile.id)
            .order_by(Event.start_date_time.asc(), Event.id.asc())
            .all()
        )

    def list_upcoming(self, now: Optional[datetime] = None) -> List[Event]:
        """List events starting at or after ``now``, ordered by start time."""
        now = now or utcnow()
        return (
            self.db.query(Event)
            .filter(Event.start_date_time >= now)
            .order_by(Event.start_date_time.asc(), Event.id.asc())
            .all()
        )

    def create(
        self,
        title: str,
        profile_guids: List[str],
        timezone: str,
        start_date_time: Any,
        end_date_time: Any,
        created_by_guid: str,
        description: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Event:
        """
        Create a new event.

        Args:
            title: Event title (trimmed, 1-100 characters)
            profile_guids: Ordered, non-empty list of active profile GUIDs
            timezone: IANA timezone the event is planned in
            start_date_time: Start instant (datetime or ISO string)
            end_date_time: End instant, strictly after start and not in the past
            created_by_guid: GUID of the creating (active) profile
            description: Optional description (trimmed, max 500 characters)
            now: Reference instant for the "not in the past" rule

        Returns:
            Created Event instance with revision 1 and no update logs

        Raises:
            ValidationError: If any field is missing or invalid
            InactiveProfileError: If the creator or any assigned profile is
                unknown or inactive
        """
        validate_event_create(
            title=title,
            profile_guids=profile_guids,
            timezone=timezone,
            start_date_time=start_date_time,
            end_date_time=end_date_time,
            created_by_guid=created_by_guid,
            description=description,
            now=now,
        ).raise_if_invalid()

        creator = self._resolve_active_profile(created_by_guid, "Invalid creator profile")
        profiles = self.profile_service.resolve_active(profile_guids)

        event = Event(
            title=title.strip(),
            description=(description or "").strip(),
            timezone=timezone,
            start_date_time=parse_instant(start_date_time),
            end_date_time=parse_instant(end_date_time),
            created_by=creator,
        )
        event.profiles = profiles
        self.db.add(event)
        self.db.commit()
        self.db.refresh(event)

        logger.info(
            f"Created event: {event.guid} - {event.title} "
            f"({len(profiles)} profiles, created by {creator.guid})"
        )
        return event

    def update(
        self,
        guid: str,
        updated_by_guid: Optional[str] = None,
        expected_revision: Optional[int] = None,
        **fields: Any
    ) -> Event:
        """
        Apply a partial update and record what changed.

        Args:
            guid: Event GUID (evt_xxx)
            updated_by_guid: Active profile making the change; required only
                when at least one field actually changes
            expected_revision: Revision the caller last read; a mismatch is
                treated as a concurrent modification
            **fields: Any subset of title, description, profiles (GUID list),
                timezone, start_date_time, end_date_time

        Returns:
            The event (unchanged when no supplied value differs)

        Raises:
            NotFoundError: If the event does not exist
            ValidationError: If a supplied field is invalid, the merged time
                range is not ordered, or updated_by is missing
            InactiveProfileError: If updated_by or an assigned profile is
                unknown or inactive
            ConcurrentUpdateError: If the event was modified concurrently
        """
        unknown = sorted(set(fields) - set(COMPARABLE_FIELDS))
        if unknown:
            raise ValidationError(f"Unknown event field: {unknown[0]}", field=unknown[0])

        event = self._get_for_update(guid)
        current_revision = event.revision
        if expected_revision is not None and expected_revision != current_revision:
            self.db.rollback()
            raise ConcurrentUpdateError(guid, expected_revision, current_revision)

        try:
            changes, proposed, resolved_profiles = self._prepare_update(event, fields)
            if not changes:
                self.db.rollback()
                logger.debug(f"No changes detected for event {guid}; nothing written")
                return self.get_by_guid(guid)
            if not updated_by_guid:
                raise ValidationError(
                    "updated_by is required when changing an event", field="updated_by"
                )
            updater = self._resolve_active_profile(updated_by_guid, "Invalid updating profile")
        except ServiceError:
            # Release the row lock taken by _get_for_update
            self.db.rollback()
            raise

        for field, value in proposed.items():
            if field == "profiles":
                event.profiles = resolved_profiles
            else:
                setattr(event, field, value)
        # Row must be dirty so the version counter is checked and bumped
        # even when only profile links changed
        event.updated_at = utcnow()

        event.update_logs.append(
            EventUpdateLog(
                sequence=len(event.update_logs) + 1,
                updated_by=updater,
                changes=[change.to_dict() for change in changes],
                timestamp=utcnow(),
            )
        )

        try:
            self.db.commit()
        except StaleDataError:
            self.db.rollback()
            logger.warning(f"Concurrent update detected for event {guid}")
            raise ConcurrentUpdateError(guid, expected_revision)
        except IntegrityError as e:
            # Another writer appended the same log sequence first
            self.db.rollback()
            logger.warning(f"Audit log sequence conflict for event {guid}: {e}")
            raise ConcurrentUpdateError(guid, expected_revision)
        self.db.refresh(event)

        logger.info(
            f"Updated event: {event.guid} by {updater.guid} "
            f"(fields: {', '.join(change.field for change in changes)}, revision {event.revision})"
        )
        return event

    def _prepare_update(self, event: Event, fields: Dict[str, Any]):
        """Validate supplied fields and diff them against the stored event."""
        validate_event_update(event.start_date_time, event.end_date_time, fields).raise_if_invalid()

        proposed = dict(fields)
        resolved_profiles = None
        if "profiles" in proposed:
            resolved_profiles = self.profile_service.resolve_active(proposed["profiles"])
        for field in DATETIME_FIELDS:
            if field in proposed:
                proposed[field] = parse_instant(proposed[field])

        changes = compute_changes(EventSnapshot.from_event(event), proposed)
        return changes, proposed, resolved_profiles

    def _resolve_active_profile(self, guid: str, message: str) -> Profile:
        try:
            return self.profile_service.get_active(guid)
        except (NotFoundError, InactiveProfileError):
            raise InactiveProfileError(message, profile_guid=guid)

    def get_logs(self, guid: str, viewer_timezone: str = "UTC") -> Dict[str, Any]:
        """
        Audit trail of an event, most recent first, rendered for a viewer.

        Args:
            guid: Event GUID
            viewer_timezone: IANA zone used for display strings

        Returns:
            Dictionary with event_guid, event_title, timezone and logs

        Raises:
            NotFoundError: If the event does not exist
            ValidationError: If viewer_timezone is invalid
        """
        if not TimezoneService.is_valid_timezone(viewer_timezone):
            raise ValidationError("Invalid timezone provided", field="timezone")

        event = self.get_by_guid(guid)
        names = self._profile_names(
            guid_value
            for log in event.update_logs
            for change in log.changes or []
            if change["field"] == "profiles"
            for value in (change.get("previous"), change.get("updated"))
            if value
            for guid_value in value
        )

        logs = []
        for log in reversed(event.update_logs):
            logs.append({
                "guid": log.guid,
                "sequence": log.sequence,
                "updated_by": {"guid": log.updated_by.guid, "name": log.updated_by.name},
                "timestamp": log.timestamp,
                "timestamp_display": TimezoneService.format_for_display(log.timestamp, viewer_timezone),
                "changes": [
                    {
                        "field": change["field"],
                        "field_label": FIELD_LABELS.get(change["field"], change["field"]),
                        "previous": change.get("previous"),
                        "updated": change.get("updated"),
                        "previous_display": self._display_value(
                            change["field"], change.get("previous"), viewer_timezone, names
                        ),
                        "updated_display": self._display_value(
                            change["field"], change.get("updated"), viewer_timezone, names
                        ),
                    }
                    for change in log.changes or []
                ],
            })

        return {
            "event_guid": event.guid,
            "event_title": event.title,
            "timezone": viewer_timezone,
            "logs": logs,
        }

    def _profile_names(self, guids: Iterable[str]) -> Dict[str, str]:
        uuids = {}
        for guid in set(guids):
            try:
                uuids[Profile.parse_guid(guid)] = guid
            except ValueError:
                continue
        if not uuids:
            return {}
        profiles = self.db.query(Profile).filter(Profile.uuid.in_(list(uuids))).all()
        return {uuids[profile.uuid]: profile.name for profile in profiles}

    @staticmethod
    def _display_value(field: str, value: Any, tz_id: str, names: Dict[str, str]) -> str:
        if value is None:
            return MISSING_VALUE
        if field in DATETIME_FIELDS:
            try:
                return TimezoneService.format_for_display(parse_instant(value), tz_id)
            except ValueError:
                return str(value)
        if field == "profiles":
            return ", ".join(names.get(guid, guid) for guid in value) or MISSING_VALUE
        return str(value)

    def build_event_response(self, event: Event, now: Optional[datetime] = None) -> dict:
        """
        Build a response dictionary for an event.

        Args:
            event: Event instance with relationships loaded
            now: Reference instant for is_ongoing

        Returns:
            Dictionary suitable for the EventResponse schema
        """
        return {
            "guid": event.guid,
            "title": event.title,
            "description": event.description,
            "timezone": event.timezone,
            "start_date_time": event.start_date_time,
            "end_date_time": event.end_date_time,
            "profiles": [
                {"guid": profile.guid, "name": profile.name, "timezone": profile.timezone}
                for profile in event.profiles
            ],
            "created_by": {"guid": event.created_by.guid, "name": event.created_by.name},
            "revision": event.revision,
            "update_count": len(event.update_logs),
            "is_ongoing": event.is_ongoing(now),
            "duration_hours": event.duration_hours,
            "created_at": event.created_at,
            "updated_at": event.updated_at,
        }
