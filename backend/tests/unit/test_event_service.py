"""
Unit tests for EventService.

Tests cover:
- Event creation and validation
- Listing (all, by profile, upcoming)
- Partial updates with audit log entries
- No-op updates, rejected updates and optimistic locking
- Audit trail rendering in a viewer's timezone
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.orm.exc import StaleDataError

from backend.src.models import EventUpdateLog
from backend.src.services.exceptions import (
    ConcurrentUpdateError,
    InactiveProfileError,
    NotFoundError,
    ValidationError,
)
from backend.src.services.guid import GuidService


def _log_count(db):
    return db.query(EventUpdateLog).count()


class TestEventCreate:
    """Tests for EventService.create."""

    def test_create_event(self, event_service, sample_profile, future_range):
        ann = sample_profile(name="Ann")
        bob = sample_profile(name="Bob", timezone="Europe/Paris")
        start, end = future_range()

        event = event_service.create(
            title="  Sync  ",
            profile_guids=[bob.guid, ann.guid],
            timezone="America/New_York",
            start_date_time=start,
            end_date_time=end,
            created_by_guid=ann.guid,
            description=" Weekly ",
        )

        assert event.guid.startswith("evt_")
        assert event.title == "Sync"
        assert event.description == "Weekly"
        assert event.profile_guids == [bob.guid, ann.guid]
        assert event.created_by.guid == ann.guid
        assert event.start_date_time == start
        assert event.end_date_time == end
        assert event.revision == 1
        assert event.update_logs == []

    def test_create_accepts_iso_strings(self, event_service, sample_profile, future_range):
        ann = sample_profile()
        start, end = future_range()

        event = event_service.create(
            title="Sync",
            profile_guids=[ann.guid],
            timezone="UTC",
            start_date_time=start.isoformat().replace("+00:00", "Z"),
            end_date_time=end.isoformat(),
            created_by_guid=ann.guid,
        )
        assert event.start_date_time == start
        assert event.description == ""

    def test_end_before_start_rejected(self, event_service, sample_profile, future_range, test_db_session):
        ann = sample_profile()
        start, _ = future_range()

        with pytest.raises(ValidationError) as exc_info:
            event_service.create(
                title="Sync",
                profile_guids=[ann.guid],
                timezone="UTC",
                start_date_time=start,
                end_date_time=start,
                created_by_guid=ann.guid,
            )
        assert exc_info.value.message == "End date/time must be after start date/time"
        assert event_service.list_all() == []

    def test_end_in_past_rejected(self, event_service, sample_profile):
        ann = sample_profile()
        now = datetime.now(timezone.utc)

        with pytest.raises(ValidationError) as exc_info:
            event_service.create(
                title="Retro",
                profile_guids=[ann.guid],
                timezone="UTC",
                start_date_time=now - timedelta(hours=2),
                end_date_time=now - timedelta(hours=1),
                created_by_guid=ann.guid,
            )
        assert exc_info.value.message == "End date/time cannot be in the past"

    def test_inactive_assigned_profile_rejected(self, event_service, sample_profile, future_range):
        ann = sample_profile(name="Ann")
        gone = sample_profile(name="Gone", is_active=False)
        start, end = future_range()

        with pytest.raises(InactiveProfileError):
            event_service.create(
                title="Sync",
                profile_guids=[ann.guid, gone.guid],
                timezone="UTC",
                start_date_time=start,
                end_date_time=end,
                created_by_guid=ann.guid,
            )
        assert event_service.list_all() == []

    def test_unknown_creator_rejected(self, event_service, sample_profile, future_range):
        ann = sample_profile()
        start, end = future_range()

        with pytest.raises(InactiveProfileError) as exc_info:
            event_service.create(
                title="Sync",
                profile_guids=[ann.guid],
                timezone="UTC",
                start_date_time=start,
                end_date_time=end,
                created_by_guid=GuidService.generate_guid("pro"),
            )
        assert exc_info.value.message == "Invalid creator profile"


class TestEventRead:
    """Tests for lookups and listings."""

    def test_get_by_guid(self, event_service, sample_event):
        event = sample_event()
        assert event_service.get_by_guid(event.guid).id == event.id

    @pytest.mark.parametrize("guid", ["evt_bad", "pro_" + "0" * 26])
    def test_get_by_guid_malformed(self, event_service, guid):
        with pytest.raises(NotFoundError):
            event_service.get_by_guid(guid)

    def test_list_all_ordered_by_start(self, event_service, sample_profile, sample_event, future_range):
        ann = sample_profile()
        later = sample_event(title="Later", profiles=[ann], start=future_range(48)[0], end=future_range(49)[0])
        sooner = sample_event(title="Sooner", profiles=[ann], start=future_range(2)[0], end=future_range(3)[0])

        assert [e.guid for e in event_service.list_all()] == [sooner.guid, later.guid]

    def test_list_by_profile(self, event_service, sample_profile, sample_event):
        ann = sample_profile(name="Ann")
        bob = sample_profile(name="Bob")
        shared = sample_event(title="Shared", profiles=[ann, bob])
        sample_event(title="Ann only", profiles=[ann])

        assert [e.guid for e in event_service.list_by_profile(bob.guid)] == [shared.guid]
        assert len(event_service.list_by_profile(ann.guid)) == 2

    def test_list_by_inactive_profile(self, event_service, sample_profile):
        gone = sample_profile(is_active=False)
        with pytest.raises(NotFoundError):
            event_service.list_by_profile(gone.guid)

    def test_list_upcoming(self, event_service, sample_profile, sample_event, future_range):
        ann = sample_profile()
        now = datetime.now(timezone.utc)
        ongoing = sample_event(title="Ongoing", profiles=[ann], start=now - timedelta(hours=1), end=now + timedelta(hours=1))
        upcoming = sample_event(title="Upcoming", profiles=[ann])

        guids = [e.guid for e in event_service.list_upcoming()]
        assert upcoming.guid in guids
        assert ongoing.guid not in guids

    def test_build_event_response(self, event_service, sample_profile, sample_event):
        ann = sample_profile(name="Ann", timezone="America/New_York")
        now = datetime.now(timezone.utc)
        event = sample_event(profiles=[ann], start=now - timedelta(minutes=30), end=now + timedelta(minutes=60))

        response = event_service.build_event_response(event, now=now)

        assert response["guid"] == event.guid
        assert response["profiles"] == [{"guid": ann.guid, "name": "Ann", "timezone": "America/New_York"}]
        assert response["created_by"] == {"guid": ann.guid, "name": "Ann"}
        assert response["revision"] == 1
        assert response["update_count"] == 0
        assert response["is_ongoing"] is True
        assert response["duration_hours"] == 1.5


class TestEventUpdate:
    """Tests for EventService.update."""

    def test_title_change_writes_one_log(self, event_service, sample_profile, sample_event, test_db_session):
        ann = sample_profile(name="Ann")
        event = sample_event(title="Sync", profiles=[ann])

        updated = event_service.update(event.guid, updated_by_guid=ann.guid, title="Sync Call")

        assert updated.title == "Sync Call"
        assert updated.revision == 2
        assert len(updated.update_logs) == 1
        log = updated.update_logs[0]
        assert log.sequence == 1
        assert log.guid.startswith("log_")
        assert log.updated_by.guid == ann.guid
        assert log.changes == [{"field": "title", "previous": "Sync", "updated": "Sync Call"}]
        assert log.timestamp.tzinfo is not None

    def test_only_changed_fields_are_logged(self, event_service, sample_profile, sample_event):
        ann = sample_profile()
        event = sample_event(title="Sync", profiles=[ann], timezone="UTC")

        updated = event_service.update(
            event.guid,
            updated_by_guid=ann.guid,
            title="Sync",
            timezone="Asia/Tokyo",
            end_date_time=event.end_date_time + timedelta(minutes=30),
        )

        assert updated.update_logs[0].changed_fields == ["timezone", "end_date_time"]
        assert updated.duration_hours == 1.5

    def test_instant_changes_logged_in_canonical_form(self, event_service, sample_profile, sample_event):
        ann = sample_profile()
        start = datetime(2030, 1, 1, 9, 0, tzinfo=timezone.utc)
        event = sample_event(profiles=[ann], start=start, end=start + timedelta(hours=1))

        updated = event_service.update(
            event.guid, updated_by_guid=ann.guid, start_date_time="2030-01-01T09:30:00+00:00"
        )

        assert updated.update_logs[0].get_change("start_date_time") == {
            "field": "start_date_time",
            "previous": "2030-01-01T09:00:00.000Z",
            "updated": "2030-01-01T09:30:00.000Z",
        }

    def test_no_op_update_writes_nothing(self, event_service, sample_profile, sample_event, test_db_session):
        ann = sample_profile()
        event = sample_event(title="Sync", profiles=[ann])

        result = event_service.update(
            event.guid,
            title="Sync",
            profiles=[ann.guid],
            start_date_time=event.start_date_time.isoformat(),
        )

        assert result.revision == 1
        assert result.update_logs == []
        assert _log_count(test_db_session) == 0

    def test_update_stores_title_as_given(self, event_service, sample_profile, sample_event, test_db_session):
        ann = sample_profile()
        event = sample_event(title="Sync", profiles=[ann])

        updated = event_service.update(event.guid, updated_by_guid=ann.guid, title="Sync ")

        assert updated.title == "Sync "
        assert _log_count(test_db_session) == 1
        assert updated.update_logs[0].changes == [
            {"field": "title", "previous": "Sync", "updated": "Sync "}
        ]

    @pytest.mark.parametrize("kwargs", [
        {"title": "Sync Call"},
        {"updated_by_guid": "gone", "title": "Sync Call"},
        {"updated_by_guid": "ann", "title": ""},
        {"updated_by_guid": "ann", "profiles": ["gone"]},
    ])
    def test_rejected_update_releases_row_lock(self, event_service, sample_profile, sample_event,
                                               test_db_session, monkeypatch, kwargs):
        ann = sample_profile(name="Ann")
        gone = sample_profile(name="Gone", is_active=False)
        event = sample_event(profiles=[ann])
        guids = {"ann": ann.guid, "gone": gone.guid}
        kwargs = {
            key: [guids[v] for v in value] if key == "profiles" else guids.get(value, value)
            for key, value in kwargs.items()
        }

        rollbacks = []
        original_rollback = test_db_session.rollback
        monkeypatch.setattr(
            test_db_session, "rollback", lambda: rollbacks.append(True) or original_rollback()
        )

        with pytest.raises((ValidationError, InactiveProfileError)):
            event_service.update(event.guid, **kwargs)
        assert rollbacks
        assert _log_count(test_db_session) == 0

    def test_update_requires_updater_when_changing(self, event_service, sample_event, test_db_session):
        event = sample_event(title="Sync")

        with pytest.raises(ValidationError) as exc_info:
            event_service.update(event.guid, title="Sync Call")
        assert exc_info.value.field == "updated_by"
        test_db_session.rollback()
        assert event_service.get_by_guid(event.guid).title == "Sync"

    def test_inactive_updater_rejected(self, event_service, sample_profile, sample_event):
        ann = sample_profile(name="Ann")
        gone = sample_profile(name="Gone", is_active=False)
        event = sample_event(profiles=[ann])

        with pytest.raises(InactiveProfileError) as exc_info:
            event_service.update(event.guid, updated_by_guid=gone.guid, title="Sync Call")
        assert exc_info.value.message == "Invalid updating profile"

    def test_end_before_start_rejected(self, event_service, sample_profile, sample_event, test_db_session):
        ann = sample_profile()
        event = sample_event(profiles=[ann])

        with pytest.raises(ValidationError) as exc_info:
            event_service.update(
                event.guid,
                updated_by_guid=ann.guid,
                title="Sync Call",
                end_date_time=event.start_date_time - timedelta(minutes=1),
            )
        assert exc_info.value.message == "End date/time must be after start date/time"
        test_db_session.rollback()
        reloaded = event_service.get_by_guid(event.guid)
        assert reloaded.title == "Sync"
        assert reloaded.revision == 1
        assert _log_count(test_db_session) == 0

    def test_unknown_field_rejected(self, event_service, sample_profile, sample_event):
        ann = sample_profile()
        event = sample_event(profiles=[ann])
        with pytest.raises(ValidationError):
            event_service.update(event.guid, updated_by_guid=ann.guid, color="red")

    def test_unknown_event(self, event_service, sample_profile):
        ann = sample_profile()
        with pytest.raises(NotFoundError):
            event_service.update(GuidService.generate_guid("evt"), updated_by_guid=ann.guid, title="x")

    def test_profile_reorder_is_logged(self, event_service, sample_profile, sample_event):
        ann = sample_profile(name="Ann")
        bob = sample_profile(name="Bob")
        event = sample_event(profiles=[ann, bob])

        updated = event_service.update(event.guid, updated_by_guid=ann.guid, profiles=[bob.guid, ann.guid])

        assert updated.profile_guids == [bob.guid, ann.guid]
        assert updated.update_logs[0].changes == [{
            "field": "profiles",
            "previous": [ann.guid, bob.guid],
            "updated": [bob.guid, ann.guid],
        }]
        assert updated.revision == 2

    def test_profile_replacement(self, event_service, sample_profile, sample_event):
        ann = sample_profile(name="Ann")
        bob = sample_profile(name="Bob")
        carol = sample_profile(name="Carol")
        event = sample_event(profiles=[ann, bob])

        updated = event_service.update(event.guid, updated_by_guid=bob.guid, profiles=[carol.guid])

        assert [p.name for p in updated.profiles] == ["Carol"]
        assert event_service.list_by_profile(ann.guid) == []

    def test_logs_append_in_sequence(self, event_service, sample_profile, sample_event):
        ann = sample_profile()
        event = sample_event(title="One", profiles=[ann])

        event_service.update(event.guid, updated_by_guid=ann.guid, title="Two")
        updated = event_service.update(event.guid, updated_by_guid=ann.guid, title="Three")

        assert [log.sequence for log in updated.update_logs] == [1, 2]
        assert updated.revision == 3

    def test_stale_revision_rejected(self, event_service, sample_profile, sample_event):
        ann = sample_profile()
        event = sample_event(profiles=[ann])
        event_service.update(event.guid, updated_by_guid=ann.guid, title="Sync Call")

        with pytest.raises(ConcurrentUpdateError) as exc_info:
            event_service.update(event.guid, updated_by_guid=ann.guid, expected_revision=1, title="Other")
        assert exc_info.value.current_revision == 2
        assert event_service.get_by_guid(event.guid).title == "Sync Call"

    def test_matching_revision_accepted(self, event_service, sample_profile, sample_event):
        ann = sample_profile()
        event = sample_event(profiles=[ann])
        updated = event_service.update(event.guid, updated_by_guid=ann.guid, expected_revision=1, title="Sync Call")
        assert updated.revision == 2

    def test_concurrent_commit_maps_to_conflict(self, event_service, sample_profile, sample_event,
                                                test_db_session, monkeypatch):
        ann = sample_profile()
        event = sample_event(profiles=[ann])

        def stale_commit():
            raise StaleDataError("UPDATE statement on table 'events' expected to update 1 row(s); 0 were matched.")

        monkeypatch.setattr(test_db_session, "commit", stale_commit)
        with pytest.raises(ConcurrentUpdateError):
            event_service.update(event.guid, updated_by_guid=ann.guid, title="Sync Call")
        monkeypatch.undo()

        assert event_service.get_by_guid(event.guid).title == "Sync"
        assert _log_count(test_db_session) == 0


class TestEventLogs:
    """Tests for EventService.get_logs."""

    def test_logs_most_recent_first(self, event_service, sample_profile, sample_event):
        ann = sample_profile(name="Ann")
        event = sample_event(title="Sync", profiles=[ann])
        event_service.update(event.guid, updated_by_guid=ann.guid, title="Sync Call")
        event_service.update(event.guid, updated_by_guid=ann.guid, description="Agenda")

        result = event_service.get_logs(event.guid)

        assert result["event_guid"] == event.guid
        assert result["event_title"] == "Sync Call"
        assert result["timezone"] == "UTC"
        assert [log["sequence"] for log in result["logs"]] == [2, 1]
        first = result["logs"][1]
        assert first["updated_by"] == {"guid": ann.guid, "name": "Ann"}
        assert first["changes"] == [{
            "field": "title",
            "field_label": "Event Title",
            "previous": "Sync",
            "updated": "Sync Call",
            "previous_display": "Sync",
            "updated_display": "Sync Call",
        }]

    def test_empty_logs(self, event_service, sample_event):
        event = sample_event()
        assert event_service.get_logs(event.guid)["logs"] == []

    def test_display_values_in_viewer_timezone(self, event_service, sample_profile, sample_event):
        ann = sample_profile(name="Ann")
        bob = sample_profile(name="Bob")
        start = datetime(2030, 6, 1, 10, 0, tzinfo=timezone.utc)
        event = sample_event(profiles=[ann], start=start, end=start + timedelta(hours=1))
        event_service.update(
            event.guid,
            updated_by_guid=ann.guid,
            profiles=[ann.guid, bob.guid],
            start_date_time=start + timedelta(minutes=30),
        )

        changes = event_service.get_logs(event.guid, viewer_timezone="America/New_York")["logs"][0]["changes"]

        assert [c["field"] for c in changes] == ["profiles", "start_date_time"]
        assert changes[0]["previous_display"] == "Ann"
        assert changes[0]["updated_display"] == "Ann, Bob"
        assert changes[1]["previous_display"] == "Jun 1, 2030 at 6:00 AM"
        assert changes[1]["updated_display"] == "Jun 1, 2030 at 6:30 AM"

    def test_invalid_viewer_timezone(self, event_service, sample_event):
        event = sample_event()
        with pytest.raises(ValidationError):
            event_service.get_logs(event.guid, viewer_timezone="Mars/Phobos")

    def test_unknown_event(self, event_service):
        with pytest.raises(NotFoundError):
            event_service.get_logs(GuidService.generate_guid("evt"))
