"""
Unit tests for the browser client view models and ViewRenderer.

Tests cover:
- Viewer profile selection and selector entries
- Event cards rendered in the viewer's timezone
- Page context fallbacks when no profile exists
- Template rendering and HTML escaping
"""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from jinja2 import TemplateNotFound

from backend.src.utils.view_renderer import (
    HistoryContext,
    ViewRenderer,
    build_event_card,
    build_page_context,
    build_profile_options,
    select_profile_guid,
)


JAN_15_NOON_UTC = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


def _profile(guid, name, tz="UTC"):
    return SimpleNamespace(guid=guid, name=name, timezone=tz)


@pytest.fixture
def renderer():
    return ViewRenderer()


class TestProfileSelection:
    """Tests for select_profile_guid and build_profile_options."""

    def test_requested_profile_selected(self):
        profiles = [_profile("pro_a", "Ann"), _profile("pro_b", "Bob")]
        assert select_profile_guid(profiles, "pro_b") == "pro_b"

    def test_unknown_request_falls_back_to_first(self):
        profiles = [_profile("pro_a", "Ann"), _profile("pro_b", "Bob")]
        assert select_profile_guid(profiles, "pro_zzz") == "pro_a"
        assert select_profile_guid(profiles) == "pro_a"

    def test_no_profiles(self):
        assert select_profile_guid([], "pro_a") is None

    def test_options_carry_offsets(self):
        profiles = [_profile("pro_a", "Ann", "Asia/Kolkata"), _profile("pro_b", "Bob", "America/New_York")]
        options = build_profile_options(profiles, "pro_b", at=JAN_15_NOON_UTC)

        assert [option.selected for option in options] == [False, True]
        assert options[0].label == "Ann (Asia/Kolkata, UTC+5:30)"
        assert options[1].utc_offset == "UTC-5"


class TestBuildEventCard:
    """Tests for build_event_card."""

    def test_card_in_viewer_timezone(self, sample_profile, sample_event):
        ann = sample_profile(name="Ann")
        bob = sample_profile(name="Bob")
        start = datetime(2030, 6, 1, 10, 0, tzinfo=timezone.utc)
        event = sample_event(title="Sync", profiles=[ann, bob], start=start, end=start + timedelta(hours=2))

        card = build_event_card(event, "Asia/Tokyo", now=start - timedelta(days=1))

        assert card.start_display == "Jun 1, 2030 at 7:00 PM"
        assert card.end_display == "Jun 1, 2030 at 9:00 PM"
        assert card.start_input == "2030-06-01T19:00"
        assert card.duration_hours == 2.0
        assert card.is_ongoing is False
        assert card.profiles_display == "Ann, Bob"
        assert card.profile_guids == [ann.guid, bob.guid]
        assert card.created_by_name == "Ann"
        assert card.revision == 1

    def test_ongoing_card(self, sample_event):
        now = datetime.now(timezone.utc)
        event = sample_event(start=now - timedelta(minutes=10), end=now + timedelta(minutes=50))
        assert build_event_card(event, "UTC", now=now).is_ongoing is True

    def test_profile_choices_keep_assignment_order(self, sample_profile, sample_event, profile_service):
        ann = sample_profile(name="Ann")
        bob = sample_profile(name="Bob")
        cara = sample_profile(name="Cara")
        dan = sample_profile(name="Dan")
        event = sample_event(profiles=[bob, ann, cara])
        profile_service.deactivate(cara.guid)

        card = build_event_card(event, "UTC")
        options = build_profile_options(profile_service.list_active())

        assert card.profile_choices(options) == [
            (bob.guid, "Bob", True),
            (ann.guid, "Ann", True),
            (cara.guid, "Cara", True),
            (dan.guid, "Dan", False),
        ]


class TestBuildPageContext:
    """Tests for build_page_context."""

    def test_viewer_timezone_from_selected_profile(self):
        profiles = [_profile("pro_a", "Ann", "UTC"), _profile("pro_b", "Bob", "Europe/Paris")]
        context = build_page_context(profiles, events=[], selected_guid="pro_b", now=JAN_15_NOON_UTC)

        assert context.viewer_timezone == "Europe/Paris"
        assert context.selected_guid == "pro_b"
        assert context.selected.utc_offset == "UTC+1"
        assert context.default_start
        assert context.default_end > context.default_start

    def test_no_profiles_uses_default_timezone(self):
        context = build_page_context([], events=[], default_timezone="Asia/Tokyo")

        assert context.selected is None
        assert context.selected_guid is None
        assert context.viewer_timezone == "Asia/Tokyo"
        assert "UTC" in context.timezones


class TestViewRenderer:
    """Tests for ViewRenderer."""

    def test_missing_template_dir(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ViewRenderer(template_dir=tmp_path / "missing")

    def test_missing_template(self, renderer):
        with pytest.raises(TemplateNotFound):
            renderer.render("nope.html.j2")

    def test_render_page(self, renderer, sample_profile, sample_event):
        ann = sample_profile(name="Ann", timezone="America/New_York")
        event = sample_event(title="Sync", profiles=[ann])
        context = build_page_context([ann], events=[event], selected_guid=ann.guid)

        html = renderer.render_page(context)

        assert "Events for Ann" in html
        assert "Sync" in html
        assert f"/events/{event.guid}/history?profile={ann.guid}" in html
        assert 'data-revision="1"' in html

    def test_render_page_without_profiles(self, renderer):
        html = renderer.render_page(build_page_context([], events=[]))
        assert "All events" in html

    def test_render_escapes_user_content(self, renderer, sample_profile, sample_event):
        ann = sample_profile(name="Ann")
        event = sample_event(title="<script>alert(1)</script>", profiles=[ann])

        html = renderer.render_page(build_page_context([ann], events=[event]))

        assert "<script>alert(1)</script>" not in html
        assert "&lt;script&gt;alert(1)&lt;/script&gt;" in html

    def test_render_history(self, renderer):
        context = HistoryContext(
            event_guid="evt_x",
            event_title="Sync Call",
            viewer_timezone="Europe/Paris",
            logs=[{
                "guid": "log_x",
                "sequence": 1,
                "updated_by": {"guid": "pro_a", "name": "Ann"},
                "timestamp": JAN_15_NOON_UTC,
                "timestamp_display": "Jan 15, 2025 at 1:00 PM",
                "changes": [{
                    "field": "title",
                    "field_label": "Event Title",
                    "previous": "Sync",
                    "updated": "Sync Call",
                    "previous_display": "Sync",
                    "updated_display": "Sync Call",
                }],
            }],
            selected_guid="pro_a",
        )

        html = renderer.render_history(context)

        assert "Sync Call" in html
        assert "Event Title" in html
        assert "Jan 15, 2025 at 1:00 PM" in html
        assert "Times shown in Europe/Paris" in html
        assert 'href="/?profile=pro_a"' in html

    def test_render_empty_history(self, renderer):
        context = HistoryContext(event_guid="evt_x", event_title="Sync", viewer_timezone="UTC", logs=[])
        assert "No updates recorded for this event." in renderer.render_history(context)
