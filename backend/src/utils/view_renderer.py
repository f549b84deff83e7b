"""
HTML rendering for the browser client using Jinja2 templates.

View models are plain dataclasses built from ORM objects so they can be
tested without rendering any HTML. Every instant is rendered in the
viewer's timezone: the selected profile's zone, or the configured default
when no profile exists yet.
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from jinja2 import Environment, FileSystemLoader, TemplateNotFound

from backend.src.services.timezone_service import (
    COMMON_TIMEZONES,
    TimezoneService,
)
from backend.src.utils.logging_config import get_logger


logger = get_logger("views")

TEMPLATE_DIR = Path(__file__).parent.parent / "templates"


@dataclass
class ProfileOption:
    """An entry of the profile selector."""
    guid: str
    name: str
    timezone: str
    utc_offset: str
    selected: bool = False

    @property
    def label(self) -> str:
        return f"{self.name} ({self.timezone}, {self.utc_offset})"


@dataclass
class EventCard:
    """An event rendered for one viewer."""
    guid: str
    title: str
    description: str
    timezone: str
    start_display: str
    end_display: str
    start_input: str
    end_input: str
    duration_hours: float
    is_ongoing: bool
    revision: int
    update_count: int
    created_by_name: str
    profile_guids: List[str] = field(default_factory=list)
    profile_names: List[str] = field(default_factory=list)

    @property
    def profiles_display(self) -> str:
        return ", ".join(self.profile_names)

    def profile_choices(self, options: List[ProfileOption]) -> List[Tuple[str, str, bool]]:
        """
        (guid, name, assigned) rows for the edit form's profile picker.

        Assigned profiles come first in assignment order, inactive ones
        included, followed by the remaining active profiles by name.
        """
        choices = [
            (guid, name, True) for guid, name in zip(self.profile_guids, self.profile_names)
        ]
        choices.extend(
            (option.guid, option.name, False)
            for option in options
            if option.guid not in self.profile_guids
        )
        return choices


@dataclass
class PageContext:
    """Everything the index page needs."""
    profiles: List[ProfileOption]
    events: List[EventCard]
    viewer_timezone: str
    selected: Optional[ProfileOption] = None
    timezones: List[str] = field(default_factory=lambda: list(COMMON_TIMEZONES))
    default_start: str = ""
    default_end: str = ""

    @property
    def selected_guid(self) -> Optional[str]:
        return self.selected.guid if self.selected else None


@dataclass
class HistoryContext:
    """Audit trail page of a single event."""
    event_guid: str
    event_title: str
    viewer_timezone: str
    logs: List[Dict[str, Any]]
    selected_guid: Optional[str] = None


def select_profile_guid(profiles: Sequence, requested: Optional[str] = None) -> Optional[str]:
    """The requested profile if it is listed, else the first one (None when empty)."""
    if any(profile.guid == requested for profile in profiles):
        return requested
    return profiles[0].guid if profiles else None


def build_profile_options(
    profiles: Sequence,
    selected_guid: Optional[str] = None,
    at: Optional[datetime] = None
) -> List[ProfileOption]:
    """
    Build selector entries; the first profile is selected when
    ``selected_guid`` is missing or unknown.
    """
    selected_guid = select_profile_guid(profiles, selected_guid)

    return [
        ProfileOption(
            guid=profile.guid,
            name=profile.name,
            timezone=profile.timezone,
            utc_offset=TimezoneService.current_offset(profile.timezone, at),
            selected=profile.guid == selected_guid,
        )
        for profile in profiles
    ]


def build_event_card(event, viewer_timezone: str, now: Optional[datetime] = None) -> EventCard:
    """Render one event's instants in ``viewer_timezone``."""
    return EventCard(
        guid=event.guid,
        title=event.title,
        description=event.description or "",
        timezone=event.timezone,
        start_display=TimezoneService.format_for_display(event.start_date_time, viewer_timezone),
        end_display=TimezoneService.format_for_display(event.end_date_time, viewer_timezone),
        start_input=TimezoneService.format_for_input(event.start_date_time, viewer_timezone),
        end_input=TimezoneService.format_for_input(event.end_date_time, viewer_timezone),
        duration_hours=event.duration_hours,
        is_ongoing=event.is_ongoing(now),
        revision=event.revision,
        update_count=len(event.update_logs),
        created_by_name=event.created_by.name,
        profile_guids=list(event.profile_guids),
        profile_names=[profile.name for profile in event.profiles],
    )


def build_page_context(
    profiles: Sequence,
    events: Sequence,
    selected_guid: Optional[str] = None,
    default_timezone: str = "UTC",
    now: Optional[datetime] = None
) -> PageContext:
    """
    Build the index page context.

    Args:
        profiles: Active profiles, in selector order
        events: Events to list (already filtered for the viewer)
        selected_guid: Requested viewer profile
        default_timezone: Viewer zone when there are no profiles
        now: Reference instant for offsets and the ongoing badge
    """
    options = build_profile_options(profiles, selected_guid, now)
    selected = next((option for option in options if option.selected), None)
    viewer_timezone = selected.timezone if selected else default_timezone

    return PageContext(
        profiles=options,
        events=[build_event_card(event, viewer_timezone, now) for event in events],
        viewer_timezone=viewer_timezone,
        selected=selected,
        default_start=TimezoneService.future_in_timezone(viewer_timezone, hours=1),
        default_end=TimezoneService.future_in_timezone(viewer_timezone, hours=2),
    )


class ViewRenderer:
    """
    Renders the client pages with Jinja2.

    Usage:
        >>> renderer = ViewRenderer()
        >>> html = renderer.render_page(context)
    """

    def __init__(self, template_dir: Optional[Path] = None):
        """
        Initialize the ViewRenderer.

        Args:
            template_dir: Path to template directory. If None, uses the
                templates/ directory next to the backend sources.
        """
        template_dir = Path(template_dir or TEMPLATE_DIR)
        if not template_dir.exists():
            raise FileNotFoundError(f"Template directory not found: {template_dir}")

        self.env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=True,
            trim_blocks=True,
            lstrip_blocks=True
        )

    def render(self, template_name: str, **context: Any) -> str:
        """
        Render a template by name.

        Raises:
            TemplateNotFound: If the template file doesn't exist
        """
        try:
            template = self.env.get_template(template_name)
        except TemplateNotFound:
            logger.error(f"Template '{template_name}' not found")
            raise
        return template.render(**context)

    def render_page(self, context: PageContext) -> str:
        return self.render("index.html.j2", page=context, selected_guid=context.selected_guid)

    def render_history(self, context: HistoryContext) -> str:
        return self.render("event_history.html.j2", history=context, selected_guid=context.selected_guid)
