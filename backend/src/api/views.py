"""
Server-rendered browser client.

Routes:
- GET /                      Profile selector, events and forms
- GET /events/{guid}/history Audit trail of an event in the viewer's timezone

Forms on these pages call the JSON API with fetch(); this module only reads.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session

from backend.src.config.settings import get_settings
from backend.src.db.database import get_db
from backend.src.services.event_service import EventService
from backend.src.services.exceptions import NotFoundError
from backend.src.services.profile_service import ProfileService
from backend.src.utils.logging_config import get_logger
from backend.src.utils.view_renderer import (
    HistoryContext,
    ViewRenderer,
    build_page_context,
    select_profile_guid,
)


logger = get_logger("views")

router = APIRouter(tags=["Client"], include_in_schema=False)

_renderer: Optional[ViewRenderer] = None


def get_renderer() -> ViewRenderer:
    """Shared ViewRenderer (templates are loaded once)."""
    global _renderer
    if _renderer is None:
        _renderer = ViewRenderer()
    return _renderer


@router.get("/", response_class=HTMLResponse)
async def index(
    profile: Optional[str] = Query(None, description="Viewer profile GUID"),
    db: Session = Depends(get_db),
    renderer: ViewRenderer = Depends(get_renderer),
) -> HTMLResponse:
    """Index page for the selected (or first active) profile."""
    profiles = ProfileService(db).list_active()
    event_service = EventService(db)

    selected_guid = select_profile_guid(profiles, profile)
    if selected_guid is not None:
        events = event_service.list_by_profile(selected_guid)
    else:
        events = event_service.list_all()

    context = build_page_context(
        profiles,
        events=events,
        selected_guid=selected_guid,
        default_timezone=get_settings().default_timezone,
    )

    logger.info(
        f"Rendered index for {context.selected_guid or 'no profile'} "
        f"({len(context.events)} events, {context.viewer_timezone})"
    )
    return HTMLResponse(renderer.render_page(context))


@router.get("/events/{guid}/history", response_class=HTMLResponse)
async def event_history(
    guid: str,
    profile: Optional[str] = Query(None, description="Viewer profile GUID"),
    db: Session = Depends(get_db),
    renderer: ViewRenderer = Depends(get_renderer),
) -> HTMLResponse:
    """Audit trail page, most recent entry first."""
    viewer_timezone = get_settings().default_timezone
    if profile:
        try:
            viewer_timezone = ProfileService(db).get_by_guid(profile).timezone
        except NotFoundError:
            logger.debug(f"Unknown viewer profile {profile}; using {viewer_timezone}")

    try:
        logs = EventService(db).get_logs(guid, viewer_timezone=viewer_timezone)
    except NotFoundError:
        context = HistoryContext(
            event_guid=guid,
            event_title="Event not found",
            viewer_timezone=viewer_timezone,
            logs=[],
            selected_guid=profile,
        )
        return HTMLResponse(renderer.render_history(context), status_code=status.HTTP_404_NOT_FOUND)

    context = HistoryContext(
        event_guid=logs["event_guid"],
        event_title=logs["event_title"],
        viewer_timezone=viewer_timezone,
        logs=logs["logs"],
        selected_guid=profile,
    )
    return HTMLResponse(renderer.render_history(context))
