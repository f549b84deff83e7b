"""
Shared pytest fixtures.

- test_db_session: fresh in-memory SQLite database per test (foreign keys on)
- profile_service / event_service bound to that session
- sample_profile / sample_event factories and future_range for valid times
- test_client: FastAPI TestClient whose get_db yields the test session
"""

import os
from datetime import datetime, timedelta, timezone

import pytest

# Must be set before the app modules read their settings
os.environ['EVSCHED_DB_URL'] = 'sqlite:///:memory:'
os.environ['EVSCHED_ENV'] = 'test'
os.environ.setdefault('EVSCHED_LOG_LEVEL', 'WARNING')

from sqlalchemy.orm import Session  # noqa: E402

from backend.src.db.database import create_db_engine  # noqa: E402
from backend.src.models import Base, Profile  # noqa: E402
from backend.src.services.event_service import EventService  # noqa: E402
from backend.src.services.profile_service import ProfileService  # noqa: E402


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture(scope='function')
def test_db_engine():
    """In-memory SQLite engine with the full schema."""
    engine = create_db_engine('sqlite:///:memory:')
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope='function')
def test_db_session(test_db_engine):
    session = Session(bind=test_db_engine, autoflush=False)
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# ============================================================================
# Service Fixtures
# ============================================================================

@pytest.fixture
def profile_service(test_db_session):
    """ProfileService bound to the test session."""
    return ProfileService(test_db_session)


@pytest.fixture
def event_service(test_db_session):
    """EventService bound to the test session."""
    return EventService(test_db_session)


# ============================================================================
# Sample Data Factories
# ============================================================================

@pytest.fixture
def future_range():
    """Factory for (start, end) instants relative to now."""
    def _create(start_in_hours=24, duration_hours=1):
        start = datetime.now(timezone.utc).replace(microsecond=0) + timedelta(hours=start_in_hours)
        return start, start + timedelta(hours=duration_hours)
    return _create


@pytest.fixture
def sample_profile(test_db_session):
    """Factory for creating Profile models in the database."""
    def _create(name='Ann', timezone='America/New_York', is_active=True):
        profile = Profile(name=name, timezone=timezone, is_active=is_active)
        test_db_session.add(profile)
        test_db_session.commit()
        test_db_session.refresh(profile)
        return profile
    return _create


@pytest.fixture
def sample_event(event_service, sample_profile, future_range):
    """Factory for creating events through EventService."""
    def _create(
        title='Sync',
        profiles=None,
        created_by=None,
        timezone='America/New_York',
        start=None,
        end=None,
        description=None,
    ):
        if profiles is None:
            profiles = [created_by or sample_profile()]
        created_by = created_by or profiles[0]
        if start is None or end is None:
            start, end = future_range()
        return event_service.create(
            title=title,
            profile_guids=[profile.guid for profile in profiles],
            timezone=timezone,
            start_date_time=start,
            end_date_time=end,
            created_by_guid=created_by.guid,
            description=description,
        )
    return _create


# ============================================================================
# API Client
# ============================================================================

@pytest.fixture
def test_client(test_db_session):
    """Create a test client for FastAPI application."""
    from fastapi.testclient import TestClient
    from backend.src.main import app
    from backend.src.db.database import get_db

    def get_test_db():
        try:
            yield test_db_session
        finally:
            pass

    app.dependency_overrides[get_db] = get_test_db

    with TestClient(app) as client:
        yield client

    # Clear overrides
    app.dependency_overrides.clear()
