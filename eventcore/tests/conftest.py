"""
Pytest configuration and fixtures for eventcore tests.

Provides shared fixtures for:
- Test database sessions
- A frozen clock and explicit settings
- Stores and services wired over the test session
- Sample data factories
- FastAPI test client
"""

import os
import pytest
from datetime import datetime, timedelta
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment variables before importing app modules
os.environ['EVENTCORE_DB_URL'] = 'sqlite:///:memory:'
os.environ['EVENTCORE_SWEEP_ENABLED'] = 'false'

from eventcore.src.config.settings import AppSettings
from eventcore.src.models import Base, Event, EventSeries, LifecycleStatus, SeriesStatus
from eventcore.src.services.auto_transition_service import AutoTransitionService
from eventcore.src.services.lifecycle_service import LifecycleService
from eventcore.src.services.sequence_service import SequenceService
from eventcore.src.services.series_service import SeriesService
from eventcore.src.services.series_validation_service import SeriesValidationService
from eventcore.src.services.sql_stores import (
    SqlEventStore,
    SqlSeriesStore,
    SqlTransactionManager,
)
from eventcore.src.utils.clock import FixedClock


# Instant every clock-dependent test starts from
NOW = datetime(2026, 11, 1, 12, 0, 0)


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture(scope='function')
def test_db_engine():
    """Create an in-memory SQLite database engine for testing."""
    from sqlalchemy import event

    engine = create_engine(
        'sqlite:///:memory:',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )

    # Enable foreign key constraints for SQLite
    def _fk_pragma_on_connect(dbapi_con, con_record):
        dbapi_con.execute('pragma foreign_keys=ON')

    event.listen(engine, 'connect', _fk_pragma_on_connect)

    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope='function')
def test_session_factory(test_db_engine):
    """Session factory bound to the test engine."""
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=test_db_engine
    )


@pytest.fixture(scope='function')
def test_db_session(test_session_factory):
    """Create a test database session."""
    session = test_session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# ============================================================================
# Clock and Settings Fixtures
# ============================================================================

@pytest.fixture
def fixed_clock():
    """Clock frozen at NOW."""
    return FixedClock(NOW)


@pytest.fixture
def test_settings():
    """Settings with defaults and the background sweep disabled."""
    return AppSettings(
        sweep_enabled=False,
        sweep_interval_seconds=120,
        pre_event_lead_hours=24,
        series_overlap_policy="advisory",
        past_start_grace_seconds=60,
    )


@pytest.fixture
def strict_settings():
    """Settings rejecting overlapping series."""
    return AppSettings(
        sweep_enabled=False,
        series_overlap_policy="strict",
    )


# ============================================================================
# Store and Service Fixtures
# ============================================================================

@pytest.fixture
def event_store(test_db_session):
    return SqlEventStore(test_db_session)


@pytest.fixture
def series_store(test_db_session):
    return SqlSeriesStore(test_db_session)


@pytest.fixture
def tx(test_db_session):
    return SqlTransactionManager(test_db_session)


@pytest.fixture
def lifecycle_service(event_store, tx, fixed_clock):
    """LifecycleService over the test session."""
    return LifecycleService(event_store, tx, fixed_clock)


@pytest.fixture
def auto_transition_service(event_store, lifecycle_service, fixed_clock, test_settings):
    """AutoTransitionService over the test session."""
    return AutoTransitionService(event_store, lifecycle_service, fixed_clock, test_settings)


@pytest.fixture
def validation_service(event_store, series_store, fixed_clock, test_settings):
    """SeriesValidationService with advisory overlap policy."""
    return SeriesValidationService(event_store, series_store, fixed_clock, test_settings)


@pytest.fixture
def sequence_service(series_store, fixed_clock):
    return SequenceService(series_store, fixed_clock)


@pytest.fixture
def series_service(event_store, series_store, tx, fixed_clock, test_settings):
    """SeriesService over the test session."""
    return SeriesService(event_store, series_store, tx, fixed_clock, test_settings)


# ============================================================================
# Sample Data Factories
# ============================================================================

@pytest.fixture
def sample_event(test_db_session):
    """Factory for creating sample Event models in the database."""
    def _create(
        name='Regional Championship',
        start_date=None,
        end_date=None,
        lifecycle_status=LifecycleStatus.DRAFT,
        auto_transition_enabled=True,
    ):
        if start_date is None:
            start_date = NOW + timedelta(days=1)
        if end_date is None:
            end_date = start_date + timedelta(days=2)
        status = lifecycle_status.value if isinstance(lifecycle_status, LifecycleStatus) else lifecycle_status

        event = Event(
            name=name,
            start_date=start_date,
            end_date=end_date,
            lifecycle_status=status,
            auto_transition_enabled=auto_transition_enabled,
        )
        test_db_session.add(event)
        test_db_session.commit()
        test_db_session.refresh(event)
        return event
    return _create


@pytest.fixture
def sample_series(test_db_session):
    """Factory for creating sample EventSeries models in the database."""
    def _create(
        event,
        name='Heats',
        start_date=None,
        end_date=None,
        sequence_number=None,
        lifecycle_status=SeriesStatus.DRAFT,
    ):
        if start_date is None:
            start_date = event.start_date
        if end_date is None:
            end_date = start_date + timedelta(hours=4)

        series = EventSeries(
            main_event_id=event.id,
            name=name,
            start_date=start_date,
            end_date=end_date,
            sequence_number=sequence_number,
            lifecycle_status=lifecycle_status.value,
        )
        test_db_session.add(series)
        test_db_session.commit()
        test_db_session.refresh(series)
        return series
    return _create


# ============================================================================
# API Fixtures
# ============================================================================

@pytest.fixture
def test_client(test_db_session, fixed_clock, test_settings):
    """Create a test client for FastAPI application."""
    from fastapi.testclient import TestClient
    from eventcore.src.main import app
    from eventcore.src.db.database import get_db
    from eventcore.src.api.dependencies import get_app_settings, get_clock

    # Override dependencies
    def get_test_db():
        try:
            yield test_db_session
        finally:
            pass

    app.dependency_overrides[get_db] = get_test_db
    app.dependency_overrides[get_clock] = lambda: fixed_clock
    app.dependency_overrides[get_app_settings] = lambda: test_settings

    with TestClient(app) as client:
        yield client

    # Clear overrides
    app.dependency_overrides.clear()
