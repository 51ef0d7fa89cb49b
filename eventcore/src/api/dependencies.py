"""
Shared FastAPI dependencies for the scheduling services.

Services are built per request over one database session, so the stores and
the transaction manager of a request share that session. Tests override
get_clock and get_app_settings to pin time and policies.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from eventcore.src.config.settings import AppSettings, get_settings
from eventcore.src.db.database import get_db
from eventcore.src.services.lifecycle_service import LifecycleService
from eventcore.src.services.sequence_service import SequenceService
from eventcore.src.services.series_service import SeriesService
from eventcore.src.services.series_validation_service import SeriesValidationService
from eventcore.src.services.sql_stores import (
    SqlEventStore,
    SqlSeriesStore,
    SqlTransactionManager,
)
from eventcore.src.utils.clock import Clock, SystemClock


def get_clock() -> Clock:
    """Wall clock for request handling."""
    return SystemClock()


def get_app_settings() -> AppSettings:
    """Cached application settings."""
    return get_settings()


def get_lifecycle_service(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> LifecycleService:
    """Create LifecycleService instance with database session."""
    return LifecycleService(SqlEventStore(db), SqlTransactionManager(db), clock)


def get_series_validation_service(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    settings: AppSettings = Depends(get_app_settings),
) -> SeriesValidationService:
    """Create SeriesValidationService instance with database session."""
    return SeriesValidationService(SqlEventStore(db), SqlSeriesStore(db), clock, settings)


def get_sequence_service(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> SequenceService:
    """Create SequenceService instance with database session."""
    return SequenceService(SqlSeriesStore(db), clock)


def get_series_service(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    settings: AppSettings = Depends(get_app_settings),
) -> SeriesService:
    """Create SeriesService instance with database session."""
    return SeriesService(
        SqlEventStore(db),
        SqlSeriesStore(db),
        SqlTransactionManager(db),
        clock,
        settings,
    )
