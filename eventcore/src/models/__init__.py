"""
SQLAlchemy models for the eventcore application.

This module provides the declarative base class and imports all models
to ensure they are registered with SQLAlchemy's metadata.
"""

from sqlalchemy.orm import declarative_base

# All models inherit from this Base class
Base = declarative_base()


# Import all models here so they are registered with Base.metadata
from eventcore.src.models.event import Event, LifecycleStatus
from eventcore.src.models.event_series import EventSeries, SeriesStatus
from eventcore.src.models.state_transition import EventStateTransition

__all__ = [
    "Base",
    "Event",
    "LifecycleStatus",
    "EventSeries",
    "SeriesStatus",
    "EventStateTransition",
]
