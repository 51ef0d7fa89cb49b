"""
Service layer for business logic.

This module exports all service classes for use in API endpoints.
"""

from eventcore.src.services.exceptions import (
    ServiceError,
    NotFoundError,
    ValidationError,
)
from eventcore.src.services.stores import EventStore, SeriesStore, TransactionManager
from eventcore.src.services.sql_stores import (
    SqlEventStore,
    SqlSeriesStore,
    SqlTransactionManager,
)
from eventcore.src.services.lifecycle_service import (
    LifecycleService,
    TransitionResult,
    TransitionErrorCode,
    LIFECYCLE_TRANSITIONS,
    get_valid_next_states,
    is_valid_transition,
    get_allowed_operations,
)
from eventcore.src.services.auto_transition_service import (
    AutoTransitionService,
    AutoTransitionScheduler,
    SweepStats,
)
from eventcore.src.services.series_validation_service import (
    SeriesValidationService,
    ValidationCode,
)
from eventcore.src.services.sequence_service import SequenceService
from eventcore.src.services.series_service import SeriesService, SeriesSaveResult

__all__ = [
    "ServiceError",
    "NotFoundError",
    "ValidationError",
    # Stores
    "EventStore",
    "SeriesStore",
    "TransactionManager",
    "SqlEventStore",
    "SqlSeriesStore",
    "SqlTransactionManager",
    # Lifecycle
    "LifecycleService",
    "TransitionResult",
    "TransitionErrorCode",
    "LIFECYCLE_TRANSITIONS",
    "get_valid_next_states",
    "is_valid_transition",
    "get_allowed_operations",
    "AutoTransitionService",
    "AutoTransitionScheduler",
    "SweepStats",
    # Series
    "SeriesValidationService",
    "ValidationCode",
    "SequenceService",
    "SeriesService",
    "SeriesSaveResult",
]
