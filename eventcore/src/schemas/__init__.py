"""
Pydantic schemas for API request/response validation.

This module exports all schema classes for use in API endpoints and services.
"""

from eventcore.src.schemas.lifecycle import (
    TransitionRequest,
    EventResponse,
    StateTransitionResponse,
    AllowedOperations,
    StatusInfoResponse,
    SweepResponse,
)
from eventcore.src.schemas.series import (
    SeriesCandidate,
    SeriesWindow,
    EventWindow,
    ValidationResult,
    BatchItemResult,
    BatchValidationResult,
    SeriesValidateRequest,
    BatchValidateRequest,
    SequenceRequest,
    SeriesSaveRequest,
    SequenceResponse,
    SeriesResponse,
    SeriesSaveResponse,
)

__all__ = [
    # Lifecycle
    "TransitionRequest",
    "EventResponse",
    "StateTransitionResponse",
    "AllowedOperations",
    "StatusInfoResponse",
    "SweepResponse",
    # Series
    "SeriesCandidate",
    "SeriesWindow",
    "EventWindow",
    "ValidationResult",
    "BatchItemResult",
    "BatchValidationResult",
    "SeriesValidateRequest",
    "BatchValidateRequest",
    "SequenceRequest",
    "SeriesSaveRequest",
    "SequenceResponse",
    "SeriesResponse",
    "SeriesSaveResponse",
]
