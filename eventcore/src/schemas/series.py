"""
Pydantic schemas for series scheduling request/response validation.

Provides data validation and serialization for:
- Candidate series windows (raw, possibly unparseable dates)
- Sibling and parent windows used by the validator
- Validation and batch validation results
- Series create/update requests and responses

Design:
- Candidate dates are accepted as strings or datetimes; parsing failures are
  reported as validation errors, not request errors
- ValidationResult carries error and warning codes plus human-readable messages
"""

from datetime import datetime
from typing import Optional, List, Union

from pydantic import BaseModel, Field, field_serializer


def _serialize_utc(v: Optional[datetime]) -> Optional[str]:
    return v.isoformat() + "Z" if v else None


# ============================================================================
# Window Schemas
# ============================================================================


class SeriesCandidate(BaseModel):
    """A proposed series window, not yet validated."""

    name: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    start_date: Union[datetime, str]
    end_date: Union[datetime, str]

    model_config = {
        "json_schema_extra": {
            "example": {
                "name": "Quarter Finals",
                "start_date": "2026-11-02T18:00:00Z",
                "end_date": "2026-11-02T22:00:00Z",
            }
        }
    }


class SeriesWindow(BaseModel):
    """A persisted sibling series as seen by the validator and sequencer."""

    guid: Optional[str] = None
    name: str = ""
    start_date: datetime
    end_date: datetime

    model_config = {"from_attributes": True}


class EventWindow(BaseModel):
    """The parent event window."""

    start_date: datetime
    end_date: datetime

    model_config = {"from_attributes": True}


# ============================================================================
# Result Schemas
# ============================================================================


class ValidationResult(BaseModel):
    """
    Outcome of validating one candidate series.

    errors block persistence; warnings do not. errors and warnings hold codes,
    the *_messages lists hold the matching human-readable texts in the same
    order. When auto_extend_main_event is set, the new_main_event_* fields
    hold the widened parent bounds.
    """

    valid: bool = True
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    error_messages: List[str] = Field(default_factory=list)
    warning_messages: List[str] = Field(default_factory=list)
    auto_extend_main_event: bool = False
    new_main_event_start_date: Optional[datetime] = None
    new_main_event_end_date: Optional[datetime] = None

    @field_serializer("new_main_event_start_date", "new_main_event_end_date")
    @classmethod
    def serialize_datetime_utc(cls, v: Optional[datetime]) -> Optional[str]:
        return _serialize_utc(v)


class BatchItemResult(BaseModel):
    """Validation result for one candidate of a batch."""

    index: int
    name: Optional[str] = None
    result: ValidationResult


class BatchValidationResult(BaseModel):
    """Outcome of validating a batch of candidates in order."""

    valid: bool
    items: List[BatchItemResult] = Field(default_factory=list)
    overall_errors: List[str] = Field(default_factory=list)
    overall_warnings: List[str] = Field(default_factory=list)
    new_main_event_start_date: Optional[datetime] = None
    new_main_event_end_date: Optional[datetime] = None

    @field_serializer("new_main_event_start_date", "new_main_event_end_date")
    @classmethod
    def serialize_datetime_utc(cls, v: Optional[datetime]) -> Optional[str]:
        return _serialize_utc(v)


# ============================================================================
# Request Schemas
# ============================================================================


class SeriesValidateRequest(BaseModel):
    """Validate a candidate against its parent event and siblings."""

    candidate: SeriesCandidate
    is_edit: bool = False
    series_guid: Optional[str] = Field(
        default=None,
        description="GUID of the series being edited; excluded from siblings",
    )


class BatchValidateRequest(BaseModel):
    """Validate several candidates as one upload."""

    candidates: List[SeriesCandidate] = Field(..., min_length=1)


class SequenceRequest(BaseModel):
    """Compute the sequence number a candidate would get."""

    candidate: SeriesCandidate
    series_guid: Optional[str] = None


class SeriesSaveRequest(BaseModel):
    """Create or update a series."""

    candidate: SeriesCandidate
    lifecycle_status: Optional[str] = Field(
        default=None,
        description="draft, scheduled or active (defaults to draft on create)",
    )
    accept_extension: bool = Field(
        default=False,
        description="Explicit acceptance of widening the parent event window",
    )
    changed_by: Optional[str] = Field(default=None, max_length=255)


class EventWindowValidateRequest(BaseModel):
    """Validate the window of a top-level event."""

    start_date: Union[datetime, str]
    end_date: Union[datetime, str]
    is_edit: bool = False


class CheckinWindowValidateRequest(BaseModel):
    """Validate a check-in window against its event window."""

    checkin_start: Union[datetime, str]
    checkin_end: Union[datetime, str]
    event_start: datetime
    event_end: datetime


# ============================================================================
# Response Schemas
# ============================================================================


class SequenceResponse(BaseModel):
    """Computed sequence number."""

    sequence_number: int = Field(..., ge=1)


class SeriesResponse(BaseModel):
    """Persisted series."""

    guid: str = Field(..., description="Series GUID (ser_xxx)")
    name: str
    description: Optional[str] = None
    start_date: datetime
    end_date: datetime
    sequence_number: Optional[int] = None
    lifecycle_status: str

    @field_serializer("start_date", "end_date")
    @classmethod
    def serialize_datetime_utc(cls, v: datetime) -> Optional[str]:
        return _serialize_utc(v)

    model_config = {"from_attributes": True}


class SeriesSaveResponse(BaseModel):
    """Outcome of a create/update attempt."""

    saved: bool
    series: Optional[SeriesResponse] = None
    validation: ValidationResult
    sequence_number: Optional[int] = None
    main_event_extended: bool = False
    requires_confirmation: bool = False
