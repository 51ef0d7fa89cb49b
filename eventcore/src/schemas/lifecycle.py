"""
Pydantic schemas for event lifecycle API request/response validation.

Provides data validation and serialization for:
- Transition requests and event responses
- Transition history entries
- Status capability lookups
- Sweep results

Design:
- GUIDs are exposed via guid property, never internal IDs
- Datetimes are naive UTC in storage and serialized with an explicit "Z"
"""

from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, Field, field_serializer


def _serialize_utc(v: Optional[datetime]) -> Optional[str]:
    return v.isoformat() + "Z" if v else None


# ============================================================================
# Request Schemas
# ============================================================================


class TransitionRequest(BaseModel):
    """Request body for a manual lifecycle transition."""

    target_status: str = Field(..., description="Requested lifecycle status")
    reason: Optional[str] = Field(default=None, max_length=500)
    changed_by: Optional[str] = Field(
        default=None,
        max_length=255,
        description="Opaque identity of the caller, recorded in history",
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "target_status": "published",
                "reason": "Ready for staff",
                "changed_by": "usr_01hgw2bbg0000000000000001",
            }
        }
    }


class LifecycleOperationRequest(BaseModel):
    """Request body for a named lifecycle operation (publish, start, end, close, archive)."""

    changed_by: Optional[str] = Field(default=None, max_length=255)


# ============================================================================
# Response Schemas
# ============================================================================


class EventResponse(BaseModel):
    """Event with its lifecycle fields."""

    guid: str = Field(..., description="Event GUID (evt_xxx)")
    name: str
    start_date: datetime
    end_date: datetime
    lifecycle_status: str
    auto_transition_enabled: bool
    status_changed_at: Optional[datetime] = None
    status_changed_by: Optional[str] = None

    @field_serializer("start_date", "end_date", "status_changed_at")
    @classmethod
    def serialize_datetime_utc(cls, v: Optional[datetime]) -> Optional[str]:
        """Serialize datetime as ISO 8601 with explicit UTC timezone."""
        return _serialize_utc(v)

    model_config = {"from_attributes": True}


class StateTransitionResponse(BaseModel):
    """One entry of an event's transition history."""

    from_status: Optional[str]
    to_status: str
    reason: Optional[str]
    changed_by: Optional[str]
    automated: bool
    changed_at: datetime

    @field_serializer("changed_at")
    @classmethod
    def serialize_datetime_utc(cls, v: datetime) -> Optional[str]:
        return _serialize_utc(v)

    model_config = {"from_attributes": True}


class AllowedOperations(BaseModel):
    """Capabilities granted by a lifecycle status."""

    can_edit: bool
    can_delete: bool
    can_add_series: bool
    can_check_in: bool
    can_view_reports: bool


class StatusInfoResponse(BaseModel):
    """Edges and capabilities for a lifecycle status."""

    status: str
    valid_next_states: List[str]
    is_terminal: bool
    allowed_operations: AllowedOperations

    model_config = {
        "json_schema_extra": {
            "example": {
                "status": "pre_event",
                "valid_next_states": ["live", "published"],
                "is_terminal": False,
                "allowed_operations": {
                    "can_edit": True,
                    "can_delete": False,
                    "can_add_series": True,
                    "can_check_in": False,
                    "can_view_reports": False,
                },
            }
        }
    }


class SweepResponse(BaseModel):
    """Aggregate counts of one auto-transition pass."""

    to_pre_event: int = Field(..., ge=0)
    to_live: int = Field(..., ge=0)
    to_closing: int = Field(..., ge=0)
    failed: int = Field(0, ge=0)
    skipped: bool = Field(
        False,
        description="True when another pass was already running and this one did nothing",
    )
