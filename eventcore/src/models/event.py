"""
Event model for time-bounded events with a publication lifecycle.

Events own a start/end window and a lifecycle status that only moves along
the edges of the lifecycle state machine. Series are nested under an event.

Design Rationale:
- lifecycle_status stores the enum value string, validated by the service layer
- status_changed_at/by are audit fields written on every transition
- end_date is not constrained to follow start_date at this layer
- auto_transition_enabled opts the event into the time-driven sweep
"""

import enum
from datetime import datetime

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Index
from sqlalchemy.orm import relationship

from eventcore.src.models import Base
from eventcore.src.models.mixins import GuidMixin


class LifecycleStatus(enum.Enum):
    """Event publication lifecycle status."""
    DRAFT = "draft"          # Being created, not visible to staff
    PUBLISHED = "published"  # Visible, can be edited
    PRE_EVENT = "pre_event"  # Inside the lead window before start
    LIVE = "live"            # Event is happening now
    CLOSING = "closing"      # Event ended, wrapping up
    CLOSED = "closed"        # Event complete, no more changes
    ARCHIVED = "archived"    # Historical, read-only


class Event(Base, GuidMixin):
    """
    Event model.

    Attributes:
        id: Primary key (internal, never exposed)
        uuid: UUIDv7 for external identification (inherited from GuidMixin)
        guid: GUID string property (evt_xxx, inherited from GuidMixin)
        name: Display name
        start_date: Start instant (naive UTC)
        end_date: End instant (naive UTC)
        lifecycle_status: LifecycleStatus value
        auto_transition_enabled: Whether the sweep may move this event
        status_changed_at: When lifecycle_status last changed
        status_changed_by: Opaque identity of who changed it
        created_at: Creation timestamp
        updated_at: Last update timestamp

    Relationships:
        series: Nested EventSeries (one-to-many, CASCADE on delete)
        state_transitions: Append-only transition history (one-to-many)

    Indexes:
        - uuid (unique, for GUID lookups)
        - lifecycle_status, auto_transition_enabled (sweep candidate scan)
    """

    __tablename__ = "events"

    GUID_PREFIX = "evt"

    id = Column(Integer, primary_key=True, autoincrement=True)

    name = Column(String(255), nullable=False)

    # Window
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)

    # Lifecycle
    lifecycle_status = Column(
        String(20),
        default=LifecycleStatus.DRAFT.value,
        nullable=False,
    )
    auto_transition_enabled = Column(Boolean, default=True, nullable=False)
    status_changed_at = Column(DateTime, nullable=True)
    status_changed_by = Column(String(255), nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False
    )

    # Relationships
    series = relationship(
        "EventSeries",
        back_populates="main_event",
        lazy="dynamic",
        cascade="all, delete-orphan"
    )
    state_transitions = relationship(
        "EventStateTransition",
        back_populates="event",
        lazy="dynamic",
        cascade="all, delete-orphan",
        order_by="EventStateTransition.id",
    )

    __table_args__ = (
        Index(
            "idx_events_auto_transition",
            "lifecycle_status",
            "auto_transition_enabled",
        ),
    )

    @property
    def status(self) -> LifecycleStatus:
        """Get lifecycle_status as the enum member."""
        return LifecycleStatus(self.lifecycle_status)

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<Event("
            f"id={self.id}, "
            f"name='{self.name}', "
            f"status={self.lifecycle_status}"
            f")>"
        )

    def __str__(self) -> str:
        """Human-readable string representation."""
        return f"{self.name} [{self.lifecycle_status}] {self.start_date} - {self.end_date}"
