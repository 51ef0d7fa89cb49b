"""
EventSeries model for sub-events nested inside an Event.

A series has its own time window, which must start in the future, end after
it starts, and may widen (never narrow) the parent event's window.

Design Rationale:
- sequence_number is derived display metadata, recomputed on demand from the
  chronological order of active siblings; it is stored but not authoritative
- lifecycle_status (draft/scheduled/active) is independent from the parent
  event's LifecycleStatus
- Deleting the parent event cascades to its series
"""

import enum
from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, Index
from sqlalchemy.orm import relationship

from eventcore.src.models import Base
from eventcore.src.models.mixins import GuidMixin


class SeriesStatus(enum.Enum):
    """Series status enumeration."""
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    ACTIVE = "active"


class EventSeries(Base, GuidMixin):
    """
    Series model.

    Attributes:
        id: Primary key (internal, never exposed)
        uuid: UUIDv7 for external identification (inherited from GuidMixin)
        guid: GUID string property (ser_xxx, inherited from GuidMixin)
        main_event_id: FK to the owning Event
        name: Series name, tie-break key for ordering
        description: Optional description
        start_date: Start instant (naive UTC)
        end_date: End instant (naive UTC)
        sequence_number: Position among active siblings (1, 2, 3...)
        lifecycle_status: SeriesStatus value
        created_at: Creation timestamp
        updated_at: Last update timestamp

    Relationships:
        main_event: Owning Event (many-to-one, CASCADE on delete)

    Indexes:
        - uuid (unique, for GUID lookups)
        - main_event_id, start_date (sibling queries)
    """

    __tablename__ = "event_series"

    GUID_PREFIX = "ser"

    id = Column(Integer, primary_key=True, autoincrement=True)

    main_event_id = Column(
        Integer,
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)

    sequence_number = Column(Integer, nullable=True)

    lifecycle_status = Column(
        String(20),
        default=SeriesStatus.DRAFT.value,
        nullable=False,
    )

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False
    )

    main_event = relationship("Event", back_populates="series")

    __table_args__ = (
        Index("idx_event_series_event_start", "main_event_id", "start_date"),
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<EventSeries("
            f"id={self.id}, "
            f"name='{self.name}', "
            f"sequence_number={self.sequence_number}"
            f")>"
        )

    def __str__(self) -> str:
        """Human-readable string representation."""
        return f"{self.name} ({self.start_date} - {self.end_date})"
