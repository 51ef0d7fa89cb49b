"""
EventStateTransition model: append-only lifecycle history.

One row is written per successful lifecycle transition, in the same commit as
the status change. Rows are never updated or deleted by the application.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, ForeignKey, Index
from sqlalchemy.orm import relationship

from eventcore.src.models import Base


class EventStateTransition(Base):
    """
    Lifecycle transition history record.

    Attributes:
        id: Primary key
        event_id: FK to Event
        from_status: Status before the transition
        to_status: Status after the transition
        reason: Free-text reason supplied by the caller
        changed_by: Opaque identity of the actor
        automated: True when written by the auto-transition sweep
        changed_at: Instant of the transition (from the injected clock)
    """

    __tablename__ = "event_state_transitions"

    id = Column(Integer, primary_key=True, autoincrement=True)

    event_id = Column(
        Integer,
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
    )

    from_status = Column(String(20), nullable=True)
    to_status = Column(String(20), nullable=False)
    reason = Column(Text, nullable=True)
    changed_by = Column(String(255), nullable=True)
    automated = Column(Boolean, default=False, nullable=False)
    changed_at = Column(DateTime, nullable=False)

    event = relationship("Event", back_populates="state_transitions")

    __table_args__ = (
        Index("idx_state_transitions_event", "event_id"),
        Index("idx_state_transitions_changed_at", "changed_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<EventStateTransition("
            f"event_id={self.event_id}, "
            f"{self.from_status} -> {self.to_status}"
            f")>"
        )
