"""
SQLAlchemy implementations of the store interfaces.

All stores built for one request or sweep pass share one Session; writes are
flushed, and SqlTransactionManager commits or rolls back the whole unit.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from eventcore.src.models import (
    Event, EventSeries, EventStateTransition, LifecycleStatus, SeriesStatus,
)
from eventcore.src.services.exceptions import NotFoundError
from eventcore.src.services.stores import EventStore, SeriesStore, TransactionManager


# Statuses the sweep can move out of
AUTO_TRANSITION_SOURCE_STATUSES = [
    LifecycleStatus.PUBLISHED.value,
    LifecycleStatus.PRE_EVENT.value,
    LifecycleStatus.LIVE.value,
]

# Series fields callers may change through SqlSeriesStore.update
SERIES_UPDATABLE_FIELDS = {
    "name",
    "description",
    "start_date",
    "end_date",
    "sequence_number",
    "lifecycle_status",
}


class SqlTransactionManager(TransactionManager):
    """Commits or rolls back the shared session."""

    def __init__(self, db: Session):
        self.db = db

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()


class SqlEventStore(EventStore):
    """Event store backed by SQLAlchemy."""

    def __init__(self, db: Session):
        """
        Initialize event store.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    def get(self, guid: str) -> Optional[Event]:
        query = Event.query_by_guid(self.db, guid)
        if query is None:
            return None
        return query.first()

    def _require(self, guid: str) -> Event:
        event = self.get(guid)
        if not event:
            raise NotFoundError("Event", guid)
        return event

    def update_status(
        self,
        guid: str,
        status: str,
        changed_by: Optional[str],
        reason: Optional[str],
        changed_at: datetime,
        automated: bool = False,
        expected_status: Optional[str] = None,
    ) -> Optional[Event]:
        query = Event.query_by_guid(self.db, guid)
        if query is None:
            raise NotFoundError("Event", guid)

        # Row lock on PostgreSQL; populate_existing re-reads a row already in
        # the identity map so the status check sees the committed value
        event = query.with_for_update().populate_existing().first()
        if not event:
            raise NotFoundError("Event", guid)

        if expected_status is not None and event.lifecycle_status != expected_status:
            return None

        from_status = event.lifecycle_status
        event.lifecycle_status = status
        event.status_changed_at = changed_at
        event.status_changed_by = changed_by

        self.db.add(EventStateTransition(
            event_id=event.id,
            from_status=from_status,
            to_status=status,
            reason=reason,
            changed_by=changed_by,
            automated=automated,
            changed_at=changed_at,
        ))
        self.db.flush()
        return event

    def update_window(
        self,
        guid: str,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Event:
        event = self._require(guid)
        if start_date is not None:
            event.start_date = start_date
        if end_date is not None:
            event.end_date = end_date
        self.db.flush()
        return event

    def list_auto_transition_candidates(self) -> List[Event]:
        return (
            self.db.query(Event)
            .filter(
                Event.auto_transition_enabled.is_(True),
                Event.lifecycle_status.in_(AUTO_TRANSITION_SOURCE_STATUSES),
            )
            .order_by(Event.start_date.asc(), Event.id.asc())
            .all()
        )

    def list_transitions(self, guid: str) -> List[EventStateTransition]:
        event = self._require(guid)
        return (
            self.db.query(EventStateTransition)
            .filter(EventStateTransition.event_id == event.id)
            .order_by(
                EventStateTransition.changed_at.desc(),
                EventStateTransition.id.desc(),
            )
            .all()
        )


class SqlSeriesStore(SeriesStore):
    """Series store backed by SQLAlchemy."""

    def __init__(self, db: Session):
        """
        Initialize series store.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    def get(self, guid: str) -> Optional[EventSeries]:
        query = EventSeries.query_by_guid(self.db, guid)
        return query.first() if query is not None else None

    def _get_event(self, guid: str) -> Event:
        query = Event.query_by_guid(self.db, guid)
        event = query.first() if query is not None else None
        if not event:
            raise NotFoundError("Event", guid)
        return event

    def list_siblings(
        self,
        main_event_guid: str,
        exclude_guid: Optional[str] = None,
    ) -> List[EventSeries]:
        event = self._get_event(main_event_guid)

        query = self.db.query(EventSeries).filter(EventSeries.main_event_id == event.id)

        if exclude_guid:
            try:
                query = query.filter(EventSeries.uuid != EventSeries.parse_guid(exclude_guid))
            except ValueError:
                # Not a series GUID, so it cannot match a sibling
                pass

        return query.order_by(EventSeries.start_date.asc(), EventSeries.id.asc()).all()

    def create(
        self,
        main_event_guid: str,
        name: str,
        start_date: datetime,
        end_date: datetime,
        sequence_number: Optional[int] = None,
        description: Optional[str] = None,
        lifecycle_status: Optional[str] = None,
    ) -> EventSeries:
        event = self._get_event(main_event_guid)

        series = EventSeries(
            main_event_id=event.id,
            name=name,
            description=description,
            start_date=start_date,
            end_date=end_date,
            sequence_number=sequence_number,
            lifecycle_status=lifecycle_status or SeriesStatus.DRAFT.value,
        )
        self.db.add(series)
        self.db.flush()
        return series

    def update(self, guid: str, **fields) -> EventSeries:
        series = self.get(guid)
        if not series:
            raise NotFoundError("EventSeries", guid)

        unknown = set(fields) - SERIES_UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update series fields: {', '.join(sorted(unknown))}")

        for key, value in fields.items():
            setattr(series, key, value)
        self.db.flush()
        return series
