"""
Store interfaces (repository pattern) consumed by the scheduling core.

Services depend only on these interfaces, never on a database session, so
they can run against any backing store. The SQLAlchemy implementations live
in sql_stores.py.

Write methods stage changes; nothing is durable until the TransactionManager
commits. This lets a series write and its parent window extension land in a
single transaction.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from eventcore.src.models import Event, EventSeries, EventStateTransition


class TransactionManager(ABC):
    """Commit/rollback boundary shared by the stores of one unit of work."""

    @abstractmethod
    def commit(self) -> None:
        """Make all staged writes durable."""
        ...

    @abstractmethod
    def rollback(self) -> None:
        """Discard all staged writes."""
        ...


class EventStore(ABC):
    """Interface for event persistence operations."""

    @abstractmethod
    def get(self, guid: str) -> Optional[Event]:
        """Return an event by GUID, or None if not found."""
        ...

    @abstractmethod
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
        """
        Set lifecycle_status and append one transition record.

        When expected_status is given the write only applies if the stored
        status still equals it; otherwise nothing is staged and None is
        returned.

        Raises:
            NotFoundError: If the event does not exist
        """
        ...

    @abstractmethod
    def update_window(
        self,
        guid: str,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Event:
        """
        Replace the given bounds of the event window.

        Raises:
            NotFoundError: If the event does not exist
        """
        ...

    @abstractmethod
    def list_auto_transition_candidates(self) -> List[Event]:
        """Return events opted into the sweep in published, pre_event or live."""
        ...

    @abstractmethod
    def list_transitions(self, guid: str) -> List[EventStateTransition]:
        """Return the event's transition history, newest first."""
        ...


class SeriesStore(ABC):
    """Interface for series persistence operations."""

    @abstractmethod
    def get(self, guid: str) -> Optional[EventSeries]:
        """Return a series by GUID, or None if not found."""
        ...

    @abstractmethod
    def list_siblings(
        self,
        main_event_guid: str,
        exclude_guid: Optional[str] = None,
    ) -> List[EventSeries]:
        """Return all series of an event ordered by start_date, minus exclude_guid."""
        ...

    @abstractmethod
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
        """
        Stage a new series under an event.

        Raises:
            NotFoundError: If the event does not exist
        """
        ...

    @abstractmethod
    def update(self, guid: str, **fields) -> EventSeries:
        """
        Stage field changes on a series.

        Raises:
            NotFoundError: If the series does not exist
        """
        ...
