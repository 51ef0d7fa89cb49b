"""
Lifecycle service for event publication status transitions.

Handles the business logic for:
- The lifecycle edge table (single source of truth for valid transitions)
- Validating and executing a transition with history recording
- Capability lookups per status
- Manual operations (publish, start, end, close, archive)

Design:
- A transition either commits the status change and exactly one history
  record together, or writes nothing
- Failures are returned as a tagged TransitionResult, never raised
- The status write is compare-and-set against the status that was validated,
  so a concurrent writer cannot be overwritten with a stale edge
- "now" comes from the injected Clock
"""

import enum
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Union

from eventcore.src.models import Event, EventStateTransition, LifecycleStatus
from eventcore.src.schemas.lifecycle import AllowedOperations
from eventcore.src.services.stores import EventStore, TransactionManager
from eventcore.src.utils.clock import Clock
from eventcore.src.utils.logging_config import get_logger


logger = get_logger("services")


LIFECYCLE_TRANSITIONS: Dict[LifecycleStatus, Tuple[LifecycleStatus, ...]] = {
    LifecycleStatus.DRAFT: (LifecycleStatus.PUBLISHED, LifecycleStatus.ARCHIVED),
    LifecycleStatus.PUBLISHED: (LifecycleStatus.PRE_EVENT, LifecycleStatus.ARCHIVED),
    LifecycleStatus.PRE_EVENT: (LifecycleStatus.LIVE, LifecycleStatus.PUBLISHED),
    LifecycleStatus.LIVE: (LifecycleStatus.CLOSING,),
    LifecycleStatus.CLOSING: (LifecycleStatus.CLOSED,),
    LifecycleStatus.CLOSED: (LifecycleStatus.ARCHIVED,),
    LifecycleStatus.ARCHIVED: (),
}

_EDITABLE = {LifecycleStatus.DRAFT, LifecycleStatus.PUBLISHED, LifecycleStatus.PRE_EVENT}
_REPORTABLE = {
    LifecycleStatus.LIVE,
    LifecycleStatus.CLOSING,
    LifecycleStatus.CLOSED,
    LifecycleStatus.ARCHIVED,
}

# Manual archive is only offered from these statuses
ARCHIVABLE_STATUSES = (LifecycleStatus.PUBLISHED, LifecycleStatus.CLOSED)

StatusLike = Union[LifecycleStatus, str]


class TransitionErrorCode(enum.Enum):
    """Reasons a transition attempt can fail."""
    INVALID_TRANSITION = "invalid_transition"
    EVENT_NOT_FOUND = "event_not_found"
    INVALID_STATUS = "invalid_status"


@dataclass
class TransitionResult:
    """
    Tagged outcome of a transition attempt.

    Attributes:
        success: True if the transition was committed
        event: The updated event on success, the unchanged event on an
            invalid transition, None if it was not found
        from_status: Status before the attempt
        to_status: Requested status
        error: Failure code when success is False
        message: Human-readable failure description
    """
    success: bool
    event: Optional[Event] = None
    from_status: Optional[str] = None
    to_status: Optional[str] = None
    error: Optional[TransitionErrorCode] = None
    message: Optional[str] = None


def parse_status(value: StatusLike) -> LifecycleStatus:
    """
    Coerce a status value to LifecycleStatus.

    Raises:
        ValueError: If the value is not a lifecycle status
    """
    if isinstance(value, LifecycleStatus):
        return value
    return LifecycleStatus(value)


def get_valid_next_states(status: StatusLike) -> List[LifecycleStatus]:
    """Return the statuses reachable from status in one step."""
    try:
        current = parse_status(status)
    except ValueError:
        return []
    return list(LIFECYCLE_TRANSITIONS[current])


def is_valid_transition(from_status: StatusLike, to_status: StatusLike) -> bool:
    """Check whether from_status -> to_status is an edge of the lifecycle."""
    try:
        target = parse_status(to_status)
    except ValueError:
        return False
    return target in get_valid_next_states(from_status)


def is_terminal(status: StatusLike) -> bool:
    """Check whether a status has no outgoing edges."""
    return not get_valid_next_states(status)


def get_allowed_operations(status: StatusLike) -> AllowedOperations:
    """
    Map a lifecycle status to the operations it permits.

    Args:
        status: Lifecycle status

    Returns:
        AllowedOperations capability set

    Raises:
        ValueError: If status is not a lifecycle status
    """
    current = parse_status(status)
    return AllowedOperations(
        can_edit=current in _EDITABLE,
        can_delete=current == LifecycleStatus.DRAFT,
        can_add_series=current in _EDITABLE,
        can_check_in=current == LifecycleStatus.LIVE,
        can_view_reports=current in _REPORTABLE,
    )


class LifecycleService:
    """
    Service for executing event lifecycle transitions.

    Usage:
        >>> service = LifecycleService(event_store, tx, clock)
        >>> result = service.attempt_transition(
        ...     "evt_01hgw2bbg...", "published", reason="Ready", changed_by="usr_1"
        ... )
        >>> result.success
        True
    """

    def __init__(self, event_store: EventStore, tx: TransactionManager, clock: Clock):
        """
        Initialize lifecycle service.

        Args:
            event_store: Event persistence interface
            tx: Transaction boundary for the event store
            clock: Source of "now" for status_changed_at
        """
        self.event_store = event_store
        self.tx = tx
        self.clock = clock

    def attempt_transition(
        self,
        event_guid: str,
        target_status: StatusLike,
        reason: Optional[str] = None,
        changed_by: Optional[str] = None,
        automated: bool = False,
    ) -> TransitionResult:
        """
        Move an event to target_status if the edge table allows it.

        Args:
            event_guid: Event GUID (evt_xxx)
            target_status: Requested lifecycle status
            reason: Free-text reason stored in the history record
            changed_by: Caller identity stored on the event and in history
            automated: True when called by the auto-transition sweep

        Returns:
            TransitionResult; on success exactly one history record was committed
        """
        requested = target_status.value if isinstance(target_status, LifecycleStatus) else target_status
        try:
            target = parse_status(target_status)
        except ValueError:
            return TransitionResult(
                success=False,
                to_status=requested,
                error=TransitionErrorCode.INVALID_STATUS,
                message=f"Unknown lifecycle status: {requested}",
            )

        event = self.event_store.get(event_guid)
        if not event:
            return TransitionResult(
                success=False,
                to_status=target.value,
                error=TransitionErrorCode.EVENT_NOT_FOUND,
                message=f"Event {event_guid} not found",
            )

        current = event.lifecycle_status
        if not is_valid_transition(current, target):
            logger.warning(
                "Rejected lifecycle transition",
                extra={
                    "event_guid": event_guid,
                    "from_status": current,
                    "to_status": target.value,
                }
            )
            return TransitionResult(
                success=False,
                event=event,
                from_status=current,
                to_status=target.value,
                error=TransitionErrorCode.INVALID_TRANSITION,
                message=f"Invalid transition from {current} to {target.value}",
            )

        try:
            updated = self.event_store.update_status(
                event_guid,
                target.value,
                changed_by=changed_by,
                reason=reason,
                changed_at=self.clock.now(),
                automated=automated,
                expected_status=current,
            )
            if updated is None:
                self.tx.rollback()
                return TransitionResult(
                    success=False,
                    event=event,
                    from_status=current,
                    to_status=target.value,
                    error=TransitionErrorCode.INVALID_TRANSITION,
                    message=(
                        f"Invalid transition from {current} to {target.value}: "
                        "status changed concurrently"
                    ),
                )
            self.tx.commit()
        except Exception:
            self.tx.rollback()
            raise

        logger.info(
            "Event lifecycle transition",
            extra={
                "event_guid": event_guid,
                "from_status": current,
                "to_status": target.value,
                "changed_by": changed_by,
                "automated": automated,
            }
        )

        return TransitionResult(
            success=True,
            event=updated,
            from_status=current,
            to_status=target.value,
        )

    def get_transition_history(self, event_guid: str) -> List[EventStateTransition]:
        """
        Get the transition history of an event, newest first.

        Raises:
            NotFoundError: If the event does not exist
        """
        return self.event_store.list_transitions(event_guid)

    # =========================================================================
    # Manual Operations
    # =========================================================================

    def publish_event(self, event_guid: str, changed_by: Optional[str] = None) -> TransitionResult:
        """Publish a draft event."""
        return self.attempt_transition(
            event_guid, LifecycleStatus.PUBLISHED, reason="Event published", changed_by=changed_by
        )

    def start_event(self, event_guid: str, changed_by: Optional[str] = None) -> TransitionResult:
        """
        Start an event manually.

        A published event passes through pre_event first, so two history
        records are written in that case.
        """
        event = self.event_store.get(event_guid)
        if event and event.lifecycle_status == LifecycleStatus.PUBLISHED.value:
            pre = self.attempt_transition(
                event_guid,
                LifecycleStatus.PRE_EVENT,
                reason="Manual pre-event activation",
                changed_by=changed_by,
            )
            if not pre.success:
                return pre

        return self.attempt_transition(
            event_guid, LifecycleStatus.LIVE, reason="Manual event start", changed_by=changed_by
        )

    def end_event(self, event_guid: str, changed_by: Optional[str] = None) -> TransitionResult:
        """End a live event manually."""
        return self.attempt_transition(
            event_guid, LifecycleStatus.CLOSING, reason="Manual event end", changed_by=changed_by
        )

    def close_event(self, event_guid: str, changed_by: Optional[str] = None) -> TransitionResult:
        """Close an event that is wrapping up."""
        return self.attempt_transition(
            event_guid, LifecycleStatus.CLOSED, reason="Event closed", changed_by=changed_by
        )

    def archive_event(self, event_guid: str, changed_by: Optional[str] = None) -> TransitionResult:
        """
        Archive a published or closed event.

        Draft events can still be archived through attempt_transition; this
        operation only covers events that were visible.
        """
        event = self.event_store.get(event_guid)
        if event and event.lifecycle_status not in {s.value for s in ARCHIVABLE_STATUSES}:
            return TransitionResult(
                success=False,
                event=event,
                from_status=event.lifecycle_status,
                to_status=LifecycleStatus.ARCHIVED.value,
                error=TransitionErrorCode.INVALID_TRANSITION,
                message="Event must be published or closed to archive",
            )

        return self.attempt_transition(
            event_guid, LifecycleStatus.ARCHIVED, reason="Event archived", changed_by=changed_by
        )

