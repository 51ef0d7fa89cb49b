"""
Lifecycle API endpoints for event publication status.

Provides endpoints for:
- Looking up the next states and allowed operations of a status
- Requesting a transition for an event
- Named operations (publish, start, end, close, archive)
- Reading an event's transition history
- Triggering one auto-transition sweep pass

Design:
- Uses dependency injection for services
- Transition failures map to 404 (unknown event), 409 (edge not allowed)
  and 400 (unknown status)
- All endpoints use GUID format (evt_xxx) for identifiers
"""

import asyncio
from enum import Enum
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from eventcore.src.api.dependencies import get_app_settings, get_clock, get_lifecycle_service
from eventcore.src.config.settings import AppSettings
from eventcore.src.db.database import get_db
from eventcore.src.schemas.lifecycle import (
    EventResponse,
    LifecycleOperationRequest,
    StateTransitionResponse,
    StatusInfoResponse,
    SweepResponse,
    TransitionRequest,
)
from eventcore.src.services.auto_transition_service import build_auto_transition_service
from eventcore.src.services.exceptions import NotFoundError
from eventcore.src.services.lifecycle_service import (
    LifecycleService,
    TransitionErrorCode,
    TransitionResult,
    get_allowed_operations,
    get_valid_next_states,
    is_terminal,
    parse_status,
)
from eventcore.src.utils.clock import Clock
from eventcore.src.utils.logging_config import get_logger


logger = get_logger("api")

router = APIRouter(tags=["Lifecycle"])


_TRANSITION_ERROR_STATUS = {
    TransitionErrorCode.EVENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    TransitionErrorCode.INVALID_TRANSITION: status.HTTP_409_CONFLICT,
    TransitionErrorCode.INVALID_STATUS: status.HTTP_400_BAD_REQUEST,
}


class LifecycleOperation(str, Enum):
    """Named operations exposed at /events/{guid}/actions/{operation}."""
    PUBLISH = "publish"
    START = "start"
    END = "end"
    CLOSE = "close"
    ARCHIVE = "archive"


_OPERATION_METHODS = {
    LifecycleOperation.PUBLISH: "publish_event",
    LifecycleOperation.START: "start_event",
    LifecycleOperation.END: "end_event",
    LifecycleOperation.CLOSE: "close_event",
    LifecycleOperation.ARCHIVE: "archive_event",
}


def _raise_for_failure(result: TransitionResult) -> None:
    if not result.success:
        raise HTTPException(
            status_code=_TRANSITION_ERROR_STATUS[result.error],
            detail={
                "error": result.error.value,
                "message": result.message,
                "from_status": result.from_status,
                "to_status": result.to_status,
            },
        )


# ============================================================================
# Status Endpoints
# ============================================================================


@router.get(
    "/lifecycle/statuses/{lifecycle_status}",
    response_model=StatusInfoResponse,
    summary="Get lifecycle status info",
    description="Valid next states and allowed operations for a lifecycle status",
)
async def get_status_info(lifecycle_status: str) -> StatusInfoResponse:
    """
    Get edges and capabilities of a lifecycle status.

    Raises:
        400: Unknown lifecycle status
    """
    try:
        current = parse_status(lifecycle_status)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown lifecycle status: {lifecycle_status}",
        )

    return StatusInfoResponse(
        status=current.value,
        valid_next_states=[s.value for s in get_valid_next_states(current)],
        is_terminal=is_terminal(current),
        allowed_operations=get_allowed_operations(current),
    )


@router.post(
    "/lifecycle/sweep",
    response_model=SweepResponse,
    summary="Run an auto-transition sweep",
    description="Run one pass of time-driven transitions now",
)
async def run_sweep(
    request: Request,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    settings: AppSettings = Depends(get_app_settings),
) -> SweepResponse:
    """
    Run one sweep pass.

    When the background scheduler is running, the pass goes through it so a
    manual trigger never overlaps a scheduled pass; skipped is then true if
    a pass was already in flight.
    """
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is not None:
        stats = await asyncio.to_thread(scheduler.run_pass)
    else:
        stats = build_auto_transition_service(db, clock, settings).run_sweep()

    logger.info(
        "Manual sweep triggered",
        extra={"transitions": stats.total_transitions, "skipped": stats.skipped},
    )

    return SweepResponse(
        to_pre_event=stats.to_pre_event,
        to_live=stats.to_live,
        to_closing=stats.to_closing,
        failed=stats.failed,
        skipped=stats.skipped,
    )


# ============================================================================
# Event Transition Endpoints
# ============================================================================


@router.post(
    "/events/{guid}/transitions",
    response_model=EventResponse,
    summary="Transition an event",
    description="Move an event to another lifecycle status",
)
async def transition_event(
    guid: str,
    transition: TransitionRequest,
    lifecycle_service: LifecycleService = Depends(get_lifecycle_service),
) -> EventResponse:
    """
    Attempt a lifecycle transition.

    Path Parameters:
        guid: Event GUID (evt_xxx format)

    Request Body:
        target_status: Requested status (required)
        reason: Reason recorded in history
        changed_by: Caller identity recorded on the event and in history

    Returns:
        The updated event

    Raises:
        400: Unknown target status
        404: Event not found
        409: Transition not allowed from the current status

    Example:
        POST /api/events/evt_01hgw2bbg0000000000000001/transitions
        {"target_status": "published", "changed_by": "usr_01hgw..."}
    """
    result = lifecycle_service.attempt_transition(
        guid,
        transition.target_status,
        reason=transition.reason,
        changed_by=transition.changed_by,
    )

    _raise_for_failure(result)
    return EventResponse.model_validate(result.event)


@router.get(
    "/events/{guid}/transitions",
    response_model=List[StateTransitionResponse],
    summary="Get event transition history",
    description="Lifecycle transitions of an event, newest first",
)
async def get_transition_history(
    guid: str,
    lifecycle_service: LifecycleService = Depends(get_lifecycle_service),
) -> List[StateTransitionResponse]:
    """
    Get the transition history of an event.

    Raises:
        404: Event not found
    """
    try:
        transitions = lifecycle_service.get_transition_history(guid)
    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Event {guid} not found",
        )

    return [StateTransitionResponse.model_validate(t) for t in transitions]


@router.post(
    "/events/{guid}/actions/{operation}",
    response_model=EventResponse,
    summary="Run a lifecycle operation",
    description="Publish, start, end, close or archive an event",
)
async def run_lifecycle_operation(
    guid: str,
    operation: LifecycleOperation,
    operation_request: Optional[LifecycleOperationRequest] = None,
    lifecycle_service: LifecycleService = Depends(get_lifecycle_service),
) -> EventResponse:
    """
    Run a named lifecycle operation.

    start on a published event passes through pre_event first. archive only
    applies to published or closed events.

    Raises:
        404: Event not found
        409: Operation not allowed from the current status
    """
    changed_by = operation_request.changed_by if operation_request else None
    result = getattr(lifecycle_service, _OPERATION_METHODS[operation])(guid, changed_by=changed_by)

    _raise_for_failure(result)
    return EventResponse.model_validate(result.event)
