"""
Series API endpoints for scheduling series inside a main event.

Provides endpoints for:
- Validating one candidate series against its main event and siblings
- Validating a batch of candidates as one upload
- Validating top-level event windows and check-in windows
- Computing the sequence number a candidate would get
- Creating and updating series

Design:
- Validation outcomes are returned in the response body; only a missing
  event or series maps to 404
- Create/update answer 201/200 when saved, 422 when validation failed and
  409 when the main event window would be widened without accept_extension
- All endpoints use GUID format (evt_xxx, ser_xxx) for identifiers
"""

from fastapi import APIRouter, Depends, HTTPException, Response, status

from eventcore.src.api.dependencies import (
    get_sequence_service,
    get_series_service,
    get_series_validation_service,
)
from eventcore.src.schemas.series import (
    BatchValidateRequest,
    BatchValidationResult,
    CheckinWindowValidateRequest,
    EventWindowValidateRequest,
    SequenceRequest,
    SequenceResponse,
    SeriesResponse,
    SeriesSaveRequest,
    SeriesSaveResponse,
    SeriesValidateRequest,
    ValidationResult,
)
from eventcore.src.services.exceptions import NotFoundError, ValidationError
from eventcore.src.services.sequence_service import SequenceService
from eventcore.src.services.series_service import SeriesSaveResult, SeriesService
from eventcore.src.services.series_validation_service import (
    SeriesValidationService,
    ValidationCode,
)
from eventcore.src.utils.logging_config import get_logger


logger = get_logger("api")

router = APIRouter(tags=["Series"])


def _to_save_response(result: SeriesSaveResult, response: Response, created: bool) -> SeriesSaveResponse:
    if result.saved:
        response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    elif result.requires_confirmation:
        response.status_code = status.HTTP_409_CONFLICT
    else:
        response.status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    return SeriesSaveResponse(
        saved=result.saved,
        series=SeriesResponse.model_validate(result.series) if result.series else None,
        validation=result.validation,
        sequence_number=result.sequence_number,
        main_event_extended=result.main_event_extended,
        requires_confirmation=result.requires_confirmation,
    )


# ============================================================================
# Validation Endpoints
# ============================================================================


@router.post(
    "/events/{guid}/series/validate",
    response_model=ValidationResult,
    summary="Validate a series",
    description="Check a candidate series window against its main event and siblings",
)
async def validate_series(
    guid: str,
    request: SeriesValidateRequest,
    validation_service: SeriesValidationService = Depends(get_series_validation_service),
) -> ValidationResult:
    """
    Validate a candidate series.

    Path Parameters:
        guid: Main event GUID (evt_xxx format)

    Request Body:
        candidate: Series window (dates as ISO 8601 strings)
        is_edit: True when editing an existing series
        series_guid: Series being edited, excluded from siblings

    Returns:
        ValidationResult with error and warning codes

    Raises:
        404: Main event not found

    Example:
        POST /api/events/evt_01hgw2bbg0000000000000001/series/validate
        {
          "candidate": {
            "name": "Finals",
            "start_date": "2026-11-03T18:00:00Z",
            "end_date": "2026-11-03T22:00:00Z"
          }
        }
    """
    result = validation_service.validate_series_against_parent(
        request.candidate,
        guid,
        is_edit=request.is_edit,
        series_guid=request.series_guid,
    )

    if ValidationCode.EVENT_NOT_FOUND.value in result.errors:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Event {guid} not found",
        )

    return result


@router.post(
    "/events/{guid}/series/batch-validate",
    response_model=BatchValidationResult,
    summary="Validate a batch of series",
    description="Validate candidates in order as one upload",
)
async def batch_validate_series(
    guid: str,
    request: BatchValidateRequest,
    validation_service: SeriesValidationService = Depends(get_series_validation_service),
) -> BatchValidationResult:
    """
    Validate several candidate series.

    Raises:
        404: Main event not found
    """
    if not validation_service.event_store.get(guid):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Event {guid} not found",
        )

    return validation_service.batch_validate_series(request.candidates, guid)


@router.post(
    "/events/validate-window",
    response_model=ValidationResult,
    summary="Validate an event window",
    description="Check the date format and past-start rule for a top-level event",
)
async def validate_event_window(
    request: EventWindowValidateRequest,
    validation_service: SeriesValidationService = Depends(get_series_validation_service),
) -> ValidationResult:
    """
    Validate a top-level event window.

    A start within the configured grace of now is accepted; edits skip the
    past-start rule.
    """
    return validation_service.validate_main_event(
        request.start_date,
        request.end_date,
        is_edit=request.is_edit,
    )


@router.post(
    "/events/validate-checkin",
    response_model=ValidationResult,
    summary="Validate a check-in window",
    description="Check a check-in window against its event window",
)
async def validate_checkin_window(
    request: CheckinWindowValidateRequest,
    validation_service: SeriesValidationService = Depends(get_series_validation_service),
) -> ValidationResult:
    """Validate a check-in window; leaving the event window is only a warning."""
    return validation_service.validate_checkin_window(
        request.checkin_start,
        request.checkin_end,
        request.event_start,
        request.event_end,
    )


@router.post(
    "/events/{guid}/series/sequence",
    response_model=SequenceResponse,
    summary="Compute a sequence number",
    description="Position a candidate would take among the active series",
)
async def compute_sequence(
    guid: str,
    request: SequenceRequest,
    sequence_service: SequenceService = Depends(get_sequence_service),
) -> SequenceResponse:
    """
    Compute the sequence number of a candidate.

    Raises:
        400: Candidate start date cannot be parsed
        404: Main event not found
    """
    try:
        number = sequence_service.compute_sequence_number(
            request.candidate,
            guid,
            is_edit=request.series_guid is not None,
            series_guid=request.series_guid,
        )
    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Event {guid} not found",
        )
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=e.message,
        )

    return SequenceResponse(sequence_number=number)


# ============================================================================
# Create / Update Endpoints
# ============================================================================


@router.post(
    "/events/{guid}/series",
    response_model=SeriesSaveResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a series",
    description="Create a series under a main event, widening the event window if accepted",
)
async def create_series(
    guid: str,
    request: SeriesSaveRequest,
    response: Response,
    series_service: SeriesService = Depends(get_series_service),
) -> SeriesSaveResponse:
    """
    Create a series.

    Request Body:
        candidate: Series window and name (required)
        lifecycle_status: draft, scheduled or active
        accept_extension: Confirms widening the main event window
        changed_by: Caller identity

    Returns:
        SeriesSaveResponse (201 when saved)

    Raises:
        400: Missing name or unknown series status
        404: Main event not found
        409: Main event window extension not accepted
        422: Validation failed
    """
    try:
        result = series_service.create_series(
            guid,
            request.candidate,
            changed_by=request.changed_by,
            accept_extension=request.accept_extension,
            lifecycle_status=request.lifecycle_status,
        )
    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Event {guid} not found",
        )
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=e.message,
        )

    return _to_save_response(result, response, created=True)


@router.put(
    "/series/{guid}",
    response_model=SeriesSaveResponse,
    summary="Update a series",
    description="Update a series window, re-validated as an edit",
)
async def update_series(
    guid: str,
    request: SeriesSaveRequest,
    response: Response,
    series_service: SeriesService = Depends(get_series_service),
) -> SeriesSaveResponse:
    """
    Update a series.

    Raises:
        400: Unknown series status
        404: Series not found
        409: Main event window extension not accepted
        422: Validation failed
    """
    try:
        result = series_service.update_series(
            guid,
            request.candidate,
            changed_by=request.changed_by,
            accept_extension=request.accept_extension,
            lifecycle_status=request.lifecycle_status,
        )
    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Series {guid} not found",
        )
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=e.message,
        )

    return _to_save_response(result, response, created=False)
