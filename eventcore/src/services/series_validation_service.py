"""
Series validation service for temporal constraints on nested series.

Validation rules for a candidate series, applied in order and stopping at the
first hard failure:

1. Both dates parse as instants                  -> error invalid_date_format
2. Start is not in the past (new series only)     -> error starts_in_past
3. End is strictly after start                    -> error end_before_start
4. Start before the main event start              -> warning, extend main start
5. End after the main event end                   -> warning, extend main end
6. Window overlaps a sibling series               -> warning (advisory policy)
                                                     or error (strict policy)

The main event window is only ever widened. Series that start before the main
event are handled the same way as series that end after it: the caller is
warned and offered the extension, and must accept it explicitly before
persisting. The single and batch paths share validate_series_window, so both
enforce the same policy.

Validation failures are returned as ValidationResult objects, never raised,
so batch callers can keep going.
"""

import enum
from datetime import datetime, timedelta
from typing import Any, List, Optional, Sequence

from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from eventcore.src.config.settings import AppSettings, get_settings
from eventcore.src.schemas.series import (
    BatchItemResult,
    BatchValidationResult,
    EventWindow,
    SeriesCandidate,
    SeriesWindow,
    ValidationResult,
)
from eventcore.src.services.stores import EventStore, SeriesStore
from eventcore.src.utils.clock import Clock, to_utc_naive
from eventcore.src.utils.logging_config import get_logger


logger = get_logger("services")


class ValidationCode(enum.Enum):
    """Error and warning codes reported in ValidationResult."""
    # Errors
    INVALID_DATE_FORMAT = "invalid_date_format"
    STARTS_IN_PAST = "starts_in_past"
    END_BEFORE_START = "end_before_start"
    EVENT_NOT_FOUND = "event_not_found"
    # Errors (strict policy) or warnings (advisory policy)
    OVERLAPS_SIBLING = "overlaps_sibling"
    # Warnings
    EXTENDS_PARENT_START = "extends_parent_start"
    EXTENDS_PARENT_END = "extends_parent_end"
    CHECKIN_STARTS_BEFORE_EVENT = "checkin_starts_before_event"
    CHECKIN_ENDS_AFTER_EVENT = "checkin_ends_after_event"


_DATETIME_ADAPTER = TypeAdapter(datetime)

_DISPLAY_FORMAT = "%Y-%m-%d %H:%M"


def parse_instant(value: Any) -> Optional[datetime]:
    """
    Parse a datetime or ISO 8601 string to a naive UTC datetime.

    Returns:
        The parsed instant, or None if the value is empty or unparseable
    """
    if value is None or value == "":
        return None
    try:
        parsed = _DATETIME_ADAPTER.validate_python(value)
    except PydanticValidationError:
        return None
    return to_utc_naive(parsed)


def windows_overlap(
    a_start: datetime,
    a_end: datetime,
    b_start: datetime,
    b_end: datetime,
) -> bool:
    """Check whether half-open windows [a_start, a_end) and [b_start, b_end) intersect."""
    return a_start < b_end and b_start < a_end


def _add_error(result: ValidationResult, code: ValidationCode, message: str) -> ValidationResult:
    result.valid = False
    result.errors.append(code.value)
    result.error_messages.append(message)
    return result


def _add_warning(result: ValidationResult, code: ValidationCode, message: str) -> None:
    result.warnings.append(code.value)
    result.warning_messages.append(message)


def _check_date_format(
    result: ValidationResult,
    start: Optional[datetime],
    end: Optional[datetime],
) -> bool:
    if start is not None and end is not None:
        return True
    if start is None and end is None:
        fields = "start and end date"
    elif start is None:
        fields = "start date"
    else:
        fields = "end date"
    _add_error(result, ValidationCode.INVALID_DATE_FORMAT, f"Invalid date format for {fields}.")
    return False


def validate_series_window(
    candidate: SeriesCandidate,
    parent: EventWindow,
    siblings: Sequence[SeriesWindow],
    now: datetime,
    is_edit: bool = False,
    strict_overlap: bool = False,
) -> ValidationResult:
    """
    Validate a candidate series window against its parent and siblings.

    Args:
        candidate: Proposed series window (dates may be raw strings)
        parent: Parent event window
        siblings: Other series of the parent (the edited series excluded)
        now: Current instant
        is_edit: True when re-validating an existing series; skips the past check
        strict_overlap: Report sibling overlap as an error instead of a warning

    Returns:
        ValidationResult
    """
    result = ValidationResult()

    start = parse_instant(candidate.start_date)
    end = parse_instant(candidate.end_date)
    if not _check_date_format(result, start, end):
        return result

    if not is_edit and start < now:
        return _add_error(
            result,
            ValidationCode.STARTS_IN_PAST,
            "Series cannot start in the past. Please select a future date/time.",
        )

    if end <= start:
        return _add_error(
            result,
            ValidationCode.END_BEFORE_START,
            "Series end date must be after start date.",
        )

    parent_start = to_utc_naive(parent.start_date)
    parent_end = to_utc_naive(parent.end_date)

    if start < parent_start:
        result.auto_extend_main_event = True
        result.new_main_event_start_date = start
        _add_warning(
            result,
            ValidationCode.EXTENDS_PARENT_START,
            f"This series starts before the main event. The main event start "
            f"will be moved to {start.strftime(_DISPLAY_FORMAT)} UTC.",
        )

    if end > parent_end:
        result.auto_extend_main_event = True
        result.new_main_event_end_date = end
        _add_warning(
            result,
            ValidationCode.EXTENDS_PARENT_END,
            f"This series extends beyond the main event. The main event end "
            f"will be moved to {end.strftime(_DISPLAY_FORMAT)} UTC.",
        )

    for sibling in siblings:
        sibling_start = to_utc_naive(sibling.start_date)
        sibling_end = to_utc_naive(sibling.end_date)
        if not windows_overlap(start, end, sibling_start, sibling_end):
            continue

        label = f"'{sibling.name}'" if sibling.name else "another series"
        message = (
            f"Series overlaps with {label} "
            f"({sibling_start.strftime(_DISPLAY_FORMAT)} - {sibling_end.strftime(_DISPLAY_FORMAT)} UTC)."
        )
        if strict_overlap:
            _add_error(result, ValidationCode.OVERLAPS_SIBLING, message)
        else:
            _add_warning(result, ValidationCode.OVERLAPS_SIBLING, message)
        # First overlap is enough
        break

    return result


class SeriesValidationService:
    """
    Service for validating series windows against stored data.

    Usage:
        >>> service = SeriesValidationService(event_store, series_store, clock)
        >>> result = service.validate_series_against_parent(candidate, "evt_01hgw...")
        >>> result.valid, result.auto_extend_main_event
        (True, False)
    """

    def __init__(
        self,
        event_store: EventStore,
        series_store: SeriesStore,
        clock: Clock,
        settings: Optional[AppSettings] = None,
    ):
        """
        Initialize series validation service.

        Args:
            event_store: Event persistence interface (parent window)
            series_store: Series persistence interface (siblings)
            clock: Source of "now"
            settings: Application settings (overlap policy, main event past-start grace)
        """
        self.event_store = event_store
        self.series_store = series_store
        self.clock = clock
        self.settings = settings or get_settings()

    def validate_candidate(
        self,
        candidate: SeriesCandidate,
        parent: EventWindow,
        siblings: Sequence[SeriesWindow],
        is_edit: bool = False,
    ) -> ValidationResult:
        """Validate against already-fetched data using the configured policies."""
        return validate_series_window(
            candidate,
            parent,
            siblings,
            now=self.clock.now(),
            is_edit=is_edit,
            strict_overlap=self.settings.strict_overlap,
        )

    def validate_series_against_parent(
        self,
        candidate: SeriesCandidate,
        main_event_guid: str,
        is_edit: bool = False,
        series_guid: Optional[str] = None,
    ) -> ValidationResult:
        """
        Validate a candidate against its parent event and sibling series.

        Args:
            candidate: Proposed series window
            main_event_guid: Parent event GUID (evt_xxx)
            is_edit: True when editing an existing series
            series_guid: GUID of the series being edited, excluded from siblings

        Returns:
            ValidationResult (event_not_found error if the parent is missing)
        """
        event = self.event_store.get(main_event_guid)
        if not event:
            return _add_error(
                ValidationResult(),
                ValidationCode.EVENT_NOT_FOUND,
                "Main event not found or cannot be accessed.",
            )

        siblings = [
            SeriesWindow.model_validate(s)
            for s in self.series_store.list_siblings(main_event_guid, exclude_guid=series_guid)
        ]

        result = self.validate_candidate(
            candidate,
            EventWindow.model_validate(event),
            siblings,
            is_edit=is_edit,
        )

        logger.debug(
            "Validated series candidate",
            extra={
                "event_guid": main_event_guid,
                "series_guid": series_guid,
                "valid": result.valid,
                "errors": result.errors,
                "warnings": result.warnings,
            }
        )

        return result

    def batch_validate_series(
        self,
        candidates: Sequence[SeriesCandidate],
        main_event_guid: str,
    ) -> BatchValidationResult:
        """
        Validate several candidates as one upload.

        Candidates are checked in order. Each valid candidate joins the sibling
        set for the ones after it, and any extension it implies widens the
        running view of the main event window.

        Args:
            candidates: Proposed series windows
            main_event_guid: Parent event GUID (evt_xxx)

        Returns:
            BatchValidationResult
        """
        event = self.event_store.get(main_event_guid)
        if not event:
            return BatchValidationResult(
                valid=False,
                overall_errors=["Main event not found or cannot be accessed."],
            )

        original_start = to_utc_naive(event.start_date)
        original_end = to_utc_naive(event.end_date)
        window = EventWindow(start_date=original_start, end_date=original_end)
        siblings: List[SeriesWindow] = [
            SeriesWindow.model_validate(s)
            for s in self.series_store.list_siblings(main_event_guid)
        ]

        items: List[BatchItemResult] = []
        overall_errors: List[str] = []
        overall_warnings: List[str] = []

        for index, candidate in enumerate(candidates):
            result = self.validate_candidate(candidate, window, siblings)
            label = f"Series {index + 1}" + (f" ({candidate.name})" if candidate.name else "")

            items.append(BatchItemResult(index=index, name=candidate.name, result=result))

            if not result.valid:
                overall_errors.append(f"{label}: {' '.join(result.error_messages)}")
                continue

            if result.new_main_event_start_date is not None:
                window = EventWindow(start_date=result.new_main_event_start_date, end_date=window.end_date)
                overall_warnings.append(f"{label} will extend the main event start date")
            if result.new_main_event_end_date is not None:
                window = EventWindow(start_date=window.start_date, end_date=result.new_main_event_end_date)
                overall_warnings.append(f"{label} will extend the main event end date")

            siblings.append(SeriesWindow(
                name=candidate.name or "",
                start_date=parse_instant(candidate.start_date),
                end_date=parse_instant(candidate.end_date),
            ))

        logger.info(
            "Batch validated series",
            extra={
                "event_guid": main_event_guid,
                "count": len(candidates),
                "invalid": len(overall_errors),
            }
        )

        return BatchValidationResult(
            valid=not overall_errors,
            items=items,
            overall_errors=overall_errors,
            overall_warnings=overall_warnings,
            new_main_event_start_date=window.start_date if window.start_date != original_start else None,
            new_main_event_end_date=window.end_date if window.end_date != original_end else None,
        )

    def validate_main_event(
        self,
        start_date: Any,
        end_date: Any,
        is_edit: bool = False,
    ) -> ValidationResult:
        """
        Validate a top-level event window.

        Only format and the past-start rule apply; an event's end may precede
        its start at this layer.
        """
        result = ValidationResult()
        start = parse_instant(start_date)
        end = parse_instant(end_date)
        if not _check_date_format(result, start, end):
            return result

        grace = timedelta(seconds=self.settings.past_start_grace_seconds)
        if not is_edit and start < self.clock.now() - grace:
            _add_error(result, ValidationCode.STARTS_IN_PAST, "Start date cannot be in the past.")

        return result

    def validate_checkin_window(
        self,
        checkin_start: Any,
        checkin_end: Any,
        event_start: datetime,
        event_end: datetime,
    ) -> ValidationResult:
        """
        Validate a check-in window against its event window.

        The window must end after it starts; leaving the event window on
        either side is only a warning.
        """
        result = ValidationResult()
        start = parse_instant(checkin_start)
        end = parse_instant(checkin_end)
        if not _check_date_format(result, start, end):
            return result

        if end <= start:
            return _add_error(
                result,
                ValidationCode.END_BEFORE_START,
                "Check-in window end time must be after start time.",
            )

        if start < to_utc_naive(event_start):
            _add_warning(
                result,
                ValidationCode.CHECKIN_STARTS_BEFORE_EVENT,
                "Check-in window starts before the event start date.",
            )
        if end > to_utc_naive(event_end):
            _add_warning(
                result,
                ValidationCode.CHECKIN_ENDS_AFTER_EVENT,
                "Check-in window ends after the event end date.",
            )

        return result
