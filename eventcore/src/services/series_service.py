"""
Series service for creating and updating series with their parent window.

Handles the business logic for:
- Validating the candidate against its main event and siblings
- Requiring explicit acceptance before widening the main event window
- Assigning the sequence number
- Writing the series and the widened main event window together

Design:
- The series write and the main event extension share one transaction;
  either both are committed or neither is
- Validation outcomes are returned in SeriesSaveResult; only a missing
  resource or malformed input raises
"""

from dataclasses import dataclass
from typing import Optional

from eventcore.src.config.settings import AppSettings, get_settings
from eventcore.src.models import EventSeries, SeriesStatus
from eventcore.src.schemas.series import SeriesCandidate, ValidationResult
from eventcore.src.services.exceptions import NotFoundError, ValidationError
from eventcore.src.services.sequence_service import SequenceService
from eventcore.src.services.series_validation_service import (
    SeriesValidationService,
    parse_instant,
)
from eventcore.src.services.stores import EventStore, SeriesStore, TransactionManager
from eventcore.src.utils.clock import Clock
from eventcore.src.utils.logging_config import get_logger


logger = get_logger("services")


@dataclass
class SeriesSaveResult:
    """
    Outcome of a create or update attempt.

    Attributes:
        saved: True if the series was committed
        validation: Validation result the decision was based on
        series: The persisted series when saved
        sequence_number: Assigned sequence number when saved
        main_event_extended: True if the main event window was widened
        requires_confirmation: True if saving needs accept_extension
    """
    saved: bool
    validation: ValidationResult
    series: Optional[EventSeries] = None
    sequence_number: Optional[int] = None
    main_event_extended: bool = False
    requires_confirmation: bool = False


def _parse_series_status(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    try:
        return SeriesStatus(value).value
    except ValueError:
        raise ValidationError(f"Invalid series status: {value}", field="lifecycle_status")


class SeriesService:
    """
    Service for persisting series.

    Usage:
        >>> service = SeriesService(event_store, series_store, tx, clock)
        >>> result = service.create_series("evt_01hgw...", candidate)
        >>> if result.requires_confirmation:
        ...     result = service.create_series("evt_01hgw...", candidate, accept_extension=True)
    """

    def __init__(
        self,
        event_store: EventStore,
        series_store: SeriesStore,
        tx: TransactionManager,
        clock: Clock,
        settings: Optional[AppSettings] = None,
    ):
        """
        Initialize series service.

        Args:
            event_store: Event persistence interface
            series_store: Series persistence interface
            tx: Transaction boundary shared by both stores
            clock: Source of "now"
            settings: Application settings
        """
        self.event_store = event_store
        self.series_store = series_store
        self.tx = tx
        self.clock = clock
        self.settings = settings or get_settings()
        self.validator = SeriesValidationService(event_store, series_store, clock, self.settings)
        self.sequencer = SequenceService(series_store, clock)

    def create_series(
        self,
        main_event_guid: str,
        candidate: SeriesCandidate,
        changed_by: Optional[str] = None,
        accept_extension: bool = False,
        lifecycle_status: Optional[str] = None,
    ) -> SeriesSaveResult:
        """
        Create a series under a main event.

        Args:
            main_event_guid: Main event GUID (evt_xxx)
            candidate: Proposed series
            changed_by: Caller identity, for logging
            accept_extension: Confirms widening the main event window
            lifecycle_status: Initial series status (draft by default)

        Returns:
            SeriesSaveResult

        Raises:
            NotFoundError: If the main event does not exist
            ValidationError: If the name is missing or the status is unknown
        """
        if not self.event_store.get(main_event_guid):
            raise NotFoundError("Event", main_event_guid)
        if not candidate.name:
            raise ValidationError("Series name is required", field="name")
        status = _parse_series_status(lifecycle_status)

        validation = self.validator.validate_series_against_parent(candidate, main_event_guid)

        return self._save(
            main_event_guid,
            candidate,
            validation,
            accept_extension,
            changed_by,
            status=status,
        )

    def update_series(
        self,
        series_guid: str,
        candidate: SeriesCandidate,
        changed_by: Optional[str] = None,
        accept_extension: bool = False,
        lifecycle_status: Optional[str] = None,
    ) -> SeriesSaveResult:
        """
        Update a series window, and optionally its name, description and status.

        The series is validated as an edit: it is excluded from its own
        siblings and may keep a start date that is already in the past.

        Raises:
            NotFoundError: If the series does not exist
            ValidationError: If the status is unknown
        """
        series = self.series_store.get(series_guid)
        if not series:
            raise NotFoundError("EventSeries", series_guid)
        status = _parse_series_status(lifecycle_status)
        main_event_guid = series.main_event.guid
        if not candidate.name:
            # An omitted name keeps the stored one, which also orders the series
            candidate = candidate.model_copy(update={"name": series.name})

        validation = self.validator.validate_series_against_parent(
            candidate,
            main_event_guid,
            is_edit=True,
            series_guid=series_guid,
        )

        return self._save(
            main_event_guid,
            candidate,
            validation,
            accept_extension,
            changed_by,
            status=status,
            series_guid=series_guid,
        )

    def _save(
        self,
        main_event_guid: str,
        candidate: SeriesCandidate,
        validation: ValidationResult,
        accept_extension: bool,
        changed_by: Optional[str],
        status: Optional[str] = None,
        series_guid: Optional[str] = None,
    ) -> SeriesSaveResult:
        if not validation.valid:
            return SeriesSaveResult(saved=False, validation=validation)

        if validation.auto_extend_main_event and not accept_extension:
            return SeriesSaveResult(
                saved=False,
                validation=validation,
                requires_confirmation=True,
            )

        is_edit = series_guid is not None
        sequence_number = self.sequencer.compute_sequence_number(
            candidate,
            main_event_guid,
            is_edit=is_edit,
            series_guid=series_guid,
        )
        start_date = parse_instant(candidate.start_date)
        end_date = parse_instant(candidate.end_date)

        try:
            if is_edit:
                fields = {
                    "start_date": start_date,
                    "end_date": end_date,
                    "sequence_number": sequence_number,
                }
                if candidate.name:
                    fields["name"] = candidate.name
                if candidate.description is not None:
                    fields["description"] = candidate.description
                if status:
                    fields["lifecycle_status"] = status
                series = self.series_store.update(series_guid, **fields)
            else:
                series = self.series_store.create(
                    main_event_guid,
                    name=candidate.name,
                    start_date=start_date,
                    end_date=end_date,
                    sequence_number=sequence_number,
                    description=candidate.description,
                    lifecycle_status=status,
                )

            if validation.auto_extend_main_event:
                self.event_store.update_window(
                    main_event_guid,
                    start_date=validation.new_main_event_start_date,
                    end_date=validation.new_main_event_end_date,
                )

            self.tx.commit()
        except Exception:
            self.tx.rollback()
            raise

        logger.info(
            "Updated series" if is_edit else "Created series",
            extra={
                "event_guid": main_event_guid,
                "series_guid": series.guid,
                "sequence_number": sequence_number,
                "main_event_extended": validation.auto_extend_main_event,
                "changed_by": changed_by,
            }
        )

        return SeriesSaveResult(
            saved=True,
            validation=validation,
            series=series,
            sequence_number=sequence_number,
            main_event_extended=validation.auto_extend_main_event,
        )
