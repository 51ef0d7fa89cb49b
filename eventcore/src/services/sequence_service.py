"""
Sequence service for ordering series within their main event.

The sequence number of a series is its 1-based position among the active
siblings of its main event, ordered by start date then name. A series is
active while its end date has not passed; completed series never occupy a
slot, so numbers shift as series finish.

Design:
- Ordering is a pure function of (candidate, siblings, now)
- Names are compared case-insensitively and accent-insensitively first, then
  with the configured LC_COLLATE, raw name as the final tie-break
- The candidate is placed after siblings it ties with exactly
"""

import locale
import unicodedata
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from eventcore.src.schemas.series import SeriesCandidate, SeriesWindow
from eventcore.src.services.exceptions import ValidationError
from eventcore.src.services.series_validation_service import parse_instant
from eventcore.src.services.stores import SeriesStore
from eventcore.src.utils.clock import Clock, to_utc_naive
from eventcore.src.utils.logging_config import get_logger


logger = get_logger("services")


# Default length of a suggested series window
DEFAULT_SUGGESTED_DURATION = timedelta(days=1)


def configure_collation(locale_name: str = "") -> bool:
    """
    Set LC_COLLATE for series name ordering.

    Args:
        locale_name: Locale such as "fr_FR.UTF-8"; empty uses the environment

    Returns:
        True if the locale was applied
    """
    try:
        locale.setlocale(locale.LC_COLLATE, locale_name)
    except locale.Error as e:
        logger.warning(
            "Collation locale unavailable, keeping current LC_COLLATE",
            extra={"locale": locale_name, "error": str(e)}
        )
        return False
    logger.info("Series name collation configured", extra={"locale": locale.setlocale(locale.LC_COLLATE)})
    return True


def _base_letters(name: str) -> str:
    decomposed = unicodedata.normalize("NFKD", name.casefold())
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def _sort_key(start_date: datetime, name: Optional[str]) -> Tuple[datetime, str, str, str]:
    name = name or ""
    return (start_date, _base_letters(name), locale.strxfrm(name.casefold()), name)


def _is_active(window: SeriesWindow, now: datetime) -> bool:
    return to_utc_naive(window.end_date) >= now


def compute_sequence_number(
    candidate: SeriesCandidate,
    siblings: Sequence[SeriesWindow],
    now: datetime,
    exclude_guid: Optional[str] = None,
) -> int:
    """
    Compute the sequence number a candidate would receive.

    Args:
        candidate: Proposed series window
        siblings: Existing series of the main event
        now: Current instant; decides which siblings are still active
        exclude_guid: Series being edited, removed from siblings

    Returns:
        1-based position of the candidate

    Raises:
        ValidationError: If the candidate start date cannot be parsed
    """
    start = parse_instant(candidate.start_date)
    if start is None:
        raise ValidationError("Invalid date format for start date", field="start_date")

    keys: List[Tuple[datetime, str, str, str]] = [
        _sort_key(to_utc_naive(s.start_date), s.name)
        for s in siblings
        if _is_active(s, now) and not (exclude_guid and s.guid == exclude_guid)
    ]
    candidate_key = _sort_key(start, candidate.name)

    # Stable ordering: exact ties keep the candidate after existing siblings
    return sum(1 for key in keys if key <= candidate_key) + 1


def compute_display_order(
    series: Sequence[SeriesWindow],
    now: datetime,
) -> Dict[str, Optional[int]]:
    """
    Number every series of a main event for display.

    Returns:
        Mapping of series GUID to its sequence number, None for completed series
    """
    active = sorted(
        (s for s in series if _is_active(s, now)),
        key=lambda s: _sort_key(to_utc_naive(s.start_date), s.name),
    )
    order: Dict[str, Optional[int]] = {s.guid: None for s in series if s.guid}
    for position, window in enumerate(active, start=1):
        if window.guid:
            order[window.guid] = position
    return order


def suggest_next_window(
    siblings: Sequence[SeriesWindow],
    duration: timedelta = DEFAULT_SUGGESTED_DURATION,
) -> Optional[Tuple[datetime, datetime]]:
    """
    Propose a window for the next series.

    The suggestion starts where the latest-starting sibling ends.

    Returns:
        (start, end) or None when there are no siblings
    """
    if not siblings:
        return None
    latest = max(siblings, key=lambda s: to_utc_naive(s.start_date))
    start = to_utc_naive(latest.end_date)
    return start, start + duration


class SequenceService:
    """
    Service for sequence numbers backed by the series store.

    Usage:
        >>> service = SequenceService(series_store, clock)
        >>> service.compute_sequence_number(candidate, "evt_01hgw...")
        2
    """

    def __init__(self, series_store: SeriesStore, clock: Clock):
        self.series_store = series_store
        self.clock = clock

    def _siblings(self, main_event_guid: str) -> List[SeriesWindow]:
        return [
            SeriesWindow.model_validate(s)
            for s in self.series_store.list_siblings(main_event_guid)
        ]

    def compute_sequence_number(
        self,
        candidate: SeriesCandidate,
        main_event_guid: str,
        is_edit: bool = False,
        series_guid: Optional[str] = None,
    ) -> int:
        """
        Compute the sequence number of a candidate among stored siblings.

        Args:
            candidate: Proposed series window
            main_event_guid: Main event GUID (evt_xxx)
            is_edit: True when the candidate replaces series_guid
            series_guid: Series being edited

        Returns:
            1-based sequence number

        Raises:
            NotFoundError: If the main event does not exist
            ValidationError: If the candidate start date cannot be parsed
        """
        number = compute_sequence_number(
            candidate,
            self._siblings(main_event_guid),
            self.clock.now(),
            exclude_guid=series_guid if is_edit else None,
        )
        logger.debug(
            "Computed sequence number",
            extra={
                "event_guid": main_event_guid,
                "series_guid": series_guid,
                "sequence_number": number,
            }
        )
        return number

    def get_display_order(self, main_event_guid: str) -> Dict[str, Optional[int]]:
        """Number all stored series of a main event."""
        return compute_display_order(self._siblings(main_event_guid), self.clock.now())

    def suggest_next_window(self, main_event_guid: str) -> Optional[Tuple[datetime, datetime]]:
        """Suggest a window following the latest-starting stored series."""
        return suggest_next_window(self._siblings(main_event_guid))
