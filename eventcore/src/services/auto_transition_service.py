"""
Auto-transition service for time-driven lifecycle changes.

Handles the business logic for:
- Scanning events opted into auto transitions
- Moving published -> pre_event inside the lead window before start
- Moving pre_event -> live at start and live -> closing at end
- Running the sweep on a fixed interval as a single background task

Design:
- Every step goes through LifecycleService, so the edge table is the only
  source of valid transitions
- One "now" per pass; each event is settled (stepped until no rule applies)
  so an immediate second pass performs zero transitions
- A failure on one event is rolled back, logged and counted; the pass goes on
- Passes never overlap: a tick that fires during a pass is skipped
"""

import asyncio
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Tuple

from sqlalchemy.orm import Session

from eventcore.src.config.settings import AppSettings, get_settings
from eventcore.src.models import LifecycleStatus
from eventcore.src.services.lifecycle_service import LifecycleService
from eventcore.src.services.sql_stores import SqlEventStore, SqlTransactionManager
from eventcore.src.services.stores import EventStore
from eventcore.src.utils.clock import Clock, SystemClock
from eventcore.src.utils.logging_config import get_logger


logger = get_logger("scheduler")


AUTO_TRANSITION_ACTOR = "system:auto-transition"
REASON_EVENT_STARTED = "event started"
REASON_EVENT_ENDED = "event ended"


@dataclass
class SweepStats:
    """
    Statistics from one sweep pass.

    Attributes:
        to_pre_event: Events moved published -> pre_event
        to_live: Events moved pre_event -> live
        to_closing: Events moved live -> closing
        failed: Events whose processing failed
        errors: Error messages for failed events
        skipped: True if the pass did not run because another was in flight
    """
    to_pre_event: int = 0
    to_live: int = 0
    to_closing: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)
    skipped: bool = False

    @property
    def total_transitions(self) -> int:
        """Total number of transitions committed."""
        return self.to_pre_event + self.to_live + self.to_closing


def next_auto_transition(
    status: str,
    start_date: datetime,
    end_date: datetime,
    now: datetime,
    lead: timedelta,
) -> Optional[Tuple[LifecycleStatus, str]]:
    """
    Decide the time-driven step for an event, if any.

    Args:
        status: Current lifecycle status value
        start_date: Event start
        end_date: Event end
        now: Instant of the pass
        lead: How long before start published events enter pre_event

    Returns:
        (target status, reason) or None when no rule applies
    """
    if status == LifecycleStatus.PUBLISHED.value and now < start_date <= now + lead:
        hours = int(lead.total_seconds() // 3600)
        return LifecycleStatus.PRE_EVENT, f"{hours}h before start"
    if status == LifecycleStatus.PRE_EVENT.value and start_date <= now:
        return LifecycleStatus.LIVE, REASON_EVENT_STARTED
    if status == LifecycleStatus.LIVE.value and end_date <= now:
        return LifecycleStatus.CLOSING, REASON_EVENT_ENDED
    return None


class AutoTransitionService:
    """
    Service for one auto-transition sweep pass.

    Usage:
        >>> service = AutoTransitionService(event_store, lifecycle_service, clock)
        >>> stats = service.run_sweep()
        >>> print(stats.to_pre_event, stats.to_live, stats.to_closing)
    """

    def __init__(
        self,
        event_store: EventStore,
        lifecycle: LifecycleService,
        clock: Clock,
        settings: Optional[AppSettings] = None,
    ):
        """
        Initialize auto-transition service.

        Args:
            event_store: Event persistence interface (candidate listing)
            lifecycle: LifecycleService executing each step
            clock: Source of "now" for the pass
            settings: Application settings (lead window)
        """
        self.event_store = event_store
        self.lifecycle = lifecycle
        self.clock = clock
        self.settings = settings or get_settings()

    def run_sweep(self) -> SweepStats:
        """
        Run one pass over all auto-transition candidates.

        Returns:
            SweepStats with per-transition counts and failures
        """
        stats = SweepStats()
        now = self.clock.now()
        lead = timedelta(hours=self.settings.pre_event_lead_hours)

        candidates = self.event_store.list_auto_transition_candidates()

        for event in candidates:
            # Read everything needed up front; a rollback expires the instance
            snapshot = (
                event.guid,
                event.lifecycle_status,
                event.start_date,
                event.end_date,
                event.auto_transition_enabled,
            )
            try:
                self._settle_event(snapshot, now, lead, stats)
            except Exception as e:
                stats.failed += 1
                error_msg = f"Failed to auto-transition event {snapshot[0]}: {e}"
                stats.errors.append(error_msg)
                logger.error(
                    error_msg,
                    extra={"event_guid": snapshot[0], "status": snapshot[1]},
                    exc_info=True,
                )

        logger.info(
            "Auto-transition sweep completed",
            extra={
                "candidates": len(candidates),
                "to_pre_event": stats.to_pre_event,
                "to_live": stats.to_live,
                "to_closing": stats.to_closing,
                "failed": stats.failed,
            }
        )

        return stats

    def _settle_event(
        self,
        snapshot: Tuple[str, str, datetime, datetime, bool],
        now: datetime,
        lead: timedelta,
        stats: SweepStats,
    ) -> None:
        guid, status, start_date, end_date, enabled = snapshot
        if not enabled:
            return

        while True:
            step = next_auto_transition(status, start_date, end_date, now, lead)
            if step is None:
                return

            target, reason = step
            result = self.lifecycle.attempt_transition(
                guid,
                target,
                reason=reason,
                changed_by=AUTO_TRANSITION_ACTOR,
                automated=True,
            )
            if not result.success:
                stats.failed += 1
                stats.errors.append(f"Event {guid}: {result.message}")
                logger.warning(
                    "Auto-transition rejected",
                    extra={
                        "event_guid": guid,
                        "from_status": status,
                        "to_status": target.value,
                        "error": result.error.value if result.error else None,
                    }
                )
                return

            if target == LifecycleStatus.PRE_EVENT:
                stats.to_pre_event += 1
            elif target == LifecycleStatus.LIVE:
                stats.to_live += 1
            elif target == LifecycleStatus.CLOSING:
                stats.to_closing += 1

            status = target.value


def build_auto_transition_service(
    db: Session,
    clock: Optional[Clock] = None,
    settings: Optional[AppSettings] = None,
) -> AutoTransitionService:
    """Wire an AutoTransitionService over SQLAlchemy stores sharing one session."""
    clock = clock or SystemClock()
    event_store = SqlEventStore(db)
    lifecycle = LifecycleService(event_store, SqlTransactionManager(db), clock)
    return AutoTransitionService(event_store, lifecycle, clock, settings)


class AutoTransitionScheduler:
    """
    Runs sweep passes on a fixed interval.

    Each pass runs in a worker thread with its own session. A non-blocking
    lock guards run_pass(), so a manual trigger and a scheduled tick never
    process the event set concurrently. Ticks that fall inside a running pass
    are skipped, not queued.

    Usage:
        >>> scheduler = AutoTransitionScheduler(SessionLocal)
        >>> await scheduler.start()
        >>> ...
        >>> await scheduler.stop()
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        settings: Optional[AppSettings] = None,
        clock: Optional[Clock] = None,
    ):
        """
        Args:
            session_factory: Callable returning a new SQLAlchemy session
            settings: Application settings (interval, lead window)
            clock: Source of "now" passed to each pass
        """
        self.session_factory = session_factory
        self.settings = settings or get_settings()
        self.clock = clock or SystemClock()
        self.interval = self.settings.sweep_interval_seconds
        self.skipped_ticks = 0
        self._pass_lock = threading.Lock()
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._running

    def run_pass(self) -> SweepStats:
        """Run one pass now, or return skipped stats if one is in flight."""
        if not self._pass_lock.acquire(blocking=False):
            logger.info("Sweep pass already running, skipping")
            return SweepStats(skipped=True)

        try:
            db = self.session_factory()
            try:
                service = build_auto_transition_service(db, self.clock, self.settings)
                return service.run_sweep()
            finally:
                db.close()
        finally:
            self._pass_lock.release()

    async def start(self) -> None:
        """Start the periodic loop."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info(
            "Auto-transition scheduler started",
            extra={"interval_seconds": self.interval},
        )

    async def stop(self) -> None:
        """Stop the loop; a pass already executing in its thread finishes."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Auto-transition scheduler stopped")

    async def _loop(self) -> None:
        next_tick = time.monotonic() + self.interval

        while self._running:
            await asyncio.sleep(max(0.0, next_tick - time.monotonic()))

            if not self._running:
                break

            try:
                await asyncio.to_thread(self.run_pass)
            except Exception as e:
                logger.error(
                    f"Sweep pass failed: {e}",
                    exc_info=True,
                )

            # Fixed rate: drop ticks that elapsed while the pass was running
            next_tick += self.interval
            now = time.monotonic()
            while next_tick <= now:
                next_tick += self.interval
                self.skipped_ticks += 1
                logger.warning(
                    "Sweep tick skipped, previous pass still running",
                    extra={"skipped_ticks": self.skipped_ticks},
                )
