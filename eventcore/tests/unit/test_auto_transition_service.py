"""
Unit tests for AutoTransitionService and AutoTransitionScheduler.

Tests:
- Rule selection (next_auto_transition)
- Sweep transitions and counts
- Idempotence of consecutive sweeps
- Opt-out and failure isolation
- Scheduler pass locking and lifecycle
"""

import asyncio
import threading
import pytest
from datetime import timedelta

from eventcore.src.models import EventStateTransition, LifecycleStatus
from eventcore.src.services.auto_transition_service import (
    AUTO_TRANSITION_ACTOR,
    REASON_EVENT_ENDED,
    REASON_EVENT_STARTED,
    AutoTransitionScheduler,
    AutoTransitionService,
    SweepStats,
    next_auto_transition,
)
from eventcore.src.services.lifecycle_service import LifecycleService
from eventcore.src.services.sql_stores import SqlEventStore


S = LifecycleStatus
LEAD = timedelta(hours=24)


class TestNextAutoTransition:
    """Tests for the time-driven rule table"""

    def test_published_inside_lead_window(self, fixed_clock):
        now = fixed_clock.now()
        step = next_auto_transition("published", now + timedelta(hours=12), now + timedelta(days=1), now, LEAD)
        assert step == (S.PRE_EVENT, "24h before start")

    def test_published_exactly_at_lead_boundary(self, fixed_clock):
        now = fixed_clock.now()
        step = next_auto_transition("published", now + LEAD, now + LEAD * 2, now, LEAD)
        assert step[0] == S.PRE_EVENT

    def test_published_outside_lead_window(self, fixed_clock):
        now = fixed_clock.now()
        assert next_auto_transition("published", now + timedelta(hours=48), now + timedelta(days=3), now, LEAD) is None

    def test_published_already_started_is_left_alone(self, fixed_clock):
        now = fixed_clock.now()
        assert next_auto_transition("published", now - timedelta(hours=1), now + timedelta(hours=1), now, LEAD) is None

    def test_pre_event_at_start(self, fixed_clock):
        now = fixed_clock.now()
        assert next_auto_transition("pre_event", now, now + timedelta(hours=2), now, LEAD) == (S.LIVE, REASON_EVENT_STARTED)

    def test_live_at_end(self, fixed_clock):
        now = fixed_clock.now()
        step = next_auto_transition("live", now - timedelta(hours=3), now, now, LEAD)
        assert step == (S.CLOSING, REASON_EVENT_ENDED)

    @pytest.mark.parametrize("status", ["draft", "closing", "closed", "archived"])
    def test_other_statuses_never_move(self, fixed_clock, status):
        now = fixed_clock.now()
        assert next_auto_transition(status, now - timedelta(days=2), now - timedelta(days=1), now, LEAD) is None


class TestRunSweep:
    """Tests for AutoTransitionService.run_sweep"""

    def test_published_moves_to_pre_event(
        self, auto_transition_service, sample_event, fixed_clock, test_db_session
    ):
        event = sample_event(
            lifecycle_status=S.PUBLISHED,
            start_date=fixed_clock.now() + timedelta(hours=12),
        )

        stats = auto_transition_service.run_sweep()

        assert stats.to_pre_event == 1
        assert stats.total_transitions == 1
        test_db_session.refresh(event)
        assert event.lifecycle_status == "pre_event"
        assert event.status_changed_by == AUTO_TRANSITION_ACTOR

    def test_pre_event_moves_to_live(
        self, auto_transition_service, sample_event, fixed_clock, test_db_session
    ):
        event = sample_event(
            lifecycle_status=S.PRE_EVENT,
            start_date=fixed_clock.now() - timedelta(seconds=1),
        )

        stats = auto_transition_service.run_sweep()

        assert stats.to_live == 1
        test_db_session.refresh(event)
        assert event.lifecycle_status == "live"

    def test_live_moves_to_closing(
        self, auto_transition_service, sample_event, fixed_clock, test_db_session
    ):
        now = fixed_clock.now()
        event = sample_event(
            lifecycle_status=S.LIVE,
            start_date=now - timedelta(hours=5),
            end_date=now - timedelta(minutes=1),
        )

        stats = auto_transition_service.run_sweep()

        assert stats.to_closing == 1
        test_db_session.refresh(event)
        assert event.lifecycle_status == "closing"

    def test_pre_event_past_end_is_settled_to_closing(
        self, auto_transition_service, sample_event, fixed_clock, test_db_session
    ):
        now = fixed_clock.now()
        event = sample_event(
            lifecycle_status=S.PRE_EVENT,
            start_date=now - timedelta(hours=5),
            end_date=now - timedelta(hours=1),
        )

        stats = auto_transition_service.run_sweep()

        assert stats.to_live == 1
        assert stats.to_closing == 1
        test_db_session.refresh(event)
        assert event.lifecycle_status == "closing"

    def test_events_outside_rules_are_untouched(
        self, auto_transition_service, sample_event, fixed_clock, test_db_session
    ):
        now = fixed_clock.now()
        far = sample_event(lifecycle_status=S.PUBLISHED, start_date=now + timedelta(days=5))
        draft = sample_event(lifecycle_status=S.DRAFT, start_date=now - timedelta(days=1))

        stats = auto_transition_service.run_sweep()

        assert stats.total_transitions == 0
        test_db_session.refresh(far)
        test_db_session.refresh(draft)
        assert far.lifecycle_status == "published"
        assert draft.lifecycle_status == "draft"

    def test_opted_out_event_is_skipped(
        self, auto_transition_service, sample_event, fixed_clock, test_db_session
    ):
        event = sample_event(
            lifecycle_status=S.PRE_EVENT,
            start_date=fixed_clock.now() - timedelta(hours=1),
            auto_transition_enabled=False,
        )

        stats = auto_transition_service.run_sweep()

        assert stats.total_transitions == 0
        test_db_session.refresh(event)
        assert event.lifecycle_status == "pre_event"

    def test_second_sweep_is_a_no_op(
        self, auto_transition_service, sample_event, fixed_clock
    ):
        now = fixed_clock.now()
        sample_event(lifecycle_status=S.PUBLISHED, start_date=now + timedelta(hours=2))
        sample_event(lifecycle_status=S.PRE_EVENT, start_date=now - timedelta(minutes=5))
        sample_event(
            lifecycle_status=S.LIVE,
            start_date=now - timedelta(days=1),
            end_date=now - timedelta(hours=1),
        )

        first = auto_transition_service.run_sweep()
        second = auto_transition_service.run_sweep()

        assert first.to_pre_event == 1
        assert first.to_live == 1
        assert first.to_closing == 1
        assert second.total_transitions == 0
        assert second.failed == 0

    def test_sweep_records_automated_history(
        self, auto_transition_service, sample_event, fixed_clock, test_db_session
    ):
        event = sample_event(
            lifecycle_status=S.PRE_EVENT,
            start_date=fixed_clock.now() - timedelta(minutes=1),
        )

        auto_transition_service.run_sweep()

        record = (
            test_db_session.query(EventStateTransition)
            .filter(EventStateTransition.event_id == event.id)
            .one()
        )
        assert record.automated is True
        assert record.changed_by == AUTO_TRANSITION_ACTOR
        assert record.reason == REASON_EVENT_STARTED
        assert record.changed_at == fixed_clock.now()

    def test_lead_hours_from_settings(
        self, event_store, lifecycle_service, fixed_clock, sample_event, test_db_session
    ):
        from eventcore.src.config.settings import AppSettings

        settings = AppSettings(sweep_enabled=False, pre_event_lead_hours=72)
        service = AutoTransitionService(event_store, lifecycle_service, fixed_clock, settings)
        event = sample_event(
            lifecycle_status=S.PUBLISHED,
            start_date=fixed_clock.now() + timedelta(hours=48),
        )

        stats = service.run_sweep()

        assert stats.to_pre_event == 1
        test_db_session.refresh(event)
        assert event.lifecycle_status == "pre_event"

    def test_failure_on_one_event_does_not_stop_the_pass(
        self, test_db_session, tx, fixed_clock, test_settings, sample_event
    ):
        now = fixed_clock.now()
        bad = sample_event(name="Bad", lifecycle_status=S.PRE_EVENT, start_date=now - timedelta(hours=2))
        good = sample_event(name="Good", lifecycle_status=S.PRE_EVENT, start_date=now - timedelta(hours=1))
        bad_guid = bad.guid

        class FlakyStore(SqlEventStore):
            def update_status(self, guid, *args, **kwargs):
                if guid == bad_guid:
                    raise RuntimeError("connection reset")
                return super().update_status(guid, *args, **kwargs)

        store = FlakyStore(test_db_session)
        service = AutoTransitionService(
            store, LifecycleService(store, tx, fixed_clock), fixed_clock, test_settings
        )

        stats = service.run_sweep()

        assert stats.failed == 1
        assert stats.to_live == 1
        assert bad_guid in stats.errors[0]
        test_db_session.refresh(bad)
        test_db_session.refresh(good)
        assert bad.lifecycle_status == "pre_event"
        assert good.lifecycle_status == "live"


class TestAutoTransitionScheduler:
    """Tests for the periodic scheduler"""

    def test_run_pass_uses_own_session(
        self, test_session_factory, fixed_clock, test_settings, sample_event, test_db_session
    ):
        event = sample_event(
            lifecycle_status=S.PRE_EVENT,
            start_date=fixed_clock.now() - timedelta(minutes=1),
        )
        scheduler = AutoTransitionScheduler(test_session_factory, settings=test_settings, clock=fixed_clock)

        stats = scheduler.run_pass()

        assert stats.skipped is False
        assert stats.to_live == 1
        test_db_session.refresh(event)
        assert event.lifecycle_status == "live"

    def test_overlapping_pass_is_skipped(self, test_session_factory, fixed_clock, test_settings):
        scheduler = AutoTransitionScheduler(test_session_factory, settings=test_settings, clock=fixed_clock)
        scheduler._pass_lock.acquire()
        try:
            stats = scheduler.run_pass()
        finally:
            scheduler._pass_lock.release()

        assert stats == SweepStats(skipped=True)

    def test_lock_released_after_pass(self, test_session_factory, fixed_clock, test_settings):
        scheduler = AutoTransitionScheduler(test_session_factory, settings=test_settings, clock=fixed_clock)

        scheduler.run_pass()

        assert scheduler._pass_lock.acquire(blocking=False)
        scheduler._pass_lock.release()

    def test_start_and_stop(self, test_session_factory, fixed_clock, test_settings):
        scheduler = AutoTransitionScheduler(test_session_factory, settings=test_settings, clock=fixed_clock)

        async def _run():
            await scheduler.start()
            assert scheduler.is_running is True
            await scheduler.stop()

        asyncio.run(_run())

        assert scheduler.is_running is False
        assert scheduler._task is None

    def test_loop_runs_passes(self, test_session_factory, fixed_clock, test_settings):
        scheduler = AutoTransitionScheduler(test_session_factory, settings=test_settings, clock=fixed_clock)
        scheduler.interval = 0.01
        passes = threading.Event()

        def _counting_pass():
            passes.set()
            return SweepStats()

        scheduler.run_pass = _counting_pass

        async def _run():
            await scheduler.start()
            for _ in range(100):
                if passes.is_set():
                    break
                await asyncio.sleep(0.01)
            await scheduler.stop()

        asyncio.run(_run())

        assert passes.is_set()
