"""
Unit tests for the clock abstraction, settings and GUID mixin.
"""

import uuid

import pytest
from datetime import datetime, timedelta, timezone

from freezegun import freeze_time
from pydantic import ValidationError

from eventcore.src.config.settings import AppSettings
from eventcore.src.models import Event, EventSeries
from eventcore.src.models.mixins.guid import decode_guid, encode_guid
from eventcore.src.utils.clock import FixedClock, SystemClock, to_utc_naive


class TestClock:
    """Tests for Clock implementations"""

    def test_to_utc_naive_converts_aware(self):
        aware = datetime(2026, 11, 2, 10, 0, tzinfo=timezone(timedelta(hours=2)))
        assert to_utc_naive(aware) == datetime(2026, 11, 2, 8, 0)

    def test_to_utc_naive_keeps_naive(self):
        naive = datetime(2026, 11, 2, 10, 0)
        assert to_utc_naive(naive) is naive

    @freeze_time("2026-11-01 12:00:00")
    def test_system_clock_is_naive_utc(self):
        now = SystemClock().now()
        assert now.tzinfo is None
        assert now == datetime(2026, 11, 1, 12, 0)

    def test_fixed_clock_advance_and_set(self):
        clock = FixedClock(datetime(2026, 11, 1, 12, 0))
        clock.advance(hours=2)
        assert clock.now() == datetime(2026, 11, 1, 14, 0)

        clock.set(datetime(2026, 11, 5, 0, 0, tzinfo=timezone.utc))
        assert clock.now() == datetime(2026, 11, 5, 0, 0)


class TestAppSettings:
    """Tests for AppSettings"""

    def test_defaults(self, monkeypatch):
        for name in (
            "EVENTCORE_SWEEP_INTERVAL_SECONDS",
            "EVENTCORE_PRE_EVENT_LEAD_HOURS",
            "EVENTCORE_SERIES_OVERLAP_POLICY",
            "EVENTCORE_PAST_START_GRACE_SECONDS",
        ):
            monkeypatch.delenv(name, raising=False)

        settings = AppSettings()

        assert settings.sweep_interval_seconds == 120
        assert settings.pre_event_lead_hours == 24
        assert settings.series_overlap_policy == "advisory"
        assert settings.strict_overlap is False
        assert settings.past_start_grace_seconds == 60

    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("EVENTCORE_SERIES_OVERLAP_POLICY", "strict")
        monkeypatch.setenv("EVENTCORE_SWEEP_INTERVAL_SECONDS", "30")

        settings = AppSettings()

        assert settings.strict_overlap is True
        assert settings.sweep_interval_seconds == 30

    def test_interval_bounds(self):
        with pytest.raises(ValidationError):
            AppSettings(sweep_interval_seconds=1)

    def test_unknown_overlap_policy(self):
        with pytest.raises(ValidationError):
            AppSettings(series_overlap_policy="lenient")


class TestGuids:
    """Tests for GUID generation and parsing"""

    def test_prefixes(self, sample_event, sample_series):
        event = sample_event()
        series = sample_series(event)

        assert event.guid.startswith("evt_")
        assert series.guid.startswith("ser_")
        assert len(event.guid) == 4 + 26

    def test_round_trip(self, sample_event):
        event = sample_event()
        assert Event.parse_guid(event.guid) == event.uuid

    def test_wrong_prefix(self, sample_event):
        event = sample_event()
        with pytest.raises(ValueError):
            EventSeries.parse_guid(event.guid)

    def test_parse_is_case_insensitive(self, sample_event):
        event = sample_event()
        assert Event.parse_guid(event.guid.upper().replace("EVT_", "evt_")) == event.uuid

    @pytest.mark.parametrize("guid", ["", "evt", "evt_short", "evt_" + "u" * 26])
    def test_malformed(self, guid):
        with pytest.raises(ValueError):
            Event.parse_guid(guid)

    def test_encode_pads_to_fixed_length(self):
        assert encode_guid("ser", uuid.UUID(int=1)) == "ser_" + "0" * 25 + "1"
        assert decode_guid("ser", "ser_" + "0" * 25 + "1") == uuid.UUID(int=1)

    def test_query_by_guid(self, test_db_session, sample_event):
        event = sample_event()

        assert Event.query_by_guid(test_db_session, event.guid).first().id == event.id
        assert Event.query_by_guid(test_db_session, "ser_" + "0" * 26) is None
