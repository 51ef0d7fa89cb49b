"""
Integration tests for Series API endpoints.

Tests end-to-end flows for series scheduling:
- Single and batch validation
- Sequence number computation
- Create/update with confirmation of main event extension
"""

from datetime import timedelta


def _iso(value):
    return value.isoformat() + "Z"


def _candidate(name, start, end):
    return {"name": name, "start_date": _iso(start), "end_date": _iso(end)}


class TestValidateSeriesAPI:
    """Integration tests for POST /api/events/{guid}/series/validate"""

    def test_valid_candidate(self, test_client, sample_event):
        event = sample_event()

        response = test_client.post(
            f"/api/events/{event.guid}/series/validate",
            json={"candidate": _candidate("Heats", event.start_date, event.start_date + timedelta(hours=2))},
        )
        assert response.status_code == 200

        result = response.json()
        assert result["valid"] is True
        assert result["errors"] == []
        assert result["new_main_event_end_date"] is None

    def test_past_start(self, test_client, sample_event, fixed_clock):
        event = sample_event()
        now = fixed_clock.now()

        result = test_client.post(
            f"/api/events/{event.guid}/series/validate",
            json={"candidate": _candidate("Heats", now - timedelta(hours=1), now + timedelta(hours=1))},
        ).json()

        assert result["valid"] is False
        assert result["errors"] == ["starts_in_past"]

    def test_extension_reported(self, test_client, sample_event):
        event = sample_event()
        new_end = event.end_date + timedelta(days=3)

        result = test_client.post(
            f"/api/events/{event.guid}/series/validate",
            json={"candidate": _candidate("Finals", event.end_date - timedelta(hours=1), new_end)},
        ).json()

        assert result["valid"] is True
        assert result["warnings"] == ["extends_parent_end"]
        assert result["auto_extend_main_event"] is True
        assert result["new_main_event_end_date"] == _iso(new_end)

    def test_invalid_date_string(self, test_client, sample_event):
        event = sample_event()

        result = test_client.post(
            f"/api/events/{event.guid}/series/validate",
            json={"candidate": {"name": "Heats", "start_date": "next tuesday", "end_date": "2026-11-02T12:00:00Z"}},
        ).json()

        assert result["errors"] == ["invalid_date_format"]

    def test_unknown_event(self, test_client):
        response = test_client.post(
            "/api/events/evt_01hgw2bbg00000000000000001/series/validate",
            json={"candidate": {"start_date": "2026-11-02T10:00:00Z", "end_date": "2026-11-02T12:00:00Z"}},
        )
        assert response.status_code == 404


class TestBatchValidateAPI:
    """Integration tests for POST /api/events/{guid}/series/batch-validate"""

    def test_batch(self, test_client, sample_event):
        event = sample_event()
        start = event.start_date

        response = test_client.post(
            f"/api/events/{event.guid}/series/batch-validate",
            json={"candidates": [
                _candidate("Round 1", start, start + timedelta(hours=3)),
                _candidate("Round 2", start + timedelta(hours=2), start + timedelta(hours=4)),
            ]},
        )
        assert response.status_code == 200

        result = response.json()
        assert result["valid"] is True
        assert result["items"][1]["result"]["warnings"] == ["overlaps_sibling"]

    def test_empty_batch_rejected(self, test_client, sample_event):
        event = sample_event()

        response = test_client.post(f"/api/events/{event.guid}/series/batch-validate", json={"candidates": []})
        assert response.status_code == 422

    def test_unknown_event(self, test_client):
        response = test_client.post(
            "/api/events/evt_01hgw2bbg00000000000000001/series/batch-validate",
            json={"candidates": [{"start_date": "2026-11-02T10:00:00Z", "end_date": "2026-11-02T12:00:00Z"}]},
        )
        assert response.status_code == 404


class TestEventWindowAPI:
    """Integration tests for event window and check-in validation"""

    def test_event_start_within_grace(self, test_client, fixed_clock):
        now = fixed_clock.now()

        response = test_client.post(
            "/api/events/validate-window",
            json={"start_date": _iso(now - timedelta(seconds=30)), "end_date": _iso(now + timedelta(days=1))},
        )
        assert response.status_code == 200
        assert response.json()["valid"] is True

    def test_event_start_in_past(self, test_client, fixed_clock):
        now = fixed_clock.now()

        result = test_client.post(
            "/api/events/validate-window",
            json={"start_date": _iso(now - timedelta(hours=1)), "end_date": _iso(now + timedelta(days=1))},
        ).json()
        assert result["errors"] == ["starts_in_past"]

    def test_checkin_outside_event(self, test_client, sample_event):
        event = sample_event()

        result = test_client.post(
            "/api/events/validate-checkin",
            json={
                "checkin_start": _iso(event.start_date - timedelta(hours=1)),
                "checkin_end": _iso(event.start_date + timedelta(hours=1)),
                "event_start": _iso(event.start_date),
                "event_end": _iso(event.end_date),
            },
        ).json()
        assert result["valid"] is True
        assert result["warnings"] == ["checkin_starts_before_event"]


class TestSequenceAPI:
    """Integration tests for POST /api/events/{guid}/series/sequence"""

    def test_sequence(self, test_client, sample_event, sample_series):
        event = sample_event()
        sample_series(event, name="Quarters", start_date=event.start_date)
        semis_start = event.start_date + timedelta(days=1)

        response = test_client.post(
            f"/api/events/{event.guid}/series/sequence",
            json={"candidate": _candidate("Semis", semis_start, semis_start + timedelta(hours=2))},
        )
        assert response.status_code == 200
        assert response.json() == {"sequence_number": 2}

    def test_bad_start_date(self, test_client, sample_event):
        event = sample_event()

        response = test_client.post(
            f"/api/events/{event.guid}/series/sequence",
            json={"candidate": {"name": "Semis", "start_date": "soon", "end_date": "later"}},
        )
        assert response.status_code == 400


class TestSaveSeriesAPI:
    """Integration tests for series create/update"""

    def test_create(self, test_client, sample_event):
        event = sample_event()

        response = test_client.post(
            f"/api/events/{event.guid}/series",
            json={"candidate": _candidate("Heats", event.start_date, event.start_date + timedelta(hours=2))},
        )
        assert response.status_code == 201

        body = response.json()
        assert body["saved"] is True
        assert body["sequence_number"] == 1
        assert body["series"]["guid"].startswith("ser_")
        assert body["series"]["lifecycle_status"] == "draft"

    def test_create_invalid(self, test_client, sample_event):
        event = sample_event()
        start = event.start_date

        response = test_client.post(
            f"/api/events/{event.guid}/series",
            json={"candidate": _candidate("Heats", start + timedelta(hours=2), start)},
        )
        assert response.status_code == 422
        assert response.json()["validation"]["errors"] == ["end_before_start"]

    def test_create_requires_confirmation_then_extends(self, test_client, sample_event, test_db_session):
        event = sample_event()
        new_end = event.end_date + timedelta(days=2)
        candidate = _candidate("Finals", event.end_date - timedelta(hours=2), new_end)

        first = test_client.post(f"/api/events/{event.guid}/series", json={"candidate": candidate})
        assert first.status_code == 409
        assert first.json()["requires_confirmation"] is True

        second = test_client.post(
            f"/api/events/{event.guid}/series",
            json={"candidate": candidate, "accept_extension": True},
        )
        assert second.status_code == 201
        assert second.json()["main_event_extended"] is True

        test_db_session.refresh(event)
        assert event.end_date == new_end

    def test_create_without_name(self, test_client, sample_event):
        event = sample_event()

        response = test_client.post(
            f"/api/events/{event.guid}/series",
            json={"candidate": {"start_date": _iso(event.start_date), "end_date": _iso(event.end_date)}},
        )
        assert response.status_code == 400

    def test_update(self, test_client, sample_event, sample_series):
        event = sample_event()
        series = sample_series(event, name="Heats", start_date=event.start_date)
        new_start = event.start_date + timedelta(hours=3)

        response = test_client.put(
            f"/api/series/{series.guid}",
            json={
                "candidate": _candidate("Heats", new_start, new_start + timedelta(hours=1)),
                "lifecycle_status": "scheduled",
            },
        )
        assert response.status_code == 200

        body = response.json()
        assert body["series"]["start_date"] == _iso(new_start)
        assert body["series"]["lifecycle_status"] == "scheduled"

    def test_update_unknown_series(self, test_client):
        response = test_client.put(
            "/api/series/ser_01hgw2bbg00000000000000001",
            json={"candidate": {"start_date": "2026-11-02T10:00:00Z", "end_date": "2026-11-02T12:00:00Z"}},
        )
        assert response.status_code == 404
