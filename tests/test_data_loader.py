"""Tests for the demo dataset and JSON loader."""

import datetime
import json

import pytest
from margindefense.data_loader import (
    BUILTIN_DATASET,
    build_store,
    load_demo_store,
    load_store_from_json,
)
from margindefense.models import ValidationError

NOW = datetime.datetime(2026, 10, 19, 12, 0, tzinfo=datetime.timezone.utc)


class TestDemoStore:
    def setup_method(self):
        self.store = load_demo_store(now=NOW)

    def test_counts(self):
        assert len(self.store.clients) == 3
        assert len(self.store.projects) == 3
        assert len(self.store.work_logs) == 14
        assert len(self.store.get_scope_requests("pending")) == 3

    def test_every_log_classified_and_costed(self):
        for log in self.store.work_logs:
            assert log.category in ("billable", "margin_burn", "scope_risk", "unclassified")
            assert log.hourly_rate == 75
            assert log.cost_impact == pytest.approx(log.duration_minutes / 60 * 75)

    def test_timestamps_relative_to_now(self):
        newest = self.store.get_work_logs()[0]
        assert newest.created_at == NOW - datetime.timedelta(hours=2)

    def test_scope_cost_frozen_at_org_rate(self):
        costs = sorted(r.estimated_cost for r in self.store.scope_requests)
        assert costs == [24 * 75, 40 * 75, 60 * 75]

    def test_burn_accumulated_on_clients(self):
        total = sum(c.accumulated_burn_total for c in self.store.clients)
        expected = sum(
            l.cost_impact for l in self.store.work_logs
            if l.category == "margin_burn" and l.client_id
        )
        assert total == pytest.approx(expected)


class TestBuildStore:
    def test_minimal(self):
        store = build_store({"organization": {"id": "o", "name": "Solo"}}, now=NOW)
        assert store.organization.global_hourly_cost == 50.0
        assert store.work_logs == []

    def test_missing_organization(self):
        with pytest.raises(ValidationError):
            build_store({"clients": []})

    def test_created_at_parsed_as_utc(self):
        data = {
            "organization": {"id": "o", "name": "Solo", "global_hourly_cost": 60},
            "work_logs": [
                {"description": "Weekly team sync meeting", "duration_minutes": 30,
                 "created_at": "2026-10-01T09:00:00"},
            ],
        }
        log = build_store(data, now=NOW).work_logs[0]
        assert log.created_at == datetime.datetime(2026, 10, 1, 9, 0, tzinfo=datetime.timezone.utc)
        assert log.cost_impact == 30

    def test_invalid_log_rejected(self):
        data = {
            "organization": {"id": "o", "name": "Solo"},
            "work_logs": [{"description": "Weekly sync", "duration_minutes": 0}],
        }
        with pytest.raises(ValidationError):
            build_store(data, now=NOW)


class TestLoadFromJson:
    def test_round_trip_file(self, tmp_path):
        path = tmp_path / "agency.json"
        path.write_text(json.dumps(BUILTIN_DATASET))
        store = load_store_from_json(path, now=NOW)
        assert store.organization.name == "Acme Digital Agency"
        assert len(store.work_logs) == 14

    def test_accepts_str_path(self, tmp_path):
        path = tmp_path / "agency.json"
        path.write_text(json.dumps({"organization": {"id": "o", "name": "Solo"}}))
        assert load_store_from_json(str(path)).organization.id == "o"
