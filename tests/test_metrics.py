"""Tests for the margin metrics aggregator."""

import datetime

import pytest
from margindefense import metrics
from margindefense.models import Client, Organization, Project, Snapshot, WorkLog
from margindefense.store import InMemoryStore

NOW = datetime.datetime(2026, 10, 19, 12, 0, tzinfo=datetime.timezone.utc)


def days_ago(n):
    return NOW - datetime.timedelta(days=n)


def make_store():
    # A rate of 60/h makes cost_impact equal to duration_minutes
    store = InMemoryStore(
        organization=Organization(id="org-1", name="Test Agency", global_hourly_cost=60),
        clients=[
            Client(id="c1", organization_id="org-1", name="Alpha"),
            Client(id="c2", organization_id="org-1", name="Beta"),
        ],
    )
    store.create_work_log("Designed landing page", 300, client_id="c1", project_id="p1", created_at=days_ago(1))
    store.create_work_log("Weekly team sync meeting", 100, client_id="c1", project_id="p1", created_at=days_ago(2))
    store.create_work_log("Debugging checkout bug", 200, client_id="c2", created_at=days_ago(3))
    store.create_work_log("Weekly team sync meeting", 500, client_id="c2", created_at=days_ago(20))
    store.create_work_log("Lunch", 30, created_at=days_ago(1))
    store.create_scope_request("Blog", client_id="c1", estimated_hours=2, created_at=days_ago(40))
    rejected = store.create_scope_request("Dark mode", client_id="c2", estimated_hours=5)
    store.resolve_scope_request(rejected.id, "rejected")
    return store


class TestPeriodMetrics:
    def setup_method(self):
        self.snapshot = make_store().snapshot()

    def test_totals_in_window(self):
        m = metrics.period_metrics(self.snapshot, 7, now=NOW)
        assert m.total_revenue_secure == 300
        assert m.total_margin_burn == 300
        assert m.burn_ratio == 50.0
        assert m.billable_ratio == 50.0

    def test_wider_window(self):
        m = metrics.period_metrics(self.snapshot, 30, now=NOW)
        assert m.total_margin_burn == 800
        assert m.burn_ratio == pytest.approx(800 / 1100 * 100)

    def test_pending_requests_ignore_window(self):
        m = metrics.period_metrics(self.snapshot, 1, now=NOW)
        assert m.scope_requests_pending == 1
        assert m.scope_requests_value == 120

    def test_client_filter(self):
        m = metrics.period_metrics(self.snapshot, 7, now=NOW, client_id="c2")
        assert m.total_revenue_secure == 0
        assert m.total_margin_burn == 200
        assert m.burn_ratio == 100.0
        assert m.scope_requests_pending == 0

    def test_empty_window_is_zero(self):
        m = metrics.period_metrics(InMemoryStore(Organization(id="o", name="Empty")).snapshot(), 7, now=NOW)
        d = m.to_dict()
        assert d["total_revenue_secure"] == 0
        assert d["total_margin_burn"] == 0
        assert d["burn_ratio"] == 0

    def test_period_bounds(self):
        m = metrics.period_metrics(self.snapshot, 7, now=NOW)
        assert m.period_end == NOW
        assert m.period_start == days_ago(7)

    @pytest.mark.parametrize("days", [0.5, 1, 2, 7, 30, 365])
    def test_burn_ratio_bounds(self, days):
        m = metrics.period_metrics(self.snapshot, days, now=NOW)
        assert 0.0 <= m.burn_ratio <= 100.0


class TestBurnBySubReason:
    def setup_method(self):
        self.snapshot = make_store().snapshot()

    def test_grouped_and_sorted(self):
        rows = metrics.burn_by_sub_reason(self.snapshot, 7, now=NOW)
        assert [r.burn_reason for r in rows] == ["rework", "internal_meeting"]
        assert rows[0].total_cost == 200
        assert rows[0].count == 1
        assert rows[0].percentage == pytest.approx(200 / 300 * 100)

    def test_wider_window_merges_groups(self):
        rows = metrics.burn_by_sub_reason(self.snapshot, 30, now=NOW)
        assert rows[0].burn_reason == "internal_meeting"
        assert rows[0].total_cost == 600
        assert rows[0].count == 2

    def test_empty(self):
        assert metrics.burn_by_sub_reason(self.snapshot, 0.01, now=NOW) == []


class TestBurnByClient:
    def setup_method(self):
        self.snapshot = make_store().snapshot()

    def test_sorted_by_burn(self):
        rows = metrics.burn_by_client(self.snapshot, 7, now=NOW)
        assert [r.client_id for r in rows] == ["c2", "c1"]
        assert rows[0].client_name == "Beta"
        assert rows[0].total_burn == 200
        assert rows[0].total_billable == 0
        assert rows[1].total_billable == 300
        assert rows[1].burn_ratio == 25.0

    def test_logs_without_client_skipped(self):
        rows = metrics.burn_by_client(self.snapshot, 7, now=NOW)
        assert all(r.client_id for r in rows)

    def test_unknown_client_named(self):
        store = make_store()
        store.create_work_log("Weekly team sync meeting", 10, client_id="ghost", created_at=days_ago(1))
        rows = metrics.burn_by_client(store.snapshot(), 7, now=NOW)
        assert any(r.client_name == "Unknown" for r in rows)


class TestHallOfShame:
    def setup_method(self):
        self.snapshot = make_store().snapshot()

    def test_all_time_top_n(self):
        rows = metrics.hall_of_shame(self.snapshot, limit=2)
        assert [r.cost_impact for r in rows] == [500, 200]
        assert rows[0].client_name == "Beta"

    def test_non_increasing(self):
        rows = metrics.hall_of_shame(self.snapshot, limit=10)
        costs = [r.cost_impact for r in rows]
        assert costs == sorted(costs, reverse=True)
        assert all(r.category in ("margin_burn", "scope_risk") for r in rows)

    def test_ties_keep_record_order(self):
        store = make_store()
        later = store.create_work_log("Weekly team sync meeting", 500, created_at=days_ago(1))
        rows = metrics.hall_of_shame(store.snapshot(), limit=2)
        assert rows[0].cost_impact == rows[1].cost_impact == 500
        assert rows[1].id == later.id

    def test_project_name_joined(self):
        store = make_store()
        store.add_project(Project(id="p1", client_id="c1", name="Website", total_budget=1000))
        rows = metrics.hall_of_shame(store.snapshot(), limit=10)
        assert "Website" in [r.project_name for r in rows]

    def test_zero_limit(self):
        assert metrics.hall_of_shame(self.snapshot, limit=0) == []


class TestDailyTrend:
    def test_one_point_per_day_oldest_first(self):
        points = metrics.daily_trend(make_store().snapshot(), 7, now=NOW)
        assert len(points) == 7
        assert points[-1].date == NOW.date()
        assert points[0].date == (NOW - datetime.timedelta(days=6)).date()

    def test_quiet_day_is_fully_billable(self):
        points = metrics.daily_trend(make_store().snapshot(), 7, now=NOW)
        assert points[-1].billable_ratio == 100.0

    def test_day_totals(self):
        points = {p.date: p for p in metrics.daily_trend(make_store().snapshot(), 7, now=NOW)}
        yesterday = points[days_ago(1).date()]
        assert yesterday.revenue_secure == 300
        assert yesterday.margin_burn == 0


def raw_log(log_id, category, cost, created_at, client_id=None):
    return WorkLog(
        id=log_id,
        description=log_id,
        duration_minutes=cost,
        hourly_rate=60,
        cost_impact=cost,
        category=category,
        burn_reason="internal_meeting" if category == "margin_burn" else None,
        confidence=0.7,
        rationale="",
        created_at=created_at,
        client_id=client_id,
    )


class TestSnapshotTimestamps:
    """Snapshots built outside the store may carry naive or non-UTC timestamps."""

    def setup_method(self):
        naive_yesterday = datetime.datetime(2026, 10, 18, 12, 0)
        self.snapshot = Snapshot(
            organization=Organization(id="org-1", name="Test Agency"),
            clients=[Client(id="c1", organization_id="org-1", name="Alpha")],
            work_logs=[
                raw_log("w1", "billable", 100, naive_yesterday, "c1"),
                raw_log("w2", "margin_burn", 50, naive_yesterday, "c1"),
                raw_log("w3", "margin_burn", 70, datetime.datetime(2026, 9, 1, 9, 0)),
            ],
        )

    def test_naive_period_metrics(self):
        m = metrics.period_metrics(self.snapshot, 7, now=NOW)
        assert m.total_revenue_secure == 100
        assert m.total_margin_burn == 50

    def test_naive_breakdowns(self):
        assert metrics.burn_by_sub_reason(self.snapshot, 7, now=NOW)[0].total_cost == 50
        assert metrics.burn_by_client(self.snapshot, 7, now=NOW)[0].total_burn == 50

    def test_naive_trend(self):
        points = metrics.daily_trend(self.snapshot, 3, now=NOW)
        assert points[1].date == datetime.date(2026, 10, 18)
        assert points[1].revenue_secure == 100

    def test_trend_buckets_by_utc_day(self):
        # 23:30 on the 18th at UTC-5 is 04:30 on the 19th in UTC
        eastern = datetime.timezone(datetime.timedelta(hours=-5))
        late = datetime.datetime(2026, 10, 18, 23, 30, tzinfo=eastern)
        snapshot = Snapshot(
            organization=Organization(id="org-1", name="Test Agency"),
            work_logs=[raw_log("w1", "billable", 100, late)],
        )
        points = metrics.daily_trend(snapshot, 2, now=NOW)
        assert points[-1].date == NOW.date()
        assert points[-1].revenue_secure == 100
        assert points[0].revenue_secure == 0


class TestHugeWindow:
    def setup_method(self):
        self.snapshot = make_store().snapshot()

    @pytest.mark.parametrize("days", [1_000_000, 1e12])
    def test_window_clamped(self, days):
        m = metrics.period_metrics(self.snapshot, days, now=NOW)
        assert m.total_margin_burn == 800
        assert m.period_start == datetime.datetime.min.replace(tzinfo=datetime.timezone.utc)

    def test_breakdowns_clamped(self):
        assert sum(r.total_cost for r in metrics.burn_by_sub_reason(self.snapshot, 1e12, now=NOW)) == 800
        assert len(metrics.burn_by_client(self.snapshot, 1e12, now=NOW)) == 2

    def test_window_start(self):
        assert metrics.window_start(NOW, 1) == days_ago(1)
