"""
Margin engine facade.

Orchestrates: store snapshot → metrics → client risk → alerts → report

Usage:
    from margindefense.data_loader import load_demo_store
    from margindefense.pipeline import MarginEngine

    engine = MarginEngine(load_demo_store())
    engine.print_report()

Each entry point takes a fresh snapshot of the store, so results always
reflect the current record set. Metrics and risk scoring read the same
snapshot independently and have no ordering dependency on each other.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import List, Optional

from margindefense import metrics
from margindefense.alerts import AlertGenerator, MarginAlert
from margindefense.classifier import ClassificationResult, RuleBasedClassifier, burn_reason_label
from margindefense.config import DEFAULT_THRESHOLDS, Thresholds
from margindefense.cost import compute_cost_impact, format_currency
from margindefense.risk_scorer import ClientHealthMetrics, RiskScorer
from margindefense.store import InMemoryStore


@dataclass
class CommandCenterMetrics:
    """Headline KPIs comparing the current window with the one before it."""
    billable_ratio: float
    billable_ratio_trend: str   # up | down | stable
    at_risk_revenue: float
    efficiency_score: int
    revenue_secure_delta: float
    margin_burn_delta: float
    active_alerts: int
    critical_alerts: int
    healthy_clients: int
    at_risk_clients: int
    total_clients: int

    def to_dict(self) -> dict:
        return {
            "billable_ratio": round(self.billable_ratio, 2),
            "billable_ratio_trend": self.billable_ratio_trend,
            "at_risk_revenue": round(self.at_risk_revenue, 2),
            "efficiency_score": self.efficiency_score,
            "revenue_secure_delta": round(self.revenue_secure_delta, 2),
            "margin_burn_delta": round(self.margin_burn_delta, 2),
            "active_alerts": self.active_alerts,
            "critical_alerts": self.critical_alerts,
            "healthy_clients": self.healthy_clients,
            "at_risk_clients": self.at_risk_clients,
            "total_clients": self.total_clients,
        }


class MarginEngine:
    """
    Stateless analytics over an `InMemoryStore`.

    The engine keeps no derived state between calls; every method recomputes
    from a snapshot.
    """

    def __init__(self, store: InMemoryStore, thresholds: Thresholds = DEFAULT_THRESHOLDS):
        self.store = store
        self.thresholds = thresholds
        self.classifier = RuleBasedClassifier()
        self.risk_scorer = RiskScorer(thresholds)
        self.alert_generator = AlertGenerator(thresholds)

    def classify(self, description: str) -> ClassificationResult:
        return self.classifier.predict_one(description)

    @staticmethod
    def compute_cost_impact(duration_minutes: float, hourly_rate: float) -> float:
        return compute_cost_impact(duration_minutes, hourly_rate)

    def get_period_metrics(
        self,
        days: Optional[float] = None,
        client_id: Optional[str] = None,
        project_id: Optional[str] = None,
        now: Optional[datetime.datetime] = None,
    ) -> metrics.PeriodMetrics:
        days = self.thresholds.default_period_days if days is None else days
        return metrics.period_metrics(
            self.store.snapshot(), days, now=now, client_id=client_id, project_id=project_id
        )

    def get_burn_by_sub_reason(
        self,
        days: Optional[float] = None,
        client_id: Optional[str] = None,
        project_id: Optional[str] = None,
        now: Optional[datetime.datetime] = None,
    ) -> List[metrics.BurnBreakdown]:
        days = self.thresholds.default_period_days if days is None else days
        return metrics.burn_by_sub_reason(
            self.store.snapshot(), days, now=now, client_id=client_id, project_id=project_id
        )

    def get_burn_by_client(
        self,
        days: Optional[float] = None,
        project_id: Optional[str] = None,
        now: Optional[datetime.datetime] = None,
    ) -> List[metrics.ClientBurn]:
        days = self.thresholds.default_period_days if days is None else days
        return metrics.burn_by_client(self.store.snapshot(), days, now=now, project_id=project_id)

    def get_hall_of_shame(self, limit: Optional[int] = None) -> List[metrics.ShameEntry]:
        limit = self.thresholds.hall_of_shame_limit if limit is None else limit
        return metrics.hall_of_shame(self.store.snapshot(), limit)

    def get_trend(self, days: int = 7, now: Optional[datetime.datetime] = None) -> List[metrics.TrendPoint]:
        return metrics.daily_trend(self.store.snapshot(), days, now=now)

    def get_client_risk_metrics(self) -> List[ClientHealthMetrics]:
        return self.risk_scorer.score_all(self.store.snapshot())

    def get_alerts(
        self,
        days: Optional[float] = None,
        now: Optional[datetime.datetime] = None,
    ) -> List[MarginAlert]:
        """Alerts with the burn-ratio rule evaluated over `days` (alert window by default)."""
        return self.alert_generator.generate(self.store.snapshot(), now=now, days=days)

    def get_command_center_metrics(
        self,
        days: Optional[float] = None,
        now: Optional[datetime.datetime] = None,
    ) -> CommandCenterMetrics:
        days = self.thresholds.default_period_days if days is None else days
        snapshot = self.store.snapshot()
        current = metrics.period_metrics(snapshot, days, now=now)
        # The doubled window includes the current one; halving it approximates the previous period
        doubled = metrics.period_metrics(snapshot, days * 2, now=now)

        billable_ratio = current.billable_ratio
        previous_ratio = doubled.billable_ratio
        band = self.thresholds.billable_trend_band_pct
        if billable_ratio > previous_ratio + band:
            trend = "up"
        elif billable_ratio < previous_ratio - band:
            trend = "down"
        else:
            trend = "stable"

        project_overrun = sum(
            max(0.0, p.current_spend - p.total_budget)
            for p in snapshot.projects
            if p.margin_health in ("underwater", "critical")
        )

        clients = self.risk_scorer.score_all(snapshot)
        alerts = self.alert_generator.generate(snapshot, metrics=current, now=now)

        return CommandCenterMetrics(
            billable_ratio=billable_ratio,
            billable_ratio_trend=trend,
            at_risk_revenue=project_overrun + current.scope_requests_value,
            efficiency_score=min(100, round(billable_ratio * 1.2)),
            revenue_secure_delta=current.total_revenue_secure - doubled.total_revenue_secure / 2,
            margin_burn_delta=current.total_margin_burn - doubled.total_margin_burn / 2,
            active_alerts=len(alerts),
            critical_alerts=sum(1 for a in alerts if a.severity in ("critical", "emergency")),
            healthy_clients=sum(1 for c in clients if c.health in ("excellent", "good")),
            at_risk_clients=sum(1 for c in clients if c.health in ("warning", "critical")),
            total_clients=len(snapshot.clients),
        )

    def print_report(self, days: Optional[float] = None, top: Optional[int] = None) -> None:
        """Pretty-print margin metrics, client health and alerts to stdout."""
        symbol = self.store.organization.currency_symbol
        period = self.get_period_metrics(days)
        by_reason = self.get_burn_by_sub_reason(days)
        shame = self.get_hall_of_shame(top)
        clients = self.get_client_risk_metrics()
        alerts = self.get_alerts(days)
        window = self.thresholds.default_period_days if days is None else days

        print("\n" + "=" * 80)
        print(f"MARGIN DEFENSE REPORT — {self.store.organization.name}")
        print("=" * 80)

        print(f"\nLast {window:g} days")
        print(f"Revenue secure: {format_currency(period.total_revenue_secure, symbol)} | "
              f"Margin burn: {format_currency(period.total_margin_burn, symbol)} | "
              f"Burn ratio: {period.burn_ratio:.1f}%")
        print(f"Pending scope requests: {period.scope_requests_pending} "
              f"({format_currency(period.scope_requests_value, symbol)} at risk)")

        if by_reason:
            print(f"\n{'─' * 80}")
            print("BURN BY REASON")
            print(f"{'─' * 80}")
            for row in by_reason:
                print(f"  {burn_reason_label(row.burn_reason):22s} "
                      f"{format_currency(row.total_cost, symbol):>12s}  "
                      f"{row.count:3d} logs  {row.percentage:5.1f}%")

        print(f"\n{'─' * 80}")
        print("HALL OF SHAME")
        print(f"{'─' * 80}")
        for i, entry in enumerate(shame, 1):
            print(f"{i}. {format_currency(entry.cost_impact, symbol):>10s}  {entry.description[:60]}")
            print(f"   {burn_reason_label(entry.burn_reason)} | {entry.client_name or 'No client'}")

        print(f"\n{'─' * 80}")
        print("CLIENT HEALTH")
        print(f"{'─' * 80}")
        for c in sorted(clients, key=lambda c: c.risk_score, reverse=True):
            print(f"  [{c.health.upper():9s}] {c.client_name:28s} risk={c.risk_score:3d} "
                  f"margin={c.margin_percentage:5.1f}% pending={c.pending_scope_requests} "
                  f"({c.sentiment})")

        print(f"\n{'─' * 80}")
        print(f"ALERTS ({len(alerts)})")
        print(f"{'─' * 80}")
        for a in alerts:
            print(f"  [{a.severity.upper():8s}] {a.title}")
            print(f"    {a.description} → {a.suggested_action}")

        print("=" * 80 + "\n")
