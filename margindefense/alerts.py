"""
Margin Alert Generator.

Stateless rules evaluated over projects, pending scope requests and the
period metrics. Alerts are regenerated on every call; acknowledging one is a
presentation concern and never written back.

Rules, in emission order:
  project_overrun      underwater project              → critical
  margin_threshold     warning project                 → warning
  scope_creep_pattern  client with ≥ 2 pending requests → critical at ≥ 3
  efficiency_drop      period burn ratio > 40%          → critical above 50%

Output is sorted by severity (emergency, critical, warning, info); the sort
is stable, so emission order breaks ties.
"""

from __future__ import annotations

import datetime
from collections import OrderedDict
from dataclasses import dataclass
from typing import List, Optional

from margindefense.config import DEFAULT_THRESHOLDS, Thresholds
from margindefense.cost import format_currency
from margindefense.metrics import PeriodMetrics, period_metrics
from margindefense.models import Snapshot, utcnow

SEVERITY_RANK = {"emergency": 0, "critical": 1, "warning": 2, "info": 3}


@dataclass
class MarginAlert:
    id: str
    type: str
    severity: str       # emergency | critical | warning | info
    title: str
    description: str
    impact_amount: float
    created_at: datetime.datetime
    suggested_action: str
    client_id: Optional[str] = None
    project_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "severity": self.severity,
            "title": self.title,
            "description": self.description,
            "impact_amount": round(self.impact_amount, 2),
            "client_id": self.client_id,
            "project_id": self.project_id,
            "created_at": self.created_at.isoformat(),
            "suggested_action": self.suggested_action,
        }


class AlertGenerator:
    def __init__(self, thresholds: Thresholds = DEFAULT_THRESHOLDS):
        self.thresholds = thresholds

    def generate(
        self,
        snapshot: Snapshot,
        metrics: Optional[PeriodMetrics] = None,
        now: Optional[datetime.datetime] = None,
        days: Optional[float] = None,
    ) -> List[MarginAlert]:
        now = now or utcnow()
        if metrics is None:
            days = self.thresholds.alert_window_days if days is None else days
            metrics = period_metrics(snapshot, days, now=now)
        symbol = snapshot.organization.currency_symbol

        alerts = self._project_alerts(snapshot, now, symbol)
        alerts += self._scope_alerts(snapshot, now, symbol)
        efficiency = self._efficiency_alert(metrics, now)
        if efficiency:
            alerts.append(efficiency)

        return sorted(alerts, key=lambda a: SEVERITY_RANK.get(a.severity, len(SEVERITY_RANK)))

    def _project_alerts(self, snapshot: Snapshot, now: datetime.datetime, symbol: str) -> List[MarginAlert]:
        alerts = []
        for project in snapshot.projects:
            used = round(project.budget_used_pct)
            if project.margin_health == "underwater":
                overrun = project.current_spend - project.total_budget
                alerts.append(MarginAlert(
                    id=f"alert-project-{project.id}",
                    type="project_overrun",
                    severity="critical",
                    title=f"{project.name} is {used}% of budget",
                    description=f"Project has exceeded budget by {format_currency(overrun, symbol)}",
                    impact_amount=overrun,
                    created_at=now,
                    suggested_action="Review scope and renegotiate with client",
                    client_id=project.client_id,
                    project_id=project.id,
                ))
            elif project.margin_health == "warning":
                alerts.append(MarginAlert(
                    id=f"alert-warning-{project.id}",
                    type="margin_threshold",
                    severity="warning",
                    title=f"{project.name} approaching budget limit",
                    description=f"Project is at {used}% of budget",
                    impact_amount=project.total_budget - project.current_spend,
                    created_at=now,
                    suggested_action="Monitor closely and plan remaining work",
                    client_id=project.client_id,
                    project_id=project.id,
                ))
        return alerts

    def _scope_alerts(self, snapshot: Snapshot, now: datetime.datetime, symbol: str) -> List[MarginAlert]:
        t = self.thresholds
        pending_by_client: "OrderedDict[str, list]" = OrderedDict()
        for request in snapshot.scope_requests:
            if request.is_pending and request.client_id:
                pending_by_client.setdefault(request.client_id, []).append(request)

        alerts = []
        for client_id, requests in pending_by_client.items():
            count = len(requests)
            if count < t.alert_scope_pending_warning:
                continue
            total_value = sum(r.estimated_cost or 0 for r in requests)
            alerts.append(MarginAlert(
                id=f"alert-scope-{client_id}",
                type="scope_creep_pattern",
                severity="critical" if count >= t.alert_scope_pending_critical else "warning",
                title=f"{snapshot.client_name(client_id)}: {count} pending scope requests",
                description=f"Total at-risk value: {format_currency(total_value, symbol)}",
                impact_amount=total_value,
                created_at=now,
                suggested_action="Schedule scope review meeting with client",
                client_id=client_id,
            ))
        return alerts

    def _efficiency_alert(self, metrics: PeriodMetrics, now: datetime.datetime) -> Optional[MarginAlert]:
        t = self.thresholds
        if metrics.burn_ratio <= t.alert_burn_ratio_warning_pct:
            return None
        return MarginAlert(
            id="alert-efficiency",
            type="efficiency_drop",
            severity="critical" if metrics.burn_ratio > t.alert_burn_ratio_critical_pct else "warning",
            title=f"Billable ratio dropped to {round(100 - metrics.burn_ratio)}%",
            description="Non-billable work is consuming too much capacity",
            impact_amount=metrics.total_margin_burn,
            created_at=now,
            suggested_action="Audit recent work logs and reduce overhead",
        )
