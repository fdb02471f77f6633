"""
Client Risk Scorer.

Composite, additive risk score per client from all-time work logs and
pending scope requests:

  +30  margin_percentage < 60      (else +15 if < 75)
  +25  pending scope requests > 2  (else +10 if > 0)
  +30  total_burn > total_revenue
  +15  retainer_utilization > 90

  margin_percentage    = revenue / (revenue + burn) × 100   (100 with no logs)
  retainer_utilization = min(100, (revenue + burn) / retainer × 100) or None

Health tier:  critical ≥ 50 | warning ≥ 30 | good ≥ 15 | excellent
Sentiment:    happy (excellent, nothing pending) | at_risk (critical)
              | concerned (> 1 pending) | neutral

The score is not clamped; the rule set tops out at 100. Every component is
kept in `score_components` so a score can be traced back to its inputs.

margin_trend is a threshold on the current margin, not a period-over-period
delta: improving > 70 | declining ≤ 50 | stable otherwise.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from margindefense.config import DEFAULT_THRESHOLDS, Thresholds
from margindefense.lexicon import BURN_CATEGORIES
from margindefense.models import Client, Snapshot


@dataclass
class ClientHealthMetrics:
    client_id: str
    client_name: str
    health: str                 # excellent | good | warning | critical
    sentiment: str              # happy | neutral | concerned | at_risk
    total_revenue: float
    total_burn: float
    margin_percentage: float    # 0–100
    retainer_utilization: Optional[float]
    pending_scope_requests: int
    risk_score: int
    margin_trend: str           # improving | stable | declining
    score_components: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "client_id": self.client_id,
            "client_name": self.client_name,
            "health": self.health,
            "sentiment": self.sentiment,
            "total_revenue": round(self.total_revenue, 2),
            "total_burn": round(self.total_burn, 2),
            "margin_percentage": round(self.margin_percentage, 2),
            "retainer_utilization": (
                round(self.retainer_utilization, 2)
                if self.retainer_utilization is not None else None
            ),
            "pending_scope_requests": self.pending_scope_requests,
            "risk_score": self.risk_score,
            "margin_trend": self.margin_trend,
            "score_components": self.score_components,
        }


def risk_score(
    margin_percentage: float,
    pending_scope_requests: int,
    total_revenue: float,
    total_burn: float,
    retainer_utilization: Optional[float],
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
) -> Tuple[int, Dict[str, int]]:
    """Additive risk score and its per-rule breakdown."""
    t = thresholds

    if margin_percentage < t.margin_critical_pct:
        margin_points = t.margin_critical_points
    elif margin_percentage < t.margin_warning_pct:
        margin_points = t.margin_warning_points
    else:
        margin_points = 0

    if pending_scope_requests > t.pending_many:
        scope_points = t.pending_many_points
    elif pending_scope_requests > 0:
        scope_points = t.pending_some_points
    else:
        scope_points = 0

    burn_points = t.burn_over_revenue_points if total_burn > total_revenue else 0

    retainer_points = 0
    if retainer_utilization is not None and retainer_utilization > t.retainer_utilization_pct:
        retainer_points = t.retainer_points

    components = {
        "margin": margin_points,
        "pending_scope": scope_points,
        "burn_over_revenue": burn_points,
        "retainer_utilization": retainer_points,
    }
    return sum(components.values()), components


def health_tier(score: float, thresholds: Thresholds = DEFAULT_THRESHOLDS) -> str:
    if score >= thresholds.tier_critical:
        return "critical"
    elif score >= thresholds.tier_warning:
        return "warning"
    elif score >= thresholds.tier_good:
        return "good"
    else:
        return "excellent"


def sentiment_label(health: str, pending_scope_requests: int) -> str:
    if health == "excellent" and pending_scope_requests == 0:
        return "happy"
    if health == "critical":
        return "at_risk"
    if pending_scope_requests > 1:
        return "concerned"
    return "neutral"


def margin_trend(margin_percentage: float, thresholds: Thresholds = DEFAULT_THRESHOLDS) -> str:
    if margin_percentage > thresholds.trend_improving_pct:
        return "improving"
    if margin_percentage > thresholds.trend_declining_pct:
        return "stable"
    return "declining"


class RiskScorer:
    """Scores every client in a snapshot."""

    def __init__(self, thresholds: Thresholds = DEFAULT_THRESHOLDS):
        self.thresholds = thresholds

    def score_client(self, client: Client, snapshot: Snapshot) -> ClientHealthMetrics:
        logs = [l for l in snapshot.work_logs if l.client_id == client.id]
        total_revenue = sum(l.cost_impact for l in logs if l.category == "billable")
        total_burn = sum(l.cost_impact for l in logs if l.category in BURN_CATEGORIES)
        total = total_revenue + total_burn

        margin_percentage = (total_revenue / total) * 100 if total > 0 else 100.0

        retainer_utilization = None
        if client.retainer_value:
            retainer_utilization = min(100.0, (total / client.retainer_value) * 100)

        pending = sum(
            1 for r in snapshot.scope_requests
            if r.client_id == client.id and r.is_pending
        )

        score, components = risk_score(
            margin_percentage,
            pending,
            total_revenue,
            total_burn,
            retainer_utilization,
            self.thresholds,
        )
        health = health_tier(score, self.thresholds)

        return ClientHealthMetrics(
            client_id=client.id,
            client_name=client.name,
            health=health,
            sentiment=sentiment_label(health, pending),
            total_revenue=total_revenue,
            total_burn=total_burn,
            margin_percentage=margin_percentage,
            retainer_utilization=retainer_utilization,
            pending_scope_requests=pending,
            risk_score=score,
            margin_trend=margin_trend(margin_percentage, self.thresholds),
            score_components=components,
        )

    def score_all(self, snapshot: Snapshot) -> List[ClientHealthMetrics]:
        return [self.score_client(c, snapshot) for c in snapshot.clients]
