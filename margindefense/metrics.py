"""
Margin Metrics Aggregator.

Folds classified work logs into revenue/burn totals and breakdowns.

  total_revenue_secure = Σ cost_impact of billable logs in window
  total_margin_burn    = Σ cost_impact of margin_burn + scope_risk logs in window
  burn_ratio           = burn / (revenue + burn) × 100   (0 when both are 0)

Every function recomputes from the snapshot it is given; nothing is cached
between calls. Cost is O(n) in the number of records per call.
"""

from __future__ import annotations

import datetime
from collections import OrderedDict
from dataclasses import dataclass
from typing import List, Optional

from margindefense.lexicon import BURN_CATEGORIES
from margindefense.models import Snapshot, WorkLog, as_utc, utcnow


@dataclass
class PeriodMetrics:
    total_revenue_secure: float
    total_margin_burn: float
    burn_ratio: float               # 0–100
    scope_requests_pending: int
    scope_requests_value: float
    period_start: datetime.datetime
    period_end: datetime.datetime

    @property
    def billable_ratio(self) -> float:
        total = self.total_revenue_secure + self.total_margin_burn
        return self.total_revenue_secure / total * 100 if total > 0 else 0.0

    def to_dict(self) -> dict:
        return {
            "total_revenue_secure": round(self.total_revenue_secure, 2),
            "total_margin_burn": round(self.total_margin_burn, 2),
            "burn_ratio": round(self.burn_ratio, 2),
            "scope_requests_pending": self.scope_requests_pending,
            "scope_requests_value": round(self.scope_requests_value, 2),
            "period_start": self.period_start.isoformat(),
            "period_end": self.period_end.isoformat(),
        }


@dataclass
class BurnBreakdown:
    burn_reason: str
    total_cost: float
    count: int
    percentage: float   # share of all grouped burn

    def to_dict(self) -> dict:
        return {
            "burn_reason": self.burn_reason,
            "total_cost": round(self.total_cost, 2),
            "count": self.count,
            "percentage": round(self.percentage, 2),
        }


@dataclass
class ClientBurn:
    client_id: str
    client_name: str
    total_burn: float
    total_billable: float

    @property
    def burn_ratio(self) -> float:
        total = self.total_burn + self.total_billable
        return self.total_burn / total * 100 if total > 0 else 0.0

    def to_dict(self) -> dict:
        return {
            "client_id": self.client_id,
            "client_name": self.client_name,
            "total_burn": round(self.total_burn, 2),
            "total_billable": round(self.total_billable, 2),
            "burn_ratio": round(self.burn_ratio, 2),
        }


@dataclass
class ShameEntry:
    """One row of the hall of shame: a costly non-billable work log."""
    id: str
    description: str
    cost_impact: float
    category: str
    burn_reason: Optional[str]
    created_at: datetime.datetime
    client_name: Optional[str]
    project_name: Optional[str]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "description": self.description,
            "cost_impact": round(self.cost_impact, 2),
            "category": self.category,
            "burn_reason": self.burn_reason,
            "created_at": self.created_at.isoformat(),
            "client_name": self.client_name,
            "project_name": self.project_name,
        }


@dataclass
class TrendPoint:
    date: datetime.date
    revenue_secure: float
    margin_burn: float
    billable_ratio: float   # 100 on days with no activity

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "revenue_secure": round(self.revenue_secure, 2),
            "margin_burn": round(self.margin_burn, 2),
            "billable_ratio": round(self.billable_ratio, 2),
        }


def window_start(now: datetime.datetime, days: float) -> datetime.datetime:
    """Start of a `days` window ending at `now`, clamped to the earliest datetime."""
    try:
        return now - datetime.timedelta(days=days)
    except OverflowError:
        return datetime.datetime.min.replace(tzinfo=datetime.timezone.utc)


def _in_window(
    snapshot: Snapshot,
    days: float,
    now: datetime.datetime,
    client_id: Optional[str] = None,
    project_id: Optional[str] = None,
) -> List[WorkLog]:
    cutoff = window_start(now, days)
    logs = [l for l in snapshot.work_logs if as_utc(l.created_at) >= cutoff]
    if client_id:
        logs = [l for l in logs if l.client_id == client_id]
    if project_id:
        logs = [l for l in logs if l.project_id == project_id]
    return logs


def _sum_cost(logs: List[WorkLog]) -> float:
    return sum(l.cost_impact for l in logs)


def period_metrics(
    snapshot: Snapshot,
    days: float = 7,
    now: Optional[datetime.datetime] = None,
    client_id: Optional[str] = None,
    project_id: Optional[str] = None,
) -> PeriodMetrics:
    """Revenue, burn and burn ratio for the last `days`, plus pending scope requests."""
    now = as_utc(now) if now else utcnow()
    logs = _in_window(snapshot, days, now, client_id, project_id)

    revenue = _sum_cost([l for l in logs if l.category == "billable"])
    burn = _sum_cost([l for l in logs if l.category in BURN_CATEGORIES])
    total = revenue + burn

    # Pending requests are counted regardless of the window
    pending = [r for r in snapshot.scope_requests if r.is_pending]
    if client_id:
        pending = [r for r in pending if r.client_id == client_id]
    if project_id:
        pending = [r for r in pending if r.project_id == project_id]

    return PeriodMetrics(
        total_revenue_secure=revenue,
        total_margin_burn=burn,
        burn_ratio=(burn / total) * 100 if total > 0 else 0.0,
        scope_requests_pending=len(pending),
        scope_requests_value=sum(r.estimated_cost or 0 for r in pending),
        period_start=window_start(now, days),
        period_end=now,
    )


def burn_by_sub_reason(
    snapshot: Snapshot,
    days: float = 7,
    now: Optional[datetime.datetime] = None,
    client_id: Optional[str] = None,
    project_id: Optional[str] = None,
) -> List[BurnBreakdown]:
    now = as_utc(now) if now else utcnow()
    logs = [
        l for l in _in_window(snapshot, days, now, client_id, project_id)
        if l.category in BURN_CATEGORIES and l.burn_reason
    ]

    grouped: "OrderedDict[str, List[float]]" = OrderedDict()
    for log in logs:
        bucket = grouped.setdefault(log.burn_reason, [0.0, 0])
        bucket[0] += log.cost_impact
        bucket[1] += 1

    grand_total = sum(total for total, _ in grouped.values())
    rows = [
        BurnBreakdown(
            burn_reason=reason,
            total_cost=total,
            count=int(count),
            percentage=(total / grand_total * 100) if grand_total > 0 else 0.0,
        )
        for reason, (total, count) in grouped.items()
    ]
    return sorted(rows, key=lambda r: r.total_cost, reverse=True)


def burn_by_client(
    snapshot: Snapshot,
    days: float = 7,
    now: Optional[datetime.datetime] = None,
    project_id: Optional[str] = None,
) -> List[ClientBurn]:
    now = as_utc(now) if now else utcnow()
    logs = [l for l in _in_window(snapshot, days, now, project_id=project_id) if l.client_id]

    grouped: "OrderedDict[str, ClientBurn]" = OrderedDict()
    for log in logs:
        row = grouped.get(log.client_id)
        if row is None:
            row = ClientBurn(
                client_id=log.client_id,
                client_name=snapshot.client_name(log.client_id),
                total_burn=0.0,
                total_billable=0.0,
            )
            grouped[log.client_id] = row
        if log.category in BURN_CATEGORIES:
            row.total_burn += log.cost_impact
        elif log.category == "billable":
            row.total_billable += log.cost_impact

    return sorted(grouped.values(), key=lambda r: r.total_burn, reverse=True)


def hall_of_shame(snapshot: Snapshot, limit: int = 5) -> List[ShameEntry]:
    """Costliest burn-like work logs of all time; ties keep record order."""
    if limit <= 0:
        return []
    project_names = {p.id: p.name for p in snapshot.projects}
    burn_logs = [l for l in snapshot.work_logs if l.category in BURN_CATEGORIES]
    ranked = sorted(burn_logs, key=lambda l: l.cost_impact, reverse=True)[:limit]
    return [
        ShameEntry(
            id=l.id,
            description=l.description,
            cost_impact=l.cost_impact,
            category=l.category,
            burn_reason=l.burn_reason,
            created_at=l.created_at,
            client_name=snapshot.client_name(l.client_id) if l.client_id else None,
            project_name=project_names.get(l.project_id) if l.project_id else None,
        )
        for l in ranked
    ]


def daily_trend(
    snapshot: Snapshot,
    days: int = 7,
    now: Optional[datetime.datetime] = None,
) -> List[TrendPoint]:
    """Revenue and burn per calendar day for the last `days` days, oldest first."""
    now = as_utc(now) if now else utcnow()
    today = now.date()
    points = []
    for offset in range(days - 1, -1, -1):
        day = today - datetime.timedelta(days=offset)
        day_logs = [l for l in snapshot.work_logs if as_utc(l.created_at).date() == day]
        revenue = _sum_cost([l for l in day_logs if l.category == "billable"])
        burn = _sum_cost([l for l in day_logs if l.category in BURN_CATEGORIES])
        total = revenue + burn
        points.append(TrendPoint(
            date=day,
            revenue_secure=revenue,
            margin_burn=burn,
            billable_ratio=(revenue / total) * 100 if total > 0 else 100.0,
        ))
    return points
