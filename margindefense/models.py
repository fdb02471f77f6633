"""
Domain records for the margin engine.

These are the entities supplied by storage. The engine never owns them: it
reads a `Snapshot` and returns derived structures.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import List, Optional

from margindefense.lexicon import BURN_CATEGORIES

MARGIN_HEALTH_LEVELS = ("healthy", "warning", "critical", "underwater")
PROJECT_STATUSES = ("active", "completed", "on_hold")
WORK_LOG_SOURCES = ("manual", "slack", "jira", "email", "csv", "webhook")
SCOPE_RESOLUTIONS = ("accepted_burn", "converted_revenue", "rejected")


class ValidationError(ValueError):
    """Caller supplied input the engine refuses to compute with."""


class InvalidTransitionError(ValidationError):
    """A record cannot move to the requested state."""


class RecordNotFoundError(KeyError):
    """No record with the given id exists in the store."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "record not found"


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def as_utc(value: datetime.datetime) -> datetime.datetime:
    """Treat naive timestamps as UTC; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value.astimezone(datetime.timezone.utc)


def _iso(value: Optional[datetime.datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class Organization:
    id: str
    name: str
    currency_symbol: str = "$"
    global_hourly_cost: float = 50.0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "currency_symbol": self.currency_symbol,
            "global_hourly_cost": self.global_hourly_cost,
        }


@dataclass
class Client:
    id: str
    organization_id: str
    name: str
    retainer_value: Optional[float] = None
    accumulated_burn_total: float = 0.0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "name": self.name,
            "retainer_value": self.retainer_value,
            "accumulated_burn_total": round(self.accumulated_burn_total, 2),
        }


@dataclass
class Project:
    id: str
    client_id: str
    name: str
    total_budget: float
    current_spend: float = 0.0
    margin_health: str = "healthy"  # healthy | warning | critical | underwater
    status: str = "active"          # active | completed | on_hold
    description: Optional[str] = None

    @property
    def budget_used_pct(self) -> float:
        if self.total_budget <= 0:
            return 0.0
        return self.current_spend / self.total_budget * 100

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "client_id": self.client_id,
            "name": self.name,
            "description": self.description,
            "total_budget": self.total_budget,
            "current_spend": self.current_spend,
            "margin_health": self.margin_health,
            "status": self.status,
        }


@dataclass
class WorkLog:
    """A classified unit of work. cost_impact is always derived, never edited."""
    id: str
    description: str
    duration_minutes: float
    hourly_rate: float
    cost_impact: float
    category: str
    burn_reason: Optional[str]
    confidence: float
    rationale: str
    created_at: datetime.datetime
    project_id: Optional[str] = None
    client_id: Optional[str] = None
    source: str = "manual"
    classified_at: Optional[datetime.datetime] = None
    reclassified_by: Optional[str] = None

    @property
    def is_burn(self) -> bool:
        return self.category in BURN_CATEGORIES

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "client_id": self.client_id,
            "description": self.description,
            "duration_minutes": self.duration_minutes,
            "hourly_rate": self.hourly_rate,
            "cost_impact": round(self.cost_impact, 2),
            "category": self.category,
            "burn_reason": self.burn_reason,
            "confidence": round(self.confidence, 4),
            "rationale": self.rationale,
            "source": self.source,
            "created_at": _iso(self.created_at),
            "classified_at": _iso(self.classified_at),
            "reclassified_by": self.reclassified_by,
        }


@dataclass
class ScopeRequest:
    id: str
    title: str
    description: str
    created_at: datetime.datetime
    client_id: Optional[str] = None
    project_id: Optional[str] = None
    estimated_hours: Optional[float] = None
    estimated_cost: Optional[float] = None  # frozen at creation
    status: str = "pending"
    resolved_at: Optional[datetime.datetime] = None
    resolved_by: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.status == "pending"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "client_id": self.client_id,
            "project_id": self.project_id,
            "title": self.title,
            "description": self.description,
            "estimated_hours": self.estimated_hours,
            "estimated_cost": self.estimated_cost,
            "status": self.status,
            "created_at": _iso(self.created_at),
            "resolved_at": _iso(self.resolved_at),
            "resolved_by": self.resolved_by,
        }


@dataclass
class Snapshot:
    """Point-in-time view of every collection the engine reads."""
    organization: Organization
    clients: List[Client] = field(default_factory=list)
    projects: List[Project] = field(default_factory=list)
    work_logs: List[WorkLog] = field(default_factory=list)
    scope_requests: List[ScopeRequest] = field(default_factory=list)

    def client_name(self, client_id: Optional[str]) -> str:
        for client in self.clients:
            if client.id == client_id:
                return client.name
        return "Unknown"
