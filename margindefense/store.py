"""
In-memory record store.

Holds the entity collections and performs the only two writes the engine
defines:

  1. creating a work log (validate → classify → cost → insert, and bump the
     client's accumulated burn when the log is margin_burn)
  2. resolving a scope request (accepted_burn inserts one burn work log)

Both run under a single re-entrant lock, so each write is atomic even with
several writer threads. Reads go through `snapshot()`, which copies the
collection lists under the same lock.
"""

from __future__ import annotations

import datetime
import logging
import threading
import uuid
from typing import Iterable, List, Optional

from margindefense.classifier import classify_work
from margindefense.cost import compute_cost_impact, validate_work_input, require_positive
from margindefense.lexicon import BURN_CATEGORIES, BURN_REASONS, CATEGORIES
from margindefense.models import (
    Client,
    InvalidTransitionError,
    MARGIN_HEALTH_LEVELS,
    Organization,
    PROJECT_STATUSES,
    Project,
    RecordNotFoundError,
    SCOPE_RESOLUTIONS,
    ScopeRequest,
    Snapshot,
    ValidationError,
    WORK_LOG_SOURCES,
    WorkLog,
    as_utc,
    utcnow,
)

logger = logging.getLogger(__name__)


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


class InMemoryStore:
    """Single-process store for organizations, clients, projects, logs and requests."""

    def __init__(
        self,
        organization: Organization,
        clients: Optional[Iterable[Client]] = None,
        projects: Optional[Iterable[Project]] = None,
        work_logs: Optional[Iterable[WorkLog]] = None,
        scope_requests: Optional[Iterable[ScopeRequest]] = None,
    ):
        self._lock = threading.RLock()
        self.organization = organization
        self.clients: List[Client] = list(clients or [])
        self.projects: List[Project] = list(projects or [])
        self.work_logs: List[WorkLog] = list(work_logs or [])
        self.scope_requests: List[ScopeRequest] = list(scope_requests or [])

    def snapshot(self) -> Snapshot:
        with self._lock:
            return Snapshot(
                organization=self.organization,
                clients=list(self.clients),
                projects=list(self.projects),
                work_logs=list(self.work_logs),
                scope_requests=list(self.scope_requests),
            )

    # ─── Organization ─────────────────────────────────────────────────────────

    def update_organization(
        self,
        name: Optional[str] = None,
        currency_symbol: Optional[str] = None,
        global_hourly_cost: Optional[float] = None,
    ) -> Organization:
        with self._lock:
            if global_hourly_cost is not None:
                self.organization.global_hourly_cost = require_positive(
                    "global_hourly_cost", global_hourly_cost
                )
            if name:
                self.organization.name = name
            if currency_symbol:
                self.organization.currency_symbol = currency_symbol
            logger.info("Organization %s settings updated", self.organization.id)
            return self.organization

    # ─── Clients & projects ───────────────────────────────────────────────────

    def get_client(self, client_id: str) -> Client:
        for client in self.clients:
            if client.id == client_id:
                return client
        raise RecordNotFoundError(f"client {client_id!r} not found")

    def create_client(self, name: str, retainer_value: Optional[float] = None) -> Client:
        if not name or not name.strip():
            raise ValidationError("client name is empty")
        if retainer_value is not None:
            retainer_value = require_positive("retainer_value", retainer_value)
        with self._lock:
            client = Client(
                id=_new_id("client"),
                organization_id=self.organization.id,
                name=name.strip(),
                retainer_value=retainer_value,
            )
            self.clients.append(client)
        logger.info("Created client %s (%s)", client.id, client.name)
        return client

    def reset_client_burn(self, client_id: str) -> Client:
        with self._lock:
            client = self.get_client(client_id)
            client.accumulated_burn_total = 0.0
        logger.info("Reset accumulated burn for client %s", client_id)
        return client

    def get_project(self, project_id: str) -> Project:
        for project in self.projects:
            if project.id == project_id:
                return project
        raise RecordNotFoundError(f"project {project_id!r} not found")

    def add_project(self, project: Project) -> Project:
        if project.margin_health not in MARGIN_HEALTH_LEVELS:
            raise ValidationError(f"unknown margin health {project.margin_health!r}")
        if project.status not in PROJECT_STATUSES:
            raise ValidationError(f"unknown project status {project.status!r}")
        with self._lock:
            self.projects.append(project)
        return project

    # ─── Work logs ────────────────────────────────────────────────────────────

    def get_work_log(self, log_id: str) -> WorkLog:
        for log in self.work_logs:
            if log.id == log_id:
                return log
        raise RecordNotFoundError(f"work log {log_id!r} not found")

    def get_work_logs(
        self,
        category: Optional[str] = None,
        client_id: Optional[str] = None,
        project_id: Optional[str] = None,
        start: Optional[datetime.datetime] = None,
        end: Optional[datetime.datetime] = None,
    ) -> List[WorkLog]:
        """Filtered work logs, newest first."""
        logs = self.snapshot().work_logs
        if category:
            logs = [l for l in logs if l.category == category]
        if client_id:
            logs = [l for l in logs if l.client_id == client_id]
        if project_id:
            logs = [l for l in logs if l.project_id == project_id]
        if start:
            logs = [l for l in logs if l.created_at >= as_utc(start)]
        if end:
            logs = [l for l in logs if l.created_at <= as_utc(end)]
        return sorted(logs, key=lambda l: l.created_at, reverse=True)

    def create_work_log(
        self,
        description: str,
        duration_minutes: float,
        project_id: Optional[str] = None,
        client_id: Optional[str] = None,
        hourly_rate: Optional[float] = None,
        source: str = "manual",
        created_at: Optional[datetime.datetime] = None,
    ) -> WorkLog:
        """Validate, classify, cost and insert a new work log."""
        rate = self.organization.global_hourly_cost if hourly_rate is None else hourly_rate
        validate_work_input(description, duration_minutes, rate)
        if source not in WORK_LOG_SOURCES:
            raise ValidationError(f"unknown work log source {source!r}")

        result = classify_work(description)
        return self._insert_work_log(
            description=description,
            duration_minutes=duration_minutes,
            hourly_rate=rate,
            category=result.category,
            burn_reason=result.burn_reason,
            confidence=result.confidence,
            rationale=result.rationale,
            project_id=project_id,
            client_id=client_id,
            source=source,
            created_at=created_at,
        )

    def _insert_work_log(
        self,
        description: str,
        duration_minutes: float,
        hourly_rate: float,
        category: str,
        burn_reason: Optional[str],
        confidence: float,
        rationale: str,
        project_id: Optional[str],
        client_id: Optional[str],
        source: str = "manual",
        created_at: Optional[datetime.datetime] = None,
    ) -> WorkLog:
        now = as_utc(created_at) if created_at else utcnow()
        log = WorkLog(
            id=_new_id("log"),
            description=description,
            duration_minutes=duration_minutes,
            hourly_rate=hourly_rate,
            cost_impact=compute_cost_impact(duration_minutes, hourly_rate),
            category=category,
            burn_reason=burn_reason,
            confidence=confidence,
            rationale=rationale,
            created_at=now,
            project_id=project_id,
            client_id=client_id,
            source=source,
            classified_at=now,
        )
        with self._lock:
            self.work_logs.append(log)
            if log.category == "margin_burn" and log.client_id:
                try:
                    client = self.get_client(log.client_id)
                except RecordNotFoundError:
                    logger.warning("Work log %s references unknown client %s", log.id, log.client_id)
                else:
                    client.accumulated_burn_total += log.cost_impact
        logger.info(
            "Work log %s classified %s (%s) cost=%.2f",
            log.id, log.category, log.burn_reason or "-", log.cost_impact,
        )
        return log

    def reclassify_work_log(
        self,
        log_id: str,
        category: str,
        burn_reason: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> WorkLog:
        """Overwrite category / burn reason. Accumulated burn is not adjusted."""
        if category not in CATEGORIES:
            raise ValidationError(f"unknown category {category!r}")
        if burn_reason is not None and burn_reason not in BURN_REASONS:
            raise ValidationError(f"unknown burn reason {burn_reason!r}")
        with self._lock:
            log = self.get_work_log(log_id)
            log.category = category
            if category in BURN_CATEGORIES:
                log.burn_reason = burn_reason or "other"
            else:
                log.burn_reason = None
            log.classified_at = utcnow()
            log.reclassified_by = actor
        logger.info("Work log %s reclassified to %s by %s", log_id, category, actor or "unknown")
        return log

    # ─── Scope requests ───────────────────────────────────────────────────────

    def get_scope_request(self, request_id: str) -> ScopeRequest:
        for request in self.scope_requests:
            if request.id == request_id:
                return request
        raise RecordNotFoundError(f"scope request {request_id!r} not found")

    def get_scope_requests(self, status: Optional[str] = None) -> List[ScopeRequest]:
        requests = self.snapshot().scope_requests
        if status:
            requests = [r for r in requests if r.status == status]
        return requests

    def create_scope_request(
        self,
        title: str,
        description: str = "",
        client_id: Optional[str] = None,
        project_id: Optional[str] = None,
        estimated_hours: Optional[float] = None,
        created_at: Optional[datetime.datetime] = None,
    ) -> ScopeRequest:
        if not title or not title.strip():
            raise ValidationError("scope request title is empty")
        if estimated_hours is not None:
            estimated_hours = require_positive("estimated_hours", estimated_hours)
        with self._lock:
            estimated_cost = (
                estimated_hours * self.organization.global_hourly_cost
                if estimated_hours is not None
                else None
            )
            request = ScopeRequest(
                id=_new_id("scope"),
                title=title.strip(),
                description=description,
                created_at=as_utc(created_at) if created_at else utcnow(),
                client_id=client_id,
                project_id=project_id,
                estimated_hours=estimated_hours,
                estimated_cost=estimated_cost,
            )
            self.scope_requests.append(request)
        logger.info("Scope request %s created for client %s", request.id, client_id or "-")
        return request

    def resolve_scope_request(
        self,
        request_id: str,
        resolution: str,
        resolved_by: Optional[str] = None,
    ) -> ScopeRequest:
        """
        Move a pending request to a terminal state.

        accepted_burn inserts exactly one margin_burn work log sized from the
        estimated hours, inside the same lock as the status change.
        """
        if resolution not in SCOPE_RESOLUTIONS:
            raise ValidationError(f"unknown resolution {resolution!r}")
        with self._lock:
            request = self.get_scope_request(request_id)
            if not request.is_pending:
                raise InvalidTransitionError(
                    f"scope request {request_id!r} is already {request.status}"
                )
            if resolution == "accepted_burn" and not request.estimated_hours:
                raise InvalidTransitionError(
                    f"scope request {request_id!r} has no estimated hours to book as burn"
                )

            if resolution == "accepted_burn":
                self._insert_work_log(
                    description=f"[SCOPE CREEP] {request.title}",
                    duration_minutes=request.estimated_hours * 60,
                    hourly_rate=self.organization.global_hourly_cost,
                    category="margin_burn",
                    burn_reason="scope_creep",
                    confidence=1.0,
                    rationale="Scope request accepted as burn",
                    project_id=request.project_id,
                    client_id=request.client_id,
                )

            request.status = resolution
            request.resolved_at = utcnow()
            request.resolved_by = resolved_by
        logger.info("Scope request %s resolved as %s", request_id, resolution)
        return request
